"""
Accrual arithmetic -- the pure functional core of wage streaming.

Responsibility:
    Every number the ledger computes from time and salary comes from this
    module: the per-second rate, session earnings, live accrual, and the
    70/30 available/escrow split.

Architecture position:
    Kernel > Domain -- pure functions, no I/O, no ORM.  Services pass
    plain integers in and persist what comes out.

Invariants enforced:
    - Integer arithmetic only.  Amounts are smallest currency units.
    - Multiply before divide; floor division everywhere.  Sub-unit
      precision lost by ``salary_per_second`` is accepted: an annual
      salary of 50_000 * 10**6 units streams 1_585 units per second,
      so 50_000 * 10**6 - 1_585 * SECONDS_PER_YEAR units per year are
      never paid.
    - available_share(x) + escrow_share(x) <= x for every x >= 0.
"""

SECONDS_PER_YEAR = 365 * 24 * 3600

AVAILABLE_PERCENTAGE = 70
ESCROW_PERCENTAGE = 30
PERCENT_DENOMINATOR = 100

assert AVAILABLE_PERCENTAGE + ESCROW_PERCENTAGE == PERCENT_DENOMINATOR


def salary_per_second(annual_salary: int) -> int:
    """floor(annual_salary / SECONDS_PER_YEAR)."""
    return annual_salary // SECONDS_PER_YEAR


def session_earnings(rate: int, started_at: int, now: int) -> int:
    """
    Earnings of one clocked session from ``started_at`` to ``now``.

    A clock reading earlier than the session start yields zero rather than
    a negative amount.
    """
    elapsed = now - started_at
    if elapsed <= 0:
        return 0
    return rate * elapsed


def live_accrued(
    accrued_balance: int,
    rate: int,
    is_clocked_in: bool,
    last_clock_in: int,
    now: int,
) -> int:
    """Finalized earnings plus the still-open session, if any."""
    if not is_clocked_in:
        return accrued_balance
    return accrued_balance + session_earnings(rate, last_clock_in, now)


def available_share(total_earned: int) -> int:
    """floor(total_earned * 70 / 100)."""
    return total_earned * AVAILABLE_PERCENTAGE // PERCENT_DENOMINATOR


def escrow_share(total_earned: int) -> int:
    """floor(total_earned * 30 / 100)."""
    return total_earned * ESCROW_PERCENTAGE // PERCENT_DENOMINATOR


def available_balance(total_earned: int, total_withdrawn: int) -> int:
    """Withdrawable share of lifetime earnings not yet withdrawn, clamped at zero."""
    return max(available_share(total_earned) - total_withdrawn, 0)


def escrow_credit_due(total_earned: int, escrow_credited: int) -> int:
    """
    Escrow still owed for ``total_earned`` given what was already credited.

    Crediting this amount brings lifetime escrow credit up to exactly
    ``escrow_share(total_earned)``; calling it again for the same earnings
    returns zero, so partial withdrawals never double-credit escrow.
    """
    return max(escrow_share(total_earned) - escrow_credited, 0)
