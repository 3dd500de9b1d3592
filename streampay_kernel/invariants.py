"""
Ledger Invariants Contract.

These invariants are structural law for the wage streaming ledger. No
configuration value may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the registry, accrual, settlement,
nonce, escrow and vault services plus the ORM immutability listeners.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel."""

    POSITIVE_RATE = "positive_rate"
    """An active employee always has salary_per_second > 0. Enforced by
    EmployeeRegistry.add_employee and update_salary."""

    INTEGER_ARITHMETIC = "integer_arithmetic"
    """All amounts are integers in the smallest currency unit, multiplied
    before divided, floored. Enforced by streampay_kernel.domain.accrual."""

    NONCE_SINGLE_USE = "nonce_single_use"
    """A nonce moves unused -> used exactly once per employee. Enforced by
    NonceRegistry compare-and-set plus the unique constraint and the
    immutability listeners."""

    WITHDRAWN_MONOTONIC = "withdrawn_monotonic"
    """total_withdrawn never decreases and never exceeds the withdrawable
    share of lifetime earnings. Enforced by SettlementProcessor."""

    SETTLED_WITHIN_EARNED = "settled_within_earned"
    """total_withdrawn + escrow_credited <= total earned. Enforced by the
    escrow crediting rule in SettlementProcessor."""

    VAULT_NON_NEGATIVE = "vault_non_negative"
    """funded_balance only rises through deposits, only falls through
    payouts, and never goes negative. Enforced by VaultAccount."""

    APPEND_ONLY_EVENTS = "append_only_events"
    """Ledger events are never updated or deleted and form a hash chain.
    Enforced by LedgerEventRecorder and streampay_kernel.db.immutability."""


ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "streampay_config",
    "scripts",
)
