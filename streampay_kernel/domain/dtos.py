"""
Immutable DTOs returned across the kernel boundary.

Services and selectors never hand ORM rows to callers; they return these
frozen dataclasses instead, so dashboards and scripts cannot mutate ledger
state by accident.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True)
class VaultInfo:
    """Snapshot of a vault account."""

    id: UUID
    owner: str
    token_holder: str
    paused: bool
    funded_balance: int
    total_deposited: int


@dataclass(frozen=True)
class EmployeeDetails:
    """
    Dashboard view of one employee.

    ``available_balance`` is computed at read time from the live accrual,
    so it moves every second while the employee is clocked in.
    """

    identity: str
    salary_per_second: int
    annual_salary: int
    available_balance: int
    escrow_balance: int
    total_withdrawn: int
    accrued_balance: int
    total_accrued: int
    last_clock_in: int
    last_clock_out: int
    is_active: bool
    is_clocked_in: bool
    manager_address: str


@dataclass(frozen=True)
class WithdrawalReceipt:
    """Result of a successful withdrawal (plain or nonce-keyed)."""

    identity: str
    amount: int
    nonce: int
    escrow_credited: int
    total_withdrawn: int
    remaining_available: int
    vault_balance: int


@dataclass(frozen=True)
class EscrowRelease:
    """Result of releasing one employee's escrow."""

    identity: str
    amount: int
    approved_by: str


@dataclass(frozen=True)
class BatchApprovalOutcome:
    """Per-identity outcome of a batch escrow approval."""

    identity: str
    released: int
    error_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error_code is None


@dataclass(frozen=True)
class WithdrawalRecord:
    """One historical withdrawal, read back from the ledger event log."""

    seq: int
    identity: str
    amount: int
    nonce: int
    occurred_at: datetime
