"""
Module: streampay_kernel.selectors.ledger_selector
Responsibility: Read-only dashboard queries: employee details with live
    balances, the employee list, withdrawal history and the per-employee
    event trail.
Architecture position: Kernel > Selectors.  May import from models/,
    domain/ and selectors/base.py.  MUST NOT import from services/.

Invariants enforced:
    - Live figures (available balance, total accrued) are computed at read
      time from the stored finalized balance plus the open session; they
      are never written back.
    - Withdrawal history derives exclusively from WITHDRAWAL ledger events.

Failure modes:
    - EmployeeNotFoundError from employee_details() for an unknown identity.
    - Empty lists when nothing matches.
"""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from streampay_kernel.domain import accrual
from streampay_kernel.domain.authority import normalize_identity
from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.domain.dtos import EmployeeDetails, WithdrawalRecord
from streampay_kernel.exceptions import EmployeeNotFoundError
from streampay_kernel.models.employee import Employee
from streampay_kernel.models.ledger_event import LedgerAction, LedgerEvent
from streampay_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class LedgerEventView:
    """A single entry in an employee's event trail."""

    seq: int
    action: LedgerAction
    actor: str
    amount: int
    nonce: int
    occurred_at: datetime
    hash: str


class LedgerSelector(BaseSelector):
    """Read-only queries over one vault."""

    def __init__(self, session: Session, vault_id: UUID, clock: Clock | None = None):
        super().__init__(session, vault_id)
        self._clock = clock or SystemClock()

    def _employee(self, identity: str) -> Employee:
        identity = normalize_identity(identity)
        employee = self.session.execute(
            select(Employee)
            .where(Employee.vault_id == self.vault_id)
            .where(Employee.identity == identity)
        ).scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(identity)
        return employee

    def employee_details(self, identity: str) -> EmployeeDetails:
        employee = self._employee(identity)
        total = accrual.live_accrued(
            employee.accrued_balance,
            employee.salary_per_second,
            employee.is_clocked_in,
            employee.last_clock_in,
            self._clock.epoch_seconds(),
        )
        return EmployeeDetails(
            identity=employee.identity,
            salary_per_second=employee.salary_per_second,
            annual_salary=employee.annual_salary,
            available_balance=accrual.available_balance(total, employee.total_withdrawn),
            escrow_balance=employee.escrow_balance,
            total_withdrawn=employee.total_withdrawn,
            accrued_balance=employee.accrued_balance,
            total_accrued=total,
            last_clock_in=employee.last_clock_in,
            last_clock_out=employee.last_clock_out,
            is_active=employee.is_active,
            is_clocked_in=employee.is_clocked_in,
            manager_address=employee.manager_address,
        )

    def all_employees(self, active_only: bool = False) -> list[EmployeeDetails]:
        """Details of every employee, in registration order."""
        stmt = (
            select(Employee.identity)
            .where(Employee.vault_id == self.vault_id)
            .order_by(Employee.registration_index)
        )
        if active_only:
            stmt = stmt.where(Employee.is_active.is_(True))
        return [
            self.employee_details(identity)
            for identity in self.session.execute(stmt).scalars()
        ]

    def employees_managed_by(self, manager: str) -> list[EmployeeDetails]:
        """Employees whose escrow ``manager`` may approve."""
        stmt = (
            select(Employee.identity)
            .where(Employee.vault_id == self.vault_id)
            .where(Employee.manager_address == normalize_identity(manager))
            .order_by(Employee.registration_index)
        )
        return [
            self.employee_details(identity)
            for identity in self.session.execute(stmt).scalars()
        ]

    def withdrawal_history(self, identity: str) -> list[WithdrawalRecord]:
        events = self.session.execute(
            select(LedgerEvent)
            .where(LedgerEvent.vault_id == self.vault_id)
            .where(LedgerEvent.identity == normalize_identity(identity))
            .where(LedgerEvent.action == LedgerAction.WITHDRAWAL.value)
            .order_by(LedgerEvent.seq)
        ).scalars()
        return [
            WithdrawalRecord(
                seq=event.seq,
                identity=event.identity,
                amount=event.amount,
                nonce=event.nonce,
                occurred_at=event.occurred_at,
            )
            for event in events
        ]

    def events_for(self, identity: str) -> list[LedgerEventView]:
        events = self.session.execute(
            select(LedgerEvent)
            .where(LedgerEvent.vault_id == self.vault_id)
            .where(LedgerEvent.identity == normalize_identity(identity))
            .order_by(LedgerEvent.seq)
        ).scalars()
        return [
            LedgerEventView(
                seq=event.seq,
                action=LedgerAction(event.action),
                actor=event.actor,
                amount=event.amount,
                nonce=event.nonce,
                occurred_at=event.occurred_at,
                hash=event.hash,
            )
            for event in events
        ]
