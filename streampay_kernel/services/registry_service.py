"""
EmployeeRegistry -- per-employee records and their lifecycle.

Responsibility:
    Adds, reactivates, re-rates and removes employees and reassigns their
    managers.  Every mutation is an owner action; employees never change
    their own registry entry.

Architecture position:
    Kernel > Services.  Other services resolve employee rows through
    get_record()/require_active() rather than querying Employee directly.

Invariants enforced:
    - salary_per_second > 0 for every active employee: an annual salary
      that floors to a zero rate is rejected with InvalidSalaryError.
    - A salary change never alters accrued amounts retroactively: an open
      session is checkpointed at the old rate first.
    - Removal is logical (is_active = False) and only while clocked out.
    - Re-adding a removed identity reuses its record; balances and
      total_withdrawn are preserved.

Failure modes:
    - UnauthorizedError: caller is not the vault owner.
    - EmployeeAlreadyExistsError, InvalidSalaryError, EmployeeNotActiveError,
      EmployeeNotFoundError, StillClockedInError.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from streampay_kernel.db.types import validate_amount
from streampay_kernel.domain import accrual
from streampay_kernel.domain.authority import Caller, normalize_identity, require_owner
from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.exceptions import (
    EmployeeAlreadyExistsError,
    EmployeeNotActiveError,
    EmployeeNotFoundError,
    InvalidSalaryError,
    StillClockedInError,
)
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.employee import Employee
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.services.accrual_service import checkpoint_open_session
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.sequence_service import SequenceService
from streampay_kernel.services.vault_service import VaultAccount

logger = get_logger("services.registry")


def _rate_for(annual_salary: int) -> int:
    validate_amount(annual_salary)
    if annual_salary <= 0:
        raise InvalidSalaryError(annual_salary)
    rate = accrual.salary_per_second(annual_salary)
    if rate <= 0:
        raise InvalidSalaryError(annual_salary)
    return rate


class EmployeeRegistry(VaultScopedService):
    """
    Employee records of one vault.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT store descriptive profile data (name, email, department).
    """

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        vault: VaultAccount,
        recorder: LedgerEventRecorder,
        clock: Clock | None = None,
    ):
        super().__init__(session, vault_id)
        self._vault = vault
        self._recorder = recorder
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    # -- lookups ------------------------------------------------------------

    def find(self, identity: str, for_update: bool = False) -> Employee | None:
        stmt = (
            select(Employee)
            .where(Employee.vault_id == self.vault_id)
            .where(Employee.identity == normalize_identity(identity))
        )
        if for_update:
            stmt = stmt.with_for_update()
        return self.session.execute(stmt).scalar_one_or_none()

    def get_record(self, identity: str, for_update: bool = False) -> Employee:
        """Return the record for ``identity`` (active or not)."""
        employee = self.find(identity, for_update=for_update)
        if employee is None:
            raise EmployeeNotFoundError(normalize_identity(identity))
        return employee

    def require_active(self, identity: str, for_update: bool = False) -> Employee:
        """Return the record for ``identity``; unknown or removed identities are NotActive."""
        employee = self.find(identity, for_update=for_update)
        if employee is None or not employee.is_active:
            raise EmployeeNotActiveError(normalize_identity(identity))
        return employee

    def list_identities(self, active_only: bool = False) -> list[str]:
        """Identities in registration order."""
        stmt = (
            select(Employee.identity)
            .where(Employee.vault_id == self.vault_id)
            .order_by(Employee.registration_index)
        )
        if active_only:
            stmt = stmt.where(Employee.is_active.is_(True))
        return list(self.session.execute(stmt).scalars().all())

    # -- mutations ----------------------------------------------------------

    def add_employee(
        self,
        caller: Caller,
        identity: str,
        annual_salary: int,
        manager: str,
    ) -> Employee:
        """
        Register ``identity`` at ``annual_salary`` under ``manager``.

        A removed identity is reactivated with the new salary and manager;
        its historical balances stay.  A new identity starts at zero.
        """
        require_owner(caller, self._vault.owner)
        identity = normalize_identity(identity)
        manager = normalize_identity(manager)

        existing = self.find(identity, for_update=True)
        if existing is not None and existing.is_active:
            raise EmployeeAlreadyExistsError(identity)

        rate = _rate_for(annual_salary)

        if existing is not None:
            existing.annual_salary = annual_salary
            existing.salary_per_second = rate
            existing.manager_address = manager
            existing.is_active = True
            existing.is_clocked_in = False
            existing.updated_by = caller.identity
            employee = existing
            action = LedgerAction.EMPLOYEE_REACTIVATED
        else:
            employee = Employee(
                vault_id=self.vault_id,
                identity=identity,
                registration_index=self._sequence_service.next_value(
                    SequenceService.employee_registration(self.vault_id)
                ),
                annual_salary=annual_salary,
                salary_per_second=rate,
                last_clock_in=0,
                last_clock_out=0,
                accrued_balance=0,
                escrow_balance=0,
                escrow_credited=0,
                escrow_released=0,
                total_withdrawn=0,
                is_active=True,
                is_clocked_in=False,
                manager_address=manager,
                created_by=caller.identity,
            )
            self.session.add(employee)
            action = LedgerAction.EMPLOYEE_ADDED

        self.session.flush()

        self._recorder.record(
            action,
            actor=caller.identity,
            identity=identity,
            payload={
                "annual_salary": annual_salary,
                "salary_per_second": rate,
                "manager": manager,
            },
        )
        logger.info(
            action.value,
            extra={
                "identity": identity,
                "annual_salary": annual_salary,
                "salary_per_second": rate,
                "manager": manager,
            },
        )
        return employee

    def update_salary(self, caller: Caller, identity: str, new_annual_salary: int) -> Employee:
        require_owner(caller, self._vault.owner)
        employee = self.require_active(identity, for_update=True)
        rate = _rate_for(new_annual_salary)

        realized = checkpoint_open_session(employee, self._clock.epoch_seconds())
        previous_rate = employee.salary_per_second
        employee.annual_salary = new_annual_salary
        employee.salary_per_second = rate
        employee.updated_by = caller.identity
        self.session.flush()

        self._recorder.record(
            LedgerAction.SALARY_UPDATED,
            actor=caller.identity,
            identity=employee.identity,
            amount=realized,
            payload={
                "annual_salary": new_annual_salary,
                "salary_per_second": rate,
                "previous_salary_per_second": previous_rate,
            },
        )
        logger.info(
            "salary_updated",
            extra={
                "identity": employee.identity,
                "salary_per_second": rate,
                "previous_salary_per_second": previous_rate,
                "realized": realized,
            },
        )
        return employee

    def remove_employee(self, caller: Caller, identity: str) -> Employee:
        require_owner(caller, self._vault.owner)
        employee = self.require_active(identity, for_update=True)
        if employee.is_clocked_in:
            raise StillClockedInError(employee.identity)

        employee.is_active = False
        employee.updated_by = caller.identity
        self.session.flush()

        self._recorder.record(
            LedgerAction.EMPLOYEE_REMOVED,
            actor=caller.identity,
            identity=employee.identity,
        )
        logger.info("employee_removed", extra={"identity": employee.identity})
        return employee

    def change_manager(self, caller: Caller, identity: str, new_manager: str) -> Employee:
        require_owner(caller, self._vault.owner)
        employee = self.get_record(identity, for_update=True)
        new_manager = normalize_identity(new_manager)
        previous = employee.manager_address

        employee.manager_address = new_manager
        employee.updated_by = caller.identity
        self.session.flush()

        self._recorder.record(
            LedgerAction.MANAGER_CHANGED,
            actor=caller.identity,
            identity=employee.identity,
            payload={"manager": new_manager, "previous_manager": previous},
        )
        logger.info(
            "manager_changed",
            extra={
                "identity": employee.identity,
                "manager": new_manager,
                "previous_manager": previous,
            },
        )
        return employee
