"""
AccrualEngine -- the ClockedOut/ClockedIn state machine per employee.

Responsibility:
    Realizes wages from clock sessions.  clock_in() opens a session,
    clock_out() folds its earnings into ``accrued_balance``, and
    live_accrued() reads finalized plus open-session earnings without
    writing anything.

Architecture position:
    Kernel > Services -- thin shell over domain/accrual.py.  Real time
    enters only through the injected Clock.

Invariants enforced:
    - State machine {ClockedOut} --clock_in--> {ClockedIn} --clock_out-->
      {ClockedOut}; initial state ClockedOut.
    - Open-session earnings are persisted only by clock_out() or by a
      checkpoint (settlement, salary change), never mid-session otherwise.
    - Integer arithmetic only.

Failure modes:
    - EmployeeNotActiveError: clock_in for an unknown or removed identity.
    - AlreadyClockedInError / NotClockedInError: illegal transitions.
    - ContractPausedError: clock_in/clock_out while the vault is paused.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.orm import Session

from streampay_kernel.domain import accrual
from streampay_kernel.domain.authority import Caller
from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.exceptions import AlreadyClockedInError, NotClockedInError
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.employee import Employee
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.vault_service import VaultAccount

if TYPE_CHECKING:
    from streampay_kernel.services.registry_service import EmployeeRegistry

logger = get_logger("services.accrual")


def checkpoint_open_session(employee: Employee, now: int) -> int:
    """
    Fold the open session's earnings into ``accrued_balance``.

    The session stays open and restarts at ``now``, so the same seconds
    are never counted twice.  No-op for a clocked-out employee.

    Returns:
        The amount realized.
    """
    if not employee.is_clocked_in:
        return 0
    earned = accrual.session_earnings(
        employee.salary_per_second, employee.last_clock_in, now
    )
    employee.accrued_balance += earned
    employee.last_clock_in = max(employee.last_clock_in, now)
    return earned


class AccrualEngine(VaultScopedService):
    """
    Clock sessions and live accrual for one vault.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT split earnings; settlement owns the 70/30 rule.
    """

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        registry: "EmployeeRegistry",
        vault: VaultAccount,
        recorder: LedgerEventRecorder,
        clock: Clock | None = None,
    ):
        super().__init__(session, vault_id)
        self._registry = registry
        self._vault = vault
        self._recorder = recorder
        self._clock = clock or SystemClock()

    def clock_in(self, caller: Caller) -> int:
        """
        Open a session for the caller.

        Returns:
            The session start (epoch seconds).
        """
        self._vault.require_not_paused("clock_in")
        employee = self._registry.require_active(caller.identity, for_update=True)
        if employee.is_clocked_in:
            raise AlreadyClockedInError(employee.identity, employee.last_clock_in)

        now = self._clock.epoch_seconds()
        employee.last_clock_in = now
        employee.is_clocked_in = True
        employee.updated_by = caller.identity
        self.session.flush()

        self._recorder.record(
            LedgerAction.CLOCKED_IN,
            actor=caller.identity,
            identity=employee.identity,
            payload={"at": now},
        )
        logger.info(
            "employee_clocked_in",
            extra={"identity": employee.identity, "at": now},
        )
        return now

    def clock_out(self, caller: Caller) -> int:
        """
        Close the caller's open session.

        Returns:
            The earnings realized by this call.
        """
        self._vault.require_not_paused("clock_out")
        employee = self._registry.find(caller.identity, for_update=True)
        if employee is None or not employee.is_clocked_in:
            # Removed employees keep their record; unknown callers have none
            raise NotClockedInError(caller.identity)

        now = self._clock.epoch_seconds()
        earned = checkpoint_open_session(employee, now)
        employee.last_clock_out = now
        employee.is_clocked_in = False
        employee.updated_by = caller.identity
        self.session.flush()

        self._recorder.record(
            LedgerAction.CLOCKED_OUT,
            actor=caller.identity,
            identity=employee.identity,
            amount=earned,
            payload={"at": now, "accrued_balance": employee.accrued_balance},
        )
        logger.info(
            "employee_clocked_out",
            extra={
                "identity": employee.identity,
                "earned": earned,
                "accrued_balance": employee.accrued_balance,
            },
        )
        return earned

    def live_accrued_for(self, employee: Employee) -> int:
        return accrual.live_accrued(
            employee.accrued_balance,
            employee.salary_per_second,
            employee.is_clocked_in,
            employee.last_clock_in,
            self._clock.epoch_seconds(),
        )

    def live_accrued(self, identity: str) -> int:
        """Finalized plus open-session earnings at the current instant."""
        return self.live_accrued_for(self._registry.get_record(identity))

    def checkpoint(self, employee: Employee) -> int:
        """Realize ``employee``'s open session at the current instant."""
        return checkpoint_open_session(employee, self._clock.epoch_seconds())
