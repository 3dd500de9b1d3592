"""
EscrowApprovalService -- manager release of held escrow.

Responsibility:
    Pays an employee's whole escrow balance out of the vault when their
    manager (or the vault owner) approves it.

Architecture position:
    Kernel > Services.  batch_approve_escrow() is the one operation that
    opens its own per-identity units of work.

Invariants enforced:
    - Release is all-or-nothing: escrow_balance goes to zero and the
      employee receives exactly the prior balance, or nothing changes.
    - Approval also works for removed employees (earned escrow is still
      owed) and while the vault is paused (manager action, not an
      employee-facing one).
    - A batch is not atomic: each identity succeeds or fails on its own,
      and a failure never undoes an earlier release in the same batch.

Failure modes:
    - UnauthorizedError: caller is neither the manager nor the owner.
    - NoEscrowBalanceError: nothing held, including for an identity the
      vault has never registered.
    - InsufficientVaultFundsError, TransferFailedError.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from streampay_kernel.db.engine import transaction_boundary
from streampay_kernel.domain.authority import Caller, normalize_identity, require_escrow_approver
from streampay_kernel.domain.dtos import BatchApprovalOutcome, EscrowRelease
from streampay_kernel.exceptions import NoEscrowBalanceError, StreamPayError
from streampay_kernel.logging_config import LogContext, get_logger
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.registry_service import EmployeeRegistry
from streampay_kernel.services.vault_service import VaultAccount

logger = get_logger("services.escrow")


class EscrowApprovalService(VaultScopedService):
    """Escrow releases for one vault."""

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        registry: EmployeeRegistry,
        vault: VaultAccount,
        recorder: LedgerEventRecorder,
    ):
        super().__init__(session, vault_id)
        self._registry = registry
        self._vault = vault
        self._recorder = recorder

    def approve_escrow(self, caller: Caller, identity: str) -> EscrowRelease:
        employee = self._registry.find(identity, for_update=True)
        if employee is None:
            # Nothing is held for an identity the vault never registered
            raise NoEscrowBalanceError(normalize_identity(identity))
        require_escrow_approver(caller, self._vault.owner, employee.manager_address)

        amount = employee.escrow_balance
        if amount == 0:
            raise NoEscrowBalanceError(employee.identity)

        employee.escrow_balance = 0
        employee.escrow_released += amount
        employee.updated_by = caller.identity
        self.session.flush()

        self._vault.payout(employee.identity, amount)

        self._recorder.record(
            LedgerAction.ESCROW_APPROVED,
            actor=caller.identity,
            identity=employee.identity,
            amount=amount,
            payload={"escrow_released": employee.escrow_released},
        )
        logger.info(
            "escrow_approved",
            extra={
                "identity": employee.identity,
                "amount": amount,
                "approved_by": caller.identity,
            },
        )
        return EscrowRelease(
            identity=employee.identity,
            amount=amount,
            approved_by=caller.identity,
        )

    def batch_approve_escrow(
        self,
        caller: Caller,
        identities: Iterable[str],
    ) -> list[BatchApprovalOutcome]:
        """
        Approve each identity independently.

        Never raises for a single identity's failure; its error code is
        reported in that identity's outcome instead.
        """
        outcomes: list[BatchApprovalOutcome] = []
        for identity in identities:
            try:
                with LogContext.bind(identity=normalize_identity(identity)):
                    with transaction_boundary(self.session, "approve_escrow"):
                        release = self.approve_escrow(caller, identity)
            except StreamPayError as exc:
                outcomes.append(
                    BatchApprovalOutcome(
                        identity=normalize_identity(identity),
                        released=0,
                        error_code=exc.code,
                    )
                )
            else:
                outcomes.append(
                    BatchApprovalOutcome(identity=release.identity, released=release.amount)
                )

        logger.info(
            "escrow_batch_approved",
            extra={
                "approved_by": caller.identity,
                "succeeded": sum(1 for o in outcomes if o.succeeded),
                "failed": sum(1 for o in outcomes if not o.succeeded),
            },
        )
        return outcomes
