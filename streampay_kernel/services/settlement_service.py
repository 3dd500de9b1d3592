"""
SettlementProcessor -- withdrawals and the 70/30 available/escrow split.

Responsibility:
    Pays an employee out of the vault, up to the withdrawable 70% share
    of lifetime earnings, and credits the 30% escrow counterpart of the
    earnings each settlement realizes.

Architecture position:
    Kernel > Services.  Composes EmployeeRegistry, AccrualEngine,
    NonceRegistry and VaultAccount; the arithmetic lives in
    domain/accrual.py.

Invariants enforced:
    - Validation precedes every mutation, in this order: paused, caller
      active, nonce unused, amount > 0, available > 0, amount <= available,
      vault funds.
    - total_withdrawn only increases and never exceeds the 70% share.
    - Escrow credit is realized once per unit of earnings: each settlement
      checkpoints the open session, then credits
      escrow_share(accrued) - escrow_credited.  Repeated partial
      withdrawals from the same earnings never double-credit escrow, so
      total_withdrawn + escrow_credited <= accrued_balance always holds.
    - At most one withdrawal succeeds per (identity, nonce).

Failure modes:
    - ContractPausedError, EmployeeNotActiveError, NonceUsedError,
      InvalidNonceError, InvalidAmountError, NoBalanceError,
      InsufficientVaultFundsError, TransferFailedError.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from streampay_kernel.db.types import validate_amount
from streampay_kernel.domain import accrual
from streampay_kernel.domain.authority import Caller
from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.domain.dtos import WithdrawalReceipt
from streampay_kernel.exceptions import InvalidAmountError, NoBalanceError
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.employee import Employee
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.services.accrual_service import AccrualEngine, checkpoint_open_session
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.nonce_service import NonceRegistry
from streampay_kernel.services.registry_service import EmployeeRegistry
from streampay_kernel.services.vault_service import VaultAccount

logger = get_logger("services.settlement")


class SettlementProcessor(VaultScopedService):
    """
    Plain and nonce-keyed withdrawals for one vault.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT release escrow; EscrowApprovalService does.
    """

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        registry: EmployeeRegistry,
        accrual_engine: AccrualEngine,
        nonces: NonceRegistry,
        vault: VaultAccount,
        recorder: LedgerEventRecorder,
        clock: Clock | None = None,
    ):
        super().__init__(session, vault_id)
        self._registry = registry
        self._accrual = accrual_engine
        self._nonces = nonces
        self._vault = vault
        self._recorder = recorder
        self._clock = clock or SystemClock()

    def available_for(self, employee: Employee) -> int:
        return accrual.available_balance(
            self._accrual.live_accrued_for(employee), employee.total_withdrawn
        )

    def available_balance(self, identity: str) -> int:
        """Amount ``identity`` may withdraw directly right now (never negative)."""
        return self.available_for(self._registry.get_record(identity))

    def withdraw(self, caller: Caller, amount: int) -> WithdrawalReceipt:
        """Withdraw ``amount`` of the caller's available balance."""
        return self._settle(caller, amount, nonce=None)

    def withdraw_with_nonce(self, caller: Caller, amount: int, nonce: int) -> WithdrawalReceipt:
        """
        Withdraw under a one-time ``nonce``.

        ``nonce`` must be positive; 0 is reserved for plain ``withdraw`` and
        any nonce below 1 raises InvalidNonceError.  A nonce need not be
        pre-signed.  Once any withdrawal under it has
        succeeded, every further attempt fails with NonceUsedError.
        """
        return self._settle(caller, amount, nonce=nonce)

    def _settle(self, caller: Caller, amount: int, nonce: int | None) -> WithdrawalReceipt:
        operation = "withdraw" if nonce is None else "withdraw_with_nonce"

        self._vault.require_not_paused(operation)
        employee = self._registry.require_active(caller.identity, for_update=True)
        if nonce is not None:
            self._nonces.ensure_unused(employee.identity, nonce)

        validate_amount(amount)
        if amount <= 0:
            raise InvalidAmountError(amount)

        now = self._clock.epoch_seconds()
        live = accrual.live_accrued(
            employee.accrued_balance,
            employee.salary_per_second,
            employee.is_clocked_in,
            employee.last_clock_in,
            now,
        )
        available = accrual.available_balance(live, employee.total_withdrawn)
        if available == 0:
            raise NoBalanceError(employee.identity)
        if amount > available:
            raise InvalidAmountError(amount, available)

        self._vault.require_funds(amount)

        # Validation complete; mutations follow
        if nonce is not None:
            self._nonces.consume(employee.identity, nonce)

        checkpoint_open_session(employee, now)
        escrow_due = accrual.escrow_credit_due(
            employee.accrued_balance, employee.escrow_credited
        )
        employee.escrow_balance += escrow_due
        employee.escrow_credited += escrow_due
        employee.total_withdrawn += amount
        employee.updated_by = caller.identity
        self.session.flush()

        vault_balance = self._vault.payout(employee.identity, amount)

        self._recorder.record(
            LedgerAction.WITHDRAWAL,
            actor=caller.identity,
            identity=employee.identity,
            amount=amount,
            nonce=nonce or 0,
            payload={
                "escrow_credited": escrow_due,
                "total_withdrawn": employee.total_withdrawn,
            },
        )

        receipt = WithdrawalReceipt(
            identity=employee.identity,
            amount=amount,
            nonce=nonce or 0,
            escrow_credited=escrow_due,
            total_withdrawn=employee.total_withdrawn,
            remaining_available=accrual.available_balance(
                employee.accrued_balance, employee.total_withdrawn
            ),
            vault_balance=vault_balance,
        )
        logger.info(
            "withdrawal_settled",
            extra={
                "identity": employee.identity,
                "amount": amount,
                "nonce": nonce or 0,
                "escrow_credited": escrow_due,
                "vault_balance": vault_balance,
            },
        )
        return receipt
