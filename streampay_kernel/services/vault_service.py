"""
VaultAccount -- the pooled funding balance every payout is drawn from.

Responsibility:
    Deploys vaults, accepts deposits, drives the pause switch, and is the
    only writer of ``Vault.funded_balance``.  Money moves through the
    injected FundingGateway; the ledger balance moves in the same unit
    of work, so the two cannot diverge on a failed transfer.

Architecture position:
    Kernel > Services.  Called by StreamingVault, SettlementProcessor and
    EscrowApprovalService.

Invariants enforced:
    - funded_balance only increases through deposit() and only decreases
      through payout(); payout never drives it negative.
    - pause()/unpause() are owner-only.

Failure modes:
    - VaultNotFoundError: unknown vault id.
    - InvalidAmountError: deposit of a non-positive amount.
    - InsufficientAllowanceError / TransferFailedError: from the gateway.
    - InsufficientVaultFundsError: payout larger than funded_balance.
    - ContractPausedError: require_not_paused() on a paused vault.
"""

from uuid import UUID, uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from streampay_kernel.db.types import validate_amount
from streampay_kernel.domain.authority import Caller, normalize_identity, require_owner
from streampay_kernel.domain.dtos import VaultInfo
from streampay_kernel.exceptions import (
    ContractPausedError,
    InsufficientVaultFundsError,
    InvalidAmountError,
    VaultNotFoundError,
)
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.models.vault import Vault
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.token_gateway import FundingGateway

logger = get_logger("services.vault")


def token_holder_for(vault_id: UUID) -> str:
    """The vault's own account identity in the funding token."""
    return f"vault:{vault_id}"


class VaultAccount(VaultScopedService):
    """
    Funding account of one vault.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT decide who may be paid; settlement and escrow do.
    """

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        gateway: FundingGateway,
        recorder: LedgerEventRecorder,
    ):
        super().__init__(session, vault_id)
        self._gateway = gateway
        self._recorder = recorder

    @staticmethod
    def deploy(session: Session, owner: str) -> Vault:
        """
        Create a new, unpaused, unfunded vault owned by ``owner``.

        The caller records the VAULT_CREATED event once a recorder for the
        new vault id exists.
        """
        owner = normalize_identity(owner)
        vault_id = uuid4()
        vault = Vault(
            id=vault_id,
            owner=owner,
            token_holder=token_holder_for(vault_id),
            paused=False,
            funded_balance=0,
            total_deposited=0,
            created_by=owner,
        )
        session.add(vault)
        session.flush()

        logger.info("vault_deployed", extra={"vault_id": str(vault_id), "owner": owner})
        return vault

    def get(self, for_update: bool = False) -> Vault:
        stmt = select(Vault).where(Vault.id == self.vault_id)
        if for_update:
            stmt = stmt.with_for_update()
        vault = self.session.execute(stmt).scalar_one_or_none()
        if vault is None:
            raise VaultNotFoundError(str(self.vault_id))
        return vault

    def info(self) -> VaultInfo:
        vault = self.get()
        return VaultInfo(
            id=vault.id,
            owner=vault.owner,
            token_holder=vault.token_holder,
            paused=vault.paused,
            funded_balance=vault.funded_balance,
            total_deposited=vault.total_deposited,
        )

    @property
    def owner(self) -> str:
        return self.get().owner

    def require_not_paused(self, operation: str) -> None:
        """Raise ContractPausedError if the vault is paused."""
        if self.get().paused:
            raise ContractPausedError(str(self.vault_id), operation)

    def get_contract_balance(self) -> int:
        return self.get().funded_balance

    def deposit(self, caller: Caller, amount: int) -> int:
        """
        Pull ``amount`` from the caller's token account into the vault.

        The caller must have approved the vault's token holder for at
        least ``amount`` beforehand.  Anyone may deposit, also while the
        vault is paused.

        Returns:
            The vault's funded balance after the deposit.
        """
        validate_amount(amount)
        if amount <= 0:
            raise InvalidAmountError(amount)

        vault = self.get(for_update=True)
        self._gateway.transfer_from(
            spender=vault.token_holder,
            owner=caller.identity,
            recipient=vault.token_holder,
            amount=amount,
        )

        vault.funded_balance += amount
        vault.total_deposited += amount
        vault.updated_by = caller.identity
        self.session.flush()

        self._recorder.record(
            LedgerAction.DEPOSIT,
            actor=caller.identity,
            amount=amount,
            payload={"funded_balance": vault.funded_balance},
        )
        logger.info(
            "vault_deposit",
            extra={
                "depositor": caller.identity,
                "amount": amount,
                "funded_balance": vault.funded_balance,
            },
        )
        return vault.funded_balance

    def pause(self, caller: Caller) -> None:
        self._set_paused(caller, True)

    def unpause(self, caller: Caller) -> None:
        self._set_paused(caller, False)

    def _set_paused(self, caller: Caller, paused: bool) -> None:
        vault = self.get(for_update=True)
        require_owner(caller, vault.owner)

        vault.paused = paused
        vault.updated_by = caller.identity
        self.session.flush()

        action = LedgerAction.PAUSED if paused else LedgerAction.UNPAUSED
        self._recorder.record(action, actor=caller.identity)
        logger.info(f"vault_{action.value}", extra={"actor": caller.identity})

    def require_funds(self, amount: int) -> None:
        """Raise InsufficientVaultFundsError unless the vault can pay ``amount``."""
        vault = self.get()
        if vault.funded_balance < amount:
            raise InsufficientVaultFundsError(
                str(self.vault_id), vault.funded_balance, amount
            )

    def payout(self, recipient: str, amount: int) -> int:
        """
        Send ``amount`` from the vault to ``recipient``.

        Returns:
            The vault's funded balance after the payout.
        """
        vault = self.get(for_update=True)
        if vault.funded_balance < amount:
            raise InsufficientVaultFundsError(
                str(self.vault_id), vault.funded_balance, amount
            )

        vault.funded_balance -= amount
        self.session.flush()
        self._gateway.transfer(vault.token_holder, recipient, amount)

        logger.debug(
            "vault_payout",
            extra={
                "recipient": recipient,
                "amount": amount,
                "funded_balance": vault.funded_balance,
            },
        )
        return vault.funded_balance
