"""
Funding token gateway -- the approve/transfer mechanism behind deposits
and payouts.

Responsibility:
    The vault never moves money itself; it asks a ``FundingGateway`` to
    move funding-token units between holders.  ``TokenLedgerGateway`` is
    the database-backed implementation: balances and allowances live in
    ``token_accounts`` / ``token_allowances`` inside the same transaction
    as the ledger, so a failing transfer rolls back the ledger mutation
    that preceded it.

Architecture position:
    Kernel > Services.  Called by VaultAccount.

Failure modes:
    - InsufficientAllowanceError: transfer_from beyond the approved amount.
    - TransferFailedError: sender balance too small, or a non-positive amount.
    - TypeError: an amount that is not an int (floats and bools included).
"""

from abc import ABC, abstractmethod

from sqlalchemy import select
from sqlalchemy.orm import Session

from streampay_kernel.db.types import validate_amount
from streampay_kernel.exceptions import InsufficientAllowanceError, TransferFailedError
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.token import TokenAccount, TokenAllowance
from streampay_kernel.services.base import BaseService

logger = get_logger("services.token_gateway")


class FundingGateway(ABC):
    """
    Fallible external transfer mechanism.

    Implementations raise TransferFailedError or
    InsufficientAllowanceError; they never return a failure flag.
    """

    @abstractmethod
    def balance_of(self, holder: str) -> int:
        ...

    @abstractmethod
    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        """Move ``amount`` from ``sender`` to ``recipient``."""
        ...

    @abstractmethod
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        """Move ``amount`` out of ``owner`` on the strength of ``spender``'s allowance."""
        ...


class TokenLedgerGateway(BaseService, FundingGateway):
    """
    Funding token kept in the ledger database.

    Holders are plain identity strings; a holder with no row has a zero
    balance.  ``mint`` exists for funding employers in tests and demos.
    """

    def __init__(self, session: Session, symbol: str = "PYUSD"):
        super().__init__(session)
        self.symbol = symbol

    def _account(self, holder: str, for_update: bool = False) -> TokenAccount:
        stmt = select(TokenAccount).where(TokenAccount.holder == holder)
        if for_update:
            stmt = stmt.with_for_update()
        account = self.session.execute(stmt).scalar_one_or_none()
        if account is None:
            account = TokenAccount(holder=holder, balance=0)
            self.session.add(account)
            self.session.flush()
        return account

    def _allowance_row(self, owner: str, spender: str) -> TokenAllowance | None:
        return self.session.execute(
            select(TokenAllowance)
            .where(TokenAllowance.owner == owner)
            .where(TokenAllowance.spender == spender)
            .with_for_update()
        ).scalar_one_or_none()

    def mint(self, holder: str, amount: int) -> int:
        """Create ``amount`` new units in ``holder``'s account; returns the new balance."""
        if validate_amount(amount) <= 0:
            raise TransferFailedError("mint", holder, amount, "amount must be positive")
        account = self._account(holder, for_update=True)
        account.balance += amount
        self.session.flush()
        logger.info("token_minted", extra={"holder": holder, "amount": amount})
        return account.balance

    def approve(self, owner: str, spender: str, amount: int) -> None:
        """Set (not add to) the amount ``spender`` may move out of ``owner``."""
        if validate_amount(amount) < 0:
            raise TransferFailedError(owner, spender, amount, "allowance cannot be negative")
        row = self._allowance_row(owner, spender)
        if row is None:
            row = TokenAllowance(owner=owner, spender=spender, amount=amount)
            self.session.add(row)
        else:
            row.amount = amount
        self.session.flush()
        logger.info(
            "token_allowance_set",
            extra={"owner": owner, "spender": spender, "amount": amount},
        )

    def allowance(self, owner: str, spender: str) -> int:
        row = self.session.execute(
            select(TokenAllowance)
            .where(TokenAllowance.owner == owner)
            .where(TokenAllowance.spender == spender)
        ).scalar_one_or_none()
        return row.amount if row else 0

    def balance_of(self, holder: str) -> int:
        account = self.session.execute(
            select(TokenAccount).where(TokenAccount.holder == holder)
        ).scalar_one_or_none()
        return account.balance if account else 0

    def transfer(self, sender: str, recipient: str, amount: int) -> None:
        if validate_amount(amount) <= 0:
            raise TransferFailedError(sender, recipient, amount, "amount must be positive")

        source = self._account(sender, for_update=True)
        if source.balance < amount:
            raise TransferFailedError(
                sender, recipient, amount,
                f"balance {source.balance} is less than {amount}",
            )
        target = self._account(recipient, for_update=True)

        source.balance -= amount
        target.balance += amount
        self.session.flush()

        logger.info(
            "token_transferred",
            extra={"sender": sender, "recipient": recipient, "amount": amount},
        )

    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> None:
        validate_amount(amount)
        row = self._allowance_row(owner, spender)
        allowed = row.amount if row else 0
        if allowed < amount:
            raise InsufficientAllowanceError(owner, spender, allowed, amount)

        self.transfer(owner, recipient, amount)

        row.amount -= amount
        self.session.flush()
