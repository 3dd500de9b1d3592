"""
Module: streampay_kernel.models.token
Responsibility: ORM persistence for the funding token the vault settles in:
    holder balances and spender allowances (approve/transfer semantics).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - balance >= 0 and allowance >= 0 (CHECK constraints).
    - One balance row per holder, one allowance row per (owner, spender).
"""

from sqlalchemy import CheckConstraint, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streampay_kernel.db.base import Base


class TokenAccount(Base):
    """Balance of one holder in the funding token."""

    __tablename__ = "token_accounts"

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_token_balance_non_negative"),
    )

    holder: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
    )

    balance: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TokenAccount {self.holder}: {self.balance}>"


class TokenAllowance(Base):
    """Amount ``spender`` may move out of ``owner``'s balance."""

    __tablename__ = "token_allowances"

    __table_args__ = (
        UniqueConstraint("owner", "spender", name="uq_token_allowance_owner_spender"),
        CheckConstraint("amount >= 0", name="ck_token_allowance_non_negative"),
    )

    owner: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    spender: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(nullable=False, default=0)

    def __repr__(self) -> str:
        return f"<TokenAllowance {self.owner}->{self.spender}: {self.amount}>"
