"""
Module: streampay_kernel.models.vault
Responsibility: ORM persistence for the pooled funding account an employer
    deposits into and every payout is drawn from.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - funded_balance >= 0 (CHECK constraint; VaultAccount validates first).
    - funded_balance only increases through a deposit and only decreases
      through a payout (VaultAccount is the sole writer).
    - total_deposited only increases.

Failure modes:
    - IntegrityError if a payout would drive funded_balance negative
      (unreachable through VaultAccount, which raises first).
"""

from sqlalchemy import Boolean, CheckConstraint, String
from sqlalchemy.orm import Mapped, mapped_column

from streampay_kernel.db.base import TrackedBase


class Vault(TrackedBase):
    """
    Vault account -- one row per deployed ledger.

    Contract:
        Created once, mutated for the ledger's lifetime, never deleted.
        ``owner`` holds full administrative rights.  ``token_holder`` is
        the vault's own account in the funding token.
    """

    __tablename__ = "vaults"

    __table_args__ = (
        CheckConstraint("funded_balance >= 0", name="ck_vault_funded_non_negative"),
        CheckConstraint("total_deposited >= 0", name="ck_vault_deposited_non_negative"),
    )

    owner: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    token_holder: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        unique=True,
    )

    paused: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    funded_balance: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    total_deposited: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        state = "paused" if self.paused else "live"
        return f"<Vault {self.id} owner={self.owner} {state} funded={self.funded_balance}>"
