"""
Module: streampay_kernel.models.nonce
Responsibility: ORM persistence for one-time withdrawal tickets.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One record per (vault_id, identity, nonce) (uq_nonce_vault_identity_nonce).
      A duplicate insert from a racing submission fails at the database.
    - used moves False -> True exactly once and never back (ORM listener in
      db/immutability.py).
    - presigned_hash never changes; records are never deleted.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streampay_kernel.db.base import Base, UUIDString


class NonceRecord(Base):
    """
    Permanent replay record for a nonce-keyed withdrawal.

    Created by pre-signing (used=False) or by the first withdrawal that
    names an unknown nonce (used=True).
    """

    __tablename__ = "nonce_records"

    __table_args__ = (
        UniqueConstraint(
            "vault_id", "identity", "nonce", name="uq_nonce_vault_identity_nonce"
        ),
    )

    vault_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vaults.id"),
        nullable=False,
    )

    identity: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    nonce: Mapped[int] = mapped_column(nullable=False)

    used: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    # Recorded at pre-sign time; not re-derived by the ledger
    presigned_hash: Mapped[str | None] = mapped_column(
        String(132),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        state = "used" if self.used else "unused"
        return f"<NonceRecord {self.identity}#{self.nonce} {state}>"
