"""
Module: streampay_kernel.models.ledger_event
Responsibility: ORM persistence for the tamper-evident ledger event chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Ledger events are append-only; no UPDATE or DELETE (ORM listener).
    - Hash chain integrity per vault: hash = H(vault_id | seq | action |
      payload_hash | prev_hash).  Validated by LedgerEventRecorder.
    - seq is monotonically increasing per vault, allocated by SequenceService.

Audit relevance:
    Every successful mutating ledger operation produces exactly one
    LedgerEvent.  The withdrawal event is the withdrawal record
    (identity, amount, nonce) that clients reconcile against.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streampay_kernel.db.base import Base, UUIDString


class LedgerAction(str, Enum):
    """Kinds of ledger events."""

    # Vault lifecycle
    VAULT_CREATED = "vault_created"
    DEPOSIT = "deposit"
    PAUSED = "paused"
    UNPAUSED = "unpaused"

    # Registry
    EMPLOYEE_ADDED = "employee_added"
    EMPLOYEE_REACTIVATED = "employee_reactivated"
    SALARY_UPDATED = "salary_updated"
    EMPLOYEE_REMOVED = "employee_removed"
    MANAGER_CHANGED = "manager_changed"

    # Accrual
    CLOCKED_IN = "clocked_in"
    CLOCKED_OUT = "clocked_out"

    # Settlement
    NONCES_PRESIGNED = "nonces_presigned"
    WITHDRAWAL = "withdrawal"
    ESCROW_APPROVED = "escrow_approved"


class LedgerEvent(Base):
    """
    One entry in a vault's hash-chained event log.

    Guarantees:
        - (vault_id, seq) is unique.
        - prev_hash is None only for the vault's first event.
    """

    __tablename__ = "ledger_events"

    __table_args__ = (
        UniqueConstraint("vault_id", "seq", name="uq_ledger_event_vault_seq"),
        Index("idx_ledger_event_identity", "vault_id", "identity"),
        Index("idx_ledger_event_action", "vault_id", "action"),
    )

    vault_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vaults.id"),
        nullable=False,
    )

    seq: Mapped[int] = mapped_column(nullable=False)

    action: Mapped[LedgerAction] = mapped_column(
        String(50),
        nullable=False,
    )

    # Employee the event concerns, if any
    identity: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
    )

    # Who performed the action
    actor: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(nullable=False, default=0)

    nonce: Mapped[int] = mapped_column(nullable=False, default=0)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    payload: Mapped[dict | None] = mapped_column(
        JSON,
        nullable=True,
    )

    payload_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    prev_hash: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
    )

    hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<LedgerEvent #{self.seq} {LedgerAction(self.action).value} {self.identity or ''}>"

    @property
    def is_genesis(self) -> bool:
        """True for the first event of a vault's chain."""
        return self.prev_hash is None
