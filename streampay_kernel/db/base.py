"""
ORM base classes for the ledger tables.

Every row gets a uuid4 primary key stored as a 36-character string, so the
same schema runs on SQLite (tests, demo) and PostgreSQL.  Python ``int``
columns map to BIGINT: balances, accrued amounts and escrow are counts of
the token's smallest unit and overflow a 32-bit column after a few hours
of streaming.

Vaults and employee records are mutable and inherit TrackedBase, which
records who created the row and which caller touched it last.  Ledger
events and nonce records are append-only and inherit Base directly.

This module imports nothing else from the kernel.
"""

from datetime import datetime
from typing import ClassVar
from uuid import UUID as PyUUID, uuid4

from sqlalchemy import BigInteger, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

IDENTITY_LENGTH = 128


class UUIDString(TypeDecorator):
    """uuid.UUID in Python, VARCHAR(36) in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else PyUUID(value)


class Base(DeclarativeBase):
    type_annotation_map: ClassVar[dict] = {
        int: BigInteger,
        datetime: DateTime(timezone=True),
        PyUUID: UUIDString(),
    }

    id: Mapped[PyUUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Mutable ledger rows.

    ``created_by`` is the identity that deployed the vault or registered
    the employee.  Services set ``updated_by`` to the caller's identity on
    every change; ``updated_at`` follows from the database clock.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )
    created_by: Mapped[str] = mapped_column(String(IDENTITY_LENGTH), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(IDENTITY_LENGTH), nullable=True)


UUID = PyUUID
