"""Database layer - engine, base classes, types, and immutability guards."""

from streampay_kernel.db.base import UUID, Base, TrackedBase, UUIDString
from streampay_kernel.db.engine import (
    create_tables,
    init_engine_from_url,
    session_scope,
    transaction_boundary,
)
from streampay_kernel.db.types import validate_amount

__all__ = [
    "init_engine_from_url",
    "session_scope",
    "transaction_boundary",
    "create_tables",
    "Base",
    "TrackedBase",
    "UUIDString",
    "UUID",
    "validate_amount",
]
