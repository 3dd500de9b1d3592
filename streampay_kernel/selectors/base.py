"""
Module: streampay_kernel.selectors.base
Responsibility: Abstract base class for all read-only query selectors.
    Selectors form the read side of the ledger: dashboards and scripts get
    structured views of vault state without mutation capability.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and the pure domain/ modules.  MUST NOT import from services/.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit(), or session.flush().
    - DTO return convention: selectors return frozen dataclasses, never
      ORM instances.
    - Session ownership: the caller owns the session and its transaction.
"""

from abc import ABC
from uuid import UUID

from sqlalchemy.orm import Session


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries scoped to one vault, and return DTOs.
    """

    def __init__(self, session: Session, vault_id: UUID):
        """
        Args:
            session: SQLAlchemy session for database operations.
            vault_id: The vault every query is confined to.
        """
        self.session = session
        self.vault_id = vault_id
