"""
Authority -- explicit capability checks for ledger operations.

Responsibility:
    Every ledger operation receives a ``Caller`` describing who is acting.
    The checks below decide whether that caller holds the capability the
    operation needs.  There is no ambient "current user".

Architecture position:
    Kernel > Domain -- pure functions over identities.

Capabilities:
    - owner:           administrative rights over one vault (registry
                       changes, pause/unpause).
    - self:            employee-facing operations (clock in/out, withdraw,
                       pre-sign nonces) act on ``caller.identity`` itself,
                       so they need no separate check.
    - escrow approver: the employee's assigned manager, or the vault owner.
"""

from dataclasses import dataclass

from streampay_kernel.exceptions import UnauthorizedError


def normalize_identity(identity: str) -> str:
    """Canonical form of an identity: trimmed and lower-cased."""
    if not isinstance(identity, str) or not identity.strip():
        raise ValueError(f"Identity must be a non-empty string, got {identity!r}")
    return identity.strip().lower()


@dataclass(frozen=True)
class Caller:
    """The identity on whose authority an operation runs."""

    identity: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "identity", normalize_identity(self.identity))


def require_owner(caller: Caller, owner: str) -> None:
    """Raise UnauthorizedError unless the caller is the vault owner."""
    if caller.identity != owner:
        raise UnauthorizedError(caller.identity, "vault owner")


def require_escrow_approver(caller: Caller, owner: str, manager: str) -> None:
    """Raise UnauthorizedError unless the caller is the manager or the owner."""
    if caller.identity not in (manager, owner):
        raise UnauthorizedError(caller.identity, "employee manager or vault owner")
