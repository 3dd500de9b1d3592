"""ORM models for the StreamPay ledger."""

from streampay_kernel.models.employee import Employee
from streampay_kernel.models.ledger_event import LedgerAction, LedgerEvent
from streampay_kernel.models.nonce import NonceRecord
from streampay_kernel.models.token import TokenAccount, TokenAllowance
from streampay_kernel.models.vault import Vault

__all__ = [
    "Vault",
    "Employee",
    "NonceRecord",
    "LedgerAction",
    "LedgerEvent",
    "TokenAccount",
    "TokenAllowance",
]
