"""Selectors for the StreamPay ledger kernel (read side)."""

from streampay_kernel.selectors.ledger_selector import LedgerEventView, LedgerSelector

__all__ = [
    "LedgerEventView",
    "LedgerSelector",
]
