"""
StreamPay Kernel - continuous wage streaming ledger

A per-second wage accrual and settlement ledger with:
- Exact integer accrual from clock-in/clock-out sessions
- Two-tier settlement (70% withdrawable, 30% manager-approved escrow)
- Replay-protected nonce-keyed withdrawals
- Pooled vault funding with a pause switch
- Tamper-evident, hash-chained ledger event log
"""

__version__ = "0.1.0"
