"""
Kernel services -- the imperative shell around the pure accrual arithmetic.

Every service receives a SQLAlchemy ``Session`` and flushes within the
caller's transaction.  ``StreamingVault`` composes them and wraps each
ledger operation in its own unit of work.
"""

from streampay_kernel.services.accrual_service import AccrualEngine
from streampay_kernel.services.escrow_service import EscrowApprovalService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.nonce_service import NonceRegistry
from streampay_kernel.services.registry_service import EmployeeRegistry
from streampay_kernel.services.sequence_service import SequenceService
from streampay_kernel.services.settlement_service import SettlementProcessor
from streampay_kernel.services.streaming_vault import LedgerContext, StreamingVault
from streampay_kernel.services.token_gateway import FundingGateway, TokenLedgerGateway
from streampay_kernel.services.vault_service import VaultAccount

__all__ = [
    "AccrualEngine",
    "EmployeeRegistry",
    "EscrowApprovalService",
    "FundingGateway",
    "LedgerContext",
    "LedgerEventRecorder",
    "NonceRegistry",
    "SequenceService",
    "SettlementProcessor",
    "StreamingVault",
    "TokenLedgerGateway",
    "VaultAccount",
]
