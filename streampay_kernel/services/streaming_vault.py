"""
StreamingVault -- the ledger's operation surface.

Responsibility:
    Composes the kernel services over one explicit ``LedgerContext`` and
    exposes every ledger operation.  Each mutating operation runs inside
    its own ``transaction_boundary``: validation and mutation either both
    take effect or, on any exception, neither does.

Architecture position:
    Kernel > Services -- outermost kernel layer.  Dashboards, scripts and
    tests call this class; nothing in the kernel calls it.

Invariants enforced:
    - No hidden globals: session, vault id, clock and funding gateway all
      come from the context, so any number of ledgers can coexist.
    - Authorization is explicit: every mutating operation takes a Caller.

Usage:
    with session_scope() as session:
        vault = StreamingVault.deploy(session, owner="0xEmployer")
        vault.deposit(Caller("0xEmployer"), 500_000 * 10**6)
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import UUID

from sqlalchemy.orm import Session

from streampay_kernel.db.engine import transaction_boundary
from streampay_kernel.domain.authority import Caller, normalize_identity
from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.domain.dtos import (
    BatchApprovalOutcome,
    EmployeeDetails,
    EscrowRelease,
    VaultInfo,
    WithdrawalReceipt,
    WithdrawalRecord,
)
from streampay_kernel.logging_config import LogContext
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.selectors.ledger_selector import LedgerEventView, LedgerSelector
from streampay_kernel.services.accrual_service import AccrualEngine
from streampay_kernel.services.escrow_service import EscrowApprovalService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.nonce_service import DEFAULT_MAX_NONCE_BATCH, NonceRegistry
from streampay_kernel.services.registry_service import EmployeeRegistry
from streampay_kernel.services.settlement_service import SettlementProcessor
from streampay_kernel.services.token_gateway import FundingGateway, TokenLedgerGateway
from streampay_kernel.services.vault_service import VaultAccount


@dataclass(frozen=True)
class LedgerContext:
    """Everything one ledger instance runs against."""

    session: Session
    vault_id: UUID
    clock: Clock = field(default_factory=SystemClock)
    gateway: FundingGateway | None = None
    max_nonce_batch: int = DEFAULT_MAX_NONCE_BATCH


class StreamingVault:
    """
    Wage-streaming ledger for one vault.

    Contract:
        Mutating methods flush inside a SAVEPOINT and leave the outer
        commit to the caller.  Read methods never write.
    """

    def __init__(self, context: LedgerContext):
        self.context = context
        session = context.session
        vault_id = context.vault_id
        clock = context.clock
        self.gateway = context.gateway or TokenLedgerGateway(session)

        self._recorder = LedgerEventRecorder(session, vault_id, clock)
        self._vault = VaultAccount(session, vault_id, self.gateway, self._recorder)
        self._registry = EmployeeRegistry(
            session, vault_id, self._vault, self._recorder, clock
        )
        self._accrual = AccrualEngine(
            session, vault_id, self._registry, self._vault, self._recorder, clock
        )
        self._nonces = NonceRegistry(
            session,
            vault_id,
            self._registry,
            self._vault,
            self._recorder,
            clock,
            max_batch=context.max_nonce_batch,
        )
        self._settlement = SettlementProcessor(
            session,
            vault_id,
            self._registry,
            self._accrual,
            self._nonces,
            self._vault,
            self._recorder,
            clock,
        )
        self._escrow = EscrowApprovalService(
            session, vault_id, self._registry, self._vault, self._recorder
        )
        self._selector = LedgerSelector(session, vault_id, clock)

    @classmethod
    def deploy(
        cls,
        session: Session,
        owner: str,
        clock: Clock | None = None,
        gateway: FundingGateway | None = None,
        max_nonce_batch: int = DEFAULT_MAX_NONCE_BATCH,
    ) -> "StreamingVault":
        """Create a new vault owned by ``owner`` and return its ledger."""
        clock = clock or SystemClock()
        with transaction_boundary(session, "deploy"):
            vault = VaultAccount.deploy(session, owner)
            LedgerEventRecorder(session, vault.id, clock).record(
                LedgerAction.VAULT_CREATED,
                actor=vault.owner,
                payload={"token_holder": vault.token_holder},
            )
        return cls(
            LedgerContext(
                session=session,
                vault_id=vault.id,
                clock=clock,
                gateway=gateway,
                max_nonce_batch=max_nonce_batch,
            )
        )

    @property
    def vault_id(self) -> UUID:
        return self.context.vault_id

    @contextmanager
    def _operation(
        self,
        name: str,
        caller: Caller,
        identity: str | None = None,
        nonce: int | None = None,
    ) -> Iterator[None]:
        with LogContext.operation(
            name,
            vault_id=self.vault_id,
            actor=caller.identity,
            identity=normalize_identity(identity) if identity is not None else None,
            nonce=nonce,
        ):
            with transaction_boundary(self.context.session, name):
                yield

    # -- vault --------------------------------------------------------------

    def deposit(self, caller: Caller, amount: int) -> int:
        with self._operation("deposit", caller):
            return self._vault.deposit(caller, amount)

    def pause(self, caller: Caller) -> None:
        with self._operation("pause", caller):
            self._vault.pause(caller)

    def unpause(self, caller: Caller) -> None:
        with self._operation("unpause", caller):
            self._vault.unpause(caller)

    def get_contract_balance(self) -> int:
        return self._vault.get_contract_balance()

    def vault_info(self) -> VaultInfo:
        return self._vault.info()

    # -- registry -----------------------------------------------------------

    def add_employee(
        self, caller: Caller, identity: str, annual_salary: int, manager: str
    ) -> EmployeeDetails:
        with self._operation("add_employee", caller, identity=identity):
            employee = self._registry.add_employee(caller, identity, annual_salary, manager)
        return self._selector.employee_details(employee.identity)

    def update_salary(
        self, caller: Caller, identity: str, new_annual_salary: int
    ) -> EmployeeDetails:
        with self._operation("update_salary", caller, identity=identity):
            employee = self._registry.update_salary(caller, identity, new_annual_salary)
        return self._selector.employee_details(employee.identity)

    def remove_employee(self, caller: Caller, identity: str) -> None:
        with self._operation("remove_employee", caller, identity=identity):
            self._registry.remove_employee(caller, identity)

    def change_manager(self, caller: Caller, identity: str, new_manager: str) -> None:
        with self._operation("change_manager", caller, identity=identity):
            self._registry.change_manager(caller, identity, new_manager)

    # -- accrual ------------------------------------------------------------

    def clock_in(self, caller: Caller) -> int:
        with self._operation("clock_in", caller, identity=caller.identity):
            return self._accrual.clock_in(caller)

    def clock_out(self, caller: Caller) -> int:
        with self._operation("clock_out", caller, identity=caller.identity):
            return self._accrual.clock_out(caller)

    def live_accrued(self, identity: str) -> int:
        return self._accrual.live_accrued(identity)

    def get_total_accrued_balance(self, identity: str) -> int:
        return self._accrual.live_accrued(identity)

    # -- settlement ---------------------------------------------------------

    def get_available_balance(self, identity: str) -> int:
        return self._settlement.available_balance(identity)

    def withdraw(self, caller: Caller, amount: int) -> WithdrawalReceipt:
        with self._operation("withdraw", caller, identity=caller.identity):
            return self._settlement.withdraw(caller, amount)

    def withdraw_with_nonce(self, caller: Caller, amount: int, nonce: int) -> WithdrawalReceipt:
        """Nonce must be > 0; 0 is reserved for plain withdrawals (InvalidNonceError)."""
        with self._operation(
            "withdraw_with_nonce", caller, identity=caller.identity, nonce=nonce
        ):
            return self._settlement.withdraw_with_nonce(caller, amount, nonce)

    # -- nonces -------------------------------------------------------------

    def pre_sign_nonces(
        self, caller: Caller, nonces: Sequence[int], hashes: Sequence[str]
    ) -> int:
        with self._operation("pre_sign_nonces", caller, identity=caller.identity):
            return self._nonces.pre_sign_nonces(caller, nonces, hashes)

    def is_nonce_used(self, identity: str, nonce: int) -> bool:
        return self._nonces.is_nonce_used(identity, nonce)

    def get_presigned_hash(self, identity: str, nonce: int) -> str | None:
        return self._nonces.get_presigned_hash(identity, nonce)

    # -- escrow -------------------------------------------------------------

    def approve_escrow(self, caller: Caller, identity: str) -> EscrowRelease:
        with self._operation("approve_escrow", caller, identity=identity):
            return self._escrow.approve_escrow(caller, identity)

    def batch_approve_escrow(
        self, caller: Caller, identities: Sequence[str]
    ) -> list[BatchApprovalOutcome]:
        with LogContext.operation(
            "batch_approve_escrow", vault_id=self.vault_id, actor=caller.identity
        ):
            return self._escrow.batch_approve_escrow(caller, identities)

    # -- reads --------------------------------------------------------------

    def get_employee_details(self, identity: str) -> EmployeeDetails:
        return self._selector.employee_details(identity)

    def get_all_employees(self, active_only: bool = False) -> list[str]:
        return self._registry.list_identities(active_only=active_only)

    def get_all_employee_details(self, active_only: bool = False) -> list[EmployeeDetails]:
        return self._selector.all_employees(active_only=active_only)

    def get_employees_managed_by(self, manager: str) -> list[EmployeeDetails]:
        return self._selector.employees_managed_by(manager)

    def withdrawal_history(self, identity: str) -> list[WithdrawalRecord]:
        return self._selector.withdrawal_history(identity)

    def get_employee_events(self, identity: str) -> list[LedgerEventView]:
        return self._selector.events_for(identity)

    def validate_event_chain(self) -> bool:
        return self._recorder.validate_chain()

