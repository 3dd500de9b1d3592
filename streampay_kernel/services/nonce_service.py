"""
NonceRegistry -- one-time withdrawal tickets.

Responsibility:
    Records pre-signed nonces for an employee and marks a nonce used as
    part of a successful nonce-keyed withdrawal.  Whichever submission
    consumes a nonce first wins; every later one fails with NonceUsed.

Architecture position:
    Kernel > Services.  consume() is called only by SettlementProcessor;
    there is no standalone "consume nonce" ledger operation.

Invariants enforced:
    - (vault, identity, nonce) is unique at the database.
    - used moves False -> True once.  Consumption of a pre-signed record
      is a compare-and-set ``UPDATE ... WHERE used = false`` whose row
      count must be 1; consumption of an unknown nonce is an INSERT that
      a racing duplicate turns into an IntegrityError.  Both losers see
      NonceUsedError.
    - Nonce 0 is reserved for plain withdrawals and cannot be pre-signed
      or consumed.

Failure modes:
    - NonceUsedError, InvalidNonceError, NonceBatchMismatchError,
      NonceBatchTooLargeError.
    - EmployeeNotActiveError / ContractPausedError for pre_sign_nonces.
"""

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from streampay_kernel.domain.authority import Caller, normalize_identity
from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.exceptions import (
    InvalidNonceError,
    NonceBatchMismatchError,
    NonceBatchTooLargeError,
    NonceUsedError,
)
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.ledger_event import LedgerAction
from streampay_kernel.models.nonce import NonceRecord
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.event_recorder import LedgerEventRecorder
from streampay_kernel.services.registry_service import EmployeeRegistry
from streampay_kernel.services.vault_service import VaultAccount

logger = get_logger("services.nonce")

DEFAULT_MAX_NONCE_BATCH = 256


def _validate_nonce(nonce: int) -> int:
    if isinstance(nonce, bool) or not isinstance(nonce, int) or nonce <= 0:
        raise InvalidNonceError(nonce)
    return nonce


class NonceRegistry(VaultScopedService):
    """
    Nonce records of one vault.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT verify a withdrawal against its pre-signed hash; the
          hash is recorded for clients and exposed via get_presigned_hash.
    """

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        registry: EmployeeRegistry,
        vault: VaultAccount,
        recorder: LedgerEventRecorder,
        clock: Clock | None = None,
        max_batch: int = DEFAULT_MAX_NONCE_BATCH,
    ):
        super().__init__(session, vault_id)
        self._registry = registry
        self._vault = vault
        self._recorder = recorder
        self._clock = clock or SystemClock()
        self._max_batch = max_batch

    def _find(self, identity: str, nonce: int) -> NonceRecord | None:
        return self.session.execute(
            select(NonceRecord)
            .where(NonceRecord.vault_id == self.vault_id)
            .where(NonceRecord.identity == normalize_identity(identity))
            .where(NonceRecord.nonce == nonce)
        ).scalar_one_or_none()

    def pre_sign_nonces(
        self,
        caller: Caller,
        nonces: Sequence[int],
        hashes: Sequence[str],
    ) -> int:
        """
        Record ``(nonce, hash)`` pairs for the caller.

        Pairs whose nonce is already recorded (pre-signed or used) are
        skipped; the stored hash never changes.

        Returns:
            Number of newly recorded nonces.
        """
        if len(nonces) != len(hashes):
            raise NonceBatchMismatchError(len(nonces), len(hashes))
        if len(nonces) > self._max_batch:
            raise NonceBatchTooLargeError(len(nonces), self._max_batch)
        for nonce in nonces:
            _validate_nonce(nonce)

        self._vault.require_not_paused("pre_sign_nonces")
        employee = self._registry.require_active(caller.identity)

        now = self._clock.now_utc()
        recorded: list[int] = []
        seen: set[int] = set()
        for nonce, presigned_hash in zip(nonces, hashes):
            if nonce in seen or self._find(employee.identity, nonce) is not None:
                continue
            seen.add(nonce)
            self.session.add(
                NonceRecord(
                    vault_id=self.vault_id,
                    identity=employee.identity,
                    nonce=nonce,
                    used=False,
                    presigned_hash=presigned_hash,
                    created_at=now,
                )
            )
            recorded.append(nonce)
        self.session.flush()

        self._recorder.record(
            LedgerAction.NONCES_PRESIGNED,
            actor=caller.identity,
            identity=employee.identity,
            payload={"nonces": recorded, "skipped": len(nonces) - len(recorded)},
        )
        logger.info(
            "nonces_presigned",
            extra={
                "identity": employee.identity,
                "recorded": len(recorded),
                "skipped": len(nonces) - len(recorded),
            },
        )
        return len(recorded)

    def is_nonce_used(self, identity: str, nonce: int) -> bool:
        record = self._find(identity, nonce)
        return bool(record and record.used)

    def get_presigned_hash(self, identity: str, nonce: int) -> str | None:
        record = self._find(identity, nonce)
        return record.presigned_hash if record else None

    def ensure_unused(self, identity: str, nonce: int) -> None:
        """Raise NonceUsedError if ``nonce`` is already used."""
        _validate_nonce(nonce)
        if self.is_nonce_used(identity, nonce):
            raise NonceUsedError(normalize_identity(identity), nonce)

    def consume(self, identity: str, nonce: int) -> None:
        """
        Mark ``nonce`` used for ``identity``; exactly one caller ever succeeds.

        Raises:
            NonceUsedError: The nonce was already used, or a concurrent
                submission consumed it first.
        """
        _validate_nonce(nonce)
        identity = normalize_identity(identity)
        now = self._clock.now_utc()

        record = self._find(identity, nonce)
        if record is None:
            savepoint = self.session.begin_nested()
            try:
                self.session.add(
                    NonceRecord(
                        vault_id=self.vault_id,
                        identity=identity,
                        nonce=nonce,
                        used=True,
                        presigned_hash=None,
                        created_at=now,
                        used_at=now,
                    )
                )
                self.session.flush()
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                logger.warning(
                    "nonce_consume_race_lost",
                    extra={"identity": identity, "nonce": nonce},
                )
                raise NonceUsedError(identity, nonce) from None
        else:
            result = self.session.execute(
                update(NonceRecord)
                .where(NonceRecord.id == record.id)
                .where(NonceRecord.used.is_(False))
                .values(used=True, used_at=now)
                .execution_options(synchronize_session=False)
            )
            self.session.expire(record)
            if result.rowcount != 1:
                raise NonceUsedError(identity, nonce)

        logger.info("nonce_consumed", extra={"identity": identity, "nonce": nonce})
