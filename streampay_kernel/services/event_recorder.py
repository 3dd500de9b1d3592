"""
LedgerEventRecorder -- tamper-evident, hash-chained ledger event log.

Responsibility:
    Appends one immutable ``LedgerEvent`` per successful mutating ledger
    operation and validates a vault's chain on demand.  The withdrawal
    event doubles as the withdrawal record ``(identity, amount, nonce)``.

Architecture position:
    Kernel > Services -- imperative shell, called by every mutating
    service (vault, registry, accrual, nonce, settlement, escrow).

Invariants enforced:
    - seq per vault is allocated by SequenceService, never by max+1.
    - hash = H(vault_id | seq | action | payload_hash | prev_hash); the
      first event of a vault has prev_hash None.
    - Append-only: LedgerEvent rows are protected by ORM listeners
      (db/immutability.py).

Failure modes:
    - AuditChainBrokenError: a recomputed hash or a prev_hash link does
      not match what is stored.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from streampay_kernel.domain.clock import Clock, SystemClock
from streampay_kernel.exceptions import AuditChainBrokenError
from streampay_kernel.logging_config import get_logger
from streampay_kernel.models.ledger_event import LedgerAction, LedgerEvent
from streampay_kernel.services.base import VaultScopedService
from streampay_kernel.services.sequence_service import SequenceService
from streampay_kernel.utils.hashing import hash_ledger_event, hash_payload

logger = get_logger("services.event_recorder")


class LedgerEventRecorder(VaultScopedService):
    """
    Records and validates the event chain of one vault.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
        - Does NOT interpret events; reads go through LedgerSelector.
    """

    def __init__(
        self,
        session: Session,
        vault_id: UUID,
        clock: Clock | None = None,
    ):
        super().__init__(session, vault_id)
        self._clock = clock or SystemClock()
        self._sequence_service = SequenceService(session)

    def _get_last_hash(self) -> str | None:
        last_event = self.session.execute(
            select(LedgerEvent)
            .where(LedgerEvent.vault_id == self.vault_id)
            .order_by(LedgerEvent.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

        return last_event.hash if last_event else None

    def record(
        self,
        action: LedgerAction,
        actor: str,
        identity: str | None = None,
        amount: int = 0,
        nonce: int = 0,
        payload: dict[str, Any] | None = None,
    ) -> LedgerEvent:
        """
        Append an event to the vault's chain.

        Postconditions:
            - A new LedgerEvent is flushed with the next per-vault seq and
              a hash linking it to the previous event.
        """
        seq = self._sequence_service.next_value(
            SequenceService.ledger_event(self.vault_id)
        )
        prev_hash = self._get_last_hash()

        payload_data = {
            "identity": identity,
            "amount": amount,
            "nonce": nonce,
            **(payload or {}),
        }
        computed_payload_hash = hash_payload(payload_data)

        event_hash = hash_ledger_event(
            vault_id=str(self.vault_id),
            seq=seq,
            action=action.value,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
        )

        ledger_event = LedgerEvent(
            vault_id=self.vault_id,
            seq=seq,
            action=action.value,
            identity=identity,
            actor=actor,
            amount=amount,
            nonce=nonce,
            occurred_at=self._clock.now_utc(),
            payload=payload_data,
            payload_hash=computed_payload_hash,
            prev_hash=prev_hash,
            hash=event_hash,
        )

        self.session.add(ledger_event)
        self.session.flush()

        logger.info(
            "ledger_event_recorded",
            extra={
                "vault_id": str(self.vault_id),
                "action": action.value,
                "seq": seq,
                "identity": identity,
            },
        )

        return ledger_event

    def validate_chain(self) -> bool:
        """
        Validate this vault's entire event chain.

        Returns:
            True when every stored hash and every prev_hash link matches.

        Raises:
            AuditChainBrokenError: At the first mismatch found.
        """
        events = self.session.execute(
            select(LedgerEvent)
            .where(LedgerEvent.vault_id == self.vault_id)
            .order_by(LedgerEvent.seq)
        ).scalars().all()

        expected_prev: str | None = None
        for event in events:
            if event.prev_hash != expected_prev:
                logger.critical(
                    "ledger_chain_broken",
                    extra={"vault_id": str(self.vault_id), "seq": event.seq},
                )
                raise AuditChainBrokenError(
                    event.seq, expected_prev or "None", event.prev_hash or "None"
                )

            expected_hash = hash_ledger_event(
                vault_id=str(event.vault_id),
                seq=event.seq,
                action=LedgerAction(event.action).value,
                payload_hash=hash_payload(event.payload or {}),
                prev_hash=event.prev_hash,
            )
            if event.hash != expected_hash:
                logger.critical(
                    "ledger_chain_broken",
                    extra={"vault_id": str(self.vault_id), "seq": event.seq},
                )
                raise AuditChainBrokenError(event.seq, expected_hash, event.hash)

            expected_prev = event.hash

        logger.debug(
            "ledger_chain_validated",
            extra={"vault_id": str(self.vault_id), "event_count": len(events)},
        )
        return True
