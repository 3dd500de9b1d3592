"""
Tests for LedgerEventRecorder and the hash-chained event log.

Covers:
- One event per successful mutating operation, none for failed ones
- Contiguous per-vault sequence numbers
- Chain validation and tamper detection
"""

import pytest
from sqlalchemy import select, update

from streampay_kernel.exceptions import AuditChainBrokenError, NoBalanceError
from streampay_kernel.models.ledger_event import LedgerAction, LedgerEvent
from streampay_kernel.services.streaming_vault import StreamingVault
from tests.conftest import EMPLOYEE


def _events(session, vault_id):
    return session.execute(
        select(LedgerEvent)
        .where(LedgerEvent.vault_id == vault_id)
        .order_by(LedgerEvent.seq)
    ).scalars().all()


class TestRecording:

    def test_deploy_starts_chain_at_genesis(self, session, ledger):
        events = _events(session, ledger.vault_id)

        assert len(events) == 1
        assert events[0].action == LedgerAction.VAULT_CREATED.value
        assert events[0].is_genesis
        assert events[0].seq == 1

    def test_each_operation_appends_one_event(self, session, funded_ledger, employee, work):
        work(employee, 3600)
        funded_ledger.withdraw(employee, 1)

        actions = [e.action for e in _events(session, funded_ledger.vault_id)]
        assert actions == [
            LedgerAction.VAULT_CREATED.value,
            LedgerAction.DEPOSIT.value,
            LedgerAction.EMPLOYEE_ADDED.value,
            LedgerAction.CLOCKED_IN.value,
            LedgerAction.CLOCKED_OUT.value,
            LedgerAction.WITHDRAWAL.value,
        ]

    def test_sequence_is_contiguous_and_linked(self, session, funded_ledger, employee, work):
        work(employee, 60)
        events = _events(session, funded_ledger.vault_id)

        assert [e.seq for e in events] == list(range(1, len(events) + 1))
        for prev, current in zip(events, events[1:]):
            assert current.prev_hash == prev.hash

    def test_failed_operation_records_nothing(self, session, funded_ledger, employee):
        before = len(_events(session, funded_ledger.vault_id))
        with pytest.raises(NoBalanceError):
            funded_ledger.withdraw(employee, 1)
        assert len(_events(session, funded_ledger.vault_id)) == before

    def test_vault_chains_are_separate(self, session, deterministic_clock, gateway, ledger):
        other = StreamingVault.deploy(session, "0xother", clock=deterministic_clock, gateway=gateway)

        assert _events(session, other.vault_id)[0].seq == 1
        assert _events(session, other.vault_id)[0].is_genesis
        assert other.validate_event_chain() is True
        assert ledger.validate_event_chain() is True

    def test_withdrawal_event_carries_identity_amount_nonce(
        self, session, funded_ledger, employee, work
    ):
        work(employee, 3600)
        funded_ledger.withdraw_with_nonce(employee, 25, nonce=3)

        event = _events(session, funded_ledger.vault_id)[-1]
        assert (event.identity, event.amount, event.nonce) == (EMPLOYEE, 25, 3)
        assert event.actor == EMPLOYEE


class TestChainValidation:

    def test_untouched_chain_is_valid(self, funded_ledger, employee, work):
        work(employee, 3600)
        assert funded_ledger.validate_event_chain() is True

    def test_tampered_payload_detected(self, session, funded_ledger, employee, work):
        work(employee, 3600)
        funded_ledger.withdraw(employee, 10)
        target = _events(session, funded_ledger.vault_id)[-1]

        # Bypass the ORM listeners, as a direct database edit would
        session.execute(
            update(LedgerEvent)
            .where(LedgerEvent.id == target.id)
            .values(payload={**target.payload, "amount": 10_000})
            .execution_options(synchronize_session=False)
        )
        session.expire_all()

        with pytest.raises(AuditChainBrokenError) as exc_info:
            funded_ledger.validate_event_chain()
        assert exc_info.value.seq == target.seq

    def test_broken_link_detected(self, session, funded_ledger):
        events = _events(session, funded_ledger.vault_id)
        session.execute(
            update(LedgerEvent)
            .where(LedgerEvent.id == events[1].id)
            .values(prev_hash="0" * 64)
            .execution_options(synchronize_session=False)
        )
        session.expire_all()

        with pytest.raises(AuditChainBrokenError) as exc_info:
            funded_ledger.validate_event_chain()
        assert exc_info.value.seq == events[1].seq
