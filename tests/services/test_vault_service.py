"""
Tests for VaultAccount: deployment, deposits and the pause switch.
"""

import pytest

from streampay_kernel.domain.authority import Caller
from streampay_kernel.exceptions import (
    InsufficientAllowanceError,
    InvalidAmountError,
    UnauthorizedError,
)
from streampay_kernel.services.streaming_vault import StreamingVault
from tests.conftest import DEPOSIT, OWNER, OUTSIDER


class TestDeploy:

    def test_new_vault_is_empty_and_unpaused(self, ledger):
        info = ledger.vault_info()

        assert info.owner == OWNER
        assert info.paused is False
        assert info.funded_balance == 0
        assert info.total_deposited == 0
        assert info.token_holder == f"vault:{info.id}"

    def test_vaults_are_independent(self, session, deterministic_clock, gateway, ledger, fund):
        other = StreamingVault.deploy(
            session, "0xsomeoneelse", clock=deterministic_clock, gateway=gateway
        )
        fund()

        assert other.vault_id != ledger.vault_id
        assert other.get_contract_balance() == 0
        assert ledger.get_contract_balance() == DEPOSIT


class TestDeposit:

    def test_deposit_moves_tokens(self, ledger, fund, gateway):
        balance = fund(1_000)

        assert balance == 1_000
        assert ledger.get_contract_balance() == 1_000
        assert ledger.vault_info().total_deposited == 1_000
        assert gateway.balance_of(ledger.vault_info().token_holder) == 1_000
        assert gateway.balance_of(OWNER) == 0

    def test_anyone_may_deposit(self, ledger, fund):
        fund(500, depositor=OUTSIDER)
        assert ledger.get_contract_balance() == 500

    def test_deposit_consumes_allowance(self, ledger, gateway, owner):
        holder = ledger.vault_info().token_holder
        gateway.mint(OWNER, 1_000)
        gateway.approve(OWNER, holder, 600)

        ledger.deposit(owner, 400)

        assert gateway.allowance(OWNER, holder) == 200

    def test_without_allowance(self, ledger, gateway, owner):
        gateway.mint(OWNER, 1_000)
        with pytest.raises(InsufficientAllowanceError):
            ledger.deposit(owner, 1_000)
        assert ledger.get_contract_balance() == 0
        assert gateway.balance_of(OWNER) == 1_000

    @pytest.mark.parametrize("amount", [0, -10])
    def test_non_positive_amount(self, ledger, owner, amount):
        with pytest.raises(InvalidAmountError):
            ledger.deposit(owner, amount)

    @pytest.mark.parametrize("amount", [0.5, True, 1_000.0])
    def test_non_integer_amount_moves_nothing(self, ledger, gateway, owner, amount):
        holder = ledger.vault_info().token_holder
        gateway.mint(OWNER, 1_000)
        gateway.approve(OWNER, holder, 1_000)

        with pytest.raises(TypeError):
            ledger.deposit(owner, amount)

        assert ledger.get_contract_balance() == 0
        assert ledger.vault_info().total_deposited == 0
        assert gateway.balance_of(OWNER) == 1_000
        assert gateway.allowance(OWNER, holder) == 1_000

    def test_deposit_while_paused(self, ledger, fund, owner):
        ledger.pause(owner)
        fund(1_000)
        assert ledger.get_contract_balance() == 1_000


class TestPause:

    def test_owner_pauses_and_unpauses(self, ledger, owner):
        ledger.pause(owner)
        assert ledger.vault_info().paused is True
        ledger.unpause(owner)
        assert ledger.vault_info().paused is False

    def test_non_owner_cannot_pause(self, ledger):
        with pytest.raises(UnauthorizedError):
            ledger.pause(Caller(OUTSIDER))
        assert ledger.vault_info().paused is False

    def test_non_owner_cannot_unpause(self, ledger, owner):
        ledger.pause(owner)
        with pytest.raises(UnauthorizedError):
            ledger.unpause(Caller(OUTSIDER))
        assert ledger.vault_info().paused is True
