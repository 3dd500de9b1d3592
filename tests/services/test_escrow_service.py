"""
Tests for EscrowApprovalService.

Covers:
- Manager and owner may release; anyone else may not
- Release pays the whole balance and zeroes it
- Removed employees and paused vaults
- Batch approval: per-identity outcomes, no rollback of earlier releases
"""

import pytest

from streampay_kernel.domain.authority import Caller
from streampay_kernel.exceptions import (
    NoEscrowBalanceError,
    UnauthorizedError,
)
from tests.conftest import ANNUAL_SALARY, EMPLOYEE, MANAGER

EIGHT_HOURS = 8 * 3600
ESCROW = 13_694_400


@pytest.fixture
def escrowed_ledger(funded_ledger, employee, work):
    """Employee worked 8h and withdrew once, crediting escrow."""
    work(employee, EIGHT_HOURS)
    funded_ledger.withdraw(employee, 1_000_000)
    return funded_ledger


class TestApproveEscrow:

    def test_manager_releases_full_balance(self, escrowed_ledger, manager, gateway):
        before_vault = escrowed_ledger.get_contract_balance()
        before_employee = gateway.balance_of(EMPLOYEE)

        release = escrowed_ledger.approve_escrow(manager, EMPLOYEE)

        assert release.amount == ESCROW
        assert release.approved_by == MANAGER
        assert escrowed_ledger.get_employee_details(EMPLOYEE).escrow_balance == 0
        assert escrowed_ledger.get_contract_balance() == before_vault - ESCROW
        assert gateway.balance_of(EMPLOYEE) == before_employee + ESCROW

    def test_owner_may_release(self, escrowed_ledger, owner):
        assert escrowed_ledger.approve_escrow(owner, EMPLOYEE).amount == ESCROW

    def test_outsider_rejected(self, escrowed_ledger, outsider):
        with pytest.raises(UnauthorizedError):
            escrowed_ledger.approve_escrow(outsider, EMPLOYEE)
        assert escrowed_ledger.get_employee_details(EMPLOYEE).escrow_balance == ESCROW

    def test_employee_cannot_release_own_escrow(self, escrowed_ledger, employee):
        with pytest.raises(UnauthorizedError):
            escrowed_ledger.approve_escrow(employee, EMPLOYEE)

    def test_second_approval_has_nothing_to_release(self, escrowed_ledger, manager):
        escrowed_ledger.approve_escrow(manager, EMPLOYEE)
        with pytest.raises(NoEscrowBalanceError):
            escrowed_ledger.approve_escrow(manager, EMPLOYEE)

    def test_nothing_credited_before_withdrawal(self, funded_ledger, employee, manager, work):
        work(employee, EIGHT_HOURS)
        with pytest.raises(NoEscrowBalanceError):
            funded_ledger.approve_escrow(manager, EMPLOYEE)

    def test_unknown_identity_holds_no_escrow(self, funded_ledger, manager):
        with pytest.raises(NoEscrowBalanceError) as exc_info:
            funded_ledger.approve_escrow(manager, "0xNobody")
        assert exc_info.value.code == "NO_ESCROW_BALANCE"
        assert exc_info.value.identity == "0xnobody"

    def test_unknown_identity_same_error_for_any_caller(self, funded_ledger, outsider):
        with pytest.raises(NoEscrowBalanceError):
            funded_ledger.approve_escrow(outsider, "0xnobody")

    def test_removed_employee_still_paid(self, escrowed_ledger, owner, manager):
        escrowed_ledger.remove_employee(owner, EMPLOYEE)
        assert escrowed_ledger.approve_escrow(manager, EMPLOYEE).amount == ESCROW

    def test_allowed_while_paused(self, escrowed_ledger, owner, manager):
        escrowed_ledger.pause(owner)
        assert escrowed_ledger.approve_escrow(manager, EMPLOYEE).amount == ESCROW

    def test_new_manager_takes_over(self, escrowed_ledger, owner, manager):
        escrowed_ledger.change_manager(owner, EMPLOYEE, "0xnewmanager")

        with pytest.raises(UnauthorizedError):
            escrowed_ledger.approve_escrow(manager, EMPLOYEE)
        assert escrowed_ledger.approve_escrow(Caller("0xnewmanager"), EMPLOYEE).amount == ESCROW


class TestBatchApproveEscrow:

    def test_partial_failure_keeps_successes(self, escrowed_ledger, owner, manager, work):
        colleague = Caller("0xcolleague")
        escrowed_ledger.add_employee(owner, colleague.identity, ANNUAL_SALARY, MANAGER)
        work(colleague, EIGHT_HOURS)

        outcomes = escrowed_ledger.batch_approve_escrow(
            manager, [EMPLOYEE, colleague.identity, "0xnobody"]
        )

        assert [(o.identity, o.released, o.error_code) for o in outcomes] == [
            (EMPLOYEE, ESCROW, None),
            (colleague.identity, 0, "NO_ESCROW_BALANCE"),
            ("0xnobody", 0, "NO_ESCROW_BALANCE"),
        ]
        assert escrowed_ledger.get_employee_details(EMPLOYEE).escrow_balance == 0

    def test_unauthorized_entries_fail_individually(self, escrowed_ledger, owner, work):
        other = Caller("0xother")
        escrowed_ledger.add_employee(owner, other.identity, ANNUAL_SALARY, "0xothermanager")
        work(other, EIGHT_HOURS)
        escrowed_ledger.withdraw(other, 1)

        outcomes = escrowed_ledger.batch_approve_escrow(
            Caller("0xothermanager"), [EMPLOYEE, other.identity]
        )

        assert outcomes[0].error_code == "UNAUTHORIZED"
        assert outcomes[1].succeeded
        assert outcomes[1].released == ESCROW
        assert escrowed_ledger.get_employee_details(EMPLOYEE).escrow_balance == ESCROW

    def test_empty_batch(self, funded_ledger, manager):
        assert funded_ledger.batch_approve_escrow(manager, []) == []


class TestManagerQueue:

    def test_lists_employees_with_their_escrow(self, escrowed_ledger, owner):
        escrowed_ledger.add_employee(owner, "0xelsewhere", ANNUAL_SALARY, "0xothermanager")

        queue = escrowed_ledger.get_employees_managed_by(MANAGER)

        assert [(d.identity, d.escrow_balance) for d in queue] == [(EMPLOYEE, ESCROW)]
