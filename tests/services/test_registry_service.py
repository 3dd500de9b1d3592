"""
Tests for EmployeeRegistry (add, update salary, remove, change manager).

Covers:
- Salary validation and per-second rate derivation
- Owner-only mutations
- Removal only while clocked out
- Reactivation of a removed identity keeps its history
- Registration order of getAllEmployees
"""

import pytest

from streampay_kernel.domain.accrual import SECONDS_PER_YEAR
from streampay_kernel.exceptions import (
    EmployeeAlreadyExistsError,
    EmployeeNotActiveError,
    EmployeeNotFoundError,
    InvalidSalaryError,
    StillClockedInError,
    UnauthorizedError,
)
from tests.conftest import ANNUAL_SALARY, EMPLOYEE, MANAGER

RATE = ANNUAL_SALARY // SECONDS_PER_YEAR


class TestAddEmployee:

    def test_add_sets_rate_and_zero_balances(self, ledger, owner):
        details = ledger.add_employee(owner, EMPLOYEE, ANNUAL_SALARY, MANAGER)

        assert details.salary_per_second == RATE == 1_585
        assert details.annual_salary == ANNUAL_SALARY
        assert details.is_active is True
        assert details.is_clocked_in is False
        assert details.available_balance == 0
        assert details.escrow_balance == 0
        assert details.total_withdrawn == 0
        assert details.manager_address == MANAGER

    def test_identities_are_normalized(self, ledger, owner):
        details = ledger.add_employee(owner, "  0xEMPLOYEE ", ANNUAL_SALARY, "0xManager")
        assert details.identity == EMPLOYEE
        assert details.manager_address == MANAGER

    def test_duplicate_active_identity_rejected(self, ledger, owner):
        ledger.add_employee(owner, EMPLOYEE, ANNUAL_SALARY, MANAGER)
        with pytest.raises(EmployeeAlreadyExistsError) as exc_info:
            ledger.add_employee(owner, EMPLOYEE, ANNUAL_SALARY, MANAGER)
        assert exc_info.value.code == "ALREADY_EXISTS"

    @pytest.mark.parametrize("salary", [0, -1, -ANNUAL_SALARY])
    def test_non_positive_salary_rejected(self, ledger, owner, salary):
        with pytest.raises(InvalidSalaryError):
            ledger.add_employee(owner, EMPLOYEE, salary, MANAGER)
        assert ledger.get_all_employees() == []

    def test_salary_flooring_to_zero_rate_rejected(self, ledger, owner):
        with pytest.raises(InvalidSalaryError):
            ledger.add_employee(owner, EMPLOYEE, SECONDS_PER_YEAR - 1, MANAGER)

    def test_only_owner_may_add(self, ledger, outsider):
        with pytest.raises(UnauthorizedError):
            ledger.add_employee(outsider, EMPLOYEE, ANNUAL_SALARY, MANAGER)

    def test_employee_cannot_add_themselves(self, ledger, employee):
        with pytest.raises(UnauthorizedError):
            ledger.add_employee(employee, EMPLOYEE, ANNUAL_SALARY, MANAGER)

    def test_get_all_employees_in_registration_order(self, ledger, owner):
        for identity in ("0xc", "0xa", "0xb"):
            ledger.add_employee(owner, identity, ANNUAL_SALARY, MANAGER)
        assert ledger.get_all_employees() == ["0xc", "0xa", "0xb"]


class TestUpdateSalary:

    def test_update_recomputes_rate(self, funded_ledger, owner):
        details = funded_ledger.update_salary(owner, EMPLOYEE, 2 * ANNUAL_SALARY)
        assert details.salary_per_second == (2 * ANNUAL_SALARY) // SECONDS_PER_YEAR

    def test_update_is_not_retroactive(self, funded_ledger, owner, work, employee):
        work(employee, 3600)
        before = funded_ledger.get_employee_details(EMPLOYEE).accrued_balance

        funded_ledger.update_salary(owner, EMPLOYEE, 10 * ANNUAL_SALARY)

        assert funded_ledger.get_employee_details(EMPLOYEE).accrued_balance == before

    def test_open_session_checkpointed_at_old_rate(
        self, funded_ledger, owner, employee, deterministic_clock
    ):
        funded_ledger.clock_in(employee)
        deterministic_clock.advance(1_000)
        funded_ledger.update_salary(owner, EMPLOYEE, 2 * ANNUAL_SALARY)
        deterministic_clock.advance(1_000)
        funded_ledger.clock_out(employee)

        new_rate = (2 * ANNUAL_SALARY) // SECONDS_PER_YEAR
        details = funded_ledger.get_employee_details(EMPLOYEE)
        assert details.accrued_balance == RATE * 1_000 + new_rate * 1_000

    def test_update_requires_owner(self, funded_ledger, manager):
        with pytest.raises(UnauthorizedError):
            funded_ledger.update_salary(manager, EMPLOYEE, ANNUAL_SALARY)

    def test_update_rejects_invalid_salary(self, funded_ledger, owner):
        with pytest.raises(InvalidSalaryError):
            funded_ledger.update_salary(owner, EMPLOYEE, 0)
        assert funded_ledger.get_employee_details(EMPLOYEE).annual_salary == ANNUAL_SALARY

    def test_update_unknown_identity(self, funded_ledger, owner):
        with pytest.raises(EmployeeNotActiveError):
            funded_ledger.update_salary(owner, "0xnobody", ANNUAL_SALARY)


class TestRemoveEmployee:

    def test_remove_clocked_out_employee(self, funded_ledger, owner):
        funded_ledger.remove_employee(owner, EMPLOYEE)

        details = funded_ledger.get_employee_details(EMPLOYEE)
        assert details.is_active is False
        assert funded_ledger.get_all_employees() == [EMPLOYEE]
        assert funded_ledger.get_all_employees(active_only=True) == []

    def test_remove_clocked_in_employee_fails(self, funded_ledger, owner, employee):
        funded_ledger.clock_in(employee)
        with pytest.raises(StillClockedInError):
            funded_ledger.remove_employee(owner, EMPLOYEE)
        assert funded_ledger.get_employee_details(EMPLOYEE).is_active is True

    def test_remove_twice_fails(self, funded_ledger, owner):
        funded_ledger.remove_employee(owner, EMPLOYEE)
        with pytest.raises(EmployeeNotActiveError):
            funded_ledger.remove_employee(owner, EMPLOYEE)

    def test_removed_employee_cannot_clock_in(self, funded_ledger, owner, employee):
        funded_ledger.remove_employee(owner, EMPLOYEE)
        with pytest.raises(EmployeeNotActiveError):
            funded_ledger.clock_in(employee)

    def test_readd_reactivates_and_keeps_history(
        self, funded_ledger, owner, employee, work
    ):
        work(employee, 8 * 3600)
        available = funded_ledger.get_available_balance(EMPLOYEE)
        funded_ledger.withdraw(employee, available)
        funded_ledger.remove_employee(owner, EMPLOYEE)

        details = funded_ledger.add_employee(owner, EMPLOYEE, 2 * ANNUAL_SALARY, "0xnewmanager")

        assert details.is_active is True
        assert details.total_withdrawn == available
        assert details.manager_address == "0xnewmanager"
        assert details.salary_per_second == (2 * ANNUAL_SALARY) // SECONDS_PER_YEAR
        assert funded_ledger.get_all_employees() == [EMPLOYEE]


class TestChangeManager:

    def test_change_manager_keeps_balances(self, funded_ledger, owner, employee, work):
        work(employee, 3600)
        before = funded_ledger.get_employee_details(EMPLOYEE)

        funded_ledger.change_manager(owner, EMPLOYEE, "0xNewManager")

        after = funded_ledger.get_employee_details(EMPLOYEE)
        assert after.manager_address == "0xnewmanager"
        assert after.accrued_balance == before.accrued_balance
        assert after.available_balance == before.available_balance

    def test_change_manager_requires_owner(self, funded_ledger, manager):
        with pytest.raises(UnauthorizedError):
            funded_ledger.change_manager(manager, EMPLOYEE, "0xother")

    def test_change_manager_unknown_identity(self, funded_ledger, owner):
        with pytest.raises(EmployeeNotFoundError):
            funded_ledger.change_manager(owner, "0xnobody", MANAGER)


class TestDetails:

    def test_unknown_identity(self, ledger):
        with pytest.raises(EmployeeNotFoundError):
            ledger.get_employee_details("0xnobody")

    def test_employees_are_scoped_per_vault(self, session, deterministic_clock, gateway, owner):
        from streampay_kernel.services.streaming_vault import StreamingVault

        first = StreamingVault.deploy(session, owner.identity, clock=deterministic_clock, gateway=gateway)
        second = StreamingVault.deploy(session, owner.identity, clock=deterministic_clock, gateway=gateway)
        first.add_employee(owner, EMPLOYEE, ANNUAL_SALARY, MANAGER)

        assert first.get_all_employees() == [EMPLOYEE]
        assert second.get_all_employees() == []
        second.add_employee(owner, EMPLOYEE, 2 * ANNUAL_SALARY, MANAGER)
        assert first.get_employee_details(EMPLOYEE).annual_salary == ANNUAL_SALARY
