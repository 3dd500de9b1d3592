"""
Tests for AccrualEngine (clock in / clock out state machine).

Covers:
- Legal and illegal transitions
- Accrued balance equals the sum of completed sessions
- Live accrual reads without writing
- Pause gating of clock in / clock out
"""

import pytest

from streampay_kernel.domain.accrual import SECONDS_PER_YEAR
from streampay_kernel.domain.authority import Caller
from streampay_kernel.exceptions import (
    AlreadyClockedInError,
    ContractPausedError,
    EmployeeNotActiveError,
    NotClockedInError,
)
from tests.conftest import ANNUAL_SALARY, EMPLOYEE

RATE = ANNUAL_SALARY // SECONDS_PER_YEAR


class TestClockTransitions:

    def test_clock_in_records_start_without_accruing(
        self, funded_ledger, employee, deterministic_clock
    ):
        started = funded_ledger.clock_in(employee)

        details = funded_ledger.get_employee_details(EMPLOYEE)
        assert details.is_clocked_in is True
        assert details.last_clock_in == started == deterministic_clock.epoch_seconds()
        assert details.accrued_balance == 0

    def test_double_clock_in_fails(self, funded_ledger, employee):
        funded_ledger.clock_in(employee)
        with pytest.raises(AlreadyClockedInError) as exc_info:
            funded_ledger.clock_in(employee)
        assert exc_info.value.code == "ALREADY_CLOCKED_IN"

    def test_clock_out_without_clock_in_fails(self, funded_ledger, employee):
        with pytest.raises(NotClockedInError):
            funded_ledger.clock_out(employee)

    def test_unknown_identity_cannot_clock_out(self, funded_ledger):
        with pytest.raises(NotClockedInError) as exc_info:
            funded_ledger.clock_out(Caller("0xStranger"))
        assert exc_info.value.code == "NOT_CLOCKED_IN"
        assert exc_info.value.identity == "0xstranger"

    def test_unknown_identity_cannot_clock_in(self, funded_ledger):
        with pytest.raises(EmployeeNotActiveError):
            funded_ledger.clock_in(Caller("0xstranger"))

    def test_clock_out_accrues_session(self, funded_ledger, employee, deterministic_clock):
        funded_ledger.clock_in(employee)
        deterministic_clock.advance_hours(8)
        earned = funded_ledger.clock_out(employee)

        details = funded_ledger.get_employee_details(EMPLOYEE)
        assert earned == RATE * 8 * 3600 == 45_648_000
        assert details.accrued_balance == earned
        assert details.is_clocked_in is False
        assert details.last_clock_out == deterministic_clock.epoch_seconds()


class TestAccumulation:

    @pytest.mark.parametrize(
        "sessions",
        [
            [8 * 3600],
            [3600, 3600, 3600],
            [1, 59, 3540, 7200],
            [0, 10, 0],
        ],
    )
    def test_accrued_is_sum_of_sessions(self, funded_ledger, employee, work, sessions):
        for seconds in sessions:
            work(employee, seconds)

        details = funded_ledger.get_employee_details(EMPLOYEE)
        assert details.accrued_balance == RATE * sum(sessions)

    def test_time_while_clocked_out_earns_nothing(
        self, funded_ledger, employee, work, deterministic_clock
    ):
        work(employee, 3600)
        deterministic_clock.advance_days(3)

        assert funded_ledger.get_total_accrued_balance(EMPLOYEE) == RATE * 3600


class TestLiveAccrued:

    def test_live_accrued_grows_while_clocked_in(
        self, funded_ledger, employee, deterministic_clock
    ):
        funded_ledger.clock_in(employee)
        deterministic_clock.advance(100)
        assert funded_ledger.live_accrued(EMPLOYEE) == RATE * 100
        deterministic_clock.advance(100)
        assert funded_ledger.live_accrued(EMPLOYEE) == RATE * 200

    def test_live_accrued_is_not_persisted(
        self, funded_ledger, employee, deterministic_clock
    ):
        funded_ledger.clock_in(employee)
        deterministic_clock.advance(500)
        funded_ledger.live_accrued(EMPLOYEE)

        details = funded_ledger.get_employee_details(EMPLOYEE)
        assert details.accrued_balance == 0
        assert details.total_accrued == RATE * 500


class TestPauseGating:

    def test_clock_in_rejected_while_paused(self, funded_ledger, owner, employee):
        funded_ledger.pause(owner)
        with pytest.raises(ContractPausedError) as exc_info:
            funded_ledger.clock_in(employee)
        assert exc_info.value.operation == "clock_in"

    def test_clock_out_rejected_while_paused(
        self, funded_ledger, owner, employee, deterministic_clock
    ):
        funded_ledger.clock_in(employee)
        deterministic_clock.advance(60)
        funded_ledger.pause(owner)

        with pytest.raises(ContractPausedError):
            funded_ledger.clock_out(employee)
        assert funded_ledger.get_employee_details(EMPLOYEE).is_clocked_in is True

    def test_reads_available_while_paused(self, funded_ledger, owner, employee, work):
        work(employee, 3600)
        funded_ledger.pause(owner)

        assert funded_ledger.get_total_accrued_balance(EMPLOYEE) == RATE * 3600
        assert funded_ledger.get_available_balance(EMPLOYEE) == RATE * 3600 * 70 // 100
