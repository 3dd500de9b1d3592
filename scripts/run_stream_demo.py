#!/usr/bin/env python3
"""
Replay the manual wage-streaming flow against a fresh ledger.

Usage:
    python scripts/run_stream_demo.py [--config PATH] [--database-url URL]
        [--annual-salary 50000] [--deposit 500000] [--days 5] [--hours 8]

The script:
  1. Deploys a vault and funds the employer's token account
  2. Deposits into the vault and adds one employee
  3. Works a week of clocked shifts on a deterministic clock
  4. Withdraws half the available balance, then the rest via a nonce
  5. Has the manager approve the escrow
  6. Shows the nonce replay protection rejecting a reused nonce

Amounts on the command line are whole tokens; the ledger itself works in
smallest units (token.decimals in the settings file).
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from streampay_config import get_active_config
from streampay_config.bridges import init_ledger_engine, ledger_options
from streampay_kernel.db.engine import create_tables, reset_engine, session_scope
from streampay_kernel.domain.authority import Caller
from streampay_kernel.domain.clock import DeterministicClock
from streampay_kernel.exceptions import NonceUsedError
from streampay_kernel.services.streaming_vault import StreamingVault
from streampay_kernel.services.token_gateway import TokenLedgerGateway
from streampay_kernel.utils.hashing import presign_digest

EMPLOYER = "0xemployer"
EMPLOYEE = "0xemployee"
MANAGER = "0xmanager"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.split("\n\n")[0])
    parser.add_argument("--config", type=Path, default=None, help="Settings YAML file")
    parser.add_argument(
        "--database-url",
        default="sqlite:///:memory:",
        help="Overrides the configured database (default: in-memory SQLite)",
    )
    parser.add_argument("--annual-salary", type=int, default=50_000)
    parser.add_argument("--deposit", type=int, default=500_000)
    parser.add_argument("--days", type=int, default=5)
    parser.add_argument("--hours", type=int, default=8)
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    settings = get_active_config(path=args.config)
    settings = replace(settings, database_url=args.database_url)

    init_ledger_engine(settings)
    create_tables()
    unit = settings.unit
    fmt = settings.format_amount

    clock = DeterministicClock()
    employer = Caller(EMPLOYER)
    employee = Caller(EMPLOYEE)
    manager = Caller(MANAGER)

    try:
        with session_scope() as session:
            gateway = TokenLedgerGateway(session, symbol=settings.token_symbol)
            ledger = StreamingVault.deploy(
                session, EMPLOYER, clock=clock, gateway=gateway, **ledger_options(settings)
            )
            vault = ledger.vault_info()
            print(f"Vault deployed: {vault.id} (owner {vault.owner})")

            deposit = args.deposit * unit
            gateway.mint(EMPLOYER, deposit)
            gateway.approve(EMPLOYER, vault.token_holder, deposit)
            ledger.deposit(employer, deposit)
            print(f"Deposited {fmt(ledger.get_contract_balance())}")

            details = ledger.add_employee(
                employer, EMPLOYEE, args.annual_salary * unit, MANAGER
            )
            print(
                f"Added {details.identity}: {fmt(details.annual_salary)}/year, "
                f"{details.salary_per_second} units/second"
            )

            for day in range(1, args.days + 1):
                ledger.clock_in(employee)
                clock.advance_hours(args.hours)
                earned = ledger.clock_out(employee)
                clock.advance_hours(24 - args.hours)
                print(f"  day {day}: earned {fmt(earned)}")

            details = ledger.get_employee_details(EMPLOYEE)
            print(f"Accrued {fmt(details.accrued_balance)}, available {fmt(details.available_balance)}")

            half = details.available_balance // 2
            receipt = ledger.withdraw(employee, half)
            print(
                f"Withdrew {fmt(receipt.amount)}; escrow credited {fmt(receipt.escrow_credited)}"
            )

            nonces = list(range(1, 6))
            ledger.pre_sign_nonces(
                employee, nonces, [presign_digest(EMPLOYEE, n) for n in nonces]
            )
            rest = ledger.get_available_balance(EMPLOYEE)
            ledger.withdraw_with_nonce(employee, rest // 2, nonce=1)
            print(f"Withdrew {fmt(rest // 2)} with nonce 1")
            try:
                ledger.withdraw_with_nonce(employee, 1, nonce=1)
            except NonceUsedError as exc:
                print(f"Replay rejected: {exc.code}")
            ledger.withdraw_with_nonce(
                employee, ledger.get_available_balance(EMPLOYEE), nonce=2
            )
            print("Withdrew the remainder with nonce 2")

            release = ledger.approve_escrow(manager, EMPLOYEE)
            print(f"Manager released escrow of {fmt(release.amount)}")

            print(
                f"Employee received {fmt(gateway.balance_of(EMPLOYEE))}; "
                f"vault holds {fmt(ledger.get_contract_balance())}"
            )
            print(f"Event chain valid: {ledger.validate_event_chain()}")
    finally:
        reset_engine()

    return 0


def main() -> None:
    sys.exit(run(parse_args()))


if __name__ == "__main__":
    main()
