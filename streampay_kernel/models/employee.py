"""
Module: streampay_kernel.models.employee
Responsibility: ORM persistence for per-employee streaming wage records.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One record per (vault_id, identity) (uq_employee_vault_identity).
    - salary_per_second > 0 whenever is_active (enforced by the registry;
      a zero-rate employee is never added).
    - Balances and counters are non-negative (CHECK constraints).
    - is_clocked_in implies last_clock_in is the start of the open session.

Lifecycle:
    Created by EmployeeRegistry.add_employee, mutated by the accrual,
    settlement and escrow services, logically removed by
    EmployeeRegistry.remove_employee (is_active = False).  Rows are never
    physically deleted.
"""

from uuid import UUID

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from streampay_kernel.db.base import TrackedBase, UUIDString


class Employee(TrackedBase):
    """
    Streaming wage record for one identity within one vault.

    Contract:
        ``accrued_balance`` holds finalized earnings: completed sessions
        plus any open-session earnings realized at settlement time.  Live
        earnings of an open session are never stored mid-session except by
        a settlement or salary-change checkpoint.

    Guarantees:
        - total_withdrawn never decreases.
        - escrow_credited is lifetime escrow credit; escrow_balance is the
          part of it not yet released (escrow_credited - escrow_released).
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("vault_id", "identity", name="uq_employee_vault_identity"),
        Index("idx_employee_vault_registration", "vault_id", "registration_index"),
        Index("idx_employee_manager", "vault_id", "manager_address"),
        CheckConstraint("annual_salary > 0", name="ck_employee_salary_positive"),
        CheckConstraint("accrued_balance >= 0", name="ck_employee_accrued_non_negative"),
        CheckConstraint("escrow_balance >= 0", name="ck_employee_escrow_non_negative"),
        CheckConstraint("total_withdrawn >= 0", name="ck_employee_withdrawn_non_negative"),
    )

    vault_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("vaults.id"),
        nullable=False,
    )

    identity: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    # Order of first registration within the vault
    registration_index: Mapped[int] = mapped_column(
        nullable=False,
    )

    annual_salary: Mapped[int] = mapped_column(nullable=False)

    salary_per_second: Mapped[int] = mapped_column(nullable=False)

    # Epoch seconds, 0 = never
    last_clock_in: Mapped[int] = mapped_column(nullable=False, default=0)

    last_clock_out: Mapped[int] = mapped_column(nullable=False, default=0)

    accrued_balance: Mapped[int] = mapped_column(nullable=False, default=0)

    escrow_balance: Mapped[int] = mapped_column(nullable=False, default=0)

    escrow_credited: Mapped[int] = mapped_column(nullable=False, default=0)

    escrow_released: Mapped[int] = mapped_column(nullable=False, default=0)

    total_withdrawn: Mapped[int] = mapped_column(nullable=False, default=0)

    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    is_clocked_in: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )

    manager_address: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    def __repr__(self) -> str:
        state = "in" if self.is_clocked_in else "out"
        return f"<Employee {self.identity} rate={self.salary_per_second}/s clocked-{state}>"
