"""Domain layer -- pure functional core (clock, accrual math, authority, DTOs)."""
