"""
Module: streampay_kernel.db.types
Responsibility: Value checks shared by every layer that handles ledger
    amounts before they reach a BigInteger column.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

Invariants enforced:
    CRITICAL: No floats anywhere in the ledger.  Amounts are Python ints
    counting the smallest currency unit (e.g. 1 PYUSD = 10**6 units).
"""


def validate_amount(value: int) -> int:
    """
    Validate that a value is a usable integer amount.

    Booleans are rejected even though they are ints; amounts never come
    from flags.

    Raises:
        TypeError: If value is not an int.
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(
            f"Amounts must be int smallest units, got {type(value).__name__}"
        )
    return value
