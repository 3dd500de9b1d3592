"""
Typed Exception Hierarchy for the StreamPay ledger kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejected ledger operation surfaces a specific error kind to the
caller.  Callers (dashboards, scripts, API layers) must be able to branch
on the kind without parsing messages:

    try:
        vault.withdraw_with_nonce(caller, amount, nonce=7)
    except NonceUsedError as e:
        # Already settled -- resubmit with a fresh nonce
        log.info("nonce %s already used", e.nonce)
    except SettlementError as e:
        api_response(code=e.code)

Every exception:
  1. Is a TYPED class (catch by type, not message)
  2. Has a CODE class attribute (machine-readable, API-safe)
  3. Carries its context as attributes (identity, amount, nonce, ...)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StreamPayError (base)
    |
    +-- RegistryError
    |   +-- EmployeeAlreadyExistsError
    |   +-- EmployeeNotActiveError
    |   +-- EmployeeNotFoundError
    |   +-- InvalidSalaryError
    |   +-- StillClockedInError
    |
    +-- AccrualError
    |   +-- AlreadyClockedInError
    |   +-- NotClockedInError
    |
    +-- SettlementError
    |   +-- InvalidAmountError
    |   +-- NoBalanceError
    |   +-- InsufficientVaultFundsError
    |
    +-- NonceError
    |   +-- NonceUsedError
    |   +-- InvalidNonceError
    |   +-- NonceBatchMismatchError
    |   +-- NonceBatchTooLargeError
    |
    +-- EscrowError
    |   +-- NoEscrowBalanceError
    |
    +-- VaultError
    |   +-- VaultNotFoundError
    |   +-- ContractPausedError
    |   +-- InsufficientAllowanceError
    |   +-- TransferFailedError
    |
    +-- AuthorizationError
    |   +-- UnauthorizedError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                      | When Raised
--------------|---------------------------|-------------------------------------------
Registry      | ALREADY_EXISTS            | Identity is already an active employee
              | NOT_ACTIVE                | Employee removed or never added
              | EMPLOYEE_NOT_FOUND        | No record for this identity
              | INVALID_SALARY            | Annual salary <= 0 or rate floors to 0
              | STILL_CLOCKED_IN          | Removing a clocked-in employee
--------------|---------------------------|-------------------------------------------
Accrual       | ALREADY_CLOCKED_IN        | clockIn while a session is open
              | NOT_CLOCKED_IN            | clockOut with no open session
--------------|---------------------------|-------------------------------------------
Settlement    | INVALID_AMOUNT            | amount <= 0 or amount > available
              | NO_BALANCE                | Nothing available to draw against
              | INSUFFICIENT_VAULT_FUNDS  | Vault funded balance below payout
--------------|---------------------------|-------------------------------------------
Nonce         | NONCE_USED                | (identity, nonce) already settled
              | INVALID_NONCE             | Nonce <= 0 (0 is reserved)
              | NONCE_BATCH_MISMATCH      | nonces/hashes lengths differ
              | NONCE_BATCH_TOO_LARGE     | Pre-sign batch above configured cap
--------------|---------------------------|-------------------------------------------
Escrow        | NO_ESCROW_BALANCE         | Approving an empty escrow
--------------|---------------------------|-------------------------------------------
Vault         | VAULT_NOT_FOUND           | Unknown vault id
              | CONTRACT_PAUSED           | Employee-facing op while paused
              | INSUFFICIENT_ALLOWANCE    | Funding allowance below deposit
              | TRANSFER_FAILED           | Funding token transfer could not settle
--------------|---------------------------|-------------------------------------------
Authorization | UNAUTHORIZED              | Caller lacks the required capability
--------------|---------------------------|-------------------------------------------
Audit         | AUDIT_CHAIN_BROKEN        | Ledger event hash chain mismatch
Immutability  | IMMUTABILITY_VIOLATION    | Mutating an append-only record

===============================================================================
DESIGN DECISIONS
===============================================================================

1. All errors are terminal for the attempted operation.  Nothing is retried
   inside the kernel; the unit of work rolls back and re-raises.

2. Codes are class attributes so they can be read without instantiation
   (``NonceUsedError.code``) and documented for API consumers.

===============================================================================
"""


class StreamPayError(Exception):
    """
    Base exception for all StreamPay ledger errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "STREAMPAY_ERROR"


# Registry-related exceptions


class RegistryError(StreamPayError):
    """Base exception for employee registry errors."""

    code: str = "REGISTRY_ERROR"


class EmployeeAlreadyExistsError(RegistryError):
    """Identity is already registered as an active employee."""

    code: str = "ALREADY_EXISTS"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Employee already exists: {identity}")


class EmployeeNotActiveError(RegistryError):
    """Employee is not active (removed, or never added)."""

    code: str = "NOT_ACTIVE"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Employee is not active: {identity}")


class EmployeeNotFoundError(RegistryError):
    """No employee record exists for the identity."""

    code: str = "EMPLOYEE_NOT_FOUND"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Employee not found: {identity}")


class InvalidSalaryError(RegistryError):
    """
    Annual salary is not positive, or floors to a zero per-second rate.

    A zero-rate employee can never be active.
    """

    code: str = "INVALID_SALARY"

    def __init__(self, annual_salary: int):
        self.annual_salary = annual_salary
        super().__init__(f"Invalid annual salary: {annual_salary}")


class StillClockedInError(RegistryError):
    """Employee cannot be removed while clocked in."""

    code: str = "STILL_CLOCKED_IN"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Employee is still clocked in: {identity}")


# Accrual-related exceptions


class AccrualError(StreamPayError):
    """Base exception for clock-in/clock-out state errors."""

    code: str = "ACCRUAL_ERROR"


class AlreadyClockedInError(AccrualError):
    """Employee already has an open session."""

    code: str = "ALREADY_CLOCKED_IN"

    def __init__(self, identity: str, clocked_in_at: int):
        self.identity = identity
        self.clocked_in_at = clocked_in_at
        super().__init__(
            f"Employee {identity} already clocked in at {clocked_in_at}"
        )


class NotClockedInError(AccrualError):
    """Employee has no open session to close."""

    code: str = "NOT_CLOCKED_IN"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Employee is not clocked in: {identity}")


# Settlement-related exceptions


class SettlementError(StreamPayError):
    """Base exception for withdrawal errors."""

    code: str = "SETTLEMENT_ERROR"


class InvalidAmountError(SettlementError):
    """Amount is not positive, or exceeds what may be drawn."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: int, limit: int | None = None):
        self.amount = amount
        self.limit = limit
        if limit is None:
            message = f"Invalid amount: {amount}"
        else:
            message = f"Invalid amount: {amount} exceeds available {limit}"
        super().__init__(message)


class NoBalanceError(SettlementError):
    """Nothing is currently available for direct withdrawal."""

    code: str = "NO_BALANCE"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"No available balance for {identity}")


class InsufficientVaultFundsError(SettlementError):
    """Vault funded balance cannot cover the payout."""

    code: str = "INSUFFICIENT_VAULT_FUNDS"

    def __init__(self, vault_id: str, funded_balance: int, amount: int):
        self.vault_id = vault_id
        self.funded_balance = funded_balance
        self.amount = amount
        super().__init__(
            f"Vault {vault_id} holds {funded_balance}, cannot pay {amount}"
        )


# Nonce-related exceptions


class NonceError(StreamPayError):
    """Base exception for nonce registry errors."""

    code: str = "NONCE_ERROR"


class NonceUsedError(NonceError):
    """
    The (identity, nonce) pair has already settled a withdrawal.

    Raised deterministically for every submission after the first one
    admitted, regardless of arrival order.
    """

    code: str = "NONCE_USED"

    def __init__(self, identity: str, nonce: int):
        self.identity = identity
        self.nonce = nonce
        super().__init__(f"Nonce {nonce} already used for {identity}")


class NonceBatchMismatchError(NonceError):
    """Pre-sign batch has a different number of nonces and hashes."""

    code: str = "NONCE_BATCH_MISMATCH"

    def __init__(self, nonce_count: int, hash_count: int):
        self.nonce_count = nonce_count
        self.hash_count = hash_count
        super().__init__(
            f"Pre-sign batch mismatch: {nonce_count} nonces, {hash_count} hashes"
        )


class InvalidNonceError(NonceError):
    """Nonce must be a positive integer; 0 marks plain withdrawals."""

    code: str = "INVALID_NONCE"

    def __init__(self, nonce: int):
        self.nonce = nonce
        super().__init__(f"Invalid nonce: {nonce}")


class NonceBatchTooLargeError(NonceError):
    """Pre-sign batch exceeds the configured maximum."""

    code: str = "NONCE_BATCH_TOO_LARGE"

    def __init__(self, size: int, max_size: int):
        self.size = size
        self.max_size = max_size
        super().__init__(f"Pre-sign batch of {size} exceeds maximum {max_size}")


# Escrow-related exceptions


class EscrowError(StreamPayError):
    """Base exception for escrow approval errors."""

    code: str = "ESCROW_ERROR"


class NoEscrowBalanceError(EscrowError):
    """Employee has no escrow awaiting release."""

    code: str = "NO_ESCROW_BALANCE"

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"No escrow balance for {identity}")


# Vault-related exceptions


class VaultError(StreamPayError):
    """Base exception for vault account errors."""

    code: str = "VAULT_ERROR"


class VaultNotFoundError(VaultError):
    """Vault with given ID was not found."""

    code: str = "VAULT_NOT_FOUND"

    def __init__(self, vault_id: str):
        self.vault_id = vault_id
        super().__init__(f"Vault not found: {vault_id}")


class ContractPausedError(VaultError):
    """Employee-facing operation rejected while the vault is paused."""

    code: str = "CONTRACT_PAUSED"

    def __init__(self, vault_id: str, operation: str):
        self.vault_id = vault_id
        self.operation = operation
        super().__init__(f"Vault {vault_id} is paused; {operation} rejected")


class InsufficientAllowanceError(VaultError):
    """Funding allowance granted to the vault is below the deposit."""

    code: str = "INSUFFICIENT_ALLOWANCE"

    def __init__(self, owner: str, spender: str, allowance: int, amount: int):
        self.owner = owner
        self.spender = spender
        self.allowance = allowance
        self.amount = amount
        super().__init__(
            f"Allowance {allowance} from {owner} to {spender} "
            f"is below {amount}"
        )


class TransferFailedError(VaultError):
    """The funding token transfer could not be completed."""

    code: str = "TRANSFER_FAILED"

    def __init__(self, sender: str, recipient: str, amount: int, reason: str):
        self.sender = sender
        self.recipient = recipient
        self.amount = amount
        self.reason = reason
        super().__init__(
            f"Transfer of {amount} from {sender} to {recipient} failed: {reason}"
        )


# Authorization exceptions


class AuthorizationError(StreamPayError):
    """Base exception for capability checks."""

    code: str = "AUTHORIZATION_ERROR"


class UnauthorizedError(AuthorizationError):
    """Caller does not hold the capability the operation requires."""

    code: str = "UNAUTHORIZED"

    def __init__(self, caller: str, required: str):
        self.caller = caller
        self.required = required
        super().__init__(f"{caller} is not authorized: requires {required}")


# Audit-related exceptions


class AuditError(StreamPayError):
    """Base exception for ledger event log errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """
    Ledger event hash chain validation failed.

    This is a critical error indicating potential tampering.
    """

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, seq: int, expected_hash: str, actual_hash: str):
        self.seq = seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Ledger event chain broken at seq {seq}: "
            f"expected {expected_hash}, got {actual_hash}"
        )


# Immutability-related exceptions


class ImmutabilityError(StreamPayError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Ledger events are never modified; nonce records are never deleted and
    a used nonce never reverts.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
