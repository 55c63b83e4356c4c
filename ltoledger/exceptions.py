"""
LTO Ledger Exceptions

Every failed ledger operation raises one of these. The ``kind`` attribute
identifies the failure independently of the class hierarchy, so callers
(the batch copier, the CLI) can report it without matching on types.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Failure kinds reported by ledger, handshake and migration operations."""
    UNAUTHORIZED = "Unauthorized"
    INVALID_CONFIGURATION = "InvalidConfiguration"
    INVALID_AMOUNT = "InvalidAmount"
    PAUSED = "Paused"
    MINTING_CLOSED = "MintingClosed"
    ALREADY_UNLOCKED = "AlreadyUnlocked"
    INSUFFICIENT_BALANCE = "InsufficientBalance"
    INSUFFICIENT_ALLOWANCE = "InsufficientAllowance"
    OVERFLOW = "Overflow"
    UNDERFLOW = "Underflow"
    ALREADY_PROPOSED = "AlreadyProposed"
    NOT_PENDING = "NotPending"
    SOURCE_NOT_FROZEN = "SourceNotFrozen"
    ALREADY_COPIED = "AlreadyCopied"
    EXCLUDED = "Excluded"
    NOTHING_TO_COPY = "NothingToCopy"
    ALREADY_FINALIZED = "AlreadyFinalized"
    INVARIANT_VIOLATION = "InvariantViolation"


class LedgerException(Exception):
    """Base exception for the ledger."""
    kind: ErrorKind = ErrorKind.INVARIANT_VIOLATION


class UnauthorizedError(LedgerException):
    """Caller lacks the role required by a privileged operation."""
    kind = ErrorKind.UNAUTHORIZED


class InvalidConfigurationError(LedgerException):
    """Malformed construction parameters, snapshot or configuration file."""
    kind = ErrorKind.INVALID_CONFIGURATION


class InvalidAmountError(LedgerException):
    """Amount is not a non-negative integer."""
    kind = ErrorKind.INVALID_AMOUNT


class LedgerPausedError(LedgerException):
    """Write attempted while the ledger is paused."""
    kind = ErrorKind.PAUSED


class MintingClosedError(LedgerException):
    """Mint attempted after the one-way lock."""
    kind = ErrorKind.MINTING_CLOSED


class AlreadyUnlockedError(LedgerException):
    """unpause_and_lock called on a ledger that is already locked."""
    kind = ErrorKind.ALREADY_UNLOCKED


class InsufficientBalanceError(LedgerException):
    """Sender balance is too low."""
    kind = ErrorKind.INSUFFICIENT_BALANCE


class InsufficientAllowanceError(LedgerException):
    """Spender allowance is too low."""
    kind = ErrorKind.INSUFFICIENT_ALLOWANCE


class ArithmeticBoundError(LedgerException):
    """An arithmetic step left the unsigned 256-bit range."""


class LedgerOverflowError(ArithmeticBoundError):
    kind = ErrorKind.OVERFLOW


class LedgerUnderflowError(ArithmeticBoundError):
    kind = ErrorKind.UNDERFLOW


class HandshakeError(LedgerException):
    """Bridge handshake state-machine violation."""


class AlreadyProposedError(HandshakeError):
    kind = ErrorKind.ALREADY_PROPOSED


class NotPendingError(HandshakeError):
    kind = ErrorKind.NOT_PENDING


class MigrationError(LedgerException):
    """Balance migration failure."""


class SourceNotFrozenError(MigrationError):
    kind = ErrorKind.SOURCE_NOT_FROZEN


class AlreadyCopiedError(MigrationError):
    kind = ErrorKind.ALREADY_COPIED


class ExcludedAddressError(MigrationError):
    kind = ErrorKind.EXCLUDED


class NothingToCopyError(MigrationError):
    kind = ErrorKind.NOTHING_TO_COPY


class AlreadyFinalizedError(MigrationError):
    kind = ErrorKind.ALREADY_FINALIZED


class InvariantViolationError(LedgerException):
    """Circulating supply no longer equals the sum of balances."""
    kind = ErrorKind.INVARIANT_VIOLATION
