"""
Exception hierarchy for ledger operations.

Validation problems raise one of these typed errors. Business outcomes such as
insufficient funds are reported as ``False`` by the operation instead.
"""


class LedgerError(Exception):
    """Base exception for all ledger errors."""


class InvalidAmount(LedgerError, ValueError):
    """Raised when an amount is not a positive, finite number."""


class InvalidArgument(LedgerError, ValueError):
    """Raised when a configuration value such as a rate or limit is out of range."""


class InvalidIdentifier(LedgerError, ValueError):
    """Raised when an account, customer or profile ID does not match its format."""


class IdentifierExhausted(LedgerError):
    """Raised when the fixed-width ID space for a prefix has no free numbers left."""


class InvalidAccountKind(LedgerError, ValueError):
    """Raised when an account kind is neither savings nor checking."""


class DuplicateAccountNumber(LedgerError, ValueError):
    """Raised when an account number is already registered."""


class CustomerNotFound(LedgerError, LookupError):
    """Raised when a referenced customer does not exist."""
