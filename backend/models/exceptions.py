"""Custom exceptions for the ledger and model layers."""


class LedgerError(Exception):
    """Base class for ledger operation failures."""


class LedgerAuthorizationError(LedgerError):
    """Caller lacks rights for the operation."""


class LedgerValidationError(LedgerError):
    """Input or position precondition failed."""


class LedgerEconomicError(LedgerError):
    """Operation would break an economic rule of the market."""


class LedgerDependencyError(LedgerError):
    """An external collaborator (price feed, transfers) failed."""


class UnauthorizedError(LedgerAuthorizationError):
    """Raised for non-admin callers of admin operations, or while paused."""


class ZeroAmountError(LedgerValidationError):
    """Raised when an amount or price is zero."""


class InsufficientBalanceError(LedgerValidationError):
    """Raised when the account has no position to act on."""


class InvalidWithdrawAmountError(LedgerEconomicError):
    """Raised when a withdrawal exceeds principal plus pending yield."""


class ExceededMaxBorrowError(LedgerEconomicError):
    """Raised when new debt would exceed the collateral's borrowing capacity."""


class CannotBeLiquidatedError(LedgerEconomicError):
    """Raised when the target position is not eligible for liquidation."""


class PriceFeedError(LedgerDependencyError):
    """Raised when no positive price is available."""


class TransferFailedError(LedgerDependencyError):
    """Raised when the transfer gateway cannot settle a batch."""


class ModelValidationError(Exception):
    """Raised when model data fails custom business validation."""
