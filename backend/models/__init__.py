"""Public model package exports for the lending ledger backend."""

from .base import Amount, BaseLedgerModel, Timestamp
from .enums import AssetKind, LedgerOperation
from .exceptions import (
    CannotBeLiquidatedError,
    ExceededMaxBorrowError,
    InsufficientBalanceError,
    InvalidWithdrawAmountError,
    LedgerAuthorizationError,
    LedgerDependencyError,
    LedgerEconomicError,
    LedgerError,
    LedgerValidationError,
    ModelValidationError,
    PriceFeedError,
    TransferFailedError,
    UnauthorizedError,
    ZeroAmountError,
)
from .ledger_state import GlobalLedgerState, LiquidationRecord
from .positions import BorrowPosition, CollateralPosition, DepositPosition

__all__ = [
    "Amount",
    "BaseLedgerModel",
    "Timestamp",
    "AssetKind",
    "LedgerOperation",
    "GlobalLedgerState",
    "LiquidationRecord",
    "CollateralPosition",
    "DepositPosition",
    "BorrowPosition",
    "LedgerError",
    "LedgerAuthorizationError",
    "LedgerValidationError",
    "LedgerEconomicError",
    "LedgerDependencyError",
    "UnauthorizedError",
    "ZeroAmountError",
    "InsufficientBalanceError",
    "InvalidWithdrawAmountError",
    "ExceededMaxBorrowError",
    "CannotBeLiquidatedError",
    "PriceFeedError",
    "TransferFailedError",
    "ModelValidationError",
]
