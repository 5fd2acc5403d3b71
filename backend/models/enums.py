"""Reusable enums for ledger domain models."""

from enum import Enum


class StringEnum(str, Enum):
    """Base enum class with string behavior for JSON serialization."""


class AssetKind(StringEnum):
    """The two assets the market moves."""

    BASE = "BASE"
    COLLATERAL = "COLLATERAL"


class LedgerOperation(StringEnum):
    """Operation names recorded on receipts and in logs."""

    DEPOSIT = "DEPOSIT"
    WITHDRAW = "WITHDRAW"
    BORROW = "BORROW"
    REPAY = "REPAY"
    LIQUIDATE = "LIQUIDATE"
    SET_PRICE = "SET_PRICE"
    PAUSE = "PAUSE"
    UNPAUSE = "UNPAUSE"
