"""Per-account position records."""

from pydantic import Field

from .base import Amount, BaseLedgerModel, Timestamp


class CollateralPosition(BaseLedgerModel):
    """Collateral pledged by a borrower."""

    collateral_amount: Amount = Field(..., ge=0)


class DepositPosition(BaseLedgerModel):
    """Base asset supplied by a lender.

    ``yield_index_snapshot`` is the cumulative yield index at the last touch;
    yield owed is the index delta scaled by ``principal``.
    """

    principal: Amount = Field(..., ge=0)
    yield_index_snapshot: int = Field(default=0, ge=0)


class BorrowPosition(BaseLedgerModel):
    """Outstanding debt with interest folded in up to ``last_accrual``."""

    principal: Amount = Field(..., ge=0)
    last_accrual: Timestamp = Field(..., ge=0)
