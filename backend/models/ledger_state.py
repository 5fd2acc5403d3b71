"""Global ledger state and liquidation audit records."""

import logging

from pydantic import Field, model_validator

from .base import Amount, BaseLedgerModel, Timestamp


logger = logging.getLogger(__name__)


class GlobalLedgerState(BaseLedgerModel):
    """Aggregate totals, yield index and admin controls of one ledger."""

    total_collateral: Amount = Field(default=0, ge=0)
    total_deposits: Amount = Field(default=0, ge=0)
    total_borrows: Amount = Field(default=0, ge=0)
    cumulative_yield_index: int = Field(default=0, ge=0)
    last_interest_update: Timestamp = Field(default=0, ge=0)
    price: int = Field(default=0, ge=0)
    paused: bool = Field(default=False)

    reserve_collateral: Amount = Field(default=0, ge=0)
    written_off_debt: Amount = Field(default=0, ge=0)
    liquidation_count: int = Field(default=0, ge=0)


class LiquidationRecord(BaseLedgerModel):
    """Archive entry for one executed liquidation."""

    id: int = Field(..., ge=0)
    borrower: str = Field(..., min_length=1)
    liquidator: str = Field(..., min_length=1)
    debt_cleared: Amount = Field(..., ge=0)
    collateral_seized: Amount = Field(..., ge=0)
    liquidator_reward: Amount = Field(..., ge=0)
    reserve_retained: Amount = Field(..., ge=0)
    price: int = Field(..., gt=0)
    timestamp: Timestamp = Field(..., ge=0)
    tx_hash: str = Field(..., min_length=3)

    @model_validator(mode="after")
    def _validate_settlement(self) -> "LiquidationRecord":
        """Reward and retained reserve must add up to the seized collateral."""
        if self.liquidator_reward + self.reserve_retained != self.collateral_seized:
            logger.error(
                "Liquidation settlement mismatch id=%s borrower=%s seized=%s reward=%s reserve=%s",
                self.id,
                self.borrower,
                self.collateral_seized,
                self.liquidator_reward,
                self.reserve_retained,
            )
            raise ValueError("liquidator_reward + reserve_retained must equal collateral_seized")
        return self
