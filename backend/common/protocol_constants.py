"""Canonical protocol constants and math, shared by the ledger and the API.

Every formula here uses unsigned-integer semantics: Python ints with floor
division, and aggregate subtraction routed through :func:`saturating_sub`.

    collateral_value = collateral_amount * price
    max_borrowable   = collateral_value * LTV / 100
    liquidatable    <=> collateral_value * 100 <= debt * LIQUIDATION_THRESHOLD
    health_factor    = collateral_value * 100 / debt   (MAX when debt == 0)
"""

from __future__ import annotations

from dataclasses import dataclass
import logging


logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Scaling factors
# ---------------------------------------------------------------------------
BASIS_POINTS: int = 10_000
SECONDS_PER_YEAR: int = 365 * 24 * 60 * 60
DEFAULT_RATE_SCALE: int = 10**18
HEALTH_FACTOR_MAX: int = 2**256 - 1  # type(uint256).max

# ---------------------------------------------------------------------------
# Protocol risk parameters  (percentage, NOT basis-points)
# ---------------------------------------------------------------------------
LTV_PERCENT: int = 70
LIQUIDATION_THRESHOLD_PERCENT: int = 80
LIQUIDATOR_REWARD_PERCENT: int = 5
ANNUAL_INTEREST_PERCENT: int = 5


@dataclass(frozen=True)
class ProtocolParameters:
    """Risk and rate parameters a ledger instance is created with."""

    ltv_percent: int = LTV_PERCENT
    liquidation_threshold_percent: int = LIQUIDATION_THRESHOLD_PERCENT
    liquidator_reward_percent: int = LIQUIDATOR_REWARD_PERCENT
    annual_interest_percent: int = ANNUAL_INTEREST_PERCENT
    interest_rate_scale: int = DEFAULT_RATE_SCALE
    liquidate_when_paused: bool = True

    def __post_init__(self) -> None:
        for name in ("ltv_percent", "liquidation_threshold_percent", "liquidator_reward_percent"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError("{0} must be between 0 and 100, got {1}".format(name, value))
        if self.annual_interest_percent < 0:
            raise ValueError("annual_interest_percent must be >= 0")
        if self.interest_rate_scale <= 0:
            raise ValueError("interest_rate_scale must be > 0")


# ---------------------------------------------------------------------------
# Arithmetic helpers
# ---------------------------------------------------------------------------

def saturating_sub(minuend: int, subtrahend: int, label: str = "value") -> int:
    """Return ``max(minuend - subtrahend, 0)``.

    A clamp means an aggregate drifted from the per-account records it sums,
    so it is logged as a warning instead of passing silently.
    """
    if subtrahend > minuend:
        logger.warning(
            "Saturating subtraction clamped label=%s minuend=%s subtrahend=%s",
            label,
            minuend,
            subtrahend,
        )
        return 0
    return minuend - subtrahend


def collateral_value(collateral_amount: int, price: int) -> int:
    """Value of a collateral amount denominated in the base asset."""
    return collateral_amount * price


def compute_max_borrow(collateral_amount: int, price: int, ltv_percent: int = LTV_PERCENT) -> int:
    """Maximum debt a collateral amount can support at the given price."""
    return collateral_value(collateral_amount, price) * ltv_percent // 100


def is_liquidatable(
    collateral_amount: int,
    price: int,
    debt: int,
    threshold_percent: int = LIQUIDATION_THRESHOLD_PERCENT,
) -> bool:
    """Exact liquidation test: ``collateral_value * 100 <= debt * threshold``.

    Zero debt is never liquidatable.
    """
    if debt <= 0:
        return False
    return collateral_value(collateral_amount, price) * 100 <= debt * threshold_percent


def compute_health_factor(collateral_amount: int, price: int, debt: int) -> int:
    """Collateral value as an integer percentage of debt.

    Returns :data:`HEALTH_FACTOR_MAX` when *debt* is zero. The result is
    rounded up, so ``health_factor <= threshold_percent`` holds exactly when
    :func:`is_liquidatable` does.
    """
    if debt <= 0:
        return HEALTH_FACTOR_MAX
    return -(-(collateral_value(collateral_amount, price) * 100) // debt)


def compute_liquidator_reward(collateral_amount: int, reward_percent: int = LIQUIDATOR_REWARD_PERCENT) -> int:
    """Share of seized collateral paid to the liquidator."""
    return collateral_amount * reward_percent // 100


def compute_liquidation_price(
    collateral_amount: int,
    debt: int,
    threshold_percent: int = LIQUIDATION_THRESHOLD_PERCENT,
) -> int:
    """Highest integer price at which the position is liquidatable.

    Derivation from the threshold test:
        collateral * price * 100 <= debt * threshold
        price <= debt * threshold / (collateral * 100)

    Returns 0 when there is no collateral or no debt.
    """
    if collateral_amount <= 0 or debt <= 0:
        return 0
    return (debt * threshold_percent) // (collateral_amount * 100)
