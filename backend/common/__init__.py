"""Common reusable utility exports."""

from .addresses import is_valid_account, normalize_account
from .protocol_constants import (
    BASIS_POINTS,
    HEALTH_FACTOR_MAX,
    SECONDS_PER_YEAR,
    ProtocolParameters,
    compute_health_factor,
    compute_max_borrow,
    is_liquidatable,
    saturating_sub,
)

__all__ = [
    "BASIS_POINTS",
    "HEALTH_FACTOR_MAX",
    "SECONDS_PER_YEAR",
    "ProtocolParameters",
    "compute_health_factor",
    "compute_max_borrow",
    "is_liquidatable",
    "saturating_sub",
    "is_valid_account",
    "normalize_account",
]
