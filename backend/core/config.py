"""Configuration loading utilities for YAML-based application settings."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from common.protocol_constants import (
    ANNUAL_INTEREST_PERCENT,
    DEFAULT_RATE_SCALE,
    LIQUIDATION_THRESHOLD_PERCENT,
    LIQUIDATOR_REWARD_PERCENT,
    LTV_PERCENT,
    ProtocolParameters,
)

from .logging_config import get_logger


logger = get_logger(__name__)
_BASE_DIR = Path(__file__).resolve().parent.parent
_CONFIG_PATH = _BASE_DIR / "config.yml"

_DEFAULT_ADMIN = "0x0000000000000000000000000000000000000001"


@dataclass(frozen=True)
class AppSettings:
    """Application settings loaded from YAML configuration file."""

    app_name: str
    debug: bool
    host: str
    port: int
    log_level: str
    ledger_admin: str
    ledger_initial_price: int
    ledger_ltv_percent: int
    ledger_liquidation_threshold_percent: int
    ledger_liquidator_reward_percent: int
    ledger_annual_interest_percent: int
    ledger_interest_rate_scale: int
    ledger_liquidate_when_paused: bool
    keeper_enabled: bool
    keeper_account: Optional[str]
    keeper_poll_interval_sec: int

    def protocol_parameters(self) -> ProtocolParameters:
        """Build the risk parameters a ledger instance is created with."""
        return ProtocolParameters(
            ltv_percent=self.ledger_ltv_percent,
            liquidation_threshold_percent=self.ledger_liquidation_threshold_percent,
            liquidator_reward_percent=self.ledger_liquidator_reward_percent,
            annual_interest_percent=self.ledger_annual_interest_percent,
            interest_rate_scale=self.ledger_interest_rate_scale,
            liquidate_when_paused=self.ledger_liquidate_when_paused,
        )


def _to_bool(value: Any, default: bool = False) -> bool:
    """Convert value to bool with a default fallback."""
    try:
        if isinstance(value, bool):
            return value
        return value.strip().lower() in {"1", "true", "yes", "on"}
    except (AttributeError, ValueError):
        logger.warning("Invalid boolean value '%s'. Using default=%s", value, default)
        return default


def _to_int(value: Any, default: int) -> int:
    """Convert value to int with a default fallback."""
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning("Invalid integer value '%s'. Using default=%s", value, default)
        return default


def _read_config(path: Optional[Path] = None) -> dict:
    """Read and parse YAML configuration."""
    config_path = path or _CONFIG_PATH
    try:
        with config_path.open("r", encoding="utf-8") as config_file:
            config_data = yaml.safe_load(config_file) or {}
        logger.info("Configuration loaded from %s", config_path)
        return config_data
    except FileNotFoundError:
        logger.warning("Config file not found at %s. Falling back to defaults.", config_path)
        return {}
    except yaml.YAMLError:
        logger.exception("Failed to parse config file %s", config_path)
        return {}


def load_settings(path: Optional[Path] = None) -> AppSettings:
    """Load and validate application settings from `config.yml`."""
    config = _read_config(path)
    app_cfg = config.get("app") or {}
    ledger_cfg = config.get("ledger") or {}
    keeper_cfg = config.get("keeper") or {}

    settings = AppSettings(
        app_name=str(app_cfg.get("name", "Lending Ledger API")),
        debug=_to_bool(app_cfg.get("debug", False), False),
        host=str(app_cfg.get("host", "127.0.0.1")),
        port=_to_int(app_cfg.get("port", 8000), 8000),
        log_level=str(app_cfg.get("log_level", "INFO")).upper(),
        ledger_admin=str(ledger_cfg.get("admin") or _DEFAULT_ADMIN),
        ledger_initial_price=_to_int(ledger_cfg.get("initial_price", 0), 0),
        ledger_ltv_percent=_to_int(ledger_cfg.get("ltv_percent", LTV_PERCENT), LTV_PERCENT),
        ledger_liquidation_threshold_percent=_to_int(
            ledger_cfg.get("liquidation_threshold_percent", LIQUIDATION_THRESHOLD_PERCENT),
            LIQUIDATION_THRESHOLD_PERCENT,
        ),
        ledger_liquidator_reward_percent=_to_int(
            ledger_cfg.get("liquidator_reward_percent", LIQUIDATOR_REWARD_PERCENT),
            LIQUIDATOR_REWARD_PERCENT,
        ),
        ledger_annual_interest_percent=_to_int(
            ledger_cfg.get("annual_interest_percent", ANNUAL_INTEREST_PERCENT),
            ANNUAL_INTEREST_PERCENT,
        ),
        ledger_interest_rate_scale=_to_int(
            ledger_cfg.get("interest_rate_scale", DEFAULT_RATE_SCALE),
            DEFAULT_RATE_SCALE,
        ),
        ledger_liquidate_when_paused=_to_bool(ledger_cfg.get("liquidate_when_paused", True), True),
        keeper_enabled=_to_bool(keeper_cfg.get("enabled", False), False),
        keeper_account=keeper_cfg.get("account"),
        keeper_poll_interval_sec=_to_int(keeper_cfg.get("poll_interval_sec", 10), 10),
    )
    return settings
