"""Application entrypoint for the lending ledger FastAPI backend."""

import sys
from pathlib import Path
from typing import Optional

# ---------------------------------------------------------------------------
# Ensure backend packages are importable when run as a script
# ---------------------------------------------------------------------------
_BACKEND_DIR = Path(__file__).resolve().parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from fastapi import FastAPI
import uvicorn

from api.router import build_router
from common.addresses import normalize_account
from core import AppSettings, get_logger, load_settings, setup_logging
from services import LendingLedgerService, LiquidationKeeper


logger = get_logger(__name__)


def build_ledger(settings: AppSettings) -> LendingLedgerService:
    """Create the ledger instance described by *settings*."""
    return LendingLedgerService(
        admin=normalize_account(settings.ledger_admin),
        parameters=settings.protocol_parameters(),
        initial_price=settings.ledger_initial_price,
    )


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and configure a FastAPI application instance."""
    settings = settings or load_settings()
    setup_logging(settings.log_level)
    app = FastAPI(title=settings.app_name, debug=settings.debug)

    ledger = build_ledger(settings)
    app.state.ledger = ledger
    app.include_router(build_router(settings, ledger))

    # ── Background services ──────────────────────────────────────────────
    keeper = LiquidationKeeper(settings=settings, ledger=ledger)
    app.state.liquidation_keeper = keeper

    @app.on_event("startup")
    async def _startup_background_services() -> None:
        """Start background services on application startup."""
        try:
            await app.state.liquidation_keeper.start()
        except Exception:
            logger.exception("Failed to start background services during startup.")

    @app.on_event("shutdown")
    async def _shutdown_background_services() -> None:
        """Stop background services on application shutdown."""
        try:
            await app.state.liquidation_keeper.stop()
        except Exception:
            logger.exception("Failed to stop background services during shutdown.")

    logger.info("Application initialized: %s", settings.app_name)
    return app


def run() -> None:
    """Start the ASGI server for local development."""
    settings = load_settings()
    try:
        uvicorn.run("main:create_app", factory=True, host=settings.host, port=settings.port, reload=settings.debug)
    except Exception:
        logger.exception("Failed to start uvicorn server.")
        raise


if __name__ == "__main__":
    run()
