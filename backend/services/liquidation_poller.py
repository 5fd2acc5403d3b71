"""Background liquidation keeper for the in-process ledger.

Interest never accrues on a timer; the keeper only looks for positions that
have crossed the liquidation threshold (after a price update, or after debt
accrued at the last touch) and closes them on behalf of ``keeper_account``.
"""

import asyncio
import logging
from typing import List, Optional

from common.addresses import normalize_account
from core.config import AppSettings
from models.exceptions import LedgerError
from services.ledger_service import LendingLedgerService


logger = logging.getLogger(__name__)


class LiquidationKeeper:
    """Continuously scan borrower health and execute liquidation when required."""

    def __init__(self, settings: AppSettings, ledger: LendingLedgerService) -> None:
        """Create a keeper bound to one ledger instance."""
        self._settings = settings
        self._ledger = ledger
        self._account = self._resolve_account(settings.keeper_account)
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

    @property
    def account(self) -> Optional[str]:
        """Checksummed account credited with liquidation rewards."""
        return self._account

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @staticmethod
    def _resolve_account(account: Optional[str]) -> Optional[str]:
        """Checksum the configured keeper account; invalid or missing yields None."""
        if not account:
            return None
        try:
            return normalize_account(account)
        except ValueError:
            logger.warning("Invalid keeper account %s", account)
            return None

    def _is_enabled(self) -> bool:
        """Return whether keeper feature is enabled."""
        return self._settings.keeper_enabled

    def _is_config_complete(self) -> bool:
        """Validate required runtime configuration values."""
        return self._account is not None and self._settings.keeper_poll_interval_sec > 0

    async def start(self) -> None:
        """Start polling loop in background task if enabled and configured."""
        if not self._is_enabled():
            logger.info("Liquidation keeper disabled by keeper.enabled=false")
            return
        if not self._is_config_complete():
            logger.warning("Liquidation keeper enabled but configuration is incomplete.")
            return
        if self.is_running:
            logger.info("Liquidation keeper already running.")
            return

        self._stop_event.clear()
        self._task = asyncio.create_task(self._run_loop(), name="liquidation-keeper")
        logger.info("Liquidation keeper started account=%s", self._account)

    async def stop(self) -> None:
        """Gracefully stop background polling task."""
        if not self._task:
            return
        self._stop_event.set()
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            logger.info("Liquidation keeper task cancelled.")
        finally:
            self._task = None

    async def _run_loop(self) -> None:
        """Main polling loop for liquidation checks."""
        logger.info("Liquidation keeper loop running.")
        while not self._stop_event.is_set():
            try:
                await self.poll_once()
            except Exception:
                logger.exception("Unhandled error during liquidation poll cycle.")

            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=float(self._settings.keeper_poll_interval_sec),
                )
            except asyncio.TimeoutError:
                continue

    async def poll_once(self) -> List[dict]:
        """Execute one liquidation cycle; returns the receipts of closed positions."""
        candidates = self._ledger.all_positions(liquidatable_only=True)["positions"]
        if not candidates:
            logger.debug("No liquidatable positions found.")
            return []

        logger.info("Liquidation cycle started candidates=%d", len(candidates))
        receipts = []
        for candidate in candidates:
            receipt = self._liquidate(candidate["account"])
            if receipt is not None:
                receipts.append(receipt)
            await asyncio.sleep(0)
        return receipts

    def _liquidate(self, borrower: str) -> Optional[dict]:
        """Liquidate one borrower; a failure is logged and does not stop the cycle."""
        try:
            return self._ledger.liquidate(self._account, borrower)
        except LedgerError as exc:
            logger.warning("Liquidation skipped borrower=%s reason=%s", borrower, exc)
            return None
