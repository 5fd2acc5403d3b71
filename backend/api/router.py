"""Primary API router module exposing the lending ledger over HTTP."""

import logging
from typing import NoReturn

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel, Field

from common.addresses import is_valid_account, normalize_account
from core.config import AppSettings
from models.exceptions import (
    InsufficientBalanceError,
    LedgerAuthorizationError,
    LedgerDependencyError,
    LedgerEconomicError,
    LedgerError,
    LedgerValidationError,
    PriceFeedError,
)
from services.ledger_service import LendingLedgerService


logger = logging.getLogger(__name__)


class AmountRequest(BaseModel):
    """Request payload for deposit, withdraw and repay."""

    account: str = Field(..., min_length=6)
    amount: int = Field(..., ge=0)


class BorrowRequest(BaseModel):
    """Request payload for borrow endpoint."""

    account: str = Field(..., min_length=6)
    collateral_amount: int = Field(..., ge=0)
    borrow_amount: int = Field(..., ge=0)


class LiquidateRequest(BaseModel):
    """Request payload for liquidation endpoint."""

    caller: str = Field(..., min_length=6)
    target: str = Field(..., min_length=6)


class SetPriceRequest(BaseModel):
    """Request payload for admin price updates."""

    caller: str = Field(..., min_length=6)
    price: int = Field(..., ge=0)


class AdminRequest(BaseModel):
    """Request payload for pause and unpause."""

    caller: str = Field(..., min_length=6)


def _account_or_422(account: str) -> str:
    """Checksum an account address or reject the request."""
    try:
        return normalize_account(account)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))


def _raise_ledger_http(exc: LedgerError) -> NoReturn:
    """Translate a ledger failure into the matching HTTP status."""
    if isinstance(exc, LedgerAuthorizationError):
        code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, InsufficientBalanceError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, LedgerValidationError):
        code = status.HTTP_400_BAD_REQUEST
    elif isinstance(exc, LedgerEconomicError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, PriceFeedError):
        code = status.HTTP_503_SERVICE_UNAVAILABLE
    elif isinstance(exc, LedgerDependencyError):
        code = status.HTTP_502_BAD_GATEWAY
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail={"error": exc.__class__.__name__, "message": str(exc)})


def build_router(settings: AppSettings, ledger: LendingLedgerService) -> APIRouter:
    """Build and return application routes bound to one ledger instance.

    Args:
        settings: Application settings payload.
        ledger: Ledger every endpoint reads from or mutates.

    Returns:
        APIRouter: Fully configured router with all endpoints.
    """
    router = APIRouter()

    @router.get("/", summary="Root endpoint")
    def read_root() -> dict:
        """Return a basic message confirming service availability."""
        return {"message": "{0} is running".format(settings.app_name)}

    @router.get("/health", summary="Health check")
    def health_check() -> dict:
        """Return service health status for probes and monitors."""
        return {"status": "ok"}

    @router.get("/wallet/validate", summary="Validate wallet address format")
    def wallet_validate(wallet: str) -> dict:
        """Validate wallet address using EVM checksum/address rules."""
        normalized_wallet = wallet.strip()
        is_valid = is_valid_account(normalized_wallet)
        return {
            "wallet": normalized_wallet,
            "is_valid": is_valid,
            "checksum_address": normalize_account(normalized_wallet) if is_valid else None,
        }

    # ── Lender side ──────────────────────────────────────────────────────

    @router.post("/deposit", summary="Deposit base asset")
    def deposit(payload: AmountRequest) -> dict:
        """Supply base asset to the pool."""
        account = _account_or_422(payload.account)
        try:
            return ledger.deposit(account, payload.amount)
        except LedgerError as exc:
            _raise_ledger_http(exc)
        except Exception as exc:
            logger.exception("Deposit failed account=%s", account)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    @router.post("/withdraw", summary="Withdraw base asset and yield")
    def withdraw(payload: AmountRequest) -> dict:
        """Withdraw principal and accrued yield."""
        account = _account_or_422(payload.account)
        try:
            return ledger.withdraw(account, payload.amount)
        except LedgerError as exc:
            _raise_ledger_http(exc)
        except Exception as exc:
            logger.exception("Withdraw failed account=%s", account)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    # ── Borrower side ────────────────────────────────────────────────────

    @router.post("/borrow", summary="Pledge collateral and borrow")
    def borrow(payload: BorrowRequest) -> dict:
        """Borrow base asset against pledged collateral."""
        account = _account_or_422(payload.account)
        try:
            return ledger.borrow(account, payload.collateral_amount, payload.borrow_amount)
        except LedgerError as exc:
            _raise_ledger_http(exc)
        except Exception as exc:
            logger.exception("Borrow failed account=%s", account)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    @router.post("/repay", summary="Repay debt")
    def repay(payload: AmountRequest) -> dict:
        """Repay outstanding debt."""
        account = _account_or_422(payload.account)
        try:
            return ledger.repay(account, payload.amount)
        except LedgerError as exc:
            _raise_ledger_http(exc)
        except Exception as exc:
            logger.exception("Repay failed account=%s", account)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    @router.post("/liquidate", summary="Liquidate position")
    def liquidate(payload: LiquidateRequest) -> dict:
        """Liquidate an unhealthy position and archive the event."""
        caller = _account_or_422(payload.caller)
        target = _account_or_422(payload.target)
        try:
            return ledger.liquidate(caller, target)
        except LedgerError as exc:
            _raise_ledger_http(exc)
        except Exception as exc:
            logger.exception("Liquidation failed target=%s", target)
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))

    # ── Admin ────────────────────────────────────────────────────────────

    @router.post("/admin/price", summary="Set collateral price")
    def admin_set_price(payload: SetPriceRequest) -> dict:
        """Update the collateral price in base-asset units."""
        try:
            return ledger.set_price(_account_or_422(payload.caller), payload.price)
        except LedgerError as exc:
            _raise_ledger_http(exc)

    @router.post("/admin/pause", summary="Pause the protocol")
    def admin_pause(payload: AdminRequest) -> dict:
        try:
            return ledger.pause(_account_or_422(payload.caller))
        except LedgerError as exc:
            _raise_ledger_http(exc)

    @router.post("/admin/unpause", summary="Unpause the protocol")
    def admin_unpause(payload: AdminRequest) -> dict:
        try:
            return ledger.unpause(_account_or_422(payload.caller))
        except LedgerError as exc:
            _raise_ledger_http(exc)

    # ── Reads ────────────────────────────────────────────────────────────

    @router.get("/account/{account}", summary="Get account status")
    def account_status(account: str) -> dict:
        """Get every position of one account."""
        normalized = _account_or_422(account)
        try:
            return ledger.account(normalized)
        except KeyError as exc:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))

    @router.get("/collateral/{account}", summary="Get collateral position")
    def get_collateral(account: str) -> dict:
        position = ledger.get_collateral(_account_or_422(account))
        return {"position": position.to_payload() if position is not None else None}

    @router.get("/deposits/{account}", summary="Get deposit position")
    def get_deposits(account: str) -> dict:
        position = ledger.get_deposits(_account_or_422(account))
        return {"position": position.to_payload() if position is not None else None}

    @router.get("/borrows/{account}", summary="Get borrow position")
    def get_borrows(account: str) -> dict:
        normalized = _account_or_422(account)
        position = ledger.get_borrows(normalized)
        return {
            "position": position.to_payload() if position is not None else None,
            "accrued_debt": ledger.get_debt(normalized),
        }

    @router.get("/health-factor/{account}", summary="Get health factor")
    def get_health_factor(account: str) -> dict:
        """Health factor is returned as a string; the no-debt sentinel exceeds 64 bits."""
        normalized = _account_or_422(account)
        return {
            "account": normalized,
            "health_factor": str(ledger.get_health_factor(normalized)),
            "is_liquidatable": ledger.is_liquidatable(normalized),
        }

    @router.get("/pending-yield/{account}", summary="Get pending yield")
    def get_pending_yield(account: str) -> dict:
        normalized = _account_or_422(account)
        return {"account": normalized, "pending_yield": ledger.get_pending_yield(normalized)}

    @router.get("/price", summary="Get collateral price")
    def get_price() -> dict:
        return {"price": ledger.get_price()}

    @router.get("/stats", summary="Get global stats")
    def stats() -> dict:
        """Snapshot of the global ledger state."""
        return ledger.get_protocol_stats().to_payload()

    @router.get("/positions/all", summary="Get all positions")
    def positions_all(liquidatable_only: bool = False) -> dict:
        """Get all borrower positions with optional liquidatable filter."""
        return ledger.all_positions(liquidatable_only=liquidatable_only)

    @router.get("/archive/liquidations", summary="Get liquidation archive")
    def archive_liquidations(
        page: int = Query(default=0, ge=0),
        page_size: int = Query(default=20, gt=0, le=100),
    ) -> dict:
        """Get paginated liquidation archive."""
        return ledger.archive_liquidations(page=page, page_size=page_size)

    return router
