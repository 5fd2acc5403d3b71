"""Lending ledger service: the state machine behind deposits, borrows and liquidations.

Every mutating operation runs under one re-entrant lock and inside a
transaction that snapshots the global state, the position tables and the
liquidation archive. Any exception restores the snapshot, so a failed call
(including a rejected transfer or the index roll that preceded it) leaves
no trace in the ledger.
"""

from contextlib import contextmanager
from datetime import datetime, timezone
import logging
import threading
from typing import Any, Callable, Dict, Iterator, List, Optional
from uuid import uuid4

from common.protocol_constants import (
    ProtocolParameters,
    compute_health_factor,
    compute_liquidation_price,
    compute_liquidator_reward,
    compute_max_borrow,
    is_liquidatable,
    saturating_sub,
)
from models.enums import AssetKind, LedgerOperation
from models.exceptions import (
    CannotBeLiquidatedError,
    ExceededMaxBorrowError,
    InsufficientBalanceError,
    InvalidWithdrawAmountError,
    PriceFeedError,
    UnauthorizedError,
    ZeroAmountError,
)
from models.ledger_state import GlobalLedgerState, LiquidationRecord
from models.positions import BorrowPosition, CollateralPosition, DepositPosition
from services.interest_engine import InterestEngine
from services.position_store import PositionStore
from services.transfer_gateway import InMemoryTransferGateway, TransferGateway, pull, push


logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def _now_epoch() -> int:
    """Return current UTC epoch seconds."""
    return int(datetime.now(timezone.utc).timestamp())


def _tx_hash() -> str:
    return "0x{0}".format(uuid4().hex)


class LendingLedgerService:
    """Single-pool lending ledger with one base asset and one collateral asset."""

    def __init__(
        self,
        admin: str,
        parameters: Optional[ProtocolParameters] = None,
        gateway: Optional[TransferGateway] = None,
        clock: Optional[Clock] = None,
        initial_price: int = 0,
    ) -> None:
        if not admin:
            raise ValueError("admin is required")
        if initial_price < 0:
            raise ValueError("initial_price must be >= 0")
        self._admin = admin
        self._params = parameters or ProtocolParameters()
        self._gateway = gateway if gateway is not None else InMemoryTransferGateway()
        self._clock = clock or _now_epoch
        self._engine = InterestEngine(
            annual_interest_percent=self._params.annual_interest_percent,
            rate_scale=self._params.interest_rate_scale,
        )
        self._store = PositionStore()
        self._archive: List[LiquidationRecord] = []
        self._lock = threading.RLock()
        self._last_now = int(self._clock())
        self._state = GlobalLedgerState(last_interest_update=self._last_now, price=initial_price)
        logger.info(
            "Ledger initialized admin=%s ltv=%s threshold=%s reward=%s rate=%s price=%s",
            admin,
            self._params.ltv_percent,
            self._params.liquidation_threshold_percent,
            self._params.liquidator_reward_percent,
            self._params.annual_interest_percent,
            initial_price,
        )

    @property
    def admin(self) -> str:
        return self._admin

    @property
    def parameters(self) -> ProtocolParameters:
        return self._params

    @property
    def gateway(self) -> TransferGateway:
        return self._gateway

    # ------------------------------------------------------------------
    # Lender side
    # ------------------------------------------------------------------

    def deposit(self, account: str, amount: int) -> dict:
        """Supply base asset; repeated deposits accumulate."""
        with self._transaction(LedgerOperation.DEPOSIT) as now:
            self._require_not_paused()
            self._require_positive(amount, "amount")
            self._engine.roll_global_index(self._state, now)

            principal = self._store.deposit_principal(account) + amount
            self._store.put_deposit(
                account,
                DepositPosition(
                    principal=principal,
                    yield_index_snapshot=self._state.cumulative_yield_index,
                ),
            )
            self._state.total_deposits += amount
            self._gateway.execute([pull(account, AssetKind.BASE, amount)])

            logger.info("Deposit account=%s amount=%s principal=%s", account, amount, principal)
            return self._receipt(LedgerOperation.DEPOSIT, account, now, amount=amount, principal=principal)

    def withdraw(self, account: str, amount: int) -> dict:
        """Withdraw up to principal plus pending yield."""
        with self._transaction(LedgerOperation.WITHDRAW) as now:
            self._require_not_paused()
            self._require_positive(amount, "amount")
            position = self._store.get_deposit(account)
            if position is None:
                raise InsufficientBalanceError("No deposit position for account {0}".format(account))
            self._engine.roll_global_index(self._state, now)

            pending = self._engine.pending_yield(self._state, position)
            available = position.principal + pending
            if amount > available:
                raise InvalidWithdrawAmountError(
                    "Withdrawal {0} exceeds available balance {1}".format(amount, available)
                )

            remaining = max(position.principal - amount, 0)
            principal_withdrawn = position.principal - remaining
            if remaining == 0:
                self._store.delete_deposit(account)
            else:
                self._store.put_deposit(
                    account,
                    DepositPosition(
                        principal=remaining,
                        yield_index_snapshot=self._state.cumulative_yield_index,
                    ),
                )
            self._state.total_deposits = saturating_sub(
                self._state.total_deposits, principal_withdrawn, "total_deposits"
            )
            self._gateway.execute([push(account, AssetKind.BASE, amount)])

            logger.info(
                "Withdraw account=%s amount=%s principal_withdrawn=%s remaining=%s",
                account,
                amount,
                principal_withdrawn,
                remaining,
            )
            return self._receipt(
                LedgerOperation.WITHDRAW,
                account,
                now,
                amount=amount,
                principal_withdrawn=principal_withdrawn,
                yield_paid=amount - principal_withdrawn,
                remaining_principal=remaining,
            )

    # ------------------------------------------------------------------
    # Borrower side
    # ------------------------------------------------------------------

    def borrow(self, account: str, collateral_amount: int, borrow_amount: int) -> dict:
        """Pledge more collateral and draw base asset against the whole position."""
        with self._transaction(LedgerOperation.BORROW) as now:
            self._require_not_paused()
            self._require_positive(collateral_amount, "collateral_amount")
            self._require_positive(borrow_amount, "borrow_amount")
            price = self._require_price()
            self._engine.roll_global_index(self._state, now)

            new_collateral = self._store.collateral_amount(account) + collateral_amount
            max_borrowable = compute_max_borrow(new_collateral, price, self._params.ltv_percent)
            existing = self._store.get_borrow(account)
            stored_debt = existing.principal if existing is not None else 0
            current_debt = self._engine.accrued_debt(existing, now) if existing is not None else 0
            new_debt = current_debt + borrow_amount
            if new_debt > max_borrowable:
                raise ExceededMaxBorrowError(
                    "Debt {0} would exceed max borrowable {1}".format(new_debt, max_borrowable)
                )

            self._store.put_borrow(account, BorrowPosition(principal=new_debt, last_accrual=now))
            self._store.put_collateral(account, CollateralPosition(collateral_amount=new_collateral))
            self._state.total_collateral += collateral_amount
            self._state.total_borrows += (current_debt - stored_debt) + borrow_amount
            self._gateway.execute(
                [
                    pull(account, AssetKind.COLLATERAL, collateral_amount),
                    push(account, AssetKind.BASE, borrow_amount),
                ]
            )

            logger.info(
                "Borrow account=%s collateral_added=%s borrowed=%s debt=%s max_borrowable=%s",
                account,
                collateral_amount,
                borrow_amount,
                new_debt,
                max_borrowable,
            )
            return self._receipt(
                LedgerOperation.BORROW,
                account,
                now,
                collateral_added=collateral_amount,
                borrowed=borrow_amount,
                collateral=new_collateral,
                debt=new_debt,
                max_borrowable=max_borrowable,
            )

    def repay(self, account: str, amount: int) -> dict:
        """Repay debt; settling it in full releases the collateral."""
        with self._transaction(LedgerOperation.REPAY) as now:
            self._require_not_paused()
            self._require_positive(amount, "amount")
            position = self._store.get_borrow(account)
            if position is None:
                raise InsufficientBalanceError("No borrow position for account {0}".format(account))
            self._engine.roll_global_index(self._state, now)

            total_debt = self._engine.accrued_debt(position, now)
            if amount >= total_debt:
                collateral = self._store.collateral_amount(account)
                self._store.delete_borrow(account)
                self._store.delete_collateral(account)
                self._state.total_borrows = saturating_sub(
                    self._state.total_borrows, position.principal, "total_borrows"
                )
                self._state.total_collateral = saturating_sub(
                    self._state.total_collateral, collateral, "total_collateral"
                )
                self._gateway.execute(
                    [
                        pull(account, AssetKind.BASE, total_debt),
                        push(account, AssetKind.COLLATERAL, collateral),
                    ]
                )
                logger.info(
                    "Repay settled account=%s repaid=%s offered=%s collateral_released=%s",
                    account,
                    total_debt,
                    amount,
                    collateral,
                )
                return self._receipt(
                    LedgerOperation.REPAY,
                    account,
                    now,
                    repaid=total_debt,
                    remaining_debt=0,
                    collateral_released=collateral,
                    settled=True,
                )

            remaining_debt = total_debt - amount
            self._store.put_borrow(account, BorrowPosition(principal=remaining_debt, last_accrual=now))
            self._state.total_borrows = saturating_sub(
                self._state.total_borrows + (total_debt - position.principal),
                amount,
                "total_borrows",
            )
            self._gateway.execute([pull(account, AssetKind.BASE, amount)])

            logger.info("Repay partial account=%s repaid=%s remaining_debt=%s", account, amount, remaining_debt)
            return self._receipt(
                LedgerOperation.REPAY,
                account,
                now,
                repaid=amount,
                remaining_debt=remaining_debt,
                collateral_released=0,
                settled=False,
            )

    def liquidate(self, caller: str, target: str) -> dict:
        """Close an undercollateralized position.

        The debt is written off, ``liquidator_reward_percent`` of the seized
        collateral goes to *caller*, and the remainder stays in the pool as
        reserve collateral.
        """
        with self._transaction(LedgerOperation.LIQUIDATE) as now:
            if self._state.paused and not self._params.liquidate_when_paused:
                raise UnauthorizedError("Protocol is paused")
            price = self._require_price()
            self._engine.roll_global_index(self._state, now)

            borrow = self._store.get_borrow(target)
            collateral = self._store.get_collateral(target)
            if borrow is None or collateral is None:
                raise CannotBeLiquidatedError("No open position for account {0}".format(target))
            debt = self._engine.accrued_debt(borrow, now)
            if debt <= 0:
                raise CannotBeLiquidatedError("Account {0} has no debt".format(target))
            seized = collateral.collateral_amount
            if not is_liquidatable(seized, price, debt, self._params.liquidation_threshold_percent):
                raise CannotBeLiquidatedError(
                    "Position is healthy - collateral value {0} vs debt {1}".format(seized * price, debt)
                )

            self._state.total_collateral = saturating_sub(self._state.total_collateral, seized, "total_collateral")
            self._state.total_borrows = saturating_sub(self._state.total_borrows, borrow.principal, "total_borrows")
            self._store.delete_borrow(target)
            self._store.delete_collateral(target)

            reward = compute_liquidator_reward(seized, self._params.liquidator_reward_percent)
            reserve = seized - reward
            self._state.reserve_collateral += reserve
            self._state.written_off_debt += debt
            self._state.liquidation_count += 1

            tx_hash = _tx_hash()
            record = LiquidationRecord(
                id=len(self._archive),
                borrower=target,
                liquidator=caller,
                debt_cleared=debt,
                collateral_seized=seized,
                liquidator_reward=reward,
                reserve_retained=reserve,
                price=price,
                timestamp=now,
                tx_hash=tx_hash,
            )
            self._archive.append(record)
            self._gateway.execute([push(caller, AssetKind.COLLATERAL, reward)])

            logger.warning(
                "Liquidated borrower=%s liquidator=%s debt=%s seized=%s reward=%s price=%s",
                target,
                caller,
                debt,
                seized,
                reward,
                price,
            )
            payload = record.to_payload()
            payload["operation"] = LedgerOperation.LIQUIDATE.value
            payload["archive_record_id"] = payload.pop("id")
            return payload

    # ------------------------------------------------------------------
    # Admin controls
    # ------------------------------------------------------------------

    def set_price(self, caller: str, price: int) -> dict:
        """Update the collateral price in base-asset units."""
        with self._lock:
            self._require_admin(caller)
            if price <= 0:
                raise ZeroAmountError("price must be > 0")
            previous = self._state.price
            self._state.price = price
            logger.info("Price updated previous=%s price=%s", previous, price)
            return self._receipt(LedgerOperation.SET_PRICE, caller, self._now(), previous_price=previous, price=price)

    def pause(self, caller: str) -> dict:
        with self._lock:
            self._require_admin(caller)
            self._state.paused = True
            logger.warning("Protocol paused by=%s", caller)
            return self._receipt(LedgerOperation.PAUSE, caller, self._now(), paused=True)

    def unpause(self, caller: str) -> dict:
        with self._lock:
            self._require_admin(caller)
            self._state.paused = False
            logger.info("Protocol unpaused by=%s", caller)
            return self._receipt(LedgerOperation.UNPAUSE, caller, self._now(), paused=False)

    # ------------------------------------------------------------------
    # Read-only surface
    # ------------------------------------------------------------------

    def get_collateral(self, account: str) -> Optional[CollateralPosition]:
        with self._lock:
            position = self._store.get_collateral(account)
            return position.model_copy() if position is not None else None

    def get_deposits(self, account: str) -> Optional[DepositPosition]:
        with self._lock:
            position = self._store.get_deposit(account)
            return position.model_copy() if position is not None else None

    def get_borrows(self, account: str) -> Optional[BorrowPosition]:
        with self._lock:
            position = self._store.get_borrow(account)
            return position.model_copy() if position is not None else None

    def get_price(self) -> int:
        with self._lock:
            return self._state.price

    def get_pending_yield(self, account: str) -> int:
        """Yield owed at the stored index; does not roll the index."""
        with self._lock:
            position = self._store.get_deposit(account)
            if position is None:
                return 0
            return self._engine.pending_yield(self._state, position)

    def get_debt(self, account: str) -> int:
        """Debt of *account* accrued to the current clock."""
        with self._lock:
            position = self._store.get_borrow(account)
            if position is None:
                return 0
            return self._engine.accrued_debt(position, self._peek_now())

    def get_health_factor(self, account: str) -> int:
        """Collateral value as a percentage of accrued debt (display only)."""
        with self._lock:
            return compute_health_factor(
                self._store.collateral_amount(account),
                self._state.price,
                self.get_debt(account),
            )

    def is_liquidatable(self, account: str) -> bool:
        """Whether :meth:`liquidate` would accept *account* right now."""
        with self._lock:
            if self._state.price <= 0 or self._store.get_collateral(account) is None:
                return False
            return is_liquidatable(
                self._store.collateral_amount(account),
                self._state.price,
                self.get_debt(account),
                self._params.liquidation_threshold_percent,
            )

    def get_protocol_stats(self) -> GlobalLedgerState:
        with self._lock:
            return self._state.model_copy()

    def account(self, account: str) -> dict:
        """Fetch a summary of every position *account* holds."""
        with self._lock:
            if account not in self._store.accounts():
                raise KeyError("Account not found: {0}".format(account))
            return self._account_payload(account)

    def all_positions(self, liquidatable_only: bool = False) -> dict:
        """List borrower positions, optionally only those open to liquidation."""
        with self._lock:
            records = []
            for account, _ in self._store.iter_borrowers():
                payload = self._account_payload(account)
                if liquidatable_only and not payload["is_liquidatable"]:
                    continue
                records.append(payload)
            return {"total": len(records), "positions": records}

    def archive_liquidations(self, page: int = 0, page_size: int = 20) -> dict:
        """Return paginated liquidation archive."""
        if page < 0:
            raise ValueError("page must be >= 0")
        if page_size <= 0:
            raise ValueError("page_size must be > 0")
        with self._lock:
            start = page * page_size
            paged = self._archive[start:start + page_size]
            return {
                "total": len(self._archive),
                "page": page,
                "page_size": page_size,
                "records": [record.to_payload() for record in paged],
            }

    def audit_totals(self) -> Dict[str, Any]:
        """Compare each aggregate with the sum of the records it tracks."""
        with self._lock:
            sums = {
                "total_collateral": self._store.sum_collateral(),
                "total_deposits": self._store.sum_deposits(),
                "total_borrows": self._store.sum_borrows(),
            }
            report: Dict[str, Any] = {}
            for name, expected in sums.items():
                report[name] = {"aggregate": getattr(self._state, name), "positions": expected}
            report["consistent"] = all(item["aggregate"] == item["positions"] for item in report.values())
            return report

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _transaction(self, operation: LedgerOperation) -> Iterator[int]:
        with self._lock:
            state_snapshot = self._state.model_copy(deep=True)
            store_snapshot = self._store.snapshot()
            archive_length = len(self._archive)
            try:
                yield self._now()
            except Exception as exc:
                self._state = state_snapshot
                self._store.restore(store_snapshot)
                del self._archive[archive_length:]
                logger.info("Operation rolled back operation=%s reason=%s", operation.value, exc)
                raise

    def _now(self) -> int:
        """Clock reading that never goes backwards."""
        now = self._peek_now()
        self._last_now = now
        return now

    def _peek_now(self) -> int:
        reading = int(self._clock())
        if reading < self._last_now:
            logger.debug("Clock went backwards reading=%s last=%s", reading, self._last_now)
            return self._last_now
        return reading

    def _require_admin(self, caller: str) -> None:
        if caller != self._admin:
            raise UnauthorizedError("Caller {0} is not the admin".format(caller))

    def _require_not_paused(self) -> None:
        if self._state.paused:
            raise UnauthorizedError("Protocol is paused")

    @staticmethod
    def _require_positive(value: int, name: str) -> None:
        if value <= 0:
            raise ZeroAmountError("{0} must be > 0".format(name))

    def _require_price(self) -> int:
        if self._state.price <= 0:
            raise PriceFeedError("Price feed unavailable")
        return self._state.price

    def _receipt(self, operation: LedgerOperation, account: str, timestamp: int, **fields: Any) -> dict:
        payload: Dict[str, Any] = {
            "operation": operation.value,
            "account": account,
            "timestamp": timestamp,
            "tx_hash": _tx_hash(),
        }
        payload.update(fields)
        return payload

    def _account_payload(self, account: str) -> dict:
        collateral = self._store.collateral_amount(account)
        deposit = self._store.get_deposit(account)
        debt = self.get_debt(account)
        price = self._state.price
        return {
            "account": account,
            "collateral": collateral,
            "collateral_value": collateral * price,
            "deposit_principal": deposit.principal if deposit is not None else 0,
            "pending_yield": self._engine.pending_yield(self._state, deposit) if deposit is not None else 0,
            "debt": debt,
            "max_borrowable": compute_max_borrow(collateral, price, self._params.ltv_percent),
            "health_factor": str(compute_health_factor(collateral, price, debt)),
            "liquidation_price": compute_liquidation_price(
                collateral, debt, self._params.liquidation_threshold_percent
            ),
            "is_liquidatable": price > 0
            and is_liquidatable(collateral, price, debt, self._params.liquidation_threshold_percent),
        }
