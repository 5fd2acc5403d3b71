"""Service layer exports."""

from .interest_engine import InterestEngine
from .ledger_service import LendingLedgerService
from .liquidation_poller import LiquidationKeeper
from .position_store import PositionStore
from .transfer_gateway import InMemoryTransferGateway, Transfer, TransferGateway

__all__ = [
    "InterestEngine",
    "LendingLedgerService",
    "LiquidationKeeper",
    "PositionStore",
    "InMemoryTransferGateway",
    "Transfer",
    "TransferGateway",
]
