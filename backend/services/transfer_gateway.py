"""Asset movement between accounts and the lending pool."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
import threading
from typing import Dict, List, Sequence, Tuple

from models.enums import AssetKind
from models.exceptions import TransferFailedError


logger = logging.getLogger(__name__)

POOL_HOLDER = "pool"


@dataclass(frozen=True)
class Transfer:
    """One asset movement from ``source`` to ``destination``."""

    source: str
    destination: str
    asset: AssetKind
    amount: int


def pull(account: str, asset: AssetKind, amount: int) -> Transfer:
    """Transfer from *account* into the pool."""
    return Transfer(source=account, destination=POOL_HOLDER, asset=asset, amount=amount)


def push(account: str, asset: AssetKind, amount: int) -> Transfer:
    """Transfer from the pool to *account*."""
    return Transfer(source=POOL_HOLDER, destination=account, asset=asset, amount=amount)


class TransferGateway(ABC):
    """Settles a batch of transfers atomically: all of them or none."""

    @abstractmethod
    def execute(self, transfers: Sequence[Transfer]) -> None:
        """Apply *transfers* or raise :class:`TransferFailedError`."""


class InMemoryTransferGateway(TransferGateway):
    """Balance book keyed by ``(holder, asset)`` for local runs and tests."""

    def __init__(self) -> None:
        self._balances: Dict[Tuple[str, AssetKind], int] = {}
        self._lock = threading.RLock()
        self._history: List[Transfer] = []

    def mint(self, holder: str, asset: AssetKind, amount: int) -> None:
        """Credit *holder* with newly created units."""
        if amount <= 0:
            raise ValueError("amount must be > 0")
        with self._lock:
            key = (holder, asset)
            self._balances[key] = self._balances.get(key, 0) + amount
            logger.info("Minted holder=%s asset=%s amount=%s", holder, asset.value, amount)

    def balance_of(self, holder: str, asset: AssetKind) -> int:
        with self._lock:
            return self._balances.get((holder, asset), 0)

    def pool_balance(self, asset: AssetKind) -> int:
        return self.balance_of(POOL_HOLDER, asset)

    @property
    def history(self) -> List[Transfer]:
        with self._lock:
            return list(self._history)

    def execute(self, transfers: Sequence[Transfer]) -> None:
        with self._lock:
            staged = dict(self._balances)
            for transfer in transfers:
                if transfer.amount < 0:
                    raise TransferFailedError("Negative transfer amount {0}".format(transfer.amount))
                if transfer.amount == 0:
                    continue
                source_key = (transfer.source, transfer.asset)
                available = staged.get(source_key, 0)
                if available < transfer.amount:
                    logger.warning(
                        "Transfer rejected source=%s destination=%s asset=%s amount=%s available=%s",
                        transfer.source,
                        transfer.destination,
                        transfer.asset.value,
                        transfer.amount,
                        available,
                    )
                    raise TransferFailedError(
                        "Insufficient {0} balance for {1}: has {2}, needs {3}".format(
                            transfer.asset.value,
                            transfer.source,
                            available,
                            transfer.amount,
                        )
                    )
                destination_key = (transfer.destination, transfer.asset)
                staged[source_key] = available - transfer.amount
                staged[destination_key] = staged.get(destination_key, 0) + transfer.amount

            self._balances = staged
            self._history.extend(transfer for transfer in transfers if transfer.amount > 0)
