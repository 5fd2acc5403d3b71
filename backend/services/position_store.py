"""In-memory account-keyed tables for collateral, deposit and borrow records."""

import logging
from typing import Dict, Iterator, Optional, Set, Tuple

from models.positions import BorrowPosition, CollateralPosition, DepositPosition


logger = logging.getLogger(__name__)

StoreSnapshot = Tuple[
    Dict[str, CollateralPosition],
    Dict[str, DepositPosition],
    Dict[str, BorrowPosition],
]


class PositionStore:
    """Holds at most one record of each kind per account."""

    def __init__(self) -> None:
        self._collateral: Dict[str, CollateralPosition] = {}
        self._deposits: Dict[str, DepositPosition] = {}
        self._borrows: Dict[str, BorrowPosition] = {}

    def get_collateral(self, account: str) -> Optional[CollateralPosition]:
        return self._collateral.get(account)

    def get_deposit(self, account: str) -> Optional[DepositPosition]:
        return self._deposits.get(account)

    def get_borrow(self, account: str) -> Optional[BorrowPosition]:
        return self._borrows.get(account)

    def collateral_amount(self, account: str) -> int:
        """Pledged collateral for *account*, 0 when absent."""
        position = self._collateral.get(account)
        return position.collateral_amount if position is not None else 0

    def deposit_principal(self, account: str) -> int:
        """Deposit principal for *account*, 0 when absent."""
        position = self._deposits.get(account)
        return position.principal if position is not None else 0

    def put_collateral(self, account: str, position: CollateralPosition) -> None:
        self._collateral[account] = position

    def put_deposit(self, account: str, position: DepositPosition) -> None:
        self._deposits[account] = position

    def put_borrow(self, account: str, position: BorrowPosition) -> None:
        self._borrows[account] = position

    def delete_collateral(self, account: str) -> None:
        self._collateral.pop(account, None)

    def delete_deposit(self, account: str) -> None:
        self._deposits.pop(account, None)

    def delete_borrow(self, account: str) -> None:
        self._borrows.pop(account, None)

    def accounts(self) -> Set[str]:
        """Every account holding at least one record."""
        return set(self._collateral) | set(self._deposits) | set(self._borrows)

    def iter_borrowers(self) -> Iterator[Tuple[str, BorrowPosition]]:
        return iter(list(self._borrows.items()))

    def sum_collateral(self) -> int:
        return sum(position.collateral_amount for position in self._collateral.values())

    def sum_deposits(self) -> int:
        return sum(position.principal for position in self._deposits.values())

    def sum_borrows(self) -> int:
        return sum(position.principal for position in self._borrows.values())

    def snapshot(self) -> StoreSnapshot:
        """Shallow copy of all three tables; stored records are never edited in place."""
        return (
            dict(self._collateral),
            dict(self._deposits),
            dict(self._borrows),
        )

    def restore(self, snapshot: StoreSnapshot) -> None:
        """Replace all tables with a previously taken snapshot."""
        self._collateral, self._deposits, self._borrows = snapshot
        logger.debug("Position store restored accounts=%d", len(self.accounts()))
