"""Unit tests for the interest and yield engine."""

import unittest

from ledger_fixtures import ONE_YEAR

from common.protocol_constants import BASIS_POINTS, DEFAULT_RATE_SCALE
from models.ledger_state import GlobalLedgerState
from models.positions import BorrowPosition, DepositPosition
from services.interest_engine import InterestEngine


class RollGlobalIndexTests(unittest.TestCase):

    def setUp(self) -> None:
        self.engine = InterestEngine(annual_interest_percent=5, rate_scale=DEFAULT_RATE_SCALE)

    def test_noop_without_deposits(self) -> None:
        state = GlobalLedgerState(total_borrows=1000, last_interest_update=0)
        self.assertEqual(self.engine.roll_global_index(state, ONE_YEAR), 0)
        self.assertEqual(state.cumulative_yield_index, 0)
        self.assertEqual(state.last_interest_update, 0)

    def test_noop_when_time_does_not_advance(self) -> None:
        state = GlobalLedgerState(total_deposits=100, total_borrows=100, last_interest_update=50)
        self.engine.roll_global_index(state, 50)
        self.engine.roll_global_index(state, 10)
        self.assertEqual(state.cumulative_yield_index, 0)
        self.assertEqual(state.last_interest_update, 50)

    def test_one_year_of_borrows(self) -> None:
        # 1000 borrowed at 5% → 50 interest over 10000 deposits → 50 bps
        state = GlobalLedgerState(total_deposits=10_000, total_borrows=1000, last_interest_update=0)
        increment = self.engine.roll_global_index(state, ONE_YEAR)
        self.assertEqual(increment, 50)
        self.assertEqual(state.cumulative_yield_index, 50)
        self.assertEqual(state.last_interest_update, ONE_YEAR)

    def test_no_borrows_advances_timestamp_only(self) -> None:
        state = GlobalLedgerState(total_deposits=1000, last_interest_update=0)
        self.engine.roll_global_index(state, ONE_YEAR)
        self.assertEqual(state.cumulative_yield_index, 0)
        self.assertEqual(state.last_interest_update, ONE_YEAR)


class PendingYieldTests(unittest.TestCase):

    def test_scaled_by_principal(self) -> None:
        state = GlobalLedgerState(cumulative_yield_index=75)
        position = DepositPosition(principal=2000, yield_index_snapshot=25)
        self.assertEqual(InterestEngine.pending_yield(state, position), 2000 * 50 // BASIS_POINTS)

    def test_zero_when_snapshot_current(self) -> None:
        state = GlobalLedgerState(cumulative_yield_index=75)
        position = DepositPosition(principal=2000, yield_index_snapshot=75)
        self.assertEqual(InterestEngine.pending_yield(state, position), 0)


class AccruedDebtTests(unittest.TestCase):

    def test_rate_per_second_is_floored(self) -> None:
        engine = InterestEngine(annual_interest_percent=5, rate_scale=DEFAULT_RATE_SCALE)
        self.assertEqual(engine.rate_per_second, 1_585_489_599)

    def test_one_year(self) -> None:
        engine = InterestEngine(annual_interest_percent=5, rate_scale=DEFAULT_RATE_SCALE)
        position = BorrowPosition(principal=1000, last_accrual=0)
        # factor = 1.049999999994064 → floor(1049.99...)
        self.assertEqual(engine.accrued_debt(position, ONE_YEAR), 1049)

    def test_half_year(self) -> None:
        engine = InterestEngine(annual_interest_percent=5, rate_scale=DEFAULT_RATE_SCALE)
        position = BorrowPosition(principal=1000, last_accrual=0)
        self.assertEqual(engine.accrued_debt(position, ONE_YEAR // 2), 1024)

    def test_no_elapsed_time_returns_principal(self) -> None:
        engine = InterestEngine(annual_interest_percent=5, rate_scale=DEFAULT_RATE_SCALE)
        position = BorrowPosition(principal=1000, last_accrual=100)
        self.assertEqual(engine.accrued_debt(position, 100), 1000)
        self.assertEqual(engine.accrued_debt(position, 50), 1000)

    def test_legacy_scale_floors_rate_to_zero(self) -> None:
        engine = InterestEngine(annual_interest_percent=5, rate_scale=BASIS_POINTS)
        position = BorrowPosition(principal=1000, last_accrual=0)
        self.assertEqual(engine.rate_per_second, 0)
        self.assertEqual(engine.accrued_debt(position, ONE_YEAR), 1000)

    def test_rejects_invalid_configuration(self) -> None:
        with self.assertRaises(ValueError):
            InterestEngine(annual_interest_percent=-1, rate_scale=DEFAULT_RATE_SCALE)
        with self.assertRaises(ValueError):
            InterestEngine(annual_interest_percent=5, rate_scale=0)


if __name__ == "__main__":
    unittest.main()
