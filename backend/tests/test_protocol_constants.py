"""Unit tests for protocol constants and the pure risk math."""

from __future__ import annotations

import sys
import unittest
from pathlib import Path

# Ensure backend is importable
_BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from common.protocol_constants import (
    BASIS_POINTS,
    HEALTH_FACTOR_MAX,
    LIQUIDATION_THRESHOLD_PERCENT,
    LTV_PERCENT,
    SECONDS_PER_YEAR,
    ProtocolParameters,
    compute_health_factor,
    compute_liquidation_price,
    compute_liquidator_reward,
    compute_max_borrow,
    is_liquidatable,
    saturating_sub,
)


class TestConstants(unittest.TestCase):

    def test_basis_points(self) -> None:
        self.assertEqual(BASIS_POINTS, 10_000)

    def test_seconds_per_year(self) -> None:
        self.assertEqual(SECONDS_PER_YEAR, 31_536_000)

    def test_risk_parameters(self) -> None:
        self.assertEqual(LTV_PERCENT, 70)
        self.assertEqual(LIQUIDATION_THRESHOLD_PERCENT, 80)

    def test_parameters_reject_out_of_range_percent(self) -> None:
        with self.assertRaises(ValueError):
            ProtocolParameters(ltv_percent=101)

    def test_parameters_reject_zero_scale(self) -> None:
        with self.assertRaises(ValueError):
            ProtocolParameters(interest_rate_scale=0)


class TestSaturatingSub(unittest.TestCase):

    def test_regular_subtraction(self) -> None:
        self.assertEqual(saturating_sub(10, 4), 6)

    def test_clamp_returns_zero_and_warns(self) -> None:
        with self.assertLogs("common.protocol_constants", level="WARNING") as captured:
            self.assertEqual(saturating_sub(5, 7, "total_deposits"), 0)
        self.assertIn("total_deposits", captured.output[0])


class TestMaxBorrow(unittest.TestCase):

    def test_collateral_worth_200(self) -> None:
        # 100 collateral @ 2 = 200 → 200 * 70 / 100 = 140
        self.assertEqual(compute_max_borrow(100, 2), 140)

    def test_floors(self) -> None:
        # 201 * 70 / 100 = 140.7
        self.assertEqual(compute_max_borrow(201, 1), 140)


class TestLiquidatable(unittest.TestCase):

    def test_exact_boundary_is_liquidatable(self) -> None:
        # 80 * 100 <= 100 * 80
        self.assertTrue(is_liquidatable(80, 1, 100))

    def test_one_unit_above_boundary_is_safe(self) -> None:
        self.assertFalse(is_liquidatable(81, 1, 100))

    def test_zero_debt_never_liquidatable(self) -> None:
        self.assertFalse(is_liquidatable(0, 1, 0))


class TestHealthFactor(unittest.TestCase):

    def test_zero_debt_returns_max(self) -> None:
        self.assertEqual(compute_health_factor(100, 5, 0), HEALTH_FACTOR_MAX)

    def test_ratio_percent(self) -> None:
        # 200 * 100 / 100
        self.assertEqual(compute_health_factor(200, 1, 100), 200)

    def test_boundary_matches_threshold(self) -> None:
        self.assertEqual(compute_health_factor(80, 1, 100), LIQUIDATION_THRESHOLD_PERCENT)

    def test_rounds_up_between_percent_steps(self) -> None:
        # 8100 / 101 = 80.19: above the threshold, and not liquidatable
        self.assertEqual(compute_health_factor(81, 1, 101), 81)
        self.assertFalse(is_liquidatable(81, 1, 101))

    def test_agrees_with_liquidation_check(self) -> None:
        for debt in (97, 100, 101, 103, 1049):
            for collateral in range(60, 110):
                health_factor = compute_health_factor(collateral, 1, debt)
                self.assertEqual(
                    health_factor <= LIQUIDATION_THRESHOLD_PERCENT,
                    is_liquidatable(collateral, 1, debt),
                    (collateral, debt, health_factor),
                )


class TestRewardAndLiquidationPrice(unittest.TestCase):

    def test_reward_floors(self) -> None:
        self.assertEqual(compute_liquidator_reward(99, 5), 4)

    def test_liquidation_price(self) -> None:
        # 100 collateral, 200 debt → 200 * 80 / (100 * 100) = 1.6
        self.assertEqual(compute_liquidation_price(100, 200), 1)

    def test_liquidation_price_without_collateral(self) -> None:
        self.assertEqual(compute_liquidation_price(0, 200), 0)


if __name__ == "__main__":
    unittest.main()
