"""HTTP-level tests for the ledger API router."""

from dataclasses import replace
from pathlib import Path
import sys
import unittest

_BACKEND_DIR = Path(__file__).resolve().parent.parent
if str(_BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(_BACKEND_DIR))

from fastapi.testclient import TestClient

from core.config import load_settings
from main import create_app
from models.enums import AssetKind


ADMIN = "0x" + "0" * 39 + "1"
LENDER = "0x" + "1" * 40
BORROWER = "0x" + "2" * 40


class LedgerRouterTests(unittest.TestCase):
    """Validate endpoint wiring and error mapping."""

    def setUp(self) -> None:
        settings = load_settings(Path(__file__).resolve().parent / "missing-config.yml")
        self.app = create_app(replace(settings, ledger_initial_price=1))
        self.client = TestClient(self.app)
        gateway = self.app.state.ledger.gateway
        for holder in (LENDER, BORROWER):
            gateway.mint(holder, AssetKind.BASE, 100_000)
            gateway.mint(holder, AssetKind.COLLATERAL, 100_000)

    def test_health(self) -> None:
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_deposit_and_read_back(self) -> None:
        response = self.client.post("/deposit", json={"account": LENDER, "amount": 1000})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["principal"], 1000)

        position = self.client.get("/deposits/{0}".format(LENDER)).json()["position"]
        self.assertEqual(position["principal"], 1000)
        self.assertEqual(self.client.get("/stats").json()["total_deposits"], 1000)

    def test_zero_amount_is_bad_request(self) -> None:
        response = self.client.post("/deposit", json={"account": LENDER, "amount": 0})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["detail"]["error"], "ZeroAmountError")

    def test_invalid_account_is_unprocessable(self) -> None:
        response = self.client.post("/deposit", json={"account": "not-an-address", "amount": 10})
        self.assertEqual(response.status_code, 422)

    def test_withdraw_without_position_is_not_found(self) -> None:
        response = self.client.post("/withdraw", json={"account": LENDER, "amount": 10})
        self.assertEqual(response.status_code, 404)

    def test_borrow_over_cap_is_conflict(self) -> None:
        self.client.post("/deposit", json={"account": LENDER, "amount": 10_000})
        response = self.client.post(
            "/borrow",
            json={"account": BORROWER, "collateral_amount": 100, "borrow_amount": 71},
        )
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["detail"]["error"], "ExceededMaxBorrowError")

    def test_admin_endpoints(self) -> None:
        forbidden = self.client.post("/admin/price", json={"caller": LENDER, "price": 5})
        self.assertEqual(forbidden.status_code, 403)

        accepted = self.client.post("/admin/price", json={"caller": ADMIN, "price": 5})
        self.assertEqual(accepted.status_code, 200)
        self.assertEqual(self.client.get("/price").json(), {"price": 5})

        self.assertEqual(self.client.post("/admin/pause", json={"caller": ADMIN}).status_code, 200)
        paused = self.client.post("/deposit", json={"account": LENDER, "amount": 10})
        self.assertEqual(paused.status_code, 403)
        self.assertEqual(self.client.post("/admin/unpause", json={"caller": ADMIN}).status_code, 200)

    def test_liquidation_flow(self) -> None:
        self.client.post("/admin/price", json={"caller": ADMIN, "price": 2})
        self.client.post("/deposit", json={"account": LENDER, "amount": 10_000})
        self.client.post("/borrow", json={"account": BORROWER, "collateral_amount": 80, "borrow_amount": 100})

        healthy = self.client.post("/liquidate", json={"caller": LENDER, "target": BORROWER})
        self.assertEqual(healthy.status_code, 409)

        self.client.post("/admin/price", json={"caller": ADMIN, "price": 1})
        factor = self.client.get("/health-factor/{0}".format(BORROWER)).json()
        self.assertEqual(factor["health_factor"], "80")
        self.assertTrue(factor["is_liquidatable"])
        self.assertEqual(self.client.get("/positions/all?liquidatable_only=true").json()["total"], 1)

        response = self.client.post("/liquidate", json={"caller": LENDER, "target": BORROWER})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["liquidator_reward"], 4)
        self.assertEqual(self.client.get("/archive/liquidations").json()["total"], 1)

    def test_wallet_validate(self) -> None:
        response = self.client.get("/wallet/validate", params={"wallet": LENDER})
        self.assertTrue(response.json()["is_valid"])
        response = self.client.get("/wallet/validate", params={"wallet": "0x123"})
        self.assertFalse(response.json()["is_valid"])


if __name__ == "__main__":
    unittest.main()
