import unittest
from unittest import mock

from support import ApiTestCase

from services.portfolio_service import ConcurrentModificationError


class TestPortfolioRoutes(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.auth = self.signup()

    def _add(self, symbol="ABC", units=10, price=100):
        return self.client.post(
            "/api/portfolio/stocks",
            json={"symbol": symbol, "units": units, "buyPrice": price},
            headers=self.auth,
        )

    def _trade(self, action, units, price, symbol="ABC"):
        return self.client.put(
            f"/api/portfolio/stocks/{symbol}",
            json={"action": action, "units": units, "price": price},
            headers=self.auth,
        )

    def test_requires_bearer_token(self):
        r = self.client.get("/api/portfolio/stocks")
        self.assertEqual(r.status_code, 401)
        self.assertEqual(r.json(), {"success": False, "error": "Unauthorized"})

        r = self.client.get("/api/portfolio/stocks", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(r.status_code, 401)

    def test_add_stock_opens_holding(self):
        r = self._add(" abc ", 10, 100)
        self.assertEqual(r.status_code, 201, r.text)
        body = r.json()
        self.assertTrue(body["success"])
        self.assertEqual(body["data"]["symbol"], "ABC")
        self.assertEqual(body["data"]["quantity"], 10)
        self.assertEqual(body["data"]["averageCost"], 100)
        self.assertEqual(body["data"]["realizedPnl"], 0)

    def test_add_existing_symbol_buys_more(self):
        self._add("ABC", 10, 100)
        r = self._add("ABC", 10, 120)
        self.assertEqual(r.status_code, 201)
        self.assertEqual(r.json()["data"]["quantity"], 20)
        self.assertAlmostEqual(r.json()["data"]["averageCost"], 110)

    def test_add_stock_validation(self):
        r = self.client.post("/api/portfolio/stocks", json={"symbol": "ABC"}, headers=self.auth)
        self.assertEqual(r.status_code, 400)
        self.assertFalse(r.json()["success"])
        self.assertTrue(r.json()["error"].startswith("Missing required fields"))

        r = self._add("ABC", 0, 100)
        self.assertEqual(r.status_code, 400)
        r = self._add("ABC", 1, -5)
        self.assertEqual(r.status_code, 400)
        r = self._add("A B!", 1, 5)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "symbol contains invalid characters")

    def test_full_trade_scenario(self):
        self._add("ABC", 10, 100)

        r = self._trade("BUY", 10, 120)
        self.assertEqual(r.status_code, 200, r.text)
        self.assertEqual(r.json()["data"]["quantity"], 20)
        self.assertAlmostEqual(r.json()["data"]["averageCost"], 110)
        self.assertEqual(r.json()["data"]["transaction"]["kind"], "BUY")
        self.assertNotIn("realizedPnl", r.json()["data"]["transaction"])

        r = self._trade("sell", 5, 150)
        data = r.json()["data"]
        self.assertEqual(data["quantity"], 15)
        self.assertAlmostEqual(data["averageCost"], 110)
        self.assertAlmostEqual(data["realizedPnl"], 200)
        self.assertAlmostEqual(data["transaction"]["realizedPnl"], 200)

        r = self._trade("SELL", 15, 110)
        self.assertEqual(r.status_code, 200)
        data = r.json()["data"]
        self.assertEqual(data["message"], "All units sold. Stock removed from portfolio.")
        self.assertAlmostEqual(data["realizedPnl"], 0)
        self.assertEqual(data["transaction"]["units"], 15)

        r = self.client.get("/api/portfolio/stocks/ABC", headers=self.auth)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json()["error"], "Stock not found")

        r = self.client.get("/api/portfolio/transactions", headers=self.auth)
        kinds = [(t["kind"], t["units"]) for t in r.json()["data"]]
        self.assertEqual(kinds, [("SELL", 15), ("SELL", 5), ("BUY", 10), ("BUY", 10)])

    def test_overselling_is_rejected_without_changes(self):
        self._add("ABC", 20, 110)
        r = self._trade("SELL", 25, 150)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json(), {"success": False, "error": "Cannot sell 25 units. Only 20 available."})

        holding = self.client.get("/api/portfolio/stocks/ABC", headers=self.auth).json()["data"]
        self.assertEqual(holding["quantity"], 20)
        txs = self.client.get("/api/portfolio/transactions", headers=self.auth).json()["data"]
        self.assertEqual(len(txs), 1)

    def test_concurrent_modification_is_409(self):
        self._add("ABC", 10, 100)
        with mock.patch("routers.portfolio_routes.sell", side_effect=ConcurrentModificationError("ABC")):
            r = self._trade("SELL", 1, 110)
        self.assertEqual(r.status_code, 409)
        self.assertEqual(
            r.json(), {"success": False, "error": "ABC was modified by another request. Please retry."}
        )

    def test_selling_unknown_holding_is_404(self):
        r = self._trade("SELL", 1, 10, symbol="NOPE")
        self.assertEqual(r.status_code, 404)

    def test_put_buy_on_missing_holding_creates_it(self):
        r = self._trade("BUY", 3, 50, symbol="NEW")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["data"]["quantity"], 3)

    def test_invalid_action(self):
        self._add("ABC", 1, 1)
        r = self._trade("HOLD", 1, 1)
        self.assertEqual(r.status_code, 400)
        self.assertEqual(r.json()["error"], "Invalid action. Must be BUY or SELL.")

    def test_portfolio_valuation_with_live_and_fallback_prices(self):
        self._add("ABC", 10, 100)
        self._add("ABC", 10, 120)
        self._trade("SELL", 5, 150)
        self._trade("BUY", 5, 110)
        self._add("XYZ", 4, 25)
        self.provider.prices["ABC"] = 100.0

        r = self.client.get("/api/portfolio/stocks", headers=self.auth)
        self.assertEqual(r.status_code, 200)
        data = r.json()["data"]
        stocks = {s["symbol"]: s for s in data["stocks"]}

        abc = stocks["ABC"]
        self.assertEqual(abc["priceStatus"], "live")
        self.assertEqual(abc["quantity"], 20)
        self.assertAlmostEqual(abc["totalCost"], 2200)
        self.assertAlmostEqual(abc["currentValue"], 2000)
        self.assertAlmostEqual(abc["unrealizedPnl"], -200)
        self.assertAlmostEqual(abc["netPnl"], 0)
        self.assertTrue(abc["logo"].endswith("/ABC.png"))

        xyz = stocks["XYZ"]
        self.assertEqual(xyz["priceStatus"], "fallback")
        self.assertEqual(xyz["currentPrice"], 25)
        self.assertEqual(xyz["unrealizedPnl"], 0)

        summary = data["summary"]
        self.assertAlmostEqual(summary["totalInvested"], 2300)
        self.assertAlmostEqual(summary["currentValue"], 2100)
        self.assertAlmostEqual(summary["unrealizedPnl"], -200)
        self.assertAlmostEqual(summary["realizedPnl"], 200)
        self.assertAlmostEqual(summary["netPnl"], 0)
        self.assertIn("asOf", data)

    def test_empty_portfolio(self):
        data = self.client.get("/api/portfolio/stocks", headers=self.auth).json()["data"]
        self.assertEqual(data["stocks"], [])
        self.assertEqual(data["summary"]["netPnlPercent"], 0)
        self.assertEqual(self.provider.calls, [])

    def test_holdings_are_scoped_per_user(self):
        self._add("ABC", 1, 1)
        other = self.signup("bob@example.com", "Bob")
        r = self.client.get("/api/portfolio/stocks/ABC", headers=other)
        self.assertEqual(r.status_code, 404)
        self.assertEqual(self.client.get("/api/portfolio/stocks", headers=other).json()["data"]["stocks"], [])

    def test_delete_stock(self):
        self._add("ABC", 1, 1)
        r = self.client.delete("/api/portfolio/stocks/abc", headers=self.auth)
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["data"]["message"], "Stock deleted successfully")

        r = self.client.delete("/api/portfolio/stocks/ABC", headers=self.auth)
        self.assertEqual(r.status_code, 404)

    def test_transactions_filter_by_symbol(self):
        self._add("ABC", 1, 1)
        self._add("XYZ", 2, 2)
        data = self.client.get("/api/portfolio/transactions?symbol=xyz", headers=self.auth).json()["data"]
        self.assertEqual([t["symbol"] for t in data], ["XYZ"])

    def test_reconcile_matches_log_until_holding_is_deleted(self):
        self._add("ABC", 10, 100)
        self._trade("SELL", 4, 130)
        self._add("XYZ", 2, 2)

        report = self.client.get("/api/portfolio/reconcile", headers=self.auth).json()["data"]
        self.assertEqual([e["symbol"] for e in report], ["ABC", "XYZ"])
        self.assertTrue(all(e["consistent"] for e in report))
        self.assertAlmostEqual(report[0]["replayed"]["realizedPnl"], 120)

        self.client.delete("/api/portfolio/stocks/XYZ", headers=self.auth)
        report = self.client.get("/api/portfolio/reconcile", headers=self.auth).json()["data"]
        xyz = report[1]
        self.assertFalse(xyz["consistent"])
        self.assertIsNone(xyz["stored"])
        self.assertEqual(xyz["replayed"]["quantity"], 2)


if __name__ == "__main__":
    unittest.main()
