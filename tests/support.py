"""Shared fixtures for API tests: in-memory SQLite app, fake quote providers."""
import os
import unittest
from typing import Dict, Optional

# never point the drop/create cycle below at a real database
os.environ["DATABASE_URL"] = "sqlite://"

from fastapi.testclient import TestClient

from database import Base, engine
from main import app
from middleware.rate_limit import limiter
from routers.market_routes import get_price_service
from services.market_types import Quote
from services.price_service import PriceService
from services.ttl_cache import TTLCache

PASSWORD = "Secret123"


class FakeQuoteProvider:
    """Serves prices from a dict; symbols not in it are a miss."""

    def __init__(self, name: str, prices: Optional[Dict[str, float]] = None):
        self.name = name
        self.prices = dict(prices or {})
        self.calls = []

    async def fetch_quote(self, symbol, client=None):
        self.calls.append(symbol)
        price = self.prices.get(symbol)
        if price is None:
            return None
        return Quote(symbol=symbol, current_price=price, change=1.0, change_percent=0.5, source=self.name)


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        limiter.enabled = False

        self.provider = FakeQuoteProvider("fake")
        # ttl 0: every lookup goes to the provider, so tests can move prices
        self.prices = PriceService([self.provider], TTLCache(0))
        app.dependency_overrides[get_price_service] = lambda: self.prices
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        limiter.enabled = True

    def signup(self, email: str = "ann@example.com", name: str = "Ann") -> Dict[str, str]:
        r = self.client.post("/api/auth/signup", json={"email": email, "password": PASSWORD, "name": name})
        self.assertEqual(r.status_code, 201, r.text)
        return {"Authorization": f"Bearer {r.json()['data']['token']}"}
