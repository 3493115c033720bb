import asyncio
import unittest

import httpx

from services.alphavantage_service import AlphaVantageService
from services.finnhub_service import FinnhubService
from services.market_types import Quote
from services.price_service import PriceService, PriceUnavailableError
from services.ttl_cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class _Provider:
    def __init__(self, name, prices=None, crash=False):
        self.name = name
        self.prices = prices or {}
        self.crash = crash
        self.calls = 0

    async def fetch_quote(self, symbol, client=None):
        self.calls += 1
        if self.crash:
            raise RuntimeError("boom")
        p = self.prices.get(symbol)
        return Quote(symbol=symbol, current_price=p, source=self.name) if p else None


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestPriceServiceChain(unittest.TestCase):
    def test_primary_wins_and_is_cached(self):
        primary = _Provider("primary", {"AAPL": 190.0})
        secondary = _Provider("secondary", {"AAPL": 1.0})
        clock = FakeClock()
        svc = PriceService([primary, secondary], TTLCache(300, clock=clock))

        async def run():
            first = await svc.get_price("aapl")
            second = await svc.get_price("AAPL")
            return first, second

        self.assertEqual(asyncio.run(run()), (190.0, 190.0))
        self.assertEqual(primary.calls, 1)
        self.assertEqual(secondary.calls, 0)

        clock.now += 301
        asyncio.run(svc.get_price("AAPL"))
        self.assertEqual(primary.calls, 2)

    def test_falls_back_to_secondary(self):
        primary = _Provider("primary", {})
        secondary = _Provider("secondary", {"MSFT": 410.0})
        svc = PriceService([primary, secondary], TTLCache(300))

        quote = asyncio.run(svc.get_quote("MSFT"))
        self.assertEqual(quote.current_price, 410.0)
        self.assertEqual(quote.source, "secondary")

    def test_crashing_provider_does_not_break_chain(self):
        svc = PriceService([_Provider("bad", crash=True), _Provider("good", {"X": 2.0})], TTLCache(60))
        self.assertEqual(asyncio.run(svc.get_price("X")), 2.0)

    def test_all_fail_raises_unavailable(self):
        svc = PriceService([_Provider("a"), _Provider("b")], TTLCache(60))
        with self.assertRaises(PriceUnavailableError) as ctx:
            asyncio.run(svc.get_price("NOPE"))
        self.assertEqual(ctx.exception.symbol, "NOPE")
        self.assertEqual(len(svc.cache), 0)

    def test_batch_isolates_failures(self):
        svc = PriceService([_Provider("p", {"AAA": 10.0, "CCC": 30.0})], TTLCache(60))
        prices = asyncio.run(svc.get_prices(["AAA", "bbb", "CCC", "AAA"]))
        self.assertEqual(prices, {"AAA": 10.0, "BBB": None, "CCC": 30.0})


class TestFinnhubQuote(unittest.TestCase):
    def test_parses_quote(self):
        def handler(request: httpx.Request) -> httpx.Response:
            self.assertEqual(request.url.path, "/api/v1/quote")
            self.assertEqual(request.url.params["symbol"], "AAPL")
            self.assertEqual(request.url.params["token"], "k")
            return httpx.Response(200, json={"c": 190.5, "d": 1.5, "dp": 0.79, "pc": 189.0})

        async def run():
            async with _mock_client(handler) as c:
                return await FinnhubService(api_key="k").fetch_quote("AAPL", client=c)

        q = asyncio.run(run())
        self.assertEqual(q.current_price, 190.5)
        self.assertEqual(q.change, 1.5)
        self.assertEqual(q.change_percent, 0.79)
        self.assertEqual(q.previous_close, 189.0)
        self.assertEqual(q.source, "finnhub")

    def test_zero_price_and_http_error_are_misses(self):
        async def run(handler):
            async with _mock_client(handler) as c:
                return await FinnhubService(api_key="k").fetch_quote("ZZZ", client=c)

        self.assertIsNone(asyncio.run(run(lambda r: httpx.Response(200, json={"c": 0}))))
        self.assertIsNone(asyncio.run(run(lambda r: httpx.Response(429, json={}))))

    def test_missing_key_skips_network(self):
        def handler(request):
            raise AssertionError("no request expected")

        async def run():
            async with _mock_client(handler) as c:
                return await FinnhubService(api_key="").fetch_quote("AAPL", client=c)

        self.assertIsNone(asyncio.run(run()))


class TestAlphaVantageQuote(unittest.TestCase):
    def test_parses_global_quote(self):
        body = {
            "Global Quote": {
                "01. symbol": "IBM",
                "05. price": "172.3400",
                "08. previous close": "170.0000",
                "09. change": "2.3400",
                "10. change percent": "1.3765%",
            }
        }

        async def run():
            async with _mock_client(lambda r: httpx.Response(200, json=body)) as c:
                return await AlphaVantageService(api_key="k").fetch_quote("IBM", client=c)

        q = asyncio.run(run())
        self.assertEqual(q.current_price, 172.34)
        self.assertEqual(q.change_percent, 1.3765)
        self.assertEqual(q.source, "alphavantage")

    def test_throttle_note_is_a_miss(self):
        async def run():
            async with _mock_client(lambda r: httpx.Response(200, json={"Note": "Thank you for using"})) as c:
                return await AlphaVantageService(api_key="k").fetch_quote("IBM", client=c)

        self.assertIsNone(asyncio.run(run()))

    def test_demo_key_counts_as_unconfigured(self):
        self.assertFalse(AlphaVantageService(api_key="demo").configured)


if __name__ == "__main__":
    unittest.main()
