import threading
from urllib.parse import parse_qsl

import httpx
import pytest

from bittrex_driver.bittrex_client import BittrexClient
from bittrex_driver.config import AdapterConfig, Credentials
from bittrex_driver.errors import LockTimeout, ProtocolError, TransportError
from bittrex_driver.utils import build_query, hmac_sha512

from conftest import fail, ok


def _query(request: httpx.Request):
    return parse_qsl(request.url.query.decode())


class TestQueryString:
    def test_insertion_order_and_encoding(self) -> None:
        assert build_query({"market": "USDT-BTC", "note": "a b&c"}) == "market=USDT-BTC&note=a+b%26c"

    def test_empty(self) -> None:
        assert build_query({}) == ""


class TestPublicRequests:
    def test_returns_result(self, client, fake) -> None:
        fake.routes["/public/getmarkets"] = ok([{"MarketName": "BTC-LTC"}])
        assert client.markets() == [{"MarketName": "BTC-LTC"}]
        req = fake.requests[0]
        assert "apisign" not in req.headers
        assert str(req.url) == "https://bittrex.com/api/v1.1/public/getmarkets"

    def test_orderbook_params(self, client, fake) -> None:
        fake.routes["/public/getorderbook"] = ok({"buy": [], "sell": []})
        client.orderbook("USDT-BTC")
        assert _query(fake.requests[0]) == [("market", "USDT-BTC"), ("type", "both"), ("depth", "50")]

    def test_unsuccessful_envelope(self, client, fake) -> None:
        fake.routes["/public/getticker"] = fail("INVALID_MARKET")
        with pytest.raises(ProtocolError, match="INVALID_MARKET"):
            client.ticker("FOO-BAR")

    def test_undecodable_body(self, client, fake) -> None:
        fake.routes["/public/getmarkets"] = lambda r: httpx.Response(200, text="<html>maintenance</html>")
        with pytest.raises(ProtocolError):
            client.markets()

    def test_envelope_without_flag(self, client, fake) -> None:
        fake.routes["/public/getmarkets"] = {"result": []}
        with pytest.raises(ProtocolError):
            client.markets()

    def test_http_error(self, client, fake) -> None:
        fake.routes["/public/getmarkets"] = lambda r: httpx.Response(503, text="busy")
        with pytest.raises(TransportError, match="503"):
            client.markets()

    def test_connect_error(self, client, fake) -> None:
        def boom(request):
            raise httpx.ConnectError("refused", request=request)
        fake.routes["/public/getmarkets"] = boom
        with pytest.raises(TransportError):
            client.markets()


class TestSignedRequests:
    def test_signature_covers_full_url(self, client, fake) -> None:
        fake.routes["/account/getbalances"] = ok([])
        client.balances()
        req = fake.requests[0]
        pairs = _query(req)
        assert pairs[0] == ("apikey", "pub-key")
        assert pairs[-1][0] == "nonce"
        assert req.headers["apisign"] == hmac_sha512("secret-key", str(req.url))
        assert req.headers["apisign"] == req.headers["apisign"].lower()
        assert len(req.headers["apisign"]) == 128

    def test_nonce_appended_after_params(self, client, fake) -> None:
        fake.routes["/market/buylimit"] = ok({"uuid": "x"})
        client.limit_order("USDT-BTC", True, "0.5", "7000")
        keys = [k for k, _ in _query(fake.requests[0])]
        assert keys == ["apikey", "market", "quantity", "rate", "nonce"]

    def test_nonce_strictly_increasing_within_one_tick(self, fake, config, credentials) -> None:
        c = BittrexClient(config, credentials, transport=httpx.MockTransport(fake), clock=lambda: 1000)
        fake.routes["/account/getbalances"] = ok([])
        for _ in range(5):
            c.balances()
        nonces = [int(dict(_query(r))["nonce"]) for r in fake.requests]
        assert nonces == [1000, 1001, 1002, 1003, 1004]
        assert c.last_nonce == 1004

    def test_nonce_follows_clock_when_ahead(self, fake, config, credentials) -> None:
        ticks = iter([10, 5, 50])
        c = BittrexClient(config, credentials, transport=httpx.MockTransport(fake), clock=lambda: next(ticks))
        fake.routes["/account/getbalances"] = ok([])
        for _ in range(3):
            c.balances()
        assert [int(dict(_query(r))["nonce"]) for r in fake.requests] == [10, 11, 50]

    def test_concurrent_nonces_are_unique_and_ordered(self, fake, config, credentials) -> None:
        seen = []
        lock = threading.Lock()

        def record(request):
            with lock:
                seen.append(int(dict(_query(request))["nonce"]))
            return httpx.Response(200, json=ok([]))

        fake.routes["/account/getbalances"] = record
        c = BittrexClient(config, credentials, transport=httpx.MockTransport(fake), clock=lambda: 7)
        threads = [threading.Thread(target=c.balances) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert seen == sorted(seen)
        assert len(set(seen)) == 8

    def test_public_calls_do_not_consume_nonces(self, client, fake) -> None:
        fake.routes["/public/getmarkets"] = ok([])
        client.markets()
        assert client.last_nonce == 0


class TestLock:
    def test_lock_timeout_skips_network(self, fake, credentials) -> None:
        cfg = AdapterConfig(lock_timeout=0.05, max_retries=1)
        c = BittrexClient(cfg, credentials, transport=httpx.MockTransport(fake))
        fake.routes["/public/getmarkets"] = ok([])
        c._lock.acquire()
        try:
            with pytest.raises(LockTimeout):
                c.markets()
        finally:
            c._lock.release()
        assert fake.requests == []

    def test_lock_released_after_failure(self, client, fake) -> None:
        fake.routes["/public/getmarkets"] = lambda r: httpx.Response(500)
        with pytest.raises(TransportError):
            client.markets()
        fake.routes["/public/getmarkets"] = ok([])
        assert client.markets() == []

    def test_set_credentials(self, client, fake) -> None:
        client.set_credentials(Credentials(public_key="other", private_key="k2"))
        fake.routes["/account/getbalances"] = ok([])
        client.balances()
        req = fake.requests[0]
        assert dict(_query(req))["apikey"] == "other"
        assert req.headers["apisign"] == hmac_sha512("k2", str(req.url))

    def test_set_credentials_waits_bounded(self, fake, credentials) -> None:
        c = BittrexClient(AdapterConfig(lock_timeout=0.05), credentials, transport=httpx.MockTransport(fake))
        c._lock.acquire()
        try:
            with pytest.raises(LockTimeout):
                c.set_credentials(Credentials(public_key="other", private_key="k2"))
        finally:
            c._lock.release()
        assert c.credentials.public_key == "pub-key"


class TestRetries:
    def test_budget_leaves_room_for_queued_callers(self) -> None:
        c = BittrexClient(AdapterConfig())
        assert c.retry_budget == 16.0
        assert BittrexClient(AdapterConfig(lock_timeout=5, http_timeout=10)).retry_budget == 0.0

    def test_no_retry_once_budget_spent(self, fake, credentials) -> None:
        cfg = AdapterConfig(max_retries=5, lock_timeout=1.0, http_timeout=1.0)
        c = BittrexClient(cfg, credentials, transport=httpx.MockTransport(fake))

        def refuse(request):
            raise httpx.ConnectError("refused", request=request)
        fake.routes["/public/getmarkets"] = refuse
        with pytest.raises(TransportError):
            c.markets()
        assert len(fake.requests) == 1

    def test_retry_signs_with_fresh_nonce(self, fake, credentials) -> None:
        c = BittrexClient(AdapterConfig(max_retries=2), credentials, transport=httpx.MockTransport(fake),
                          clock=lambda: 100)
        calls = []

        def flaky(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            return httpx.Response(200, json=ok([]))
        fake.routes["/account/getbalances"] = flaky
        assert c.balances() == []
        nonces = [int(dict(_query(r))["nonce"]) for r in calls]
        assert nonces == [100, 101]
        assert calls[1].headers["apisign"] == hmac_sha512("secret-key", str(calls[1].url))
