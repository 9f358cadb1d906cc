"""Shared test fixtures: a fake Bittrex behind httpx.MockTransport."""
from __future__ import annotations
from typing import Any, Callable, Dict, List, Union

import httpx
import orjson
import pytest

from bittrex_driver.adapter import BittrexAdapter
from bittrex_driver.bittrex_client import BittrexClient
from bittrex_driver.config import AdapterConfig, Credentials
from bittrex_driver.schemas import Market

Route = Union[Any, Callable[[httpx.Request], httpx.Response]]


def ok(result: Any) -> Dict[str, Any]:
    return {"success": True, "message": "", "result": result}


def fail(message: str) -> Dict[str, Any]:
    return {"success": False, "message": message, "result": None}


class FakeBittrex:
    """Answers by URL path; a route is an envelope dict or a handler returning a Response."""

    def __init__(self):
        self.routes: Dict[str, Route] = {}
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.replace("/api/v1.1", "", 1)
        route = self.routes.get(path)
        if route is None:
            return httpx.Response(404, text="not found")
        if callable(route):
            return route(request)
        return httpx.Response(200, content=orjson.dumps(route))

    def paths(self) -> List[str]:
        return [r.url.path.replace("/api/v1.1", "", 1) for r in self.requests]


@pytest.fixture
def fake() -> FakeBittrex:
    return FakeBittrex()


@pytest.fixture
def config() -> AdapterConfig:
    return AdapterConfig(max_retries=1, lock_timeout=1.0, settle_delay=0.0)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(public_key="pub-key", private_key="secret-key")


@pytest.fixture
def client(fake, config, credentials) -> BittrexClient:
    c = BittrexClient(config, credentials, transport=httpx.MockTransport(fake))
    yield c
    c.close()


@pytest.fixture
def sleeps() -> List[float]:
    return []


@pytest.fixture
def adapter(client, config, sleeps) -> BittrexAdapter:
    return BittrexAdapter(config, client=client, sleep=sleeps.append)


@pytest.fixture
def btc_usdt() -> Market:
    return Market(primary_currency="BTC", secondary_currency="USDT", amount_decimals=8,
                  minimum_trade_amount="0.00001")
