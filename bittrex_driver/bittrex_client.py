from __future__ import annotations
import logging, threading
from typing import Any, Callable, Dict, Optional
import httpx
import orjson
from tenacity import Retrying, stop_after_attempt, stop_after_delay, wait_exponential, retry_if_exception_type, before_sleep_log

from .config import AdapterConfig, Credentials
from .errors import LockTimeout, ProtocolError, TransportError
from .utils import build_query, from_json, hmac_sha512, now_ns

RETRYABLE = (httpx.ConnectError, httpx.ConnectTimeout)
RETRY_WAIT_MAX = 4.0


class BittrexClient:
    """Signed request dispatcher for the Bittrex v1.1 REST API.

    All requests go through one lock, so at most one call per client is on the
    wire and nonces leave in strictly increasing order.
    """

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        credentials: Optional[Credentials] = None,
        http_client: Optional[httpx.Client] = None,
        transport: Optional[httpx.BaseTransport] = None,
        clock: Callable[[], int] = now_ns,
    ):
        self.config = config or AdapterConfig()
        self.base = self.config.base_url.rstrip("/")
        self.credentials = credentials or Credentials()
        self._client = http_client or httpx.Client(timeout=self.config.http_timeout, transport=transport)
        self._clock = clock
        self._lock = threading.Lock()
        self._last_nonce = 0

    def close(self):
        self._client.close()

    @property
    def last_nonce(self) -> int:
        return self._last_nonce

    @property
    def retry_budget(self) -> float:
        """Seconds after which no further attempt starts, so that one more backoff
        wait plus one more request still fit inside ``lock_timeout``."""
        return max(0.0, self.config.lock_timeout - self.config.http_timeout - RETRY_WAIT_MAX)

    def set_credentials(self, credentials: Credentials):
        if not self._lock.acquire(timeout=self.config.lock_timeout):
            raise LockTimeout(self.config.lock_timeout)
        try:
            self.credentials = credentials
        finally:
            self._lock.release()

    # -------- nonce / signing (caller holds the lock) --------
    def _next_nonce(self) -> int:
        nonce = max(self._clock(), self._last_nonce + 1)
        self._last_nonce = nonce
        return nonce

    def _url(self, path: str, params: Dict[str, Any]) -> str:
        qs = build_query(params)
        return f"{self.base}{path}?{qs}" if qs else f"{self.base}{path}"

    def _signed_request(self, path: str, params: Dict[str, Any]) -> httpx.Request:
        p = {"apikey": self.credentials.public_key, **params, "nonce": self._next_nonce()}
        url = self._url(path, p)
        sig = hmac_sha512(self.credentials.private_key, url)
        return self._client.build_request("GET", url, headers={"apisign": sig})

    # -------- core --------
    def query(self, path: str, params: Optional[Dict[str, Any]] = None, auth: bool = False) -> Any:
        """Run one GET and return the envelope's ``result``.

        Raises ``LockTimeout`` without touching the network when the lock stays
        busy for ``lock_timeout`` seconds, ``TransportError`` for HTTP failures and
        ``ProtocolError`` for undecodable or unsuccessful envelopes.
        """
        params = dict(params or {})
        if not self._lock.acquire(timeout=self.config.lock_timeout):
            logging.error("BITTREX GET %s: request lock busy for %.1fs", path, self.config.lock_timeout)
            raise LockTimeout(self.config.lock_timeout)
        try:
            resp = self._send(path, params, auth)
        finally:
            self._lock.release()
        return self._decode(path, resp)

    def _send(self, path: str, params: Dict[str, Any], auth: bool) -> httpx.Response:
        retrying = Retrying(
            reraise=True,
            stop=stop_after_attempt(self.config.max_retries) | stop_after_delay(self.retry_budget),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=RETRY_WAIT_MAX),
            retry=retry_if_exception_type(RETRYABLE),
            before_sleep=before_sleep_log(logging.getLogger(), logging.WARNING),
        )
        try:
            for attempt in retrying:
                with attempt:
                    # rebuilt per attempt so every try carries a fresh nonce
                    if auth:
                        req = self._signed_request(path, params)
                    else:
                        req = self._client.build_request("GET", self._url(path, params))
                    r = self._client.send(req)
                    r.raise_for_status()
                    return r
        except httpx.HTTPStatusError as exc:
            logging.error("BITTREX GET %s -> %s | %s", path, exc.response.status_code, exc.response.text[:200])
            raise TransportError(f"{path}: HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logging.error("BITTREX GET %s network error: %s", path, exc.__class__.__name__)
            raise TransportError(f"{path}: {exc.__class__.__name__}: {exc}") from exc

    def _decode(self, path: str, resp: httpx.Response) -> Any:
        try:
            body = from_json(resp.content)
        except orjson.JSONDecodeError as exc:
            raise ProtocolError(f"{path}: undecodable response: {exc}") from exc
        if not isinstance(body, dict) or not isinstance(body.get("success"), bool):
            raise ProtocolError(f"{path}: response is not a success envelope")
        if not body["success"]:
            raise ProtocolError(f"{path}: {body.get('message') or 'request rejected'}")
        if "result" not in body:
            raise ProtocolError(f"{path}: envelope has no result")
        return body["result"]

    # -------- endpoints --------
    def markets(self):
        return self.query("/public/getmarkets")

    def ticker(self, pair: str):
        return self.query("/public/getticker", {"market": pair})

    def market_summaries(self):
        return self.query("/public/getmarketsummaries")

    def orderbook(self, pair: str):
        return self.query("/public/getorderbook", {"market": pair, "type": "both", "depth": self.config.orderbook_depth})

    def market_history(self, pair: str):
        return self.query("/public/getmarkethistory", {"market": pair, "count": self.config.last_trades_count})

    def balances(self):
        return self.query("/account/getbalances", auth=True)

    def open_orders(self):
        return self.query("/market/getopenorders", auth=True)

    def order_history(self):
        return self.query("/account/getorderhistory", {"count": self.config.trade_history_count}, auth=True)

    def order(self, order_id: str):
        return self.query("/account/getorder", {"uuid": order_id}, auth=True)

    def limit_order(self, pair: str, buy: bool, quantity: str, rate: str):
        path = "/market/buylimit" if buy else "/market/selllimit"
        return self.query(path, {"market": pair, "quantity": quantity, "rate": rate}, auth=True)

    def cancel(self, order_id: str):
        return self.query("/market/cancel", {"uuid": order_id}, auth=True)
