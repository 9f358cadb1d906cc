"""Bittrex driver facade exposed to the scripting host.

Every operation is fail-soft: an ``AdapterError`` is logged, published on the
``ERROR`` topic and turned into the operation's empty result.
"""
from __future__ import annotations
import functools, logging
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx

from . import parsers
from .bittrex_client import BittrexClient
from .config import AdapterConfig, Credentials
from .errors import AdapterError
from .events import EventChannel, Topic
from .precision import as_decimal
from .reconcile import OrderReconciler
from .schemas import (
    LastTrades, Market, Order, OrderBook, OrderSide, OrderStatus, PlatformType, Tick, Trade, Wallet,
)

F = TypeVar("F", bound=Callable[..., Any])


def fail_soft(default: Any = None) -> Callable[[F], F]:
    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self: "BittrexAdapter", *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except AdapterError as exc:
                logging.warning("BITTREX %s failed: %s: %s", fn.__name__, exc.__class__.__name__, exc)
                self.events.publish(Topic.ERROR, exc)
                return default
        return wrapper  # type: ignore[return-value]
    return deco


def _fmt(value: Any) -> str:
    return format(as_decimal(value), "f")


class BittrexAdapter:
    platform_type = PlatformType.SPOT
    has_ticker_batch_calls = True
    has_orderbook_batch_calls = False
    has_last_trades_batch_calls = False
    has_private_key = True
    has_extra_private_key = False

    def __init__(
        self,
        config: Optional[AdapterConfig] = None,
        credentials: Optional[Credentials] = None,
        client: Optional[BittrexClient] = None,
        transport: Optional[httpx.BaseTransport] = None,
        events: Optional[EventChannel] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.config = config or AdapterConfig()
        self.client = client or BittrexClient(self.config, credentials, transport=transport)
        self.events = events or EventChannel()
        self.reconciler = OrderReconciler(self, self.config.settle_delay, sleep=sleep)
        self.ping_address = self.config.ping_address
        self.polling_speed = self.config.polling_speed

    # -------- lifecycle --------
    @fail_soft()
    def set_credentials(self, public_key: str, private_key: str, extra: str = ""):
        self.client.set_credentials(Credentials(public_key=public_key, private_key=private_key, extra=extra))

    def connect(self):
        """No push channel on this exchange."""

    def disconnect(self):
        """No push channel on this exchange."""

    def close(self):
        self.client.close()

    def subscribe(self, topic: Topic, handler: Callable[[Any], None]) -> Callable[[], None]:
        return self.events.subscribe(topic, handler)

    # -------- public API --------
    @fail_soft()
    def get_markets(self) -> Optional[List[Market]]:
        return parsers.parse_markets(self.client.markets())

    def get_margin_markets(self) -> Optional[List[Market]]:
        return None

    @fail_soft()
    def get_ticker(self, market: Market) -> Optional[Tick]:
        tick = parsers.parse_ticker(self.client.ticker(market.pair), market)
        self.events.publish(Topic.PRICE_UPDATE, tick)
        return tick

    @fail_soft()
    def get_all_tickers(self) -> Optional[List[Tick]]:
        ticks = parsers.parse_tickers(self.client.market_summaries())
        for t in ticks:
            self.events.publish(Topic.PRICE_UPDATE, t)
        return ticks

    @fail_soft()
    def get_orderbook(self, market: Market) -> Optional[OrderBook]:
        book = parsers.parse_orderbook(self.client.orderbook(market.pair), market)
        self.events.publish(Topic.ORDERBOOK_UPDATE, book)
        return book

    def get_all_orderbooks(self) -> Optional[List[OrderBook]]:
        return None

    @fail_soft()
    def get_last_trades(self, market: Market) -> Optional[LastTrades]:
        trades = parsers.parse_last_trades(market, self.client.market_history(market.pair))
        self.events.publish(Topic.LAST_TRADES_UPDATE, trades)
        return trades

    def get_all_last_trades(self) -> Optional[List[LastTrades]]:
        return None

    # -------- private API --------
    @fail_soft()
    def get_wallet(self) -> Optional[Wallet]:
        wallet = parsers.parse_wallet(self.client.balances())
        self.events.publish(Topic.WALLET_UPDATE, wallet)
        return wallet

    def get_margin_wallet(self) -> Optional[Dict[str, Decimal]]:
        return None

    @fail_soft()
    def get_open_orders(self) -> Optional[List[Order]]:
        orders = parsers.parse_open_orders(self.client.open_orders())
        self.events.publish(Topic.OPEN_ORDER_LIST_UPDATE, orders)
        return orders

    def get_positions(self) -> None:
        return None

    @fail_soft()
    def get_trade_history(self) -> Optional[List[Trade]]:
        return parsers.parse_trade_history(self.client.order_history())

    @fail_soft()
    def place_order(self, market: Market, side: OrderSide, price: Any, amount: Any,
                    is_market_order: bool = False, template: str = "", hidden_order: bool = False) -> Optional[str]:
        """Place a limit order and return its id; ``None`` when nothing was placed."""
        if is_market_order:
            logging.warning("BITTREX market orders are not supported (%s %s)", side.value, market.pair)
            return None
        result = self.client.limit_order(market.pair, side == OrderSide.BUY, _fmt(amount), _fmt(price))
        order_id = parsers.parse_order_id(result)
        logging.info("BITTREX placed %s %s %s @ %s id=%s", side.value, _fmt(amount), market.pair, _fmt(price), order_id)
        return order_id

    def place_leverage_order(self, market: Market, side: OrderSide, price: Any, amount: Any, leverage: Any,
                             is_market_order: bool = False, template: str = "",
                             hidden_order: bool = False) -> Optional[str]:
        return None

    @fail_soft(default=False)
    def cancel_order(self, market: Market, order_id: str, is_buy_order: bool) -> bool:
        self.client.cancel(order_id)
        return True

    @fail_soft(default=OrderStatus.UNKNOWN)
    def get_order_status(self, order_id: str, market: Market, price: Any, amount: Any,
                         is_buy_order: bool) -> OrderStatus:
        return parsers.parse_order(self.client.order(order_id)).status

    @fail_soft()
    def get_order_details(self, order_id: str, market: Market, price: Any, amount: Any,
                          is_buy_order: bool) -> Optional[Order]:
        """Final state of an order, with fills, average price and fees once it is finished.

        Blocks for ``settle_delay`` seconds when the order turned out finished.
        """
        return self.reconciler.details(order_id, market, as_decimal(price), as_decimal(amount), is_buy_order)

    # -------- helpers --------
    def get_contract_value(self, market: Market, price: Any) -> Decimal:
        return Decimal(1)

    def get_max_position_amount(self, market: Market, tick_close: Any, wallet: Wallet, leverage: Any,
                                side: Any) -> Decimal:
        return Decimal(1)
