"""Map raw Bittrex v1.1 payloads onto the driver's value objects.

Every parser is pure and raises ``ParseError`` for missing or malformed input.
Market names are ``SECONDARY-PRIMARY``: in ``BTC-LTC`` the quote is BTC and the
traded asset is LTC.
"""
from __future__ import annotations
import datetime as dt
import re
from decimal import Decimal, DecimalException, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple, TypeVar
from pydantic import ValidationError

from .errors import InvalidArgument, ParseError
from .precision import decimals_in, round_dec
from .schemas import (
    LastTrades, Market, Order, OrderBook, OrderBookLevel, OrderStatus, Tick, Trade, Wallet,
)

T = TypeVar("T")

_ISO_TS = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?Z?$")
_US_TS = "%m/%d/%Y %H:%M:%S"
# larger magnitudes cannot be carried through 28-digit Decimal arithmetic
MAX_EXPONENT = 20

# ------------- field accessors -------------

def _obj(raw: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ParseError(what, "expected an object", raw)
    return raw

def _list(raw: Any, what: str) -> List[Any]:
    if not isinstance(raw, list):
        raise ParseError(what, "expected a list", raw)
    return raw

def _str(o: Mapping[str, Any], field: str) -> str:
    v = o.get(field)
    if v is None:
        raise ParseError(field, "missing")
    if not isinstance(v, str) or not v.strip():
        raise ParseError(field, "expected a non-empty string", v)
    return v.strip()

def _dec(o: Mapping[str, Any], field: str, optional: bool = False) -> Decimal:
    v = o.get(field)
    if v is None:
        if optional:
            return Decimal(0)
        raise ParseError(field, "missing")
    if isinstance(v, bool):
        raise ParseError(field, "expected a number", v)
    try:
        d = Decimal(str(v).strip()) if isinstance(v, (str, int, float, Decimal)) else None
    except InvalidOperation:
        d = None
    if d is None or not d.is_finite():
        raise ParseError(field, "expected a number", v)
    if d.adjusted() > MAX_EXPONENT:
        raise ParseError(field, "out of range", v)
    return d

def _bool(o: Mapping[str, Any], field: str, default: Optional[bool] = None) -> bool:
    v = o.get(field)
    if v is None and default is not None:
        return default
    if not isinstance(v, bool):
        raise ParseError(field, "expected a boolean", v)
    return v

def _ts(o: Mapping[str, Any], field: str) -> dt.datetime:
    text = _str(o, field)
    m = _ISO_TS.match(text)
    try:
        if m:
            day, clock, frac = m.groups()
            parsed = dt.datetime.strptime(f"{day} {clock}", "%Y-%m-%d %H:%M:%S")
            if frac:
                parsed = parsed.replace(microsecond=int(frac[:6].ljust(6, "0")))
        else:
            parsed = dt.datetime.strptime(text, _US_TS)
    except ValueError:
        raise ParseError(field, "unrecognised timestamp", text) from None
    return parsed.replace(tzinfo=dt.timezone.utc)

def _build(cls: Callable[..., T], what: str, **kwargs: Any) -> T:
    try:
        return cls(**kwargs)
    except ValidationError as e:
        raise ParseError(what, e.errors()[0].get("msg", "invalid"), kwargs) from None

# ------------- markets -------------

def split_pair(name: str, field: str = "MarketName") -> Tuple[str, str]:
    """``"USDT-BTC"`` -> ``("BTC", "USDT")`` i.e. (primary, secondary)."""
    parts = name.split("-") if isinstance(name, str) else []
    if len(parts) != 2 or not all(p.strip() for p in parts):
        raise ParseError(field, "expected SECONDARY-PRIMARY", name)
    secondary, primary = parts[0].strip(), parts[1].strip()
    return primary, secondary

def market_from_pair(name: str, field: str = "MarketName") -> Market:
    primary, secondary = split_pair(name, field)
    return _build(Market, field, primary_currency=primary, secondary_currency=secondary)

def parse_market(raw: Any) -> Market:
    o = _obj(raw, "market")
    min_size = _dec(o, "MinTradeSize")
    return _build(
        Market, "market",
        primary_currency=_str(o, "MarketCurrency"),
        secondary_currency=_str(o, "BaseCurrency"),
        minimum_trade_amount=min_size,
        amount_decimals=decimals_in(o["MinTradeSize"]),
    )

# ------------- tickers -------------

def parse_ticker(raw: Any, market: Optional[Market] = None) -> Tick:
    """Ticker from ``getticker`` (market supplied) or ``getmarketsummaries`` (market read from ``MarketName``)."""
    o = _obj(raw, "ticker")
    if market is None:
        market = market_from_pair(_str(o, "MarketName"))
    return _build(
        Tick, "ticker",
        market=market,
        close=_dec(o, "Last", optional=True),
        buy_price=_dec(o, "Ask", optional=True),
        sell_price=_dec(o, "Bid", optional=True),
    )

# ------------- order book -------------

def _levels(rows: Iterable[Any], side: str, descending: bool) -> List[OrderBookLevel]:
    merged: Dict[Decimal, Decimal] = {}
    for row in rows:
        o = _obj(row, side)
        price, qty = _dec(o, "Rate"), _dec(o, "Quantity")
        merged[price] = merged.get(price, Decimal(0)) + qty
    return [OrderBookLevel(price=p, amount=a)
            for p, a in sorted(merged.items(), key=lambda kv: kv[0], reverse=descending)]

def parse_orderbook(raw: Any, market: Optional[Market] = None) -> OrderBook:
    """Asks ascending, bids descending, duplicate price levels summed."""
    o = _obj(raw, "orderbook")
    bids = _levels(_list(o.get("buy") or [], "buy"), "buy", descending=True)
    asks = _levels(_list(o.get("sell") or [], "sell"), "sell", descending=False)
    if bids and asks and bids[0].price >= asks[0].price:
        raise ParseError("orderbook", f"crossed book: bid {bids[0].price} >= ask {asks[0].price}")
    return OrderBook(market=market, asks=asks, bids=bids)

# ------------- trades -------------

def parse_public_trade(market: Market, raw: Any) -> Trade:
    o = _obj(raw, "trade")
    qty = _dec(o, "Quantity")
    return _build(
        Trade, "trade",
        market=market,
        timestamp=_ts(o, "TimeStamp"),
        price=_dec(o, "Price"),
        amount=qty,
        amount_filled=qty,
        is_buy_order=_str(o, "OrderType").lower() == "buy",
    )

def parse_last_trades(market: Market, raw: Any) -> LastTrades:
    trades = [parse_public_trade(market, r) for r in _list(raw, "result")]
    trades.sort(key=lambda t: t.timestamp, reverse=True)
    return LastTrades(market=market, trades=trades)

def unit_price(total: Decimal, filled: Decimal) -> Decimal:
    """Order history reports the total paid in ``Price``; recover the per-unit price."""
    if filled == 0:
        return Decimal(0)
    try:
        return round_dec(total / filled, 8)
    except (DecimalException, InvalidArgument):
        raise ParseError("Price", "out of range", total) from None

def parse_private_trade(raw: Any) -> Trade:
    o = _obj(raw, "trade")
    pair = _str(o, "Exchange")
    market = market_from_pair(pair, "Exchange")
    qty = _dec(o, "Quantity")
    filled = qty - _dec(o, "QuantityRemaining")
    ts_field = "Closed" if o.get("Closed") else "TimeStamp"
    return _build(
        Trade, "trade",
        market=market,
        order_id=_str(o, "OrderUuid"),
        timestamp=_ts(o, ts_field),
        price=unit_price(_dec(o, "Price"), filled),
        amount=qty,
        amount_filled=filled,
        fee_cost=_dec(o, "Commission"),
        fee_currency=market.secondary_currency,
        is_buy_order="buy" in _str(o, "OrderType").lower(),
    )

# ------------- orders -------------

def _order_type(o: Mapping[str, Any]) -> Optional[str]:
    for key in ("OrderType", "Type"):
        if o.get(key):
            return _str(o, key).lower()
    return None

def _order_fields(o: Mapping[str, Any]) -> Dict[str, Any]:
    qty = _dec(o, "Quantity")
    order_type = _order_type(o)
    return dict(
        market=market_from_pair(_str(o, "Exchange"), "Exchange"),
        order_id=_str(o, "OrderUuid"),
        timestamp=_ts(o, "Opened") if o.get("Opened") else None,
        price=_dec(o, "Limit"),
        amount=qty,
        amount_filled=qty - _dec(o, "QuantityRemaining"),
        is_buy_order=order_type == "limit_buy",
    )

def parse_open_order(raw: Any) -> Order:
    o = _obj(raw, "order")
    return _build(Order, "order", status=OrderStatus.EXECUTING, **_order_fields(o))

def order_status_of(o: Mapping[str, Any]) -> OrderStatus:
    if _dec(o, "QuantityRemaining") == 0:
        status = OrderStatus.COMPLETED
    elif not _bool(o, "IsOpen"):
        status = OrderStatus.CANCELLED
    else:
        status = OrderStatus.EXECUTING
    if _bool(o, "CancelInitiated", default=False):
        status = OrderStatus.CANCELLED
    return status

def parse_order(raw: Any) -> Order:
    """Single order from ``account/getorder``."""
    o = _obj(raw, "order")
    fields = _order_fields(o)
    fields["fee_cost"] = _dec(o, "CommissionPaid")
    return _build(Order, "order", status=order_status_of(o), **fields)

# ------------- account -------------

def parse_wallet(raw: Any) -> Wallet:
    wallet: Wallet = {}
    for row in _list(raw, "result"):
        o = _obj(row, "balance")
        available = _dec(o, "Available", optional=True)
        if available > 0:
            wallet[_str(o, "Currency")] = available
    return wallet

def parse_order_id(raw: Any) -> str:
    return _str(_obj(raw, "result"), "uuid")

# ------------- collections -------------

def parse_markets(raw: Any) -> List[Market]:
    return [parse_market(m) for m in _list(raw, "result")]

def parse_tickers(raw: Any) -> List[Tick]:
    return [parse_ticker(s) for s in _list(raw, "result")]

def parse_open_orders(raw: Any) -> List[Order]:
    return [parse_open_order(o) for o in _list(raw, "result")]

def parse_trade_history(raw: Any) -> List[Trade]:
    return [parse_private_trade(t) for t in _list(raw, "result")]
