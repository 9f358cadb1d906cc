from __future__ import annotations
from decimal import Decimal, DecimalException, ROUND_HALF_EVEN
from typing import Any
from .errors import InvalidArgument
from .schemas import Market

def as_decimal(v: Any) -> Decimal:
    if isinstance(v, Decimal):
        d = v
    elif isinstance(v, bool) or not isinstance(v, (str, int, float)):
        raise InvalidArgument(v)
    else:
        try:
            # str() keeps floats at their shortest repr instead of the binary expansion
            d = Decimal(str(v).strip())
        except DecimalException:
            raise InvalidArgument(v) from None
    if not d.is_finite():
        raise InvalidArgument(v, "expected a finite number")
    return d

def round_dec(v: Any, dp: int) -> Decimal:
    q = Decimal(10) ** -dp
    d = as_decimal(v)
    try:
        return d.quantize(q, rounding=ROUND_HALF_EVEN)
    except DecimalException:
        raise InvalidArgument(v, f"out of range for {dp} decimals") from None

def round_price(market: Market, value: Any) -> Decimal:
    return round_dec(value, market.price_decimals)

def round_amount(market: Market, value: Any) -> Decimal:
    return round_dec(value, market.amount_decimals)

def is_amount_enough(market: Market, price: Any, amount: Any) -> bool:
    """True when ``amount`` beats the minimum trade size and the notional meets the minimum volume."""
    amount = as_decimal(amount)
    return amount > market.minimum_trade_amount and amount * as_decimal(price) >= market.minimum_trade_volume

def decimals_in(text: Any) -> int:
    """Digits after the decimal point of a numeric field as the exchange renders it.

    Strings are taken literally (``"0.00100000"`` -> 8). JSON numbers arrive as
    floats and are rendered the way the exchange prints them (``0.001`` -> 3, ``1.0`` -> 0).
    """
    if isinstance(text, str):
        s = text.strip()
        if "e" in s.lower():
            s = format(Decimal(s), "f")
    else:
        d = as_decimal(text)
        s = format(d.normalize() if d == d.to_integral_value() or "E" in str(d) else d, "f")
    if "." not in s:
        return 0
    return len(s.split(".", 1)[1])
