from __future__ import annotations
import datetime as dt
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

EXCHANGE_FEE = Decimal("0.25")          # percent, fixed by the exchange
PRICE_DECIMALS = 8
MIN_TRADE_VOLUME = Decimal("0.0005")


class OrderStatus(str, Enum):
    UNKNOWN = "Unknown"
    EXECUTING = "Executing"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"

    @property
    def terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class OrderSide(str, Enum):
    BUY = "buy"
    SELL = "sell"


class PlatformType(str, Enum):
    SPOT = "spot"
    MARGIN = "margin"


class Market(BaseModel):
    """A spot market. ``secondary_currency`` is the quote (the ``BTC`` of ``BTC-LTC``)."""
    model_config = ConfigDict(frozen=True)

    primary_currency: str
    secondary_currency: str
    fee: Decimal = EXCHANGE_FEE
    price_decimals: int = PRICE_DECIMALS
    amount_decimals: int = 0
    minimum_trade_amount: Decimal = Decimal(0)
    minimum_trade_volume: Decimal = MIN_TRADE_VOLUME
    # spot only: leverage and settlement stay empty
    leverage: List[Decimal] = Field(default_factory=list)
    settlement_date: Optional[dt.datetime] = None
    contract_name: str = ""

    @model_validator(mode="after")
    def _distinct_currencies(self) -> "Market":
        if self.primary_currency.upper() == self.secondary_currency.upper():
            raise ValueError(f"primary and secondary currency are both {self.primary_currency}")
        return self

    @property
    def underlying_currency(self) -> str:
        return self.primary_currency

    @property
    def pair(self) -> str:
        """Exchange market name, ``SECONDARY-PRIMARY``."""
        return f"{self.secondary_currency.upper()}-{self.primary_currency.upper()}"


class Tick(BaseModel):
    model_config = ConfigDict(frozen=True)

    market: Market
    close: Decimal = Decimal(0)
    buy_price: Decimal = Decimal(0)     # best ask
    sell_price: Decimal = Decimal(0)    # best bid

    @model_validator(mode="after")
    def _spread_not_inverted(self) -> "Tick":
        if self.buy_price != 0 and self.buy_price <= self.sell_price:
            raise ValueError(f"ask {self.buy_price} not above bid {self.sell_price}")
        return self


class OrderBookLevel(BaseModel):
    model_config = ConfigDict(frozen=True)

    price: Decimal
    amount: Decimal


class OrderBook(BaseModel):
    model_config = ConfigDict(frozen=True)

    market: Optional[Market] = None
    asks: List[OrderBookLevel] = Field(default_factory=list)   # ascending
    bids: List[OrderBookLevel] = Field(default_factory=list)   # descending


class Trade(BaseModel):
    """A fill. Public trades leave ``order_id`` and the fee fields empty."""
    model_config = ConfigDict(frozen=True)

    market: Market
    order_id: Optional[str] = None
    timestamp: Optional[dt.datetime] = None
    price: Decimal = Decimal(0)
    amount: Decimal = Decimal(0)
    amount_filled: Decimal = Decimal(0)
    fee_cost: Decimal = Decimal(0)
    fee_currency: Optional[str] = None
    is_buy_order: bool = False
    status: OrderStatus = OrderStatus.UNKNOWN


class Order(Trade):
    executing_id: Optional[str] = None


class LastTrades(BaseModel):
    model_config = ConfigDict(frozen=True)

    market: Market
    trades: List[Trade] = Field(default_factory=list)   # newest first


Wallet = Dict[str, Decimal]
