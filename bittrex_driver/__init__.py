from .adapter import BittrexAdapter
from .bittrex_client import BittrexClient
from .config import AdapterConfig, Credentials
from .errors import AdapterError, InvalidArgument, LockTimeout, ParseError, ProtocolError, TransportError
from .events import EventChannel, Topic
from .precision import is_amount_enough, round_amount, round_price
from .schemas import (
    LastTrades, Market, Order, OrderBook, OrderBookLevel, OrderSide, OrderStatus, PlatformType, Tick, Trade,
)

__all__ = [
    "BittrexAdapter", "BittrexClient", "AdapterConfig", "Credentials",
    "AdapterError", "InvalidArgument", "LockTimeout", "ParseError", "ProtocolError", "TransportError",
    "EventChannel", "Topic", "is_amount_enough", "round_amount", "round_price",
    "LastTrades", "Market", "Order", "OrderBook", "OrderBookLevel", "OrderSide", "OrderStatus",
    "PlatformType", "Tick", "Trade",
]
