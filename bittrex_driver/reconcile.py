"""Order detail reconciliation.

``account/getorder`` tells us whether an order is finished, but fills and fees
for finished orders only show up reliably in the order history, which can lag
behind. Details are therefore built from both: the live status decides
whether to look further, the history supplies price, fills and fees.
"""
from __future__ import annotations
import logging, time
from decimal import Decimal
from typing import Callable, List, Optional, Protocol, Sequence

from .schemas import Market, Order, OrderStatus, Trade


class OrderSource(Protocol):
    def get_order_status(self, order_id: str, market: Market, price: Decimal, amount: Decimal,
                         is_buy_order: bool) -> OrderStatus: ...

    def get_trade_history(self) -> Optional[List[Trade]]: ...


def average_price(trades: Sequence[Trade]) -> Decimal:
    """Volume-weighted price of ``trades``; zero when nothing was filled."""
    filled = sum((t.amount_filled for t in trades), Decimal(0))
    if filled == 0:
        return Decimal(0)
    return sum((t.price * t.amount_filled for t in trades), Decimal(0)) / filled


def order_from_trades(order_id: str, market: Market, amount: Decimal, trades: Sequence[Trade],
                      status: Optional[OrderStatus] = None) -> Order:
    """Fold the fills of one order into an ``Order``.

    ``status`` is the terminal status already observed live. Without it, the
    order counts as completed once the fills cover ``amount``.
    """
    filled = sum((t.amount_filled for t in trades), Decimal(0))
    if status is None:
        status = OrderStatus.COMPLETED if filled >= amount else OrderStatus.CANCELLED
    if not trades:
        return Order(order_id=order_id, market=market, status=status)
    first = trades[0]
    return Order(
        order_id=order_id,
        market=market,
        status=status,
        price=average_price(trades),
        amount=amount,
        amount_filled=min(amount, filled),
        fee_cost=sum((t.fee_cost for t in trades), Decimal(0)),
        fee_currency=first.fee_currency,
        is_buy_order=first.is_buy_order,
        timestamp=first.timestamp,
    )


class OrderReconciler:
    def __init__(self, source: OrderSource, settle_delay: float = 0.5,
                 sleep: Optional[Callable[[float], None]] = None):
        self.source = source
        self.settle_delay = settle_delay
        self._sleep = sleep or time.sleep

    def details(self, order_id: str, market: Market, price: Decimal, amount: Decimal,
                is_buy_order: bool) -> Optional[Order]:
        status = self.source.get_order_status(order_id, market, price, amount, is_buy_order)
        if not status.terminal:
            # still open (or unknown): history could only mask it
            return Order(order_id=order_id, market=market, status=status)

        # give the history index time to catch up with the terminal status
        self._sleep(self.settle_delay)

        history = self.source.get_trade_history()
        if history is None:
            return None
        trades = [t for t in history if t.order_id == order_id]
        if not trades:
            logging.warning("BITTREX order %s is %s but has no fills in history", order_id, status.value)
        order = order_from_trades(order_id, market, amount, trades, status=status)
        logging.info("BITTREX order %s status=%s filled=%s avg=%s fee=%s",
                     order_id, order.status.value, order.amount_filled, order.price, order.fee_cost)
        return order
