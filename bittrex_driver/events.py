"""Notification channel the adapter publishes to.

Subscribers register per topic; a failing subscriber is logged and skipped so it
cannot break the call that triggered the publication.
"""
from __future__ import annotations
import logging, threading
from collections import defaultdict
from enum import Enum
from typing import Any, Callable, DefaultDict, List

Handler = Callable[[Any], None]


class Topic(str, Enum):
    ERROR = "error"
    PRICE_UPDATE = "price_update"
    ORDERBOOK_UPDATE = "orderbook_update"
    ORDERBOOK_CORRECTION = "orderbook_correction"
    LAST_TRADES_UPDATE = "last_trades_update"
    WALLET_UPDATE = "wallet_update"
    WALLET_CORRECTION = "wallet_correction"
    POSITION_LIST_UPDATE = "position_list_update"
    POSITION_CORRECTION = "position_correction"
    OPEN_ORDER_LIST_UPDATE = "open_order_list_update"
    OPEN_ORDER_CORRECTION = "open_order_correction"


class EventChannel:
    def __init__(self):
        self._handlers: DefaultDict[Topic, List[Handler]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, topic: Topic, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a callable that removes it again."""
        with self._lock:
            self._handlers[topic].append(handler)

        def unsubscribe():
            with self._lock:
                if handler in self._handlers[topic]:
                    self._handlers[topic].remove(handler)
        return unsubscribe

    def publish(self, topic: Topic, payload: Any) -> int:
        with self._lock:
            handlers = list(self._handlers[topic])
        for h in handlers:
            try:
                h(payload)
            except Exception:
                logging.exception("BITTREX subscriber %r failed on %s", h, topic.value)
        return len(handlers)
