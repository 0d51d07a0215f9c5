"""Named-signal event sources the engine subscribes to."""

import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Tuple

logger = logging.getLogger(__name__)

APP_WILL_ENTER_FOREGROUND = "app.will_enter_foreground"

Subscription = Tuple[str, int]


class EventSource(ABC):
    @abstractmethod
    def subscribe(self, signal: str, callback: Callable[[], None]) -> Subscription:
        """Register ``callback`` for ``signal`` and return a token for unsubscribing."""
        pass

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        pass


class LocalEventBus(EventSource):
    """Synchronous in-process pub/sub.

    ``post`` calls every subscriber on the posting thread. A failing
    subscriber is logged and does not prevent the others from running.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: Dict[str, Dict[int, Callable[[], None]]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, signal: str, callback: Callable[[], None]) -> Subscription:
        with self._lock:
            sub_id = next(self._ids)
            self._subs.setdefault(signal, {})[sub_id] = callback
        logger.info(f"EventBus: subscriber {sub_id} registered for {signal}")
        return (signal, sub_id)

    def unsubscribe(self, subscription: Subscription) -> None:
        signal, sub_id = subscription
        with self._lock:
            removed = self._subs.get(signal, {}).pop(sub_id, None)
        if removed:
            logger.info(f"EventBus: subscriber {sub_id} removed from {signal}")

    def subscriber_count(self, signal: str) -> int:
        with self._lock:
            return len(self._subs.get(signal, {}))

    def post(self, signal: str) -> int:
        """Deliver ``signal`` to its subscribers and return how many ran."""
        with self._lock:
            callbacks: List[Callable[[], None]] = list(self._subs.get(signal, {}).values())
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception(f"EventBus: subscriber for {signal} failed")
        return len(callbacks)
