import threading
from collections.abc import Callable
from typing import Any

from docflow.events.base import BaseEventPublisher
from docflow.logging.logger import Log

Subscriber = Callable[[str, dict[str, Any]], None]


class InMemoryEventBus(BaseEventPublisher):
    """Fans events out to in-process subscribers, synchronously and in order.

    A subscriber that raises is logged and skipped; the remaining subscribers
    still receive the event.
    """

    def __init__(self) -> None:
        self._subscribers: list[Subscriber] = []
        self._lock = threading.Lock()

    def subscribe(self, subscriber: Subscriber) -> Callable[[], None]:
        """Register a callback. Returns a function that unsubscribes it."""
        with self._lock:
            self._subscribers.append(subscriber)

        def unsubscribe() -> None:
            with self._lock:
                if subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return unsubscribe

    def publish(self, event_name: str, payload: dict[str, Any]) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscriber in subscribers:
            try:
                subscriber(event_name, payload)
            except Exception as exc:
                Log.warning(f"Event subscriber failed on {event_name} for {payload.get('id')}: {exc}")
