"""In-memory implementation of EventPublisherPort.

Keeps a bounded history of posted events and fans them out synchronously to
subscribers. Thread-safe: events are posted from request threads and from the
lifecycle pool. Suitable for a single process; replace with a broker adapter
when events must leave the process.
"""
from __future__ import annotations

import threading
from collections import deque
from typing import Callable, Deque, List, Optional

from exgate.core.interfaces.event_publisher import EventPublisherPort
from exgate.core.models.event import ExtensionEvent
from exgate.core.settings import logger

Subscriber = Callable[[ExtensionEvent], None]


class InMemoryEventPublisher(EventPublisherPort):
    def __init__(self, max_history: int = 1000) -> None:
        self._history: Deque[ExtensionEvent] = deque(maxlen=max_history)
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()
        self._delivered = threading.Condition(self._lock)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback; returns a function that unregisters it."""
        with self._lock:
            self._subscribers = self._subscribers + [callback]

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers = [s for s in self._subscribers if s is not callback]

        return unsubscribe

    def post(self, event: ExtensionEvent) -> None:
        logger.debug(f"[event:post] topic={event.topic}")
        with self._lock:
            self._history.append(event)
            subscribers = self._subscribers
            self._delivered.notify_all()
        for callback in subscribers:
            try:
                callback(event)
            except Exception as exc:
                logger.error(
                    f"[event:error] subscriber failed callback={getattr(callback, '__name__', callback)} "
                    f"topic={event.topic} error={exc}"
                )

    def events(self, extension_id: Optional[str] = None) -> List[ExtensionEvent]:
        with self._lock:
            snapshot = list(self._history)
        if extension_id is None:
            return snapshot
        return [e for e in snapshot if e.extension_id == extension_id]

    def wait_for(
        self,
        predicate: Callable[[ExtensionEvent], bool],
        timeout: float = 5.0,
    ) -> Optional[ExtensionEvent]:
        """Block until an event matching `predicate` has been posted."""
        def find() -> Optional[ExtensionEvent]:
            for event in self._history:
                if predicate(event):
                    return event
            return None

        with self._lock:
            self._delivered.wait_for(lambda: find() is not None, timeout=timeout)
            return find()

    def clear(self) -> None:
        with self._lock:
            self._history.clear()
