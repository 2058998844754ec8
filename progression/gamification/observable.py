"""
Observable values for the engine's query surface

Each ObservableValue holds the latest committed value of one piece of
progression state. Consumers read `.value` at any time or subscribe to be
called with every new value. Only the engine publishes.
"""

import logging
from typing import Callable, Generic, List, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Subscriber = Callable[[T], None]


class ObservableValue(Generic[T]):
    """Read-only current value with change subscriptions"""

    def __init__(self, name: str, initial: T):
        self.name = name
        self._value = initial
        self._subscribers: List[Subscriber] = []

    @property
    def value(self) -> T:
        return self._value

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback invoked with each published value

        Returns:
            Function that removes the subscription (safe to call twice)
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _set(self, value: T) -> None:
        """Publish a new value (engine only)"""
        self._value = value
        for callback in list(self._subscribers):
            try:
                callback(value)
            except Exception:
                # A failing subscriber must not affect the engine or other subscribers
                logger.exception(f"Subscriber of '{self.name}' raised")

    def __repr__(self) -> str:
        return f"ObservableValue({self.name}={self._value!r})"
