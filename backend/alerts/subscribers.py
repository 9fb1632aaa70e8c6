"""
Subscriber List
Change callbacks shared by the RuleStore and the AlertLog.

Each callback receives the full snapshot after a committed change. A
callback that raises is logged and skipped; the others still run.

Usage:
    subscribers = SubscriberList("RuleStore")
    unsubscribe = subscribers.add(lambda rules: print(len(rules)))
    subscribers.publish(tuple(rules))
    unsubscribe()
"""

from typing import Callable, Generic, List, TypeVar

from loguru import logger

T = TypeVar("T")

Callback = Callable[[T], None]


class SubscriberList(Generic[T]):
    """Callbacks that receive a snapshot after every committed change."""

    def __init__(self, owner: str):
        self._owner = owner
        self._callbacks: List[Callback] = []

    def add(self, callback: Callback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def publish(self, snapshot: T) -> None:
        for callback in list(self._callbacks):
            self.publish_one(callback, snapshot)

    def publish_one(self, callback: Callback, snapshot: T) -> None:
        try:
            callback(snapshot)
        except Exception:
            logger.exception(f"{self._owner} subscriber {callback!r} failed")

    def __len__(self) -> int:
        return len(self._callbacks)
