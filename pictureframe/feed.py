"""Latest-value broadcast of settings changes.

A ChangeFeed holds one slot and a version counter. Publishing overwrites the
slot and wakes every waiter; it never waits on subscribers. Each Subscription
remembers the last version it has seen, so a subscriber that misses several
publishes only ever observes the newest value.
"""
from __future__ import annotations

import asyncio
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class ChangeFeed(Generic[T]):
    def __init__(self, initial: T) -> None:
        self._cond = threading.Condition()
        self._value = initial
        self._version = 0
        self._wakers: set[Callable[[], None]] = set()

    def publish(self, value: T) -> None:
        with self._cond:
            self._value = value
            self._version += 1
            self._cond.notify_all()
            wakers = list(self._wakers)
        for wake in wakers:
            wake()

    def latest(self) -> T:
        with self._cond:
            return self._value

    def subscribe(self) -> "Subscription[T]":
        with self._cond:
            return Subscription(self, self._version)


class Subscription(Generic[T]):
    def __init__(self, feed: ChangeFeed[T], seen: int) -> None:
        self._feed = feed
        self._seen = seen

    def has_changed(self) -> bool:
        with self._feed._cond:
            return self._feed._version != self._seen

    def borrow_and_update(self) -> T:
        """Return the newest value and mark it as seen."""
        with self._feed._cond:
            self._seen = self._feed._version
            return self._feed._value

    def wait(self, timeout: float | None = None) -> T | None:
        """Block until a value newer than the last seen one is published.

        Returns None on timeout.
        """
        feed = self._feed
        with feed._cond:
            if not feed._cond.wait_for(lambda: feed._version != self._seen, timeout):
                return None
            self._seen = feed._version
            return feed._value

    async def changed(self) -> T:
        """Await the next unseen value from inside an event loop."""
        feed = self._feed
        loop = asyncio.get_running_loop()
        event = asyncio.Event()

        def wake() -> None:
            loop.call_soon_threadsafe(event.set)

        with feed._cond:
            if feed._version != self._seen:
                self._seen = feed._version
                return feed._value
            feed._wakers.add(wake)
        try:
            await event.wait()
        finally:
            with feed._cond:
                feed._wakers.discard(wake)
        return self.borrow_and_update()
