"""
In-process lifecycle event bus.

Listeners are grouped by key. A bus may be given a catch-all key whose
listeners run for every published key, in addition to the exact-key
listeners. Publishing runs all listeners concurrently and waits for every
one of them; listener errors are logged and never reach the publisher.
"""

import asyncio
import inspect
from collections.abc import Callable, Hashable
from enum import Enum
from typing import Any

from jobqueue.config.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[..., Any]
Unsubscribe = Callable[[], None]


class Wildcard(Enum):
    """Keys that match every job name. Never equal to a string."""

    ANY_JOB = "ANY_JOB"

    def __repr__(self) -> str:
        return self.value


ANY_JOB = Wildcard.ANY_JOB


async def call_maybe_async(func: Callable[..., Any], *args: Any) -> Any:
    """Call a plain or coroutine function and return its result."""
    result = func(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class _Subscription:
    def __init__(self, key: Hashable, listener: Listener):
        self.key = key
        self.listener = listener


class EventBus:
    """Publish/subscribe with an optional catch-all key."""

    def __init__(self, catch_all: Hashable | None = None, name: str = "events"):
        self.catch_all = catch_all
        self.name = name
        self._subscriptions: dict[Hashable, list[_Subscription]] = {}

    def subscribe(self, key: Hashable, listener: Listener) -> Unsubscribe:
        """
        Register ``listener`` under ``key``.

        Returns a function that removes this subscription. Calling it again
        is a no-op.
        """
        subscription = _Subscription(key, listener)
        self._subscriptions.setdefault(key, []).append(subscription)

        def unsubscribe() -> None:
            subscriptions = self._subscriptions.get(key, [])
            if subscription in subscriptions:
                subscriptions.remove(subscription)
            if not subscriptions:
                self._subscriptions.pop(key, None)

        return unsubscribe

    def listeners(self, key: Hashable) -> list[Listener]:
        """Listeners a publish on ``key`` would run, exact key first."""
        subscriptions = list(self._subscriptions.get(key, []))
        if self.catch_all is not None and key != self.catch_all:
            subscriptions.extend(self._subscriptions.get(self.catch_all, []))
        return [s.listener for s in subscriptions]

    async def publish(self, key: Hashable, *args: Any) -> int:
        """
        Run every listener for ``key`` in parallel and wait for all of them.

        Returns the number of listeners invoked.
        """
        listeners = self.listeners(key)
        if not listeners:
            return 0

        await asyncio.gather(
            *(self._run(listener, key, args) for listener in listeners)
        )
        return len(listeners)

    async def _run(
        self, listener: Listener, key: Hashable, args: tuple[Any, ...]
    ) -> None:
        try:
            await call_maybe_async(listener, *args)
        except Exception:
            logger.exception(
                "Event listener failed",
                bus=self.name,
                key=repr(key),
                listener=getattr(listener, "__qualname__", repr(listener)),
            )
