"""
In-process event hub.

Manifesto:
    One engine instance owns one hub.  Listeners are plain callables that
    may be sync or async; the hub never lets a misbehaving listener break
    the navigation sequence that emitted the event.

Tags:
    onboard-core, events, in-memory, asyncio, pubsub
"""

from __future__ import annotations

import asyncio
import inspect
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from onboard.core.events import Listener, Unsubscribe, matches
from onboard.core.logging import get_logger

__all__ = ["EventHub", "Subscription"]

log = get_logger(__name__)


@dataclass
class Subscription:
    """Internal subscription record."""

    id: str
    pattern: str
    handler: Listener


def _event_name(event_type: str | Enum) -> str:
    if isinstance(event_type, Enum):
        return str(event_type.value)
    return event_type


class EventHub:
    """Publish/subscribe registry for a single engine instance.

    Listeners are kept in registration order.  ``subscribe`` returns an
    unsubscribe callable that is safe to call more than once.

    Example::

        hub = EventHub()

        async def log_event(payload):
            print(payload)

        hub.subscribe("*", log_event)
        hub.notify("step.active", {"step_id": "welcome"})
        await hub.drain()
    """

    def __init__(self) -> None:
        self._subscriptions: dict[str, Subscription] = {}
        self._pending: set[asyncio.Task[Any]] = set()

    def subscribe(self, event_type: str | Enum, handler: Listener) -> Unsubscribe:
        """Subscribe to events matching a pattern.

        Args:
            event_type: Pattern to match (supports ``*`` and ``type.*``)
            handler: Sync or async callback receiving the event payload

        Returns:
            Callable removing the subscription
        """
        if not callable(handler):
            raise TypeError(f"Listener for {event_type!r} must be callable")

        sub_id = f"sub_{uuid.uuid4().hex[:12]}"
        self._subscriptions[sub_id] = Subscription(
            id=sub_id,
            pattern=_event_name(event_type),
            handler=handler,
        )

        def unsubscribe() -> None:
            self._subscriptions.pop(sub_id, None)

        return unsubscribe

    def listeners(self, event_type: str | Enum, *, exact: bool = False) -> list[Listener]:
        """Handlers matching ``event_type`` in registration order.

        With ``exact=True`` only subscriptions made under the literal event
        name count; ``*`` and ``prefix.*`` patterns are ignored.
        """
        name = _event_name(event_type)
        return [
            sub.handler
            for sub in list(self._subscriptions.values())
            if (sub.pattern == name if exact else matches(name, sub.pattern))
        ]

    def listener_count(self, event_type: str | Enum, *, exact: bool = False) -> int:
        """Number of handlers that would receive ``event_type``."""
        return len(self.listeners(event_type, exact=exact))

    def notify(self, event_type: str | Enum, payload: Any = None) -> None:
        """Fire-and-forget delivery to every matching listener.

        Sync listeners run inline; awaitable results are scheduled as tasks.
        Exceptions are logged and never propagate to the caller.
        """
        name = _event_name(event_type)
        for handler in self.listeners(name):
            try:
                result = handler(payload)
            except Exception as e:
                log.warning("event_listener_error", event_type=name, error=str(e))
                continue

            if inspect.isawaitable(result):
                self._schedule(name, result)

    async def notify_sequential(
        self,
        event_type: str | Enum,
        payload: Any = None,
        *,
        stop_when: Callable[[Any], bool] | None = None,
        exact: bool = False,
    ) -> list[Any]:
        """Await every matching listener in order and collect their results.

        The first listener to raise aborts the chain; the exception
        propagates.  If ``stop_when`` returns True for a result, the
        remaining listeners are not called.  ``exact`` restricts the chain
        to subscriptions made under the literal event name.
        """
        name = _event_name(event_type)
        results: list[Any] = []
        for handler in self.listeners(name, exact=exact):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    result = await result
            except Exception as e:
                log.warning("sequential_listener_error", event_type=name, error=str(e))
                raise

            results.append(result)
            if stop_when is not None and stop_when(result):
                break
        return results

    async def drain(self) -> None:
        """Wait for all scheduled listener tasks to settle."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def clear(self) -> None:
        """Remove every subscription."""
        self._subscriptions.clear()

    def _schedule(self, name: str, awaitable: Any) -> None:
        async def safe_call() -> None:
            try:
                await awaitable
            except Exception as e:
                log.warning("event_listener_error", event_type=name, error=str(e))

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop (sync context): run the listener to completion
            asyncio.run(safe_call())
            return

        task = loop.create_task(safe_call())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
