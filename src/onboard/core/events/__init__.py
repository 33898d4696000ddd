"""Event system for engine-internal and host communication.

Why This Package Exists
-----------------------
The navigation services (orchestrator, checklist policy, persistence) need
to tell the host application what happened -- step activated, flow
completed, persistence failed -- without importing UI or analytics code.
The ``EventHub`` decouples producers from consumers.

Two notification modes exist:

- **parallel** (``notify``) -- fire-and-forget.  Every matching listener is
  called; awaitable results are scheduled on the running loop and their
  failures are logged.  A raising listener never blocks its siblings.
- **sequential** (``notify_sequential``) -- listeners are awaited one after
  the other in registration order.  A raising listener aborts the chain and
  the exception propagates; a ``stop_when`` predicate can end it early.

Usage::

    from onboard.core.events import EventHub

    hub = EventHub()

    unsubscribe = hub.subscribe("navigation.*", lambda payload: print(payload))
    hub.notify("navigation.forward", {"from": "a", "to": "b"})
    unsubscribe()

Event names are dot-separated; subscriptions accept exact names, a
``prefix.*`` wildcard, or ``*`` for everything.

Modules
-------
hub     EventHub -- in-process registry for a single engine instance
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

__all__ = [
    "Listener",
    "Unsubscribe",
    "matches",
    "EventHub",
]


# ── Type Aliases ─────────────────────────────────────────────────────────

Listener = Callable[[Any], Any]
Unsubscribe = Callable[[], None]


def matches(event_type: str, pattern: str) -> bool:
    """Check if an event type matches a subscription pattern.

    Examples:
        - ``navigation.*`` matches ``navigation.back``, ``navigation.jump``
        - ``*`` matches everything
        - ``step.active`` matches exactly ``step.active``
    """
    if pattern == "*":
        return True
    if pattern.endswith(".*"):
        prefix = pattern[:-2]
        return event_type.startswith(prefix + ".")
    return event_type == pattern


from onboard.core.events.hub import EventHub  # noqa: E402
