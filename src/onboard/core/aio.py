"""Helpers for calling caller code that may be sync or async."""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any


async def maybe_await(value: Any) -> Any:
    """Await ``value`` if it is awaitable, else return it unchanged."""
    if inspect.isawaitable(value):
        return await value
    return value


async def call_hook(fn: Callable[..., Any], *args: Any) -> Any:
    """Call a sync-or-async callable and return its settled result."""
    return await maybe_await(fn(*args))


__all__ = ["maybe_await", "call_hook"]
