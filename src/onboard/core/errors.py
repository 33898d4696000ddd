"""
Structured error types for the onboarding engine.

Instead of bare exceptions that lose context, every error the engine records
is an ``OnboardError`` carrying:

- **Category:** what kind of failure (hook, navigation, checklist, ...)
- **Context:** the operation and step where it happened, plus metadata
- **Cause:** the original exception raised by caller code

Architecture:
    ::

        ┌───────────────────────────────────────────────────────────┐
        │                      OnboardError                          │
        │              (category, context, cause)                    │
        ├───────────────────────────────────────────────────────────┤
        │  ConfigError          FlowError (onboard.engine.exceptions)│
        │  (CONFIG)             HOOK / NAVIGATION / CHECKLIST /      │
        │                       PERSISTENCE                          │
        └───────────────────────────────────────────────────────────┘

Examples:
    >>> try:
    ...     raise ValueError("boom")
    ... except ValueError as e:
    ...     err = OnboardError("hook failed", category=ErrorCategory.HOOK, cause=e)
    >>> err.to_dict()["category"]
    'HOOK'

Guardrails:
    ❌ DON'T: Swallow the original exception
    ✅ DO: Pass it as cause= when wrapping caller errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    HOOK = "HOOK"                  # onStepActive / onStepComplete / callbacks
    NAVIGATION = "NAVIGATION"      # cancelled, unknown target, traversal limit
    CHECKLIST = "CHECKLIST"        # checklist completion gate
    PERSISTENCE = "PERSISTENCE"    # load / save / clear callbacks
    CONFIG = "CONFIG"              # invalid step list or engine config
    INTERNAL = "INTERNAL"          # bugs, unexpected state
    UNKNOWN = "UNKNOWN"            # foreign exceptions without a category


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Attributes:
        operation: Engine operation that failed (e.g. ``"next"``, ``"persistData"``)
        step_id: Step involved, if any
        metadata: Additional key/value pairs for logging
    """

    operation: str | None = None
    step_id: str | int | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, excluding None values."""
        result: dict[str, Any] = {}
        if self.operation is not None:
            result["operation"] = self.operation
        if self.step_id is not None:
            result["step_id"] = self.step_id
        result.update(self.metadata)
        return result


class OnboardError(Exception):
    """
    Base class for every error the engine raises or records.

    Subclasses set ``default_category``; callers may override per instance.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> OnboardError:
        """
        Add context to this error (fluent API).

        Usage:
            raise HookError("failed").with_context(step_id="welcome")
        """
        for key, value in kwargs.items():
            if key in ("operation", "step_id"):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = repr(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


class ConfigError(OnboardError):
    """Invalid engine configuration."""

    default_category = ErrorCategory.CONFIG


def wrap_error(
    error: BaseException,
    message: str | None = None,
    *,
    error_type: type[OnboardError] = OnboardError,
) -> OnboardError:
    """Return ``error`` unchanged if it is already an OnboardError, else wrap it."""
    if isinstance(error, OnboardError):
        return error
    wrapped = error_type(message or str(error) or error.__class__.__name__, cause=error)
    if error_type is OnboardError:
        wrapped.category = ErrorCategory.UNKNOWN
    return wrapped


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "OnboardError",
    "ConfigError",
    "wrap_error",
]
