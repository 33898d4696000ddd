"""
Onboard core primitives shared by the engine.

Modules:
    errors     OnboardError hierarchy base, ErrorCategory, ErrorContext
    events     EventHub publish/subscribe with wildcard patterns
    logging    structlog configuration and get_logger
    settings   pydantic-settings EngineSettings
"""

from onboard.core.errors import ConfigError, ErrorCategory, ErrorContext, OnboardError
from onboard.core.events import EventHub
from onboard.core.logging import configure_logging, get_logger
from onboard.core.settings import EngineSettings, get_settings

__all__ = [
    "ConfigError",
    "ErrorCategory",
    "ErrorContext",
    "OnboardError",
    "EventHub",
    "configure_logging",
    "get_logger",
    "EngineSettings",
    "get_settings",
]
