"""Long-polling update router for the Telegram Bot API."""

from __future__ import annotations

from .bot import BotInterface, create_interface
from .config import PollingSettings, TelepollSettings, load_settings
from .cursor import Cursor
from .errors import (
    AlreadyRunning,
    ConfigError,
    ConfigurationConflict,
    DuplicateRequest,
    HandlerActionError,
    InterfaceAlreadyCreated,
    RemoteRejection,
    RetryAfter,
    TelepollError,
    TransportError,
)
from .registry import (
    ChatSubscription,
    ConsumerRegistry,
    HandlerId,
    HandlerResult,
    PendingRequest,
)
from .router import Router
from .poller import Poller
from .telegram.types import ChatUpdate, TelegramUpdate, UpdateKind

__version__ = "0.1.0"

__all__ = [
    "AlreadyRunning",
    "BotInterface",
    "ChatSubscription",
    "ChatUpdate",
    "ConfigError",
    "ConfigurationConflict",
    "ConsumerRegistry",
    "Cursor",
    "DuplicateRequest",
    "HandlerActionError",
    "HandlerId",
    "HandlerResult",
    "InterfaceAlreadyCreated",
    "PendingRequest",
    "Poller",
    "PollingSettings",
    "RemoteRejection",
    "RetryAfter",
    "Router",
    "TelegramUpdate",
    "TelepollError",
    "TelepollSettings",
    "TransportError",
    "UpdateKind",
    "create_interface",
    "load_settings",
]
