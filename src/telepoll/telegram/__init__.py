"""Telegram-specific clients and adapters."""

from .client import TelegramClient, UpdateSource
from .forum import GeneralForumTopic
from .parsing import decode_update, extract_update_id
from .types import ChatUpdate, TelegramUpdate, UpdateKind

__all__ = [
    "ChatUpdate",
    "GeneralForumTopic",
    "TelegramClient",
    "TelegramUpdate",
    "UpdateKind",
    "UpdateSource",
    "decode_update",
    "extract_update_id",
]
