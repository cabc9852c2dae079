from __future__ import annotations

from typing import Any

import msgspec

from ..logging import get_logger
from .api_models import Update
from .types import TelegramUpdate, UpdateKind

logger = get_logger(__name__)

__all__ = ["decode_update", "extract_update_id"]

_KINDS = tuple(kind for kind in UpdateKind if kind is not UpdateKind.UNKNOWN)


def extract_update_id(raw: Any) -> int | None:
    if not isinstance(raw, dict):
        return None
    update_id = raw.get("update_id")
    if isinstance(update_id, bool) or not isinstance(update_id, int):
        return None
    return update_id


def decode_update(raw: dict[str, Any]) -> TelegramUpdate | None:
    """Convert one ``getUpdates`` entry into a :class:`TelegramUpdate`.

    Returns ``None`` when the entry cannot be decoded at all; callers still
    use :func:`extract_update_id` to move the cursor past it.
    """
    try:
        update = msgspec.convert(raw, type=Update)
    except msgspec.ValidationError as exc:
        logger.warning(
            "decoder.invalid_update",
            update_id=extract_update_id(raw),
            error=str(exc),
        )
        return None

    for kind in _KINDS:
        payload = getattr(update, kind.value)
        if payload is not None:
            return TelegramUpdate(
                update_id=update.update_id,
                kind=kind,
                chat_id=_chat_id_of(kind, payload),
                payload=payload,
                sender_id=_sender_id_of(payload),
                raw=raw,
            )
    return TelegramUpdate(
        update_id=update.update_id,
        kind=UpdateKind.UNKNOWN,
        chat_id=None,
        raw=raw,
    )


def _chat_id_of(kind: UpdateKind, payload: Any) -> int | None:
    if kind is UpdateKind.CALLBACK_QUERY:
        message = payload.message
        return message.chat.id if message is not None else None
    chat = getattr(payload, "chat", None)
    if chat is not None:
        return chat.id
    return None


def _sender_id_of(payload: Any) -> int | None:
    sender = getattr(payload, "from_", None)
    if sender is None:
        sender = getattr(payload, "user", None)
    return sender.id if sender is not None else None
