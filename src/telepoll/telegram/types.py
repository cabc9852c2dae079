from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any

from .api_models import CallbackQuery, Message


class UpdateKind(str, enum.Enum):
    MESSAGE = "message"
    EDITED_MESSAGE = "edited_message"
    CHANNEL_POST = "channel_post"
    EDITED_CHANNEL_POST = "edited_channel_post"
    CALLBACK_QUERY = "callback_query"
    INLINE_QUERY = "inline_query"
    CHOSEN_INLINE_RESULT = "chosen_inline_result"
    MY_CHAT_MEMBER = "my_chat_member"
    CHAT_MEMBER = "chat_member"
    CHAT_JOIN_REQUEST = "chat_join_request"
    POLL = "poll"
    POLL_ANSWER = "poll_answer"
    SHIPPING_QUERY = "shipping_query"
    PRE_CHECKOUT_QUERY = "pre_checkout_query"
    UNKNOWN = "unknown"


MESSAGE_KINDS = frozenset(
    {
        UpdateKind.MESSAGE,
        UpdateKind.EDITED_MESSAGE,
        UpdateKind.CHANNEL_POST,
        UpdateKind.EDITED_CHANNEL_POST,
    }
)


@dataclass(frozen=True, slots=True)
class TelegramUpdate:
    update_id: int
    kind: UpdateKind
    chat_id: int | None
    payload: Any = None
    sender_id: int | None = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def message(self) -> Message | None:
        if self.kind in MESSAGE_KINDS:
            return self.payload
        return None

    @property
    def callback_query(self) -> CallbackQuery | None:
        if self.kind is UpdateKind.CALLBACK_QUERY:
            return self.payload
        return None

    @property
    def text(self) -> str | None:
        msg = self.message
        if msg is None:
            return None
        return msg.text if msg.text is not None else msg.caption


@dataclass(frozen=True, slots=True)
class ChatUpdate:
    chat_id: int
    update: TelegramUpdate
