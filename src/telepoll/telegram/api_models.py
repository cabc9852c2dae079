from __future__ import annotations

import msgspec

__all__ = [
    "CallbackQuery",
    "Chat",
    "ChatJoinRequest",
    "ChatMemberUpdated",
    "ChosenInlineResult",
    "InlineQuery",
    "Message",
    "MessageReply",
    "Poll",
    "PollAnswer",
    "PreCheckoutQuery",
    "ShippingQuery",
    "Update",
    "User",
]


class User(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: int
    is_bot: bool | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class Chat(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: int
    type: str
    title: str | None = None
    username: str | None = None
    is_forum: bool | None = None


class MessageReply(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    message_id: int
    text: str | None = None
    from_: User | None = msgspec.field(default=None, name="from")


class Message(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    message_id: int
    chat: Chat
    date: int | None = None
    message_thread_id: int | None = None
    is_topic_message: bool | None = None
    from_: User | None = msgspec.field(default=None, name="from")
    text: str | None = None
    caption: str | None = None
    reply_to_message: MessageReply | None = None


class CallbackQuery(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: str
    from_: User = msgspec.field(name="from")
    message: Message | None = None
    inline_message_id: str | None = None
    data: str | None = None


class InlineQuery(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: str
    from_: User = msgspec.field(name="from")
    query: str = ""
    offset: str = ""
    chat_type: str | None = None


class ChosenInlineResult(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    result_id: str
    from_: User = msgspec.field(name="from")
    query: str = ""
    inline_message_id: str | None = None


class ChatMemberUpdated(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    chat: Chat
    from_: User = msgspec.field(name="from")
    date: int = 0


class ChatJoinRequest(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    chat: Chat
    from_: User = msgspec.field(name="from")
    user_chat_id: int | None = None
    date: int = 0


class Poll(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: str
    question: str = ""


class PollAnswer(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    poll_id: str
    option_ids: list[int] = msgspec.field(default_factory=list)
    user: User | None = None


class ShippingQuery(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: str
    from_: User = msgspec.field(name="from")
    invoice_payload: str = ""


class PreCheckoutQuery(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    id: str
    from_: User = msgspec.field(name="from")
    currency: str = ""
    total_amount: int = 0
    invoice_payload: str = ""


class Update(msgspec.Struct, forbid_unknown_fields=False, frozen=True):
    update_id: int
    message: Message | None = None
    edited_message: Message | None = None
    channel_post: Message | None = None
    edited_channel_post: Message | None = None
    callback_query: CallbackQuery | None = None
    inline_query: InlineQuery | None = None
    chosen_inline_result: ChosenInlineResult | None = None
    my_chat_member: ChatMemberUpdated | None = None
    chat_member: ChatMemberUpdated | None = None
    chat_join_request: ChatJoinRequest | None = None
    poll: Poll | None = None
    poll_answer: PollAnswer | None = None
    shipping_query: ShippingQuery | None = None
    pre_checkout_query: PreCheckoutQuery | None = None
