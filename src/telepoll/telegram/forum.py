"""Helpers bound to the 'General' topic of one forum supergroup."""

from __future__ import annotations

from dataclasses import dataclass

from .client import TelegramClient


@dataclass(frozen=True, slots=True)
class GeneralForumTopic:
    """The 'General' topic of ``chat_id``.

    Every call needs the bot to be an administrator with ``can_manage_topics``
    (``can_pin_messages`` for :meth:`unpin_all_messages`).
    """

    client: TelegramClient
    chat_id: int | str

    def __post_init__(self) -> None:
        if isinstance(self.chat_id, str) and not self.chat_id.startswith("@"):
            object.__setattr__(self, "chat_id", f"@{self.chat_id}")

    async def edit(self, name: str) -> bool:
        return await self.client.edit_general_forum_topic(self.chat_id, name)

    async def close(self) -> bool:
        return await self.client.close_general_forum_topic(self.chat_id)

    async def reopen(self) -> bool:
        """Reopen the topic; Telegram also unhides it."""
        return await self.client.reopen_general_forum_topic(self.chat_id)

    async def hide(self) -> bool:
        """Hide the topic; Telegram also closes it."""
        return await self.client.hide_general_forum_topic(self.chat_id)

    async def unhide(self) -> bool:
        return await self.client.unhide_general_forum_topic(self.chat_id)

    async def unpin_all_messages(self) -> bool:
        return await self.client.unpin_all_general_forum_topic_messages(self.chat_id)
