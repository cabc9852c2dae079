from __future__ import annotations

from collections.abc import Callable
from typing import Any

import anyio

from telepoll.config import PollingSettings, TelepollSettings


def fast_settings(**polling: Any) -> TelepollSettings:
    values: dict[str, Any] = {"interval_s": 0.0, "error_backoff_s": 0.0}
    values.update(polling)
    return TelepollSettings(bot_token="123:abc", polling=PollingSettings(**values))


def raw_message(
    update_id: int, chat_id: int, text: str | None = "hello", *, sender_id: int = 42
) -> dict[str, Any]:
    message: dict[str, Any] = {
        "message_id": update_id * 10,
        "date": 0,
        "chat": {"id": chat_id, "type": "private" if chat_id > 0 else "supergroup"},
        "from": {"id": sender_id, "is_bot": False, "first_name": "Ann"},
    }
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


def raw_callback(update_id: int, chat_id: int, data: str = "ok") -> dict[str, Any]:
    return {
        "update_id": update_id,
        "callback_query": {
            "id": f"cb-{update_id}",
            "from": {"id": 42, "is_bot": False},
            "data": data,
            "message": {
                "message_id": 1,
                "chat": {"id": chat_id, "type": "private"},
            },
        },
    }


def raw_inline(update_id: int, query: str = "q") -> dict[str, Any]:
    return {
        "update_id": update_id,
        "inline_query": {
            "id": f"iq-{update_id}",
            "from": {"id": 42},
            "query": query,
            "offset": "",
        },
    }


class FakeUpdateSource:
    """Replays scripted batches; an exception in the script is raised instead."""

    def __init__(self, script: list[list[dict[str, Any]] | Exception] | None = None):
        self.script = list(script or [])
        self.calls: list[dict[str, Any]] = []

    @property
    def offsets(self) -> list[int | None]:
        return [call["offset"] for call in self.calls]

    async def get_updates(
        self,
        offset: int | None,
        limit: int = 100,
        timeout_s: int = 50,
        allowed_updates: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        self.calls.append(
            {
                "offset": offset,
                "limit": limit,
                "timeout_s": timeout_s,
                "allowed_updates": allowed_updates,
            }
        )
        if self.script:
            item = self.script.pop(0)
            if isinstance(item, Exception):
                raise item
            return item
        await anyio.sleep(0.01)
        return []


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    with anyio.fail_after(timeout):
        while not predicate():
            await anyio.sleep(0.005)
