import json

import httpx
import pytest

from telepoll.telegram import GeneralForumTopic, TelegramClient


def _recording_transport(calls: list[tuple[str, dict]]) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        method = request.url.path.rsplit("/", 1)[-1]
        calls.append((method, json.loads(request.content)))
        return httpx.Response(200, json={"ok": True, "result": True}, request=request)

    return httpx.MockTransport(handler)


@pytest.mark.anyio
async def test_general_topic_operations_call_matching_methods() -> None:
    calls: list[tuple[str, dict]] = []
    async with httpx.AsyncClient(transport=_recording_transport(calls)) as client:
        topic = GeneralForumTopic(TelegramClient("123:abc", client=client), -100)
        assert await topic.edit("Lobby") is True
        assert await topic.close() is True
        assert await topic.reopen() is True
        assert await topic.hide() is True
        assert await topic.unhide() is True
        assert await topic.unpin_all_messages() is True

    assert [method for method, _ in calls] == [
        "editGeneralForumTopic",
        "closeGeneralForumTopic",
        "reopenGeneralForumTopic",
        "hideGeneralForumTopic",
        "unhideGeneralForumTopic",
        "unpinAllGeneralForumTopicMessages",
    ]
    assert calls[0][1] == {"chat_id": -100, "name": "Lobby"}


@pytest.mark.anyio
async def test_general_topic_username_gets_at_prefix() -> None:
    calls: list[tuple[str, dict]] = []
    async with httpx.AsyncClient(transport=_recording_transport(calls)) as client:
        topic = GeneralForumTopic(TelegramClient("123:abc", client=client), "mygroup")
        await topic.close()

    assert topic.chat_id == "@mygroup"
    assert calls == [("closeGeneralForumTopic", {"chat_id": "@mygroup"})]
