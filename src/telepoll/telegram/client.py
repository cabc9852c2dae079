from __future__ import annotations

import re
from typing import Any, Protocol

import httpx

from ..config import DEFAULT_API_BASE
from ..errors import RemoteRejection, RetryAfter, TransportError
from ..logging import get_logger

logger = get_logger(__name__)

__all__ = ["TelegramClient", "UpdateSource"]


class UpdateSource(Protocol):
    async def get_updates(
        self,
        offset: int | None,
        limit: int = 100,
        timeout_s: int = 50,
        allowed_updates: list[str] | None = None,
    ) -> list[dict[str, Any]]: ...


_RETRY_AFTER_RE = re.compile(r"retry after (\d+)", re.IGNORECASE)


def _retry_after_from_payload(payload: dict[str, Any]) -> float | None:
    params = payload.get("parameters")
    if isinstance(params, dict):
        retry_after = params.get("retry_after")
        if isinstance(retry_after, (int, float)):
            return float(retry_after)
    description = payload.get("description")
    if isinstance(description, str):
        match = _RETRY_AFTER_RE.search(description)
        if match:
            return float(match.group(1))
    return None


def _rejection(method: str, payload: dict[str, Any]) -> RemoteRejection:
    error_code = payload.get("error_code")
    description = payload.get("description")
    retry_after = _retry_after_from_payload(payload)
    if retry_after is not None:
        return RetryAfter(
            retry_after,
            method=method,
            description=description if isinstance(description, str) else None,
        )
    params = payload.get("parameters")
    return RemoteRejection(
        method,
        error_code=error_code if isinstance(error_code, int) else None,
        description=description if isinstance(description, str) else None,
        parameters=params if isinstance(params, dict) else None,
    )


class TelegramClient:
    def __init__(
        self,
        token: str,
        timeout_s: float = 120,
        client: httpx.AsyncClient | None = None,
        *,
        api_base: str = DEFAULT_API_BASE,
    ) -> None:
        if not token:
            raise ValueError("Telegram token is empty")
        self._base = f"{api_base.rstrip('/')}/bot{token}"
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def call(self, method: str, params: dict[str, Any] | None = None) -> Any:
        logger.debug("telegram.request", method=method, payload=params)
        try:
            resp = await self._client.post(f"{self._base}/{method}", json=params or {})
        except httpx.HTTPError as e:
            logger.error(
                "telegram.network_error",
                method=method,
                error=str(e),
                error_type=e.__class__.__name__,
            )
            raise TransportError(method, str(e)) from e

        try:
            payload = resp.json()
        except ValueError as e:
            logger.error(
                "telegram.bad_response",
                method=method,
                status=resp.status_code,
                error=str(e),
                body=resp.text,
            )
            raise TransportError(
                method, f"undecodable response (HTTP {resp.status_code})"
            ) from e

        if not isinstance(payload, dict) or "ok" not in payload:
            logger.error(
                "telegram.invalid_payload",
                method=method,
                status=resp.status_code,
                payload=payload,
            )
            raise TransportError(method, f"invalid payload (HTTP {resp.status_code})")

        if not payload.get("ok"):
            rejection = _rejection(method, payload)
            if isinstance(rejection, RetryAfter):
                logger.info(
                    "telegram.rate_limited",
                    method=method,
                    status=resp.status_code,
                    retry_after=rejection.retry_after,
                )
            else:
                logger.error(
                    "telegram.api_error",
                    method=method,
                    status=resp.status_code,
                    error_code=rejection.error_code,
                    description=rejection.description,
                )
            raise rejection

        logger.debug("telegram.response", method=method, payload=payload)
        return payload.get("result")

    async def get_updates(
        self,
        offset: int | None,
        limit: int = 100,
        timeout_s: int = 50,
        allowed_updates: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"timeout": timeout_s, "limit": limit}
        if offset is not None:
            params["offset"] = offset
        if allowed_updates is not None:
            params["allowed_updates"] = allowed_updates
        result = await self.call("getUpdates", params)
        if not isinstance(result, list):
            raise TransportError("getUpdates", "result is not a list")
        return result

    async def get_me(self) -> dict[str, Any] | None:
        res = await self.call("getMe")
        return res if isinstance(res, dict) else None

    async def send_message(
        self,
        chat_id: int | str,
        text: str,
        reply_to_message_id: int | None = None,
        disable_notification: bool | None = False,
        parse_mode: str | None = None,
        reply_markup: dict[str, Any] | None = None,
        message_thread_id: int | None = None,
    ) -> dict[str, Any] | None:
        params: dict[str, Any] = {
            "chat_id": chat_id,
            "text": text,
        }
        if disable_notification is not None:
            params["disable_notification"] = disable_notification
        if reply_to_message_id is not None:
            params["reply_to_message_id"] = reply_to_message_id
        if parse_mode is not None:
            params["parse_mode"] = parse_mode
        if reply_markup is not None:
            params["reply_markup"] = reply_markup
        if message_thread_id is not None:
            params["message_thread_id"] = message_thread_id
        res = await self.call("sendMessage", params)
        return res if isinstance(res, dict) else None

    async def answer_callback_query(
        self,
        callback_query_id: str,
        text: str | None = None,
        show_alert: bool = False,
    ) -> bool:
        params: dict[str, Any] = {"callback_query_id": callback_query_id}
        if text is not None:
            params["text"] = text
        if show_alert:
            params["show_alert"] = True
        return bool(await self.call("answerCallbackQuery", params))

    async def delete_webhook(self, drop_pending_updates: bool = False) -> bool:
        return bool(
            await self.call(
                "deleteWebhook", {"drop_pending_updates": drop_pending_updates}
            )
        )

    async def edit_general_forum_topic(self, chat_id: int | str, name: str) -> bool:
        return bool(
            await self.call("editGeneralForumTopic", {"chat_id": chat_id, "name": name})
        )

    async def close_general_forum_topic(self, chat_id: int | str) -> bool:
        return bool(await self.call("closeGeneralForumTopic", {"chat_id": chat_id}))

    async def reopen_general_forum_topic(self, chat_id: int | str) -> bool:
        return bool(await self.call("reopenGeneralForumTopic", {"chat_id": chat_id}))

    async def hide_general_forum_topic(self, chat_id: int | str) -> bool:
        return bool(await self.call("hideGeneralForumTopic", {"chat_id": chat_id}))

    async def unhide_general_forum_topic(self, chat_id: int | str) -> bool:
        return bool(await self.call("unhideGeneralForumTopic", {"chat_id": chat_id}))

    async def unpin_all_general_forum_topic_messages(self, chat_id: int | str) -> bool:
        return bool(
            await self.call(
                "unpinAllGeneralForumTopicMessages", {"chat_id": chat_id}
            )
        )
