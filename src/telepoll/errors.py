from __future__ import annotations

from typing import Any


class TelepollError(Exception):
    pass


class ConfigError(TelepollError):
    pass


class TransportError(TelepollError):
    """The fetch never produced a usable API response."""

    def __init__(self, method: str, message: str) -> None:
        super().__init__(f"{method}: {message}")
        self.method = method


class RemoteRejection(TelepollError):
    """The API answered with ``ok: false``."""

    def __init__(
        self,
        method: str,
        *,
        error_code: int | None = None,
        description: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            f"{method} rejected ({error_code}): {description or 'no description'}"
        )
        self.method = method
        self.error_code = error_code
        self.description = description
        self.parameters = parameters or {}


class RetryAfter(RemoteRejection):
    def __init__(
        self,
        retry_after: float,
        *,
        method: str = "unknown",
        description: str | None = None,
    ) -> None:
        super().__init__(method, error_code=429, description=description)
        self.retry_after = float(retry_after)


class HandlerActionError(TelepollError):
    def __init__(self, consumer: str, update_id: int, cause: BaseException) -> None:
        super().__init__(f"{consumer} failed on update {update_id}: {cause!r}")
        self.consumer = consumer
        self.update_id = update_id
        self.cause = cause


class DuplicateRequest(TelepollError):
    def __init__(self, chat_id: int, request_id: int) -> None:
        super().__init__(
            f"request {request_id} is already pending for chat {chat_id}"
        )
        self.chat_id = chat_id
        self.request_id = request_id


class ConfigurationConflict(TelepollError):
    pass


class AlreadyRunning(TelepollError):
    pass


class InterfaceAlreadyCreated(TelepollError):
    pass
