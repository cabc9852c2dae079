from __future__ import annotations

import itertools
import threading
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream

from .config import TelepollSettings
from .cursor import Cursor
from .errors import DuplicateRequest, HandlerActionError, InterfaceAlreadyCreated
from .filters import Predicate, match_all
from .logging import get_logger
from .poller import Poller
from .registry import (
    Action,
    ChatSubscription,
    CompletionHandle,
    ConsumerRegistry,
    HandlerId,
    PendingRequest,
)
from .router import Router
from .telegram.client import TelegramClient, UpdateSource
from .telegram.forum import GeneralForumTopic
from .telegram.types import ChatUpdate, TelegramUpdate

if TYPE_CHECKING:
    from anyio.abc import TaskGroup
else:
    TaskGroup = object

logger = get_logger(__name__)

__all__ = ["BotInterface", "create_interface"]

_guard_lock = threading.Lock()
_interface_live = False


def _claim_interface_slot() -> None:
    global _interface_live
    with _guard_lock:
        if _interface_live:
            raise InterfaceAlreadyCreated(
                "a BotInterface is already live in this process; close it first"
            )
        _interface_live = True


def _release_interface_slot() -> None:
    global _interface_live
    with _guard_lock:
        _interface_live = False


class BotInterface:
    """Owns the cursor, consumer registry, router and poller for one bot.

    Use as an async context manager; polling and routing tasks live in the
    task group opened on entry. Only one instance may be live per process:
    construction claims the process slot and only :meth:`close` (called on
    leaving the context) releases it, so an instance that is built but never
    entered must be closed explicitly.
    """

    def __init__(
        self,
        source: UpdateSource,
        *,
        settings: TelepollSettings | None = None,
        on_error: Callable[[HandlerActionError], None] | None = None,
        owns_source: bool = False,
        shutdown_grace_s: float = 5.0,
        _slot_claimed: bool = False,
    ) -> None:
        if not _slot_claimed:
            _claim_interface_slot()
        self._settings = settings or TelepollSettings()
        self._source = source
        self._owns_source = owns_source
        self._shutdown_grace_s = shutdown_grace_s
        self._cursor = Cursor()
        self.registry = ConsumerRegistry()
        self.router = Router(self.registry, on_error=on_error)
        self.poller = Poller(
            source,
            self._cursor,
            self.router,
            settings=self._settings.polling,
            webhook=self._settings.webhook,
        )
        self._request_ids = itertools.count(1)
        self._tg: TaskGroup | None = None
        self._closed = False

    async def __aenter__(self) -> BotInterface:
        if self._closed:
            raise RuntimeError("BotInterface is closed")
        tg = anyio.create_task_group()
        await tg.__aenter__()
        self._tg = tg
        self.router.attach(tg)
        self.poller.attach(tg)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool | None:
        tg = self._tg
        self.poller.stop()
        try:
            if tg is None:
                return None
            if exc_type is None and self.router.inflight:
                with anyio.move_on_after(self._shutdown_grace_s):
                    await self.router.wait_idle()
            tg.cancel_scope.cancel()
            return await tg.__aexit__(exc_type, exc, tb)
        finally:
            self._tg = None
            self.router.attach(None)
            self.poller.attach(None)
            self.close()
            if self._owns_source and isinstance(self._source, TelegramClient):
                with anyio.CancelScope(shield=True):
                    await self._source.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.poller.stop()
        self.router.close()
        self.registry.clear()
        _release_interface_slot()
        logger.debug("interface.closed", cursor=self._cursor.value)

    @property
    def settings(self) -> TelepollSettings:
        return self._settings

    @property
    def cursor(self) -> int:
        return self._cursor.value

    @property
    def is_polling(self) -> bool:
        return self.poller.is_running

    def start_polling(self) -> None:
        self._ensure_open()
        self.poller.start()

    def stop_polling(self) -> None:
        self.poller.stop()

    def process_updates(self, batch: Iterable[dict[str, Any]]) -> int:
        """Route a pushed batch (e.g. a webhook body) and return the new cursor."""
        self._ensure_open()
        self.poller.process_batch(batch, skip_stale=False)
        return self._cursor.value

    async def wait_idle(self) -> None:
        await self.router.wait_idle()

    def global_updates(self) -> MemoryObjectReceiveStream[TelegramUpdate]:
        return self.router.global_updates()

    def chat_updates(self) -> MemoryObjectReceiveStream[ChatUpdate]:
        return self.router.chat_updates()

    def subscribe_chat(self, chat_id: int) -> ChatSubscription:
        return self.registry.subscribe_chat(chat_id)

    def unsubscribe_chat(self, subscription: ChatSubscription) -> bool:
        return self.registry.unsubscribe_chat(subscription)

    def register_handler(
        self, predicate: Predicate, action: Action, *, label: str | None = None
    ) -> HandlerId:
        return self.registry.add_handler(predicate, action, label=label)

    def unregister_handler(self, handler_id: HandlerId) -> bool:
        return self.registry.remove_handler(handler_id)

    def handler(
        self, predicate: Predicate = match_all, *, label: str | None = None
    ) -> Callable[[Action], Action]:
        def decorator(action: Action) -> Action:
            self.register_handler(predicate, action, label=label)
            return action

        return decorator

    def register_request(
        self,
        chat_id: int,
        request_id: int,
        accept: Predicate,
        handle: CompletionHandle,
    ) -> PendingRequest:
        return self.registry.add_request(chat_id, request_id, accept, handle)

    def cancel_request(self, chat_id: int, request_id: int) -> bool:
        return self.registry.cancel_request(chat_id, request_id)

    async def await_next_update(
        self,
        chat_id: int,
        accept: Predicate | None = None,
        timeout: float | None = None,
        *,
        request_id: int | None = None,
    ) -> TelegramUpdate:
        """Wait for the next update in ``chat_id`` that satisfies ``accept``.

        Raises :class:`TimeoutError` when ``timeout`` elapses first. The
        pending request is always cancelled on the way out. An update that
        was already claimed for this request when the deadline hit is still
        returned.
        """
        received: list[TelegramUpdate] = []
        done = anyio.Event()

        def complete(update: TelegramUpdate) -> None:
            received.append(update)
            done.set()

        request = self._register_waiter(
            chat_id, accept or match_all, complete, request_id
        )
        try:
            with anyio.fail_after(timeout):
                await done.wait()
        except TimeoutError:
            if self.registry.cancel_request(chat_id, request.request_id):
                raise
            # claimed before the deadline; its routing task delivers it
            with anyio.move_on_after(self._shutdown_grace_s, shield=True):
                await done.wait()
            if not received:
                raise
            logger.debug(
                "interface.request.late_fulfilment",
                chat_id=chat_id,
                request_id=request.request_id,
            )
        finally:
            self.registry.cancel_request(chat_id, request.request_id)
        return received[0]

    def _register_waiter(
        self,
        chat_id: int,
        accept: Predicate,
        handle: CompletionHandle,
        request_id: int | None,
    ) -> PendingRequest:
        if request_id is not None:
            return self.registry.add_request(chat_id, request_id, accept, handle)
        while True:
            try:
                return self.registry.add_request(
                    chat_id, next(self._request_ids), accept, handle
                )
            except DuplicateRequest:
                continue

    def general_forum_topic(self, chat_id: int | str) -> GeneralForumTopic:
        if not isinstance(self._source, TelegramClient):
            raise TypeError("general forum topics need a TelegramClient source")
        return GeneralForumTopic(self._source, chat_id)

    def _ensure_open(self) -> None:
        if self._closed:
            raise RuntimeError("BotInterface is closed")
        if self._tg is None:
            raise RuntimeError("BotInterface must be entered with `async with`")


def create_interface(
    settings: TelepollSettings,
    *,
    client: TelegramClient | None = None,
    on_error: Callable[[HandlerActionError], None] | None = None,
) -> BotInterface:
    if client is not None:
        return BotInterface(client, settings=settings, on_error=on_error)
    # the slot is held before the owned httpx client exists
    _claim_interface_slot()
    try:
        source = TelegramClient(
            settings.bot_token,
            timeout_s=settings.polling.timeout_s + 10,
            api_base=settings.api_base,
        )
        return BotInterface(
            source,
            settings=settings,
            on_error=on_error,
            owns_source=True,
            _slot_claimed=True,
        )
    except BaseException:
        _release_interface_slot()
        raise
