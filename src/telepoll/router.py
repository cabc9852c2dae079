from __future__ import annotations

import inspect
import math
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from .errors import HandlerActionError
from .logging import get_logger
from .registry import (
    ConsumerRegistry,
    HandlerEntry,
    HandlerResult,
    PendingRequest,
    RegistrySnapshot,
)
from .telegram.types import ChatUpdate, TelegramUpdate

if TYPE_CHECKING:
    from anyio.abc import TaskGroup
else:
    TaskGroup = object

logger = get_logger(__name__)

__all__ = ["Router"]


@dataclass(frozen=True, slots=True)
class _RouteWork:
    update: TelegramUpdate
    snapshot: RegistrySnapshot
    claimed: tuple[PendingRequest, ...]


async def _invoke(fn: Callable[[TelegramUpdate], Any], update: TelegramUpdate) -> Any:
    result = fn(update)
    if inspect.isawaitable(result):
        result = await result
    return result


class Router:
    """Fans each update out to the global stream, chat streams, waiters and handlers.

    :meth:`dispatch` claims matching pending requests before returning, so
    requests are matched in the order updates are dispatched even though the
    deliveries themselves run on independent tasks.
    """

    def __init__(
        self,
        registry: ConsumerRegistry,
        *,
        on_error: Callable[[HandlerActionError], None] | None = None,
    ) -> None:
        self._registry = registry
        self._on_error = on_error
        self._tg: TaskGroup | None = None
        self._global_send: MemoryObjectSendStream[TelegramUpdate] | None = None
        self._global_receive: MemoryObjectReceiveStream[TelegramUpdate] | None = None
        self._chat_send: MemoryObjectSendStream[ChatUpdate] | None = None
        self._chat_receive: MemoryObjectReceiveStream[ChatUpdate] | None = None
        self._open_global()
        self._open_chat()
        self._inflight = 0
        self._idle: anyio.Event | None = None

    def attach(self, task_group: TaskGroup | None) -> None:
        self._tg = task_group

    @property
    def inflight(self) -> int:
        return self._inflight

    def global_updates(self) -> MemoryObjectReceiveStream[TelegramUpdate]:
        """Receiver of every routed update, buffered since construction."""
        if self._global_receive is None:
            self._open_global()
        assert self._global_receive is not None
        return self._global_receive

    def chat_updates(self) -> MemoryObjectReceiveStream[ChatUpdate]:
        """Receiver of every routed update that carries a chat identity."""
        if self._chat_receive is None:
            self._open_chat()
        assert self._chat_receive is not None
        return self._chat_receive

    def _open_global(self) -> None:
        self._global_send, self._global_receive = (
            anyio.create_memory_object_stream[TelegramUpdate](math.inf)
        )

    def _open_chat(self) -> None:
        self._chat_send, self._chat_receive = (
            anyio.create_memory_object_stream[ChatUpdate](math.inf)
        )

    def _prepare(self, update: TelegramUpdate) -> _RouteWork:
        snapshot = self._registry.snapshot(update.chat_id)
        claimed = self._registry.claim_requests(
            update,
            on_error=lambda request, exc: self._report(
                _request_label(request), update, exc
            ),
        )
        return _RouteWork(update=update, snapshot=snapshot, claimed=tuple(claimed))

    def dispatch(self, update: TelegramUpdate) -> None:
        if self._tg is None:
            raise RuntimeError("Router is not attached to a task group")
        work = self._prepare(update)
        self._enter()
        self._tg.start_soon(self._run, work, name=f"route-{update.update_id}")

    async def route(self, update: TelegramUpdate) -> None:
        work = self._prepare(update)
        self._enter()
        await self._run(work)

    async def wait_idle(self) -> None:
        while self._inflight and self._idle is not None:
            await self._idle.wait()

    def close(self) -> None:
        if self._global_send is not None:
            self._global_send.close()
        if self._chat_send is not None:
            self._chat_send.close()

    def _enter(self) -> None:
        if self._inflight == 0:
            self._idle = anyio.Event()
        self._inflight += 1

    def _leave(self) -> None:
        self._inflight -= 1
        if self._inflight == 0 and self._idle is not None:
            self._idle.set()

    async def _run(self, work: _RouteWork) -> None:
        update = work.update
        try:
            self._offer_global(update)
            self._offer_chat(update, work.snapshot)
            async with anyio.create_task_group() as tg:
                for request in work.claimed:
                    tg.start_soon(self._fulfil, update, request)
                if work.snapshot.handlers:
                    tg.start_soon(self._run_chain, update, work.snapshot.handlers)
        finally:
            self._leave()

    def _offer_global(self, update: TelegramUpdate) -> None:
        if self._global_send is None:
            return
        try:
            self._global_send.send_nowait(update)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.info("router.global.closed", update_id=update.update_id)
            self._global_send = None
            self._global_receive = None

    def _offer_chat(self, update: TelegramUpdate, snapshot: RegistrySnapshot) -> None:
        if update.chat_id is None:
            return
        for subscription in snapshot.subscriptions:
            if not subscription.offer(update):
                self._registry.prune_subscription(subscription)
        if self._chat_send is None:
            return
        try:
            self._chat_send.send_nowait(ChatUpdate(update.chat_id, update))
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.info("router.chat.closed", update_id=update.update_id)
            self._chat_send = None
            self._chat_receive = None

    async def _fulfil(self, update: TelegramUpdate, request: PendingRequest) -> None:
        logger.debug(
            "router.request.fulfilled",
            update_id=update.update_id,
            chat_id=request.chat_id,
            request_id=request.request_id,
        )
        try:
            await _invoke(request.handle, update)
        except Exception as exc:
            self._report(_request_label(request), update, exc)

    async def _run_chain(
        self, update: TelegramUpdate, handlers: tuple[HandlerEntry, ...]
    ) -> None:
        for entry in handlers:
            try:
                if not entry.predicate(update):
                    continue
                result = await _invoke(entry.action, update)
            except Exception as exc:
                self._report(entry.label, update, exc)
                continue
            if result is HandlerResult.CONSUMED:
                logger.debug(
                    "router.chain.consumed",
                    update_id=update.update_id,
                    handler=entry.label,
                )
                return

    def _report(self, consumer: str, update: TelegramUpdate, exc: Exception) -> None:
        error = HandlerActionError(consumer, update.update_id, exc)
        logger.error(
            "router.consumer.failed",
            consumer=consumer,
            update_id=update.update_id,
            error=str(exc),
            error_type=exc.__class__.__name__,
            exc_info=exc,
        )
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception:
            logger.exception("router.on_error.failed", consumer=consumer)


def _request_label(request: PendingRequest) -> str:
    return f"request:{request.chat_id}:{request.request_id}"

