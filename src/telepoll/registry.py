from __future__ import annotations

import enum
import itertools
import math
import threading
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import NewType, TypeAlias

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from .errors import DuplicateRequest
from .filters import Predicate
from .logging import get_logger
from .telegram.types import TelegramUpdate

logger = get_logger(__name__)

HandlerId = NewType("HandlerId", int)


class HandlerResult(enum.Enum):
    CONTINUE = "continue"
    CONSUMED = "consumed"


ActionResult: TypeAlias = HandlerResult | None
Action: TypeAlias = Callable[
    [TelegramUpdate], ActionResult | Awaitable[ActionResult]
]
CompletionHandle: TypeAlias = Callable[[TelegramUpdate], None | Awaitable[None]]


@dataclass(frozen=True, slots=True)
class HandlerEntry:
    handler_id: HandlerId
    predicate: Predicate
    action: Action
    label: str


@dataclass(frozen=True, slots=True)
class PendingRequest:
    chat_id: int
    request_id: int
    accept: Predicate
    handle: CompletionHandle

    @property
    def key(self) -> tuple[int, int]:
        return (self.chat_id, self.request_id)


@dataclass(eq=False, slots=True)
class ChatSubscription:
    """Unbounded queue of every update routed for one chat."""

    chat_id: int
    send_stream: MemoryObjectSendStream[TelegramUpdate] = field(repr=False)
    receive_stream: MemoryObjectReceiveStream[TelegramUpdate] = field(repr=False)

    @classmethod
    def open(cls, chat_id: int) -> ChatSubscription:
        send, receive = anyio.create_memory_object_stream[TelegramUpdate](math.inf)
        return cls(chat_id=chat_id, send_stream=send, receive_stream=receive)

    def offer(self, update: TelegramUpdate) -> bool:
        try:
            self.send_stream.send_nowait(update)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            return False
        return True

    def close(self) -> None:
        self.send_stream.close()

    async def receive(self) -> TelegramUpdate:
        return await self.receive_stream.receive()

    def __aiter__(self) -> AsyncIterator[TelegramUpdate]:
        return self.receive_stream.__aiter__()


@dataclass(frozen=True, slots=True)
class RegistrySnapshot:
    handlers: tuple[HandlerEntry, ...]
    subscriptions: tuple[ChatSubscription, ...]


class ConsumerRegistry:
    """Handler chain, chat subscriptions and pending one-shot requests.

    Mutations are serialised by one lock and may come from any thread. The
    handler chain and per-chat subscription lists are replaced rather than
    mutated, so a snapshot taken for routing never changes underneath it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._ids = itertools.count(1)
        self._handlers: tuple[HandlerEntry, ...] = ()
        self._subscriptions: dict[int, tuple[ChatSubscription, ...]] = {}
        self._requests: dict[int, dict[int, PendingRequest]] = {}

    def add_handler(
        self, predicate: Predicate, action: Action, *, label: str | None = None
    ) -> HandlerId:
        with self._lock:
            handler_id = HandlerId(next(self._ids))
            entry = HandlerEntry(
                handler_id=handler_id,
                predicate=predicate,
                action=action,
                label=label or getattr(action, "__name__", f"handler-{handler_id}"),
            )
            self._handlers = (*self._handlers, entry)
        return handler_id

    def remove_handler(self, handler_id: HandlerId) -> bool:
        with self._lock:
            kept = tuple(e for e in self._handlers if e.handler_id != handler_id)
            removed = len(kept) != len(self._handlers)
            self._handlers = kept
        return removed

    @property
    def handlers(self) -> tuple[HandlerEntry, ...]:
        return self._handlers

    def subscribe_chat(self, chat_id: int) -> ChatSubscription:
        subscription = ChatSubscription.open(chat_id)
        with self._lock:
            current = self._subscriptions.get(chat_id, ())
            self._subscriptions[chat_id] = (*current, subscription)
        return subscription

    def unsubscribe_chat(self, subscription: ChatSubscription) -> bool:
        with self._lock:
            removed = self._drop_subscription_locked(subscription)
        subscription.close()
        return removed

    def _drop_subscription_locked(self, subscription: ChatSubscription) -> bool:
        current = self._subscriptions.get(subscription.chat_id, ())
        kept = tuple(s for s in current if s is not subscription)
        if kept:
            self._subscriptions[subscription.chat_id] = kept
        else:
            self._subscriptions.pop(subscription.chat_id, None)
        return len(kept) != len(current)

    def prune_subscription(self, subscription: ChatSubscription) -> None:
        with self._lock:
            self._drop_subscription_locked(subscription)
        logger.debug("registry.subscription.pruned", chat_id=subscription.chat_id)

    def is_subscribed(self, chat_id: int) -> bool:
        return chat_id in self._subscriptions

    def add_request(
        self,
        chat_id: int,
        request_id: int,
        accept: Predicate,
        handle: CompletionHandle,
    ) -> PendingRequest:
        request = PendingRequest(
            chat_id=chat_id, request_id=request_id, accept=accept, handle=handle
        )
        with self._lock:
            by_id = self._requests.setdefault(chat_id, {})
            if request_id in by_id:
                raise DuplicateRequest(chat_id, request_id)
            by_id[request_id] = request
        return request

    def cancel_request(self, chat_id: int, request_id: int) -> bool:
        with self._lock:
            return self._pop_request_locked(chat_id, request_id, None) is not None

    def has_request(self, chat_id: int, request_id: int) -> bool:
        with self._lock:
            return request_id in self._requests.get(chat_id, {})

    def pending_requests(self, chat_id: int | None = None) -> list[PendingRequest]:
        with self._lock:
            if chat_id is not None:
                return list(self._requests.get(chat_id, {}).values())
            return [r for by_id in self._requests.values() for r in by_id.values()]

    def _pop_request_locked(
        self, chat_id: int, request_id: int, expected: PendingRequest | None
    ) -> PendingRequest | None:
        by_id = self._requests.get(chat_id)
        if not by_id:
            return None
        current = by_id.get(request_id)
        if current is None or (expected is not None and current is not expected):
            return None
        del by_id[request_id]
        if not by_id:
            del self._requests[chat_id]
        return current

    def claim_requests(
        self,
        update: TelegramUpdate,
        *,
        on_error: Callable[[PendingRequest, Exception], None] | None = None,
    ) -> list[PendingRequest]:
        """Remove and return every pending request for the update's chat that accepts it.

        Predicates run outside the lock; an entry is claimed only if it is
        still the registered one, so each entry is handed out at most once.
        """
        if update.chat_id is None:
            return []
        with self._lock:
            candidates = list(self._requests.get(update.chat_id, {}).values())
        matched: list[PendingRequest] = []
        for request in candidates:
            try:
                accepted = request.accept(update)
            except Exception as exc:
                if on_error is not None:
                    on_error(request, exc)
                continue
            if accepted:
                matched.append(request)
        if not matched:
            return []
        claimed: list[PendingRequest] = []
        with self._lock:
            for request in matched:
                popped = self._pop_request_locked(
                    request.chat_id, request.request_id, request
                )
                if popped is not None:
                    claimed.append(popped)
        return claimed

    def snapshot(self, chat_id: int | None) -> RegistrySnapshot:
        with self._lock:
            subscriptions = (
                self._subscriptions.get(chat_id, ()) if chat_id is not None else ()
            )
            return RegistrySnapshot(
                handlers=self._handlers, subscriptions=subscriptions
            )

    def clear(self) -> None:
        with self._lock:
            subscriptions = [s for subs in self._subscriptions.values() for s in subs]
            cancelled = sum(len(by_id) for by_id in self._requests.values())
            self._handlers = ()
            self._subscriptions.clear()
            self._requests.clear()
        for subscription in subscriptions:
            subscription.close()
        if cancelled:
            logger.info("registry.requests.cancelled", count=cancelled)
