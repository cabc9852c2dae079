from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import anyio
from anyio.lowlevel import checkpoint

from .config import PollingSettings
from .cursor import Cursor
from .errors import (
    AlreadyRunning,
    ConfigurationConflict,
    RemoteRejection,
    RetryAfter,
    TransportError,
)
from .logging import get_logger
from .router import Router
from .telegram.client import UpdateSource
from .telegram.parsing import decode_update, extract_update_id
from .telegram.types import TelegramUpdate

if TYPE_CHECKING:
    from anyio.abc import TaskGroup
else:
    TaskGroup = object

logger = get_logger(__name__)

__all__ = ["Poller"]


@dataclass(slots=True)
class _PollRun:
    stopped: bool = False
    wakeup: anyio.Event = field(default_factory=anyio.Event)

    def stop(self) -> None:
        self.stopped = True
        self.wakeup.set()

    async def pause(self, delay: float) -> None:
        if delay <= 0:
            await checkpoint()
            return
        with anyio.move_on_after(delay):
            await self.wakeup.wait()


class Poller:
    """Fetches update batches with an ever-increasing offset and hands them to the router."""

    def __init__(
        self,
        source: UpdateSource,
        cursor: Cursor,
        router: Router,
        *,
        settings: PollingSettings | None = None,
        webhook: bool = False,
        decode: Callable[[dict[str, Any]], TelegramUpdate | None] = decode_update,
    ) -> None:
        self._source = source
        self._cursor = cursor
        self._router = router
        self._settings = settings or PollingSettings()
        self._webhook = webhook
        self._decode = decode
        self._tg: TaskGroup | None = None
        self._current: _PollRun | None = None
        self._fetch_lock: anyio.Lock | None = None

    def attach(self, task_group: TaskGroup | None) -> None:
        self._tg = task_group

    @property
    def is_running(self) -> bool:
        return self._current is not None

    def start(self) -> None:
        if self._webhook:
            raise ConfigurationConflict(
                "webhook delivery is configured; polling cannot be started"
            )
        if self._current is not None:
            raise AlreadyRunning("update polling is already running")
        if self._tg is None:
            raise RuntimeError("Poller is not attached to a task group")
        if self._fetch_lock is None:
            self._fetch_lock = anyio.Lock()
        run = _PollRun()
        self._current = run
        self._tg.start_soon(self._run, run, name="telepoll-poller")

    def stop(self) -> None:
        run = self._current
        if run is None:
            return
        self._current = None
        run.stop()
        logger.info("poller.stop.requested", cursor=self._cursor.value)

    def process_batch(
        self, batch: Iterable[Any], *, skip_stale: bool = True
    ) -> int:
        """Decode and dispatch one batch, advancing the cursor item by item."""
        dispatched = 0
        for raw in batch:
            update = self._decode(raw) if isinstance(raw, dict) else None
            if update is None:
                update_id = extract_update_id(raw)
                if update_id is not None:
                    self._cursor.advance(update_id)
                else:
                    logger.warning("poller.update.unidentified", raw=raw)
                continue
            if skip_stale and update.update_id < self._cursor.value:
                logger.warning(
                    "poller.update.stale",
                    update_id=update.update_id,
                    cursor=self._cursor.value,
                )
                continue
            self._cursor.advance(update.update_id)
            self._router.dispatch(update)
            dispatched += 1
        return dispatched

    async def _run(self, run: _PollRun) -> None:
        logger.info(
            "poller.started",
            cursor=self._cursor.value,
            interval_s=self._settings.interval_s,
        )
        try:
            if self._settings.drop_pending_updates:
                await self._drain_backlog(run)
            while not run.stopped:
                await run.pause(self._settings.interval_s)
                if run.stopped:
                    break
                backoff = await self._poll_once()
                if backoff is not None:
                    await run.pause(backoff)
        finally:
            if self._current is run:
                self._current = None
            logger.info("poller.stopped", cursor=self._cursor.value)

    async def _fetch(self, timeout_s: int) -> list[dict[str, Any]]:
        return await self._source.get_updates(
            offset=self._cursor.offset,
            limit=self._settings.limit,
            timeout_s=timeout_s,
            allowed_updates=self._settings.allowed_updates,
        )

    async def _poll_once(self) -> float | None:
        assert self._fetch_lock is not None
        async with self._fetch_lock:
            try:
                batch = await self._fetch(self._settings.timeout_s)
            except RetryAfter as exc:
                logger.info("poller.fetch.rate_limited", retry_after=exc.retry_after)
                return exc.retry_after
            except RemoteRejection as exc:
                logger.error(
                    "poller.fetch.rejected",
                    error_code=exc.error_code,
                    description=exc.description,
                    cursor=self._cursor.value,
                )
                return self._settings.error_backoff_s
            except TransportError as exc:
                logger.warning(
                    "poller.fetch.failed", error=str(exc), cursor=self._cursor.value
                )
                return self._settings.error_backoff_s
            if batch:
                logger.debug("poller.batch", size=len(batch))
                self.process_batch(batch)
        return None

    async def _drain_backlog(self, run: _PollRun) -> None:
        assert self._fetch_lock is not None
        drained = 0
        async with self._fetch_lock:
            while not run.stopped:
                try:
                    batch = await self._fetch(0)
                except (TransportError, RemoteRejection) as exc:
                    logger.info("poller.backlog.failed", error=str(exc))
                    return
                if not batch:
                    break
                before = self._cursor.value
                for raw in batch:
                    update_id = extract_update_id(raw)
                    if update_id is not None:
                        self._cursor.advance(update_id)
                drained += len(batch)
                if self._cursor.value == before:
                    break
        if drained:
            logger.info(
                "poller.backlog.drained", count=drained, cursor=self._cursor.value
            )
