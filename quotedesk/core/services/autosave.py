"""Periodic and on-demand persistence of a working copy.

One coordinator guards one record key. At most one write is in flight; a
save requested meanwhile is not run separately but sets a flag, and a single
follow-up write of the latest working copy runs once the current one ends.
"""

from __future__ import annotations

import asyncio
import contextlib
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from enum import Enum
from typing import Any

from quotedesk.core.clock import Clock, SystemClock
from quotedesk.core.exceptions import ConfigurationError, QuoteDeskError
from quotedesk.core.logging import get_logger, log_context
from quotedesk.core.models import SourcingRecord
from quotedesk.core.storage import mirror as fields
from quotedesk.core.storage.records import SourcingRecordStore

logger = get_logger(__name__)

DEFAULT_INTERVAL = 30.0

TickCallback = Callable[[], Awaitable[Any]]


class SaveState(str, Enum):
    IDLE = "idle"
    SAVING = "saving"


class SaveOutcome(str, Enum):
    """Result of a save or completion request."""

    SAVED = "saved"
    COALESCED = "coalesced"
    FAILED = "failed"
    REJECTED = "rejected"


class SaveScheduler(ABC):
    """Fires a callback at a fixed interval."""

    def __init__(self, interval: float = DEFAULT_INTERVAL) -> None:
        if interval <= 0:
            raise ConfigurationError("Autosave interval must be positive", {"value": interval})
        self.interval = interval
        self._callback: TickCallback | None = None

    @property
    @abstractmethod
    def running(self) -> bool:
        ...

    @abstractmethod
    async def start(self, callback: TickCallback) -> None:
        ...

    @abstractmethod
    async def stop(self) -> None:
        ...

    async def trigger_now(self) -> None:
        """Fire the callback immediately, outside the interval."""
        await self._fire()

    async def _fire(self) -> None:
        if self._callback is None:
            return
        try:
            await self._callback()
        except Exception as exc:
            logger.exception(f"Scheduled save raised: {exc}")


class AsyncioIntervalScheduler(SaveScheduler):
    """Real time scheduler backed by an asyncio task."""

    def __init__(self, interval: float = DEFAULT_INTERVAL) -> None:
        super().__init__(interval)
        self._task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, callback: TickCallback) -> None:
        if self.running:
            return
        self._callback = callback
        self._task = asyncio.create_task(self._run())
        logger.debug(f"Autosave scheduler started ({self.interval}s)")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            logger.debug("Autosave scheduler stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self._fire()


class ManualScheduler(SaveScheduler):
    """Virtual time scheduler; time only moves through :meth:`advance`."""

    def __init__(self, interval: float = DEFAULT_INTERVAL) -> None:
        super().__init__(interval)
        self.elapsed = 0.0
        self._running = False
        self._next_due = interval

    @property
    def running(self) -> bool:
        return self._running

    async def start(self, callback: TickCallback) -> None:
        self._callback = callback
        if not self._running:
            self._running = True
            self._next_due = self.elapsed + self.interval

    async def stop(self) -> None:
        self._running = False

    async def advance(self, seconds: float) -> int:
        """Move virtual time forward, firing every tick that falls due. Returns the tick count."""
        target = self.elapsed + seconds
        ticks = 0
        while self._running and self._next_due <= target:
            self.elapsed = self._next_due
            self._next_due += self.interval
            ticks += 1
            await self._fire()
        self.elapsed = target
        return ticks


class AutoSaveCoordinator:
    """Serializes saves of one record key through a single gate.

    ``snapshot`` returns the current working copy and is read at write time,
    so a coalesced follow-up persists the latest edits.
    """

    def __init__(
        self,
        store: SourcingRecordStore,
        key: str,
        snapshot: Callable[[], SourcingRecord],
        *,
        scheduler: SaveScheduler | None = None,
        enabled: bool = True,
        clock: Clock | None = None,
    ) -> None:
        self.store = store
        self.key = key
        self.snapshot = snapshot
        self.scheduler = scheduler or AsyncioIntervalScheduler()
        self.enabled = enabled
        self.clock = clock or SystemClock()
        self._state = SaveState.IDLE
        self._save_requested = False
        self.saves_completed = 0
        self.last_saved_at: datetime | None = None
        self.last_error: QuoteDeskError | None = None

    @property
    def state(self) -> SaveState:
        return self._state

    @property
    def save_requested(self) -> bool:
        return self._save_requested

    # scheduling

    async def start(self) -> None:
        await self.scheduler.start(self._on_tick)

    async def stop(self) -> None:
        await self.scheduler.stop()

    async def trigger_now(self) -> None:
        await self.scheduler.trigger_now()

    async def _on_tick(self) -> None:
        if self.enabled:
            await self.save(silent=True)

    # saving

    async def save(self, *, silent: bool = False) -> SaveOutcome:
        """Persist the working copy.

        Silent saves log failures and return ``FAILED``; interactive saves
        raise. A call made while a write is in flight returns ``COALESCED``.
        """
        if self._state is SaveState.SAVING:
            self._save_requested = True
            return SaveOutcome.COALESCED
        return await self._run_gated(silent=silent)

    async def complete(self, user: str) -> SaveOutcome:
        """Save and hand the record over for approval.

        Returns ``REJECTED`` without writing when a save is in flight.
        """
        if self._state is SaveState.SAVING:
            logger.bind(record_key=self.key).warning("Completion rejected, a save is in flight")
            return SaveOutcome.REJECTED
        bookkeeping = {
            fields.SOURCING_COMPLETED: True,
            fields.SOURCING_COMPLETED_AT: self.clock.now().isoformat(),
            fields.STATUS: fields.STATUS_APPROVAL_PENDING,
            fields.COMPLETED_BY: user,
        }
        return await self._run_gated(silent=False, bookkeeping=bookkeeping, require_mirror=True)

    async def _run_gated(
        self,
        *,
        silent: bool,
        bookkeeping: Mapping[str, Any] | None = None,
        require_mirror: bool = False,
    ) -> SaveOutcome:
        self._state = SaveState.SAVING
        try:
            with log_context(record_key=self.key):
                try:
                    return await self._write(silent=silent, bookkeeping=bookkeeping, require_mirror=require_mirror)
                finally:
                    # coalesced requests are written even when the first write raised
                    while self._save_requested:
                        self._save_requested = False
                        await self._write(silent=True)
        finally:
            self._save_requested = False
            self._state = SaveState.IDLE

    async def _write(
        self,
        *,
        silent: bool,
        bookkeeping: Mapping[str, Any] | None = None,
        require_mirror: bool = False,
    ) -> SaveOutcome:
        record = self.snapshot()
        try:
            await self.store.save(self.key, record, bookkeeping=bookkeeping, require_mirror=require_mirror)
        except QuoteDeskError as exc:
            self.last_error = exc
            if not silent:
                raise
            logger.bind(record_key=self.key, error_code=exc.error_code).warning(
                f"Background save failed: {exc.message}"
            )
            return SaveOutcome.FAILED
        self.saves_completed += 1
        self.last_saved_at = self.clock.now()
        self.last_error = None
        return SaveOutcome.SAVED


__all__ = [
    "AsyncioIntervalScheduler",
    "AutoSaveCoordinator",
    "ManualScheduler",
    "SaveOutcome",
    "SaveScheduler",
    "SaveState",
]
