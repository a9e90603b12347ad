from __future__ import annotations

import asyncio

import pytest

from quotedesk.core.clock import FixedClock
from quotedesk.core.exceptions import ConfigurationError, NotFoundError, StorageWriteError
from quotedesk.core.models import SourcingRecord
from quotedesk.core.services import (
    AsyncioIntervalScheduler,
    AutoSaveCoordinator,
    ManualScheduler,
    SaveOutcome,
    SaveState,
    VendorSetManager,
)
from quotedesk.core.storage import DuckDBStructuredStore, InMemoryMirrorStore, SourcingRecordStore
from tests.fakes import WORK_ORDER, GatedRecordStore, RecordingStructuredStore


def _coordinator(store: object, record: SourcingRecord, **kwargs: object) -> AutoSaveCoordinator:
    kwargs.setdefault("scheduler", ManualScheduler(30))
    return AutoSaveCoordinator(store, WORK_ORDER, lambda: record, **kwargs)  # type: ignore[arg-type]


class TestSchedulers:
    @pytest.mark.parametrize("interval", [0, -5])
    def test_interval_must_be_positive(self, interval: float) -> None:
        with pytest.raises(ConfigurationError):
            ManualScheduler(interval)

    @pytest.mark.asyncio
    async def test_manual_scheduler_fires_due_ticks(self) -> None:
        calls: list[float] = []
        scheduler = ManualScheduler(30)

        async def tick() -> None:
            calls.append(scheduler.elapsed)

        await scheduler.start(tick)
        assert await scheduler.advance(29) == 0
        assert await scheduler.advance(66) == 3
        await scheduler.stop()
        assert await scheduler.advance(300) == 0

        assert calls == [30, 60, 90]
        assert scheduler.elapsed == 395

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_stop_ticks(self) -> None:
        scheduler = ManualScheduler(10)
        calls = 0

        async def tick() -> None:
            nonlocal calls
            calls += 1
            raise RuntimeError("boom")

        await scheduler.start(tick)

        assert await scheduler.advance(20) == 2
        assert calls == 2

    @pytest.mark.asyncio
    async def test_asyncio_scheduler_runs_until_stopped(self) -> None:
        scheduler = AsyncioIntervalScheduler(0.01)
        fired = asyncio.Event()

        async def tick() -> None:
            fired.set()

        await scheduler.start(tick)
        assert scheduler.running
        await asyncio.wait_for(fired.wait(), timeout=2)
        await scheduler.stop()

        assert not scheduler.running


class TestPeriodicSave:
    @pytest.mark.asyncio
    async def test_ticks_save_silently(self, record: SourcingRecord, clock: FixedClock) -> None:
        backend = RecordingStructuredStore()
        scheduler = ManualScheduler(30)
        coordinator = _coordinator(SourcingRecordStore(backend), record, scheduler=scheduler, clock=clock)

        await coordinator.start()
        await scheduler.advance(90)

        assert coordinator.saves_completed == 3
        assert coordinator.last_saved_at == clock.now()
        assert WORK_ORDER in backend.records

    @pytest.mark.asyncio
    async def test_disabled_coordinator_skips_ticks(self, record: SourcingRecord) -> None:
        backend = RecordingStructuredStore()
        scheduler = ManualScheduler(30)
        coordinator = _coordinator(SourcingRecordStore(backend), record, scheduler=scheduler, enabled=False)

        await coordinator.start()
        await scheduler.advance(120)
        await coordinator.trigger_now()

        assert backend.put_record_calls == 0
        assert await coordinator.save() is SaveOutcome.SAVED

    @pytest.mark.asyncio
    async def test_trigger_now_saves_outside_the_interval(self, record: SourcingRecord) -> None:
        backend = RecordingStructuredStore()
        coordinator = _coordinator(SourcingRecordStore(backend), record)
        await coordinator.start()

        await coordinator.trigger_now()

        assert backend.put_record_calls == 1

    @pytest.mark.asyncio
    async def test_silent_failure_is_reported_not_raised(self, record: SourcingRecord) -> None:
        backend = RecordingStructuredStore()
        backend.fail_writes = True
        scheduler = ManualScheduler(30)
        coordinator = _coordinator(SourcingRecordStore(backend), record, scheduler=scheduler)
        await coordinator.start()

        await scheduler.advance(30)

        assert coordinator.last_error is not None
        assert coordinator.state is SaveState.IDLE
        assert await coordinator.save(silent=True) is SaveOutcome.FAILED

    @pytest.mark.asyncio
    async def test_interactive_failure_raises(self, record: SourcingRecord) -> None:
        backend = RecordingStructuredStore()
        backend.fail_writes = True
        coordinator = _coordinator(SourcingRecordStore(backend), record)

        with pytest.raises(StorageWriteError):
            await coordinator.save()

        assert coordinator.state is SaveState.IDLE
        backend.fail_writes = False
        assert await coordinator.save() is SaveOutcome.SAVED
        assert coordinator.last_error is None


class TestSaveGate:
    @pytest.mark.asyncio
    async def test_requests_during_a_save_coalesce_into_one_follow_up(
        self, record: SourcingRecord, manager: VendorSetManager, clock: FixedClock
    ) -> None:
        store = GatedRecordStore(clock)
        working = {"record": record}
        coordinator = AutoSaveCoordinator(
            store, WORK_ORDER, lambda: working["record"], scheduler=ManualScheduler(30)  # type: ignore[arg-type]
        )

        first = asyncio.create_task(coordinator.save())
        await store.started.wait()
        assert coordinator.state is SaveState.SAVING
        working["record"] = manager.add_vendor(record)
        outcomes = [await coordinator.save() for _ in range(3)]
        assert outcomes == [SaveOutcome.COALESCED] * 3
        assert coordinator.save_requested

        store.release()

        assert await first is SaveOutcome.SAVED
        assert len(store.saved) == 2
        assert store.saved[0][0] is record
        assert list(store.saved[1][0].vendors) == [1, 2]
        assert coordinator.state is SaveState.IDLE
        assert not coordinator.save_requested

    @pytest.mark.asyncio
    async def test_completion_is_rejected_during_a_save(self, record: SourcingRecord, clock: FixedClock) -> None:
        store = GatedRecordStore(clock)
        coordinator = _coordinator(store, record, clock=clock)

        first = asyncio.create_task(coordinator.save())
        await store.started.wait()

        assert await coordinator.complete("jdoe") is SaveOutcome.REJECTED

        store.release()
        await first
        assert [bookkeeping for _, bookkeeping in store.saved] == [None]

    @pytest.mark.asyncio
    async def test_coalesced_save_runs_after_a_failed_write(
        self, record: SourcingRecord, manager: VendorSetManager, clock: FixedClock
    ) -> None:
        store = GatedRecordStore(clock)
        working = {"record": record}
        coordinator = AutoSaveCoordinator(
            store, WORK_ORDER, lambda: working["record"], scheduler=ManualScheduler(30)  # type: ignore[arg-type]
        )

        first = asyncio.create_task(coordinator.save())
        await store.started.wait()
        working["record"] = manager.add_vendor(record)
        assert await coordinator.save(silent=True) is SaveOutcome.COALESCED
        store.failures = 1
        store.release()

        with pytest.raises(StorageWriteError):
            await first

        assert store.attempts == 2
        assert len(store.saved) == 1
        assert list(store.saved[0][0].vendors) == [1, 2]
        assert coordinator.last_error is None
        assert coordinator.state is SaveState.IDLE
        assert not coordinator.save_requested

    @pytest.mark.asyncio
    async def test_failed_follow_up_is_logged_not_raised(self, record: SourcingRecord, clock: FixedClock) -> None:
        store = GatedRecordStore(clock)
        coordinator = _coordinator(store, record, clock=clock)

        first = asyncio.create_task(coordinator.save())
        await store.started.wait()
        await coordinator.save()
        store.failures = 2
        store.release()

        with pytest.raises(StorageWriteError):
            await first

        assert store.attempts == 2
        assert isinstance(coordinator.last_error, StorageWriteError)
        assert coordinator.state is SaveState.IDLE


class TestComplete:
    @pytest.mark.asyncio
    async def test_complete_writes_bookkeeping(
        self, record_store: SourcingRecordStore, record: SourcingRecord, clock: FixedClock
    ) -> None:
        coordinator = _coordinator(record_store, record, clock=clock)

        assert await coordinator.complete("jdoe") is SaveOutcome.SAVED

        entry = await record_store.mirror_entry(WORK_ORDER)
        assert entry is not None
        assert entry["sourcingCompleted"] is True
        assert entry["sourcingCompletedAt"] == clock.now().isoformat()
        assert entry["status"] == "approval_pending"
        assert entry["completedBy"] == "jdoe"
        assert entry["sourcingData"] == record.to_workflow_document()

    @pytest.mark.asyncio
    async def test_complete_requires_workflow_entry(
        self, structured: DuckDBStructuredStore, record: SourcingRecord
    ) -> None:
        coordinator = _coordinator(SourcingRecordStore(structured, InMemoryMirrorStore()), record)

        with pytest.raises(NotFoundError):
            await coordinator.complete("jdoe")

        assert coordinator.state is SaveState.IDLE
