"""Shared fixtures for the quotedesk test suite."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from quotedesk.core.clock import FixedClock
from quotedesk.core.models import SourcingRecord
from quotedesk.core.services import VendorSetManager
from quotedesk.core.storage import (
    BlobAttachmentStore,
    DuckDBStructuredStore,
    InMemoryMirrorStore,
    SourcingRecordStore,
    identity_transform,
)
from tests.fakes import WORK_ORDER


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def manager(clock: FixedClock) -> VendorSetManager:
    return VendorSetManager(clock=clock)


@pytest.fixture
def record(manager: VendorSetManager) -> SourcingRecord:
    return manager.create_record(WORK_ORDER)


@pytest.fixture
def structured() -> DuckDBStructuredStore:
    return DuckDBStructuredStore(":memory:")


@pytest.fixture
def mirror() -> InMemoryMirrorStore:
    return InMemoryMirrorStore([{"id": WORK_ORDER, "status": "sourcing", "title": "Replace chiller"}])


@pytest.fixture
def record_store(
    structured: DuckDBStructuredStore, mirror: InMemoryMirrorStore, clock: FixedClock
) -> SourcingRecordStore:
    return SourcingRecordStore(structured, mirror, clock=clock)


@pytest.fixture
def attachment_store(structured: DuckDBStructuredStore, clock: FixedClock) -> BlobAttachmentStore:
    return BlobAttachmentStore(structured, image_transform=identity_transform, clock=clock)
