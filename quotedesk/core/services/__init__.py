"""Domain services: pricing aggregation, vendor management, autosave and sessions."""

from quotedesk.core.services.aggregate import (
    PricingTotals,
    VendorAggregateEngine,
    VendorStanding,
    coerce_amount,
    format_amount,
)
from quotedesk.core.services.autosave import (
    AsyncioIntervalScheduler,
    AutoSaveCoordinator,
    ManualScheduler,
    SaveOutcome,
    SaveScheduler,
    SaveState,
)
from quotedesk.core.services.session import SourcingSession, Stores, build_stores
from quotedesk.core.services.vendors import PRICING, SOURCING_INFO, VendorSetManager, remaining_days

__all__ = [
    "PRICING",
    "SOURCING_INFO",
    "AsyncioIntervalScheduler",
    "AutoSaveCoordinator",
    "ManualScheduler",
    "PricingTotals",
    "SaveOutcome",
    "SaveScheduler",
    "SaveState",
    "SourcingSession",
    "Stores",
    "VendorAggregateEngine",
    "VendorSetManager",
    "VendorStanding",
    "build_stores",
    "coerce_amount",
    "format_amount",
    "remaining_days",
]
