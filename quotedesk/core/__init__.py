"""quotedesk core modules."""

from quotedesk.core.config.settings import ConfigManager, QuoteDeskConfig
from quotedesk.core.models import SourcingRecord, VendorQuote
from quotedesk.core.services import SourcingSession, VendorAggregateEngine, VendorSetManager
from quotedesk.core.storage import BlobAttachmentStore, SourcingRecordStore

__all__ = [
    "BlobAttachmentStore",
    "ConfigManager",
    "QuoteDeskConfig",
    "SourcingRecord",
    "SourcingRecordStore",
    "SourcingSession",
    "VendorAggregateEngine",
    "VendorQuote",
    "VendorSetManager",
]
