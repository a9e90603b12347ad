"""quotedesk - vendor quote sourcing engine.

Keeps the vendor quotes of a work order, derives their pricing totals,
stores attachments and persists everything to a structured store with a
workflow mirror.
"""

from quotedesk.core.config.settings import ConfigManager, QuoteDeskConfig
from quotedesk.core.services.session import SourcingSession

__version__ = "0.1.0"


async def open_session(key: str, config: QuoteDeskConfig | None = None) -> SourcingSession:
    """Open an editing session for ``key`` using the default configuration.

    Args:
        key: work-order key
        config: configuration; loaded from ``~/.quotedesk/config.toml`` and
            the environment when omitted

    Returns:
        The session, autosave not yet started (use ``async with``)
    """
    if config is None:
        config = ConfigManager().get_config()
    return await SourcingSession.from_config(key, config)


__all__ = ["ConfigManager", "QuoteDeskConfig", "SourcingSession", "__version__", "open_session"]
