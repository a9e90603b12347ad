"""Session plumbing for CLI commands."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer

from quotedesk.core.config.settings import QuoteDeskConfig
from quotedesk.core.exceptions import QuoteDeskError
from quotedesk.core.services.session import SourcingSession

from .utils import fail, load_config

T = TypeVar("T")

SessionFactory = Callable[[str], Awaitable[SourcingSession]]


def get_session_factory(config: QuoteDeskConfig) -> SessionFactory:
    """Factory hook returning a coroutine function that opens a session."""

    return lambda key: SourcingSession.from_config(key, config)


def run_session(ctx: typer.Context, key: str, action: Callable[[SourcingSession], Awaitable[T]]) -> T:
    """Open a session for ``key``, run ``action`` on it and close it.

    Quotedesk errors are reported on stderr and turned into an exit code.
    """

    factory = get_session_factory(load_config(ctx))

    async def runner() -> T:
        session = await factory(key)
        try:
            return await action(session)
        finally:
            await session.close()

    try:
        return asyncio.run(runner())
    except QuoteDeskError as error:
        raise fail(error) from error


__all__ = ["SessionFactory", "get_session_factory", "run_session"]
