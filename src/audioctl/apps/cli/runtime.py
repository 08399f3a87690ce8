from __future__ import annotations

import asyncio
import os
import traceback
from typing import Awaitable, Callable, TypeVar

import typer

from audioctl.services.auth.errors import ApiError, PairingStateError, RevokeRejectedError, SessionStoreError
from audioctl.services.client_config import ConfigError, load_config
from audioctl.services.context import AppContext, build_context
from audioctl.services.logging import setup_logging

__all__ = ["run", "print_error"]

T = TypeVar("T")

_HANDLED = (ApiError, SessionStoreError, ConfigError, RevokeRejectedError, PairingStateError, ValueError)


def print_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)


def _context() -> AppContext:
    config = load_config()
    setup_logging(
        config.logging.level,
        logfile=config.log_path(),
        max_bytes=config.logging.max_bytes,
        backup_count=config.logging.backup_count,
    )
    return build_context(config)


def run(action: Callable[[AppContext], Awaitable[T]]) -> T:
    """Build the client context, run ``action`` on a fresh event loop and tear it down."""

    async def _main() -> T:
        ctx = _context()
        try:
            return await action(ctx)
        finally:
            await ctx.aclose()

    try:
        return asyncio.run(_main())
    except _HANDLED as exc:
        if os.getenv("AUDIOCTL_CLI_DEBUG") == "1":
            traceback.print_exc()
        print_error(str(exc))
        raise typer.Exit(1)
