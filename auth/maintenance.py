"""
auth/maintenance.py -- Expired refresh-token sweep.

The rotation path never sweeps inline; it only deletes the row it was handed.
Rows left behind (expired and never presented again, or old rows whose
post-rotation delete failed) are removed here.

Two ways to run it:
  In-process:  start purge_loop() as an asyncio task in the app lifespan and
               cancel it on shutdown.
  CLI:         sessionvault-sweep          # one sweep, then exit
               sessionvault-sweep --loop   # sweep every PURGE_INTERVAL_SECONDS

Usage:
  python -m auth.maintenance [--loop] [--interval SECONDS]
"""

from __future__ import annotations

import argparse
import asyncio
import logging

from auth.sessions import SessionRotationService
from auth.store import AuthStore
from core.config import get_settings
from core.logging_config import configure_logging

logger = logging.getLogger("sessionvault.maintenance")


async def run_sweep(service: SessionRotationService) -> int:
    """Delete expired refresh rows once. Returns the count removed, -1 on store failure."""
    result = await service.purge_expired()
    if not result.ok:
        logger.error("Expired refresh token sweep failed: %s", result.error)
        return -1
    logger.info("Expired refresh token sweep removed %d row(s)", result.value)
    return result.value


async def purge_loop(service: SessionRotationService, interval_seconds: float) -> None:
    """Sweep every ``interval_seconds`` until cancelled.

    CancelledError from task.cancel() propagates out of asyncio.sleep and
    ends the loop; a failed sweep is logged and retried next interval.
    """
    while True:
        await asyncio.sleep(interval_seconds)
        await run_sweep(service)


async def _run(loop: bool, interval: float) -> int:
    settings = get_settings()
    store = AuthStore(settings.database_url)
    try:
        await store.initialize()
        service = SessionRotationService.from_settings(settings, credentials=store, users=store)
        removed = await run_sweep(service)
        if loop:
            await purge_loop(service, interval)
    finally:
        await store.close()
    return 0 if removed >= 0 else 1


def main(argv: list[str] | None = None) -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        prog="sessionvault-sweep",
        description="Delete expired refresh tokens from the session store.",
    )
    parser.add_argument("--loop", action="store_true", help="Keep running and sweep periodically.")
    parser.add_argument(
        "--interval",
        type=float,
        default=float(settings.purge_interval_seconds),
        help="Seconds between sweeps with --loop (default: PURGE_INTERVAL_SECONDS).",
    )
    args = parser.parse_args(argv)
    if args.interval <= 0:
        parser.error("--interval must be positive")

    configure_logging(settings.log_level)
    try:
        return asyncio.run(_run(args.loop, args.interval))
    except KeyboardInterrupt:
        logger.info("Sweep loop stopped")
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
