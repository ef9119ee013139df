"""Periodic purge of expired permission cache entries.

Expired entries are already treated as misses on read. Sweeping only
bounds memory for actors who never come back.
"""

import asyncio
import contextlib

import structlog

from gatekeep.core.rbac import PermissionCache

logger = structlog.get_logger()


async def sweep_cache(
    cache: PermissionCache,
    interval_seconds: float,
    stop_event: asyncio.Event,
) -> int:
    """Purge expired entries every ``interval_seconds`` until stopped.

    Args:
        cache: Cache to sweep.
        interval_seconds: Pause between sweeps.
        stop_event: Set to end the loop. The pending wait is cut short.

    Returns:
        Total number of entries purged.
    """
    total = 0
    while not stop_event.is_set():
        with contextlib.suppress(TimeoutError):
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        if stop_event.is_set():
            break

        purged = cache.purge_expired()
        total += purged
        if purged:
            logger.info("permission_cache_swept", purged=purged, remaining=len(cache))

    logger.debug("permission_cache_sweeper_stopped", total_purged=total)
    return total
