"""Permission cache - short-lived memoization of permission decisions.

Entries expire lazily: an entry older than the TTL is reported as a miss
and dropped on access. ``purge_expired`` and the ``max_entries`` bound keep
memory in check for long-running processes.

The cache is shared by every request handled by the process, so all access
to the underlying dict goes through a lock. No lock is ever held while
awaiting a store call.
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import NamedTuple

import structlog

from gatekeep.core.rbac.types import PermissionContext, PermissionResult

logger = structlog.get_logger()


@dataclass(frozen=True)
class CacheConfig:
    """Configuration for the permission cache.

    Attributes:
        ttl_seconds: Age after which an entry is treated as a miss.
        max_entries: Upper bound on stored entries. None disables the bound.
    """

    ttl_seconds: float = 60.0
    max_entries: int | None = 10_000


class CacheKey(NamedTuple):
    """Identity of a cached permission decision.

    Renders as ``actor:workshop:action:resource:project:team`` with empty
    strings for absent context fields.
    """

    actor_id: str
    workshop_id: str
    action: str
    resource: str
    project_id: str = ""
    team_id: str = ""

    @classmethod
    def build(
        cls,
        actor_id: str | None,
        workshop_id: str,
        action: str,
        resource: str,
        context: PermissionContext | None = None,
    ) -> CacheKey:
        """Build a key from check_permission arguments."""
        return cls(
            actor_id=actor_id or "",
            workshop_id=workshop_id or "",
            action=action or "",
            resource=resource or "",
            project_id=(context.project_id if context else None) or "",
            team_id=(context.team_id if context else None) or "",
        )

    def __str__(self) -> str:
        return ":".join(self)


@dataclass(frozen=True)
class _Entry:
    result: PermissionResult
    timestamp: float


class PermissionCache:
    """Thread-safe TTL cache of permission results.

    Usage:
        cache = PermissionCache(CacheConfig(ttl_seconds=60))
        cache.set(key, result)
        cache.get(key)  # result, or None once expired or invalidated
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            config: Cache limits. Uses defaults if not provided.
            clock: Monotonic clock in seconds. Injectable for tests.
        """
        self.config = config or CacheConfig()
        self._clock = clock
        self._entries: dict[CacheKey, _Entry] = {}
        self._lock = threading.Lock()
        self._generation = 0

    def init(self) -> None:
        """Start from an empty cache."""
        self.clear()

    def clear(self) -> None:
        """Drop every entry."""
        with self._lock:
            self._entries.clear()
            self._generation += 1

    @property
    def generation(self) -> int:
        """Counter bumped by every invalidation and clear."""
        with self._lock:
            return self._generation

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _is_live(self, entry: _Entry, now: float) -> bool:
        return now - entry.timestamp < self.config.ttl_seconds

    def get(self, key: CacheKey) -> PermissionResult | None:
        """Return the cached result, or None on a miss."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._is_live(entry, now):
                del self._entries[key]
                return None
            return entry.result

    def set(
        self,
        key: CacheKey,
        result: PermissionResult,
        timestamp: float | None = None,
        generation: int | None = None,
    ) -> bool:
        """Store a result.

        Args:
            key: Cache key.
            result: Decision to store.
            timestamp: Clock reading the entry's age is measured from.
                Defaults to now.
            generation: ``generation`` read before the result was computed.
                The write is skipped if an invalidation happened since.

        Returns:
            Whether the result was stored.
        """
        now = self._clock()
        with self._lock:
            if generation is not None and generation != self._generation:
                return False
            # Re-inserting moves the key to the end, keeping dict order by age.
            self._entries.pop(key, None)
            self._entries[key] = _Entry(result, now if timestamp is None else timestamp)
            self._enforce_bound(now)
        return True

    def _enforce_bound(self, now: float) -> None:
        max_entries = self.config.max_entries
        if max_entries is None or len(self._entries) <= max_entries:
            return
        self._purge_expired_locked(now)
        overflow = len(self._entries) - max_entries
        if overflow > 0:
            for key in list(self._entries)[:overflow]:
                del self._entries[key]
            logger.debug("permission_cache_evicted", count=overflow)

    def _purge_expired_locked(self, now: float) -> int:
        expired = [k for k, e in self._entries.items() if not self._is_live(e, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def purge_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        now = self._clock()
        with self._lock:
            return self._purge_expired_locked(now)

    def _invalidate(self, predicate: Callable[[CacheKey], bool]) -> int:
        with self._lock:
            doomed = [key for key in self._entries if predicate(key)]
            for key in doomed:
                del self._entries[key]
            self._generation += 1
        return len(doomed)

    def invalidate_user(self, actor_id: str, workshop_id: str) -> int:
        """Remove every entry for an actor in a workshop."""
        count = self._invalidate(
            lambda key: key.actor_id == actor_id and key.workshop_id == workshop_id
        )
        logger.debug(
            "permission_cache_invalidated",
            actor_id=actor_id,
            workshop_id=workshop_id,
            count=count,
        )
        return count

    def invalidate_tenant(self, workshop_id: str) -> int:
        """Remove every entry for a workshop, regardless of actor."""
        count = self._invalidate(lambda key: key.workshop_id == workshop_id)
        logger.debug("permission_cache_invalidated", workshop_id=workshop_id, count=count)
        return count

    def invalidate_all(self) -> None:
        """Remove every entry."""
        self.clear()
        logger.debug("permission_cache_cleared")
