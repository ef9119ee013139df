"""Settings loaded from the environment."""

from __future__ import annotations

import os

from gatekeep.core.rbac import CacheConfig, EngineConfig
from gatekeep.core.rbac.engine import DEFAULT_MAINTAINER_ACTIONS


def _parse_actions(raw: str | None) -> frozenset[str]:
    if raw is None:
        return DEFAULT_MAINTAINER_ACTIONS
    return frozenset(part.strip() for part in raw.split(",") if part.strip())


class Settings:
    """Application settings loaded from environment."""

    def __init__(self) -> None:
        """Load settings from environment variables."""
        self.database_url = os.getenv("DATABASE_URL", "postgresql://localhost:5432/gatekeep")

        # Permission cache settings
        self.cache_ttl_seconds = float(os.getenv("PERMISSION_CACHE_TTL_SECONDS", "60"))
        max_entries = int(os.getenv("PERMISSION_CACHE_MAX_ENTRIES", "10000"))
        self.cache_max_entries = max_entries if max_entries > 0 else None
        self.cache_sweep_interval_seconds = float(
            os.getenv("PERMISSION_CACHE_SWEEP_INTERVAL_SECONDS", "300")
        )

        # Engine settings
        self.maintainer_actions = _parse_actions(os.getenv("MAINTAINER_ACTIONS"))

        # Audit settings
        self.audit_page_limit_max = int(os.getenv("AUDIT_PAGE_LIMIT_MAX", "100"))

    def cache_config(self) -> CacheConfig:
        return CacheConfig(ttl_seconds=self.cache_ttl_seconds, max_entries=self.cache_max_entries)

    def engine_config(self) -> EngineConfig:
        return EngineConfig(maintainer_actions=self.maintainer_actions)
