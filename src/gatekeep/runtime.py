"""Process wiring and lifecycle.

``lifespan`` opens the asyncpg pool, builds the shared permission cache and
audit service from ``Settings`` and runs the cache sweeper until exit.
Repositories wrap a single connection, so engines and services are built
per connection on top of the shared cache.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import asyncpg
import structlog

from gatekeep.adapters.audit import AuditRepository
from gatekeep.adapters.rbac import (
    MembershipsRepository,
    ProjectsRepository,
    RoleAssignmentsRepository,
    RolesRepository,
    TeamsRepository,
    WorkshopsRepository,
)
from gatekeep.config import Settings
from gatekeep.core.rbac import PermissionCache, PermissionEngine
from gatekeep.jobs.cache_sweeper import sweep_cache
from gatekeep.services import AuditService, Authorizer, OrganizationService, RoleService

logger = structlog.get_logger()


class Runtime:
    """Objects shared by every request in the process."""

    def __init__(
        self,
        settings: Settings,
        pool: asyncpg.Pool,
        cache: PermissionCache,
        audit: AuditService,
    ) -> None:
        self.settings = settings
        self.pool = pool
        self.cache = cache
        self.audit = audit

    def engine(self, conn: asyncpg.Connection) -> PermissionEngine:
        """Build an engine reading through ``conn`` and the shared cache."""
        return PermissionEngine(
            WorkshopsRepository(conn),
            ProjectsRepository(conn),
            MembershipsRepository(conn),
            TeamsRepository(conn),
            RoleAssignmentsRepository(conn),
            cache=self.cache,
            config=self.settings.engine_config(),
        )

    def role_service(self, conn: asyncpg.Connection) -> RoleService:
        engine = self.engine(conn)
        return RoleService(
            engine,
            Authorizer(engine, WorkshopsRepository(conn), self.audit),
            RolesRepository(conn),
            RoleAssignmentsRepository(conn),
            TeamsRepository(conn),
            ProjectsRepository(conn),
            self.audit,
        )

    def organization_service(self, conn: asyncpg.Connection) -> OrganizationService:
        engine = self.engine(conn)
        workshops = WorkshopsRepository(conn)
        return OrganizationService(
            engine,
            Authorizer(engine, workshops, self.audit),
            workshops,
            MembershipsRepository(conn),
            TeamsRepository(conn),
            ProjectsRepository(conn),
            RoleAssignmentsRepository(conn),
            self.audit,
        )


@asynccontextmanager
async def lifespan(settings: Settings | None = None) -> AsyncIterator[Runtime]:
    """Set up the runtime and tear it down on exit.

    Args:
        settings: Settings to use. Loaded from the environment if not provided.

    Yields:
        The process runtime.
    """
    settings = settings or Settings()
    pool = await asyncpg.create_pool(settings.database_url)
    cache = PermissionCache(settings.cache_config())
    audit = AuditService(AuditRepository(pool), page_limit_max=settings.audit_page_limit_max)

    stop = asyncio.Event()
    sweeper = asyncio.create_task(
        sweep_cache(cache, settings.cache_sweep_interval_seconds, stop)
    )
    logger.info(
        "gatekeep_started",
        cache_ttl_seconds=settings.cache_ttl_seconds,
        sweep_interval_seconds=settings.cache_sweep_interval_seconds,
    )
    try:
        yield Runtime(settings, pool, cache, audit)
    finally:
        stop.set()
        await sweeper
        await pool.close()
        logger.info("gatekeep_stopped")
