"""Health check service module."""

import asyncio

from loguru import logger
from pydantic import BaseModel, Field

from social_server.cache import CacheStore
from social_server.database import Database
from social_server.event_bus import BrokerClient
from social_server.exceptions import CacheStoreError


class CheckResult(BaseModel):
    """Outcome of one dependency check."""

    check: str
    success: bool
    message: str


class HealthCheckResult(BaseModel):
    """Pydantic model representing the full health check response."""

    status: str
    active_profiles: list[str] = Field(default_factory=list)
    checks: list[CheckResult] = Field(default_factory=list)


class HealthCheckService:
    """Checks the three shared dependencies of a service process."""

    def __init__(self, database: Database, store: CacheStore, broker: BrokerClient, profiles: set[str]):
        self._database = database
        self._store = store
        self._broker = broker
        self._profiles = profiles

    async def perform_health_check(self) -> HealthCheckResult:
        """Check the database, cache store and broker.

        Returns:
            Status "ok" when every check passed, "error" otherwise
        """
        checks = [
            await self._check_database(),
            await self._check_cache_store(),
            self._check_broker(),
        ]
        status = "ok" if all(c.success for c in checks) else "error"
        if status != "ok":
            logger.warning(f"Health check failed: {[c.check for c in checks if not c.success]}")
        return HealthCheckResult(status=status, active_profiles=sorted(self._profiles), checks=checks)

    async def _check_database(self) -> CheckResult:
        healthy = await asyncio.to_thread(self._database.is_healthy)
        return CheckResult(
            check="database_connection",
            success=healthy,
            message="Database connection is healthy" if healthy else "Database connection failed",
        )

    async def _check_cache_store(self) -> CheckResult:
        try:
            healthy = await self._store.ping()
            message = "Cache store is responding"
        except CacheStoreError as e:
            healthy, message = False, f"Cache store unavailable: {e}"
        return CheckResult(check="cache_store", success=healthy, message=message)

    def _check_broker(self) -> CheckResult:
        if not self._broker.is_connected:
            return CheckResult(check="message_broker", success=False, message="Message broker connection lost")

        stopped = [s.topic for s in self._broker.subscriptions if not s.active and not s.stopping]
        if stopped:
            return CheckResult(
                check="message_broker",
                success=False,
                message=f"Consumers stopped for: {', '.join(stopped)}",
            )
        return CheckResult(check="message_broker", success=True, message="Connected to message broker")
