"""Main FastAPI application module.

One process serves one or more service roles (``post``, ``search``,
``media``). The lifespan opens the process's single database engine,
cache store client and broker connection, builds the services on top of
them, and starts one consumption loop per consumer topic.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from social_server import __version__
from social_server.api import build_api_router
from social_server.api.dependencies import SAFE_METHODS, client_ip
from social_server.api.health_check import router as health_router
from social_server.api.ping import router as ping_router
from social_server.cache import CacheStore, RateLimiter
from social_server.constants import SCOPE_GLOBAL
from social_server.database import Database
from social_server.event_bus import BrokerClient, start_consumers
from social_server.events.consumers import build_handler_registries
from social_server.exception_handlers import register_exception_handlers
from social_server.logging import setup_logging, setup_sqlalchemy_logging
from social_server.profile import parse_profile
from social_server.services.di import register_all_services
from social_server.services.registry import ServiceRegistry
from social_server.settings import Settings, get_settings


def _log_server_endpoints_summary(settings: Settings, profiles: set[str]) -> None:
    server_url = f"http://{settings.host}:{settings.port}"
    logger.info(f"Server running at: {server_url}")
    logger.info(f"   Health Check: {server_url}/health-check")
    logger.info(f"   API Docs: {server_url}/docs")
    logger.info(f"Active profiles: {', '.join(sorted(profiles))}")


def create_broker(settings: Settings) -> BrokerClient:
    return BrokerClient(
        settings.broker_url,
        settings.exchange_name,
        timeout=settings.broker_timeout,
        connect_attempts=settings.broker_connect_attempts,
        transient_retry_delay=settings.transient_retry_delay,
    )


async def open_resources(settings: Settings) -> tuple[Database, CacheStore, BrokerClient]:
    """Open the process's shared handles in startup order.

    Raises:
        CacheStoreError: If the cache store does not answer after the capped retries
        BrokerConnectionError: If the broker is unreachable after the capped retries
    """
    database = Database.from_settings(settings)

    store = CacheStore.from_url(settings.redis_url, timeout=settings.cache_timeout)
    try:
        await store.connect()
    except Exception:
        await store.close()
        database.dispose()
        raise

    broker = create_broker(settings)
    try:
        await broker.connect()
    except Exception:
        await store.close()
        database.dispose()
        raise

    return database, store, broker


async def close_resources(database: Database, store: CacheStore, broker: BrokerClient) -> None:
    """Close the shared handles in reverse startup order."""
    await broker.close()
    await store.close()
    database.dispose()


@asynccontextmanager
async def app_lifespan(app: FastAPI):
    """Handle startup and shutdown events for the main application."""
    settings: Settings = app.state.settings
    profiles: set[str] = app.state.profiles

    setup_logging(log_level=settings.log_level)
    setup_sqlalchemy_logging()
    logger.info(f"Social server {__version__} starting")

    database, store, broker = await open_resources(settings)

    subscriptions = []
    try:
        services = ServiceRegistry()
        register_all_services(services, settings, database, store, broker, profiles)
        app.state.services = services

        subscriptions = await start_consumers(broker, build_handler_registries(services, profiles))
        _log_server_endpoints_summary(settings, profiles)
        yield
    finally:
        logger.info("Social server shutting down")
        for subscription in subscriptions:
            await subscription.stop(settings.broker_timeout)
        await close_resources(database, store, broker)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for the configured service roles.

    ``app.state.services`` is filled in by the lifespan; tests that skip the
    lifespan set it themselves.
    """
    settings = settings or get_settings()
    profiles = parse_profile(settings.profiles)

    app = FastAPI(
        lifespan=app_lifespan,
        title="Social server",
        description="Post, search and media services kept consistent through domain events",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.profiles = profiles

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def global_rate_limit(request: Request, call_next) -> Response:  # type: ignore[no-untyped-def]
        """Per-IP admission for every API request.

        Reads are admitted when the cache store is down. Writes follow
        ``rate_limit_fail_open`` and are refused with 503 rather than 429, so
        an outage is not reported as a quota.
        """
        if request.url.path.startswith("/api"):
            limiter: RateLimiter = request.app.state.services.get(RateLimiter)
            safe = request.method in SAFE_METHODS
            decision = await limiter.consume(SCOPE_GLOBAL, client_ip(request), fail_open=True if safe else None)
            if decision.degraded and not decision.allowed:
                return JSONResponse(
                    status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                    content={"success": False, "message": "Service temporarily unavailable"},
                )
            if not decision.allowed:
                return JSONResponse(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    content={"success": False, "message": "Too many requests"},
                )
        return await call_next(request)

    register_exception_handlers(app)

    # System endpoints - always enabled
    app.include_router(health_router, prefix="")
    app.include_router(ping_router, prefix="")

    app.include_router(build_api_router(profiles), prefix="/api")

    return app
