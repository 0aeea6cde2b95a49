"""Main entry point for the social server using Typer and Pydantic Settings."""

import asyncio

import typer
import uvicorn
from loguru import logger

from social_server.logging import setup_logging
from social_server.profile import parse_profile
from social_server.settings import get_settings

app = typer.Typer()


HOST_OPTION = typer.Option(
    None,
    help="Host to bind the server to (overrides SOCIAL_SERVER_HOST)",
    metavar="<server>",
)  # fmt: skip
PORT_OPTION = typer.Option(
    None,
    help="Port to bind the server to (overrides SOCIAL_SERVER_PORT)",
    metavar="<port>",
)  # fmt: skip
RELOAD_OPTION = typer.Option(
    None,
    help="Enable/disable auto-reload (overrides SOCIAL_SERVER_RELOAD)",
)  # fmt: skip
LOG_LEVEL_OPTION = typer.Option(
    None,
    help="Log level (overrides SOCIAL_SERVER_LOG_LEVEL)",
    metavar="<level>",
    case_sensitive=False,
)  # fmt: skip
SQL_LOG_OPTION = typer.Option(
    None,
    help="Enable/disable SQL query logging (overrides SOCIAL_SERVER_SQL_LOG)",
)  # fmt: skip
DATABASE_URL_OPTION = typer.Option(
    None,
    help="Database URL (overrides SOCIAL_SERVER_DATABASE_URL)",
    metavar="<dsn>",
)  # fmt: skip
BROKER_URL_OPTION = typer.Option(
    None,
    help="AMQP broker URL (overrides SOCIAL_SERVER_BROKER_URL)",
    metavar="<url>",
)  # fmt: skip
REDIS_URL_OPTION = typer.Option(
    None,
    help="Cache store URL (overrides SOCIAL_SERVER_REDIS_URL)",
    metavar="<url>",
)  # fmt: skip
PROFILE_OPTION = typer.Option(
    None,
    "-p",
    "--profile",
    help="Service roles: post, search, media, or combination (e.g., 'post,search'). Omit for all.",
    metavar="<profile>",
)  # fmt: skip


def _update_settings(**overrides: object) -> None:
    """Apply CLI overrides that were given to the cached settings instance."""
    settings = get_settings()
    for name, value in overrides.items():
        if value is not None:
            setattr(settings, name, value)


@app.command()
def run(
    host: str = HOST_OPTION,
    port: int = PORT_OPTION,
    log_level: str = LOG_LEVEL_OPTION,
    reload: bool = RELOAD_OPTION,
    sql_log: bool = SQL_LOG_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    broker_url: str = BROKER_URL_OPTION,
    redis_url: str = REDIS_URL_OPTION,
    profile: str = PROFILE_OPTION,
) -> None:
    """Run the server for the selected service roles."""
    _update_settings(
        host=host,
        port=port,
        log_level=log_level,
        reload=reload,
        sql_log=sql_log,
        database_url=database_url,
        broker_url=broker_url,
        redis_url=redis_url,
        profiles=profile,
    )
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info(f"Starting social server on {settings.host}:{settings.port}")
    logger.info(f"Profile: {settings.profiles or 'all'}")
    logger.info(f"Reload: {settings.reload}")

    if settings.reload:
        # The reloader re-imports the app in a fresh process, which reads settings from the environment
        uvicorn.run(
            "social_server.app:create_app",
            factory=True,
            host=settings.host,
            port=settings.port,
            reload=True,
            log_level=settings.log_level.lower(),
        )
    else:
        from social_server.app import create_app

        uvicorn.run(
            create_app(settings),
            host=settings.host,
            port=settings.port,
            reload=False,
            log_level=settings.log_level.lower(),
        )


@app.command()
def check(
    log_level: str = LOG_LEVEL_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    broker_url: str = BROKER_URL_OPTION,
    redis_url: str = REDIS_URL_OPTION,
    profile: str = PROFILE_OPTION,
) -> None:
    """Connect to the database, cache store and broker, then exit."""
    _update_settings(log_level=log_level, database_url=database_url, broker_url=broker_url, redis_url=redis_url, profiles=profile)
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("Running readiness checks only")

    from social_server.app import close_resources, open_resources

    async def _check() -> bool:
        database, store, broker = await open_resources(settings)
        try:
            return await asyncio.to_thread(database.is_healthy)
        finally:
            await close_resources(database, store, broker)

    try:
        healthy = asyncio.run(_check())
    except Exception as e:
        logger.error(f"Readiness checks failed: {e}")
        raise SystemExit(1) from None

    if not healthy:
        logger.error("Readiness checks failed: database is not answering")
        raise SystemExit(1)
    logger.info("Readiness checks completed successfully")


@app.command("init-db")
def init_db(
    log_level: str = LOG_LEVEL_OPTION,
    sql_log: bool = SQL_LOG_OPTION,
    database_url: str = DATABASE_URL_OPTION,
    profile: str = PROFILE_OPTION,
) -> None:
    """Create the tables owned by the selected service roles."""
    _update_settings(log_level=log_level, sql_log=sql_log, database_url=database_url, profiles=profile)
    settings = get_settings()
    setup_logging(settings.log_level)

    from social_server.database import Database

    try:
        database = Database.from_settings(settings)
    except ValueError as e:
        logger.error(str(e))
        raise SystemExit(1) from None

    try:
        database.create_tables(parse_profile(settings.profiles))
    finally:
        database.dispose()


if __name__ == "__main__":
    app()
