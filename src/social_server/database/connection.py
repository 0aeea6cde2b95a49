"""Authoritative store connection handling.

``Database`` owns one SQLModel engine per process. It is constructed
explicitly at startup (``Database.from_settings``) and passed to the
services that need it; ``dispose`` releases the pool on shutdown.
"""

from collections.abc import Generator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, SQLModel, create_engine, text
from tenacity import before_sleep_log, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from social_server.settings import Settings


class Database:
    """Engine holder and session factory for the authoritative store."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        """Create the engine from current settings.

        Raises:
            ValueError: if database URL not configured.
        """
        if not settings.database_url:
            raise ValueError("Database URL missing: provide SOCIAL_SERVER_DATABASE_URL env or --database-url CLI argument")
        if settings.database_url.startswith("sqlite"):
            engine = create_engine(
                settings.database_url,
                echo=settings.sql_log,
                connect_args={"check_same_thread": False},
            )
        else:
            engine = create_engine(
                settings.database_url,
                pool_pre_ping=True,
                pool_recycle=3600,
                pool_size=5,
                max_overflow=10,
                pool_timeout=30,
                echo=settings.sql_log,
                connect_args={"connect_timeout": 10},
            )
        logger.info("SQL echo is {}", "enabled" if settings.sql_log else "disabled")
        return cls(engine)

    @property
    def engine(self) -> Engine:
        return self._engine

    def create_tables(self, profiles: set[str] | None = None) -> list[str]:
        """Create the tables owned by the given service roles that do not exist yet.

        Args:
            profiles: Service roles whose tables to create; all tables when None

        Returns:
            Names of the tables considered
        """
        from social_server.models.db_model import TABLES_BY_PROFILE

        names = sorted(
            name for profile, tables in TABLES_BY_PROFILE.items() if profiles is None or profile in profiles for name in tables
        )
        SQLModel.metadata.create_all(self._engine, tables=[SQLModel.metadata.tables[name] for name in names])
        logger.info(f"Database tables ensured: {', '.join(names)}")
        return names

    def is_healthy(self) -> bool:
        """Run a trivial query to check the store answers."""
        try:
            with Session(self._engine) as session:
                session.exec(text("SELECT 1"))
            return True
        except OperationalError as e:
            logger.warning(f"Database health check failed: {e}")
            return False

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
        reraise=True,
        retry=retry_if_exception_type(OperationalError),
        before_sleep=before_sleep_log(logger, "DEBUG"),
    )
    def _create_session(self) -> Session:
        """Create a session and test its connection, retrying briefly on failure."""
        session = Session(self._engine)
        try:
            session.exec(text("SELECT 1"))
        except OperationalError as e:
            session.close()
            logger.error("Failed to create database session: {}", e)
            raise
        return session

    @contextmanager
    def session(self) -> Generator[Session]:
        """Borrow a session for one unit of work.

        Example:
            with database.session() as session:
                session.exec(select(Post))
        """
        session = self._create_session()
        session_id = id(session)
        try:
            yield session
        except Exception as e:  # noqa: BLE001
            logger.error("Error during database session {}: {}", session_id, e)
            session.rollback()
            raise
        finally:
            session.close()
            logger.trace("Database session {} closed and resources released", session_id)

    def dispose(self) -> None:
        """Dispose of the engine's connection pool."""
        logger.info("Closing database connections")
        self._engine.dispose()
