"""
Database connection and session management for Campus Events Service.
Every allocation and release runs inside one explicit transaction.
"""

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import QueuePool, StaticPool
from contextlib import contextmanager
from typing import Generator
import logging

from campus_events.core.config import config
from campus_events.models import Base

logger = logging.getLogger(__name__)


class DatabaseManager:
    """
    Database manager for the event record store.
    Handles connection pooling and transaction management.
    """

    def __init__(self):
        self.engine = None
        self.session_factory = None
        self._initialized = False

    async def initialize(self):
        """Initialize database connections from service configuration."""
        if self._initialized:
            return

        db_url = await config.get_database_url()
        db_config = await config.get_database_config()
        self.configure(db_url, **db_config)

    def configure(
        self,
        database_url: str,
        pool_size: int = 20,
        max_overflow: int = 30,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
    ):
        """
        Create the engine and session factory for a database URL.

        Args:
            database_url: SQLAlchemy database URL
            pool_size: Connection pool size (ignored for SQLite)
            max_overflow: Pool overflow (ignored for SQLite)
            pool_timeout: Seconds to wait for a pooled connection
            pool_recycle: Seconds before a pooled connection is recycled
        """
        try:
            if database_url.startswith("sqlite"):
                self.engine = create_engine(
                    database_url,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                    echo=False,
                )
            else:
                self.engine = create_engine(
                    database_url,
                    poolclass=QueuePool,
                    pool_size=pool_size,
                    max_overflow=max_overflow,
                    pool_timeout=pool_timeout,
                    pool_recycle=pool_recycle,
                    pool_pre_ping=True,
                    echo=False,
                )

            self.session_factory = sessionmaker(
                bind=self.engine,
                class_=Session,
                autocommit=False,
                autoflush=False,
                expire_on_commit=False
            )

            self._setup_event_listeners()

            self._initialized = True
            logger.info("Database manager initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize database manager: {e}")
            raise

    def _setup_event_listeners(self):
        """Set per-connection parameters."""

        @event.listens_for(self.engine, "connect")
        def set_connection_parameters(dbapi_connection, connection_record):
            if self.engine.dialect.name == "sqlite":
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()
            elif self.engine.dialect.name == "postgresql":
                with dbapi_connection.cursor() as cursor:
                    cursor.execute("SET lock_timeout TO '30s'")
                    cursor.execute("SET statement_timeout TO '60s'")

    @contextmanager
    def get_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with automatic transaction management.
        Commits on success, rolls back on exceptions.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()

    @contextmanager
    def get_transaction_session(self) -> Generator[Session, None, None]:
        """
        Get a database session with explicit transaction control.
        The caller commits; anything left uncommitted is rolled back.
        """
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        session = self.session_factory()
        try:
            session.begin()
            yield session
        except Exception as e:
            session.rollback()
            logger.error(f"Transaction session error: {e}")
            raise
        finally:
            session.close()

    def create_tables(self):
        """Create all database tables."""
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created successfully")

    def drop_tables(self):
        """Drop all database tables (use with caution)."""
        if not self._initialized:
            raise RuntimeError("Database manager not initialized")

        Base.metadata.drop_all(bind=self.engine)
        logger.info("Database tables dropped successfully")

    def health_check(self) -> bool:
        """
        Check database health.

        Returns:
            True if database is healthy
        """
        if not self._initialized:
            return False

        try:
            with self.get_session() as session:
                session.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def close(self):
        """Close all database connections."""
        if self.engine:
            self.engine.dispose()
        self._initialized = False
        logger.info("Database connections closed")


# Global database manager instance
db_manager = DatabaseManager()

