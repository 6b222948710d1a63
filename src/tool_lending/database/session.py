"""
Database session management for the Tool Lending engine.

Every engine operation runs inside ``DatabaseManager.session_scope()``, which
is the transaction boundary for the multi-entity writes (create reservation,
process return): the scope commits once at the end or rolls back everything.

Key considerations:
- Sessions are short-lived, one per engine operation
- File-backed SQLite gets a connection per session plus a busy timeout so
  concurrent writers wait instead of failing
- File-backed SQLite opens every transaction with BEGIN IMMEDIATE. SQLite
  ignores SELECT ... FOR UPDATE, so this is what serializes the
  check-then-insert of create_reservation across engines and processes
  sharing one database file
- In-memory SQLite must share one connection (StaticPool) or each session
  would see an empty database
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_config
from .schema import Base

logger = logging.getLogger(__name__)

SQLITE_BUSY_TIMEOUT_SECONDS = 30


class DatabaseManager:
    """
    Manages database connections and sessions for the engine.

    This class provides:
    - Lazy engine creation with backend-appropriate pooling
    - A session factory with explicit transactions
    - Schema creation for development and tests
    """

    def __init__(self, database_url: str | None = None):
        """
        Initialize the database manager.

        Args:
            database_url: SQLAlchemy database URL. If None, uses the configured one.
        """
        if database_url is None:
            config = get_config()
            database_url = config.get_database_url()
            if config.database_url is None:
                db_path = Path(config.database_path)
                db_path.parent.mkdir(exist_ok=True, parents=True)
                logger.info("Using SQLite database at: %s", db_path)

        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def engine(self) -> Engine:
        """
        Get or create the database engine.

        SQLite engines enable foreign keys on every connection. In-memory
        databases use StaticPool; file databases use the default pool so
        concurrent sessions get their own connections, and take the write
        lock when their transaction begins.
        """
        if self._engine is None:
            if self.is_sqlite:
                database = make_url(self.database_url).database
                in_memory = database in (None, "", ":memory:")
                options: dict = {
                    "connect_args": {
                        "check_same_thread": False,
                        "timeout": SQLITE_BUSY_TIMEOUT_SECONDS,
                    },
                    "echo": False,
                }
                if in_memory:
                    options["poolclass"] = StaticPool
                self._engine = create_engine(self.database_url, **options)

                @event.listens_for(self._engine, "connect")
                def set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
                    cursor = dbapi_connection.cursor()
                    cursor.execute("PRAGMA foreign_keys=ON")
                    cursor.close()
                    if not in_memory:
                        # Let the "begin" listener below emit BEGIN itself
                        dbapi_connection.isolation_level = None

                if not in_memory:

                    @event.listens_for(self._engine, "begin")
                    def begin_immediate(conn):
                        conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                self._engine = create_engine(
                    self.database_url,
                    pool_size=10,
                    max_overflow=20,
                    pool_pre_ping=True,
                    echo=False,
                )

            logger.info("Database engine created: %s", self._engine.url)

        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        """Get or create the session factory."""
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autocommit=False,
                autoflush=False,
                # Keep returned objects readable after commit
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """Create a new database session; callers must close it."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Provide a transactional scope for database operations.

        ```python
        with db_manager.session_scope() as session:
            tool = session.get(Tool, tool_id)
            tool.is_available = False
        # Committed here, or rolled back if the block raised
        ```
        """
        session = self.create_session()
        try:
            yield session
            session.commit()
            logger.debug("Database transaction committed successfully")
        except Exception:
            logger.debug("Rolling back database transaction", exc_info=True)
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """
        Initialize the database schema.

        Args:
            drop_existing: If True, drop all tables before creating
        """
        engine = self.engine

        if drop_existing:
            logger.warning("Dropping all existing tables...")
            Base.metadata.drop_all(bind=engine)

        logger.info("Creating database tables...")
        Base.metadata.create_all(bind=engine)
        logger.info("Database initialization complete")

    def verify_connection(self) -> bool:
        """Verify the database connection is working."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            logger.info("Database connection verified")
            return True
        except Exception:
            logger.exception("Database connection failed")
            return False

    def close(self) -> None:
        """Dispose of the engine and its pooled connections."""
        if self._engine:
            self._engine.dispose()
            logger.info("Database engine disposed")
        self._engine = None
        self._session_factory = None
