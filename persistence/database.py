"""Process-wide PostgreSQL connection management for the audit log store."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from api_test_harness.config import Config
from .schema import initialize_database

logger = logging.getLogger(__name__)

EPHEMERAL_IMAGE = "postgres:15-alpine"
EPHEMERAL_DATABASE = "testdb"
EPHEMERAL_USER = "testuser"
EPHEMERAL_PASSWORD = "testpass"

POOL_SIZE = 10
POOL_RECYCLE_SECONDS = 30
CONNECT_TIMEOUT_SECONDS = 2


class DatabaseService:
    """
    Owns the single SQLAlchemy engine (and its connection pool) for a process.

    Under pytest-xdist every worker is its own process, so each worker gets
    one pool shared by all of its tests. The engine is built either against
    a disposable PostgreSQL container (testcontainers) or against the static
    settings in :class:`~api_test_harness.config.DatabaseConfig`.

    Example:
        >>> db = DatabaseService.get_instance()
        >>> db.initialize(use_ephemeral_backend=True)
        >>> db.query("SELECT COUNT(*) AS cnt FROM api_test.api_requests")
        [{'cnt': 0}]
        >>> db.close()
    """

    _instance: Optional["DatabaseService"] = None

    def __init__(self, config: Optional[Config] = None):
        self._config = config
        self._engine: Optional[Engine] = None
        self._container = None

    @classmethod
    def get_instance(cls) -> "DatabaseService":
        """Return the shared service, creating it on first use."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def config(self) -> Config:
        return self._config or Config.get_instance()

    @property
    def uses_ephemeral_backend(self) -> bool:
        return self._container is not None

    def initialize(self, use_ephemeral_backend: bool = True) -> None:
        """
        Build the connection pool and provision the log schema.

        Calling this on an initialized service only logs and returns.

        Args:
            use_ephemeral_backend: Start a PostgreSQL container for this
                process. Ignored when the configuration is flagged production.

        Raises:
            sqlalchemy.exc.SQLAlchemyError: If the store is unreachable or
                provisioning fails. Anything built so far is torn down first.
        """
        if self._engine is not None:
            logger.info("Database connection already initialized")
            return

        try:
            if use_ephemeral_backend and not self.config.is_production:
                self._initialize_ephemeral()
            else:
                self._initialize_from_config()

            assert self._engine is not None
            with self._engine.begin() as conn:
                initialize_database(conn)
        except Exception:
            self.close()
            raise

    def _initialize_ephemeral(self) -> None:
        """Start a disposable PostgreSQL container and pool against it."""
        from testcontainers.postgres import PostgresContainer

        logger.info(f"Starting PostgreSQL container ({EPHEMERAL_IMAGE})...")
        container = PostgresContainer(
            EPHEMERAL_IMAGE,
            username=EPHEMERAL_USER,
            password=EPHEMERAL_PASSWORD,
            dbname=EPHEMERAL_DATABASE,
        )
        container.start()
        self._container = container
        self._engine = create_engine(container.get_connection_url(), pool_size=POOL_SIZE)
        logger.info("PostgreSQL container started successfully")

    def _initialize_from_config(self) -> None:
        """Pool against the configured server and probe it once."""
        db_config = self.config.database
        logger.info(
            f"Connecting to PostgreSQL at {db_config.host}:{db_config.port}/{db_config.database}..."
        )
        self._engine = create_engine(
            db_config.url(),
            pool_size=POOL_SIZE,
            pool_recycle=POOL_RECYCLE_SECONDS,
            connect_args={"connect_timeout": CONNECT_TIMEOUT_SECONDS},
        )
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT NOW()"))
        except Exception as e:
            logger.error(f"Failed to connect to PostgreSQL: {e}")
            raise
        logger.info("PostgreSQL connection established successfully")

    def get_engine(self) -> Engine:
        """Return the live engine.

        Raises:
            RuntimeError: If initialize() has not completed
        """
        if self._engine is None:
            raise RuntimeError("Database not initialized. Call initialize() first.")
        return self._engine

    def query(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """
        Execute a parameterized statement in its own transaction.

        Args:
            sql: SQL text using ``:name`` bind parameters
            params: Bind parameter values

        Returns:
            Result rows as dictionaries; empty for statements returning no rows
        """
        with self.get_engine().begin() as conn:
            result = conn.execute(text(sql), params or {})

            # Only fetch results for queries that return rows (SELECT, RETURNING, etc.)
            if result.returns_rows:
                return [dict(row) for row in result.mappings()]
            return []

    def close(self) -> None:
        """Dispose of the pool and stop the container; safe to repeat."""
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None
            logger.info("Database connection pool closed")
        if self._container is not None:
            self._container.stop()
            self._container = None
            logger.info("PostgreSQL container stopped")

    def is_initialized(self) -> bool:
        return self._engine is not None
