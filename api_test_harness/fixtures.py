"""pytest fixtures for tests of the API under test.

Load from a conftest with ``pytest_plugins = ["api_test_harness.fixtures"]``.

Fixtures:
    db_service: Shared DatabaseService, initialized once per worker process
        and closed when the worker's session ends
    api_client: ApiClient without DB logging
    api_client_with_db: ApiClient logging to the database, falling back to an
        unlogged client when the database cannot be initialized
    auth_service: AuthService using the configured credentials
"""

import logging
import os

import pytest

from persistence.database import DatabaseService
from persistence.repository import ApiLogRepository
from utils.auth import AuthService
from .client import ApiClient

logger = logging.getLogger(__name__)


def use_ephemeral_backend() -> bool:
    """Whether to start a PostgreSQL container (``DB_USE_EPHEMERAL``, default true)."""
    return os.getenv("DB_USE_EPHEMERAL", "true").lower() not in ("0", "false", "no")


def start_db_service(service: DatabaseService) -> DatabaseService:
    """
    Initialize ``service`` unless it already is.

    A failed initialization is logged as a warning and the service is
    returned uninitialized, so the run continues without DB logging.
    """
    if not service.is_initialized():
        try:
            service.initialize(use_ephemeral_backend())
            logger.info("Database initialized for worker")
        except Exception as e:
            logger.warning(f"Database initialization failed: {e}")
    return service


def open_logged_client(db_service: DatabaseService) -> ApiClient:
    """ApiClient logging to ``db_service``, or an unlogged one if it is not initialized."""
    if not db_service.is_initialized():
        logger.warning("Running without DB logging: database is not initialized")
        return ApiClient()
    return ApiClient(log_repository=ApiLogRepository(db_service))


@pytest.fixture(scope="session")
def db_service():
    """
    Provide the worker's DatabaseService.

    Session scope means one container and one pool per pytest-xdist worker.
    The service is yielded uninitialized if the database cannot be reached;
    callers check ``is_initialized()``.
    """
    service = start_db_service(DatabaseService.get_instance())

    yield service

    service.close()


@pytest.fixture
def api_client():
    """ApiClient without request logging."""
    with ApiClient(enable_db_logging=False) as client:
        yield client


@pytest.fixture
def api_client_with_db(db_service):
    """ApiClient logging every call to the database when it is available."""
    with open_logged_client(db_service) as client:
        yield client


@pytest.fixture
def auth_service():
    """AuthService using the configured base URL and credentials."""
    service = AuthService()
    yield service
    service.session.close()
