"""Pytest configuration and fixtures."""

import os

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from api_test_harness.factories import UserFactory
from persistence.repository import ApiLogRepository

pytest_plugins = ["api_test_harness.fixtures", "pytester"]


@pytest.fixture
def database_ready(db_service):
    """
    Provide the worker's initialized DatabaseService.

    Skips the test when the database is disabled or could not be started.
    """
    if os.getenv("SKIP_DB_TESTS"):
        pytest.skip("Database tests disabled")
    if not db_service.is_initialized():
        pytest.skip("Database not available")
    return db_service


@pytest.fixture
def log_repository(database_ready):
    """Repository over freshly truncated log tables."""
    database_ready.query(
        "TRUNCATE api_test.api_responses, api_test.api_requests RESTART IDENTITY CASCADE"
    )
    return ApiLogRepository(database_ready)


@pytest.fixture(autouse=True)
def _reset_user_factory():
    UserFactory.reset_counter()
    yield


def _make_response(status_code=200, content=b'{"id": 1}', headers=None):
    response = requests.Response()
    response.status_code = status_code
    response._content = content
    response.headers = CaseInsensitiveDict(
        headers if headers is not None else {"Content-Type": "application/json"}
    )
    response.encoding = "utf-8"
    return response


@pytest.fixture
def make_response():
    """Build real requests.Response objects without touching the network."""
    return _make_response


def pytest_collection_modifyitems(config, items):
    """Wire the database/live markers to their fixtures and skip conditions."""
    skip_live = pytest.mark.skip(reason="Live API tests disabled (set RUN_LIVE_TESTS=1)")
    for item in items:
        if item.get_closest_marker("database"):
            item.fixturenames.append("database_ready")
        if item.get_closest_marker("live") and not os.getenv("RUN_LIVE_TESTS"):
            item.add_marker(skip_live)
