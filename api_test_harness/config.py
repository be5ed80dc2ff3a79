"""Configuration for the API test harness.

Values are resolved from, lowest to highest precedence:

1. Built-in defaults (DummyJSON public API, local PostgreSQL)
2. ``config/application.properties`` (``key=value`` lines, ``#`` comments)
3. Environment variables, including a ``.env`` file loaded at import time

The properties path can be moved with the ``APP_CONFIG_PATH`` environment
variable.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values, load_dotenv
from sqlalchemy.engine import URL

load_dotenv()

DEFAULT_PROPERTIES_PATH = Path("config") / "application.properties"

# option -> (environment variable, default)
_OPTIONS: Dict[str, tuple] = {
    "database.host": ("DB_HOST", "localhost"),
    "database.port": ("DB_PORT", "5432"),
    "database.name": ("DB_NAME", "testdb"),
    "database.user": ("DB_USER", "testuser"),
    "database.password": ("DB_PASSWORD", "testpass"),
    "api.baseUrl": ("API_BASE_URL", "https://dummyjson.com"),
    "api.username": ("API_USERNAME", "emilys"),
    "api.password": ("API_PASSWORD", "emilyspass"),
    "test.timeout": ("TEST_TIMEOUT", "30000"),
    "test.retries": ("TEST_RETRIES", "2"),
}


@dataclass(frozen=True)
class ApiConfig:
    """Connection details for the API under test."""

    base_url: str
    username: str
    password: str


@dataclass(frozen=True)
class DatabaseConfig:
    """Static PostgreSQL settings used when no ephemeral backend is started."""

    host: str
    port: int
    database: str
    user: str
    password: str

    def url(self) -> URL:
        """Build a SQLAlchemy URL for the psycopg2 driver."""
        return URL.create(
            "postgresql+psycopg2",
            username=self.user,
            password=self.password,
            host=self.host,
            port=self.port,
            database=self.database,
        )


@dataclass(frozen=True)
class TestConfig:
    """
    Test run settings.

    ``timeout`` (milliseconds) bounds each HTTP call. ``retries`` is
    informational only: the harness never retries a call, and a runner that
    reruns failed tests can read it from here.
    """

    __test__ = False  # not a pytest test class

    timeout: int
    retries: int

    @property
    def timeout_seconds(self) -> float:
        return self.timeout / 1000


class Config:
    """
    Resolved harness configuration.

    Use :meth:`get_instance` for the shared, process-wide configuration.
    Direct construction is for tests that need an isolated view of a given
    properties file or environment.

    Example:
        >>> config = Config.get_instance()
        >>> config.api.base_url
        'https://dummyjson.com'
    """

    _instance: Optional["Config"] = None

    def __init__(
        self,
        properties_path: Optional[Path] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """
        Args:
            properties_path: Properties file to read (default: APP_CONFIG_PATH
                or config/application.properties; a missing file is ignored)
            environ: Environment mapping (default: os.environ)
        """
        self._environ = os.environ if environ is None else environ
        if properties_path is None:
            properties_path = Path(
                self._environ.get("APP_CONFIG_PATH", str(DEFAULT_PROPERTIES_PATH))
            )
        self.properties_path = Path(properties_path)
        self._properties = self._load_properties(self.properties_path)

        self.environment = self._environ.get("APP_ENV", "test")
        self.api = ApiConfig(
            base_url=self._get("api.baseUrl").rstrip("/"),
            username=self._get("api.username"),
            password=self._get("api.password"),
        )
        self.database = DatabaseConfig(
            host=self._get("database.host"),
            port=self._get_int("database.port"),
            database=self._get("database.name"),
            user=self._get("database.user"),
            password=self._get("database.password"),
        )
        self.test = TestConfig(
            timeout=self._get_int("test.timeout"),
            retries=self._get_int("test.retries"),
        )

    @classmethod
    def get_instance(cls) -> "Config":
        """Return the shared configuration, loading it on first use."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the shared configuration so the next lookup reloads it."""
        cls._instance = None

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @staticmethod
    def _load_properties(path: Path) -> Dict[str, str]:
        if not path.is_file():
            return {}
        return {key: value for key, value in dotenv_values(path).items() if value is not None}

    def _get(self, option: str) -> str:
        env_var, default = _OPTIONS[option]
        value = self._environ.get(env_var)
        if value:
            return value
        return self._properties.get(option) or default

    def _get_int(self, option: str) -> int:
        value = self._get(option)
        try:
            return int(value)
        except ValueError:
            raise ValueError(f"Configuration option '{option}' must be an integer, got {value!r}")
