"""Instrumented HTTP client that records every call to the audit log store."""

import logging
import time
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import requests

from persistence.database import DatabaseService
from persistence.models import RequestRecord, ResponseRecord
from persistence.repository import ApiLogRepository, to_jsonb
from .config import Config
from .factories import RequestFactory

logger = logging.getLogger(__name__)


class ApiClient:
    """
    HTTP client for the API under test with request/response logging.

    Each verb writes a request row, performs the call, then writes a
    response row (or an error row) linked to it. Logging is best-effort:
    a failing log store is reported as a warning and never changes the
    response or exception the caller sees.

    Works as a context manager that closes a session it created itself.

    Example:
        ```python
        with ApiClient(enable_db_logging=True) as client:
            response = client.get("/users", params={"limit": "10"})
            assert response.status_code == 200
        ```
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        enable_db_logging: bool = False,
        base_url: Optional[str] = None,
        log_repository: Optional[ApiLogRepository] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize the client.

        Args:
            session: requests.Session to send calls through (created if omitted)
            enable_db_logging: Log to the shared DatabaseService when it is initialized
            base_url: Prefix for relative endpoints (default: api.baseUrl from config)
            log_repository: Explicit repository; enables logging regardless of
                enable_db_logging
            timeout: Per-call timeout in seconds (default: test.timeout from config)
        """
        config = None
        if base_url is None or timeout is None:
            config = Config.get_instance()
        self.base_url = (base_url if base_url is not None else config.api.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.test.timeout_seconds

        self._owns_session = session is None
        self.session = session if session is not None else requests.Session()

        self.log_repository = log_repository
        if self.log_repository is None and enable_db_logging:
            if DatabaseService.get_instance().is_initialized():
                self.log_repository = ApiLogRepository()
            else:
                logger.warning("DB logging requested but database is not initialized")

    @property
    def logging_enabled(self) -> bool:
        return self.log_repository is not None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def close(self) -> None:
        """Close the underlying session if this client created it."""
        if self._owns_session:
            self.session.close()

    def get(
        self,
        endpoint: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """GET ``endpoint``; ``params`` are appended to the URL as a query string."""
        url = self.build_url(endpoint, params)
        return self._send(RequestFactory.create_get_request(url, headers))

    def post(
        self,
        endpoint: str,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """POST ``data`` as JSON."""
        url = self.build_url(endpoint)
        return self._send(RequestFactory.create_post_request(url, data, headers))

    def put(
        self,
        endpoint: str,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """PUT ``data`` as JSON (full update)."""
        url = self.build_url(endpoint)
        return self._send(RequestFactory.create_put_request(url, data, headers))

    def patch(
        self,
        endpoint: str,
        data: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        """PATCH ``data`` as JSON (partial update)."""
        url = self.build_url(endpoint)
        return self._send(RequestFactory.create_patch_request(url, data, headers))

    def delete(
        self,
        endpoint: str,
        headers: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        url = self.build_url(endpoint)
        return self._send(RequestFactory.create_delete_request(url, headers))

    def build_url(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> str:
        """Prefix relative endpoints with the base URL and append query params."""
        if endpoint.startswith(("http://", "https://")):
            url = endpoint
        else:
            url = f"{self.base_url}{endpoint}"
        if params:
            url += f"?{urlencode(params)}"
        return url

    def _send(self, request: RequestRecord) -> requests.Response:
        """Log the request, perform it, and log its outcome."""
        request_id = self._log_request(request)

        start = time.perf_counter()
        try:
            response = self.session.request(
                request.method,
                request.endpoint,
                json=request.body,
                headers=request.headers or None,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            if request_id is not None:
                self._log_error_response(request_id, e, self._elapsed_ms(start))
            raise

        logger.debug(f"{request.method} {request.endpoint} -> {response.status_code}")
        if request_id is not None:
            self._log_response(request_id, response, self._elapsed_ms(start))
        return response

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return max(0, int((time.perf_counter() - start) * 1000))

    def _log_request(self, request: RequestRecord) -> Optional[int]:
        if self.log_repository is None:
            return None
        try:
            return self.log_repository.log_request(request)
        except Exception as e:
            logger.warning(f"Failed to log request {request.method} {request.endpoint}: {e}")
            return None

    def _log_response(
        self, request_id: int, response: requests.Response, response_time_ms: int
    ) -> None:
        assert self.log_repository is not None

        try:
            headers = dict(response.headers)
        except Exception as e:
            logger.warning(f"Could not read headers for request {request_id}: {e}")
            headers = {}

        try:
            self.log_repository.log_response(
                ResponseRecord(
                    request_id=request_id,
                    status_code=response.status_code,
                    headers=headers,
                    body=self._read_body(request_id, response),
                    response_time_ms=response_time_ms,
                )
            )
        except Exception as e:
            logger.warning(f"Failed to log response for request {request_id}: {e}")

    @staticmethod
    def _read_body(request_id: int, response: requests.Response) -> Any:
        """
        Parsed JSON when jsonb can hold it, otherwise the raw text.

        Bodies with NaN/Infinity or NUL characters parse in Python but are
        rejected by PostgreSQL, so they are kept as text with NULs removed.
        Empty text becomes None.
        """
        try:
            body = response.json()
            to_jsonb(body)
            return body
        except ValueError:
            pass

        try:
            return response.text.replace("\x00", "") or None
        except Exception as e:
            logger.warning(f"Could not read body for request {request_id}: {e}")
            return None

    def _log_error_response(
        self, request_id: int, error: Exception, response_time_ms: int
    ) -> None:
        assert self.log_repository is not None
        try:
            self.log_repository.log_response(
                ResponseRecord.from_error(request_id, error, response_time_ms)
            )
        except Exception as e:
            logger.warning(f"Failed to log error response for request {request_id}: {e}")
