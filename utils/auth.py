"""Authentication utilities for the API under test."""

import logging
from typing import Dict, Optional

import requests

from api_test_harness.config import Config
from api_test_harness.models import LoginResponse

logger = logging.getLogger(__name__)


class LoginError(RuntimeError):
    """Raised when ``/auth/login`` answers with a non-2xx status."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message or f"Login failed with status {status_code}")


class AuthService:
    """
    Log in against the API and hold the resulting access token.

    Credentials default to ``api.username``/``api.password`` from the
    configuration.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            session: requests.Session used for the login call (created if omitted)
            base_url: API root (default: api.baseUrl from config)
            timeout: Login timeout in seconds (default: test.timeout from config)
        """
        self.session = session or requests.Session()
        self.base_url = (base_url or Config.get_instance().api.base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else Config.get_instance().test.timeout_seconds
        self._token: Optional[str] = None

    def login(self, username: Optional[str] = None, password: Optional[str] = None) -> LoginResponse:
        """
        Authenticate and store the access token.

        Args:
            username: Explicit username; None uses the configured one
            password: Explicit password; None uses the configured one

        Returns:
            Parsed login response carrying access and refresh tokens

        Raises:
            LoginError: On a non-2xx response (the stored token is left unchanged)
        """
        api_config = Config.get_instance().api
        payload = {
            "username": api_config.username if username is None else username,
            "password": api_config.password if password is None else password,
        }

        response = self.session.post(
            f"{self.base_url}/auth/login", json=payload, timeout=self.timeout
        )
        if not response.ok:
            logger.info(f"Login for '{payload['username']}' failed with {response.status_code}")
            raise LoginError(response.status_code)

        login_response = LoginResponse.from_dict(response.json())
        self._token = login_response.access_token
        return login_response

    def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: str) -> None:
        self._token = token

    def clear_token(self) -> None:
        self._token = None

    def get_auth_header(self) -> Dict[str, str]:
        """Bearer Authorization header, or an empty dict without a token."""
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}
