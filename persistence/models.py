"""Write models for the API request/response audit log.

Both record types are append-only: the store assigns ``id`` and
``timestamp`` on insert and rows are never updated afterwards. Reads come
back from the repository as plain dictionaries keyed by column name.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

ERROR_STATUS_CODE = 500
"""Status recorded for a transport error that carries no HTTP status."""


@dataclass
class RequestRecord:
    """One outbound API call, as written to ``api_test.api_requests``.

    Attributes:
        endpoint: Resolved URL (base URL prefix and query string applied)
        method: HTTP method; accepted as a plain string, not whitelisted
        headers: Request headers, stored as JSONB (None -> NULL)
        body: Any JSON-serializable request payload (None -> NULL)
    """

    endpoint: str
    method: str
    headers: Optional[Dict[str, str]] = None
    body: Any = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert RequestRecord to dictionary."""
        return {
            "endpoint": self.endpoint,
            "method": self.method,
            "headers": self.headers,
            "body": self.body,
        }


@dataclass
class ResponseRecord:
    """The outcome of one logged call, as written to ``api_test.api_responses``.

    Attributes:
        request_id: Id of the RequestRecord this response belongs to
        status_code: HTTP status, or ERROR_STATUS_CODE for transport errors
        headers: Response headers, stored as JSONB (None -> NULL)
        body: Parsed JSON body, raw text, or ``{"error": message}``
        response_time_ms: Wall-clock duration of the network call

    Raises:
        ValueError: If response_time_ms is negative
    """

    request_id: int
    status_code: int
    headers: Optional[Dict[str, str]] = None
    body: Any = None
    response_time_ms: int = field(default=0)

    def __post_init__(self) -> None:
        if self.response_time_ms < 0:
            raise ValueError(f"response_time_ms must be non-negative, got {self.response_time_ms}")

    @classmethod
    def from_error(
        cls, request_id: int, error: BaseException, response_time_ms: int
    ) -> "ResponseRecord":
        """Build the record logged when the network call itself failed."""
        status = getattr(getattr(error, "response", None), "status_code", None)
        return cls(
            request_id=request_id,
            status_code=status or ERROR_STATUS_CODE,
            headers={},
            body={"error": str(error) or "Unknown error"},
            response_time_ms=response_time_ms,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert ResponseRecord to dictionary."""
        return {
            "request_id": self.request_id,
            "status_code": self.status_code,
            "headers": self.headers,
            "body": self.body,
            "response_time_ms": self.response_time_ms,
        }


__all__ = ["ERROR_STATUS_CODE", "RequestRecord", "ResponseRecord"]
