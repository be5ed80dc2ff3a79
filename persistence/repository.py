"""Repository for the API request/response audit log."""

import json
import re
from typing import Any, Dict, List, Optional

from .database import DatabaseService
from .models import RequestRecord, ResponseRecord

# \u0000 escape not preceded by an escaped backslash
_NUL_ESCAPE = re.compile(r"(?<!\\)(?:\\\\)*\\u0000")


def to_jsonb(value: Any) -> Optional[str]:
    """
    Serialize a value for a JSONB bind parameter; None stays SQL NULL.

    Raises:
        ValueError: If PostgreSQL jsonb cannot hold the value (NaN or
            Infinity floats, NUL characters in strings)
    """
    if value is None:
        return None
    serialized = json.dumps(value, allow_nan=False)
    if _NUL_ESCAPE.search(serialized):
        raise ValueError("jsonb cannot store NUL characters")
    return serialized


def _escape_like(pattern: str) -> str:
    return pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class ApiLogRepository:
    """
    Appends request/response rows to ``api_test`` and reads them back.

    Instances are cheap and may be created freely; all of them delegate to
    the one shared :class:`DatabaseService`. Store errors (constraint
    violations, lost connections) propagate from every method unchanged.

    Example:
        >>> repo = ApiLogRepository()
        >>> request_id = repo.log_request(RequestRecord("https://dummyjson.com/users/1", "GET"))
        >>> _ = repo.log_response(ResponseRecord(request_id, 200, body={"id": 1}, response_time_ms=42))
        >>> repo.get_request_with_response(request_id)["status_code"]
        200
    """

    def __init__(self, db_service: Optional[DatabaseService] = None):
        self.db = db_service or DatabaseService.get_instance()

    def log_request(self, record: RequestRecord) -> int:
        """Insert a request row and return its store-generated id."""
        rows = self.db.query(
            """
            INSERT INTO api_test.api_requests (endpoint, method, headers, body)
            VALUES (:endpoint, :method, CAST(:headers AS jsonb), CAST(:body AS jsonb))
            RETURNING id
            """,
            {
                "endpoint": record.endpoint,
                "method": record.method,
                "headers": to_jsonb(record.headers),
                "body": to_jsonb(record.body),
            },
        )
        return rows[0]["id"]

    def log_response(self, record: ResponseRecord) -> int:
        """
        Insert a response row and return its store-generated id.

        The referenced request must already exist; a dangling request_id is
        rejected by the foreign key constraint.
        """
        rows = self.db.query(
            """
            INSERT INTO api_test.api_responses (
                request_id, status_code, headers, body, response_time_ms
            )
            VALUES (
                :request_id, :status_code,
                CAST(:headers AS jsonb), CAST(:body AS jsonb), :response_time_ms
            )
            RETURNING id
            """,
            {
                "request_id": record.request_id,
                "status_code": record.status_code,
                "headers": to_jsonb(record.headers),
                "body": to_jsonb(record.body),
                "response_time_ms": record.response_time_ms,
            },
        )
        return rows[0]["id"]

    def get_all_requests(self) -> List[Dict[str, Any]]:
        """All logged requests, newest first."""
        return self.db.query(
            """
            SELECT * FROM api_test.api_requests
            ORDER BY timestamp DESC, id DESC
            """
        )

    def get_all_responses(self) -> List[Dict[str, Any]]:
        """All logged responses, newest first."""
        return self.db.query(
            """
            SELECT * FROM api_test.api_responses
            ORDER BY timestamp DESC, id DESC
            """
        )

    def get_request_with_response(self, request_id: int) -> Optional[Dict[str, Any]]:
        """
        Fetch one request joined to its response.

        Response columns are aliased (``status_code``, ``response_headers``,
        ``response_body``, ``response_time_ms``, ``response_timestamp``) and
        are None when no response was logged.

        Returns:
            The joined row, or None if no request has this id
        """
        rows = self.db.query(
            """
            SELECT
                r.*,
                res.status_code,
                res.headers AS response_headers,
                res.body AS response_body,
                res.response_time_ms,
                res.timestamp AS response_timestamp
            FROM api_test.api_requests r
            LEFT JOIN api_test.api_responses res ON r.id = res.request_id
            WHERE r.id = :request_id
            """,
            {"request_id": request_id},
        )
        return rows[0] if rows else None

    def get_requests_by_endpoint(self, pattern: str) -> List[Dict[str, Any]]:
        """Requests whose endpoint contains ``pattern`` (case-sensitive), newest first."""
        return self.db.query(
            """
            SELECT * FROM api_test.api_requests
            WHERE endpoint LIKE :pattern ESCAPE '\\'
            ORDER BY timestamp DESC, id DESC
            """,
            {"pattern": f"%{_escape_like(pattern)}%"},
        )

    def get_requests_by_method(self, method: str) -> List[Dict[str, Any]]:
        """Requests made with exactly ``method``, newest first."""
        return self.db.query(
            """
            SELECT * FROM api_test.api_requests
            WHERE method = :method
            ORDER BY timestamp DESC, id DESC
            """,
            {"method": method},
        )

    def get_failed_responses(self) -> List[Dict[str, Any]]:
        """Responses with status_code >= 400 plus their request's endpoint and method."""
        return self.db.query(
            """
            SELECT
                r.endpoint,
                r.method,
                res.*
            FROM api_test.api_responses res
            JOIN api_test.api_requests r ON r.id = res.request_id
            WHERE res.status_code >= 400
            ORDER BY res.timestamp DESC, res.id DESC
            """
        )
