"""Persistence layer for the API request/response audit log."""

from .database import DatabaseService
from .models import RequestRecord, ResponseRecord
from .repository import ApiLogRepository, to_jsonb
from .schema import ensure_schema, ensure_table, initialize_database

__all__ = [
    "ApiLogRepository",
    "DatabaseService",
    "RequestRecord",
    "ResponseRecord",
    "ensure_schema",
    "ensure_table",
    "initialize_database",
    "to_jsonb",
]
