"""Database schema definitions for the API request/response log store."""

import logging
import re

from sqlalchemy import text
from sqlalchemy.engine import Connection

logger = logging.getLogger(__name__)

DEFAULT_SCHEMA = "api_test"
REQUESTS_TABLE = "api_requests"
RESPONSES_TABLE = "api_responses"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

REQUESTS_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS {schema}.api_requests (
        id SERIAL PRIMARY KEY,
        endpoint VARCHAR(500) NOT NULL,
        method VARCHAR(10) NOT NULL,
        headers JSONB,
        body JSONB,
        timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""

RESPONSES_TABLE_DDL = """
    CREATE TABLE IF NOT EXISTS {schema}.api_responses (
        id SERIAL PRIMARY KEY,
        request_id INTEGER REFERENCES {schema}.api_requests(id) ON DELETE CASCADE,
        status_code INTEGER NOT NULL,
        headers JSONB,
        body JSONB,
        response_time_ms INTEGER,
        timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
"""


def _check_identifier(name: str) -> str:
    if not _IDENTIFIER.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def ensure_schema(conn: Connection, schema_name: str) -> bool:
    """
    Create a schema unless the catalog already lists it.

    The CREATE statement keeps its own IF NOT EXISTS guard, so two workers
    racing past the existence check both succeed.

    Args:
        conn: SQLAlchemy connection object (within a transaction)
        schema_name: Plain SQL identifier for the schema

    Returns:
        True if the CREATE statement was issued, False if the schema existed
    """
    _check_identifier(schema_name)
    exists = conn.execute(
        text(
            """
            SELECT EXISTS(
                SELECT 1 FROM information_schema.schemata
                WHERE schema_name = :schema_name
            )
            """
        ),
        {"schema_name": schema_name},
    ).scalar()

    if exists:
        logger.info(f"Schema '{schema_name}' already exists")
        return False

    conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema_name}"))
    logger.info(f"Schema '{schema_name}' created successfully")
    return True


def ensure_table(
    conn: Connection, schema_name: str, table_name: str, create_statement: str
) -> bool:
    """
    Run ``create_statement`` unless ``schema_name.table_name`` already exists.

    Args:
        conn: SQLAlchemy connection object (within a transaction)
        schema_name: Schema the table lives in
        table_name: Table to look up in information_schema.tables
        create_statement: DDL creating the table, guarded by IF NOT EXISTS

    Returns:
        True if the DDL was executed, False if the table existed
    """
    exists = conn.execute(
        text(
            """
            SELECT EXISTS(
                SELECT 1 FROM information_schema.tables
                WHERE table_schema = :schema_name AND table_name = :table_name
            )
            """
        ),
        {"schema_name": schema_name, "table_name": table_name},
    ).scalar()

    if exists:
        logger.info(f"Table '{schema_name}.{table_name}' already exists")
        return False

    conn.execute(text(create_statement))
    logger.info(f"Table '{schema_name}.{table_name}' created successfully")
    return True


def initialize_database(conn: Connection, schema_name: str = DEFAULT_SCHEMA) -> None:
    """
    Provision the log schema with its requests and responses tables.

    Schema:
        - api_requests: endpoint, method, JSONB headers/body, store-assigned timestamp
        - api_responses: request_id (FK, cascade delete), status_code,
          JSONB headers/body, response_time_ms, store-assigned timestamp

    DDL errors are not caught here; a failed provisioning aborts the caller.

    Args:
        conn: SQLAlchemy connection object (within a transaction)
        schema_name: Schema to provision (default: api_test)
    """
    ensure_schema(conn, schema_name)
    ensure_table(
        conn, schema_name, REQUESTS_TABLE, REQUESTS_TABLE_DDL.format(schema=schema_name)
    )
    ensure_table(
        conn, schema_name, RESPONSES_TABLE, RESPONSES_TABLE_DDL.format(schema=schema_name)
    )
    logger.info("Database initialization completed")
