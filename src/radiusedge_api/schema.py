from __future__ import annotations

import logging

from radiusedge_api.config import get_log_level
from radiusedge_api.db import Store

logger = logging.getLogger(__name__)
logger.setLevel(get_log_level())

# Nested fields are JSON text, timestamps ISO-8601 text. The same DDL runs on
# Postgres and SQLite.
SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS ai_interactions (
        id TEXT PRIMARY KEY,
        interaction_type TEXT NOT NULL,
        user_input TEXT,
        ai_output TEXT,
        created_at TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS scenarios (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        variables TEXT,
        steps TEXT,
        tags TEXT,
        last_modified TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        email TEXT UNIQUE NOT NULL,
        name TEXT,
        role TEXT,
        status TEXT,
        last_login TEXT,
        password_hash TEXT
    )
    """,
)


def ensure_schema(store: Store) -> None:
    with store.cursor() as cursor:
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
    logger.info("Schema checked/created (%d tables)", len(SCHEMA_STATEMENTS))
