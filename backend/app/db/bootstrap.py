"""Startup schema checks.

Tables missing entirely are created from the ORM metadata. Columns and indexes
added after a table first shipped are patched in place so an older database
keeps working until its migrations are run.
"""
from __future__ import annotations

import logging

from sqlalchemy import inspect, text
from sqlalchemy.engine import Connection, Engine

import app.models  # noqa: F401  registers every table on Base.metadata
from app.db.base import Base
from app.db import session as db_session

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "is_active", "last_login_at"},
    "courses": {"id", "code", "teacher_id"},
    "session_groups": {"id", "course_id"},
    "rooms": {"id", "name", "building"},
    "schedule_templates": {
        "id",
        "teacher_id",
        "day_of_week",
        "start_time",
        "end_time",
        "recurrence_type",
        "exception_dates",
        "approval_status",
        "is_active",
    },
    "session_occurrences": {"id", "template_id", "scheduled_date"},
}

# table -> column -> (postgresql type clause, generic type clause)
ADDITIVE_COLUMNS: dict[str, dict[str, tuple[str, str]]] = {
    "users": {
        "last_login_at": ("TIMESTAMP WITH TIME ZONE", "DATETIME"),
    },
    "schedule_templates": {
        "exception_dates": ("JSONB NOT NULL DEFAULT '[]'::jsonb", "JSON NOT NULL DEFAULT '[]'"),
    },
}

OCCURRENCE_UNIQUE_INDEX = "uq_session_occurrences_template_date"


def _add_missing_columns(connection: Connection) -> None:
    inspector = inspect(connection)
    tables = set(inspector.get_table_names())
    postgres = connection.dialect.name == "postgresql"
    for table_name, columns in ADDITIVE_COLUMNS.items():
        if table_name not in tables:
            continue
        present = {item["name"] for item in inspector.get_columns(table_name)}
        for column_name, (pg_clause, generic_clause) in columns.items():
            if column_name in present:
                continue
            logger.info("Adding column %s.%s", table_name, column_name)
            clause = pg_clause if postgres else generic_clause
            connection.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {clause}"))


def _add_occurrence_unique_index(connection: Connection) -> None:
    inspector = inspect(connection)
    if "session_occurrences" not in set(inspector.get_table_names()):
        return
    names = {item["name"] for item in inspector.get_unique_constraints("session_occurrences")}
    names |= {item["name"] for item in inspector.get_indexes("session_occurrences") if item.get("unique")}
    if OCCURRENCE_UNIQUE_INDEX in names:
        return
    logger.info("Adding unique index %s", OCCURRENCE_UNIQUE_INDEX)
    connection.execute(
        text(f"CREATE UNIQUE INDEX {OCCURRENCE_UNIQUE_INDEX} ON session_occurrences (template_id, scheduled_date)")
    )


def find_schema_gaps(engine: Engine) -> tuple[list[str], dict[str, list[str]]]:
    """Return the required tables that are absent and, per present table, its absent columns."""
    with engine.connect() as connection:
        inspector = inspect(connection)
        tables = set(inspector.get_table_names())
        missing_columns: dict[str, list[str]] = {}
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in tables:
                continue
            absent = required - {item["name"] for item in inspector.get_columns(table_name)}
            if absent:
                missing_columns[table_name] = sorted(absent)
    return sorted(set(REQUIRED_COLUMNS) - tables), missing_columns


def _assert_required_columns(engine: Engine) -> None:
    missing_tables, missing_columns = find_schema_gaps(engine)
    if missing_tables:
        raise RuntimeError(f"Missing required tables: {', '.join(missing_tables)}")
    if missing_columns:
        flat = [f"{table}.{column}" for table, columns in missing_columns.items() for column in columns]
        raise RuntimeError(f"Missing required columns: {', '.join(flat)}")


def ensure_runtime_schema_compatibility(engine: Engine | None = None) -> None:
    bind = engine or db_session.engine
    try:
        Base.metadata.create_all(bind=bind)
        with bind.begin() as connection:
            _add_missing_columns(connection)
            _add_occurrence_unique_index(connection)
        _assert_required_columns(bind)
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
