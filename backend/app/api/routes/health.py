from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.db import session as db_session
from app.db.bootstrap import find_schema_gaps

router = APIRouter()
logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _database_status() -> dict:
    report: dict = {"ok": True, "schema_ok": False, "missing_tables": [], "missing_columns": {}, "error": None}
    try:
        with db_session.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        missing_tables, missing_columns = find_schema_gaps(db_session.engine)
    except SQLAlchemyError as exc:  # pragma: no cover - needs an unreachable database
        logger.warning("Readiness probe failed to query the database", exc_info=True)
        report.update(ok=False, error=str(exc))
        return report

    report.update(
        schema_ok=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
    )
    return report


@router.get("/health")
def health() -> dict:
    return {"status": "ok"}


@router.get("/health/live")
def health_live() -> dict:
    return {"status": "ok", "timestamp": _now()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    database = _database_status()
    ready = database["ok"] and database["schema_ok"]
    if not ready:
        logger.warning("Service not ready: %s", database)
    return JSONResponse(
        status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "ok" if ready else "degraded", "timestamp": _now(), "database": database},
    )
