from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect, text

from classplan.db.bootstrap import REQUIRED_COLUMNS
from classplan.db.session import engine

router = APIRouter()


@router.get("/health")
def health() -> dict:
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/health/ready")
def health_ready() -> JSONResponse:
    db_ok = True
    missing_tables: list[str] = []
    db_error: str | None = None

    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            table_names = set(inspect(connection).get_table_names())
            missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
    except Exception as exc:  # pragma: no cover - environment dependent
        db_ok = False
        db_error = str(exc)

    ready = db_ok and not missing_tables
    payload = {
        "status": "ok" if ready else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": {"ok": db_ok, "missing_tables": missing_tables, "error": db_error},
    }
    return JSONResponse(status_code=200 if ready else 503, content=payload)
