from __future__ import annotations

import logging

from sqlalchemy import inspect

import classplan.models  # noqa: F401
from classplan.db.base import Base
from classplan.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role"},
    "teachers": {"id", "email", "calendar_sync_enabled"},
    "subjects": {"id", "teacher_id", "division_id"},
    "rooms": {"id", "name"},
    "classes": {"id", "subject_id", "teacher_id", "room_id", "start_at", "end_at", "lecture_number", "sub_topic_id"},
    "cpr_modules": {"id", "subject_id", "order"},
    "cpr_topics": {"id", "module_id", "order"},
    "cpr_sub_topics": {
        "id",
        "topic_id",
        "order",
        "lecture_count",
        "status",
        "planned_start_date",
        "planned_end_date",
        "actual_start_date",
        "actual_end_date",
    },
}


def _assert_required_columns() -> None:
    with engine.begin() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = [name for name in REQUIRED_COLUMNS if name not in table_names]
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(sorted(missing_tables))}")

        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            for column_name in sorted(required - existing):
                missing_columns.append(f"{table_name}.{column_name}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")


def ensure_runtime_schema_compatibility() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        _assert_required_columns()
    except Exception as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Runtime schema compatibility bootstrap failed")
        raise RuntimeError("Runtime schema compatibility bootstrap failed") from exc
