from __future__ import annotations

import logging

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError

import app.models  # noqa: F401
from app.core.config import get_settings
from app.db.base import Base
from app.db.session import engine

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: dict[str, set[str]] = {
    "users": {"id", "email", "role", "course_id"},
    "courses": {"id", "code"},
    "units": {"id", "code", "course_id", "capacity"},
    "semesters": {"id", "registration_start_date", "registration_end_date", "max_units_per_student"},
    "venues": {"id", "building", "room", "capacity", "type"},
    "timetables": {"id", "semester_id", "course_id", "status"},
    "lectures": {"id", "timetable_id", "teacher_id", "day_of_week", "start_time", "end_time"},
    "lecture_instances": {"id", "lecture_id", "date", "status"},
    "unit_registrations": {"id", "student_id", "unit_id", "semester_id", "status", "grade"},
}


def missing_schema_objects() -> tuple[list[str], list[str]]:
    with engine.connect() as connection:
        inspector = inspect(connection)
        table_names = set(inspector.get_table_names())
        missing_tables = sorted(name for name in REQUIRED_COLUMNS if name not in table_names)
        missing_columns: list[str] = []
        for table_name, required in REQUIRED_COLUMNS.items():
            if table_name not in table_names:
                continue
            existing = {item["name"] for item in inspector.get_columns(table_name)}
            missing_columns.extend(f"{table_name}.{column}" for column in sorted(required - existing))
    return missing_tables, missing_columns


def ensure_schema() -> None:
    try:
        if get_settings().auto_create_schema:
            Base.metadata.create_all(bind=engine)
        missing_tables, missing_columns = missing_schema_objects()
        if missing_tables:
            raise RuntimeError(f"Missing required tables: {', '.join(missing_tables)}")
        if missing_columns:
            raise RuntimeError(f"Missing required columns: {', '.join(missing_columns)}")
    except (SQLAlchemyError, RuntimeError) as exc:  # pragma: no cover - runtime environment dependent
        logger.exception("Schema bootstrap failed; run the migrations or set AUTO_CREATE_SCHEMA")
        raise RuntimeError("Schema bootstrap failed") from exc
    logger.info("Database schema verified")
