"""
Generic table operations behind the data service.

Rows travel as flat dicts: dates as ISO strings, timestamps as ISO
datetimes. Only the four known tables are reachable.
"""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Mapping

from sqlalchemy import Date, DateTime, select
from sqlalchemy.exc import IntegrityError

from .db import Base, db_session, engine
from .models import CalendarEventRow, CommunicationRow, DentistRow, StaffRow

logger = logging.getLogger(__name__)

TABLES: dict[str, type[Base]] = {
    "calendar_events": CalendarEventRow,
    "communications": CommunicationRow,
    "dentists": DentistRow,
    "staff": StaffRow,
}

READ_ONLY_COLUMNS = {"created_at"}


class StoreError(ValueError):
    pass


class UnknownTableError(StoreError):
    pass


# =========================
# Bootstrap DB
# =========================
def init_db() -> None:
    """Create the tables if they don't exist."""
    Base.metadata.create_all(bind=engine)


# =========================
# Helpers
# =========================
def _model(table: str) -> type[Base]:
    try:
        return TABLES[table]
    except KeyError:
        raise UnknownTableError(f"Unknown table: {table}") from None


def _coerce(model: type[Base], name: str, value: Any) -> Any:
    column = model.__table__.columns.get(name)
    if column is None:
        raise StoreError(f"Unknown column '{name}' on {model.__tablename__}")
    if value is None:
        return None
    if isinstance(column.type, Date) and not isinstance(value, date):
        if value == "":
            return None
        try:
            return date.fromisoformat(str(value))
        except ValueError:
            raise StoreError(f"Invalid date for {name}: {value!r}") from None
    if isinstance(column.type, DateTime) and not isinstance(value, datetime):
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            raise StoreError(f"Invalid timestamp for {name}: {value!r}") from None
    return value


def _coerce_all(model: type[Base], values: Mapping[str, Any]) -> dict[str, Any]:
    return {k: _coerce(model, k, v) for k, v in values.items()}


def row_to_dict(obj: Base) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.name)
        if isinstance(value, (date, datetime)):
            value = value.isoformat()
        out[column.name] = value
    return out


def _where(model: type[Base], filters: Mapping[str, Any]) -> list:
    return [getattr(model, k) == v for k, v in _coerce_all(model, filters).items()]


# =========================
# Table operations
# =========================
def select_rows(
    table: str,
    filters: Mapping[str, Any] | None = None,
    order: str | None = None,
    ascending: bool = True,
) -> list[dict[str, Any]]:
    model = _model(table)
    q = select(model).where(*_where(model, filters or {}))
    if order:
        if order not in model.__table__.columns:
            raise StoreError(f"Unknown column '{order}' on {table}")
        col = getattr(model, order)
        q = q.order_by(col.asc() if ascending else col.desc())

    with db_session() as s:
        return [row_to_dict(obj) for obj in s.scalars(q)]


def insert_row(table: str, values: Mapping[str, Any]) -> dict[str, Any]:
    model = _model(table)
    data = _coerce_all(model, {k: v for k, v in values.items() if k not in READ_ONLY_COLUMNS})
    try:
        with db_session() as s:
            obj = model(**data)
            s.add(obj)
            s.flush()
            row = row_to_dict(obj)
    except IntegrityError as e:
        raise StoreError(f"Insert into {table} rejected: {e.orig}") from e
    logger.info("inserted %s id=%s", table, row["id"])
    return row


def update_rows(table: str, values: Mapping[str, Any], filters: Mapping[str, Any]) -> list[dict[str, Any]]:
    """Patch every row matching the filters; returns the affected rows."""
    if not filters:
        raise StoreError("Update requires at least one filter.")
    model = _model(table)
    data = _coerce_all(model, {k: v for k, v in values.items() if k not in READ_ONLY_COLUMNS | {"id"}})
    try:
        with db_session() as s:
            objs = list(s.scalars(select(model).where(*_where(model, filters))))
            for obj in objs:
                for k, v in data.items():
                    setattr(obj, k, v)
            s.flush()
            rows = [row_to_dict(obj) for obj in objs]
    except IntegrityError as e:
        raise StoreError(f"Update of {table} rejected: {e.orig}") from e
    logger.info("updated %s: %d row(s) matching %s", table, len(rows), dict(filters))
    return rows
