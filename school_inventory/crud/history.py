"""Append-only audit trail for equipment changes."""

from __future__ import annotations

import logging
from datetime import date, datetime
from enum import Enum
from typing import Any, Mapping

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core import clock
from ..core.choices import HistoryAction
from ..models.history import HistoryEntry

logger = logging.getLogger(__name__)


def _jsonable(values: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Copy a snapshot into plain JSON types (enums to values, dates to ISO)."""

    if values is None:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, Enum):
            value = value.value
        elif isinstance(value, (date, datetime)):
            value = value.isoformat()
        cleaned[key] = value
    return cleaned


def append_history(
    db: Session,
    *,
    equipment_id: int | None,
    action: HistoryAction,
    changed_by: str | None,
    old_values: Mapping[str, Any] | None = None,
    new_values: Mapping[str, Any] | None = None,
) -> HistoryEntry:
    """Stage a history row in the current transaction. The caller commits."""

    entry = HistoryEntry(
        equipment_id=equipment_id,
        action=action,
        old_values=_jsonable(old_values),
        new_values=_jsonable(new_values),
        changed_by=changed_by,
        created_at=clock.utcnow_iso(),
    )
    db.add(entry)
    db.flush()
    return entry


def append_history_quietly(db: Session, **kwargs: Any) -> HistoryEntry | None:
    """Append a history row inside a SAVEPOINT, logging instead of raising.

    The audit trail is a secondary effect: losing one entry must not undo the
    loan, return or report that triggered it.
    """

    try:
        with db.begin_nested():
            return append_history(db, **kwargs)
    except SQLAlchemyError:
        logger.exception(
            "history.append_failed",
            extra={"extra_data": {"equipment_id": kwargs.get("equipment_id"), "action": str(kwargs.get("action"))}},
        )
        return None


def list_history(
    db: Session,
    *,
    equipment_id: int | None = None,
    action: HistoryAction | None = None,
    start: str | None = None,
    end: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[HistoryEntry]:
    """Newest first. ``start``/``end`` are compared against ``created_at`` text."""

    stmt = select(HistoryEntry)
    if equipment_id is not None:
        stmt = stmt.where(HistoryEntry.equipment_id == equipment_id)
    if action is not None:
        stmt = stmt.where(HistoryEntry.action == action)
    if start:
        stmt = stmt.where(HistoryEntry.created_at >= start)
    if end:
        stmt = stmt.where(HistoryEntry.created_at <= end)
    stmt = stmt.order_by(desc(HistoryEntry.created_at), desc(HistoryEntry.id)).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().unique().all())


__all__ = ["append_history", "append_history_quietly", "list_history"]
