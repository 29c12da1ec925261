"""Movement ledger: loans, returns and equipment registry reports.

Each operation runs its primary effects in one transaction:

* ``record_loan``: reserve units, insert the movement, log ``loan``.
* ``record_return``: flip the movement to ``completed``, credit the units
  back, log ``return``.
* ``record_registry_event``: insert the report, log ``registry``.

The history append runs in a SAVEPOINT and the notification runs after the
commit. Both are secondary effects: their failures are logged and never undo
the movement.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import and_, desc, select, update
from sqlalchemy.orm import Session

from ..core import clock
from ..core.choices import (
    EquipmentState,
    HistoryAction,
    MovementStatus,
    MovementType,
    RegistryReason,
    RegistryStatus,
    coerce_choice,
)
from ..core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from ..crud.equipment import adjust_availability, reserve_units
from ..crud.history import append_history_quietly
from ..db.session import commit_or_raise
from ..models.directory import Classroom, Teacher
from ..models.equipment import Equipment
from ..models.movement import Movement
from ..models.registry import EquipmentRegistryEntry
from .notifications import NotificationDispatcher, NotificationService

logger = logging.getLogger(__name__)


def _choice(enum_cls, value, field):
    try:
        return coerce_choice(enum_cls, value, field)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _date(value: Any, field: str) -> str:
    try:
        return clock.normalize_date(value, field)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc


def _notify_quietly(notifier: NotificationDispatcher | None, db: Session, *args: str) -> None:
    """Fire the loan/return notification; never let it fail the caller."""

    try:
        (notifier or NotificationService(db)).notify_equipment_loan(*args)
    except Exception:
        db.rollback()
        logger.warning("ledger.notify_failed", exc_info=True, extra={"extra_data": {"action": args[-1]}})


# --------------------------------------------------------------------- loans


def record_loan(
    db: Session,
    *,
    equipment_id: int | None,
    teacher_id: int | None,
    quantity: int,
    scheduled_return_date: Any,
    actor_id: str | None,
    classroom_id: int | None = None,
    description: str | None = None,
    movement_type: MovementType | str = MovementType.ASSIGNMENT,
    notifier: NotificationDispatcher | None = None,
) -> Movement:
    """Lend ``quantity`` units of an equipment row to a teacher.

    Raises ``ValidationError`` for missing fields, ``NotFoundError`` for
    unknown teacher/classroom/equipment, ``InvalidStateError`` when an
    assignment targets equipment that is not ``available`` and
    ``InsufficientStockError`` when it asks for more than is on the shelf.
    Nothing is written in any of those cases.

    A ``return``-type movement registers units coming back without a prior
    loan: availability is credited (clamped at ``quantity``) and the movement
    is stored as ``completed``.
    """

    if not equipment_id or not teacher_id or not scheduled_return_date:
        raise ValidationError("equipment_id, teacher_id and scheduled_return_date are required")
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity must be a positive integer")
    return_date = _date(scheduled_return_date, "scheduled_return_date")
    kind = _choice(MovementType, movement_type, "movement_type")

    teacher = db.get(Teacher, teacher_id)
    if teacher is None:
        raise NotFoundError(f"Teacher {teacher_id} not found")
    if classroom_id is not None and db.get(Classroom, classroom_id) is None:
        raise NotFoundError(f"Classroom {classroom_id} not found")
    equipment = db.get(Equipment, equipment_id)
    if equipment is None:
        raise NotFoundError(f"Equipment {equipment_id} not found")

    if kind is MovementType.ASSIGNMENT:
        if equipment.state != EquipmentState.AVAILABLE:
            raise InvalidStateError(
                f"Equipment {equipment_id} is {equipment.state.value} and cannot be lent",
                details={"state": equipment.state.value},
            )
        if not reserve_units(db, equipment_id, quantity):
            db.rollback()
            current = db.get(Equipment, equipment_id, populate_existing=True)
            raise InsufficientStockError(quantity, current.available_quantity if current else 0)
        status, returned_on = MovementStatus.ACTIVE, None
    else:
        adjust_availability(db, equipment_id, quantity, commit=False)
        status, returned_on = MovementStatus.COMPLETED, clock.today().isoformat()

    movement = Movement(
        equipment_id=equipment_id,
        teacher_id=teacher_id,
        classroom_id=classroom_id,
        movement_type=kind,
        quantity=quantity,
        description=(description or "").strip() or None,
        scheduled_return_date=return_date,
        actual_return_date=returned_on,
        status=status,
        created_by=actor_id,
        created_at=clock.utcnow_iso(),
    )
    db.add(movement)
    db.flush()
    append_history_quietly(
        db,
        equipment_id=equipment_id,
        action=HistoryAction.LOAN,
        new_values={
            "movement_id": movement.id,
            "movement_type": kind,
            "quantity": quantity,
            "teacher_id": teacher_id,
            "scheduled_return_date": return_date,
        },
        changed_by=actor_id,
    )
    commit_or_raise(db)
    db.refresh(movement)
    logger.info(
        "ledger.loan_recorded",
        extra={
            "extra_data": {
                "movement_id": movement.id,
                "equipment_id": equipment_id,
                "quantity": quantity,
                "movement_type": kind.value,
            }
        },
    )

    action = "loan" if kind is MovementType.ASSIGNMENT else "return"
    _notify_quietly(notifier, db, movement.equipment.name, teacher.full_name, action)
    return movement


def record_return(
    db: Session,
    movement_id: int,
    *,
    actor_id: str | None,
    notifier: NotificationDispatcher | None = None,
    today: date | None = None,
) -> Movement:
    """Close an active loan and put its units back on the shelf.

    Returning a movement twice raises ``InvalidStateError`` and credits
    nothing: the status flip is conditional on ``status == active``, so of
    two concurrent returns only one wins.
    """

    movement = db.get(Movement, movement_id)
    if movement is None:
        raise NotFoundError(f"Movement {movement_id} not found")
    if movement.status != MovementStatus.ACTIVE:
        raise InvalidStateError(f"Movement {movement_id} is not active")

    returned_on = (today or clock.today()).isoformat()
    flipped = db.execute(
        update(Movement)
        .where(Movement.id == movement_id, Movement.status == MovementStatus.ACTIVE)
        .values(status=MovementStatus.COMPLETED, actual_return_date=returned_on)
        .execution_options(synchronize_session=False)
    ).rowcount
    if flipped != 1:
        db.rollback()
        raise InvalidStateError(f"Movement {movement_id} is not active")

    adjust_availability(db, movement.equipment_id, movement.quantity, commit=False)
    append_history_quietly(
        db,
        equipment_id=movement.equipment_id,
        action=HistoryAction.RETURN,
        new_values={"movement_id": movement_id, "actual_return_date": returned_on},
        changed_by=actor_id,
    )
    commit_or_raise(db)
    movement = db.get(Movement, movement_id, populate_existing=True)
    logger.info(
        "ledger.return_recorded",
        extra={"extra_data": {"movement_id": movement_id, "equipment_id": movement.equipment_id}},
    )

    _notify_quietly(notifier, db, movement.equipment.name, movement.teacher.full_name, "return")
    return movement


def delete_movement(db: Session, movement: Movement) -> None:
    """Hard delete. Availability is NOT restored and no history is written."""

    if movement.status == MovementStatus.ACTIVE:
        logger.warning(
            "ledger.active_movement_deleted",
            extra={
                "extra_data": {
                    "movement_id": movement.id,
                    "equipment_id": movement.equipment_id,
                    "quantity": movement.quantity,
                }
            },
        )
    db.delete(movement)
    commit_or_raise(db)


def get_movement(db: Session, movement_id: int) -> Movement | None:
    return db.get(Movement, movement_id)


def list_movements(
    db: Session,
    *,
    status: MovementStatus | str | None = None,
    teacher_id: int | None = None,
    equipment_id: int | None = None,
    today: date | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[Movement]:
    """Newest first. ``status="overdue"`` selects active loans past due."""

    stmt = select(Movement)
    if status:
        wanted = _choice(MovementStatus, status, "status")
        reference = (today or clock.today()).isoformat()
        overdue = and_(Movement.status == MovementStatus.ACTIVE, Movement.scheduled_return_date < reference)
        if wanted is MovementStatus.OVERDUE:
            stmt = stmt.where(overdue)
        elif wanted is MovementStatus.ACTIVE:
            stmt = stmt.where(Movement.status == MovementStatus.ACTIVE, Movement.scheduled_return_date >= reference)
        else:
            stmt = stmt.where(Movement.status == wanted)
    if teacher_id is not None:
        stmt = stmt.where(Movement.teacher_id == teacher_id)
    if equipment_id is not None:
        stmt = stmt.where(Movement.equipment_id == equipment_id)
    stmt = stmt.order_by(desc(Movement.created_at), desc(Movement.id)).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().unique().all())


# ------------------------------------------------------------------ registry


def record_registry_event(
    db: Session,
    *,
    equipment_id: int | None,
    reason: RegistryReason | str,
    description: str | None,
    reporter_id: str | None,
    date_occurred: Any = None,
    status: RegistryStatus | str = RegistryStatus.PENDING,
) -> EquipmentRegistryEntry:
    """File a damage/maintenance/decommission report.

    Purely informational: the equipment's ``state`` and availability are left
    untouched.
    """

    if not equipment_id or not (description or "").strip():
        raise ValidationError("equipment_id and description are required")
    reason_value = _choice(RegistryReason, reason, "reason")
    status_value = _choice(RegistryStatus, status, "status")
    occurred = _date(date_occurred, "date_occurred") if date_occurred else clock.today().isoformat()
    if db.get(Equipment, equipment_id) is None:
        raise NotFoundError(f"Equipment {equipment_id} not found")

    now = clock.utcnow_iso()
    entry = EquipmentRegistryEntry(
        equipment_id=equipment_id,
        reason=reason_value,
        description=description.strip(),
        date_occurred=occurred,
        reported_by=reporter_id,
        status=status_value,
        created_at=now,
        updated_at=now,
    )
    db.add(entry)
    db.flush()
    append_history_quietly(
        db,
        equipment_id=equipment_id,
        action=HistoryAction.REGISTRY,
        new_values={
            "registry_id": entry.id,
            "reason": reason_value,
            "description": entry.description,
            "status": status_value,
        },
        changed_by=reporter_id,
    )
    commit_or_raise(db)
    db.refresh(entry)
    return entry


def update_registry_status(
    db: Session,
    entry: EquipmentRegistryEntry,
    status: RegistryStatus | str,
    actor_id: str | None = None,
) -> EquipmentRegistryEntry:
    new_status = _choice(RegistryStatus, status, "status")
    if entry.status == new_status:
        return entry
    previous = entry.status
    entry.status = new_status
    entry.updated_at = clock.utcnow_iso()
    append_history_quietly(
        db,
        equipment_id=entry.equipment_id,
        action=HistoryAction.REGISTRY,
        old_values={"registry_id": entry.id, "status": previous},
        new_values={"registry_id": entry.id, "status": new_status},
        changed_by=actor_id,
    )
    commit_or_raise(db)
    db.refresh(entry)
    return entry


def delete_registry_entry(db: Session, entry: EquipmentRegistryEntry) -> None:
    db.delete(entry)
    commit_or_raise(db)


def get_registry_entry(db: Session, entry_id: int) -> EquipmentRegistryEntry | None:
    return db.get(EquipmentRegistryEntry, entry_id)


def list_registry_entries(
    db: Session,
    *,
    reason: RegistryReason | str | None = None,
    status: RegistryStatus | str | None = None,
    equipment_id: int | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[EquipmentRegistryEntry]:
    stmt = select(EquipmentRegistryEntry)
    if reason:
        stmt = stmt.where(EquipmentRegistryEntry.reason == _choice(RegistryReason, reason, "reason"))
    if status:
        stmt = stmt.where(EquipmentRegistryEntry.status == _choice(RegistryStatus, status, "status"))
    if equipment_id is not None:
        stmt = stmt.where(EquipmentRegistryEntry.equipment_id == equipment_id)
    stmt = stmt.order_by(desc(EquipmentRegistryEntry.created_at), desc(EquipmentRegistryEntry.id))
    return list(db.execute(stmt.limit(limit).offset(offset)).scalars().unique().all())


__all__ = [
    "delete_movement",
    "delete_registry_entry",
    "get_movement",
    "get_registry_entry",
    "list_movements",
    "list_registry_entries",
    "record_loan",
    "record_registry_event",
    "record_return",
    "update_registry_status",
]
