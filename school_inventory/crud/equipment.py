"""Equipment catalog: the authoritative stock and availability of each device.

``available_quantity`` is the only counter several callers race on (loans,
returns, manual corrections). Every change to it goes through a single
conditional ``UPDATE`` so the database does the arithmetic. There is no
read-modify-write in Python, so two concurrent loans cannot both spend the
same unit.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import case, func, or_, select, update
from sqlalchemy.orm import Session

from ..core import clock
from ..core.choices import EquipmentState, HistoryAction, coerce_choice
from ..core.errors import InvalidStateError, NotFoundError, ValidationError
from ..db.session import commit_or_raise
from ..models.equipment import Category, Equipment
from ..models.movement import Movement
from ..models.registry import EquipmentRegistryEntry
from .history import append_history

EDITABLE_FIELDS = (
    "name",
    "description",
    "brand",
    "model",
    "serial_number",
    "quantity",
    "available_quantity",
    "state",
    "category_id",
    "purchase_date",
    "warranty_expiration",
)
DATE_FIELDS = ("purchase_date", "warranty_expiration")
TEXT_FIELDS = ("name", "description", "brand", "model", "serial_number")


def _snapshot(item: Equipment, fields: tuple[str, ...] | list[str] = EDITABLE_FIELDS) -> dict[str, Any]:
    return {field: getattr(item, field) for field in fields}


def _int_field(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer") from None
    if number < 0:
        raise ValidationError(f"{field} cannot be negative")
    return number


def _clean_payload(db: Session, payload: dict) -> dict[str, Any]:
    """Normalise user input: trim text, coerce enums and dates, verify category."""

    data: dict[str, Any] = {}
    for key, value in payload.items():
        if key not in EDITABLE_FIELDS:
            continue
        if key in TEXT_FIELDS:
            value = (str(value).strip() or None) if value is not None else None
        elif key in DATE_FIELDS:
            if value in (None, ""):
                value = None
            else:
                try:
                    value = clock.normalize_date(value, key)
                except ValueError as exc:
                    raise ValidationError(str(exc)) from exc
        elif key in ("quantity", "available_quantity"):
            # Omitted counts fall back to the defaults in create/update.
            if value is None:
                continue
            value = _int_field(value, key)
        elif key == "state":
            try:
                value = coerce_choice(EquipmentState, value, "state")
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc
        elif key == "category_id" and value is not None:
            if not db.get(Category, value):
                raise NotFoundError(f"Category {value} not found")
        data[key] = value
    return data


def list_equipment(
    db: Session,
    *,
    state: EquipmentState | str | None = None,
    category_id: int | None = None,
    search: str | None = None,
    available_only: bool = False,
    limit: int = 200,
    offset: int = 0,
) -> list[Equipment]:
    stmt = select(Equipment)
    if state:
        stmt = stmt.where(Equipment.state == coerce_choice(EquipmentState, state, "state"))
    if category_id is not None:
        stmt = stmt.where(Equipment.category_id == category_id)
    if search and search.strip():
        term = f"%{search.strip().lower()}%"
        stmt = stmt.where(
            or_(
                func.lower(Equipment.name).like(term),
                func.lower(func.coalesce(Equipment.brand, "")).like(term),
                func.lower(func.coalesce(Equipment.model, "")).like(term),
                func.lower(func.coalesce(Equipment.serial_number, "")).like(term),
            )
        )
    if available_only:
        # Mirrors the loan form: only shelf-ready devices can be lent.
        stmt = stmt.where(Equipment.state == EquipmentState.AVAILABLE, Equipment.available_quantity > 0)
    stmt = stmt.order_by(Equipment.name, Equipment.id).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().unique().all())


def get_equipment(db: Session, equipment_id: int) -> Equipment | None:
    return db.get(Equipment, equipment_id)


def create_equipment(db: Session, payload: dict, actor_id: str | None = None) -> Equipment:
    """Create a catalog row and log a ``create`` history entry.

    ``available_quantity`` defaults to ``quantity`` (a new batch is fully on
    the shelf) and may never exceed it.
    """

    data = _clean_payload(db, payload)
    if not data.get("name"):
        raise ValidationError("name is required")
    quantity = data.setdefault("quantity", 1)
    if data.get("available_quantity") is None:
        data["available_quantity"] = quantity
    if data["available_quantity"] > quantity:
        raise ValidationError("available_quantity cannot exceed quantity")
    data.setdefault("state", EquipmentState.AVAILABLE)

    now = clock.utcnow_iso()
    item = Equipment(**data, created_by=actor_id, created_at=now, updated_at=now)
    db.add(item)
    db.flush()
    append_history(
        db,
        equipment_id=item.id,
        action=HistoryAction.CREATE,
        new_values=_snapshot(item),
        changed_by=actor_id,
    )
    commit_or_raise(db)
    db.refresh(item)
    return item


def update_equipment(db: Session, item: Equipment, payload: dict, actor_id: str | None = None) -> Equipment:
    """Apply field edits and log the changed fields as an ``update`` entry.

    A ``quantity`` change without an explicit ``available_quantity`` moves
    availability by the same amount, so units currently on loan stay
    accounted for, then clamps it into ``[0, quantity]``.
    """

    data = _clean_payload(db, payload)
    if "name" in data and not data["name"]:
        raise ValidationError("name cannot be empty")

    new_quantity = data.get("quantity", item.quantity)
    if "available_quantity" in data and data["available_quantity"] is not None:
        if data["available_quantity"] > new_quantity:
            raise ValidationError("available_quantity cannot exceed quantity")
    elif new_quantity != item.quantity:
        shifted = item.available_quantity + (new_quantity - item.quantity)
        data["available_quantity"] = max(0, min(shifted, new_quantity))
    else:
        data.pop("available_quantity", None)

    changed = [key for key, value in data.items() if getattr(item, key) != value]
    if not changed:
        return item

    before = _snapshot(item, changed)
    for key in changed:
        setattr(item, key, data[key])
    item.updated_at = clock.utcnow_iso()
    append_history(
        db,
        equipment_id=item.id,
        action=HistoryAction.UPDATE,
        old_values=before,
        new_values=_snapshot(item, changed),
        changed_by=actor_id,
    )
    commit_or_raise(db)
    db.refresh(item)
    return item


def delete_equipment(db: Session, item: Equipment, actor_id: str | None = None) -> None:
    """Remove a catalog row, keeping a ``delete`` entry with its last values.

    Rows still referenced by movements or registry reports are kept.
    """

    referenced = db.execute(select(Movement.id).where(Movement.equipment_id == item.id).limit(1)).first()
    reported = db.execute(
        select(EquipmentRegistryEntry.id).where(EquipmentRegistryEntry.equipment_id == item.id).limit(1)
    ).first()
    if referenced or reported:
        raise InvalidStateError(f"Equipment {item.id} is referenced by movements or registry entries")
    append_history(
        db,
        equipment_id=item.id,
        action=HistoryAction.DELETE,
        old_values=_snapshot(item),
        changed_by=actor_id,
    )
    db.delete(item)
    commit_or_raise(db)


def clamped_availability(delta: int):
    """SQL expression for ``clamp(available_quantity + delta, 0, quantity)``."""

    target = Equipment.available_quantity + delta
    return case(
        (target < 0, 0),
        (target > Equipment.quantity, Equipment.quantity),
        else_=target,
    )


def adjust_availability(
    db: Session,
    equipment_id: int,
    delta: int,
    *,
    actor_id: str | None = None,
    commit: bool = True,
) -> Equipment:
    """Shift availability by ``delta`` and return the refreshed row.

    Over-adjustment is absorbed by the clamp: ``-10`` on 3 available yields 0
    and crediting past ``quantity`` stops at ``quantity``. A committed
    adjustment that moves the counter logs an ``update`` entry with the old
    and new ``available_quantity``. Pass ``commit=False`` to stage the change
    inside a larger transaction; the caller then owns the history entry.
    """

    before = db.execute(select(Equipment.available_quantity).where(Equipment.id == equipment_id)).scalar()
    stmt = (
        update(Equipment)
        .where(Equipment.id == equipment_id)
        .values(available_quantity=clamped_availability(delta), updated_at=clock.utcnow_iso())
        .execution_options(synchronize_session=False)
    )
    result = db.execute(stmt)
    if result.rowcount == 0:
        db.rollback()
        raise NotFoundError(f"Equipment {equipment_id} not found")
    item = db.get(Equipment, equipment_id, populate_existing=True)
    if commit:
        if item.available_quantity != before:
            append_history(
                db,
                equipment_id=equipment_id,
                action=HistoryAction.UPDATE,
                old_values={"available_quantity": before},
                new_values={"available_quantity": item.available_quantity},
                changed_by=actor_id,
            )
        commit_or_raise(db)
        db.refresh(item)
    return item


def reserve_units(db: Session, equipment_id: int, quantity: int) -> bool:
    """Take ``quantity`` units off the shelf only if that many are available.

    Returns ``False`` (and changes nothing) when stock is short or the row is
    missing. Does not commit.
    """

    stmt = (
        update(Equipment)
        .where(Equipment.id == equipment_id, Equipment.available_quantity >= quantity)
        .values(available_quantity=Equipment.available_quantity - quantity, updated_at=clock.utcnow_iso())
        .execution_options(synchronize_session=False)
    )
    return db.execute(stmt).rowcount == 1


def list_low_stock(db: Session, threshold: int, *, include_depleted: bool = False) -> list[Equipment]:
    stmt = select(Equipment).where(Equipment.available_quantity < threshold)
    if not include_depleted:
        stmt = stmt.where(Equipment.available_quantity > 0)
    stmt = stmt.order_by(Equipment.available_quantity, Equipment.name)
    return list(db.execute(stmt).scalars().unique().all())


def alert_low_stock(db: Session, threshold: int) -> list[Equipment]:
    """Rows worth an alert: ``0 < available_quantity < threshold``."""

    return list_low_stock(db, threshold)


def report_low_stock(db: Session, threshold: int) -> list[Equipment]:
    """Rows for the low-stock report, depleted ones included."""

    return list_low_stock(db, threshold, include_depleted=True)


def count_by_state(db: Session) -> dict[str, int]:
    stmt = select(Equipment.state, func.count()).group_by(Equipment.state)
    counts = {state.value: 0 for state in EquipmentState}
    for state, total in db.execute(stmt).all():
        counts[EquipmentState(state).value] = int(total)
    return counts

