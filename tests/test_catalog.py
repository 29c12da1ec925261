import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from school_inventory.core.choices import EquipmentState, HistoryAction
from school_inventory.core.errors import InvalidStateError, NotFoundError, ValidationError
from school_inventory.crud.directory import create_category, create_teacher
from school_inventory.crud.equipment import (
    adjust_availability,
    alert_low_stock,
    count_by_state,
    create_equipment,
    delete_equipment,
    list_equipment,
    report_low_stock,
    reserve_units,
    update_equipment,
)
from school_inventory.db.session import Base
from school_inventory.models.history import HistoryEntry
from school_inventory.services.ledger import record_loan

# Ensure models are imported so metadata is populated
import school_inventory.models  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _history(db, equipment_id):
    stmt = select(HistoryEntry).where(HistoryEntry.equipment_id == equipment_id).order_by(HistoryEntry.id)
    return list(db.execute(stmt).scalars().unique().all())


def test_create_defaults_availability_to_quantity_and_logs_history(db_session):
    item = create_equipment(db_session, {"name": "  Projector ", "quantity": 4}, actor_id="u1")

    assert item.name == "Projector"
    assert item.available_quantity == 4
    assert item.state is EquipmentState.AVAILABLE
    assert item.created_by == "u1"

    entries = _history(db_session, item.id)
    assert [entry.action for entry in entries] == [HistoryAction.CREATE]
    assert entries[0].new_values["name"] == "Projector"
    assert entries[0].new_values["state"] == "available"
    assert entries[0].changed_by == "u1"


def test_create_treats_null_counts_as_omitted(db_session):
    item = create_equipment(db_session, {"name": "Tablet", "quantity": 6, "available_quantity": None})

    assert item.available_quantity == 6


def test_create_rejects_availability_above_quantity(db_session):
    with pytest.raises(ValidationError):
        create_equipment(db_session, {"name": "Tablet", "quantity": 2, "available_quantity": 3})


def test_create_rejects_unknown_category(db_session):
    with pytest.raises(NotFoundError):
        create_equipment(db_session, {"name": "Tablet", "quantity": 2, "category_id": 99})


def test_adjust_availability_clamps_to_bounds(db_session):
    item = create_equipment(db_session, {"name": "Laptop", "quantity": 10, "available_quantity": 3})

    drained = adjust_availability(db_session, item.id, -10)
    assert drained.available_quantity == 0

    refilled = adjust_availability(db_session, item.id, 25)
    assert refilled.available_quantity == 10
    assert refilled.loaned_quantity == 0


def test_adjust_availability_logs_update_entry(db_session):
    item = create_equipment(db_session, {"name": "Laptop", "quantity": 10, "available_quantity": 3}, actor_id="u1")

    adjust_availability(db_session, item.id, 4, actor_id="coordinator")
    adjust_availability(db_session, item.id, 5, actor_id="coordinator")
    adjust_availability(db_session, item.id, 1, actor_id="coordinator")

    entries = _history(db_session, item.id)
    assert [entry.action for entry in entries] == [HistoryAction.CREATE, HistoryAction.UPDATE, HistoryAction.UPDATE]
    assert entries[1].old_values == {"available_quantity": 3}
    assert entries[1].new_values == {"available_quantity": 7}
    assert entries[1].changed_by == "coordinator"
    assert entries[2].old_values == {"available_quantity": 7}
    assert entries[2].new_values == {"available_quantity": 10}


def test_adjust_availability_unknown_equipment(db_session):
    with pytest.raises(NotFoundError):
        adjust_availability(db_session, 404, 1)


def test_reserve_units_refuses_to_overdraw(db_session):
    item = create_equipment(db_session, {"name": "Camera", "quantity": 5, "available_quantity": 2})

    assert reserve_units(db_session, item.id, 3) is False
    db_session.rollback()
    assert reserve_units(db_session, item.id, 2) is True
    db_session.commit()

    db_session.refresh(item)
    assert item.available_quantity == 0


def test_update_quantity_shifts_availability(db_session):
    item = create_equipment(db_session, {"name": "Speaker", "quantity": 10, "available_quantity": 7})

    grown = update_equipment(db_session, item, {"quantity": 12}, actor_id="u2")
    assert grown.available_quantity == 9

    shrunk = update_equipment(db_session, grown, {"quantity": 1}, actor_id="u2")
    assert shrunk.quantity == 1
    assert shrunk.available_quantity == 0

    updates = [entry for entry in _history(db_session, item.id) if entry.action == HistoryAction.UPDATE]
    assert len(updates) == 2
    assert updates[0].old_values == {"quantity": 10, "available_quantity": 7}
    assert updates[0].new_values == {"quantity": 12, "available_quantity": 9}


def test_update_without_changes_writes_no_history(db_session):
    item = create_equipment(db_session, {"name": "Router", "quantity": 1})

    update_equipment(db_session, item, {"name": "Router"})

    assert [entry.action for entry in _history(db_session, item.id)] == [HistoryAction.CREATE]


def test_update_rejects_unknown_state(db_session):
    item = create_equipment(db_session, {"name": "Router", "quantity": 1})

    with pytest.raises(ValidationError):
        update_equipment(db_session, item, {"state": "lost"})


def test_low_stock_alert_and_report_semantics(db_session):
    for name, available in [("A", 0), ("B", 2), ("C", 4), ("D", 5), ("E", 8)]:
        create_equipment(db_session, {"name": name, "quantity": 10, "available_quantity": available})

    assert [item.name for item in alert_low_stock(db_session, 5)] == ["B", "C"]
    assert [item.name for item in report_low_stock(db_session, 5)] == ["A", "B", "C"]


def test_list_equipment_filters(db_session):
    category = create_category(db_session, {"name": "Audio"})
    create_equipment(db_session, {"name": "Mic", "brand": "Shure", "quantity": 2, "category_id": category.id})
    create_equipment(db_session, {"name": "Cable", "quantity": 3, "available_quantity": 0})
    create_equipment(db_session, {"name": "Old PC", "quantity": 1, "state": "decommissioned"})

    assert [item.name for item in list_equipment(db_session, search="shure")] == ["Mic"]
    assert [item.name for item in list_equipment(db_session, category_id=category.id)] == ["Mic"]
    assert [item.name for item in list_equipment(db_session, available_only=True)] == ["Mic"]
    assert [item.name for item in list_equipment(db_session, state="decommissioned")] == ["Old PC"]
    assert list_equipment(db_session, search="shure")[0].category_name == "Audio"


def test_count_by_state_includes_every_state(db_session):
    create_equipment(db_session, {"name": "A", "quantity": 1})
    create_equipment(db_session, {"name": "B", "quantity": 1, "state": "damaged"})

    counts = count_by_state(db_session)

    assert counts["available"] == 1
    assert counts["damaged"] == 1
    assert counts["maintenance"] == 0


def test_delete_equipment_keeps_history_trail(db_session):
    item = create_equipment(db_session, {"name": "Scanner", "quantity": 1})
    equipment_id = item.id

    delete_equipment(db_session, item, actor_id="admin")

    entries = _history(db_session, equipment_id)
    assert [entry.action for entry in entries] == [HistoryAction.CREATE, HistoryAction.DELETE]
    assert entries[-1].old_values["name"] == "Scanner"
    assert entries[-1].equipment_name == "Scanner"


def test_delete_equipment_refuses_when_loaned(db_session):
    teacher = create_teacher(db_session, {"full_name": "Ana Torres"})
    item = create_equipment(db_session, {"name": "Tablet", "quantity": 3})
    record_loan(
        db_session,
        equipment_id=item.id,
        teacher_id=teacher.id,
        quantity=1,
        scheduled_return_date="2030-01-01",
        actor_id="u1",
    )

    with pytest.raises(InvalidStateError):
        delete_equipment(db_session, item)


def test_duplicate_teacher_dni_is_rejected(db_session):
    create_teacher(db_session, {"full_name": "Ana Torres", "dni": "12345678"})

    with pytest.raises(ValidationError):
        create_teacher(db_session, {"full_name": "Other", "dni": "12345678"})
