import os
import sys
from datetime import date
from pathlib import Path

import pytest
from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DB_URL", "sqlite://")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

from school_inventory.core.choices import EquipmentState, HistoryAction, MovementStatus, RegistryStatus
from school_inventory.core.errors import (
    InsufficientStockError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from school_inventory.crud import history as history_crud
from school_inventory.crud.directory import create_classroom, create_teacher
from school_inventory.crud.equipment import create_equipment, get_equipment
from school_inventory.db.session import Base
from school_inventory.models.history import HistoryEntry
from school_inventory.models.movement import Movement
from school_inventory.services import ledger

import school_inventory.models  # noqa: F401

TODAY = date(2025, 3, 10)


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.calls = []
        self.fail = fail

    def notify_equipment_loan(self, equipment_name, teacher_name, action):
        self.calls.append((equipment_name, teacher_name, action))
        if self.fail:
            raise RuntimeError("mail server down")


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


@pytest.fixture()
def teacher(db_session):
    return create_teacher(db_session, {"full_name": "Ana Torres", "dni": "40111222"})


def _equipment(db, quantity=10, available=None, name="Laptop"):
    payload = {"name": name, "quantity": quantity}
    if available is not None:
        payload["available_quantity"] = available
    return create_equipment(db, payload, actor_id="setup")


def _loan(db, equipment, teacher, quantity, **kwargs):
    kwargs.setdefault("scheduled_return_date", "2030-01-01")
    kwargs.setdefault("actor_id", "u1")
    kwargs.setdefault("notifier", RecordingNotifier())
    return ledger.record_loan(
        db,
        equipment_id=equipment.id,
        teacher_id=teacher.id,
        quantity=quantity,
        **kwargs,
    )


def _actions(db, equipment_id):
    stmt = select(HistoryEntry.action).where(HistoryEntry.equipment_id == equipment_id).order_by(HistoryEntry.id)
    return list(db.execute(stmt).scalars().all())


def test_loan_then_return_restores_availability(db_session, teacher):
    item = _equipment(db_session, quantity=10)
    notifier = RecordingNotifier()

    movement = _loan(db_session, item, teacher, 3, notifier=notifier)

    assert movement.status is MovementStatus.ACTIVE
    assert movement.quantity == 3
    assert movement.created_by == "u1"
    assert get_equipment(db_session, item.id).available_quantity == 7
    assert _actions(db_session, item.id).count(HistoryAction.LOAN) == 1
    assert notifier.calls == [("Laptop", "Ana Torres", "loan")]

    returned = ledger.record_return(db_session, movement.id, actor_id="u2", notifier=notifier, today=TODAY)

    assert returned.status is MovementStatus.COMPLETED
    assert returned.actual_return_date == "2025-03-10"
    assert get_equipment(db_session, item.id).available_quantity == 10
    assert _actions(db_session, item.id)[-1] == HistoryAction.RETURN
    assert notifier.calls[-1] == ("Laptop", "Ana Torres", "return")


def test_loan_above_availability_changes_nothing(db_session, teacher):
    item = _equipment(db_session, quantity=5, available=2)

    with pytest.raises(InsufficientStockError) as excinfo:
        _loan(db_session, item, teacher, 5)

    assert excinfo.value.requested == 5
    assert excinfo.value.available == 2
    assert excinfo.value.details == {"requested": 5, "available": 2}
    assert get_equipment(db_session, item.id).available_quantity == 2
    assert db_session.execute(select(Movement)).first() is None
    assert HistoryAction.LOAN not in _actions(db_session, item.id)


@pytest.mark.parametrize("state", ["maintenance", "decommissioned"])
def test_loan_of_unavailable_equipment_is_rejected(db_session, teacher, state):
    item = create_equipment(db_session, {"name": "Projector", "quantity": 3, "state": state}, actor_id="setup")
    notifier = RecordingNotifier()

    with pytest.raises(InvalidStateError) as excinfo:
        _loan(db_session, item, teacher, 1, notifier=notifier)

    assert excinfo.value.details == {"state": state}
    assert get_equipment(db_session, item.id).available_quantity == 3
    assert db_session.execute(select(Movement)).first() is None
    assert _actions(db_session, item.id) == [HistoryAction.CREATE]
    assert notifier.calls == []


def test_second_return_is_rejected_without_double_credit(db_session, teacher):
    item = _equipment(db_session, quantity=4)
    movement = _loan(db_session, item, teacher, 2)
    ledger.record_return(db_session, movement.id, actor_id="u1", notifier=RecordingNotifier())

    with pytest.raises(InvalidStateError):
        ledger.record_return(db_session, movement.id, actor_id="u1", notifier=RecordingNotifier())

    assert get_equipment(db_session, item.id).available_quantity == 4
    assert _actions(db_session, item.id).count(HistoryAction.RETURN) == 1


def test_invalid_state_is_a_not_found_error(db_session, teacher):
    item = _equipment(db_session, quantity=1)
    movement = _loan(db_session, item, teacher, 1)
    ledger.record_return(db_session, movement.id, actor_id="u1", notifier=RecordingNotifier())

    with pytest.raises(NotFoundError):
        ledger.record_return(db_session, movement.id, actor_id="u1", notifier=RecordingNotifier())


def test_return_unknown_movement(db_session):
    with pytest.raises(NotFoundError):
        ledger.record_return(db_session, 999, actor_id="u1")


@pytest.mark.parametrize(
    "overrides",
    [
        {"quantity": 0},
        {"quantity": -2},
        {"scheduled_return_date": ""},
        {"scheduled_return_date": "next week"},
        {"movement_type": "gift"},
    ],
)
def test_loan_validation(db_session, teacher, overrides):
    item = _equipment(db_session, quantity=3)
    quantity = overrides.pop("quantity", 1)

    with pytest.raises(ValidationError):
        _loan(db_session, item, teacher, quantity, **overrides)

    assert get_equipment(db_session, item.id).available_quantity == 3


def test_loan_requires_existing_references(db_session, teacher):
    item = _equipment(db_session, quantity=3)

    with pytest.raises(NotFoundError):
        ledger.record_loan(
            db_session, equipment_id=item.id, teacher_id=999, quantity=1,
            scheduled_return_date="2030-01-01", actor_id="u1",
        )
    with pytest.raises(NotFoundError):
        ledger.record_loan(
            db_session, equipment_id=999, teacher_id=teacher.id, quantity=1,
            scheduled_return_date="2030-01-01", actor_id="u1",
        )
    with pytest.raises(NotFoundError):
        _loan(db_session, item, teacher, 1, classroom_id=999)


def test_loan_keeps_classroom_and_description(db_session, teacher):
    classroom = create_classroom(db_session, {"name": "Lab 2", "location": "Block B"})
    item = _equipment(db_session, quantity=3)

    movement = _loan(db_session, item, teacher, 1, classroom_id=classroom.id, description="  science fair ")

    assert movement.classroom_name == "Lab 2"
    assert movement.description == "science fair"
    assert movement.equipment_name == "Laptop"
    assert movement.teacher_name == "Ana Torres"


def test_return_type_movement_credits_with_clamp(db_session, teacher):
    item = _equipment(db_session, quantity=10, available=8)

    movement = _loan(db_session, item, teacher, 5, movement_type="return")

    assert movement.status is MovementStatus.COMPLETED
    assert movement.actual_return_date is not None
    assert get_equipment(db_session, item.id).available_quantity == 10


def test_notification_failure_does_not_undo_loan(db_session, teacher):
    item = _equipment(db_session, quantity=3)
    notifier = RecordingNotifier(fail=True)

    movement = _loan(db_session, item, teacher, 2, notifier=notifier)

    assert notifier.calls
    assert db_session.get(Movement, movement.id).status is MovementStatus.ACTIVE
    assert get_equipment(db_session, item.id).available_quantity == 1


def test_history_failure_does_not_undo_loan(db_session, teacher, monkeypatch):
    item = _equipment(db_session, quantity=3)

    def broken_append(*args, **kwargs):
        raise SQLAlchemyError("history table locked")

    monkeypatch.setattr(history_crud, "append_history", broken_append)

    movement = _loan(db_session, item, teacher, 1)

    assert db_session.get(Movement, movement.id) is not None
    assert get_equipment(db_session, item.id).available_quantity == 2
    assert HistoryAction.LOAN not in _actions(db_session, item.id)


def test_overdue_is_computed_not_stored(db_session, teacher):
    item = _equipment(db_session, quantity=5)
    late = _loan(db_session, item, teacher, 1, scheduled_return_date="2025-03-01")
    on_time = _loan(db_session, item, teacher, 1, scheduled_return_date="2025-04-01")
    done = _loan(db_session, item, teacher, 1, scheduled_return_date="2025-02-01")
    ledger.record_return(db_session, done.id, actor_id="u1", notifier=RecordingNotifier(), today=TODAY)

    assert late.status is MovementStatus.ACTIVE
    assert late.effective_status(TODAY) is MovementStatus.OVERDUE
    assert on_time.effective_status(TODAY) is MovementStatus.ACTIVE

    overdue = ledger.list_movements(db_session, status="overdue", today=TODAY)
    active = ledger.list_movements(db_session, status=MovementStatus.ACTIVE, today=TODAY)
    completed = ledger.list_movements(db_session, status="completed", today=TODAY)

    assert [m.id for m in overdue] == [late.id]
    assert [m.id for m in active] == [on_time.id]
    assert [m.id for m in completed] == [done.id]


def test_delete_active_movement_does_not_restore_availability(db_session, teacher):
    item = _equipment(db_session, quantity=3)
    movement = _loan(db_session, item, teacher, 2)
    before = _actions(db_session, item.id)

    ledger.delete_movement(db_session, movement)

    assert ledger.get_movement(db_session, movement.id) is None
    assert get_equipment(db_session, item.id).available_quantity == 1
    assert _actions(db_session, item.id) == before


def test_registry_event_leaves_equipment_untouched(db_session):
    item = _equipment(db_session, quantity=2)

    entry = ledger.record_registry_event(
        db_session,
        equipment_id=item.id,
        reason="malfunction",
        description="Screen flickers",
        reporter_id="tech-1",
        date_occurred="2025-03-09",
    )

    assert entry.status is RegistryStatus.PENDING
    assert entry.date_occurred == "2025-03-09"
    assert entry.equipment_name == "Laptop"
    refreshed = get_equipment(db_session, item.id)
    assert refreshed.state is EquipmentState.AVAILABLE
    assert refreshed.available_quantity == 2
    assert _actions(db_session, item.id)[-1] == HistoryAction.REGISTRY


def test_registry_event_validation(db_session):
    item = _equipment(db_session, quantity=2)

    with pytest.raises(ValidationError):
        ledger.record_registry_event(
            db_session, equipment_id=item.id, reason="stolen", description="gone", reporter_id="u1"
        )
    with pytest.raises(ValidationError):
        ledger.record_registry_event(
            db_session, equipment_id=item.id, reason="repair", description="  ", reporter_id="u1"
        )
    with pytest.raises(NotFoundError):
        ledger.record_registry_event(
            db_session, equipment_id=999, reason="repair", description="Fan noise", reporter_id="u1"
        )


def test_registry_status_update_and_listing(db_session):
    item = _equipment(db_session, quantity=2)
    entry = ledger.record_registry_event(
        db_session, equipment_id=item.id, reason="repair", description="Fan noise", reporter_id="u1"
    )
    ledger.record_registry_event(
        db_session, equipment_id=item.id, reason="maintenance", description="Dust", reporter_id="u1"
    )

    updated = ledger.update_registry_status(db_session, entry, "resolved", actor_id="tech-2")

    assert updated.status is RegistryStatus.RESOLVED
    assert [e.id for e in ledger.list_registry_entries(db_session, status="resolved")] == [entry.id]
    assert len(ledger.list_registry_entries(db_session, equipment_id=item.id)) == 2
    assert len(ledger.list_registry_entries(db_session, reason="maintenance")) == 1

    ledger.delete_registry_entry(db_session, updated)
    assert ledger.get_registry_entry(db_session, entry.id) is None
