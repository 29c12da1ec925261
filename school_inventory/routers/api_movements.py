from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.choices import MovementStatus
from ..core.errors import NotFoundError
from ..db.session import get_db
from ..deps.auth import AuthContext, require_actor
from ..schemas.movement import LoanCreate, MovementOut
from ..services.ledger import delete_movement, get_movement, list_movements, record_loan, record_return

router = APIRouter(prefix="/api/v1/movements", tags=["movements"], dependencies=[Depends(require_actor)])


@router.get("", response_model=list[MovementOut])
def api_list(
    status: Optional[MovementStatus] = None,
    teacher_id: Optional[int] = None,
    equipment_id: Optional[int] = None,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_movements(
        db,
        status=status,
        teacher_id=teacher_id,
        equipment_id=equipment_id,
        limit=limit,
        offset=offset,
    )


@router.get("/{movement_id}", response_model=MovementOut)
def api_get(movement_id: int, db: Session = Depends(get_db)):
    movement = get_movement(db, movement_id)
    if not movement:
        raise NotFoundError(f"Movement {movement_id} not found")
    return movement


@router.post("/loans", response_model=MovementOut, status_code=201)
def api_record_loan(
    payload: LoanCreate,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return record_loan(
        db,
        equipment_id=payload.equipment_id,
        teacher_id=payload.teacher_id,
        classroom_id=payload.classroom_id,
        quantity=payload.quantity,
        scheduled_return_date=payload.scheduled_return_date,
        description=payload.description,
        movement_type=payload.movement_type,
        actor_id=auth.actor_id,
    )


@router.post("/{movement_id}/return", response_model=MovementOut)
def api_record_return(
    movement_id: int,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return record_return(db, movement_id, actor_id=auth.actor_id)


@router.delete("/{movement_id}", status_code=204)
def api_delete(movement_id: int, db: Session = Depends(get_db)):
    movement = get_movement(db, movement_id)
    if not movement:
        raise NotFoundError(f"Movement {movement_id} not found")
    delete_movement(db, movement)
    return Response(status_code=204)
