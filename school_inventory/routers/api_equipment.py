from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.choices import EquipmentState
from ..core.config import settings
from ..core.errors import NotFoundError
from ..crud.equipment import (
    adjust_availability,
    alert_low_stock,
    create_equipment,
    delete_equipment,
    get_equipment,
    list_equipment,
    report_low_stock,
    update_equipment,
)
from ..db.session import get_db
from ..deps.auth import AuthContext, require_actor
from ..schemas.equipment import AvailabilityAdjustment, EquipmentCreate, EquipmentOut, EquipmentUpdate

router = APIRouter(prefix="/api/v1/equipment", tags=["equipment"], dependencies=[Depends(require_actor)])


def _get_or_404(db: Session, equipment_id: int):
    item = get_equipment(db, equipment_id)
    if not item:
        raise NotFoundError(f"Equipment {equipment_id} not found")
    return item


@router.get("", response_model=list[EquipmentOut])
def api_list(
    state: Optional[EquipmentState] = None,
    category_id: Optional[int] = None,
    q: Optional[str] = None,
    available_only: bool = False,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_equipment(
        db,
        state=state,
        category_id=category_id,
        search=q,
        available_only=available_only,
        limit=limit,
        offset=offset,
    )


@router.get("/low-stock", response_model=list[EquipmentOut])
def api_low_stock(
    threshold: Optional[int] = Query(default=None, ge=1),
    mode: Literal["alert", "report"] = "alert",
    db: Session = Depends(get_db),
):
    if mode == "report":
        return report_low_stock(db, threshold or settings.REPORT_LOW_STOCK_THRESHOLD)
    return alert_low_stock(db, threshold or settings.LOW_STOCK_THRESHOLD)


@router.get("/{equipment_id}", response_model=EquipmentOut)
def api_get(equipment_id: int, db: Session = Depends(get_db)):
    return _get_or_404(db, equipment_id)


@router.post("", response_model=EquipmentOut, status_code=201)
def api_create(
    payload: EquipmentCreate,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return create_equipment(db, payload.model_dump(exclude_none=True), actor_id=auth.actor_id)


@router.patch("/{equipment_id}", response_model=EquipmentOut)
def api_update(
    equipment_id: int,
    payload: EquipmentUpdate,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    item = _get_or_404(db, equipment_id)
    return update_equipment(db, item, payload.model_dump(exclude_unset=True), actor_id=auth.actor_id)


@router.post("/{equipment_id}/adjust", response_model=EquipmentOut)
def api_adjust(
    equipment_id: int,
    payload: AvailabilityAdjustment,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return adjust_availability(db, equipment_id, payload.delta, actor_id=auth.actor_id)


@router.delete("/{equipment_id}", status_code=204)
def api_delete(
    equipment_id: int,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    item = _get_or_404(db, equipment_id)
    delete_equipment(db, item, actor_id=auth.actor_id)
    return Response(status_code=204)
