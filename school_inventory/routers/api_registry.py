from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..core.choices import RegistryReason, RegistryStatus
from ..core.errors import NotFoundError
from ..db.session import get_db
from ..deps.auth import AuthContext, require_actor
from ..schemas.registry import RegistryCreate, RegistryOut, RegistryStatusUpdate
from ..services.ledger import (
    delete_registry_entry,
    get_registry_entry,
    list_registry_entries,
    record_registry_event,
    update_registry_status,
)

router = APIRouter(prefix="/api/v1/registry", tags=["registry"], dependencies=[Depends(require_actor)])


def _get_or_404(db: Session, entry_id: int):
    entry = get_registry_entry(db, entry_id)
    if not entry:
        raise NotFoundError(f"Registry entry {entry_id} not found")
    return entry


@router.get("", response_model=list[RegistryOut])
def api_list(
    reason: Optional[RegistryReason] = None,
    status: Optional[RegistryStatus] = None,
    equipment_id: Optional[int] = None,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_registry_entries(
        db, reason=reason, status=status, equipment_id=equipment_id, limit=limit, offset=offset
    )


@router.post("", response_model=RegistryOut, status_code=201)
def api_create(
    payload: RegistryCreate,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return record_registry_event(
        db,
        equipment_id=payload.equipment_id,
        reason=payload.reason,
        description=payload.description,
        date_occurred=payload.date_occurred,
        status=payload.status,
        reporter_id=auth.actor_id,
    )


@router.patch("/{entry_id}", response_model=RegistryOut)
def api_update_status(
    entry_id: int,
    payload: RegistryStatusUpdate,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return update_registry_status(db, _get_or_404(db, entry_id), payload.status, actor_id=auth.actor_id)


@router.delete("/{entry_id}", status_code=204)
def api_delete(entry_id: int, db: Session = Depends(get_db)):
    delete_registry_entry(db, _get_or_404(db, entry_id))
    return Response(status_code=204)
