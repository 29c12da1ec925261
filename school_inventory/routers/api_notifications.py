from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import AuthContext, require_actor
from ..schemas.notification import (
    DispatchResult,
    NotificationOut,
    NotificationSettingsOut,
    NotificationSettingsUpdate,
    SystemUpdateRequest,
)
from ..services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationOut])
def api_inbox(
    limit: int = Query(default=10, ge=1, le=200),
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return NotificationService(db).list_notifications(auth.actor_id, limit=limit)


@router.get("/unread-count")
def api_unread_count(auth: AuthContext = Depends(require_actor), db: Session = Depends(get_db)) -> dict[str, int]:
    return {"unread": NotificationService(db).unread_count(auth.actor_id)}


@router.post("/{notification_id}/read", response_model=NotificationOut)
def api_mark_read(
    notification_id: int,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return NotificationService(db).mark_read(notification_id, user_id=auth.actor_id)


@router.post("/read-all")
def api_mark_all_read(auth: AuthContext = Depends(require_actor), db: Session = Depends(get_db)) -> dict[str, int]:
    return {"updated": NotificationService(db).mark_all_read(auth.actor_id)}


@router.get("/settings", response_model=NotificationSettingsOut)
def api_get_settings(auth: AuthContext = Depends(require_actor), db: Session = Depends(get_db)):
    return NotificationService(db).get_settings(auth.actor_id)


@router.put("/settings", response_model=NotificationSettingsOut)
def api_update_settings(
    payload: NotificationSettingsUpdate,
    auth: AuthContext = Depends(require_actor),
    db: Session = Depends(get_db),
):
    return NotificationService(db).update_settings(auth.actor_id, **payload.model_dump(exclude_unset=True))


@router.post("/system-update", response_model=DispatchResult, dependencies=[Depends(require_actor)])
def api_system_update(payload: SystemUpdateRequest, db: Session = Depends(get_db)):
    sent = NotificationService(db).notify_system_update(payload.message, payload.target_users)
    return DispatchResult(dispatched=len(sent))


@router.post("/check-low-stock", response_model=DispatchResult, dependencies=[Depends(require_actor)])
def api_check_low_stock(
    threshold: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db),
):
    sent = NotificationService(db).check_low_stock(threshold)
    return DispatchResult(dispatched=len(sent))
