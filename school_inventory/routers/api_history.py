from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.choices import HistoryAction
from ..crud.history import list_history
from ..db.session import get_db
from ..deps.auth import require_actor
from ..schemas.history import HistoryOut

router = APIRouter(prefix="/api/v1/history", tags=["history"], dependencies=[Depends(require_actor)])


@router.get("", response_model=list[HistoryOut])
def api_list(
    equipment_id: Optional[int] = None,
    action: Optional[HistoryAction] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return list_history(
        db,
        equipment_id=equipment_id,
        action=action,
        start=start.isoformat() if start else None,
        end=f"{end.isoformat()}T23:59:59Z" if end else None,
        limit=limit,
        offset=offset,
    )
