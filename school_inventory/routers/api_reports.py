from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..deps.auth import require_actor
from ..schemas.report import LowStockRow, MovementReportRow
from ..services.reporting import (
    XLSX_MEDIA_TYPE,
    export_low_stock_xlsx,
    export_movements_xlsx,
    low_stock_report_rows,
    movement_report_rows,
)

router = APIRouter(prefix="/api/v1/reports", tags=["reports"], dependencies=[Depends(require_actor)])


def _xlsx_response(filename: str, content: bytes) -> Response:
    return Response(
        content=content,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/low-stock", response_model=list[LowStockRow])
def api_low_stock(threshold: Optional[int] = Query(default=None, ge=1), db: Session = Depends(get_db)):
    return low_stock_report_rows(db, threshold)


@router.get("/low-stock.xlsx")
def api_low_stock_xlsx(threshold: Optional[int] = Query(default=None, ge=1), db: Session = Depends(get_db)):
    filename, content = export_low_stock_xlsx(db, threshold)
    return _xlsx_response(filename, content)


@router.get("/movements", response_model=list[MovementReportRow])
def api_movements(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
):
    return movement_report_rows(db, start, end)


@router.get("/movements.xlsx")
def api_movements_xlsx(
    start: Optional[date] = None,
    end: Optional[date] = None,
    db: Session = Depends(get_db),
):
    filename, content = export_movements_xlsx(db, start, end)
    return _xlsx_response(filename, content)
