from __future__ import annotations

from datetime import date
from io import BytesIO
from typing import Any, Iterable, Sequence

import openpyxl
from openpyxl.styles import Font, PatternFill
from sqlalchemy.orm import Session

from ..core import clock
from ..core.config import settings
from ..core.errors import NotFoundError, ValidationError
from ..crud.equipment import count_by_state, report_low_stock
from ..crud.history import list_history
from ..models.equipment import Equipment
from ..models.history import HistoryEntry

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

LOW_STOCK_HEADERS = ["Name", "Category", "Brand", "Model", "Available", "Total", "State"]
MOVEMENT_HEADERS = ["Date", "Time", "Equipment", "Action", "User"]

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
MAX_COLUMN_WIDTH = 50


def low_stock_row(item: Equipment) -> dict[str, Any]:
    return {
        "name": item.name,
        "category": item.category_name,
        "brand": item.brand,
        "model": item.model,
        "available": item.available_quantity,
        "total": item.quantity,
        "state": item.state.value if item.state is not None else "",
    }


def low_stock_report_rows(db: Session, threshold: int | None = None) -> list[dict[str, Any]]:
    """Equipment under ``threshold`` available units, depleted rows included."""

    limit = settings.REPORT_LOW_STOCK_THRESHOLD if threshold is None else threshold
    if limit <= 0:
        raise ValidationError("threshold must be positive")
    return [low_stock_row(item) for item in report_low_stock(db, limit)]


def _date_range(start: Any, end: Any) -> tuple[str, str]:
    if not start or not end:
        raise ValidationError("start and end dates are required")
    try:
        first = clock.normalize_date(start, "start")
        last = clock.normalize_date(end, "end")
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if first > last:
        raise ValidationError("start must not be after end")
    return first, last


def movement_row(entry: HistoryEntry) -> dict[str, Any]:
    stamp = entry.created_at or ""
    return {
        "date": stamp[:10],
        "time": stamp[11:19],
        "equipment": entry.equipment_name or "",
        "action": entry.action.value,
        "user": entry.changed_by or "",
    }


def movement_report_rows(db: Session, start: Any, end: Any, *, limit: int = 10000) -> list[dict[str, Any]]:
    """History entries between ``start`` and the end of the ``end`` day, newest first."""

    first, last = _date_range(start, end)
    entries = list_history(db, start=first, end=f"{last}T23:59:59Z", limit=limit)
    return [movement_row(entry) for entry in entries]


def _autosize(ws) -> None:
    for column_cells in ws.columns:
        longest = max(len(str(cell.value if cell.value is not None else "")) for cell in column_cells)
        ws.column_dimensions[column_cells[0].column_letter].width = min(longest + 2, MAX_COLUMN_WIDTH)


def build_workbook(sheets: Sequence[tuple[str, Sequence[str], Iterable[Sequence[Any]]]]) -> bytes:
    """Render ``(title, headers, rows)`` triples into an xlsx document."""

    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, headers, rows in sheets:
        ws = wb.create_sheet(title[:31])
        ws.append(list(headers))
        for col_idx in range(1, len(headers) + 1):
            cell = ws.cell(row=1, column=col_idx)
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL
        for row in rows:
            ws.append(["" if value is None else value for value in row])
        ws.freeze_panes = "A2"
        _autosize(ws)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def export_low_stock_xlsx(
    db: Session, threshold: int | None = None, *, on: date | None = None
) -> tuple[str, bytes]:
    rows = low_stock_report_rows(db, threshold)
    if not rows:
        raise NotFoundError("No equipment is below the low-stock threshold")
    summary = [(state, total) for state, total in count_by_state(db).items()]
    content = build_workbook(
        [
            ("Low Stock", LOW_STOCK_HEADERS, [list(row.values()) for row in rows]),
            ("Summary", ["State", "Equipment rows"], summary),
        ]
    )
    stamp = (on or clock.today()).isoformat()
    return f"low_stock_report_{stamp}.xlsx", content


def export_movements_xlsx(db: Session, start: Any, end: Any) -> tuple[str, bytes]:
    first, last = _date_range(start, end)
    rows = movement_report_rows(db, first, last)
    if not rows:
        raise NotFoundError("No movements recorded in the selected range")
    content = build_workbook([("Movements", MOVEMENT_HEADERS, [list(row.values()) for row in rows])])
    return f"movements_report_{first}_{last}.xlsx", content


__all__ = [
    "XLSX_MEDIA_TYPE",
    "build_workbook",
    "export_low_stock_xlsx",
    "export_movements_xlsx",
    "low_stock_report_rows",
    "movement_report_rows",
]
