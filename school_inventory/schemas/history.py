from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel

from ..core.choices import HistoryAction


class HistoryOut(BaseModel):
    id: int
    equipment_id: Optional[int]
    equipment_name: Optional[str] = None
    action: HistoryAction
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    changed_by: Optional[str]
    created_at: str

    model_config = {"from_attributes": True}
