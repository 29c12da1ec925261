from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from ..core.choices import MovementStatus, MovementType


class LoanCreate(BaseModel):
    equipment_id: int
    teacher_id: int
    classroom_id: Optional[int] = None
    movement_type: MovementType = MovementType.ASSIGNMENT
    quantity: int = Field(default=1, gt=0)
    scheduled_return_date: date
    description: Optional[str] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "equipment_id": 1,
                "teacher_id": 3,
                "quantity": 2,
                "scheduled_return_date": "2025-01-01",
            }
        }
    }


class MovementOut(BaseModel):
    id: int
    equipment_id: int
    teacher_id: int
    classroom_id: Optional[int]
    movement_type: MovementType
    quantity: int
    description: Optional[str]
    scheduled_return_date: str
    actual_return_date: Optional[str]
    status: MovementStatus
    current_status: MovementStatus
    created_by: Optional[str]
    created_at: str
    equipment_name: Optional[str] = None
    teacher_name: Optional[str] = None
    classroom_name: Optional[str] = None

    model_config = {"from_attributes": True}
