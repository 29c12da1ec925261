from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from ..core.choices import RegistryReason, RegistryStatus


class RegistryCreate(BaseModel):
    equipment_id: int
    reason: RegistryReason = RegistryReason.MALFUNCTION
    description: str = Field(min_length=1)
    date_occurred: Optional[date] = None
    status: RegistryStatus = RegistryStatus.PENDING


class RegistryStatusUpdate(BaseModel):
    status: RegistryStatus


class RegistryOut(BaseModel):
    id: int
    equipment_id: int
    equipment_name: Optional[str] = None
    reason: RegistryReason
    description: str
    date_occurred: str
    reported_by: Optional[str]
    status: RegistryStatus
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
