from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from ..core.choices import EquipmentState


class EquipmentBase(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    quantity: int = Field(default=1, ge=0)
    available_quantity: Optional[int] = Field(default=None, ge=0)
    state: EquipmentState = EquipmentState.AVAILABLE
    category_id: Optional[int] = None
    purchase_date: Optional[date] = None
    warranty_expiration: Optional[date] = None


class EquipmentCreate(EquipmentBase):
    @model_validator(mode="after")
    def validate_availability(self) -> "EquipmentCreate":
        if self.available_quantity is not None and self.available_quantity > self.quantity:
            raise ValueError("available_quantity cannot exceed quantity")
        return self


class EquipmentUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    available_quantity: Optional[int] = Field(default=None, ge=0)
    state: Optional[EquipmentState] = None
    category_id: Optional[int] = None
    purchase_date: Optional[date] = None
    warranty_expiration: Optional[date] = None


class AvailabilityAdjustment(BaseModel):
    delta: int

    @model_validator(mode="after")
    def validate_delta(self) -> "AvailabilityAdjustment":
        if not self.delta:
            raise ValueError("delta must be non-zero")
        return self


class EquipmentOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    brand: Optional[str]
    model: Optional[str]
    serial_number: Optional[str]
    quantity: int
    available_quantity: int
    loaned_quantity: int
    state: EquipmentState
    category_id: Optional[int]
    category_name: Optional[str] = None
    purchase_date: Optional[str]
    warranty_expiration: Optional[str]
    created_by: Optional[str]
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
