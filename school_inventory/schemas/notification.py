from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from ..core.choices import NotificationType


class NotificationOut(BaseModel):
    id: int
    user_id: str
    title: str
    message: str
    type: NotificationType
    read: bool
    created_at: str

    model_config = {"from_attributes": True}


class NotificationSettingsOut(BaseModel):
    user_id: str
    email_notifications: bool
    low_stock_alerts: bool
    equipment_loans: bool
    system_updates: bool

    model_config = {"from_attributes": True}


class NotificationSettingsUpdate(BaseModel):
    email_notifications: Optional[bool] = None
    low_stock_alerts: Optional[bool] = None
    equipment_loans: Optional[bool] = None
    system_updates: Optional[bool] = None


class SystemUpdateRequest(BaseModel):
    message: str = Field(min_length=1)
    target_users: Optional[list[str]] = None


class DispatchResult(BaseModel):
    dispatched: int
