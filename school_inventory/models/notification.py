from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Text

from ..core.choices import NotificationType
from ..db.session import Base
from ..db.types import choice_column_type


class Notification(Base):
    """One inbox entry for one recipient."""

    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, nullable=False, index=True)
    title = Column(Text, nullable=False, index=True)
    message = Column(Text, nullable=False)
    type = Column(choice_column_type(NotificationType), nullable=False, default=NotificationType.INFO)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(Text, nullable=False, index=True)


class NotificationSetting(Base):
    """Per-user toggles deciding which alerts fan out to that user."""

    __tablename__ = "user_notifications"

    user_id = Column(Text, primary_key=True)
    email_notifications = Column(Boolean, nullable=False, default=True)
    low_stock_alerts = Column(Boolean, nullable=False, default=True)
    equipment_loans = Column(Boolean, nullable=False, default=True)
    system_updates = Column(Boolean, nullable=False, default=False)


SETTING_FIELDS = ("email_notifications", "low_stock_alerts", "equipment_loans", "system_updates")

__all__ = ["Notification", "NotificationSetting", "SETTING_FIELDS"]
