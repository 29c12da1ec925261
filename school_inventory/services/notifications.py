"""Notification fan-out, per-user toggles and the notification inbox.

The ledger only depends on the ``NotificationDispatcher`` protocol, so tests
and alternative channels can stand in for the database-backed
``NotificationService`` below.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Protocol, Sequence

from sqlalchemy import desc, func, select, update
from sqlalchemy.orm import Session

from ..core import clock
from ..core.choices import NotificationType
from ..core.config import settings
from ..core.errors import NotFoundError, ValidationError
from ..crud.equipment import alert_low_stock
from ..db.session import commit_or_raise
from ..models.notification import SETTING_FIELDS, Notification, NotificationSetting

logger = logging.getLogger(__name__)

LOW_STOCK_TITLE = "Low Stock Alert"
LOAN_TITLE_PREFIX = "Equipment Loan"
SYSTEM_UPDATE_TITLE = "System Update"

# First read of a user's settings creates this row.
DEFAULT_SETTINGS = {
    "email_notifications": True,
    "low_stock_alerts": True,
    "equipment_loans": True,
    "system_updates": False,
}

LOAN_ACTIONS = {"loan", "return"}


class NotificationDispatcher(Protocol):
    def notify_equipment_loan(self, equipment_name: str, teacher_name: str, action: str) -> None:
        ...

    def notify_low_stock(self, items: Sequence[object]) -> list[Notification]:
        ...

    def notify_system_update(self, message: str) -> None:
        ...


def _item_label(item: object) -> str:
    if isinstance(item, dict):
        name, available = item.get("name"), item.get("available_quantity")
    else:
        name, available = getattr(item, "name", None), getattr(item, "available_quantity", None)
    return f"{name} ({available} available)"


def low_stock_message(items: Iterable[object]) -> str:
    return "The following equipment is low on stock: " + ", ".join(_item_label(item) for item in items)


class NotificationService:
    """Database-backed dispatcher writing one inbox row per recipient.

    ``now`` may be injected to pin the clock (the debounce window compares
    ``created_at`` strings).
    """

    def __init__(self, db: Session, *, debounce_minutes: int | None = None, now: datetime | None = None) -> None:
        self.db = db
        self.debounce_minutes = settings.LOW_STOCK_DEBOUNCE_MINUTES if debounce_minutes is None else debounce_minutes
        self._now = now

    def _current_time(self) -> datetime:
        return self._now or clock.utcnow()

    # ------------------------------------------------------------------ fan-out

    def recipients(self, setting: str) -> list[str]:
        if setting not in SETTING_FIELDS:
            raise ValueError(f"Unknown notification setting: {setting}")
        column = getattr(NotificationSetting, setting)
        stmt = select(NotificationSetting.user_id).where(column.is_(True)).order_by(NotificationSetting.user_id)
        return list(self.db.execute(stmt).scalars().all())

    def send_notification(
        self,
        title: str,
        message: str,
        type: NotificationType | str = NotificationType.INFO,
        target_users: Sequence[str] | None = None,
        *,
        setting: str = "email_notifications",
    ) -> list[Notification]:
        """Insert one unread notification per recipient and commit.

        Recipients are ``target_users`` when given, otherwise every user with
        ``setting`` switched on.
        """

        user_ids = list(dict.fromkeys(target_users)) if target_users is not None else self.recipients(setting)
        if not user_ids:
            logger.info("notification.no_recipients", extra={"extra_data": {"title": title}})
            return []
        created_at = clock.to_iso(self._current_time())
        rows = [
            Notification(
                user_id=user_id,
                title=title,
                message=message,
                type=NotificationType(type),
                read=False,
                created_at=created_at,
            )
            for user_id in user_ids
        ]
        self.db.add_all(rows)
        commit_or_raise(self.db)
        logger.info(
            "notification.sent",
            extra={"extra_data": {"title": title, "recipients": len(rows)}},
        )
        return rows

    # ------------------------------------------------------------- dispatchers

    def notify_equipment_loan(self, equipment_name: str, teacher_name: str, action: str) -> list[Notification]:
        if action not in LOAN_ACTIONS:
            raise ValueError("action must be 'loan' or 'return'")
        return self.send_notification(
            f"{LOAN_TITLE_PREFIX} - {action}",
            f"{teacher_name} has registered a {action} of equipment: {equipment_name}",
            NotificationType.INFO,
            setting="equipment_loans",
        )

    def recently_sent(self, title: str) -> bool:
        since = clock.minutes_ago_iso(self.debounce_minutes, now=self._current_time())
        stmt = select(Notification.id).where(Notification.title == title, Notification.created_at >= since).limit(1)
        return self.db.execute(stmt).first() is not None

    def notify_low_stock(self, items: Sequence[object]) -> list[Notification]:
        """Alert about ``items`` unless a low-stock alert went out recently."""

        if not items:
            return []
        if self.debounce_minutes and self.recently_sent(LOW_STOCK_TITLE):
            logger.info("notification.low_stock_debounced", extra={"extra_data": {"items": len(items)}})
            return []
        return self.send_notification(
            LOW_STOCK_TITLE,
            low_stock_message(items),
            NotificationType.WARNING,
            setting="low_stock_alerts",
        )

    def notify_system_update(self, message: str, target_users: Sequence[str] | None = None) -> list[Notification]:
        if not (message or "").strip():
            raise ValidationError("message is required")
        return self.send_notification(
            SYSTEM_UPDATE_TITLE,
            message.strip(),
            NotificationType.INFO,
            target_users,
            setting="system_updates",
        )

    def check_low_stock(self, threshold: int | None = None) -> list[Notification]:
        items = alert_low_stock(self.db, threshold or settings.LOW_STOCK_THRESHOLD)
        if not items:
            return []
        return self.notify_low_stock(items)

    # --------------------------------------------------------------- settings

    def get_settings(self, user_id: str) -> NotificationSetting:
        row = self.db.get(NotificationSetting, user_id)
        if row is None:
            row = NotificationSetting(user_id=user_id, **DEFAULT_SETTINGS)
            self.db.add(row)
            commit_or_raise(self.db)
            self.db.refresh(row)
        return row

    def update_settings(self, user_id: str, **changes: bool | None) -> NotificationSetting:
        unknown = set(changes) - set(SETTING_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown notification settings: {', '.join(sorted(unknown))}")
        row = self.get_settings(user_id)
        for field, value in changes.items():
            if value is not None:
                setattr(row, field, bool(value))
        commit_or_raise(self.db)
        self.db.refresh(row)
        return row

    # ------------------------------------------------------------------ inbox

    def list_notifications(self, user_id: str, limit: int = 10) -> list[Notification]:
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(desc(Notification.created_at), desc(Notification.id))
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def unread_count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id, Notification.read.is_(False)
        )
        return int(self.db.scalar(stmt) or 0)

    def mark_read(self, notification_id: int, user_id: str | None = None) -> Notification:
        row = self.db.get(Notification, notification_id)
        if row is None or (user_id is not None and row.user_id != user_id):
            raise NotFoundError(f"Notification {notification_id} not found")
        row.read = True
        commit_or_raise(self.db)
        self.db.refresh(row)
        return row

    def mark_all_read(self, user_id: str) -> int:
        stmt = (
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session=False)
        )
        updated = self.db.execute(stmt).rowcount
        commit_or_raise(self.db)
        return int(updated or 0)


__all__ = [
    "LOW_STOCK_TITLE",
    "NotificationDispatcher",
    "NotificationService",
    "SYSTEM_UPDATE_TITLE",
    "low_stock_message",
]
