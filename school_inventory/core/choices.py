"""Shared enumerations for equipment, movements, registry and notifications."""

from __future__ import annotations

from enum import Enum


class EquipmentState(str, Enum):
    AVAILABLE = "available"
    IN_USE = "in_use"
    MAINTENANCE = "maintenance"
    DAMAGED = "damaged"
    DECOMMISSIONED = "decommissioned"


class MovementType(str, Enum):
    ASSIGNMENT = "assignment"
    RETURN = "return"


class MovementStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    # Never stored; derived at read time from the scheduled return date.
    OVERDUE = "overdue"


class RegistryReason(str, Enum):
    MALFUNCTION = "malfunction"
    DECOMMISSION = "decommission"
    MAINTENANCE = "maintenance"
    REPAIR = "repair"


class RegistryStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    IRREPARABLE = "irreparable"


class HistoryAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LOAN = "loan"
    RETURN = "return"
    REGISTRY = "registry"


class NotificationType(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


def coerce_choice(enum_cls: type[Enum], value: object, field: str) -> Enum:
    """Return ``value`` as a member of ``enum_cls`` or raise ``ValueError``.

    Accepts members, raw values in any letter case and surrounding whitespace.
    """

    if isinstance(value, enum_cls):
        return value
    raw = str(value or "").strip().lower()
    try:
        return enum_cls(raw)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"{field} must be one of: {allowed}") from None


__all__ = [
    "EquipmentState",
    "HistoryAction",
    "MovementStatus",
    "MovementType",
    "NotificationType",
    "RegistryReason",
    "RegistryStatus",
    "coerce_choice",
]
