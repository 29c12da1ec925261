from __future__ import annotations

from sqlalchemy import JSON, Column, Integer, Text
from sqlalchemy.orm import relationship

from ..core.choices import HistoryAction
from ..db.session import Base
from ..db.types import choice_column_type


class HistoryEntry(Base):
    """Append-only audit row for any change touching an equipment record.

    ``equipment_id`` is a soft reference so the trail survives deletion of the
    equipment it describes.
    """

    __tablename__ = "equipment_history"

    id = Column(Integer, primary_key=True, index=True)
    equipment_id = Column(Integer, nullable=True, index=True)
    action = Column(choice_column_type(HistoryAction), nullable=False, index=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    changed_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False, index=True)

    equipment = relationship(
        "Equipment",
        primaryjoin="foreign(HistoryEntry.equipment_id) == Equipment.id",
        lazy="joined",
        viewonly=True,
    )

    @property
    def equipment_name(self) -> str | None:
        if self.equipment:
            return self.equipment.name
        snapshot = self.old_values or self.new_values or {}
        return snapshot.get("name") if isinstance(snapshot, dict) else None


__all__ = ["HistoryEntry"]
