from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.choices import RegistryReason, RegistryStatus
from ..db.session import Base
from ..db.types import choice_column_type


class EquipmentRegistryEntry(Base):
    """Damage, maintenance or decommission report against an equipment row."""

    __tablename__ = "equipment_registry"

    id = Column(Integer, primary_key=True, index=True)
    equipment_id = Column(Integer, ForeignKey("equipment.id"), nullable=False, index=True)
    reason = Column(choice_column_type(RegistryReason), nullable=False)
    description = Column(Text, nullable=False)
    date_occurred = Column(Text, nullable=False)
    reported_by = Column(Text, nullable=True)
    status = Column(choice_column_type(RegistryStatus), nullable=False, default=RegistryStatus.PENDING)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    equipment = relationship("Equipment", lazy="joined")

    @property
    def equipment_name(self) -> str | None:
        return self.equipment.name if self.equipment else None


__all__ = ["EquipmentRegistryEntry"]
