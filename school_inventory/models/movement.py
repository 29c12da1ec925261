from __future__ import annotations

from datetime import date

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core import clock
from ..core.choices import MovementStatus, MovementType
from ..db.session import Base
from ..db.types import choice_column_type


class Movement(Base):
    """A loan of ``quantity`` units of one equipment row to a teacher.

    Only ``active`` and ``completed`` are ever stored. ``overdue`` is derived
    from ``scheduled_return_date`` when the row is read.
    """

    __tablename__ = "movements"
    __table_args__ = (CheckConstraint("quantity > 0", name="ck_movements_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    equipment_id = Column(Integer, ForeignKey("equipment.id"), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey("teachers.id"), nullable=False, index=True)
    classroom_id = Column(Integer, ForeignKey("classrooms.id"), nullable=True, index=True)
    movement_type = Column(choice_column_type(MovementType), nullable=False, default=MovementType.ASSIGNMENT)
    quantity = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    scheduled_return_date = Column(Text, nullable=False)
    actual_return_date = Column(Text, nullable=True)
    status = Column(choice_column_type(MovementStatus), nullable=False, default=MovementStatus.ACTIVE, index=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    equipment = relationship("Equipment", lazy="joined")
    teacher = relationship("Teacher", lazy="joined")
    classroom = relationship("Classroom", lazy="joined")

    def effective_status(self, today: date | None = None) -> MovementStatus:
        if self.status != MovementStatus.ACTIVE:
            return MovementStatus(self.status)
        reference = (today or clock.today()).isoformat()
        if self.scheduled_return_date and self.scheduled_return_date < reference:
            return MovementStatus.OVERDUE
        return MovementStatus.ACTIVE

    @property
    def current_status(self) -> MovementStatus:
        return self.effective_status()

    @property
    def equipment_name(self) -> str | None:
        return self.equipment.name if self.equipment else None

    @property
    def teacher_name(self) -> str | None:
        return self.teacher.full_name if self.teacher else None

    @property
    def classroom_name(self) -> str | None:
        return self.classroom.name if self.classroom else None


__all__ = ["Movement"]
