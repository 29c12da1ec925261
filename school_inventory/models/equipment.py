"""Catalog tables: equipment rows and the categories they belong to."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..core.choices import EquipmentState
from ..db.session import Base
from ..db.types import choice_column_type


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, unique=True)
    description = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)


class Equipment(Base):
    """One type or batch of interchangeable physical devices.

    ``available_quantity`` is the number of units on the shelf; loans subtract
    from it and returns add back, always within ``[0, quantity]``.
    """

    __tablename__ = "equipment"
    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_equipment_quantity_non_negative"),
        CheckConstraint(
            "available_quantity >= 0 AND available_quantity <= quantity",
            name="ck_equipment_available_within_quantity",
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    description = Column(Text, nullable=True)
    brand = Column(Text, nullable=True)
    model = Column(Text, nullable=True)
    serial_number = Column(Text, nullable=True, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    available_quantity = Column(Integer, nullable=False, default=0)
    state = Column(choice_column_type(EquipmentState), nullable=False, default=EquipmentState.AVAILABLE)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    purchase_date = Column(Text, nullable=True)
    warranty_expiration = Column(Text, nullable=True)
    created_by = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    category = relationship("Category", lazy="joined")

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None

    @property
    def loaned_quantity(self) -> int:
        return (self.quantity or 0) - (self.available_quantity or 0)


__all__ = ["Category", "Equipment"]
