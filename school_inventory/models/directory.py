"""Reference data the ledger points at: teachers and classrooms."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text

from ..db.session import Base


class Teacher(Base):
    __tablename__ = "teachers"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(Text, nullable=False, index=True)
    dni = Column(Text, nullable=True, unique=True)
    email = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)


class Classroom(Base):
    __tablename__ = "classrooms"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(Text, nullable=False, index=True)
    location = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)


__all__ = ["Classroom", "Teacher"]
