"""Teachers, classrooms and categories: the rows loans and equipment point at."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..core import clock
from ..core.errors import ValidationError
from ..models.directory import Classroom, Teacher
from ..models.equipment import Category


def _clean(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def list_teachers(db: Session, limit: int = 500, offset: int = 0) -> list[Teacher]:
    stmt = select(Teacher).order_by(Teacher.full_name).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def get_teacher(db: Session, teacher_id: int) -> Teacher | None:
    return db.get(Teacher, teacher_id)


def create_teacher(db: Session, payload: dict) -> Teacher:
    full_name = _clean(payload.get("full_name"))
    if not full_name:
        raise ValidationError("full_name is required")
    dni = _clean(payload.get("dni"))
    if dni and db.execute(select(Teacher.id).where(Teacher.dni == dni)).first():
        raise ValidationError(f"A teacher with DNI {dni} already exists")
    teacher = Teacher(
        full_name=full_name,
        dni=dni,
        email=_clean(payload.get("email")),
        created_at=clock.utcnow_iso(),
    )
    db.add(teacher)
    db.commit()
    db.refresh(teacher)
    return teacher


def list_classrooms(db: Session, limit: int = 500, offset: int = 0) -> list[Classroom]:
    stmt = select(Classroom).order_by(Classroom.name).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def get_classroom(db: Session, classroom_id: int) -> Classroom | None:
    return db.get(Classroom, classroom_id)


def create_classroom(db: Session, payload: dict) -> Classroom:
    name = _clean(payload.get("name"))
    if not name:
        raise ValidationError("name is required")
    classroom = Classroom(name=name, location=_clean(payload.get("location")), created_at=clock.utcnow_iso())
    db.add(classroom)
    db.commit()
    db.refresh(classroom)
    return classroom


def list_categories(db: Session) -> list[Category]:
    return list(db.execute(select(Category).order_by(Category.name)).scalars().all())


def get_category(db: Session, category_id: int) -> Category | None:
    return db.get(Category, category_id)


def create_category(db: Session, payload: dict) -> Category:
    name = _clean(payload.get("name"))
    if not name:
        raise ValidationError("name is required")
    if db.execute(select(Category.id).where(Category.name == name)).first():
        raise ValidationError(f"Category {name!r} already exists")
    category = Category(name=name, description=_clean(payload.get("description")), created_at=clock.utcnow_iso())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category
