from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.errors import NotFoundError
from ..crud import directory as crud
from ..db.session import get_db
from ..deps.auth import require_actor
from ..schemas.directory import (
    CategoryCreate,
    CategoryOut,
    ClassroomCreate,
    ClassroomOut,
    TeacherCreate,
    TeacherOut,
)

router = APIRouter(prefix="/api/v1/directory", tags=["directory"], dependencies=[Depends(require_actor)])


@router.get("/teachers", response_model=list[TeacherOut])
def api_list_teachers(
    limit: int = Query(default=500, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return crud.list_teachers(db, limit=limit, offset=offset)


@router.get("/teachers/{teacher_id}", response_model=TeacherOut)
def api_get_teacher(teacher_id: int, db: Session = Depends(get_db)):
    teacher = crud.get_teacher(db, teacher_id)
    if not teacher:
        raise NotFoundError(f"Teacher {teacher_id} not found")
    return teacher


@router.post("/teachers", response_model=TeacherOut, status_code=201)
def api_create_teacher(payload: TeacherCreate, db: Session = Depends(get_db)):
    return crud.create_teacher(db, payload.model_dump())


@router.get("/classrooms", response_model=list[ClassroomOut])
def api_list_classrooms(
    limit: int = Query(default=500, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
):
    return crud.list_classrooms(db, limit=limit, offset=offset)


@router.get("/classrooms/{classroom_id}", response_model=ClassroomOut)
def api_get_classroom(classroom_id: int, db: Session = Depends(get_db)):
    classroom = crud.get_classroom(db, classroom_id)
    if not classroom:
        raise NotFoundError(f"Classroom {classroom_id} not found")
    return classroom


@router.post("/classrooms", response_model=ClassroomOut, status_code=201)
def api_create_classroom(payload: ClassroomCreate, db: Session = Depends(get_db)):
    return crud.create_classroom(db, payload.model_dump())


@router.get("/categories", response_model=list[CategoryOut])
def api_list_categories(db: Session = Depends(get_db)):
    return crud.list_categories(db)


@router.get("/categories/{category_id}", response_model=CategoryOut)
def api_get_category(category_id: int, db: Session = Depends(get_db)):
    category = crud.get_category(db, category_id)
    if not category:
        raise NotFoundError(f"Category {category_id} not found")
    return category


@router.post("/categories", response_model=CategoryOut, status_code=201)
def api_create_category(payload: CategoryCreate, db: Session = Depends(get_db)):
    return crud.create_category(db, payload.model_dump())
