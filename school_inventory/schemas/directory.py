from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class TeacherCreate(BaseModel):
    full_name: str = Field(min_length=1)
    dni: Optional[str] = None
    email: Optional[str] = None


class TeacherOut(TeacherCreate):
    id: int
    created_at: str

    model_config = {"from_attributes": True}


class ClassroomCreate(BaseModel):
    name: str = Field(min_length=1)
    location: Optional[str] = None


class ClassroomOut(ClassroomCreate):
    id: int
    created_at: str

    model_config = {"from_attributes": True}


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None


class CategoryOut(CategoryCreate):
    id: int
    created_at: str

    model_config = {"from_attributes": True}
