from __future__ import annotations

from pydantic import BaseModel, Field


class LowStockRow(BaseModel):
    name: str
    category: str | None
    brand: str | None
    model: str | None
    available: int
    total: int
    state: str


class MovementReportRow(BaseModel):
    date: str
    time: str
    equipment: str
    action: str
    user: str


class AssistantRequest(BaseModel):
    query: str = Field(min_length=1, max_length=4000)


class AssistantResponse(BaseModel):
    response: str
