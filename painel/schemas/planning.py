from datetime import date, datetime
from pydantic import BaseModel, Field


class PlanningSave(BaseModel):
    produto_id: int
    data: date
    quantidade_planejada: float = Field(..., ge=0)


class PlanningResponse(BaseModel):
    id: int
    produto_id: int
    data: date
    quantidade_planejada: float
    updated_at: datetime | None

    class Config:
        from_attributes = True


class PlanningSaveResponse(BaseModel):
    success: bool = True
    data: PlanningResponse


class PlanningRow(PlanningResponse):
    produto_nome: str


class PlanningListResponse(BaseModel):
    planejamentos: list[PlanningRow]
