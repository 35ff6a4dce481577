# schemas/report.py

from datetime import date
from typing import Literal
from pydantic import BaseModel


ReportType = Literal["sales", "losses"]


class WeekResponse(BaseModel):
    numero_semana: int
    ano: int
    data_inicio: date
    data_fim: date


class WeekRangeResponse(BaseModel):
    start_date: date
    end_date: date
    weeks: list[WeekResponse]


class PeriodRequest(BaseModel):
    start_date: date
    end_date: date
    label: str | None = None


class MultiPeriodRequest(BaseModel):
    periods: list[PeriodRequest] = []
    report_type: ReportType = "sales"
    sector: str | None = None
    product_ids: list[int] | None = None
