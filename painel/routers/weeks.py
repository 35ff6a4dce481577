# painel/routers/weeks.py

from datetime import date

from fastapi import APIRouter, Depends, Query

from painel.core.auth import get_current_user
from painel.core.errors import ValidationError
from painel.schemas.report import WeekRangeResponse, WeekResponse
from painel.services.weeks import business_week, weeks_between

router = APIRouter(prefix="/weeks", tags=["Weeks"])


@router.get("/current", response_model=WeekResponse)
def current_week(
    day: date = Query(..., alias="date"),
    current_user=Depends(get_current_user),
):
    return business_week(day).as_dict()


@router.get("", response_model=WeekRangeResponse)
def week_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    current_user=Depends(get_current_user),
):
    if start_date > end_date:
        raise ValidationError("start_date must not be after end_date")

    return {
        "start_date": start_date,
        "end_date": end_date,
        "weeks": [week.as_dict() for week in weeks_between(start_date, end_date)],
    }
