# =========================================================
# BUSINESS WEEK CALENDAR
#
# Weeks run Tuesday -> Monday. Week 1 of a year starts on the
# first Tuesday on or after January 1; days of that year before
# it fall in week 0.
#
# Pure functions, no I/O.
# =========================================================

from dataclasses import dataclass
from datetime import date, datetime, timedelta


@dataclass(frozen=True)
class BusinessWeek:
    numero_semana: int
    ano: int
    data_inicio: date
    data_fim: date

    def as_dict(self) -> dict:
        return {
            "numero_semana": self.numero_semana,
            "ano": self.ano,
            "data_inicio": self.data_inicio,
            "data_fim": self.data_fim,
        }


def to_calendar_day(value) -> date:
    """Normalize a date, datetime or ISO string to a calendar day.

    Aware datetimes are converted to local time before truncation.
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone()
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        return date.fromisoformat(value[:10])

    raise TypeError(f"Cannot interpret {value!r} as a date")


def days_since_tuesday(day: date) -> int:
    # weekday(): Monday=0 ... Sunday=6
    return (day.weekday() - 1) % 7


def week_bounds(value) -> tuple[date, date]:
    day = to_calendar_day(value)
    start = day - timedelta(days=days_since_tuesday(day))
    return start, start + timedelta(days=6)


def first_tuesday(year: int) -> date:
    jan_first = date(year, 1, 1)
    return jan_first + timedelta(days=(1 - jan_first.weekday()) % 7)


def week_year(value) -> int:
    return to_calendar_day(value).year


def week_number(value) -> int:
    day = to_calendar_day(value)
    start, _ = week_bounds(day)
    return (start - first_tuesday(day.year)).days // 7 + 1


def business_week(value) -> BusinessWeek:
    day = to_calendar_day(value)
    start, end = week_bounds(day)

    return BusinessWeek(
        numero_semana=week_number(day),
        ano=week_year(day),
        data_inicio=start,
        data_fim=end,
    )


def weeks_between(start_value, end_value) -> list[BusinessWeek]:
    """Every business week overlapping [start, end], in date order."""
    start = to_calendar_day(start_value)
    end = to_calendar_day(end_value)

    weeks = []
    cursor, _ = week_bounds(start)

    while cursor <= end:
        # The first week is labelled by the requested start day
        weeks.append(business_week(max(cursor, start)))
        cursor += timedelta(days=7)

    return weeks
