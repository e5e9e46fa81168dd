"""Month grid for the date picker: Sunday-first weeks of selectable days."""

import calendar
from dataclasses import dataclass
from datetime import date
from typing import Optional

from storefront.schemas.business_schema import Service

_SUNDAY_FIRST = calendar.Calendar(firstweekday=calendar.SUNDAY)


@dataclass(frozen=True)
class CalendarDay:
    date: str  # YYYY-MM-DD
    day: int
    is_past: bool
    is_today: bool
    is_selected: bool
    is_open: bool = True

    @property
    def selectable(self) -> bool:
        return not self.is_past


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months from (year, month), e.g. (2025, 12, 1) -> (2026, 1)."""
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def build_month(
    year: int,
    month: int,
    today: date,
    selected_date: Optional[str] = None,
    service: Optional[Service] = None,
) -> list[list[Optional[CalendarDay]]]:
    """Weeks of the month; days outside it are None.

    ``is_open`` follows the service's weekly schedule and is informational:
    only past days are not selectable.
    """
    weeks: list[list[Optional[CalendarDay]]] = []
    for week in _SUNDAY_FIRST.monthdatescalendar(year, month):
        row: list[Optional[CalendarDay]] = []
        for day in week:
            if day.month != month:
                row.append(None)
                continue
            iso = day.isoformat()
            row.append(CalendarDay(
                date=iso,
                day=day.day,
                is_past=day < today,
                is_today=day == today,
                is_selected=iso == selected_date,
                is_open=service.is_open_on(day.isoweekday()) if service else True,
            ))
        weeks.append(row)
    return weeks
