"""
schedule_stats.py

Per-employee totals over a date range, shared by the grid footer and the
statistics block of the Excel export.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Tuple

import shift_catalog as sc
from schedule_models import Employee, StoreSchedule, date_key
from shift_codes import decode

# (row label, PeriodStats attribute) in export order
STAT_ROWS: List[Tuple[str, str]] = [
    ("A/P 班數", "ap"),
    ("全天班數", "full"),
    ("特休時數", "annual"),
    ("加班時數", "ot"),
    ("總工時", "total"),
]


@dataclass(frozen=True)
class PeriodStats:
    ap: int = 0
    full: int = 0
    annual: int = 0
    ot: int = 0
    total: int = 0


def period_stats(
    employee_id: str,
    schedule: StoreSchedule,
    dates: Iterable[date],
    shift_definitions: Dict[str, sc.ShiftDefinition],
) -> PeriodStats:
    ap = full = annual = ot = total = 0
    lesson_def = shift_definitions.get(sc.LESSON)
    lesson_ot = (lesson_def.default_overtime or 0) if lesson_def else 0

    for d in dates:
        raw = schedule.get(date_key(d), {}).get(employee_id)
        cell = decode(raw)
        if cell.code is None:
            continue
        sdef = shift_definitions.get(cell.code)
        if sdef is None:
            continue

        if sdef.code == sc.ANNUAL or sdef.category == "leave":
            annual += cell.overtime_hours if cell.overtime_hours > 0 else sdef.hours
            continue

        if sdef.category == "ap":
            ap += 1
        elif sdef.category == "full":
            full += 1

        if cell.overtime_hours > 0:
            ot += cell.overtime_hours
        elif sdef.default_overtime:
            ot += sdef.default_overtime
        if cell.is_lesson:
            ot += lesson_ot

        total += sdef.hours + cell.overtime_hours

    return PeriodStats(ap=ap, full=full, annual=annual, ot=ot, total=total)


def stats_for_employees(
    employees: Iterable[Employee],
    schedule: StoreSchedule,
    dates: Iterable[date],
    shift_definitions: Dict[str, sc.ShiftDefinition],
) -> Dict[str, PeriodStats]:
    days = list(dates)
    return {e.id: period_stats(e.id, schedule, days, shift_definitions) for e in employees}
