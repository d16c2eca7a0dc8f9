"""
schedule_models.py

Employees, the sparse schedule map and the project record.

Schedule JSON (machine truth, same shape the grid persists):
{
  "2025-01-06": {"E001": "A", "E002": "P:2", "E003": "ANNUAL:4"},
  ...
}
A missing date or employee means "unassigned", which is not the same as OFF.
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Iterator, List

from shift_catalog import ShiftDefinition, catalog_from_dict, catalog_to_dict, default_shift_definitions

StoreSchedule = Dict[str, Dict[str, str]]

RETAIL = "retail"
DISPENSING = "dispensing"
DEPARTMENTS = {
    RETAIL: "門市部",
    DISPENSING: "調劑部",
}

_DATE_KEY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


# ----------------------------
# Date helpers
# ----------------------------

def daterange(start: date, end: date) -> Iterator[date]:
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def date_key(d: date) -> str:
    return d.isoformat()


def parse_date_key(s: str) -> date:
    if not _DATE_KEY_RE.match(s or ""):
        raise ValueError(f"Invalid date key: {s!r} (Must be YYYY-MM-DD)")
    return date.fromisoformat(s)


def now_millis() -> int:
    return int(time.time() * 1000)


# ----------------------------
# Entities
# ----------------------------

@dataclass
class Employee:
    id: str
    name: str
    department: str = RETAIL
    code: str = ""
    role: str = ""

    def to_dict(self) -> dict:
        d = {"id": self.id, "name": self.name, "department": self.department}
        if self.code:
            d["code"] = self.code
        if self.role:
            d["role"] = self.role
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "Employee":
        dept = d.get("department", RETAIL)
        if dept not in DEPARTMENTS:
            raise ValueError(f"Unknown department {dept!r} for employee {d.get('id')!r}")
        return cls(
            id=str(d["id"]),
            name=str(d.get("name", "")),
            department=dept,
            code=str(d.get("code") or ""),
            role=str(d.get("role") or ""),
        )


@dataclass
class ScheduleProject:
    id: str
    name: str
    store_name: str
    start_date: str
    end_date: str
    employees: List[Employee] = field(default_factory=list)
    schedule: StoreSchedule = field(default_factory=dict)
    shift_definitions: Dict[str, ShiftDefinition] = field(default_factory=default_shift_definitions)
    last_modified: int = field(default_factory=now_millis)

    def date_range(self) -> List[date]:
        start = parse_date_key(self.start_date)
        end = parse_date_key(self.end_date)
        return list(daterange(start, end))

    def contains(self, day: str) -> bool:
        d = parse_date_key(day)
        return parse_date_key(self.start_date) <= d <= parse_date_key(self.end_date)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "storeName": self.store_name,
            "startDate": self.start_date,
            "endDate": self.end_date,
            "employees": [e.to_dict() for e in self.employees],
            "schedule": self.schedule,
            "shiftDefinitions": catalog_to_dict(self.shift_definitions),
            "lastModified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ScheduleProject":
        schedule: StoreSchedule = {}
        for k, v in (d.get("schedule") or {}).items():
            parse_date_key(k)
            if not isinstance(v, dict):
                raise ValueError(f"Schedule invalid at key {k}: value must be a dictionary")
            schedule[k] = {str(emp): str(code) for emp, code in v.items()}
        defs = d.get("shiftDefinitions")
        return cls(
            id=str(d["id"]),
            name=str(d.get("name", "")),
            store_name=str(d.get("storeName", "")),
            start_date=d["startDate"],
            end_date=d["endDate"],
            employees=[Employee.from_dict(e) for e in d.get("employees", [])],
            schedule=schedule,
            shift_definitions=catalog_from_dict(defs) if defs else default_shift_definitions(),
            last_modified=int(d.get("lastModified") or now_millis()),
        )


# ----------------------------
# Schedule edits
# ----------------------------

def _check_in_range(project: ScheduleProject, day: str):
    if not project.contains(day):
        raise ValueError(f"{day} is outside {project.start_date}..{project.end_date}")


def set_cell(project: ScheduleProject, employee_id: str, day: str, raw_code: str):
    _check_in_range(project, day)
    project.schedule.setdefault(day, {})[employee_id] = raw_code
    project.last_modified = now_millis()


def clear_cell(project: ScheduleProject, employee_id: str, day: str):
    _check_in_range(project, day)
    row = project.schedule.get(day)
    if row and employee_id in row:
        del row[employee_id]
        if not row:
            del project.schedule[day]
        project.last_modified = now_millis()


def clear_all_shifts(project: ScheduleProject):
    project.schedule = {}
    project.last_modified = now_millis()


# ----------------------------
# JSON files
# ----------------------------

def load_project_json(path: str) -> ScheduleProject:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("Project JSON must be a dictionary")
    return ScheduleProject.from_dict(raw)


def save_project_json(project: ScheduleProject, path: str):
    Path(path).write_text(json.dumps(project.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")
