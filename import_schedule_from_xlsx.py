#!/usr/bin/env python3
"""
import_schedule_from_xlsx.py

Importer for store shift sheets (one row per date, one column per employee)
into a ScheduleProject.

Expected sheet shape (first worksheet):

    row h-2:  staff codes         |      | 1001 | 1002 | 2001   |
    row h-1:  names               |      | 王小明 | 陳小美 | 林藥師  |
    row h:    日期 | 星期 | 備註    | 門市 | 門市  | 藥師   |   <- header row
    row h+1:  12/30 | 一  | ...    | A    | P1   | (特休) |
    ...

- The header row is the LAST row whose column A is exactly 日期.
- Employee columns are those with a name above the header; the header label
  only decides the department (藥師 -> dispensing).
- Dates usually carry month/day only. The year comes from the sheet name
  (ROC years like 114), a 114年 / 2025年 title above the header, and the
  weekday of the first date; it rolls over on every Dec -> Jan step.
- Unknown shift text never fails the import: it becomes a CUSTOM_<text> shift.
"""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import openpyxl
from openpyxl.utils.datetime import from_excel

import shift_catalog as sc
from normalize_shift_text import normalize_shift_text
from schedule_models import (
    DISPENSING,
    RETAIL,
    Employee,
    ScheduleProject,
    StoreSchedule,
    date_key,
    now_millis,
    save_project_json,
)


# ----------------------------
# Errors
# ----------------------------

class ScheduleImportError(ValueError):
    """Import aborted; nothing was built."""


class UnreadableWorkbookError(ScheduleImportError):
    pass


class TooFewRowsError(ScheduleImportError):
    pass


class HeaderNotFoundError(ScheduleImportError):
    pass


class HeaderTooHighError(ScheduleImportError):
    pass


class NoEmployeesError(ScheduleImportError):
    pass


# ----------------------------
# Config
# ----------------------------

ROC_OFFSET = 1911

WEEKDAY_SUN0 = {"日": 0, "天": 0, "一": 1, "二": 2, "三": 3, "四": 4, "五": 5, "六": 6}


@dataclass
class ImportConfig:
    header_marker: str = "日期"
    skip_labels: Tuple[str, ...] = ("日期", "星期", "進貨日", "備註")
    pharmacist_marker: str = "藥師"
    min_rows: int = 5
    default_store_name: str = "匯入分店"
    max_store_name_len: int = 8   # accepted only if shorter than this
    fallback_years: Tuple[int, ...] = (2025, 2026)
    strict: bool = False


# ----------------------------
# Cells
# ----------------------------

@dataclass(frozen=True)
class Cell:
    kind: str          # "empty" | "text" | "number" | "date"
    value: object = None


EMPTY_CELL = Cell("empty")


def read_cell(v) -> Cell:
    if v is None:
        return EMPTY_CELL
    if isinstance(v, bool):
        return Cell("text", str(v))
    if isinstance(v, (datetime, date)):
        return Cell("date", v)
    if isinstance(v, (int, float)):
        return Cell("number", v)
    s = str(v)
    if not s.strip():
        return EMPTY_CELL
    return Cell("text", s)


def cell_text(cell: Cell) -> str:
    if cell.kind == "empty":
        return ""
    if cell.kind == "number":
        v = cell.value
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)
    if cell.kind == "date":
        return f"{cell.value.month}/{cell.value.day}"
    return str(cell.value).strip()


_MONTH_DAY_RE = re.compile(r"^(?:\d{4}/)?(\d{1,2})/(\d{1,2})")


def cell_month_day(cell: Cell) -> Optional[Tuple[int, int]]:
    """(month, day) from a date cell, an Excel serial, or text like 12/25."""
    if cell.kind == "date":
        return cell.value.month, cell.value.day
    if cell.kind == "number":
        if cell.value < 1:
            return None
        try:
            dt = from_excel(cell.value)
        except (ValueError, OverflowError, TypeError):
            return None
        return dt.month, dt.day
    if cell.kind == "text":
        token = str(cell.value).strip().split(" ")[0]
        m = _MONTH_DAY_RE.match(token)
        if not m:
            return None
        month, day = int(m.group(1)), int(m.group(2))
        if 1 <= month <= 12:
            return month, day
    return None


def _at(row: Sequence[Cell], c: int) -> Cell:
    return row[c] if c < len(row) else EMPTY_CELL


def weekday_sun0(d: date) -> int:
    return (d.weekday() + 1) % 7


def parse_weekday(text: str) -> Optional[int]:
    t = text.strip()
    for prefix in ("星期", "週", "周"):
        if t.startswith(prefix):
            t = t[len(prefix):]
    return WEEKDAY_SUN0.get(t)


# ----------------------------
# Year resolution
# ----------------------------

_SHEET_YEAR_RE = re.compile(r"(?<!\d)(\d{3,4})(?!\d)")
_ROC_YEAR_RE = re.compile(r"(?<!\d)(\d{3})年")
_AD_YEAR_RE = re.compile(r"(?<!\d)(20\d{2})年")


def year_from_sheet_name(sheet_name: str, default: int) -> int:
    for m in _SHEET_YEAR_RE.finditer(sheet_name or ""):
        n = int(m.group(1))
        if len(m.group(1)) == 3 and 100 < n < 200:
            return n + ROC_OFFSET
        if len(m.group(1)) == 4 and 1900 <= n < 2200:
            return n
    return default


def year_from_header_rows(rows: Sequence[Sequence[Cell]], header_idx: int) -> Optional[int]:
    for row in rows[:header_idx + 1]:
        line = " ".join(cell_text(c) for c in row)
        m = _ROC_YEAR_RE.search(line)
        if m:
            return int(m.group(1)) + ROC_OFFSET
        m = _AD_YEAR_RE.search(line)
        if m:
            return int(m.group(1))
    return None


def candidate_years(detected: int, fallback: Sequence[int] = (2025, 2026)) -> List[int]:
    out: List[int] = []
    for y in [detected, detected - 1, detected + 1, *fallback]:
        if y not in out:
            out.append(y)
    return out


def resolve_first_year(
    detected: int,
    month: int,
    day: int,
    weekday: Optional[int],
    fallback: Sequence[int] = (2025, 2026),
) -> int:
    """Year of the first data row.

    With a weekday (Sun=0..Sat=6): first candidate year on which month/day
    falls on that weekday. Without one: a December start belongs to the
    year before the detected one.
    """
    if weekday is not None:
        for y in candidate_years(detected, fallback):
            try:
                d = date(y, month, day)
            except ValueError:
                continue
            if weekday_sun0(d) == weekday:
                return y
        return detected
    if month == 12 and detected > 2000:
        return detected - 1
    return detected


# ----------------------------
# Importer
# ----------------------------

def load_rows(data: bytes) -> Tuple[str, List[List[Cell]]]:
    try:
        wb = openpyxl.load_workbook(BytesIO(data), data_only=True)
    except Exception as e:
        raise UnreadableWorkbookError(f"Could not read the file as an Excel workbook: {e}") from e
    ws = wb.worksheets[0]
    rows = [[read_cell(v) for v in r] for r in ws.iter_rows(values_only=True)]
    return ws.title, rows


def find_header_row(rows: Sequence[Sequence[Cell]], marker: str) -> int:
    idx = -1
    for i, row in enumerate(rows):
        if cell_text(_at(row, 0)) == marker:
            idx = i
    return idx


def extract_employees(
    header_row: Sequence[Cell],
    name_row: Sequence[Cell],
    id_row: Sequence[Cell],
    cfg: ImportConfig,
) -> Tuple[List[Employee], Dict[int, str]]:
    employees: List[Employee] = []
    col_to_emp: Dict[int, str] = {}
    stamp = now_millis()

    for c in range(len(header_row)):
        label = cell_text(_at(header_row, c))
        name = cell_text(_at(name_row, c))
        if label in cfg.skip_labels or not name:
            continue

        code = cell_text(_at(id_row, c))
        emp_id = code or f"EMP_{stamp}_{c}"
        if emp_id in col_to_emp.values():
            emp_id = f"{emp_id}_{c}"

        dept = DISPENSING if cfg.pharmacist_marker in label else RETAIL
        employees.append(Employee(id=emp_id, name=name, department=dept, code=code, role=label))
        col_to_emp[c] = emp_id

    return employees, col_to_emp


def _warn(msg: str, cfg: ImportConfig):
    if cfg.strict:
        raise ScheduleImportError(msg)
    print(f"⚠️  {msg}")


def build_project(sheet_name: str, rows: List[List[Cell]], cfg: ImportConfig) -> ScheduleProject:
    if len(rows) < cfg.min_rows:
        raise TooFewRowsError(f"Sheet has only {len(rows)} rows; at least {cfg.min_rows} are needed.")

    header_idx = find_header_row(rows, cfg.header_marker)
    if header_idx == -1:
        raise HeaderNotFoundError(f"No header row found: column A never reads {cfg.header_marker!r}.")
    if header_idx < 2:
        raise HeaderTooHighError(
            f"Header row {header_idx + 1} is too close to the top; "
            f"the staff-code and name rows must sit above it."
        )

    header_row = rows[header_idx]
    name_row = rows[header_idx - 1]
    id_row = rows[header_idx - 2]

    employees, col_to_emp = extract_employees(header_row, name_row, id_row, cfg)
    if not employees:
        raise NoEmployeesError("No employees found: the row above the header has no names.")

    detected = year_from_sheet_name(sheet_name, date.today().year)
    explicit = year_from_header_rows(rows, header_idx)
    if explicit is not None:
        detected = explicit

    defs = sc.default_shift_definitions()
    schedule: StoreSchedule = {}
    min_d: Optional[date] = None
    max_d: Optional[date] = None

    year = detected
    last_month: Optional[int] = None

    for i in range(header_idx + 1, len(rows)):
        row = rows[i]
        md = cell_month_day(_at(row, 0))
        if md is None:
            continue
        month, day = md

        if last_month is None:
            weekday = parse_weekday(cell_text(_at(row, 1)))
            year = resolve_first_year(detected, month, day, weekday, cfg.fallback_years)
            last_month = month
        if last_month == 12 and month == 1:
            year += 1
        last_month = month

        try:
            d = date(year, month, day)
        except ValueError:
            _warn(f"Row {i + 1}: {month}/{day} is not a valid date in {year}; skipped.", cfg)
            continue

        min_d = d if min_d is None or d < min_d else min_d
        max_d = d if max_d is None or d > max_d else max_d

        day_cells: Dict[str, str] = {}
        for c, emp_id in col_to_emp.items():
            text = cell_text(_at(row, c))
            if not text:
                continue
            code = normalize_shift_text(text)
            if code is None:
                code = sc.custom_code_for(text)
                if code not in defs:
                    defs[code] = sc.custom_shift_definition(text)
            day_cells[emp_id] = code
        if day_cells:
            schedule.setdefault(date_key(d), {}).update(day_cells)

    if min_d is None or max_d is None:
        min_d = max_d = date.today()

    store_name = cfg.default_store_name
    if header_idx + 1 < len(rows):
        loc = cell_text(_at(rows[header_idx + 1], 2))
        if loc and len(loc) < cfg.max_store_name_len:
            store_name = loc

    stamp = now_millis()
    return ScheduleProject(
        id=f"proj_{stamp}",
        name=f"{min_d.year}年{min_d.month}月 排班表",
        store_name=store_name,
        start_date=date_key(min_d),
        end_date=date_key(max_d),
        employees=employees,
        schedule=schedule,
        shift_definitions=defs,
        last_modified=stamp,
    )


def import_schedule(data: bytes, cfg: Optional[ImportConfig] = None) -> ScheduleProject:
    cfg = cfg or ImportConfig()
    sheet_name, rows = load_rows(data)
    return build_project(sheet_name, rows, cfg)


def import_schedule_file(path: str, cfg: Optional[ImportConfig] = None) -> ScheduleProject:
    return import_schedule(Path(path).read_bytes(), cfg)


# ----------------------------
# CLI
# ----------------------------

def main():
    ap = argparse.ArgumentParser(description="Import a store shift sheet (.xlsx) into a project JSON file.")
    ap.add_argument("--in", dest="inp", required=True, help="Input XLSX shift sheet")
    ap.add_argument("--out", dest="out", required=True, help="Output project JSON path")
    ap.add_argument("--strict", action="store_true", help="Treat warnings (invalid dates) as errors")
    args = ap.parse_args()

    project = import_schedule_file(args.inp, ImportConfig(strict=args.strict))
    save_project_json(project, args.out)

    custom = [c for c in project.shift_definitions if sc.is_custom_code(c)]
    print(f"✅ Imported {len(project.employees)} employees, {len(project.schedule)} days "
          f"({project.start_date} → {project.end_date}) → {args.out}")
    if custom:
        print(f"⚠️  {len(custom)} unrecognized shift texts became custom shifts: "
              + ", ".join(project.shift_definitions[c].label for c in custom))


if __name__ == "__main__":
    main()
