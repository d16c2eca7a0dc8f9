#!/usr/bin/env python3
"""
export_schedule_to_xlsx.py

Writes a project's schedule as a printable Excel sheet:

    row 1       <store> 排班表 (yyyy/MM/dd - yyyy/MM/dd)          (merged)
    row 2       日期 | 星期 | retail names... | (spacer) | dispensing names...
    rows 3..    MM/dd | 一 | shift short labels (+2, /上, 特(4)) ...
    (blank)
    統計
    A/P 班數 / 全天班數 / 特休時數 / 加班時數 / 總工時   (empty when 0)

A spacer column separates retail from dispensing only when both are present.
"""

from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import openpyxl
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

import shift_catalog as sc
from schedule_models import (
    DISPENSING,
    Employee,
    ScheduleProject,
    StoreSchedule,
    date_key,
    load_project_json,
)
from schedule_stats import STAT_ROWS, period_stats
from shift_codes import decode


class ScheduleExportError(RuntimeError):
    pass


# ----------------------------
# Constants / settings
# ----------------------------

WEEKDAYS_ZH = ["日", "一", "二", "三", "四", "五", "六"]   # Sun=0
LESSON_SUFFIX = "/上"
TITLE_SUFFIX = "排班表"
STATS_LABEL = "統計"
DEFAULT_SHEET_NAME = "排班表"
MAX_SHEET_NAME = 31

WEEKEND_FILL = "FFF2CC"

FONT_TITLE = Font(name="Calibri", size=14, bold=True)
FONT_HEADER = Font(name="Calibri", size=11, bold=True)
FONT_MAIN = Font(name="Calibri", size=11)
ALIGN_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)

THIN_BORDER = Border(left=Side(style='thin'),
                     right=Side(style='thin'),
                     top=Side(style='thin'),
                     bottom=Side(style='thin'))

_HEX_COLOR_RE = re.compile(r"[0-9A-Fa-f]{6}([0-9A-Fa-f]{2})?")
_SHEET_ILLEGAL_RE = re.compile(r"[\[\]:*?/\\]")
_FILE_ILLEGAL_RE = re.compile(r'[\\/:*?"<>|]')


@dataclass
class ExportConfig:
    date_col_width: float = 8
    weekday_col_width: float = 5
    employee_col_width: float = 10
    spacer_col_width: float = 2
    color_cells: bool = True


# ----------------------------
# Helpers
# ----------------------------

def weekday_sun0(d: date) -> int:
    return (d.weekday() + 1) % 7


def is_weekend(d: date) -> bool:
    return d.weekday() >= 5


def weekday_label(d: date) -> str:
    return WEEKDAYS_ZH[weekday_sun0(d)]


def safe_sheet_name(store_name: str) -> str:
    name = _SHEET_ILLEGAL_RE.sub("", store_name or "").strip()
    return name[:MAX_SHEET_NAME] or DEFAULT_SHEET_NAME


def safe_file_part(s: str) -> str:
    return _FILE_ILLEGAL_RE.sub("", s or "").strip()


def export_filename(store_name: str, start: date) -> str:
    store = safe_file_part(store_name) or DEFAULT_SHEET_NAME
    return f"{store}_{TITLE_SUFFIX}_{start.strftime('%Y%m%d')}.xlsx"


def cell_text(raw: Optional[str], shift_definitions: Dict[str, sc.ShiftDefinition]) -> str:
    """Display text for one stored cell, same as the grid shows it."""
    cell = decode(raw)
    if cell.code is None:
        return ""
    sdef = shift_definitions.get(cell.code)
    if sdef is None:
        return ""
    text = sdef.short_label or sdef.code
    if sdef.code == sc.ANNUAL:
        if cell.overtime_hours > 0 and cell.overtime_hours != sdef.hours:
            text += f"({cell.overtime_hours})"
    else:
        if cell.overtime_hours > 0:
            text += f"+{cell.overtime_hours}"
        if cell.is_lesson:
            text += LESSON_SUFFIX
    return text


def shift_fill(color: Optional[str]) -> Optional[PatternFill]:
    """Solid fill for an (a)RGB hex token; other tokens (e.g. CSS class names) get no fill."""
    if not color or not _HEX_COLOR_RE.fullmatch(color):
        return None
    return PatternFill("solid", fgColor=color)


def column_layout(employees: Sequence[Employee]) -> List[Optional[Employee]]:
    """Employee per data column after 日期/星期; None marks the spacer."""
    retail = [e for e in employees if e.department != DISPENSING]
    dispensing = [e for e in employees if e.department == DISPENSING]
    cols: List[Optional[Employee]] = list(retail)
    if retail and dispensing:
        cols.append(None)
    cols.extend(dispensing)
    return cols


# ----------------------------
# Layout
# ----------------------------

def build_workbook(
    store_name: str,
    employees: Sequence[Employee],
    schedule: StoreSchedule,
    date_range: Sequence[date],
    shift_definitions: Dict[str, sc.ShiftDefinition],
    cfg: Optional[ExportConfig] = None,
) -> openpyxl.Workbook:
    cfg = cfg or ExportConfig()
    days = list(date_range)
    cols = column_layout(employees)
    ncols = 2 + len(cols)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = safe_sheet_name(store_name)

    # title
    if days:
        span = f"{days[0].strftime('%Y/%m/%d')} - {days[-1].strftime('%Y/%m/%d')}"
    else:
        span = ""
    ws.cell(1, 1, f"{store_name} {TITLE_SUFFIX} ({span})")
    ws.cell(1, 1).font = FONT_TITLE
    ws.cell(1, 1).alignment = ALIGN_CENTER
    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=ncols)

    # header
    header = ["日期", "星期"] + [e.name if e else None for e in cols]
    for c, v in enumerate(header, start=1):
        cell = ws.cell(2, c, v)
        cell.font = FONT_HEADER
        cell.alignment = ALIGN_CENTER
        if c <= 2 or cols[c - 3] is not None:
            cell.border = THIN_BORDER

    weekend_fill = PatternFill("solid", fgColor=WEEKEND_FILL)

    # one row per date
    r = 3
    for d in days:
        row_cells = schedule.get(date_key(d), {})
        weekend = is_weekend(d)

        ws.cell(r, 1, d.strftime("%m/%d"))
        ws.cell(r, 2, weekday_label(d))
        for c in (1, 2):
            ws.cell(r, c).alignment = ALIGN_CENTER
            ws.cell(r, c).border = THIN_BORDER
            if weekend:
                ws.cell(r, c).fill = weekend_fill

        for i, emp in enumerate(cols):
            if emp is None:
                continue
            raw = row_cells.get(emp.id)
            cell = ws.cell(r, 3 + i, cell_text(raw, shift_definitions) or None)
            cell.font = FONT_MAIN
            cell.alignment = ALIGN_CENTER
            cell.border = THIN_BORDER
            sdef = shift_definitions.get(decode(raw).code or "")
            if cfg.color_cells and sdef is not None:
                fill = shift_fill(sdef.weekend_color if weekend else sdef.color)
                if fill is not None:
                    cell.fill = fill
        r += 1

    # blank separator, then statistics
    r += 1
    ws.cell(r, 1, STATS_LABEL).font = FONT_HEADER
    ws.merge_cells(start_row=r, start_column=1, end_row=r, end_column=2)
    r += 1

    stats = {e.id: period_stats(e.id, schedule, days, shift_definitions) for e in cols if e is not None}
    for label, attr in STAT_ROWS:
        ws.cell(r, 1, label).font = FONT_HEADER
        ws.cell(r, 1).alignment = ALIGN_CENTER
        ws.merge_cells(start_row=r, start_column=1, end_row=r, end_column=2)
        for i, emp in enumerate(cols):
            if emp is None:
                continue
            v = getattr(stats[emp.id], attr)
            cell = ws.cell(r, 3 + i, v if v else None)
            cell.alignment = ALIGN_CENTER
            cell.border = THIN_BORDER
        r += 1

    # widths
    ws.column_dimensions["A"].width = cfg.date_col_width
    ws.column_dimensions["B"].width = cfg.weekday_col_width
    for i, emp in enumerate(cols):
        letter = get_column_letter(3 + i)
        ws.column_dimensions[letter].width = cfg.employee_col_width if emp else cfg.spacer_col_width

    ws.freeze_panes = "C3"
    return wb


def export_schedule(
    store_name: str,
    employees: Sequence[Employee],
    schedule: StoreSchedule,
    date_range: Sequence[date],
    shift_definitions: Dict[str, sc.ShiftDefinition],
    cfg: Optional[ExportConfig] = None,
) -> bytes:
    wb = build_workbook(store_name, employees, schedule, date_range, shift_definitions, cfg)
    buf = BytesIO()
    try:
        wb.save(buf)
    except Exception as e:
        raise ScheduleExportError(f"Could not write the Excel workbook: {e}") from e
    return buf.getvalue()


def export_project(project: ScheduleProject, out_dir: str = ".", cfg: Optional[ExportConfig] = None) -> Path:
    days = project.date_range()
    data = export_schedule(project.store_name, project.employees, project.schedule, days,
                           project.shift_definitions, cfg)
    start = days[0] if days else date.today()
    out_path = Path(out_dir) / export_filename(project.store_name, start)
    try:
        out_path.write_bytes(data)
    except OSError as e:
        raise ScheduleExportError(f"Could not save {out_path}: {e}") from e
    return out_path


# ----------------------------
# CLI
# ----------------------------

def main():
    ap = argparse.ArgumentParser(description="Export a project JSON file as an Excel shift sheet.")
    ap.add_argument("--in", dest="inp", required=True, help="Project JSON path")
    ap.add_argument("--out-dir", default=".", help="Directory for the .xlsx file (default: current)")
    ap.add_argument("--no-colors", action="store_true", help="Do not fill shift cells with shift colors")
    args = ap.parse_args()

    project = load_project_json(args.inp)
    out_path = export_project(project, args.out_dir, ExportConfig(color_cells=not args.no_colors))
    print(f"✅ Excel: {out_path}")


if __name__ == "__main__":
    main()
