"""Shared fixtures: in-memory workbooks shaped like store shift sheets."""

from io import BytesIO

import openpyxl
import pytest


def make_xlsx(rows, sheet_name="Sheet1") -> bytes:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_name
    for row in rows:
        ws.append(list(row))
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def sheet_rows(*data_rows, title="東勢店 排班表"):
    """Title, staff codes, names, header, then the given data rows."""
    return [
        [title],
        [None, None, None, "1001", "1002", "2001"],
        [None, None, None, "王小明", "陳小美", "林藥師"],
        ["日期", "星期", "備註", "門市", "門市", "藥師"],
        *data_rows,
    ]


@pytest.fixture
def year_end_sheet() -> bytes:
    """Four days across New Year, 2025-12-30 (Tue) .. 2026-01-02 (Fri)."""
    rows = sheet_rows(
        ["12/30", "二", "東勢", "A", "P1", "(特休)"],
        ["12/31", "三", None, "A全", "XYZ", "休"],
        ["1/1", "四", None, "XYZ", None, "A1/特休"],
        ["1/2", "五", None, "A/P", "上課", None],
    )
    return make_xlsx(rows, sheet_name="114年12月")
