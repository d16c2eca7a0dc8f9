"""Tests for importing store shift sheets."""

from datetime import date, datetime

import pytest

import shift_catalog as sc
from conftest import make_xlsx, sheet_rows
from export_schedule_to_xlsx import cell_text as export_cell_text
from import_schedule_from_xlsx import (
    EMPTY_CELL,
    Cell,
    HeaderNotFoundError,
    HeaderTooHighError,
    ImportConfig,
    NoEmployeesError,
    ScheduleImportError,
    TooFewRowsError,
    UnreadableWorkbookError,
    candidate_years,
    cell_month_day,
    cell_text,
    import_schedule,
    import_schedule_file,
    parse_weekday,
    read_cell,
    resolve_first_year,
    year_from_header_rows,
    year_from_sheet_name,
)
from schedule_models import DISPENSING, RETAIL
from shift_codes import decode


class TestCells:
    """Tests for the cell tagged union."""

    def test_read_cell_kinds(self):
        assert read_cell(None) is EMPTY_CELL
        assert read_cell("  ") is EMPTY_CELL
        assert read_cell("A").kind == "text"
        assert read_cell(3).kind == "number"
        assert read_cell(datetime(2025, 1, 6)).kind == "date"

    def test_cell_text(self):
        assert cell_text(EMPTY_CELL) == ""
        assert cell_text(Cell("text", " A1 ")) == "A1"
        assert cell_text(Cell("number", 1001.0)) == "1001"
        assert cell_text(Cell("number", 7)) == "7"

    def test_month_day_from_text(self):
        assert cell_month_day(Cell("text", "12/25")) == (12, 25)
        assert cell_month_day(Cell("text", "1/5 (一)")) == (1, 5)
        assert cell_month_day(Cell("text", "2025/1/5")) == (1, 5)

    def test_month_day_from_date(self):
        assert cell_month_day(Cell("date", datetime(2025, 3, 9))) == (3, 9)

    def test_month_day_from_serial(self):
        assert cell_month_day(Cell("number", 45663)) == (1, 6)

    @pytest.mark.parametrize("cell", [EMPTY_CELL, Cell("text", "合計"), Cell("text", "13/1"), Cell("number", 0)])
    def test_month_day_unusable(self, cell):
        assert cell_month_day(cell) is None

    def test_parse_weekday(self):
        assert parse_weekday("三") == 3
        assert parse_weekday("星期日") == 0
        assert parse_weekday("週六") == 6
        assert parse_weekday("") is None
        assert parse_weekday("x") is None


class TestYearResolution:
    """Tests for the year heuristics."""

    def test_sheet_name_roc_year(self):
        assert year_from_sheet_name("114年12月", 2000) == 2025

    def test_sheet_name_ad_year(self):
        assert year_from_sheet_name("2024 班表", 2000) == 2024

    def test_sheet_name_without_year(self):
        assert year_from_sheet_name("Sheet1", 2030) == 2030
        assert year_from_sheet_name("第 250 期", 2030) == 2030

    def test_header_rows_roc(self):
        rows = [[Cell("text", "113年度 1月排班")], [EMPTY_CELL]]
        assert year_from_header_rows(rows, 1) == 2024

    def test_header_rows_ad_is_not_read_as_roc(self):
        rows = [[Cell("text", "2024年 排班表")]]
        assert year_from_header_rows(rows, 0) == 2024

    def test_header_rows_first_match_wins(self):
        rows = [[Cell("text", "2023年")], [Cell("text", "114年")]]
        assert year_from_header_rows(rows, 1) == 2023

    def test_header_rows_below_header_ignored(self):
        rows = [[Cell("text", "日期")], [Cell("text", "2023年")]]
        assert year_from_header_rows(rows, 0) is None

    def test_candidate_order(self):
        assert candidate_years(2025) == [2025, 2024, 2026]
        assert candidate_years(2030) == [2030, 2029, 2031, 2025, 2026]

    def test_weekday_picks_matching_year(self):
        """12/25 on a Wednesday is 2024 (in 2025 it is a Thursday)."""
        assert resolve_first_year(2025, 12, 25, 3) == 2024

    def test_weekday_detected_year_first(self):
        assert resolve_first_year(2025, 12, 25, 4) == 2025

    def test_weekday_fallback_years(self):
        # 2026-01-01 is a Thursday; not among 2030 +/- 1
        assert resolve_first_year(2030, 1, 1, 4) == 2026

    def test_weekday_without_match_keeps_detected(self):
        # Feb 29 2024 is a Thursday, no candidate has it on a Sunday
        assert resolve_first_year(2025, 2, 29, 0) == 2025

    def test_december_start_without_weekday(self):
        assert resolve_first_year(2025, 12, 1, None) == 2024

    def test_other_month_without_weekday(self):
        assert resolve_first_year(2025, 3, 1, None) == 2025


class TestImport:
    """End-to-end imports."""

    def test_project_fields(self, year_end_sheet):
        p = import_schedule(year_end_sheet)
        assert p.start_date == "2025-12-30"
        assert p.end_date == "2026-01-02"
        assert p.name == "2025年12月 排班表"
        assert p.store_name == "東勢"
        assert p.id.startswith("proj_")

    def test_roster(self, year_end_sheet):
        p = import_schedule(year_end_sheet)
        assert [(e.id, e.name, e.department) for e in p.employees] == [
            ("1001", "王小明", RETAIL),
            ("1002", "陳小美", RETAIL),
            ("2001", "林藥師", DISPENSING),
        ]
        assert p.employees[2].code == "2001"
        assert p.employees[2].role == "藥師"

    def test_schedule(self, year_end_sheet):
        p = import_schedule(year_end_sheet)
        assert p.schedule == {
            "2025-12-30": {"1001": sc.A, "1002": sc.P, "2001": sc.ANNUAL},
            "2025-12-31": {"1001": sc.A_FULL, "1002": "CUSTOM_XYZ", "2001": sc.OFF},
            "2026-01-01": {"1001": "CUSTOM_XYZ", "2001": sc.ANNUAL},
            "2026-01-02": {"1001": sc.A, "1002": sc.LESSON},
        }

    def test_year_rolls_over_once(self, year_end_sheet):
        p = import_schedule(year_end_sheet)
        years = sorted({k[:4] for k in p.schedule})
        assert years == ["2025", "2026"]

    def test_custom_code_minted_once(self, year_end_sheet):
        p = import_schedule(year_end_sheet)
        custom = [c for c in p.shift_definitions if sc.is_custom_code(c)]
        assert custom == ["CUSTOM_XYZ"]
        d = p.shift_definitions["CUSTOM_XYZ"]
        assert (d.label, d.short_label, d.hours, d.sort_order) == ("XYZ", "XY", 0, 99)

    def test_catalog_not_shared_between_imports(self, year_end_sheet):
        import_schedule(year_end_sheet)
        assert "CUSTOM_XYZ" not in sc.default_shift_definitions()

    def test_weekday_decides_year(self):
        rows = sheet_rows(["12/25", "三", None, "A", None, None])
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert p.start_date == "2024-12-25"

    def test_explicit_year_above_header(self):
        rows = sheet_rows(["3/4", None, None, "A", None, None], title="2024年 排班表")
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert p.start_date == "2024-03-04"
        assert p.name == "2024年3月 排班表"

    def test_december_without_weekday(self):
        rows = sheet_rows(
            ["12/31", None, None, "A", None, None],
            ["1/1", None, None, "P", None, None],
        )
        p = import_schedule(make_xlsx(rows, sheet_name="115年1月"))
        assert list(p.schedule) == ["2025-12-31", "2026-01-01"]

    def test_real_dates_in_date_column(self):
        rows = sheet_rows(
            [datetime(2025, 1, 6), "一", None, "A", "P", None],
            [45664, "二", None, "P", "A", None],
        )
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert p.start_date == "2025-01-06"
        assert p.end_date == "2025-01-07"

    def test_invalid_date_row_is_skipped(self, capsys):
        rows = sheet_rows(
            ["2/27", None, None, "A", None, None],
            ["2/30", None, None, "A", None, None],
            ["3/1", None, None, "P", None, None],
        )
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert list(p.schedule) == ["2025-02-27", "2025-03-01"]
        assert "2/30" in capsys.readouterr().out

    def test_invalid_date_strict(self):
        rows = sheet_rows(
            ["2/27", None, None, "A", None, None],
            ["2/30", None, None, "A", None, None],
        )
        with pytest.raises(ScheduleImportError):
            import_schedule(make_xlsx(rows, sheet_name="114"), ImportConfig(strict=True))

    def test_rows_without_dates_are_skipped(self):
        rows = sheet_rows(
            ["1/6", "一", None, "A", None, None],
            ["合計", None, None, "20", None, None],
            [None, None, None, "A", None, None],
        )
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert list(p.schedule) == ["2025-01-06"]

    def test_long_store_name_falls_back(self):
        rows = sheet_rows(["1/6", "一", "這是一段很長的備註文字", "A", None, None])
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert p.store_name == "匯入分店"

    def test_generated_and_duplicate_ids(self):
        rows = [
            ["title"],
            [None, None, "1001", "1001", None],
            [None, None, "甲", "乙", "丙"],
            ["日期", "星期", "門市", "門市", "門市"],
            ["1/6", "一", "A", "P", "A"],
        ]
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        ids = [e.id for e in p.employees]
        assert ids[0] == "1001"
        assert ids[1] == "1001_3"
        assert ids[2].startswith("EMP_")
        assert len(set(ids)) == 3

    def test_last_header_row_is_used(self):
        rows = [
            ["日期"],
            ["title"],
            [None, None, "1001"],
            [None, None, "甲"],
            ["日期", "星期", "門市"],
            ["1/6", "一", "P"],
        ]
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        assert p.schedule == {"2025-01-06": {"1001": sc.P}}

    def test_no_dates_still_imports(self):
        rows = sheet_rows(["合計", None, None, None, None, None])
        p = import_schedule(make_xlsx(rows))
        assert p.schedule == {}
        assert p.start_date == p.end_date == date.today().isoformat()

    def test_custom_text_with_colon_survives_export(self):
        rows = sheet_rows(["1/6", "一", None, "9:00-13:00", None, None])
        p = import_schedule(make_xlsx(rows, sheet_name="114"))
        raw = p.schedule["2025-01-06"]["1001"]
        assert decode(raw).code == raw
        assert p.shift_definitions[raw].label == "9:00-13:00"
        assert export_cell_text(raw, p.shift_definitions) == "9:"

    def test_import_from_file(self, tmp_path, year_end_sheet):
        path = tmp_path / "in.xlsx"
        path.write_bytes(year_end_sheet)
        assert import_schedule_file(str(path)).start_date == "2025-12-30"


class TestImportErrors:
    """Structural problems abort the import."""

    def test_unreadable(self):
        with pytest.raises(UnreadableWorkbookError):
            import_schedule(b"this is not a workbook")

    def test_too_few_rows(self):
        with pytest.raises(TooFewRowsError):
            import_schedule(make_xlsx([["日期"], ["1/1"], ["1/2"]]))

    def test_header_missing(self):
        rows = [["x"], ["y"], ["z"], ["Date", "Day"], ["1/1", "A"], ["1/2", "P"]]
        with pytest.raises(HeaderNotFoundError):
            import_schedule(make_xlsx(rows))

    def test_header_marker_must_be_exact(self):
        rows = [["x"], ["y"], ["z"], ["日期x"], ["日期:"], ["1/2", "P"]]
        with pytest.raises(HeaderNotFoundError):
            import_schedule(make_xlsx(rows))

    def test_header_too_high(self):
        rows = [["甲"], ["日期", "星期", "門市"], ["1/1", "三", "A"], ["1/2", "四", "A"], ["1/3", "五", "A"]]
        with pytest.raises(HeaderTooHighError):
            import_schedule(make_xlsx(rows))

    def test_no_employees(self):
        rows = [
            ["title"],
            [None, None, "1001"],
            [None, None, None],
            ["日期", "星期", "門市"],
            ["1/6", "一", "A"],
        ]
        with pytest.raises(NoEmployeesError):
            import_schedule(make_xlsx(rows))

    def test_errors_are_value_errors(self):
        assert issubclass(HeaderNotFoundError, ValueError)
        assert issubclass(NoEmployeesError, ScheduleImportError)
