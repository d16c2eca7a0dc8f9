"""
shift_codes.py

Compact text form of one schedule cell, as stored in the schedule map:

    <code>[:<overtime hours>[:L]]

    "A"         -> A shift
    "A:2"       -> A shift + 2h overtime
    "P:0:L"     -> P shift with a lesson
    "ANNUAL:4"  -> 4 hours of annual leave

Anything without a base code decodes to "no assignment".
"""

from __future__ import annotations

from typing import NamedTuple, Optional

SEP = ":"
LESSON_MARK = "L"


class ShiftCode(NamedTuple):
    code: Optional[str]
    overtime_hours: int = 0
    is_lesson: bool = False


EMPTY = ShiftCode(None, 0, False)


def _as_hours(s: str) -> int:
    t = s.strip()
    if t.isdecimal():
        return int(t)
    return 0


def decode(raw: Optional[str]) -> ShiftCode:
    if not raw:
        return EMPTY
    parts = str(raw).split(SEP)
    code = parts[0] or None
    if code is None:
        return EMPTY
    ot = _as_hours(parts[1]) if len(parts) > 1 else 0
    lesson = len(parts) > 2 and parts[2] == LESSON_MARK
    return ShiftCode(code, ot, lesson)


def encode(code: str, overtime_hours: int = 0, is_lesson: bool = False) -> str:
    if overtime_hours == 0 and not is_lesson:
        return code
    out = f"{code}{SEP}{overtime_hours}"
    if is_lesson:
        out += f"{SEP}{LESSON_MARK}"
    return out


def with_attributes(raw: Optional[str], overtime_hours: int, is_lesson: bool) -> Optional[str]:
    """Re-encode a stored cell with new overtime/lesson values, keeping its base code."""
    sc = decode(raw)
    if sc.code is None:
        return None
    return encode(sc.code, max(0, int(overtime_hours)), is_lesson)
