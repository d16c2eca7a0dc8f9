"""
shift_catalog.py

Shift definitions (the catalog keyed by shift code).

Every definition carries an explicit `category` so statistics never have to
guess a shift's class from its hours:

    ap      standard A/P shifts
    full    full-day shifts
    part    short evening shifts
    lesson  training / lesson block
    off     regular day off
    leave   annual leave
    custom  minted by the importer for unknown spreadsheet text
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Dict, List, Optional

# ----------------------------
# Built-in codes
# ----------------------------

A = "A"
A2 = "A2"
P = "P"
P2 = "P2"
D2 = "D2"
A_FULL = "A_FULL"
P_FULL = "P_FULL"
FULL_PLUS_2 = "FULL_PLUS_2"
LESSON = "LESSON"
OFF = "OFF"
ANNUAL = "ANNUAL"
N = "N"

CUSTOM_PREFIX = "CUSTOM_"
CUSTOM_SORT_ORDER = 99

CATEGORIES = ("ap", "full", "part", "lesson", "off", "leave", "custom")


@dataclass(frozen=True)
class ShiftDefinition:
    code: str
    label: str
    short_label: str
    time: str
    hours: int
    color: str
    weekend_color: str
    sort_order: int
    category: str
    default_overtime: Optional[int] = None
    description: str = ""

    def to_dict(self) -> dict:
        d = asdict(self)
        return {
            "code": d["code"],
            "label": d["label"],
            "shortLabel": d["short_label"],
            "time": d["time"],
            "hours": d["hours"],
            "color": d["color"],
            "weekendColor": d["weekend_color"],
            "sortOrder": d["sort_order"],
            "category": d["category"],
            "defaultOvertime": d["default_overtime"],
            "description": d["description"],
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ShiftDefinition":
        code = str(d["code"])
        category = d.get("category") or _guess_category(code, int(d.get("hours", 0)))
        return cls(
            code=code,
            label=str(d.get("label", code)),
            short_label=str(d.get("shortLabel") or code[:2]),
            time=str(d.get("time", "")),
            hours=int(d.get("hours", 0)),
            color=str(d.get("color", GRAY)),
            weekend_color=str(d.get("weekendColor") or d.get("color", GRAY)),
            sort_order=int(d.get("sortOrder", CUSTOM_SORT_ORDER)),
            category=category,
            default_overtime=d.get("defaultOvertime"),
            description=str(d.get("description", "")),
        )


GRAY = "F3F4F6"
GRAY_WEEKEND = "E5E7EB"

_BUILTINS: List[ShiftDefinition] = [
    ShiftDefinition(A, "A班", "A", "09:00 - 17:30", 8, "DBEAFE", "BFDBFE", 1, "ap",
                    description="8小時 (扣0.5休)"),
    ShiftDefinition(A2, "A2班", "A2", "08:00 - 16:30", 8, "CFFAFE", "A5F3FC", 2, "ap",
                    description="早班 (A2)"),
    ShiftDefinition(P, "P班", "P", "13:30 - 22:00", 8, "FFEDD5", "FED7AA", 3, "ap",
                    description="8小時 (扣0.5休)"),
    ShiftDefinition(P2, "P2班", "P2", "13:30 - 22:00", 8, "FEF3C7", "FDE68A", 4, "ap",
                    description="晚班 (P2)"),
    ShiftDefinition(D2, "D2班", "D2", "18:00 - 22:00", 4, "ECFCCB", "D9F99D", 5, "part",
                    description="工讀/兼職晚班"),
    ShiftDefinition(A_FULL, "A全", "A全", "09:00 - 20:00", 10, "E0E7FF", "C7D2FE", 6, "full",
                    description="10小時 (扣1.0休)"),
    ShiftDefinition(P_FULL, "P全", "P全", "11:00 - 22:00", 10, "F3E8FF", "E9D5FF", 7, "full",
                    description="10小時 (扣1.0休)"),
    ShiftDefinition(FULL_PLUS_2, "全+2", "全+2", "09:00 - 22:00", 10, "FFE4E6", "FECDD3", 8, "full",
                    default_overtime=2, description="10小時 + 2小時加班"),
    ShiftDefinition(LESSON, "上課", "上", "13:00 - 17:00", 0, "CCFBF1", "99F6E4", 9, "lesson",
                    default_overtime=4, description="上課 4小時 (計加班)"),
    ShiftDefinition(OFF, "例假", "休", "休假", 0, GRAY, GRAY_WEEKEND, 10, "off",
                    description="例假日"),
    ShiftDefinition(ANNUAL, "A/特休", "特", "休假", 8, "DCFCE7", "BBF7D0", 11, "leave",
                    description="特休假"),
    ShiftDefinition(N, "D班", "D", "18:00 - 22:00", 4, "E0F2FE", "BAE6FD", 12, "part",
                    description="晚班 4小時"),
]

BUILTIN_CODES = frozenset(d.code for d in _BUILTINS)


def _guess_category(code: str, hours: int) -> str:
    # only used for catalogs persisted before definitions carried a category
    for d in _BUILTINS:
        if d.code == code:
            return d.category
    if is_custom_code(code):
        return "custom"
    if hours >= 10:
        return "full"
    if hours == 8:
        return "ap"
    return "part" if hours > 0 else "off"


def default_shift_definitions() -> Dict[str, ShiftDefinition]:
    """Fresh copy of the built-in catalog; callers own the returned dict."""
    return {d.code: d for d in _BUILTINS}


def is_custom_code(code: Optional[str]) -> bool:
    return bool(code and code.startswith(CUSTOM_PREFIX))


def custom_code_for(raw_text: str) -> str:
    # ":" separates the overtime/lesson slots of a stored cell, so it cannot
    # appear in a code; the label keeps the literal text
    return f"{CUSTOM_PREFIX}{raw_text.replace(':', '：')}"


def custom_shift_definition(raw_text: str) -> ShiftDefinition:
    return ShiftDefinition(
        code=custom_code_for(raw_text),
        label=raw_text,
        short_label=raw_text[:2],
        time="自訂",
        hours=0,
        color=GRAY,
        weekend_color=GRAY_WEEKEND,
        sort_order=CUSTOM_SORT_ORDER,
        category="custom",
    )


def sorted_definitions(defs: Dict[str, ShiftDefinition]) -> List[ShiftDefinition]:
    return sorted(defs.values(), key=lambda d: (d.sort_order, d.code))


def update_definition(defs: Dict[str, ShiftDefinition], code: str, **changes) -> Dict[str, ShiftDefinition]:
    """Return a new catalog with one definition edited (user edits in the shift manager)."""
    if code not in defs:
        raise KeyError(f"Unknown shift code: {code!r}")
    if "category" in changes and changes["category"] not in CATEGORIES:
        raise ValueError(f"Unknown shift category: {changes['category']!r}")
    out = dict(defs)
    out[code] = replace(defs[code], **changes)
    return out


def catalog_to_dict(defs: Dict[str, ShiftDefinition]) -> Dict[str, dict]:
    return {code: d.to_dict() for code, d in defs.items()}


def catalog_from_dict(raw: Dict[str, dict]) -> Dict[str, ShiftDefinition]:
    return {code: ShiftDefinition.from_dict({"code": code, **d}) for code, d in raw.items()}
