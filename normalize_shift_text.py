"""
normalize_shift_text.py

Map free-form spreadsheet shift text to a built-in shift code.

Rules, first match wins:
  1. drop parentheses (ASCII and full-width) and whitespace
  2. anything mentioning 特休 is annual leave ("A1/特休", "(特休)")
  3. numbered variants collapse to their family: A1/A2 -> A, P1/P2 -> P,
     D1/D2 -> D, 全1/全2 -> 全
  4. 全+2 (full day + 2h overtime)
  5. direct lookup in TEXT_TO_CODE
  6. "X/Y": first part that resolves on its own
  7. otherwise None; the importer mints a custom code for the raw text
"""

from __future__ import annotations

import re
from typing import Dict, Optional

import shift_catalog as sc

ANNUAL_MARK = "特休"
FULL_MARK = "全"
FULL_PLUS_2_TEXT = "全+2"

TEXT_TO_CODE: Dict[str, str] = {
    "A": sc.A,
    "P": sc.P,
    "D": sc.D2,
    "D2": sc.D2,
    "A全": sc.A_FULL,
    "P全": sc.P_FULL,
    FULL_PLUS_2_TEXT: sc.FULL_PLUS_2,
    "例假日": sc.OFF,
    "例": sc.OFF,
    "休": sc.OFF,
    ANNUAL_MARK: sc.ANNUAL,
    "A/特休": sc.ANNUAL,
    "上課": sc.LESSON,
    "課": sc.LESSON,
}

_NOISE_RE = re.compile(r"[()（）\s]")
_VARIANT_RES = [
    (re.compile(r"A[12]"), "A"),
    (re.compile(r"P[12]"), "P"),
    (re.compile(r"D[12]"), "D"),
    (re.compile(r"全[12]"), FULL_MARK),
]


def clean_text(raw: str) -> str:
    return _NOISE_RE.sub("", raw).replace("＋", "+").replace("／", "/")


def collapse_variants(text: str) -> str:
    for rx, repl in _VARIANT_RES:
        text = rx.sub(repl, text)
    return text


def normalize_shift_text(raw: Optional[str], _split: bool = True) -> Optional[str]:
    if not raw:
        return None
    text = clean_text(str(raw))
    if not text:
        return None

    if ANNUAL_MARK in text:
        return sc.ANNUAL

    text = collapse_variants(text)

    if FULL_PLUS_2_TEXT in text:
        return sc.FULL_PLUS_2

    code = TEXT_TO_CODE.get(text)
    if code:
        return code

    # "A/P" and friends: only the top-level split is tried
    if _split and "/" in text:
        for part in text.split("/"):
            code = normalize_shift_text(part, _split=False)
            if code:
                return code

    return None
