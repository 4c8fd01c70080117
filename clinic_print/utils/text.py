# FILE: clinic_print/utils/text.py
from __future__ import annotations

import html as _html
import re
from typing import Any

_SMALL = {"mg", "ml", "mcg", "g", "kg", "iu", "l", "mm", "cm", "m", "hr", "hrs"}
_UP = {"iv", "im", "po", "prn", "od", "bd", "tid", "qid", "hs", "stat", "sos"}
_DOSE = re.compile(r"(\d+(?:\.\d+)?)([A-Za-z]+)")
_CODE = re.compile(r"[A-Za-z]\d+")

_EMPTY_MARKERS = ("—", "-", "None", "null", "NULL", "undefined")


def esc(v: Any) -> str:
    return _html.escape("" if v is None else str(v), quote=True)


def present(v: Any) -> bool:
    s = ("" if v is None else str(v)).strip()
    return bool(s) and s not in _EMPTY_MARKERS


def _title_word(w: str) -> str:
    lw = w.lower()
    if lw in _SMALL:
        return lw
    if lw in _UP:
        return lw.upper()
    # "500MG" -> "500mg"; other codes ("B12", "D3") stay upper
    m = _DOSE.fullmatch(w)
    if m and m.group(2).lower() in _SMALL:
        return m.group(1) + m.group(2).lower()
    if m or _CODE.fullmatch(w):
        return w.upper()
    return w[:1].upper() + w[1:].lower()


def smart_title(s: Any) -> str:
    """Drug names in title case, units lower, routes and dosing codes upper.

    "paracetamol 500MG iv" -> "Paracetamol 500mg IV"
    """
    return " ".join(_title_word(w) for w in str(s or "").split())


def humanize_key(key: str) -> str:
    """
    Form-field key -> printable label.
    "chiefComplaint" -> "Chief Complaint", "blood_pressure" -> "Blood pressure".
    Builder-generated keys ("field_17...") carry no meaning and print as
    "Clinical Notes".
    """
    k = str(key or "")
    if "field_" in k:
        return "Clinical Notes"
    k = re.sub(r"([A-Z])", r" \1", k)
    k = re.sub(r"[_-]", " ", k)
    k = re.sub(r"\s+", " ", k).strip()
    return k[:1].upper() + k[1:]


def capitalize_role(role: Any) -> str:
    r = "" if role is None else str(role)
    return r[:1].upper() + r[1:]
