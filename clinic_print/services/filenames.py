# FILE: clinic_print/services/filenames.py
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

from clinic_print.utils.timezone import today_local

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(name: Any, fallback: str = "document") -> str:
    s = _UNSAFE.sub("_", str(name or "").strip()).strip("._")
    return s or fallback


def _iso(on: Optional[date]) -> str:
    d = on or today_local()
    if isinstance(d, datetime):
        d = d.date()
    return d.isoformat()


def patient_document_filename(doc_type: str, first_name: Any, last_name: Any,
                              on: Optional[date] = None, ext: str = "pdf") -> str:
    """`prescription_Amara_Obi_2026-10-19.pdf`"""
    stem = "_".join([
        safe_filename(doc_type),
        safe_filename(first_name, "patient"),
        safe_filename(last_name, "record"),
        _iso(on),
    ])
    return f"{stem}.{ext}"


def record_document_filename(doc_type: str, record_id: Any,
                             on: Optional[date] = None, ext: str = "pdf") -> str:
    """`lab-order-42-2026-10-19.pdf`"""
    rid = safe_filename(record_id if record_id is not None else "", "new")
    return f"{safe_filename(doc_type)}-{rid}-{_iso(on)}.{ext}"


def dated_export_name(prefix: str, on: Optional[date] = None) -> str:
    """`dashboard-stats-2026-10-19` (no extension; the sink adds it)."""
    return f"{safe_filename(prefix)}-{_iso(on)}"
