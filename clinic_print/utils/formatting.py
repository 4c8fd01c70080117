# FILE: clinic_print/utils/formatting.py
from __future__ import annotations

from datetime import datetime, date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from clinic_print.core.config import settings
from clinic_print.utils.timezone import LOCAL_TZ


def to_datetime(v: Any) -> Optional[datetime]:
    if not v:
        return None
    if isinstance(v, datetime):
        return v
    if isinstance(v, date):
        return datetime(v.year, v.month, v.day)
    s = str(v).strip()
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        pass
    for fmt in ("%d-%m-%Y", "%d/%m/%Y", "%Y-%m-%d"):
        try:
            return datetime.strptime(s[:10], fmt)
        except ValueError:
            continue
    return None


def to_date(v: Any) -> Optional[date]:
    dt = to_datetime(v)
    return dt.date() if dt else None


def _local(dt: datetime) -> datetime:
    # aware values are shown in clinic time; naive ones are taken as-is
    if dt.tzinfo is not None:
        return dt.astimezone(LOCAL_TZ)
    return dt


def format_date(v: Any, fallback: str = "N/A") -> str:
    dt = to_datetime(v)
    if not dt:
        return str(v) if v else fallback
    return _local(dt).strftime("%d/%m/%Y")


def format_time(v: Any, fallback: str = "") -> str:
    dt = to_datetime(v)
    if not dt:
        return fallback
    return _local(dt).strftime("%I:%M:%S %p")


def format_document_date(v: Any) -> str:
    """Long en-GB form used on document headers: "Monday, 19 October 2026"."""
    dt = to_datetime(v)
    if not dt:
        return ""
    d = _local(dt)
    return f"{d.strftime('%A')}, {d.day} {d.strftime('%B %Y')}"


def format_currency(v: Any, symbol: Optional[str] = None) -> Optional[str]:
    """`"25000.5"` -> `"₦25,000.5"`; empty or non-numeric gives None."""
    if v is None or (isinstance(v, str) and not v.strip()):
        return None
    try:
        num = Decimal(str(v).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None
    if not num.is_finite():
        return None
    sym = settings.CURRENCY_SYMBOL if symbol is None else symbol
    if num == num.to_integral_value():
        body = f"{int(num):,}"
    else:
        body = f"{num.normalize():,f}"
    return f"{sym}{body}"


def calculate_age(dob: Any, asof: Optional[date] = None) -> Optional[int]:
    d = to_date(dob)
    if not d:
        return None
    asof = asof or date.today()
    years = asof.year - d.year - ((asof.month, asof.day) < (d.month, d.day))
    return max(0, int(years))
