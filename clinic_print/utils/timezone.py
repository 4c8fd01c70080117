# FILE: clinic_print/utils/timezone.py
from __future__ import annotations

from datetime import datetime, date
from zoneinfo import ZoneInfo

from clinic_print.core.config import settings

LOCAL_TZ = ZoneInfo(settings.TIMEZONE)


def now_local() -> datetime:
    """Aware datetime in the clinic's configured timezone."""
    return datetime.now(LOCAL_TZ)


def today_local() -> date:
    return now_local().date()
