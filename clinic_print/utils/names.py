# FILE: clinic_print/utils/names.py
from __future__ import annotations

from typing import Any, Optional


def _g(obj: Any, *keys: str) -> Any:
    """First non-None value among `keys` (dict key or attribute)."""
    if obj is None:
        return None
    for k in keys:
        v = obj.get(k) if isinstance(obj, dict) else getattr(obj, k, None)
        if v is not None:
            return v
    return None


def _clean(v: Any) -> str:
    return ("" if v is None else str(v)).strip()


def _parts(profile: Any) -> tuple[str, str, str, str]:
    title = _clean(_g(profile, "title"))
    first = _clean(_g(profile, "firstName", "first_name"))
    last = _clean(_g(profile, "lastName", "last_name"))
    username = _clean(_g(profile, "username"))
    return title, first, last, username


def has_personal_info(profile: Any) -> bool:
    _, first, last, _ = _parts(profile)
    return bool(first or last)


def get_display_name(profile: Any) -> str:
    """
    Name shown for a user/patient:
      1. title + first + last   (title present and not "none")
      2. first + last
      3. username
      4. "User"
    """
    title, first, last, username = _parts(profile)
    if first or last:
        full = f"{first} {last}".strip()
        if title and title.lower() != "none":
            return f"{title} {full}"
        return full
    return username or "User"


# formal and display names share the same precedence
get_formal_name = get_display_name


def get_admin_display_name(profile: Any) -> str:
    """Display name with the username appended when they differ."""
    name = get_display_name(profile)
    username: Optional[str] = _parts(profile)[3] or None
    if has_personal_info(profile) and username and name != username:
        return f"{name} ({username})"
    return name
