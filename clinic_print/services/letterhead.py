# FILE: clinic_print/services/letterhead.py
from __future__ import annotations

import base64
import logging
import mimetypes
import re
from io import BytesIO
from pathlib import Path
from typing import Optional

from clinic_print.core.config import settings
from clinic_print.schemas.print_document import OrganizationInfo
from clinic_print.utils.text import esc

logger = logging.getLogger(__name__)


def _local_logo_path(logo_url: str) -> Optional[Path]:
    """
    Logo URLs under the media mount ("/media/logos/x.png" or "logos/x.png")
    resolve to a file inside STORAGE_DIR; anything else stays remote.
    """
    rel = (logo_url or "").strip()
    if not rel or rel.startswith(("http://", "https://", "data:")):
        return None
    rel = rel.lstrip("/")
    if rel.startswith("media/"):
        rel = rel[len("media/"):]
    root = Path(settings.STORAGE_DIR).resolve()
    p = (root / rel).resolve()
    if root not in p.parents:
        return None
    return p if p.is_file() else None


def logo_src(org: OrganizationInfo, *, max_px: int = 320) -> Optional[str]:
    """
    Local logos are embedded as data-uri (downscaled with Pillow, never
    upscaled) so the print window and PDF renderer need no file access.
    """
    url = (org.logo_url or "").strip()
    if not url:
        return None

    path = _local_logo_path(url)
    if path is None:
        return url

    mime, _ = mimetypes.guess_type(str(path))
    mime = mime or "image/png"
    try:
        raw = path.read_bytes()
    except OSError:
        logger.warning("Letterhead logo unreadable: %s", path)
        return None

    try:
        from PIL import Image

        im = Image.open(BytesIO(raw))
        im.load()
        im.thumbnail((max_px, max_px))
        out = BytesIO()
        im.save(out, format="PNG", optimize=True)
        raw = out.getvalue()
        mime = "image/png"
    except Exception:
        logger.warning("Letterhead logo not resized: %s", path)

    enc = base64.b64encode(raw).decode("ascii")
    return f"data:{mime};base64,{enc}"


def safe_color(value: Optional[str], default: Optional[str] = None) -> str:
    """Hex or named CSS colour; anything else falls back to the default."""
    c = (value or "").strip()
    if re.fullmatch(r"#[0-9a-fA-F]{3,8}|[a-zA-Z]{3,20}", c):
        return c
    return default or settings.DEFAULT_THEME_COLOR


def letterhead_css(theme_color: str) -> str:
    theme_color = safe_color(theme_color)
    return f"""
    .header{{
      text-align: center;
      border-bottom: 3px solid {theme_color};
      padding-bottom: 20px;
      margin-bottom: 30px;
    }}
    .brand-logo{{
      height: 64px;
      width: auto;
      max-width: 240px;
      object-fit: contain;
      margin-bottom: 8px;
    }}
    .org-name{{
      font-size: 32px;
      font-weight: bold;
      margin-bottom: 8px;
      color: {theme_color};
      letter-spacing: 1px;
    }}
    .org-type{{
      font-size: 18px;
      color: #3730a3;
      margin-bottom: 12px;
      font-weight: 600;
      text-transform: uppercase;
    }}
    .org-details{{
      font-size: 14px;
      line-height: 1.5;
      color: #4b5563;
    }}
    """


def render_letterhead_html(org: OrganizationInfo) -> str:
    """
    Logo (if any), name, type, then address / tel | email / web, each line
    only when present.
    """
    src = logo_src(org)
    logo_html = f"<img class='brand-logo' src='{esc(src)}' alt='{esc(org.name)} Logo' />" if src else ""

    details: list[str] = []
    if org.address:
        details.append(esc(org.address))

    contact_bits: list[str] = []
    if org.phone:
        contact_bits.append(f"Tel: {esc(org.phone)}")
    if org.email:
        contact_bits.append(f"Email: {esc(org.email)}")
    if contact_bits:
        details.append(" | ".join(contact_bits))

    if org.website:
        details.append(f"Web: {esc(org.website)}")

    return f"""
    <div class="header">
      {logo_html}
      <div class="org-name">{esc(org.name)}</div>
      <div class="org-type">{esc((org.type or "").replace("_", " ").upper())}</div>
      <div class="org-details">{"<br>".join(details)}</div>
    </div>
    """.strip()
