# FILE: clinic_print/services/print_sinks.py
from __future__ import annotations

import csv
import logging
import threading
import time
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Type

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from clinic_print.core.config import settings
from clinic_print.core.errors import (
    EmptyExportError,
    ExportFailure,
    ExportTargetNotFoundError,
    PopupBlockedError,
    PrintPipelineError,
    TargetBusyError,
    TargetNotFoundError,
)
from clinic_print.schemas.print_document import PrintableDocument
from clinic_print.schemas.requests import PrintOptions
from clinic_print.services import pdf_engine
from clinic_print.services.filenames import record_document_filename, safe_filename
from clinic_print.services.letterhead import letterhead_css, render_letterhead_html
from clinic_print.services.print_templates import AUTO_PRINT_SCRIPT, render
from clinic_print.utils.text import esc
from clinic_print.utils.timezone import now_local

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
CSV_MEDIA_TYPE = "text/csv; charset=utf-8"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@dataclass(frozen=True)
class PrintJob:
    job_id: str
    url: str


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    media_type: str
    content: bytes


# -----------------------------
# Targets ("elements") + in-flight guard
# -----------------------------
class ElementRegistry:
    """Named HTML fragments that print/PDF sinks address by element id."""

    def __init__(self) -> None:
        self._elements: Dict[str, str] = {}
        self._lock = threading.Lock()

    def put(self, element_id: str, html: str) -> None:
        with self._lock:
            self._elements[element_id] = html

    def get(self, element_id: str) -> Optional[str]:
        with self._lock:
            return self._elements.get(element_id)

    def remove(self, element_id: str) -> bool:
        with self._lock:
            return self._elements.pop(element_id, None) is not None


class TargetGuard:
    """
    One in-flight print/export per target. A second call on a busy target is
    rejected rather than queued; the flag is cleared however the first ends.
    """

    def __init__(self) -> None:
        self._busy: set[str] = set()
        self._lock = threading.Lock()

    def is_busy(self, target: str) -> bool:
        with self._lock:
            return target in self._busy

    @contextmanager
    def hold(self, target: str) -> Iterator[None]:
        with self._lock:
            if target in self._busy:
                raise TargetBusyError(target)
            self._busy.add(target)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(target)


# -----------------------------
# Print spool (the "print window")
# -----------------------------
class PrintSpool:
    """
    Spooled print pages: each job is one HTML file under the spool directory,
    served once at `/print/jobs/{job_id}` and then dropped. Jobs nobody
    fetches are swept once they are older than `ttl_seconds`.
    """

    def __init__(self, root: Optional[Path] = None, base_url: Optional[str] = None,
                 ttl_seconds: Optional[int] = None):
        self.root = Path(root) if root else settings.spool_path
        self.base_url = (base_url if base_url is not None else
                         f"{settings.SITE_URL.rstrip('/')}{settings.API_V1_STR}/print/jobs")
        self.ttl_seconds = settings.PRINT_JOB_TTL_SECONDS if ttl_seconds is None else ttl_seconds

    def sweep(self, now: Optional[float] = None) -> int:
        """Remove expired job files; returns how many were removed."""
        cutoff = (time.time() if now is None else now) - self.ttl_seconds
        removed = 0
        for path in self.root.glob("*.html"):
            try:
                if path.stat().st_mtime < cutoff:
                    path.unlink()
                    removed += 1
            except FileNotFoundError:
                # taken by a concurrent request
                continue
        if removed:
            logger.info("Swept %s expired print job(s) from %s", removed, self.root)
        return removed

    def open(self, html: str) -> PrintJob:
        job_id = uuid.uuid4().hex
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            self.sweep()
            (self.root / f"{job_id}.html").write_text(html, encoding="utf-8")
        except OSError as e:
            logger.error("Print spool unavailable at %s: %s", self.root, e)
            raise PopupBlockedError(
                "Could not open a print window. Please allow pop-ups and try again.") from e
        return PrintJob(job_id=job_id, url=f"{self.base_url.rstrip('/')}/{job_id}")

    def take(self, job_id: str) -> Optional[str]:
        if not job_id.isalnum():
            return None
        path = self.root / f"{job_id}.html"
        try:
            html = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        path.unlink(missing_ok=True)
        return html


def element_page(fragment: str, *, title: str = "Print", extra_css: str = "",
                 header_html: str = "", auto_print: bool = True) -> str:
    return f"""<html>
  <head>
    <title>{esc(title)}</title>
    <style>
      {extra_css}
      @media print {{
        body {{ margin: 0; padding: 20px; }}
        .no-print {{ display: none !important; }}
        .print-only {{ display: block !important; }}
      }}
      .no-print {{ display: none; }}
      .print-only {{ display: none; }}
    </style>
  </head>
  <body>
    {header_html}
    {fragment}
    {AUTO_PRINT_SCRIPT if auto_print else ""}
  </body>
</html>
"""


class PrintSinks:
    """Terminal outputs: print job, PDF, CSV and Excel files."""

    def __init__(self,
                 elements: Optional[ElementRegistry] = None,
                 spool: Optional[PrintSpool] = None,
                 guard: Optional[TargetGuard] = None) -> None:
        self.elements = elements or ElementRegistry()
        self.spool = spool or PrintSpool()
        self.guard = guard or TargetGuard()

    def _element(self, element_id: str, missing: Type[PrintPipelineError]) -> str:
        fragment = self.elements.get(element_id)
        if fragment is None:
            raise missing(f"Element '{element_id}' not found", details={"element_id": element_id})
        return fragment

    # ---- print ----
    def print_document(self, doc: PrintableDocument) -> PrintJob:
        return self.spool.open(render(doc))

    def print_element(self, element_id: str) -> PrintJob:
        with self.guard.hold(f"element:{element_id}"):
            fragment = self._element(element_id, TargetNotFoundError)
            return self.spool.open(element_page(fragment))

    # ---- pdf ----
    def export_to_pdf(self, element_id: str, options: PrintOptions) -> ExportedFile:
        with self.guard.hold(f"element:{element_id}"):
            fragment = self._element(element_id, ExportTargetNotFoundError)
            header_html, extra_css = "", ""
            if options.organization is not None and options.show_header:
                header_html = render_letterhead_html(options.organization)
                extra_css = letterhead_css(options.organization.theme_color)
            html = element_page(fragment, title=options.filename, extra_css=extra_css,
                                header_html=header_html, auto_print=False)
            try:
                content = html_to_pdf(html, fmt=options.format, orientation=options.orientation)
            except ImportError as e:
                logger.error("PDF export unavailable: %s", e)
                raise ExportFailure("Failed to export PDF file") from e
            except Exception as e:
                logger.exception("PDF export failed for element %s", element_id)
                raise ExportFailure("Failed to export PDF file") from e
            return ExportedFile(filename=f"{safe_filename(options.filename)}.pdf",
                                media_type=PDF_MEDIA_TYPE, content=content)

    def download_document_pdf(self, doc: PrintableDocument,
                              filename: Optional[str] = None) -> ExportedFile:
        """
        WeasyPrint rendition of `render(doc)`; the ReportLab block renderer is
        used when WeasyPrint (or its native libs) is not available.
        """
        name = filename or record_document_filename(doc.kind, doc.record_id, now_local().date())
        target = f"record:{doc.kind}:{doc.record_id}"
        with self.guard.hold(target):
            printed_at = now_local()
            try:
                content = html_to_pdf(render(doc, printed_at, auto_print=False))
            except Exception as e:
                logger.warning("WeasyPrint unavailable for %s, using ReportLab: %s", target, e)
                try:
                    content = pdf_engine.build_document_pdf(doc, printed_at)
                except Exception as e2:
                    logger.exception("ReportLab PDF failed for %s", target)
                    raise ExportFailure("Failed to export PDF file") from e2
            return ExportedFile(filename=name, media_type=PDF_MEDIA_TYPE, content=content)

    # ---- tabular ----
    def export_to_csv(self, rows: Sequence[Mapping[str, Any]], filename: str) -> ExportedFile:
        return ExportedFile(filename=f"{safe_filename(filename)}.csv",
                            media_type=CSV_MEDIA_TYPE,
                            content=rows_to_csv(rows).encode("utf-8-sig"))

    def export_to_excel(self, rows: Sequence[Mapping[str, Any]], filename: str,
                        sheet_title: str = "Data") -> ExportedFile:
        return ExportedFile(filename=f"{safe_filename(filename)}.xlsx",
                            media_type=XLSX_MEDIA_TYPE,
                            content=rows_to_xlsx(rows, sheet_title))


# -----------------------------
# Renderers
# -----------------------------
def html_to_pdf(html: str, *, fmt: str = "a4", orientation: str = "portrait") -> bytes:
    from weasyprint import CSS, HTML

    margin = settings.PDF_MARGIN_MM
    page = f"{fmt.upper() if fmt.lower() == 'a4' else fmt.lower()} {orientation}"
    page_css = CSS(string=f"@page {{ size: {page}; margin: {margin}mm; }}")
    return HTML(string=html, base_url=str(settings.STORAGE_DIR)).write_pdf(
        stylesheets=[page_css],
        zoom=1,
        # raster images in the page are kept at scale x screen resolution
        dpi=int(96 * settings.PDF_IMAGE_SCALE),
    )


def _headers(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    if not rows:
        raise EmptyExportError("No data available to export")
    return [str(k) for k in rows[0].keys()]


def _cell(v: Any) -> Any:
    if v is None:
        return ""
    if isinstance(v, (list, tuple)):
        return ", ".join("" if x is None else str(x) for x in v)
    return v


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """
    Header row from the first record's keys, in order; every record is
    written against those columns (missing -> empty, extras dropped).
    """
    headers = _headers(rows)
    out = StringIO()
    w = csv.writer(out, lineterminator="\r\n")
    w.writerow(headers)
    for row in rows:
        w.writerow([_cell(row.get(h)) for h in headers])
    return out.getvalue()


def rows_to_xlsx(rows: Sequence[Mapping[str, Any]], sheet_title: str = "Data") -> bytes:
    headers = _headers(rows)
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title[:31] or "Data"

    ws.append(headers)
    for cell in ws[1]:
        cell.font = Font(bold=True, color="FFFFFFFF")
        cell.fill = PatternFill(fill_type="solid", fgColor="FF3B82F6")
        cell.alignment = Alignment(horizontal="center", vertical="center")

    for row in rows:
        values = []
        for h in headers:
            v = _cell(row.get(h))
            values.append(v if isinstance(v, (int, float, str)) else str(v))
        ws.append(values)

    # autosize, capped
    for col in range(1, len(headers) + 1):
        letter = get_column_letter(col)
        longest = max((len(str(c.value)) if c.value is not None else 10)
                      for c in ws[letter])
        ws.column_dimensions[letter].width = min(longest + 2, 50)

    fp = BytesIO()
    wb.save(fp)
    return fp.getvalue()
