# FILE: clinic_print/services/pdf_engine.py
from __future__ import annotations

import io
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4, LETTER, landscape
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas as rl_canvas
from reportlab.platypus import (
    KeepTogether,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from clinic_print.core.config import settings
from clinic_print.schemas.print_document import OrganizationInfo, PrintableDocument
from clinic_print.services import print_blocks as pb
from clinic_print.services.letterhead import safe_color
from clinic_print.services.print_templates import (
    document_title,
    patient_fields,
    provider_fields,
    render_content,
)
from clinic_print.utils.formatting import format_date, format_document_date, format_time
from clinic_print.utils.text import esc
from clinic_print.utils.timezone import now_local

logger = logging.getLogger(__name__)

PAGE_SIZES = {"a4": A4, "letter": LETTER}


def page_size(fmt: str = "a4", orientation: str = "portrait"):
    size = PAGE_SIZES.get((fmt or "a4").lower(), A4)
    return landscape(size) if (orientation or "").lower() == "landscape" else size


# -----------------------------
# Page-number canvas (Page X of Y)
# -----------------------------
class NumberedCanvas(rl_canvas.Canvas):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        num_pages = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_page_number(num_pages)
            super().showPage()
        super().save()

    def _draw_page_number(self, page_count: int):
        page_w, _ = self._pagesize
        self.saveState()
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.grey)
        self.drawRightString(page_w - 12 * mm, 8 * mm, f"Page {self._pageNumber} of {page_count}")
        self.restoreState()


# -----------------------------
# Styles + Components
# -----------------------------
def get_styles(theme_color: str):
    theme = colors.HexColor(theme_color) if theme_color.startswith("#") else colors.HexColor(settings.DEFAULT_THEME_COLOR)
    base = getSampleStyleSheet()
    base.add(ParagraphStyle(name="OrgName", parent=base["Title"], fontName="Helvetica-Bold",
                            fontSize=18, leading=22, textColor=theme, spaceAfter=2))
    base.add(ParagraphStyle(name="OrgMeta", parent=base["BodyText"], fontName="Helvetica",
                            fontSize=8.5, leading=11, alignment=1, textColor=colors.grey))
    base.add(ParagraphStyle(name="DocTitle", parent=base["Heading2"], fontName="Helvetica-Bold",
                            fontSize=12, alignment=1, spaceBefore=8, spaceAfter=2))
    base.add(ParagraphStyle(name="DocDate", parent=base["BodyText"], fontName="Helvetica",
                            fontSize=9, alignment=1, textColor=colors.grey, spaceAfter=8))
    base.add(ParagraphStyle(name="H3", parent=base["Heading3"], fontName="Helvetica-Bold",
                            fontSize=10, spaceBefore=8, spaceAfter=4))
    base.add(ParagraphStyle(name="Small", parent=base["BodyText"], fontName="Helvetica",
                            fontSize=9, leading=11))
    base.add(ParagraphStyle(name="Muted", parent=base["BodyText"], fontName="Helvetica-Oblique",
                            fontSize=9, leading=11, textColor=colors.grey))
    return base


def kv_table(rows: Sequence[pb.Field], styles) -> Table:
    data = [[Paragraph(f"<b>{esc(f.label)}</b>", styles["Small"]),
             Paragraph(esc(f.value), styles["Small"])] for f in rows]
    t = Table(data, colWidths=[40 * mm, None])
    t.setStyle(TableStyle([
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("ROWBACKGROUNDS", (0, 0), (-1, -1), [colors.whitesmoke, colors.white]),
        ("INNERGRID", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("BOX", (0, 0), (-1, -1), 0.25, colors.lightgrey),
        ("LEFTPADDING", (0, 0), (-1, -1), 5),
        ("RIGHTPADDING", (0, 0), (-1, -1), 5),
        ("TOPPADDING", (0, 0), (-1, -1), 3),
        ("BOTTOMPADDING", (0, 0), (-1, -1), 3),
    ]))
    return t


def _letterhead(org: OrganizationInfo, styles) -> List:
    out: List = [Paragraph(esc(org.name), styles["OrgName"])]
    meta = [x for x in [
        (org.type or "").replace("_", " ").upper(),
        org.address or "",
        " | ".join(x for x in [org.phone or "", org.email or "", org.website or ""] if x),
    ] if x]
    for line in meta:
        out.append(Paragraph(esc(line), styles["OrgMeta"]))
    out.append(Spacer(1, 4 * mm))
    return out


def _flowables(blocks: Sequence[pb.Block], styles) -> List:
    out: List = []
    for b in blocks:
        if isinstance(b, pb.Field):
            out.append(kv_table([b], styles))
        elif isinstance(b, pb.FieldGrid):
            if b.fields:
                out.append(kv_table(b.fields, styles))
        elif isinstance(b, pb.Paragraph):
            out.append(Paragraph(esc(b.text), styles["Muted" if b.muted else "Small"]))
        elif isinstance(b, pb.Callout):
            out.append(Paragraph(esc(b.title), styles["H3"]))
            for line in b.lines:
                out.append(Paragraph(f"&bull; {esc(line)}", styles["Small"]))
        elif isinstance(b, pb.ItemBlock):
            inner = [Paragraph(f"<b>{esc(b.title)}</b>", styles["Small"])]
            if b.fields:
                inner.append(kv_table(b.fields, styles))
            inner.append(Spacer(1, 2 * mm))
            out.append(KeepTogether(inner))
        elif isinstance(b, pb.Section):
            out.append(Paragraph(esc(b.title), styles["H3"]))
            out.extend(_flowables(b.children, styles))
        out.append(Spacer(1, 1.5 * mm))
    return out


# -----------------------------
# Document Builder
# -----------------------------
def build_document_pdf(doc: PrintableDocument,
                       printed_at: Optional[datetime] = None,
                       *,
                       fmt: str = "a4",
                       orientation: str = "portrait") -> bytes:
    """ReportLab rendition of the same block tree the HTML renderer uses."""
    printed_at = printed_at or now_local()
    styles = get_styles(safe_color(doc.organization.theme_color))
    margin = settings.PDF_MARGIN_MM * mm

    # new buffer per call
    buf = io.BytesIO()
    pdf = SimpleDocTemplate(
        buf,
        pagesize=page_size(fmt, orientation),
        leftMargin=margin,
        rightMargin=margin,
        topMargin=margin,
        bottomMargin=margin + 4 * mm,
        title=document_title(doc.kind),
        author=doc.issuer.full_name,
    )

    story: List = _letterhead(doc.organization, styles)
    story.append(Paragraph(esc(document_title(doc.kind)), styles["DocTitle"]))
    story.append(Paragraph(esc(format_document_date(doc.created_at)), styles["DocDate"]))
    story.append(Paragraph("PATIENT INFORMATION", styles["H3"]))
    story.append(kv_table(patient_fields(doc), styles))
    story.append(Paragraph("HEALTHCARE PROVIDER", styles["H3"]))
    story.append(kv_table(provider_fields(doc), styles))
    story.extend(_flowables(render_content(doc), styles))

    story.append(Spacer(1, 14 * mm))
    sig = Table([["Healthcare Provider Signature", "Date"]], colWidths=["50%", "50%"])
    sig.setStyle(TableStyle([
        ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
        ("FONTSIZE", (0, 0), (-1, -1), 8.5),
        ("ALIGN", (0, 0), (-1, -1), "CENTER"),
        ("LINEABOVE", (0, 0), (0, 0), 0.8, colors.black),
        ("LINEABOVE", (1, 0), (1, 0), 0.8, colors.black),
        ("LEFTPADDING", (0, 0), (-1, -1), 12),
        ("RIGHTPADDING", (0, 0), (-1, -1), 12),
    ]))
    story.append(sig)
    story.append(Spacer(1, 6 * mm))
    story.append(Paragraph(
        f"Printed on: {esc(format_date(printed_at))} at {esc(format_time(printed_at))}",
        styles["Muted"]))
    story.append(Paragraph(
        f"This document was generated electronically by {esc(doc.organization.name)} "
        "clinic management system.", styles["Muted"]))

    pdf.build(story, canvasmaker=NumberedCanvas)

    pdf_bytes = buf.getvalue()
    buf.close()
    return pdf_bytes
