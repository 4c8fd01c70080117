# FILE: clinic_print/services/print_templates.py
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from clinic_print.schemas.print_document import (
    DocumentKind,
    PrescriptionVariant,
    PrintableDocument,
)
from clinic_print.services.letterhead import letterhead_css, render_letterhead_html, safe_color
from clinic_print.services.print_blocks import (
    Block,
    Callout,
    Field,
    FieldGrid,
    ItemBlock,
    Paragraph,
    Section,
    blocks_to_html,
    fields,
    optional_fields,
    section_or_empty,
    text_or,
)
from clinic_print.utils.formatting import (
    calculate_age,
    format_currency,
    format_date,
    format_document_date,
    format_time,
    to_date,
)
from clinic_print.utils.text import esc, humanize_key, present, smart_title
from clinic_print.utils.timezone import now_local

logger = logging.getLogger(__name__)

DOCUMENT_TITLES: Dict[str, str] = {
    DocumentKind.PRESCRIPTION.value: "PRESCRIPTION",
    DocumentKind.LAB_ORDER.value: "LABORATORY ORDER",
    DocumentKind.CONSULTATION.value: "CONSULTATION RECORD",
    DocumentKind.PATIENT_SUMMARY.value: "PATIENT SUMMARY",
    DocumentKind.INSURANCE.value: "INSURANCE INFORMATION",
}
DEFAULT_TITLE = "MEDICAL DOCUMENT"

MAX_SUMMARY_VISITS = 5


def document_title(kind: str) -> str:
    return DOCUMENT_TITLES.get(kind, DEFAULT_TITLE)


# -------------------------------
# Payload access (never raises)
# -------------------------------
def _g(obj: Any, *keys: str, default: Any = None) -> Any:
    if not isinstance(obj, Mapping):
        return default
    for k in keys:
        v = obj.get(k)
        if v is not None:
            return v
    return default


def _seq(v: Any) -> Tuple[Any, ...]:
    return tuple(v) if isinstance(v, (list, tuple)) else ()


def _map(v: Any) -> Mapping[str, Any]:
    return v if isinstance(v, Mapping) else {}


# -------------------------------
# Prescription
# -------------------------------
def _flat_prescription(rx: Mapping[str, Any]) -> List[Block]:
    started = _g(rx, "startDate", "start_date")
    name = smart_title(text_or(_g(rx, "medicationName", "medication_name", "name"),
                               "Prescribed Medication"))
    detail = (
        Field.of("Dosage", _g(rx, "dosage"), "As prescribed"),
        Field.of("Frequency", _g(rx, "frequency"), "As directed"),
        Field.of("Duration", _g(rx, "duration"), "As prescribed"),
    )
    detail += optional_fields(("Special Instructions", _g(rx, "instructions")))
    detail += (Field.of("Prescribed by", _g(rx, "prescribedBy", "prescribed_by")),)

    children: List[Block] = []
    if started:
        children.append(FieldGrid(fields(("Date of Prescription", format_date(started)))))
    children.append(ItemBlock(title=f"Rx: {name}", fields=detail, css_class="medication-item"))
    return [Section(title="MEDICATION DETAILS", children=tuple(children))]


def _medication_item(idx: int, med: Any) -> ItemBlock:
    m = _map(med)
    name = smart_title(text_or(_g(m, "name", "medicationName", "medication_name", "drug"),
                               "Prescribed Medication"))
    detail = (
        Field.of("Dosage", _g(m, "dosage", "dose"), "As prescribed"),
        Field.of("Frequency", _g(m, "frequency"), "As directed"),
        Field.of("Duration", _g(m, "duration"), "As prescribed"),
    )
    detail += optional_fields(
        ("Route", _g(m, "route")),
        ("Quantity", _g(m, "quantity")),
        ("Instructions", _g(m, "instructions")),
    )
    return ItemBlock(title=f"Rx {idx}: {name}", fields=detail, css_class="medication-item")


def _structured_prescription(rx: Mapping[str, Any]) -> List[Block]:
    doctor = _map(_g(rx, "doctor"))
    clinic = _map(_g(rx, "clinic"))
    patient = _map(_g(rx, "patient"))

    out: List[Block] = []

    prescriber = fields(
        ("Doctor", _g(doctor, "name", "fullName")),
        ("Specialization", _g(doctor, "specialization", "specialty")),
        ("License No", _g(doctor, "licenseNumber", "license_number", "registrationNumber")),
        ("Date", format_date(_g(rx, "date", "prescriptionDate", "createdAt"))),
    )
    prescriber += optional_fields(
        ("Clinic", _g(clinic, "name")),
        ("Clinic Address", _g(clinic, "address")),
        ("Clinic Phone", _g(clinic, "phone")),
        ("Patient", _g(patient, "name", "fullName")),
        ("Age", _g(patient, "age")),
        ("Weight", _g(patient, "weight")),
    )
    out.append(Section(title="PRESCRIBER", children=(FieldGrid(prescriber),)))

    meds = _seq(_g(rx, "medications"))
    if meds:
        items: Tuple[Block, ...] = tuple(
            _medication_item(i, m) for i, m in enumerate(meds, start=1))
    else:
        items = (Paragraph("No medications prescribed.", muted=True),)
    out.append(Section(title="MEDICATIONS", children=items))

    special = tuple(text_or(x, "") for x in _seq(_g(rx, "specialInstructions", "special_instructions")))
    special = tuple(x for x in special if x)
    if special:
        out.append(Callout(title="SPECIAL INSTRUCTIONS", lines=special))

    future = _map(_g(rx, "futureNeeds", "future_needs"))
    next_review = _g(future, "nextReviewDate", "next_review_date", "nextReview")
    tests = tuple(text_or(t, "") for t in _seq(_g(future, "additionalTests", "additional_tests", "tests")))
    tests = tuple(t for t in tests if t)
    if present(next_review) or tests:
        care: List[Block] = []
        if present(next_review):
            care.append(Field.of("Next Review Date", format_date(next_review)))
        if tests:
            care.append(Field.of("Additional Tests", ", ".join(tests)))
        out.append(Section(title="FUTURE CARE", children=tuple(care)))

    return out


def _prescription_content(doc: PrintableDocument) -> List[Block]:
    if doc.variant == PrescriptionVariant.STRUCTURED:
        return _structured_prescription(doc.payload)
    return _flat_prescription(doc.payload)


# -------------------------------
# Lab order
# -------------------------------
def _lab_order_content(doc: PrintableDocument) -> List[Block]:
    order = doc.payload
    tests = _seq(_g(order, "tests"))

    children: List[Block] = []
    if tests:
        for i, t in enumerate(tests, start=1):
            tm = _map(t)
            name = text_or(_g(tm, "name", "testName", "test_name"), "Laboratory Test")
            children.append(ItemBlock(
                title=f"{i}. {name}",
                fields=optional_fields(
                    ("Category", _g(tm, "category")),
                    ("Description", _g(tm, "description")),
                    ("Instructions", _g(tm, "instructions")),
                ),
                css_class="lab-test",
            ))
    else:
        children.append(Paragraph("No laboratory tests ordered."))

    notes = _g(order, "notes") if present(_g(order, "notes")) else _g(order, "instructions")
    if present(notes):
        children.append(Field.of("Additional Instructions", notes))

    return [Section(title="LABORATORY TESTS ORDERED", children=tuple(children))]


# -------------------------------
# Consultation
# -------------------------------
def _form_value(v: Any) -> str:
    """Printable text for a form answer; nested objects flatten to "Key: value"."""
    if isinstance(v, Mapping):
        parts = []
        for k, x in v.items():
            text = _form_value(x)
            if text:
                parts.append(f"{humanize_key(k)}: {text}")
        return "; ".join(parts)
    if isinstance(v, (list, tuple)):
        return ", ".join(t for t in (_form_value(x) for x in v) if t)
    if isinstance(v, bool):
        return "Yes" if v else "No"
    return text_or(v, "")


def _consultation_content(doc: PrintableDocument) -> List[Block]:
    c = doc.payload
    children: List[Block] = []

    if present(_g(c, "formName", "form_name")):
        children.append(Field.of("Consultation Type", _g(c, "formName", "form_name")))

    for key, value in _map(_g(c, "formData", "form_data")).items():
        if not value:
            continue
        text = _form_value(value)
        if not text.strip():
            continue
        children.append(Field(label=humanize_key(key), value=text))

    if present(_g(c, "diagnosis")):
        children.append(Field.of("Diagnosis", _g(c, "diagnosis")))
    if present(_g(c, "treatment", "treatmentPlan")):
        children.append(Field.of("Treatment Plan", _g(c, "treatment", "treatmentPlan")))

    return [Section(title="CONSULTATION DETAILS", children=tuple(children))]


# -------------------------------
# Patient summary
# -------------------------------
def _visit_item(v: Any) -> ItemBlock:
    vm = _map(v)
    hr = _g(vm, "heartRate", "heart_rate")
    temp = _g(vm, "temperature")
    weight = _g(vm, "weight")
    detail = fields(
        ("Date", format_date(_g(vm, "visitDate", "visit_date"))),
        ("Type", _g(vm, "visitType", "visit_type")),
    )
    detail += optional_fields(
        ("BP", _g(vm, "bloodPressure", "blood_pressure")),
        ("HR", f"{hr} bpm" if present(hr) else None),
        ("Temp", f"{temp}°C" if present(temp) else None),
        ("Weight", f"{weight} kg" if present(weight) else None),
        ("Complaint", _g(vm, "complaint")),
        ("Diagnosis", _g(vm, "diagnosis")),
        ("Treatment", _g(vm, "treatment")),
    )
    return ItemBlock(title=f"Visit on {format_date(_g(vm, 'visitDate', 'visit_date'))}",
                     fields=detail, css_class="visit")


def _patient_summary_content(doc: PrintableDocument) -> List[Block]:
    p = doc.payload
    out: List[Block] = []

    age = calculate_age(doc.patient.date_of_birth, doc.created_at.date())
    background = optional_fields(
        ("Age", f"{age} years" if age is not None else None),
        ("Allergies", _g(p, "allergies")),
        ("Medical History", _g(p, "medicalHistory", "medical_history")),
    )
    out.append(section_or_empty("MEDICAL BACKGROUND", background))

    visits = _seq(_g(p, "visits"))
    if visits:
        recent = sorted(
            visits,
            key=lambda v: to_date(_g(v, "visitDate", "visit_date")) or date.min,
            reverse=True,
        )[:MAX_SUMMARY_VISITS]
        children: Tuple[Block, ...] = tuple(_visit_item(v) for v in recent)
    else:
        children = (Paragraph("No visits recorded", muted=True),)
    out.append(Section(title=f"RECENT VISITS ({len(visits)})", children=children))
    return out


# -------------------------------
# Insurance
# -------------------------------
def insurance_status(record: Mapping[str, Any], today: Optional[date] = None) -> str:
    """
    Display status of a policy: a past expiration date wins over whatever
    `policyStatus` says.
    """
    today = today or now_local().date()
    expires = to_date(_g(record, "expirationDate", "expiration_date"))
    if expires and expires < today:
        return "Expired"
    status = str(_g(record, "policyStatus", "policy_status", default="") or "").strip()
    return status.capitalize() if status else "Unknown"


def _insurance_content(doc: PrintableDocument) -> List[Block]:
    ins = doc.payload
    today = doc.created_at.date()

    policy = fields(
        ("Provider", _g(ins, "provider")),
        ("Policy Number", _g(ins, "policyNumber", "policy_number")),
        ("Coverage", str(_g(ins, "coverageType", "coverage_type", default="") or "").capitalize()),
        ("Status", insurance_status(ins, today)),
        ("Effective", format_date(_g(ins, "effectiveDate", "effective_date"))),
        ("Expires", format_date(_g(ins, "expirationDate", "expiration_date"))),
    )
    policy += optional_fields(
        ("Group Number", _g(ins, "groupNumber", "group_number")),
        ("Membership Number", _g(ins, "membershipNumber", "membership_number")),
    )

    money = optional_fields(
        ("Deductible", format_currency(_g(ins, "deductible"))),
        ("Copay", format_currency(_g(ins, "copay"))),
        ("Coinsurance", _g(ins, "coinsurance")),
        ("Maximum Benefit", format_currency(_g(ins, "maximumBenefit", "maximum_benefit"))),
    )

    flags = []
    if _g(ins, "preAuthRequired", "pre_auth_required"):
        flags.append("Pre-authorization required")
    if _g(ins, "referralRequired", "referral_required"):
        flags.append("Referral required")

    out: List[Block] = [Section(title="POLICY", children=(FieldGrid(policy),))]
    if money:
        out.append(Section(title="BENEFITS", children=(FieldGrid(money),)))

    contact = optional_fields(
        ("Phone", _g(ins, "providerPhone", "provider_phone")),
        ("Email", _g(ins, "providerEmail", "provider_email")),
        ("Address", _g(ins, "providerAddress", "provider_address")),
    )
    if contact:
        out.append(Section(title="PROVIDER CONTACT", children=(FieldGrid(contact),)))
    if flags:
        out.append(Callout(title="REQUIREMENTS", lines=tuple(flags)))
    details = _g(ins, "coverageDetails", "coverage_details")
    notes = _g(ins, "notes")
    if present(details) or present(notes):
        extra = optional_fields(("Coverage Details", details), ("Notes", notes))
        out.append(Section(title="NOTES", children=extra))
    return out


# -------------------------------
# Dispatch
# -------------------------------
ContentBuilder = Callable[[PrintableDocument], List[Block]]

CONTENT_BUILDERS: Dict[str, ContentBuilder] = {
    DocumentKind.PRESCRIPTION.value: _prescription_content,
    DocumentKind.LAB_ORDER.value: _lab_order_content,
    DocumentKind.CONSULTATION.value: _consultation_content,
    DocumentKind.PATIENT_SUMMARY.value: _patient_summary_content,
    DocumentKind.INSURANCE.value: _insurance_content,
}


def _unavailable(doc: PrintableDocument) -> List[Block]:
    return [Section(title="DOCUMENT", children=(Paragraph("Content not available."),))]


def render_content(doc: PrintableDocument) -> List[Block]:
    builder = CONTENT_BUILDERS.get(doc.kind, _unavailable)
    try:
        return builder(doc)
    except Exception:
        # a print with placeholders beats a failed print
        logger.exception("Content builder failed for %s %s", doc.kind, doc.record_id)
        return _unavailable(doc)


def patient_fields(doc: PrintableDocument) -> Tuple[Field, ...]:
    p = doc.patient
    return fields(
        ("Patient ID", p.id),
        ("Date", format_date(doc.created_at)),
        ("Name", p.full_name),
        ("Time", format_time(doc.created_at, "N/A")),
        ("Date of Birth", format_date(p.date_of_birth)),
        ("Record #", doc.record_id),
        ("Gender", p.gender),
        ("Phone", p.phone),
    ) + optional_fields(("Address", p.address))


def provider_fields(doc: PrintableDocument) -> Tuple[Field, ...]:
    s = doc.issuer
    return fields(
        ("Provider", s.full_name),
        ("Role", s.role),
        ("Username", s.username),
    ) + optional_fields(("Phone", s.phone))


# -------------------------------
# Page
# -------------------------------
def _css(theme_color: str) -> str:
    return f"""
    {letterhead_css(theme_color)}

    @page {{
      size: A4;
      margin: 0.5in;
    }}

    body {{
      font-family: 'Times New Roman', serif;
      line-height: 1.6;
      color: #000;
      margin: 0;
      padding: 20px;
      background: #ffffff;
    }}

    .print-container {{
      background: white;
      max-width: 800px;
      margin: 0 auto;
      padding: 40px;
      border: 2px solid #e0e7ff;
      border-radius: 10px;
    }}

    .document-title {{
      text-align: center;
      font-size: 20px;
      font-weight: bold;
      margin: 20px 0;
      text-transform: uppercase;
      border: 2px solid #000;
      padding: 10px;
    }}
    .document-date {{ text-align: center; font-size: 12px; color: #555; margin: -12px 0 16px; }}

    .info-section {{ margin: 15px 0; border: 1px solid #ccc; padding: 10px; }}
    .info-title {{
      font-weight: bold;
      font-size: 14px;
      margin-bottom: 8px;
      border-bottom: 1px solid #ddd;
      padding-bottom: 3px;
    }}
    .info-grid {{
      display: grid;
      grid-template-columns: 1fr 1fr;
      gap: 10px;
      font-size: 12px;
    }}
    .info-item {{ margin-bottom: 5px; }}
    .label {{ font-weight: bold; display: inline-block; min-width: 100px; }}

    .content-section {{ margin: 20px 0; padding: 15px; border: 1px solid #000; }}
    .content-title {{
      font-size: 16px;
      font-weight: bold;
      margin-bottom: 15px;
      text-align: center;
    }}

    .medication-item {{
      border: 2px solid {theme_color};
      background: #f8faff;
      border-radius: 8px;
      padding: 12px 16px;
      margin-bottom: 12px;
    }}
    .item-title {{ font-weight: bold; font-size: 15px; }}
    .medication-item .item-title {{ color: {theme_color}; font-size: 18px; }}
    .item-detail {{ margin-top: 5px; font-size: 13px; }}

    .lab-test {{
      margin: 8px 0;
      padding: 8px;
      border-left: 3px solid #007bff;
      background-color: #f8f9fa;
    }}
    .visit {{ border: 1px solid #e5e7eb; border-radius: 4px; padding: 8px; margin: 8px 0; }}

    .consultation-field {{
      margin: 10px 0;
      padding: 8px;
      border: 1px solid #ddd;
      background-color: #fafafa;
    }}
    .field-label {{ font-weight: bold; margin-bottom: 5px; }}
    .field-value {{ margin-left: 10px; }}

    .callout {{
      margin: 15px 0;
      padding: 10px;
      border: 1px solid #f59e0b;
      background: #fffbeb;
    }}
    .callout ul {{ margin: 4px 0 0 18px; padding: 0; }}
    .para.muted {{ color: #6b7280; font-style: italic; }}

    .signature-section {{
      margin-top: 40px;
      display: grid;
      grid-template-columns: 1fr 1fr;
      gap: 40px;
    }}
    .signature-box {{ text-align: center; }}
    .signature-line {{ border-top: 1px solid #000; margin-top: 40px; padding-top: 5px; }}

    .footer {{
      margin-top: 30px;
      padding-top: 15px;
      border-top: 1px solid #ccc;
      font-size: 11px;
    }}

    .item, .medication-item, .lab-test, .visit, .callout {{ page-break-inside: avoid; }}

    @media print {{
      body {{ margin: 0; padding: 0; font-size: 11px; }}
      .print-container {{ border: none; padding: 0; max-width: none; }}
      .org-name {{ font-size: 24px; }}
      .org-type {{ font-size: 14px; }}
      .org-details {{ font-size: 11px; }}
      .document-title {{ font-size: 16px; margin: 12px 0; padding: 6px; }}
      .content-section {{ margin: 12px 0; padding: 10px; }}
      .no-print {{ display: none; }}
    }}
    """


AUTO_PRINT_SCRIPT = """
    <script>
        window.onload = function() {
            window.print();
        }
    </script>
"""


def _grid(title: str, items: Sequence[Field]) -> str:
    return (f"<div class='info-section'><div class='info-title'>{esc(title)}</div>"
            f"{blocks_to_html([FieldGrid(tuple(items))])}</div>")


def render(doc: PrintableDocument,
           printed_at: Optional[datetime] = None,
           *,
           auto_print: bool = True) -> str:
    """
    Self-contained HTML for one document: letterhead, title banner, patient
    and provider blocks, kind-specific content, signatures and footer.

    `printed_at` is the only clock input; it is read once per call when not
    supplied, so a fixed value gives byte-identical output.
    """
    printed_at = printed_at or now_local()
    org = doc.organization
    theme = safe_color(org.theme_color)
    title = document_title(doc.kind)

    content_html = blocks_to_html(render_content(doc))
    script = AUTO_PRINT_SCRIPT if auto_print else ""

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{esc(title)} - {esc(org.name)}</title>
    <style>{_css(theme)}</style>
</head>
<body>
    <div class="print-container">
    {render_letterhead_html(org)}

    <div class="document-title">{esc(title)}</div>
    <div class="document-date">{esc(format_document_date(doc.created_at))}</div>

    {_grid("PATIENT INFORMATION", patient_fields(doc))}

    {_grid("HEALTHCARE PROVIDER", provider_fields(doc))}

    {content_html}

    <div class="signature-section">
        <div class="signature-box"><div class="signature-line">Healthcare Provider Signature</div></div>
        <div class="signature-box"><div class="signature-line">Date</div></div>
    </div>

    <div class="footer">
        <div>Printed on: {esc(format_date(printed_at))} at {esc(format_time(printed_at))}</div>
        <div style="margin-top: 5px;">This document was generated electronically by {esc(org.name)} clinic management system.</div>
    </div>
    </div>
    {script}
</body>
</html>
"""
