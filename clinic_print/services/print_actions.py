# FILE: clinic_print/services/print_actions.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from clinic_print.core.errors import ExportTargetNotFoundError, PrintActionError
from clinic_print.schemas.print_document import DocumentKind, PrescriptionVariant, PrintableDocument
from clinic_print.services.filenames import patient_document_filename
from clinic_print.services.print_context import PrintContextClient, build_printable_document
from clinic_print.services.print_sinks import ExportedFile, PrintJob, PrintSinks
from clinic_print.services.print_templates import render
from clinic_print.utils.names import get_admin_display_name

logger = logging.getLogger(__name__)

ACTION_LABELS: Dict[str, str] = {
    DocumentKind.PRESCRIPTION.value: "prescription",
    DocumentKind.LAB_ORDER.value: "lab order",
    DocumentKind.CONSULTATION.value: "consultation",
    DocumentKind.PATIENT_SUMMARY.value: "patient summary",
    DocumentKind.INSURANCE.value: "insurance record",
}


def _label(kind: Union[DocumentKind, str]) -> str:
    value = kind.value if isinstance(kind, DocumentKind) else str(kind)
    return ACTION_LABELS.get(value, "document")


class PrintActions:
    """
    One method per user action (print, preview, download). Each fetches the
    context, builds the document and hands it to a sink; any failure is
    logged and surfaced as a `PrintActionError` carrying a short message.
    """

    def __init__(self, context_client: PrintContextClient, sinks: PrintSinks):
        self.context_client = context_client
        self.sinks = sinks

    async def build(self, kind: Union[DocumentKind, str], record: Any, patient: Any, *,
                    token: Optional[str] = None,
                    variant: Optional[PrescriptionVariant] = None) -> PrintableDocument:
        context = await self.context_client.fetch_print_context(token)
        return build_printable_document(kind, record, patient, context, variant=variant)

    async def print_record(self, kind: Union[DocumentKind, str], record: Any, patient: Any, *,
                           token: Optional[str] = None,
                           variant: Optional[PrescriptionVariant] = None) -> PrintJob:
        try:
            doc = await self.build(kind, record, patient, token=token, variant=variant)
            return await asyncio.to_thread(self.sinks.print_document, doc)
        except Exception as e:
            logger.exception("Error printing %s", _label(kind))
            raise PrintActionError(f"Failed to print {_label(kind)}. Please try again.",
                                   cause=e) from e

    async def preview(self, kind: Union[DocumentKind, str], record: Any, patient: Any, *,
                      token: Optional[str] = None,
                      variant: Optional[PrescriptionVariant] = None) -> str:
        try:
            doc = await self.build(kind, record, patient, token=token, variant=variant)
            return await asyncio.to_thread(render, doc, auto_print=False)
        except Exception as e:
            logger.exception("Error previewing %s", _label(kind))
            raise PrintActionError(f"Failed to preview {_label(kind)}. Please try again.",
                                   cause=e) from e

    async def download_pdf(self, kind: Union[DocumentKind, str], record: Any, patient: Any, *,
                           token: Optional[str] = None,
                           variant: Optional[PrescriptionVariant] = None,
                           by_patient_name: bool = False) -> ExportedFile:
        try:
            doc = await self.build(kind, record, patient, token=token, variant=variant)
            filename = None
            if by_patient_name:
                filename = patient_document_filename(doc.kind, doc.patient.first_name,
                                                     doc.patient.last_name,
                                                     doc.created_at.date())
            # PDF rendering blocks; keep it off the event loop
            return await asyncio.to_thread(self.sinks.download_document_pdf, doc, filename)
        except Exception as e:
            logger.exception("Error exporting %s as PDF", _label(kind))
            raise PrintActionError("Failed to export PDF file", cause=e) from e

    # per-kind shortcuts
    async def print_prescription(self, prescription: Any, patient: Any, **kw) -> PrintJob:
        return await self.print_record(DocumentKind.PRESCRIPTION, prescription, patient, **kw)

    async def print_lab_order(self, lab_order: Any, patient: Any, **kw) -> PrintJob:
        return await self.print_record(DocumentKind.LAB_ORDER, lab_order, patient, **kw)

    async def print_consultation(self, consultation: Any, patient: Any, **kw) -> PrintJob:
        return await self.print_record(DocumentKind.CONSULTATION, consultation, patient, **kw)

    async def print_patient_summary(self, summary: Any, patient: Any, **kw) -> PrintJob:
        return await self.print_record(DocumentKind.PATIENT_SUMMARY, summary, patient, **kw)

    async def print_insurance(self, insurance: Any, patient: Any, **kw) -> PrintJob:
        return await self.print_record(DocumentKind.INSURANCE, insurance, patient, **kw)


# -------------------------------
# Report rows for tabular export
# -------------------------------
def _pct(v: Any) -> str:
    return f"{v or 0}%"


def dashboard_stats_rows(stats: Mapping[str, Any], currency: str = "₦") -> List[Dict[str, Any]]:
    revenue = stats.get("totalRevenue") or 0
    try:
        revenue_text = f"{currency}{float(revenue):,.0f}"
    except (TypeError, ValueError):
        revenue_text = f"{currency}0"
    return [
        {"Metric": "Total Patients", "Value": stats.get("totalPatients") or 0,
         "Change": _pct(stats.get("patientsChange"))},
        {"Metric": "Today's Visits", "Value": stats.get("todayVisits") or 0,
         "Change": _pct(stats.get("visitsChange"))},
        {"Metric": "Total Revenue", "Value": revenue_text,
         "Change": _pct(stats.get("revenueChange"))},
        {"Metric": "Active Staff", "Value": stats.get("activeStaff") or 0, "Change": "N/A"},
        {"Metric": "Pending Labs", "Value": stats.get("pendingLabs") or 0,
         "Change": _pct(stats.get("labsChange"))},
        {"Metric": "Low Stock Items", "Value": stats.get("lowStockItems") or 0,
         "Change": _pct(stats.get("stockChange"))},
        {"Metric": "Today's Appointments", "Value": stats.get("appointmentsToday") or 0,
         "Change": "N/A"},
        {"Metric": "Completed Appointments", "Value": stats.get("completedAppointments") or 0,
         "Change": "N/A"},
    ]


def activity_log_rows(activities: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [{
        "Timestamp": a.get("timestamp"),
        "User": a.get("user"),
        "Action": a.get("description"),
        "Type": a.get("type"),
        "Severity": a.get("severity"),
    } for a in activities]


def staff_activity_rows(staff: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    return [{
        "Name": m.get("name") or get_admin_display_name(m),
        "Role": m.get("role"),
        "Status": m.get("status"),
        "Tasks Completed": m.get("tasksCompleted"),
        "Current Task": m.get("currentTask"),
        "Last Active": m.get("lastActive"),
    } for m in staff]


# report slug -> (sheet title, row builder); the dashboard takes one stats
# object, the others a list of entries
REPORTS: Dict[str, tuple] = {
    "dashboard-stats": ("Dashboard Stats", dashboard_stats_rows),
    "activity-log": ("Activity Log", activity_log_rows),
    "staff-activity": ("Staff Activity", staff_activity_rows),
}


def report_rows(report: str, data: Any) -> tuple[str, List[Dict[str, Any]]]:
    """Sheet title and rows for a named report; unknown names raise 404."""
    try:
        title, build = REPORTS[report]
    except KeyError:
        raise ExportTargetNotFoundError(
            f"Unknown report: {report}",
            details={"report": report, "known": sorted(REPORTS)},
        ) from None
    if report == "dashboard-stats":
        return title, build(data if isinstance(data, Mapping) else {})
    return title, build([x for x in data if isinstance(x, Mapping)] if isinstance(data, list) else [])
