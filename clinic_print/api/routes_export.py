# FILE: clinic_print/api/routes_export.py
from __future__ import annotations

from fastapi import APIRouter, Depends

from clinic_print.api.deps import get_print_sinks
from clinic_print.api.response import file_response
from clinic_print.schemas.requests import ReportExportIn, TabularExportIn
from clinic_print.services.filenames import dated_export_name
from clinic_print.services.print_actions import report_rows
from clinic_print.services.print_sinks import PrintSinks

router = APIRouter(prefix="/export", tags=["Export"])


@router.post("/csv")
def export_csv(payload: TabularExportIn, sinks: PrintSinks = Depends(get_print_sinks)):
    return file_response(sinks.export_to_csv(payload.rows, payload.filename))


@router.post("/xlsx")
def export_xlsx(payload: TabularExportIn, sinks: PrintSinks = Depends(get_print_sinks)):
    return file_response(sinks.export_to_excel(payload.rows, payload.filename,
                                               sheet_title=payload.sheet_title))


# ---------------- named reports ----------------
@router.post("/reports/{report}/csv")
def export_report_csv(report: str, payload: ReportExportIn,
                      sinks: PrintSinks = Depends(get_print_sinks)):
    _, rows = report_rows(report, payload.data)
    return file_response(sinks.export_to_csv(rows, dated_export_name(report)))


@router.post("/reports/{report}/xlsx")
def export_report_xlsx(report: str, payload: ReportExportIn,
                       sinks: PrintSinks = Depends(get_print_sinks)):
    title, rows = report_rows(report, payload.data)
    return file_response(sinks.export_to_excel(rows, dated_export_name(report), sheet_title=title))
