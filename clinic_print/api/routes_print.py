# FILE: clinic_print/api/routes_print.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse

from clinic_print.api.deps import get_bearer_token, get_print_actions, get_print_sinks
from clinic_print.api.response import file_response, ok
from clinic_print.schemas.requests import ElementIn, PrintOptions, PrintRequest
from clinic_print.services.print_actions import PrintActions
from clinic_print.services.print_sinks import PrintSinks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/print", tags=["Print"])


# -------------------------------
# Spooled jobs
# -------------------------------
@router.get("/jobs/{job_id}", response_class=HTMLResponse)
def get_print_job(job_id: str, sinks: PrintSinks = Depends(get_print_sinks)):
    html = sinks.spool.take(job_id)
    if html is None:
        raise HTTPException(status_code=404, detail="Print job not found or already printed")
    return HTMLResponse(html)


# -------------------------------
# Registered elements
# -------------------------------
@router.put("/elements/{element_id}")
def put_element(element_id: str, payload: ElementIn,
                sinks: PrintSinks = Depends(get_print_sinks)):
    sinks.elements.put(element_id, payload.html)
    return ok({"element_id": element_id})


@router.delete("/elements/{element_id}")
def delete_element(element_id: str, sinks: PrintSinks = Depends(get_print_sinks)):
    if not sinks.elements.remove(element_id):
        raise HTTPException(status_code=404, detail="Element not found")
    return ok({"element_id": element_id})


@router.post("/elements/{element_id}/print")
def print_element(element_id: str, sinks: PrintSinks = Depends(get_print_sinks)):
    job = sinks.print_element(element_id)
    return ok({"job_id": job.job_id, "url": job.url})


@router.post("/elements/{element_id}/pdf")
def export_element_pdf(element_id: str, options: PrintOptions,
                       sinks: PrintSinks = Depends(get_print_sinks)):
    return file_response(sinks.export_to_pdf(element_id, options))


# -------------------------------
# Clinical records
# -------------------------------
@router.post("/{kind}")
async def print_record(kind: str, payload: PrintRequest,
                       token: Optional[str] = Depends(get_bearer_token),
                       actions: PrintActions = Depends(get_print_actions)):
    job = await actions.print_record(kind, payload.record, payload.patient,
                                     token=token, variant=payload.variant)
    logger.info("Spooled %s print job %s", kind, job.job_id)
    return ok({"job_id": job.job_id, "url": job.url})


@router.post("/{kind}/preview", response_class=HTMLResponse)
async def preview_record(kind: str, payload: PrintRequest,
                         token: Optional[str] = Depends(get_bearer_token),
                         actions: PrintActions = Depends(get_print_actions)):
    html = await actions.preview(kind, payload.record, payload.patient,
                                 token=token, variant=payload.variant)
    return HTMLResponse(html)


@router.post("/{kind}/pdf")
async def download_record_pdf(kind: str, payload: PrintRequest,
                              by_patient_name: bool = Query(False),
                              download: bool = Query(False),
                              token: Optional[str] = Depends(get_bearer_token),
                              actions: PrintActions = Depends(get_print_actions)):
    f = await actions.download_pdf(kind, payload.record, payload.patient, token=token,
                                   variant=payload.variant, by_patient_name=by_patient_name)
    return file_response(f, disposition="attachment" if download else "inline")
