"""Pytest fixtures for the test suite."""
import os
import tempfile
from datetime import datetime
from typing import Any, Dict, List

# media/spool root must exist before clinic_print.core.config is imported
os.environ.setdefault("STORAGE_DIR", tempfile.mkdtemp(prefix="clinic-print-"))

import httpx
import pytest

from clinic_print.schemas.print_document import OrganizationInfo
from clinic_print.services.print_context import (
    PrintContext,
    PrintContextClient,
    build_printable_document,
)
from clinic_print.services.print_sinks import ElementRegistry, PrintSinks, PrintSpool, TargetGuard
from clinic_print.utils.timezone import LOCAL_TZ

UPSTREAM = "http://upstream.test"
FIXED_NOW = datetime(2026, 10, 19, 9, 30, 0, tzinfo=LOCAL_TZ)

DOCTOR_PROFILE = {
    "id": 7,
    "title": "Dr.",
    "firstName": "Amara",
    "lastName": "Obi",
    "username": "aobi",
    "role": "doctor",
    "phone": "+234 803 000 1111",
}

UPSTREAM_ORG = {
    "id": 1,
    "name": "St. Luke Hospital",
    "type": "general_hospital",
    "address": "12 Marina Road, Lagos",
    "phone": "+234 1 555 0101",
    "email": "info@stluke.ng",
    "themeColor": "#0f766e",
}


class FakeUpstream:
    """Stands in for the clinic API behind an httpx.MockTransport."""

    def __init__(self) -> None:
        self.profile_status = 200
        self.profile_body: Any = dict(DOCTOR_PROFILE)
        self.org_status = 200
        self.org_body: Any = dict(UPSTREAM_ORG)
        self.org_error: Exception = None
        self.seen: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.seen.append(request)
        if request.url.path == "/api/profile":
            return httpx.Response(self.profile_status, json=self.profile_body)
        if request.url.path == "/api/print/organization":
            if self.org_error is not None:
                raise self.org_error
            if isinstance(self.org_body, bytes):
                return httpx.Response(self.org_status, content=self.org_body)
            return httpx.Response(self.org_status, json=self.org_body)
        return httpx.Response(404, json={"detail": "not found"})


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def default_org() -> OrganizationInfo:
    return OrganizationInfo(
        name="Grace",
        type="clinic",
        address="123 Healthcare Avenue, Lagos, Nigeria",
        phone="+234 802 123 4567",
        email="grace@clinic.com",
        website="www.grace-clinic.com",
    )


@pytest.fixture
def context_client(upstream, default_org) -> PrintContextClient:
    return PrintContextClient(UPSTREAM, default_organization=default_org,
                              transport=httpx.MockTransport(upstream.handler))


@pytest.fixture
def print_context(default_org) -> PrintContext:
    return PrintContext(current_user=dict(DOCTOR_PROFILE), organization=default_org)


@pytest.fixture
def patient() -> Dict[str, Any]:
    return {
        "patientId": "P-0001",
        "firstName": "Chinedu",
        "lastName": "Okafor",
        "dateOfBirth": "1990-05-14",
        "gender": "Male",
        "phone": "+234 805 222 3333",
        "address": "4 Allen Avenue, Ikeja",
    }


@pytest.fixture
def make_doc(patient, print_context):
    """Build a PrintableDocument with a fixed clock."""
    def _make(kind, record, **kw):
        kw.setdefault("clock", lambda: FIXED_NOW)
        return build_printable_document(kind, record, patient, print_context, **kw)
    return _make


@pytest.fixture
def spool(tmp_path) -> PrintSpool:
    return PrintSpool(root=tmp_path / "print-jobs", base_url="http://testserver/api/print/jobs")


@pytest.fixture
def sinks(spool) -> PrintSinks:
    return PrintSinks(ElementRegistry(), spool, TargetGuard())
