# FILE: clinic_print/services/print_context.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx

from clinic_print.core.config import settings
from clinic_print.core.errors import ContextFetchError
from clinic_print.schemas.print_document import (
    DocumentKind,
    OrganizationInfo,
    PatientInfo,
    PrescriptionVariant,
    PrintableDocument,
    StaffInfo,
    detect_prescription_variant,
)
from clinic_print.utils.formatting import to_datetime
from clinic_print.utils.names import get_display_name, get_formal_name
from clinic_print.utils.text import capitalize_role
from clinic_print.utils.timezone import LOCAL_TZ, now_local

logger = logging.getLogger(__name__)

PROFILE_PATH = "/api/profile"
ORGANIZATION_PATH = "/api/print/organization"


def _g(obj: Any, *keys: str, default: Any = None) -> Any:
    if obj is None:
        return default
    for k in keys:
        v = obj.get(k) if isinstance(obj, Mapping) else getattr(obj, k, None)
        if v is not None:
            return v
    return default


def _s(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip()
    return s or None


def build_default_organization() -> OrganizationInfo:
    """Letterhead used when the organization lookup is unavailable."""
    return OrganizationInfo(
        name=settings.DEFAULT_ORG_NAME,
        type=settings.DEFAULT_ORG_TYPE,
        address=settings.DEFAULT_ORG_ADDRESS,
        phone=settings.DEFAULT_ORG_PHONE,
        email=settings.DEFAULT_ORG_EMAIL,
        website=settings.DEFAULT_ORG_WEBSITE,
        theme_color=settings.DEFAULT_THEME_COLOR,
    )


# -------------------------------
# Projections
# -------------------------------
def format_patient_info(patient: Any) -> PatientInfo:
    dob = _g(patient, "dateOfBirth", "date_of_birth", "dob")
    if dob is not None and not isinstance(dob, str):
        dob = dob.isoformat() if hasattr(dob, "isoformat") else str(dob)
    return PatientInfo(
        id=_g(patient, "patientId", "patient_id", "id"),
        full_name=get_display_name(patient),
        first_name=_s(_g(patient, "firstName", "first_name")) or "",
        last_name=_s(_g(patient, "lastName", "last_name")) or "",
        date_of_birth=dob,
        gender=_s(_g(patient, "gender")),
        phone=_s(_g(patient, "phone")),
        address=_s(_g(patient, "address")),
    )


def format_staff_info(user: Any) -> StaffInfo:
    return StaffInfo(
        full_name=get_formal_name(user),
        title=_s(_g(user, "title")),
        role=capitalize_role(_g(user, "role", default="")),
        username=_s(_g(user, "username")) or "",
        phone=_s(_g(user, "phone")),
    )


def format_organization_info(org: Any,
                             theme_color: Optional[str] = None) -> OrganizationInfo:
    return OrganizationInfo(
        id=_g(org, "id"),
        name=_s(_g(org, "name")) or "",
        type=_s(_g(org, "type")) or "clinic",
        address=_s(_g(org, "address")),
        phone=_s(_g(org, "phone")),
        email=_s(_g(org, "email")),
        website=_s(_g(org, "website")),
        logo_url=_s(_g(org, "logoUrl", "logo_url")),
        theme_color=_s(_g(org, "themeColor", "theme_color")) or theme_color or settings.DEFAULT_THEME_COLOR,
    )


# -------------------------------
# Fetch
# -------------------------------
@dataclass(frozen=True)
class PrintContext:
    current_user: Dict[str, Any]
    organization: OrganizationInfo


class PrintContextClient:
    """
    Loads the acting user's profile and the organization letterhead from the
    clinic API.

    The two lookups fail differently: no profile means no issuer, so the
    error propagates; a missing letterhead is replaced by
    `default_organization`.
    """

    def __init__(self,
                 base_url: Optional[str] = None,
                 *,
                 default_organization: Optional[OrganizationInfo] = None,
                 timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.UPSTREAM_API_URL).rstrip("/")
        self.default_organization = default_organization or build_default_organization()
        self._timeout = timeout if timeout is not None else settings.UPSTREAM_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self, token: Optional[str]) -> httpx.AsyncClient:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return httpx.AsyncClient(base_url=self.base_url, headers=headers,
                                 timeout=self._timeout, transport=self._transport)

    async def fetch_profile(self, client: httpx.AsyncClient) -> Dict[str, Any]:
        try:
            response = await client.get(PROFILE_PATH)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise ContextFetchError("Could not load your profile for printing",
                                    details={"error": str(e)}) from e
        if not isinstance(data, dict):
            raise ContextFetchError("Could not load your profile for printing")
        return data

    async def fetch_organization(self, client: httpx.AsyncClient) -> OrganizationInfo:
        try:
            response = await client.get(ORGANIZATION_PATH)
            if not response.is_success:
                logger.warning("Organization lookup returned %s, using default letterhead",
                               response.status_code)
                return self.default_organization
            org = format_organization_info(response.json(),
                                           theme_color=self.default_organization.theme_color)
            if not org.name:
                logger.warning("Organization lookup returned no name, using default letterhead")
                return self.default_organization
            return org
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning("Could not fetch organization data for print, using default: %s", e)
            return self.default_organization

    async def fetch_print_context(self, token: Optional[str] = None) -> PrintContext:
        async with self._client(token) as client:
            current_user = await self.fetch_profile(client)
            organization = await self.fetch_organization(client)
        return PrintContext(current_user=current_user, organization=organization)


# -------------------------------
# Assemble
# -------------------------------
def _created_at(record: Mapping[str, Any], clock: Callable[[], datetime]) -> datetime:
    dt = to_datetime(_g(record, "createdAt", "created_at"))
    if dt is None:
        return clock()
    return dt if dt.tzinfo else dt.replace(tzinfo=LOCAL_TZ)


def build_printable_document(kind: Union[DocumentKind, str],
                             record: Any,
                             patient: Any,
                             context: PrintContext,
                             *,
                             variant: Optional[PrescriptionVariant] = None,
                             clock: Callable[[], datetime] = now_local) -> PrintableDocument:
    kind_value = kind.value if isinstance(kind, DocumentKind) else str(kind)
    record = record if isinstance(record, Mapping) else {}
    if kind_value == DocumentKind.PRESCRIPTION.value and variant is None:
        variant = detect_prescription_variant(record)

    return PrintableDocument(
        kind=kind_value,
        variant=variant,
        payload=record,
        organization=context.organization,
        patient=format_patient_info(patient),
        issuer=format_staff_info(context.current_user),
        created_at=_created_at(record, clock),
        record_id=_g(record, "id"),
    )
