# FILE: clinic_print/schemas/print_document.py
from __future__ import annotations

from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DocumentKind(str, Enum):
    PRESCRIPTION = "prescription"
    LAB_ORDER = "lab-order"
    CONSULTATION = "consultation"
    PATIENT_SUMMARY = "patient-summary"
    INSURANCE = "insurance"


class PrescriptionVariant(str, Enum):
    FLAT = "flat"
    STRUCTURED = "structured"


_STRUCTURED_KEYS = ("doctor", "patient", "medications")


def detect_prescription_variant(payload: Any) -> PrescriptionVariant:
    """
    Multi-medication payloads carry doctor/patient/medications sub-objects.
    Presence decides, so an empty `medications: []` is still structured.
    """
    if isinstance(payload, Mapping) and any(payload.get(k) is not None for k in _STRUCTURED_KEYS):
        return PrescriptionVariant.STRUCTURED
    return PrescriptionVariant.FLAT


def freeze(value: Any) -> Any:
    """Read-only deep view: dicts -> mappingproxy, lists -> tuples."""
    if isinstance(value, Mapping):
        return MappingProxyType({str(k): freeze(v) for k, v in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(freeze(v) for v in value)
    if isinstance(value, set):
        return frozenset(freeze(v) for v in value)
    return value


class OrganizationInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[Union[int, str]] = None
    name: str
    type: str = "clinic"
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = Field(default=None, alias="logoUrl")
    theme_color: str = Field(default="#2563eb", alias="themeColor")


class PatientInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[Union[int, str]] = None
    full_name: str = Field(alias="fullName")
    first_name: str = Field(default="", alias="firstName")
    last_name: str = Field(default="", alias="lastName")
    date_of_birth: Optional[str] = Field(default=None, alias="dateOfBirth")
    gender: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class StaffInfo(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    full_name: str = Field(alias="fullName")
    title: Optional[str] = None
    role: str = ""
    username: str = ""
    phone: Optional[str] = None


class PrintableDocument(BaseModel):
    """
    One record plus its letterhead, patient and issuer context, ready to be
    rendered. Built per print/export action and discarded afterwards.

    `payload` is rebuilt as a frozen deep copy on construction, so later edits to
    the caller's record never leak into a document already built.
    """

    model_config = ConfigDict(frozen=True)

    kind: str
    variant: Optional[PrescriptionVariant] = None
    payload: Mapping[str, Any] = Field(default_factory=dict)
    organization: OrganizationInfo
    patient: PatientInfo
    issuer: StaffInfo
    created_at: datetime
    record_id: Optional[Union[int, str]] = None

    @model_validator(mode="before")
    @classmethod
    def _tag_prescription(cls, data: Any) -> Any:
        # the shape is tagged once here; rendering only matches on `variant`
        if isinstance(data, dict) and not data.get("variant"):
            kind = data.get("kind")
            kind = getattr(kind, "value", kind)
            if kind == DocumentKind.PRESCRIPTION.value:
                data = {**data, "variant": detect_prescription_variant(data.get("payload"))}
        return data

    @field_validator("kind", mode="before")
    @classmethod
    def _kind_value(cls, v: Any) -> str:
        if isinstance(v, Enum):
            return str(v.value)
        return "" if v is None else str(v)

    @field_validator("payload", mode="before")
    @classmethod
    def _payload_mapping(cls, v: Any) -> Any:
        # non-mapping payloads still print (as an empty record)
        return v if isinstance(v, Mapping) else {}

    @field_validator("payload", mode="after")
    @classmethod
    def _payload_frozen(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        return freeze(v)

    @property
    def known_kind(self) -> Optional[DocumentKind]:
        try:
            return DocumentKind(self.kind)
        except ValueError:
            return None
