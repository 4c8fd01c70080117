# FILE: clinic_print/schemas/requests.py
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from clinic_print.schemas.print_document import OrganizationInfo, PrescriptionVariant


class PrintRequest(BaseModel):
    """Body for /print/{kind}: the record being printed and its patient."""

    model_config = ConfigDict(populate_by_name=True)

    record: Dict[str, Any] = Field(default_factory=dict)
    patient: Dict[str, Any] = Field(default_factory=dict)
    variant: Optional[PrescriptionVariant] = None


class ElementIn(BaseModel):
    html: str = Field(min_length=1)


class PrintOptions(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: str = Field(min_length=1)
    organization: Optional[OrganizationInfo] = None
    show_header: bool = Field(default=True, alias="showHeader")
    format: Literal["a4", "letter"] = "a4"
    orientation: Literal["portrait", "landscape"] = "portrait"


class TabularExportIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    filename: str = Field(min_length=1)
    sheet_title: str = Field(default="Data", alias="sheetTitle")
    rows: List[Dict[str, Any]] = Field(default_factory=list)


class ReportExportIn(BaseModel):
    """Dashboard stats come as one object; activity and staff reports as a list."""

    data: Union[Dict[str, Any], List[Dict[str, Any]]] = Field(default_factory=list)
