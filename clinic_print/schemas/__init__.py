# clinic_print/schemas/__init__.py
from .print_document import (
    DocumentKind,
    OrganizationInfo,
    PatientInfo,
    PrescriptionVariant,
    PrintableDocument,
    StaffInfo,
)
from .requests import ElementIn, PrintOptions, PrintRequest, TabularExportIn
