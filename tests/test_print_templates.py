"""Tests for the document renderer and its content builders."""
from datetime import date

import pytest

from clinic_print.schemas.print_document import OrganizationInfo, PrescriptionVariant
from clinic_print.services import print_templates
from clinic_print.services.letterhead import logo_src, render_letterhead_html
from clinic_print.services.print_blocks import walk_text
from clinic_print.services.print_templates import insurance_status, render, render_content
from conftest import FIXED_NOW

AMOXICILLIN = {
    "id": 11,
    "medicationName": "Amoxicillin",
    "dosage": "500mg",
    "frequency": "Three times daily",
    "duration": "7 days",
    "instructions": "Take after meals",
    "prescribedBy": "Dr. Amara Obi",
    "startDate": "2026-10-19",
}


def text_of(doc):
    return walk_text(render_content(doc))


class TestPageSkeleton:

    def test_sections_in_order(self, make_doc):
        html = render(make_doc("prescription", AMOXICILLIN), FIXED_NOW)
        order = [
            "<!DOCTYPE html>",
            "class=\"header\"",
            "class=\"document-title\">PRESCRIPTION<",
            "PATIENT INFORMATION",
            "HEALTHCARE PROVIDER",
            "MEDICATION DETAILS",
            "Healthcare Provider Signature",
            "Printed on: 19/10/2026 at 09:30:00 AM",
            "window.print()",
        ]
        positions = [html.index(marker) for marker in order]
        assert positions == sorted(positions)

    def test_header_and_footer_use_organization(self, make_doc):
        html = render(make_doc("prescription", AMOXICILLIN), FIXED_NOW)
        assert "<title>PRESCRIPTION - Grace</title>" in html
        assert "Tel: +234 802 123 4567 | Email: grace@clinic.com" in html
        assert "Web: www.grace-clinic.com" in html
        assert "generated electronically by Grace clinic management system" in html

    def test_patient_and_provider_blocks(self, make_doc):
        html = render(make_doc("prescription", AMOXICILLIN), FIXED_NOW)
        assert "Chinedu Okafor" in html
        assert "14/05/1990" in html
        assert "Dr. Amara Obi" in html
        assert "aobi" in html

    def test_document_date_under_title(self, make_doc):
        html = render(make_doc("prescription", AMOXICILLIN), FIXED_NOW)
        assert '<div class="document-date">Monday, 19 October 2026</div>' in html
        assert html.index("document-title\">") < html.index("document-date\">")

    def test_preview_has_no_print_script(self, make_doc):
        html = render(make_doc("prescription", AMOXICILLIN), FIXED_NOW, auto_print=False)
        assert "window.print()" not in html

    def test_same_input_same_output(self, make_doc):
        doc = make_doc("consultation", {"formData": {"chiefComplaint": "Headache"}})
        assert render(doc, FIXED_NOW) == render(doc, FIXED_NOW)

    def test_values_are_escaped(self, make_doc):
        html = render(make_doc("lab-order", {"tests": [{"name": "<script>x</script>"}]}), FIXED_NOW)
        assert "<script>x</script>" not in html
        assert "&lt;script&gt;x&lt;/script&gt;" in html

    @pytest.mark.parametrize("kind, title", [
        ("prescription", "PRESCRIPTION"),
        ("lab-order", "LABORATORY ORDER"),
        ("consultation", "CONSULTATION RECORD"),
        ("patient-summary", "PATIENT SUMMARY"),
        ("insurance", "INSURANCE INFORMATION"),
        ("discharge-note", "MEDICAL DOCUMENT"),
    ])
    def test_titles(self, make_doc, kind, title):
        assert f"class=\"document-title\">{title}<" in render(make_doc(kind, {}), FIXED_NOW)


class TestTotality:

    @pytest.mark.parametrize("kind", [
        "prescription", "lab-order", "consultation", "patient-summary", "insurance", "unknown",
    ])
    @pytest.mark.parametrize("payload", [
        {},
        {"tests": "nope", "medications": 5, "formData": [1, 2], "visits": [None, 3]},
        {"doctor": "x", "futureNeeds": "soon", "specialInstructions": None},
        {"expirationDate": "garbage", "deductible": "n/a", "policyStatus": 3},
    ])
    def test_any_payload_renders(self, make_doc, kind, payload):
        html = render(make_doc(kind, payload), FIXED_NOW)
        assert "None" not in html.split("<body>")[1]
        assert "undefined" not in html

    def test_unknown_kind_placeholder(self, make_doc):
        assert "Content not available." in text_of(make_doc("discharge-note", {"x": 1}))

    def test_failing_builder_falls_back_to_placeholder(self, make_doc, monkeypatch):
        def boom(doc):
            raise RuntimeError("bad record")
        monkeypatch.setitem(print_templates.CONTENT_BUILDERS, "lab-order", boom)
        assert text_of(make_doc("lab-order", {})) == ["DOCUMENT", "Content not available."]


class TestPrescription:

    def test_flat(self, make_doc):
        text = text_of(make_doc("prescription", AMOXICILLIN))
        assert "Rx: Amoxicillin" in text
        assert "500mg" in text
        assert "Three times daily" in text
        assert "Take after meals" in text
        assert "19/10/2026" in text

    def test_medication_name_is_title_cased(self, make_doc):
        text = text_of(make_doc("prescription", {"medicationName": "ceftriaxone 1G iv"}))
        assert "Rx: Ceftriaxone 1g IV" in text
        rx = {"medications": [{"name": "vitamin d3 1000IU"}]}
        assert "Rx 1: Vitamin D3 1000iu" in text_of(make_doc("prescription", rx))

    def test_flat_fallbacks(self, make_doc):
        text = text_of(make_doc("prescription", {}))
        assert "Rx: Prescribed Medication" in text
        assert "As prescribed" in text
        assert "As directed" in text
        assert "Special Instructions" not in text

    def test_structured(self, make_doc):
        rx = {
            "doctor": {"name": "Dr. Amara Obi", "specialization": "Family Medicine"},
            "clinic": {"name": "Grace"},
            "medications": [
                {"name": "Amoxicillin", "dosage": "500mg", "route": "Oral"},
                {"name": "Paracetamol"},
            ],
            "specialInstructions": ["Complete the course", ""],
            "futureNeeds": {"nextReviewDate": "2026-11-02", "additionalTests": ["FBC"]},
        }
        text = text_of(make_doc("prescription", rx))
        assert "Rx 1: Amoxicillin" in text
        assert "Rx 2: Paracetamol" in text
        assert "Oral" in text
        assert "Family Medicine" in text
        assert "SPECIAL INSTRUCTIONS" in text
        assert "Complete the course" in text
        assert "FUTURE CARE" in text
        assert "02/11/2026" in text
        assert "FBC" in text

    def test_structured_without_medications(self, make_doc):
        text = text_of(make_doc("prescription", {"doctor": {"name": "Dr. Amara Obi"}}))
        assert "No medications prescribed." in text
        assert "SPECIAL INSTRUCTIONS" not in text
        assert "FUTURE CARE" not in text

    def test_empty_structured_prescription(self, make_doc):
        doc = make_doc("prescription", {"doctor": {}, "medications": []})
        text = text_of(doc)
        assert doc.variant == PrescriptionVariant.STRUCTURED
        assert "No medications prescribed." in text
        assert "Rx: Prescribed Medication" not in text
        assert "MEDICATION DETAILS" not in text


class TestLabOrder:

    def test_numbered_tests(self, make_doc):
        order = {
            "tests": [
                {"name": "Full Blood Count", "category": "Hematology"},
                {"testName": "Lipid Panel"},
                {},
            ],
            "notes": "Fasting sample",
        }
        text = text_of(make_doc("lab-order", order))
        assert "1. Full Blood Count" in text
        assert "Hematology" in text
        assert "2. Lipid Panel" in text
        assert "3. Laboratory Test" in text
        assert "Fasting sample" in text

    def test_no_tests(self, make_doc):
        assert "No laboratory tests ordered." in text_of(make_doc("lab-order", {"tests": []}))


class TestConsultation:

    def test_form_data(self, make_doc):
        consultation = {
            "formName": "General Consultation",
            "formData": {
                "chiefComplaint": "Headache",
                "field_1712345": "Mild photophobia",
                "symptoms": ["fever", "cough"],
                "vitals": {"bp": "120/80", "pulse": ""},
                "smoker": True,
                "emptyField": "",
            },
            "diagnosis": "Migraine",
            "treatment": "Rest and fluids",
        }
        text = text_of(make_doc("consultation", consultation))
        assert "General Consultation" in text
        assert "Chief Complaint" in text
        assert "Clinical Notes" in text
        assert "fever, cough" in text
        assert "Bp: 120/80" in text
        assert "Yes" in text
        assert "Empty Field" not in text
        assert "Migraine" in text
        assert "Rest and fluids" in text

    def test_list_of_objects_is_flattened(self, make_doc):
        consultation = {"formData": {"medications": [{"name": "Amoxicillin", "dose": "500mg"},
                                                     {"name": "Paracetamol", "prn": False}]}}
        text = text_of(make_doc("consultation", consultation))
        assert "Name: Amoxicillin; Dose: 500mg, Name: Paracetamol; Prn: No" in text
        assert not any("{" in t for t in text)

    def test_labels_are_upper_cased_in_html(self, make_doc):
        html = render(make_doc("consultation", {"formData": {"chiefComplaint": "Headache"}}), FIXED_NOW)
        assert "CHIEF COMPLAINT:" in html


class TestPatientSummary:

    def test_five_most_recent_visits(self, make_doc):
        visits = [{"visitDate": f"2026-0{m}-01", "visitType": "Follow-up"} for m in range(1, 8)]
        text = text_of(make_doc("patient-summary", {"visits": visits, "allergies": "Penicillin"}))
        visit_titles = [t for t in text if t.startswith("Visit on")]
        assert "RECENT VISITS (7)" in text
        assert visit_titles == [
            "Visit on 01/07/2026",
            "Visit on 01/06/2026",
            "Visit on 01/05/2026",
            "Visit on 01/04/2026",
            "Visit on 01/03/2026",
        ]
        assert "Penicillin" in text
        assert "36 years" in text

    def test_vitals(self, make_doc):
        visit = {"visitDate": "2026-10-01", "heartRate": 72, "temperature": 36.8, "weight": 70}
        text = text_of(make_doc("patient-summary", {"visits": [visit]}))
        assert "72 bpm" in text
        assert "36.8°C" in text
        assert "70 kg" in text

    def test_no_visits(self, make_doc):
        assert "No visits recorded" in text_of(make_doc("patient-summary", {}))


class TestInsurance:

    def test_status(self):
        today = date(2026, 10, 19)
        assert insurance_status({"expirationDate": "2020-01-01", "policyStatus": "active"}, today) == "Expired"
        assert insurance_status({"expirationDate": "2027-01-01", "policyStatus": "active"}, today) == "Active"
        assert insurance_status({}, today) == "Unknown"

    def test_content(self, make_doc):
        policy = {
            "provider": "Hygeia HMO",
            "policyNumber": "HYG-889",
            "coverageType": "family",
            "policyStatus": "active",
            "expirationDate": "2027-12-31",
            "deductible": "25000",
            "copay": "2500.5",
            "preAuthRequired": True,
        }
        text = text_of(make_doc("insurance", policy))
        assert "Hygeia HMO" in text
        assert "Family" in text
        assert "Active" in text
        assert "₦25,000" in text
        assert "₦2,500.5" in text
        assert "Pre-authorization required" in text
        assert "Referral required" not in text


class TestLetterhead:

    def test_optional_lines(self):
        html = render_letterhead_html(OrganizationInfo(name="Kind Hands", type="general_hospital"))
        assert "GENERAL HOSPITAL" in html
        assert "Tel:" not in html
        assert "Web:" not in html
        assert "<img" not in html

    def test_remote_logo_is_passed_through(self):
        org = OrganizationInfo(name="Kind Hands", logoUrl="https://cdn.example.org/logo.png")
        assert logo_src(org) == "https://cdn.example.org/logo.png"

    def test_local_logo_is_embedded(self):
        from pathlib import Path

        from PIL import Image

        from clinic_print.core.config import settings

        logos = Path(settings.STORAGE_DIR).resolve() / "logos"
        logos.mkdir(parents=True, exist_ok=True)
        Image.new("RGB", (800, 400), "white").save(logos / "grace.png")

        org = OrganizationInfo(name="Grace", logoUrl="/media/logos/grace.png")
        assert logo_src(org).startswith("data:image/png;base64,")


class TestBlocks:

    def test_empty_block_renders_nothing(self):
        from clinic_print.services.print_blocks import Empty, blocks_to_html, section_or_empty

        assert section_or_empty("MEDICAL BACKGROUND", ()) == Empty()
        assert blocks_to_html([Empty()]) == ""
        assert walk_text([Empty()]) == []

    def test_field_defaults(self):
        from clinic_print.services.print_blocks import Field

        assert Field.of("Dosage", None).value == "N/A"
        assert Field.of("Dosage", "  ", "As prescribed").value == "As prescribed"
        assert Field.of("Tests", ["FBC", None, "LFT"]).value == "FBC, LFT"
