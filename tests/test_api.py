"""Tests for the HTTP surface."""
import csv
import io
from datetime import date

import pytest
from fastapi.testclient import TestClient

from clinic_print.api.deps import _extract_bearer, get_context_client, get_print_sinks
from clinic_print.main import app
from clinic_print.services import print_sinks

PATIENT = {"patientId": "P-0001", "firstName": "Chinedu", "lastName": "Okafor"}


@pytest.fixture
def client(sinks, context_client):
    app.dependency_overrides[get_print_sinks] = lambda: sinks
    app.dependency_overrides[get_context_client] = lambda: context_client
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["version"] == "v1"


def test_extract_bearer():
    assert _extract_bearer("Bearer abc") == "abc"
    assert _extract_bearer("bearer abc") == "abc"
    assert _extract_bearer("Basic abc") is None
    assert _extract_bearer(None) is None


class TestRecordRoutes:

    def test_print_then_fetch_job(self, client, upstream):
        r = client.post("/api/print/prescription",
                        json={"record": {"medicationName": "Amoxicillin"}, "patient": PATIENT},
                        headers={"Authorization": "Bearer tok-9"})
        assert r.status_code == 200
        body = r.json()
        assert body["ok"] is True
        job_id = body["data"]["job_id"]
        assert body["data"]["url"].endswith(f"/api/print/jobs/{job_id}")
        assert upstream.seen[0].headers["Authorization"] == "Bearer tok-9"

        page = client.get(f"/api/print/jobs/{job_id}")
        assert page.status_code == 200
        assert page.headers["content-type"].startswith("text/html")
        assert "Rx: Amoxicillin" in page.text

        again = client.get(f"/api/print/jobs/{job_id}")
        assert again.status_code == 404
        assert again.json()["ok"] is False

    def test_preview(self, client):
        r = client.post("/api/print/lab-order/preview",
                        json={"record": {"tests": [{"name": "FBC"}]}, "patient": PATIENT})
        assert r.status_code == 200
        assert "LABORATORY ORDER" in r.text
        assert "1. FBC" in r.text

    def test_unknown_kind_prints_placeholder(self, client):
        r = client.post("/api/print/discharge-note/preview", json={"record": {}, "patient": PATIENT})
        assert r.status_code == 200
        assert "MEDICAL DOCUMENT" in r.text
        assert "Content not available." in r.text

    def test_context_failure(self, client, upstream):
        upstream.profile_status = 500
        r = client.post("/api/print/lab-order", json={"record": {}, "patient": PATIENT})
        assert r.status_code == 502
        assert r.json()["error"] == {
            "msg": "Failed to print lab order. Please try again.",
            "code": "context_fetch_failed",
            "details": None,
        }

    def test_pdf(self, client, monkeypatch):
        monkeypatch.setattr(print_sinks, "html_to_pdf", lambda html, **kw: b"%PDF-fake")
        r = client.post("/api/print/prescription/pdf?by_patient_name=true",
                        json={"record": {"createdAt": "2026-10-01T10:00:00"}, "patient": PATIENT})
        assert r.status_code == 200
        assert r.headers["content-type"] == "application/pdf"
        assert r.headers["content-disposition"] == 'inline; filename="prescription_Chinedu_Okafor_2026-10-01.pdf"'
        assert r.content == b"%PDF-fake"

    def test_bad_variant_is_rejected(self, client):
        r = client.post("/api/print/prescription", json={"record": {}, "patient": PATIENT, "variant": "wide"})
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "validation_error"


class TestElementRoutes:

    def test_register_and_print(self, client):
        assert client.put("/api/print/elements/card", json={"html": "<p>Balance due</p>"}).status_code == 200
        r = client.post("/api/print/elements/card/print")
        assert r.status_code == 200
        page = client.get(f"/api/print/jobs/{r.json()['data']['job_id']}")
        assert "Balance due" in page.text

    def test_missing_element(self, client):
        r = client.post("/api/print/elements/ghost/print")
        assert r.status_code == 404
        assert r.json()["error"]["code"] == "target_not_found"

    def test_delete_element(self, client):
        client.put("/api/print/elements/card", json={"html": "<p>x</p>"})
        assert client.delete("/api/print/elements/card").status_code == 200
        assert client.delete("/api/print/elements/card").status_code == 404

    def test_busy_element(self, client, sinks):
        client.put("/api/print/elements/card", json={"html": "<p>x</p>"})
        with sinks.guard.hold("element:card"):
            r = client.post("/api/print/elements/card/print")
        assert r.status_code == 409
        assert r.json()["error"]["code"] == "target_busy"

    def test_empty_fragment_is_rejected(self, client):
        assert client.put("/api/print/elements/card", json={"html": ""}).status_code == 422

    def test_element_pdf(self, client, monkeypatch):
        monkeypatch.setattr(print_sinks, "html_to_pdf", lambda html, **kw: b"%PDF-fake")
        client.put("/api/print/elements/report", json={"html": "<p>x</p>"})
        r = client.post("/api/print/elements/report/pdf",
                        json={"filename": "report", "showHeader": False, "format": "letter"})
        assert r.status_code == 200
        assert r.headers["content-disposition"] == 'attachment; filename="report.pdf"'

    def test_element_pdf_failure(self, client, monkeypatch):
        def broken(html, **kw):
            raise RuntimeError("no cairo")

        monkeypatch.setattr(print_sinks, "html_to_pdf", broken)
        client.put("/api/print/elements/report", json={"html": "<p>x</p>"})
        r = client.post("/api/print/elements/report/pdf", json={"filename": "report"})
        assert r.status_code == 500
        assert r.json()["error"]["msg"] == "Failed to export PDF file"


class TestExportRoutes:

    def test_csv(self, client):
        r = client.post("/api/export/csv", json={"filename": "patients",
                                                 "rows": [{"a": 1, "b": "x"}, {"a": 2, "b": "y"}]})
        assert r.status_code == 200
        assert r.headers["content-disposition"] == 'attachment; filename="patients.csv"'
        rows = list(csv.reader(io.StringIO(r.content.decode("utf-8-sig"))))
        assert rows == [["a", "b"], ["1", "x"], ["2", "y"]]

    def test_csv_empty(self, client):
        r = client.post("/api/export/csv", json={"filename": "patients", "rows": []})
        assert r.status_code == 422
        assert r.json()["error"]["msg"] == "No data available to export"
        assert r.json()["error"]["code"] == "no_data"

    def test_xlsx(self, client):
        from openpyxl import load_workbook

        r = client.post("/api/export/xlsx", json={"filename": "stats", "sheetTitle": "Stats",
                                                  "rows": [{"Metric": "Total Patients", "Value": 120}]})
        assert r.status_code == 200
        assert r.headers["content-disposition"] == 'attachment; filename="stats.xlsx"'
        ws = load_workbook(io.BytesIO(r.content)).active
        assert ws.title == "Stats"
        assert ws["B2"].value == 120


class TestReportExportRoutes:

    @pytest.fixture(autouse=True)
    def fixed_day(self, monkeypatch):
        monkeypatch.setattr("clinic_print.services.filenames.today_local", lambda: date(2026, 10, 19))

    def test_dashboard_stats_csv(self, client):
        r = client.post("/api/export/reports/dashboard-stats/csv",
                        json={"data": {"totalPatients": 120, "patientsChange": 5}})
        assert r.status_code == 200
        assert r.headers["content-disposition"] == 'attachment; filename="dashboard-stats-2026-10-19.csv"'
        rows = list(csv.reader(io.StringIO(r.content.decode("utf-8-sig"))))
        assert rows[0] == ["Metric", "Value", "Change"]
        assert rows[1] == ["Total Patients", "120", "5%"]

    def test_activity_log_xlsx(self, client):
        from openpyxl import load_workbook

        r = client.post("/api/export/reports/activity-log/xlsx",
                        json={"data": [{"timestamp": "2026-10-19 09:00", "user": "aobi",
                                        "description": "Printed prescription"}]})
        assert r.status_code == 200
        assert r.headers["content-disposition"] == 'attachment; filename="activity-log-2026-10-19.xlsx"'
        ws = load_workbook(io.BytesIO(r.content)).active
        assert ws.title == "Activity Log"
        assert ws["C2"].value == "Printed prescription"

    def test_empty_report(self, client):
        r = client.post("/api/export/reports/staff-activity/csv", json={"data": []})
        assert r.status_code == 422
        assert r.json()["error"]["code"] == "no_data"

    def test_unknown_report(self, client):
        r = client.post("/api/export/reports/payroll/csv", json={"data": []})
        assert r.status_code == 404
        assert r.json()["error"]["code"] == "target_not_found"
