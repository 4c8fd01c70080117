"""Tests for display-name precedence and text helpers."""
from types import SimpleNamespace

import pytest

from clinic_print.utils.names import (
    get_admin_display_name,
    get_display_name,
    get_formal_name,
    has_personal_info,
)
from clinic_print.utils.text import capitalize_role, esc, humanize_key, present, smart_title


class TestDisplayName:
    """title + first + last, then first + last, then username, then "User"."""

    def test_title_first_last(self):
        assert get_display_name({"title": "Dr.", "firstName": "Amara", "lastName": "Obi"}) == "Dr. Amara Obi"

    def test_title_none_is_ignored(self):
        assert get_display_name({"title": "None", "firstName": "Amara", "lastName": "Obi"}) == "Amara Obi"

    def test_first_and_last(self):
        assert get_display_name({"firstName": "Amara", "lastName": "Obi"}) == "Amara Obi"

    def test_only_one_name_part(self):
        assert get_display_name({"firstName": "Amara"}) == "Amara"
        assert get_display_name({"lastName": "Obi"}) == "Obi"

    def test_username_fallback(self):
        assert get_display_name({"username": "nurse_jane"}) == "nurse_jane"

    def test_blank_names_fall_through_to_username(self):
        assert get_display_name({"firstName": "  ", "lastName": "", "username": "nurse_jane"}) == "nurse_jane"

    def test_last_resort(self):
        assert get_display_name({}) == "User"
        assert get_display_name(None) == "User"

    def test_snake_case_and_attribute_objects(self):
        user = SimpleNamespace(title=None, first_name="Tunde", last_name="Bello", username="tb")
        assert get_display_name(user) == "Tunde Bello"
        assert get_display_name({"first_name": "Tunde", "last_name": "Bello"}) == "Tunde Bello"

    def test_formal_name_matches_display_name(self):
        profile = {"title": "Prof.", "firstName": "Ada", "lastName": "Eze"}
        assert get_formal_name(profile) == get_display_name(profile)


class TestAdminName:

    def test_admin_name_appends_username(self):
        profile = {"firstName": "Amara", "lastName": "Obi", "username": "aobi"}
        assert get_admin_display_name(profile) == "Amara Obi (aobi)"

    def test_admin_name_without_personal_info(self):
        assert get_admin_display_name({"username": "aobi"}) == "aobi"
        assert has_personal_info({"username": "aobi"}) is False


class TestTextHelpers:

    @pytest.mark.parametrize("key, label", [
        ("chiefComplaint", "Chief Complaint"),
        ("blood_pressure", "Blood pressure"),
        ("follow-up", "Follow up"),
        ("field_1712345", "Clinical Notes"),
        ("notes", "Notes"),
    ])
    def test_humanize_key(self, key, label):
        assert humanize_key(key) == label

    def test_smart_title_keeps_units_and_routes(self):
        assert smart_title("paracetamol 500 mg iv") == "Paracetamol 500 mg IV"
        assert smart_title("vitamin b12") == "Vitamin B12"
        assert smart_title("") == ""

    def test_smart_title_normalises_dose_suffixes(self):
        assert smart_title("amoxicillin 500MG bd") == "Amoxicillin 500mg BD"
        assert smart_title("  co-trimoxazole   960mg ") == "Co-trimoxazole 960mg"
        assert smart_title(None) == ""

    def test_present(self):
        assert present("x")
        assert present(0)
        assert not present(None)
        assert not present("   ")
        assert not present("undefined")

    def test_esc(self):
        assert esc("<b>\"x\"</b>") == "&lt;b&gt;&quot;x&quot;&lt;/b&gt;"
        assert esc(None) == ""

    def test_capitalize_role(self):
        assert capitalize_role("doctor") == "Doctor"
        assert capitalize_role(None) == ""
