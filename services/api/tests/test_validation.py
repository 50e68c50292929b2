"""
Tests for validation functions.

Run with: pytest tests/test_validation.py -v
"""
import pytest

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.errors import ValidationError
from core.validation import (
    ensure_unique,
    require_fields,
    validate_category,
    validate_department_name,
    validate_email,
    validate_id,
    validate_status,
)


class TestRequireFields:
    """Tests for required-field checks."""

    def test_all_present(self):
        """Present, non-blank fields should not raise."""
        require_fields({"a": 1, "b": "x"}, "a", "b")

    def test_missing_and_blank(self):
        """Missing or whitespace-only fields are reported together."""
        with pytest.raises(ValidationError) as exc:
            require_fields({"a": "  ", "c": 0}, "a", "b", "c")
        assert exc.value.status_code == 400
        assert exc.value.field == "a"
        assert "a, b" in exc.value.message

    def test_zero_and_false_count_as_present(self):
        require_fields({"n": 0, "flag": False}, "n", "flag")


class TestValidateStatus:
    """Tests for status normalization."""

    def test_canonical_values(self):
        for s in ("pending", "planned", "overdue", "in-progress", "on-hold", "done"):
            assert validate_status(s) == s

    def test_aliases_and_case(self):
        assert validate_status("In Progress") == "in-progress"
        assert validate_status("on_hold") == "on-hold"
        assert validate_status("Completed") == "done"
        assert validate_status(" DONE ") == "done"

    def test_unknown_status(self):
        with pytest.raises(ValidationError) as exc:
            validate_status("archived")
        assert exc.value.field == "status"

        with pytest.raises(ValidationError):
            validate_status(None)


class TestValidateCategory:
    def test_valid(self):
        assert validate_category("Inbox") == "inbox"
        assert validate_category("trash") == "trash"

    def test_invalid(self):
        with pytest.raises(ValidationError):
            validate_category("archive")


class TestValidateId:
    """Tests for id parsing."""

    def test_valid(self):
        assert validate_id(3) == 3
        assert validate_id("3") == 3
        assert validate_id("3.0") == 3

    def test_invalid(self):
        for bad in (0, -1, "abc", "", None, 2.5):
            with pytest.raises(ValidationError):
                validate_id(bad)

    def test_field_name_in_error(self):
        with pytest.raises(ValidationError) as exc:
            validate_id("x", "user_id")
        assert exc.value.field == "user_id"


class TestValidateDepartmentName:
    def test_trimmed(self):
        assert validate_department_name("  Finance ") == "Finance"

    def test_blank_or_too_long(self):
        with pytest.raises(ValidationError):
            validate_department_name("   ")
        with pytest.raises(ValidationError):
            validate_department_name("x" * 101)
        validate_department_name("x" * 100)


class TestValidateEmail:
    def test_valid(self):
        assert validate_email(" amy@example.com ") == "amy@example.com"

    def test_invalid(self):
        for bad in ("amy", "amy@", "@example.com", "a b@example.com", None):
            with pytest.raises(ValidationError):
                validate_email(bad)


class TestEnsureUnique:
    """Tests for duplicate detection."""

    def test_unique_values(self):
        ensure_unique(["Amy", "Bob"], "doers")
        ensure_unique([], "doers")

    def test_duplicates_are_case_insensitive(self):
        with pytest.raises(ValidationError) as exc:
            ensure_unique(["Amy", "bob", "amy "], "doers")
        assert exc.value.field == "doers"
        assert "amy " in exc.value.message

    def test_against_existing(self):
        with pytest.raises(ValidationError):
            ensure_unique(["Sales"], "name", existing=["sales", "Ops"])
        ensure_unique(["HR"], "name", existing=["sales", "Ops"])
