"""Unit tests for the validation engine.

Tests cover:
- Required checks for every field type and value shape
- Required short-circuiting format checks
- Email, number and URL format checks
- Result shape: only failing fields are present
- ValidationEngine result structure and the compiled JSON Schema
- Blank-value detection
"""

import pytest
from jsonschema import Draft7Validator

from formbuilder.fields import (
    CheckboxField,
    FieldOption,
    RadioField,
    SelectField,
    TextareaField,
    TextField,
)
from formbuilder.types import CheckboxType, InputType
from formbuilder.validation import (
    BLANK_SCHEMA,
    EMAIL_MESSAGE,
    NUMBER_MESSAGE,
    URL_MESSAGE,
    ValidationEngine,
    form_schema,
    is_blank,
    is_valid_url,
    validate,
)

OPTIONS = (
    FieldOption(id="o1", label="One", value="opt1"),
    FieldOption(id="o2", label="Two", value="opt2"),
)


def text(field_id="f1", label="Name", required=False, input_type=InputType.TEXT):
    return TextField(id=field_id, label=label, required=required, input_type=input_type)


class TestRequired:
    """Test the required check."""

    def test_missing_required_value(self):
        """Should report a missing required value with the label."""
        assert validate([text(required=True)], {}) == {"f1": "Name is required"}

    @pytest.mark.parametrize("value", [None, "", "   ", "\t\n"])
    def test_blank_strings_are_missing(self, value):
        """Should treat None and whitespace-only strings as missing."""
        assert validate([text(required=True)], {"f1": value}) == {"f1": "Name is required"}

    def test_present_value_passes(self):
        """Should accept a non-blank value."""
        assert validate([text(required=True)], {"f1": "Ada"}) == {}

    def test_optional_missing_passes(self):
        """Should not report optional fields left blank."""
        assert validate([text()], {}) == {}

    def test_checkbox_group_empty(self):
        """Should treat an empty selection as missing."""
        field = CheckboxField(
            id="f1", label="Toppings", required=True,
            checkbox_type=CheckboxType.MULTIPLE, options=OPTIONS,
        )
        assert validate([field], {"f1": []}) == {"f1": "Toppings is required"}
        assert validate([field], {"f1": ["opt1"]}) == {}

    def test_single_checkbox_unticked(self):
        """Should treat an unticked required checkbox as missing."""
        field = CheckboxField(id="f1", label="Terms", required=True)
        assert validate([field], {"f1": False}) == {"f1": "Terms is required"}
        assert validate([field], {"f1": True}) == {}

    def test_select_placeholder_is_missing(self):
        """Should treat the placeholder option's empty value as missing."""
        field = SelectField(id="f1", label="Colour", required=True, options=OPTIONS)
        assert validate([field], {"f1": ""}) == {"f1": "Colour is required"}
        assert validate([field], {"f1": "opt2"}) == {}

    def test_radio_and_textarea(self):
        """Should apply only the required check to radio and textarea fields."""
        fields = [
            RadioField(id="r", label="Size", required=True, options=OPTIONS),
            TextareaField(id="t", label="Notes", required=True),
        ]
        assert validate(fields, {}) == {"r": "Size is required", "t": "Notes is required"}
        assert validate(fields, {"r": "opt1", "t": "anything at all"}) == {}

    def test_required_short_circuits_format(self):
        """Should report the required error, not the format error."""
        field = text(required=True, label="Email", input_type=InputType.EMAIL)
        assert validate([field], {"f1": "  "}) == {"f1": "Email is required"}


class TestEmailFormat:
    """Test email format checks."""

    def test_invalid_email(self):
        """Should reject a value without @."""
        field = text(input_type=InputType.EMAIL)
        assert validate([field], {"f1": "not-an-email"}) == {"f1": EMAIL_MESSAGE}

    @pytest.mark.parametrize("value", ["ada@example.com", "a.b+c@mail.example.org"])
    def test_valid_emails(self, value):
        """Should accept standard addresses."""
        assert validate([text(input_type=InputType.EMAIL)], {"f1": value}) == {}

    @pytest.mark.parametrize("value", ["a@b", "@example.com", "ada@@example.com", "ada @example.com", "ada@"])
    def test_invalid_emails(self, value):
        """Should reject malformed addresses."""
        assert validate([text(input_type=InputType.EMAIL)], {"f1": value}) == {"f1": EMAIL_MESSAGE}

    def test_optional_blank_email_skips_format(self):
        """Should not format-check an optional blank value."""
        assert validate([text(input_type=InputType.EMAIL)], {"f1": ""}) == {}


class TestNumberFormat:
    """Test number format checks."""

    @pytest.mark.parametrize("value", ["42", "-3.5", " 7 ", "1e3", ".5", "+10", 12, 2.5])
    def test_valid_numbers(self, value):
        """Should accept numeric strings and numbers."""
        assert validate([text(input_type=InputType.NUMBER)], {"f1": value}) == {}

    @pytest.mark.parametrize("value", ["abc", "12abc", "1.2.3", "nan", "inf", "1_000", float("nan"), float("inf"), True])
    def test_invalid_numbers(self, value):
        """Should reject values that do not parse as numbers."""
        assert validate([text(input_type=InputType.NUMBER)], {"f1": value}) == {"f1": NUMBER_MESSAGE}


class TestUrlFormat:
    """Test URL format checks."""

    @pytest.mark.parametrize("value", [
        "https://example.com",
        "http://localhost:8000/path?q=1",
        "ftp://files.example.com/a.txt",
        "mailto:ada@example.com",
    ])
    def test_valid_urls(self, value):
        """Should accept absolute URLs."""
        assert validate([text(input_type=InputType.URL)], {"f1": value}) == {}

    @pytest.mark.parametrize("value", [
        "example.com",
        "/relative/path",
        "http://",
        "https://exa mple.com",
        "http://[::1",
        "http://example.com:abc",
        "http:foo",
    ])
    def test_invalid_urls(self, value):
        """Should reject relative or malformed URLs."""
        assert validate([text(input_type=InputType.URL)], {"f1": value}) == {"f1": URL_MESSAGE}

    def test_is_valid_url_strips(self):
        """Should ignore surrounding whitespace."""
        assert is_valid_url("  https://example.com  ") is True


class TestOtherInputTypes:
    """Test input types without a format check."""

    @pytest.mark.parametrize("input_type", [InputType.TEXT, InputType.PASSWORD, InputType.TEL])
    def test_no_format_check(self, input_type):
        """Should accept any non-blank value."""
        assert validate([text(input_type=input_type)], {"f1": "@@ not checked"}) == {}


class TestResultShape:
    """Test the error map shape."""

    def test_only_failing_fields_present(self):
        """Should omit passing fields from the map."""
        fields = [
            text("a", "Name", required=True),
            text("b", "Email", input_type=InputType.EMAIL),
            text("c", "Age", input_type=InputType.NUMBER),
        ]
        errors = validate(fields, {"a": "Ada", "b": "bad", "c": "31"})
        assert errors == {"b": EMAIL_MESSAGE}
        assert "a" not in errors and "c" not in errors

    def test_field_order(self):
        """Should list errors in field order."""
        fields = [text("z", "Z", required=True), text("a", "A", required=True)]
        assert list(validate(fields, {})) == ["z", "a"]

    def test_values_for_unknown_fields_ignored(self):
        """Should ignore values that belong to no field."""
        assert validate([text()], {"other": "x"}) == {}

    def test_does_not_mutate_values(self):
        """Should leave the values mapping untouched."""
        values = {"f1": "  "}
        validate([text(required=True)], values)
        assert values == {"f1": "  "}


class TestValidationEngine:
    """Test the ValidationEngine wrapper."""

    def test_valid_result(self):
        """Should report a valid result."""
        engine = ValidationEngine([text(required=True)])
        result = engine.validate({"f1": "Ada"})
        assert result.is_valid is True
        assert result.errors == {}
        assert result.missing_fields == []
        assert result.invalid_fields == []

    def test_missing_and_invalid_split(self):
        """Should separate missing fields from invalid ones."""
        engine = ValidationEngine([
            text("a", "Name", required=True),
            text("b", "Email", required=True, input_type=InputType.EMAIL),
        ])
        result = engine.validate({"b": "nope"})
        assert result.is_valid is False
        assert result.missing_fields == ["a"]
        assert result.invalid_fields == ["b"]
        assert result.to_dict() == {
            "isValid": False,
            "errors": {"a": "Name is required", "b": EMAIL_MESSAGE},
            "missingFields": ["a"],
            "invalidFields": ["b"],
        }

    def test_schema_is_draft7(self):
        """Should compile the form into a valid Draft 7 object schema."""
        fields = [
            text("a", "Name", required=True),
            text("b", "Site", input_type=InputType.URL),
            CheckboxField(id="c", label="Terms"),
        ]
        engine = ValidationEngine(fields)
        Draft7Validator.check_schema(engine.schema)
        assert isinstance(engine.validator, Draft7Validator)
        assert list(engine.schema["properties"]) == ["a", "b", "c"]
        assert engine.schema["properties"]["a"]["not"] == BLANK_SCHEMA
        assert engine.schema["properties"]["c"] == {}

    def test_form_schema_without_checks(self):
        """Should leave optional plain fields unconstrained."""
        assert form_schema([text()])["properties"] == {"f1": {}}


class TestBlankValues:
    """Test what counts as a missing value."""

    @pytest.mark.parametrize("value", [None, False, "", "  ", [], (), set()])
    def test_blank(self, value):
        """Should treat empty values as blank."""
        assert is_blank(value) is True

    @pytest.mark.parametrize("value", ["x", ["a"], ("a",), True, 0, 0.0, {}])
    def test_not_blank(self, value):
        """Should treat any other value as provided."""
        assert is_blank(value) is False
