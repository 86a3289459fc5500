"""Validation engine for filled-in forms.

A published form definition is compiled into a JSON Schema (Draft 7) with one
property per field, and the filler's values are validated against it with
``jsonschema``. Each schema error is translated into a filler-facing message,
producing a ValidationErrorMap: field id -> message, containing only the
fields that failed. An empty map means the values may be submitted.

Rules, per field and in field order:

- Required: a required field whose value is absent, None, False, a
  whitespace-only string or an empty collection gets "<label> is required".
  Format checks are skipped for that field.
- Format: text fields with inputType email, number or url are checked when a
  value is present. Every other field type only has the required check.

Blank values on optional fields are never format-checked. An empty string is
also what a select submits for its placeholder option, so a required select
left on its placeholder fails the required check.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import jsonschema
import rfc3987
from jsonschema import Draft7Validator, FormatChecker

from formbuilder.errors import ValidationErrorMap
from formbuilder.fields import FieldDefinition, TextField
from formbuilder.types import InputType

EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"
NUMBER_PATTERN = r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$"

# Schemes whose URLs must name a host ("http:foo" is not a usable link)
HIERARCHICAL_SCHEME_PATTERN = r"^\s*(?i:https?|ftps?|wss?):"
HOST_PATTERN = r"^\s*[A-Za-z][A-Za-z0-9+.-]*://([^@/?#\s]*@)?[^:/?#@\s]"

EMAIL_MESSAGE = "Please enter a valid email address"
NUMBER_MESSAGE = "Please enter a valid number"
URL_MESSAGE = "Please enter a valid URL"

FORMAT_CHECKER = FormatChecker(formats=())


@FORMAT_CHECKER.checks("uri", raises=ValueError)
def _check_uri(instance: Any) -> bool:
    # Surrounding whitespace is ignored.
    if not isinstance(instance, str):
        return True
    rfc3987.parse(instance.strip(), rule="URI")
    return True


@FORMAT_CHECKER.checks("finite")
def _check_finite(instance: Any) -> bool:
    if isinstance(instance, float):
        return math.isfinite(instance)
    return True


BLANK_SCHEMA: Dict[str, Any] = {
    "anyOf": [
        {"type": "null"},
        {"const": False},
        {"type": "string", "not": {"pattern": r"\S"}},
        {"type": "array", "maxItems": 0},
    ],
}

FORMAT_SCHEMAS: Dict[InputType, Dict[str, Any]] = {
    InputType.EMAIL: {"type": "string", "pattern": EMAIL_PATTERN},
    InputType.NUMBER: {
        "anyOf": [
            {"type": "number", "format": "finite"},
            {"type": "string", "pattern": NUMBER_PATTERN},
        ],
    },
    InputType.URL: {
        "type": "string",
        "format": "uri",
        "if": {"pattern": HIERARCHICAL_SCHEME_PATTERN},
        "then": {"pattern": HOST_PATTERN},
    },
}

FORMAT_MESSAGES: Dict[InputType, str] = {
    InputType.EMAIL: EMAIL_MESSAGE,
    InputType.NUMBER: NUMBER_MESSAGE,
    InputType.URL: URL_MESSAGE,
}


def _validator(schema: Dict[str, Any]) -> Draft7Validator:
    Draft7Validator.check_schema(schema)
    return Draft7Validator(schema, format_checker=FORMAT_CHECKER)


_BLANK_VALIDATOR = _validator(BLANK_SCHEMA)
_FORMAT_VALIDATORS = {input_type: _validator(schema) for input_type, schema in FORMAT_SCHEMAS.items()}


def _normalize(value: Any) -> Any:
    # JSON Schema arrays are lists; other collections are checked the same way.
    if isinstance(value, (tuple, set, frozenset)):
        return list(value)
    return value


def required_message(field: FieldDefinition) -> str:
    return f"{field.label} is required"


def is_blank(value: Any) -> bool:
    """Return True when ``value`` counts as "not provided".

    Examples:
        >>> [is_blank(v) for v in (None, "  ", [], False, "x", ["a"], True, 0)]
        [True, True, True, True, False, False, False, False]
    """
    return _BLANK_VALIDATOR.is_valid(_normalize(value))


def is_valid_email(value: Any) -> bool:
    return _FORMAT_VALIDATORS[InputType.EMAIL].is_valid(value)


def is_valid_number(value: Any) -> bool:
    return _FORMAT_VALIDATORS[InputType.NUMBER].is_valid(value)


def is_valid_url(value: Any) -> bool:
    """Check that ``value`` is a well-formed absolute URL.

    Examples:
        >>> is_valid_url("https://example.com/path?q=1")
        True
        >>> is_valid_url("mailto:team@example.com")
        True
        >>> is_valid_url("example.com")
        False
        >>> is_valid_url("http://")
        False
    """
    return _FORMAT_VALIDATORS[InputType.URL].is_valid(value)


def field_schema(field: FieldDefinition) -> Dict[str, Any]:
    """Compile one field into the JSON Schema its value must satisfy.

    Required fields reject blank values with ``not``. Format checks sit in
    the ``else`` branch of a blank test, so blank values never reach them.
    """
    schema: Dict[str, Any] = {}
    if field.required:
        schema["not"] = BLANK_SCHEMA
    if isinstance(field, TextField) and field.input_type in FORMAT_SCHEMAS:
        schema["if"] = BLANK_SCHEMA
        schema["else"] = FORMAT_SCHEMAS[field.input_type]
    return schema


def form_schema(fields: Sequence[FieldDefinition]) -> Dict[str, Any]:
    """Compile a form definition into a Draft 7 object schema.

    Examples:
        >>> from formbuilder.fields import TextField
        >>> form_schema([TextField(id="f1", label="Name", required=True)])["properties"]["f1"]["not"] == BLANK_SCHEMA
        True
    """
    return {
        "$schema": "http://json-schema.org/draft-07/schema#",
        "type": "object",
        "properties": {field.id: field_schema(field) for field in fields},
    }


def validate(fields: Sequence[FieldDefinition], values: Mapping[str, Any]) -> ValidationErrorMap:
    """Validate ``values`` against ``fields``.

    Args:
        fields: Form definition, in render order
        values: Field id -> submitted value (string, bool or list of strings)

    Returns:
        Field id -> message for every failing field; empty when all pass

    Examples:
        >>> from formbuilder.fields import TextField
        >>> name = TextField(id="f1", label="Name", required=True)
        >>> validate([name], {})
        {'f1': 'Name is required'}
        >>> validate([name], {"f1": "Ada"})
        {}
    """
    return ValidationEngine(fields).validate(values).errors


def validate_field(field: FieldDefinition, value: Any) -> Optional[str]:
    """Return the error message for one field, or None if it passes."""
    return validate([field], {field.id: value}).get(field.id)


@dataclass(frozen=True)
class ValidationResult:
    """Result of validating filled-in values against a form definition.

    Attributes:
        is_valid: Whether every field passed
        errors: Field id -> message for failing fields
        missing_fields: Ids of required fields left blank
        invalid_fields: Ids of fields that failed a format check
    """
    is_valid: bool
    errors: ValidationErrorMap
    missing_fields: List[str]
    invalid_fields: List[str]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "isValid": self.is_valid,
            "errors": dict(self.errors),
            "missingFields": list(self.missing_fields),
            "invalidFields": list(self.invalid_fields),
        }


class ValidationEngine:
    """Validates value maps against one form definition.

    Wraps a ``jsonschema`` validator compiled from the fields and translates
    its errors into filler-facing messages.

    Attributes:
        fields: The form definition, in render order
        schema: The compiled JSON Schema
        validator: The underlying jsonschema validator instance

    Examples:
        >>> from formbuilder.fields import TextField
        >>> from formbuilder.types import InputType
        >>> email = TextField(id="f1", label="Email", input_type=InputType.EMAIL)
        >>> engine = ValidationEngine([email])
        >>> result = engine.validate({"f1": "not-an-email"})
        >>> result.is_valid
        False
        >>> result.invalid_fields
        ['f1']
    """

    def __init__(self, fields: Sequence[FieldDefinition]) -> None:
        self.fields = tuple(fields)
        self.schema = form_schema(self.fields)
        self.validator = _validator(self.schema)

    def validate(self, values: Mapping[str, Any]) -> ValidationResult:
        # Absent values are validated as None so required checks see them.
        instance = {field.id: _normalize(values.get(field.id)) for field in self.fields}

        # Only the first error per field is reported.
        first_errors: Dict[str, jsonschema.ValidationError] = {}
        for error in self.validator.iter_errors(instance):
            if error.path:
                first_errors.setdefault(str(error.path[0]), error)

        errors: ValidationErrorMap = {}
        missing: List[str] = []
        invalid: List[str] = []
        for field in self.fields:
            error = first_errors.get(field.id)
            if error is None or field.id in errors:
                continue
            errors[field.id] = self._translate_error(field, error)
            if error.validator == "not":
                missing.append(field.id)
            else:
                invalid.append(field.id)

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            missing_fields=missing,
            invalid_fields=invalid,
        )

    def _translate_error(self, field: FieldDefinition, error: jsonschema.ValidationError) -> str:
        """Translate a jsonschema ValidationError into the filler-facing message.

        Error mapping:
            - 'not' (value matched the blank schema) -> "<label> is required"
            - any other error -> the format message of the field's input type
        """
        if error.validator == "not":
            return required_message(field)
        input_type = field.input_type if isinstance(field, TextField) else InputType.TEXT
        return FORMAT_MESSAGES.get(input_type, f"{field.label} is invalid")


__all__ = [
    "BLANK_SCHEMA",
    "EMAIL_MESSAGE",
    "FORMAT_CHECKER",
    "NUMBER_MESSAGE",
    "URL_MESSAGE",
    "ValidationEngine",
    "ValidationResult",
    "field_schema",
    "form_schema",
    "is_blank",
    "is_valid_email",
    "is_valid_number",
    "is_valid_url",
    "required_message",
    "validate",
    "validate_field",
]
