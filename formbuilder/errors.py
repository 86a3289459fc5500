"""Error types and data classes for the FormBuilder core.

The error taxonomy has three families:

- Model errors: raised when a caller hands the field model something it cannot
  represent (unknown field type, invalid attribute value, malformed field
  dictionary, unknown published form). These are programming or data errors
  and are always signalled, never coerced.
- Validation errors: expected, user-facing messages collected per field in a
  ValidationErrorMap. They are plain data and are never raised.
- Transport errors: the submission endpoint failed or could not be reached.
  Endpoints raise TransportError; the form filler reports the failure as a
  single SubmissionFailure notice and leaves its state untouched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Field id -> user-facing message. Fields that pass are absent.
ValidationErrorMap = Dict[str, str]


class ModelError(Exception):
    """Base class for errors raised by the field and form model."""


class UnknownFieldTypeError(ModelError):
    """Raised when a field type outside the closed FieldType set is requested.

    Attributes:
        field_type: The rejected type value
    """

    def __init__(self, field_type: Any):
        self.field_type = field_type
        super().__init__(
            f"Unknown field type {field_type!r}. "
            f"Expected one of: text, textarea, select, radio, checkbox"
        )


class InvalidFieldAttributeError(ModelError):
    """Raised when an update carries a value an attribute cannot hold.

    Attributes:
        attribute: Wire name of the attribute (e.g. "inputType")
        value: The rejected value
    """

    def __init__(self, attribute: str, value: Any, message: Optional[str] = None):
        self.attribute = attribute
        self.value = value
        super().__init__(message or f"Invalid value {value!r} for attribute '{attribute}'")


class InvalidFieldDefinitionError(ModelError):
    """Raised when a field dictionary does not describe a valid FieldDefinition.

    Attributes:
        problems: List of "path: message" strings, one per schema violation
    """

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("Invalid field definition: " + "; ".join(problems))


class FormNotFoundError(ModelError):
    """Raised when looking up a form id that was never published."""

    def __init__(self, form_id: str):
        self.form_id = form_id
        super().__init__(f"Form {form_id} not found")


class TransportError(Exception):
    """Raised by a submission endpoint when the submission could not be delivered."""


@dataclass(frozen=True)
class SubmissionFailure:
    """User-visible notice for a failed submission attempt.

    Attributes:
        message: Single human-readable failure notice
        errors: Per-field validation errors, when validation blocked the submission
        cause: Optional - diagnostic detail from the endpoint or exception

    Examples:
        >>> failure = SubmissionFailure(message="Please fix the errors above",
        ...                             errors={"fld_1": "Name is required"})
        >>> failure.ok
        False
    """
    message: str
    errors: ValidationErrorMap = field(default_factory=dict)
    cause: Optional[str] = None

    @property
    def ok(self) -> bool:
        """Always returns False - this is a failure notice."""
        return False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        result: Dict[str, Any] = {
            "success": False,
            "message": self.message,
        }
        if self.errors:
            result["errors"] = dict(self.errors)
        if self.cause is not None:
            result["cause"] = self.cause
        return result


__all__ = [
    "ValidationErrorMap",
    "ModelError",
    "UnknownFieldTypeError",
    "InvalidFieldAttributeError",
    "InvalidFieldDefinitionError",
    "FormNotFoundError",
    "TransportError",
    "SubmissionFailure",
]
