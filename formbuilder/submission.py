"""Submission of filled-in forms.

The persistence backend is an external collaborator reached through the
SubmissionEndpoint protocol::

    submit(form_id, {"values": {...}, "fields": [...]})
        -> {"success": True, "submissionId": ..., "submittedAt": ...}
         | {"success": False, "message": ...}

Endpoints raise TransportError (or an OSError such as TimeoutError or
ConnectionError) when the backend cannot be reached. The
FormFiller only calls the endpoint after validation returned an empty error
map, and reports every failure as one SubmissionFailure notice without
touching the values the filler entered. Nothing is retried automatically.

JsonFileSubmissionEndpoint is a reference backend that writes each submission
as a timestamped JSON record into a directory.
"""

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from dateutil.parser import isoparse
from typing_extensions import Protocol, runtime_checkable

from formbuilder.errors import SubmissionFailure, TransportError, ValidationErrorMap
from formbuilder.fields import CheckboxField, FieldDefinition, form_to_dicts
from formbuilder.validation import validate

logger = logging.getLogger(__name__)

INVALID_MESSAGE = "Please fix the errors above"
REJECTED_MESSAGE = "Submission failed. Try again."
TRANSPORT_MESSAGE = "Something went wrong."


@runtime_checkable
class SubmissionEndpoint(Protocol):
    """Backend that durably stores a submission record."""

    def submit(self, form_id: str, payload: Mapping[str, Any]) -> Mapping[str, Any]:
        ...


@dataclass(frozen=True)
class SubmissionReceipt:
    """Acknowledgement of a stored submission.

    Attributes:
        form_id: Published form the values were submitted for
        submission_id: Identifier assigned by the backend
        submitted_at: When the backend stored the record (timezone-aware)
    """
    form_id: str
    submission_id: str
    submitted_at: datetime

    @property
    def ok(self) -> bool:
        """Always returns True - this is a success response."""
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {
            "success": True,
            "formId": self.form_id,
            "submissionId": self.submission_id,
            "submittedAt": self.submitted_at.isoformat(),
        }

    @classmethod
    def from_response(cls, form_id: str, response: Mapping[str, Any]) -> "SubmissionReceipt":
        """Parse a successful endpoint answer.

        Raises:
            TransportError: If the answer lacks a submission id or a parseable timestamp
        """
        try:
            submission_id = response["submissionId"]
            submitted_at = isoparse(response["submittedAt"])
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise TransportError(f"Malformed submission acknowledgement: {exc!r}") from exc
        if submitted_at.tzinfo is None:
            submitted_at = submitted_at.replace(tzinfo=timezone.utc)
        return cls(form_id=form_id, submission_id=submission_id, submitted_at=submitted_at)


SubmissionOutcome = Union[SubmissionReceipt, SubmissionFailure]


def _utc_timestamp(moment: datetime) -> str:
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonFileSubmissionEndpoint:
    """Stores each submission as ``form_<formId>_<epoch ms>.json`` in a directory.

    The record holds ``formId``, ``data`` (the values), ``fields`` and
    ``submittedAt``. The file name doubles as the submission id.

    Examples:
        >>> import tempfile
        >>> endpoint = JsonFileSubmissionEndpoint(tempfile.mkdtemp())
        >>> endpoint.submit("form_1", {"values": {"f1": "Ada"}, "fields": []})["success"]
        True
    """

    def __init__(self, directory: Union[str, os.PathLike]):
        self.directory = os.fspath(directory)

    def submit(self, form_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        submitted_at = datetime.now(timezone.utc)
        record = {
            "formId": form_id,
            "data": payload.get("values") or {},
            "fields": payload.get("fields") or [],
            "submittedAt": _utc_timestamp(submitted_at),
        }

        # Serialized up front so an unserializable value never leaves a partial file.
        try:
            content = json.dumps(record, indent=2)
        except (TypeError, ValueError) as exc:
            logger.error("Submission for form %s is not JSON serializable: %s", form_id, exc)
            return self._error_response(exc)

        try:
            os.makedirs(self.directory, exist_ok=True)
            file_name = self._write_record(form_id, submitted_at, content)
        except OSError as exc:
            logger.error("Error storing submission for form %s: %s", form_id, exc)
            return self._error_response(exc)

        logger.info("Form %s submitted successfully: %s", form_id, file_name)
        return {
            "success": True,
            "message": "Form submitted successfully",
            "submissionId": file_name,
            "submittedAt": record["submittedAt"],
        }

    @staticmethod
    def _error_response(exc: Exception) -> Dict[str, Any]:
        return {
            "success": False,
            "message": "Error submitting form",
            "error": str(exc),
        }

    def _write_record(self, form_id: str, submitted_at: datetime, content: str) -> str:
        stamp = int(submitted_at.timestamp() * 1000)
        while True:
            file_name = f"form_{form_id}_{stamp}.json"
            try:
                with open(os.path.join(self.directory, file_name), "x", encoding="utf-8") as fh:
                    fh.write(content)
                return file_name
            except FileExistsError:
                stamp += 1

    def list_submissions(self, form_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Load stored records, oldest first, optionally for one form only."""
        if not os.path.isdir(self.directory):
            return []
        prefix = f"form_{form_id}_" if form_id is not None else "form_"
        records = []
        for name in sorted(os.listdir(self.directory)):
            if name.startswith(prefix) and name.endswith(".json"):
                with open(os.path.join(self.directory, name), encoding="utf-8") as fh:
                    records.append(json.load(fh))
        return records


def _copy_value(value: Any) -> Any:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return value


class FormFiller:
    """Holds one filler's values for a published form and submits them.

    Validation errors are recomputed wholesale: on every ``validate`` /
    ``submit`` call, and on every value change once a submit was attempted.

    Attributes:
        form_id: Published form being filled
        fields: The form definition
        endpoint: Backend receiving valid submissions
        values: Field id -> current value
        errors: Current ValidationErrorMap
    """

    def __init__(self, form_id: str, fields: Sequence[FieldDefinition], endpoint: SubmissionEndpoint):
        self.form_id = form_id
        self.fields = tuple(fields)
        self.endpoint = endpoint
        self.values: Dict[str, Any] = {}
        self.errors: ValidationErrorMap = {}
        self._attempted = False

    def set_value(self, field_id: str, value: Any) -> None:
        """Set the value of one field."""
        self.values[field_id] = _copy_value(value)
        if self._attempted:
            self.validate()

    def toggle_option(self, field_id: str, option_value: str, checked: bool) -> None:
        """Tick or untick one option of a checkbox group, keeping tick order."""
        current = self.values.get(field_id)
        selected = list(current) if isinstance(current, list) else []
        if checked and option_value not in selected:
            selected.append(option_value)
        elif not checked:
            selected = [v for v in selected if v != option_value]
        self.set_value(field_id, selected)

    def initial_value(self, field: FieldDefinition) -> Any:
        """Value a field shows before the filler touched it."""
        if isinstance(field, CheckboxField):
            return [] if field.is_group else False
        return ""

    def validate(self) -> ValidationErrorMap:
        """Recompute and return the error map for the current values."""
        self.errors = validate(self.fields, self.values)
        return self.errors

    def submit(self) -> SubmissionOutcome:
        """Validate and, if everything passes, hand the values to the endpoint.

        On success the values are cleared. On any failure they are kept so the
        filler can correct and resubmit.

        Returns:
            SubmissionReceipt on success, SubmissionFailure otherwise
        """
        self._attempted = True
        errors = self.validate()
        if errors:
            logger.debug("Submission of form %s blocked by %d field errors", self.form_id, len(errors))
            return SubmissionFailure(message=INVALID_MESSAGE, errors=dict(errors))

        payload = {
            "values": {key: _copy_value(value) for key, value in self.values.items()},
            "fields": form_to_dicts(self.fields),
        }

        try:
            response = self.endpoint.submit(self.form_id, payload)
            if not response.get("success"):
                logger.warning("Submission of form %s rejected: %s", self.form_id, response.get("message"))
                return SubmissionFailure(message=REJECTED_MESSAGE, cause=response.get("message"))
            receipt = SubmissionReceipt.from_response(self.form_id, response)
        except (TransportError, OSError) as exc:
            logger.warning("Submission of form %s failed: %s", self.form_id, exc)
            return SubmissionFailure(message=TRANSPORT_MESSAGE, cause=str(exc))

        logger.info("Form %s submitted as %s", self.form_id, receipt.submission_id)
        self.values = {}
        self.errors = {}
        self._attempted = False
        return receipt


__all__ = [
    "SubmissionEndpoint",
    "SubmissionReceipt",
    "SubmissionOutcome",
    "JsonFileSubmissionEndpoint",
    "FormFiller",
    "INVALID_MESSAGE",
    "REJECTED_MESSAGE",
    "TRANSPORT_MESSAGE",
]
