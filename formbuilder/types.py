"""Core type definitions for the FormBuilder core.

This module defines the closed enumerations used throughout the builder:
- FieldType: The field variants a form can contain
- InputType: HTML input flavours available to text fields
- CheckboxType: Single checkbox vs. checkbox group
- DragSourceKind: Where a drag gesture originated
- EventType: Audit event types emitted by the builder store

All enums subclass ``str`` so their values serialize directly into the
camelCase dictionaries exchanged with the rendering layer.
"""

from enum import Enum


class FieldType(str, Enum):
    """Field variants available on the palette."""
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    RADIO = "radio"
    CHECKBOX = "checkbox"


class InputType(str, Enum):
    """Input flavours for text fields.

    Only EMAIL, NUMBER and URL carry a format check during validation.
    """
    TEXT = "text"
    EMAIL = "email"
    NUMBER = "number"
    PASSWORD = "password"
    TEL = "tel"
    URL = "url"


class CheckboxType(str, Enum):
    """Checkbox field flavours.

    SINGLE renders one checkbox captioned by the placeholder; MULTIPLE renders
    a group built from the field's options.
    """
    SINGLE = "single"
    MULTIPLE = "multiple"


class DragSourceKind(str, Enum):
    """Origin of a drag gesture."""
    PALETTE = "palette"
    CANVAS_ITEM = "canvas-item"


class EventType(str, Enum):
    """Audit event types for the builder event stream.

    Every state-changing mutation emits exactly one typed event. Mutations
    that turn out to be no-ops emit nothing.
    """
    FIELD_ADDED = "field.added"
    FIELD_UPDATED = "field.updated"
    FIELD_REMOVED = "field.removed"
    FIELDS_REORDERED = "fields.reordered"
    FORM_PUBLISHED = "form.published"


__all__ = [
    "FieldType",
    "InputType",
    "CheckboxType",
    "DragSourceKind",
    "EventType",
]
