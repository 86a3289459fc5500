"""FormBuilder core: form definition model, builder state machine and validation.

FormBuilder provides:
- A field definition model with type-specific defaults and a permissive merge update
- A builder state machine holding the canvas fields and the published forms
- A drag resolver that turns drag gestures into add / reorder mutations
- A validation engine checking filled-in values against a published form
- Submission of valid values to a pluggable persistence endpoint

Basic usage:
    >>> from formbuilder import FormBuilderRuntime
    >>> runtime = FormBuilderRuntime()
    >>> _ = runtime.handle_drag_end({"sourceKind": "palette", "type": "text"}, "canvas")
    >>> field_id = runtime.state.fields[0].id
    >>> runtime.dispatch(UpdateField(field_id, {"label": "Name", "required": True}))
    >>> form_id = runtime.publish()
    >>> runtime.validate(form_id, {}) == {field_id: "Name is required"}
    True
"""

__version__ = "0.1.0"
__author__ = "FormBuilder Team"

# Version info
VERSION = (0, 1, 0)

# Core exports
from formbuilder.runtime import FormBuilderRuntime
from formbuilder.state_machine import (
    AddField,
    BuilderState,
    BuilderStateMachine,
    PublishForm,
    RemoveField,
    ReorderFields,
    UpdateField,
)
from formbuilder.validation import validate

# Package metadata
__all__ = [
    "__version__",
    "VERSION",
    "FormBuilderRuntime",
    "BuilderState",
    "BuilderStateMachine",
    "AddField",
    "UpdateField",
    "RemoveField",
    "ReorderFields",
    "PublishForm",
    "validate",
]
