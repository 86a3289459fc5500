"""FormBuilderRuntime orchestrator for the FormBuilder core.

This module provides the FormBuilderRuntime class that coordinates the builder
store, the drag resolver, the validation engine and the submission endpoint.
It is the single object the rendering layer talks to:

- ``state`` / ``dispatch`` for the builder canvas
- ``handle_drag_end`` for raw drag gestures
- ``publish`` to snapshot the canvas into a saved form
- ``open_form`` / ``validate`` / ``submit`` for fillers of a published form

Usage:
    >>> from formbuilder.runtime import FormBuilderRuntime
    >>> runtime = FormBuilderRuntime()
    >>> runtime.handle_drag_end({"sourceKind": "palette", "type": "text"}, "canvas")
    AddField(field_type='text')
    >>> form_id = runtime.publish()
    >>> len(runtime.get_form(form_id))
    1
"""

import logging
from typing import Any, Dict, Mapping, Optional, Union, cast

from formbuilder.config import DEFAULT_CONFIG, BuilderConfig
from formbuilder.drag import DragItem, handle_drag_end
from formbuilder.errors import ValidationErrorMap
from formbuilder.events import EventEmitter
from formbuilder.fields import FormDefinition
from formbuilder.state_machine import BuilderState, BuilderStateMachine, Mutation, PublishForm
from formbuilder.submission import (
    FormFiller,
    JsonFileSubmissionEndpoint,
    SubmissionEndpoint,
    SubmissionOutcome,
)
from formbuilder.validation import validate

logger = logging.getLogger(__name__)


class FormBuilderRuntime:
    """Orchestrator for one builder session and the fillers of its forms.

    Attributes:
        config: Settings shared by every component
        emitter: EventEmitter receiving builder events
        store: The session's BuilderStateMachine
        endpoint: Backend receiving valid submissions
    """

    def __init__(
        self,
        config: Optional[BuilderConfig] = None,
        endpoint: Optional[SubmissionEndpoint] = None,
        emitter: Optional[EventEmitter] = None,
        state: Optional[BuilderState] = None,
    ):
        """Initialize the runtime.

        Args:
            config: Settings (defaults to DEFAULT_CONFIG)
            endpoint: Submission backend (defaults to a JsonFileSubmissionEndpoint
                      writing into ``config.submissions_dir``)
            emitter: Event emitter for builder events (a fresh one by default)
            state: Optional initial builder state, e.g. a restored session
        """
        self.config = config or DEFAULT_CONFIG
        self.emitter = emitter or EventEmitter()
        self.store = BuilderStateMachine(state=state, config=self.config, emitter=self.emitter)
        self.endpoint = endpoint or JsonFileSubmissionEndpoint(self.config.submissions_dir)
        self._fillers: Dict[str, FormFiller] = {}

    @property
    def state(self) -> BuilderState:
        return self.store.state

    def dispatch(self, mutation: Mutation) -> Optional[str]:
        """Apply a builder mutation. Returns the form id for PublishForm."""
        return self.store.dispatch(mutation)

    def handle_drag_end(
        self,
        active: Union[DragItem, Mapping[str, Any]],
        over: Optional[str],
    ) -> Optional[Mutation]:
        """Classify a drag gesture and apply it.

        Args:
            active: DragItem, or the gesture library's data dict for the dragged item
            over: Drop target id, or None when nothing was hit

        Returns:
            The mutation applied, or None for a no-op
        """
        if not isinstance(active, DragItem):
            active = DragItem.from_data(active)
        return handle_drag_end(self.store, active, over)

    def publish(self) -> str:
        """Snapshot the canvas into a new saved form and return its id."""
        return cast(str, self.store.dispatch(PublishForm()))

    def get_form(self, form_id: str) -> FormDefinition:
        """Return a published form.

        Raises:
            FormNotFoundError: If ``form_id`` was never published
        """
        return self.store.get_form(form_id)

    def open_form(self, form_id: str) -> FormFiller:
        """Return the filler for a published form, creating it on first use.

        Raises:
            FormNotFoundError: If ``form_id`` was never published
        """
        filler = self._fillers.get(form_id)
        if filler is None:
            filler = FormFiller(form_id, self.get_form(form_id), self.endpoint)
            self._fillers[form_id] = filler
            logger.debug("Opened filler for form %s", form_id)
        return filler

    def validate(self, form_id: str, values: Mapping[str, Any]) -> ValidationErrorMap:
        """Validate ``values`` against a published form without submitting."""
        return validate(self.get_form(form_id), values)

    def submit(self, form_id: str, values: Mapping[str, Any]) -> SubmissionOutcome:
        """Validate and submit ``values`` for a published form in one call.

        Uses a fresh FormFiller so earlier fillers of the same form are unaffected.
        """
        filler = FormFiller(form_id, self.get_form(form_id), self.endpoint)
        for field_id, value in values.items():
            filler.set_value(field_id, value)
        return filler.submit()


__all__ = [
    "FormBuilderRuntime",
]
