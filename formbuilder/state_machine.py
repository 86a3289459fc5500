"""Builder state machine for the FormBuilder core.

This module holds the state of one form-building session and the closed set of
mutations that move it forward:

- BuilderState: immutable snapshot of the canvas fields and the saved forms
- Mutation variants: AddField, UpdateField, RemoveField, ReorderFields, PublishForm
- Pure transition functions (add_field, update_field, ...) and apply_mutation,
  which dispatches a mutation to the matching transition
- BuilderStateMachine: the store handle passed to the interaction layer. It
  holds the current state, applies mutations atomically and records an audit
  event for every mutation that changed the state

A transition that does not apply (unknown id, self-reorder) returns the very
same state object, so callers can detect no-ops with ``is``.

Usage:
    >>> from formbuilder.state_machine import AddField, BuilderStateMachine, PublishForm
    >>> store = BuilderStateMachine()
    >>> store.dispatch(AddField("text"))
    >>> len(store.fields)
    1
    >>> form_id = store.dispatch(PublishForm())
    >>> len(store.get_form(form_id))
    1
"""

import dataclasses
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union, cast

from typing_extensions import TypeAlias

from formbuilder.config import DEFAULT_CONFIG, BuilderConfig
from formbuilder.errors import FormNotFoundError
from formbuilder.events import BuilderEvent, EventEmitter
from formbuilder.fields import (
    FieldDefinition,
    FormDefinition,
    apply_update,
    changed_attributes,
    create_default,
    form_from_dicts,
    form_to_dicts,
)
from formbuilder.types import EventType, FieldType

logger = logging.getLogger(__name__)


def _frozen_registry(forms: Optional[Mapping[str, FormDefinition]] = None) -> Mapping[str, FormDefinition]:
    return MappingProxyType(dict(forms or {}))


@dataclass(frozen=True)
class BuilderState:
    """Immutable state of a builder session.

    Attributes:
        fields: Canvas fields in render order
        saved_forms: Published form id -> form definition snapshot (read-only)
    """
    fields: Tuple[FieldDefinition, ...] = ()
    saved_forms: Mapping[str, FormDefinition] = field(default_factory=_frozen_registry)

    def index_of(self, field_id: str) -> Optional[int]:
        """Return the position of ``field_id`` on the canvas, or None."""
        for index, item in enumerate(self.fields):
            if item.id == field_id:
                return index
        return None

    def get_field(self, field_id: str) -> Optional[FieldDefinition]:
        index = self.index_of(field_id)
        return None if index is None else self.fields[index]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to camelCase dicts."""
        return {
            "fields": form_to_dicts(self.fields),
            "savedForms": {form_id: form_to_dicts(form) for form_id, form in self.saved_forms.items()},
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], config: Optional[BuilderConfig] = None) -> "BuilderState":
        """Deserialize a state produced by ``to_dict``.

        Raises:
            InvalidFieldDefinitionError: If any stored field is invalid
        """
        saved = {
            form_id: form_from_dicts(fields, config)
            for form_id, fields in data.get("savedForms", {}).items()
        }
        return cls(
            fields=form_from_dicts(data.get("fields", []), config),
            saved_forms=_frozen_registry(saved),
        )


@dataclass(frozen=True)
class AddField:
    """Append a new field of ``field_type`` with its defaults."""
    field_type: Union[FieldType, str]


@dataclass(frozen=True)
class UpdateField:
    """Merge ``patch`` onto the field ``field_id``."""
    field_id: str
    patch: Mapping[str, Any]


@dataclass(frozen=True)
class RemoveField:
    """Remove the field ``field_id``."""
    field_id: str


@dataclass(frozen=True)
class ReorderFields:
    """Move ``active_id`` to the position currently held by ``over_id``."""
    active_id: str
    over_id: str


@dataclass(frozen=True)
class PublishForm:
    """Snapshot the canvas into the saved forms under a fresh id."""


Mutation: TypeAlias = Union[AddField, UpdateField, RemoveField, ReorderFields, PublishForm]


def add_field(
    state: BuilderState,
    field_type: Union[FieldType, str],
    config: Optional[BuilderConfig] = None,
) -> BuilderState:
    """Append a default field of ``field_type``.

    Raises:
        UnknownFieldTypeError: If ``field_type`` is not a known field type
    """
    new_field = create_default(field_type, config)
    return dataclasses.replace(state, fields=state.fields + (new_field,))


def update_field(
    state: BuilderState,
    field_id: str,
    patch: Mapping[str, Any],
    config: Optional[BuilderConfig] = None,
) -> BuilderState:
    """Replace the field ``field_id`` with ``apply_update(field, patch)``.

    An unknown id is a no-op: a stale edit may race a deletion.

    Raises:
        InvalidFieldAttributeError: If a patch value cannot be stored on the field
    """
    index = state.index_of(field_id)
    if index is None:
        return state

    current = state.fields[index]
    updated = apply_update(current, patch, config)
    if updated is current:
        return state

    fields = list(state.fields)
    fields[index] = updated
    return dataclasses.replace(state, fields=tuple(fields))


def remove_field(state: BuilderState, field_id: str) -> BuilderState:
    """Drop the field ``field_id``; an unknown id is a no-op."""
    remaining = tuple(item for item in state.fields if item.id != field_id)
    if len(remaining) == len(state.fields):
        return state
    return dataclasses.replace(state, fields=remaining)


def reorder_fields(state: BuilderState, active_id: str, over_id: str) -> BuilderState:
    """Move ``active_id`` to the index held by ``over_id``.

    Fields between the two positions shift by one; this is a move, not a swap.
    Unknown ids and self-drops return the state unchanged.

    Examples:
        >>> state = BuilderState()
        >>> for t in ("text", "select", "radio"):
        ...     state = add_field(state, t)
        >>> a, b, c = (f.id for f in state.fields)
        >>> [f.id for f in reorder_fields(state, a, c).fields] == [b, c, a]
        True
    """
    if active_id == over_id:
        return state

    old_index = state.index_of(active_id)
    new_index = state.index_of(over_id)
    if old_index is None or new_index is None:
        return state

    fields = list(state.fields)
    fields.insert(new_index, fields.pop(old_index))
    return dataclasses.replace(state, fields=tuple(fields))


def publish_form(
    state: BuilderState,
    config: Optional[BuilderConfig] = None,
) -> Tuple[BuilderState, str]:
    """Store a snapshot of the canvas under a fresh form id.

    Fields are frozen values held in a tuple, so the snapshot cannot be
    altered by later builder mutations. Previously saved forms are carried
    over untouched.

    Returns:
        Tuple of (new state, new form id)
    """
    config = config or DEFAULT_CONFIG
    form_id = config.make_id(config.form_id_prefix)
    while form_id in state.saved_forms:
        form_id = config.make_id(config.form_id_prefix)

    saved = dict(state.saved_forms)
    saved[form_id] = tuple(state.fields)
    return dataclasses.replace(state, saved_forms=_frozen_registry(saved)), form_id


def apply_mutation(
    state: BuilderState,
    mutation: Mutation,
    config: Optional[BuilderConfig] = None,
) -> Tuple[BuilderState, Optional[str]]:
    """Apply one mutation to ``state``.

    Returns:
        Tuple of (next state, published form id or None)

    Raises:
        TypeError: If ``mutation`` is not one of the mutation variants
    """
    if isinstance(mutation, AddField):
        return add_field(state, mutation.field_type, config), None
    if isinstance(mutation, UpdateField):
        return update_field(state, mutation.field_id, mutation.patch, config), None
    if isinstance(mutation, RemoveField):
        return remove_field(state, mutation.field_id), None
    if isinstance(mutation, ReorderFields):
        return reorder_fields(state, mutation.active_id, mutation.over_id), None
    if isinstance(mutation, PublishForm):
        return publish_form(state, config)
    raise TypeError(f"Unsupported builder mutation: {mutation!r}")


class BuilderStateMachine:
    """Store handle for one builder session.

    Holds the current BuilderState and replaces it wholesale on every
    applied mutation. The store is created explicitly and handed to whoever
    needs it; there is no shared global instance.

    Attributes:
        config: Settings used for id generation and field defaults
        emitter: Optional EventEmitter receiving every recorded event

    Examples:
        >>> store = BuilderStateMachine()
        >>> store.dispatch(AddField("radio"))
        >>> store.fields[0].type
        <FieldType.RADIO: 'radio'>
        >>> [e.type.value for e in store.get_events()]
        ['field.added']
    """

    def __init__(
        self,
        state: Optional[BuilderState] = None,
        config: Optional[BuilderConfig] = None,
        emitter: Optional[EventEmitter] = None,
    ):
        self.config = config or DEFAULT_CONFIG
        self.emitter = emitter
        self._state = state or BuilderState()
        self._events: List[BuilderEvent] = []

    @property
    def state(self) -> BuilderState:
        """Current state (immutable)."""
        return self._state

    @property
    def fields(self) -> Tuple[FieldDefinition, ...]:
        return self._state.fields

    @property
    def saved_forms(self) -> Mapping[str, FormDefinition]:
        return self._state.saved_forms

    def dispatch(self, mutation: Mutation) -> Optional[str]:
        """Apply ``mutation`` and record an event if the state changed.

        The held state is only replaced after the transition succeeded, so a
        mutation that raises leaves the store untouched.

        Returns:
            The new form id for PublishForm, otherwise None

        Raises:
            ModelError: If the mutation carries an unknown field type or invalid attribute
            TypeError: If ``mutation`` is not a mutation variant
        """
        previous = self._state
        next_state, form_id = apply_mutation(previous, mutation, self.config)

        if next_state is previous:
            logger.debug("Mutation %r did not change the builder state", mutation)
            return form_id

        self._state = next_state
        self._emit_event(mutation, form_id, previous)
        return form_id

    def get_form(self, form_id: str) -> FormDefinition:
        """Return the published form ``form_id``.

        Raises:
            FormNotFoundError: If no form was published under ``form_id``
        """
        try:
            return self._state.saved_forms[form_id]
        except KeyError:
            raise FormNotFoundError(form_id) from None

    def _event_for(
        self,
        mutation: Mutation,
        form_id: Optional[str],
        previous: BuilderState,
    ) -> Tuple[EventType, Dict[str, Any]]:
        if isinstance(mutation, AddField):
            added = self._state.fields[-1]
            return EventType.FIELD_ADDED, {"fieldId": added.id, "fieldType": added.type.value}
        if isinstance(mutation, UpdateField):
            # An update only changes the state when the field exists.
            before = cast(FieldDefinition, previous.get_field(mutation.field_id))
            after = cast(FieldDefinition, self._state.get_field(mutation.field_id))
            return EventType.FIELD_UPDATED, {
                "fieldId": mutation.field_id,
                "attributes": changed_attributes(before, after),
            }
        if isinstance(mutation, RemoveField):
            return EventType.FIELD_REMOVED, {"fieldId": mutation.field_id}
        if isinstance(mutation, ReorderFields):
            return EventType.FIELDS_REORDERED, {
                "activeId": mutation.active_id,
                "overId": mutation.over_id,
                "toIndex": self._state.index_of(mutation.active_id),
            }
        return EventType.FORM_PUBLISHED, {"formId": form_id, "fieldCount": len(self._state.fields)}

    def _emit_event(self, mutation: Mutation, form_id: Optional[str], previous: BuilderState) -> None:
        event_type, payload = self._event_for(mutation, form_id, previous)
        event = BuilderEvent(
            event_id=self.config.make_id(self.config.event_id_prefix),
            type=event_type,
            ts=datetime.now(timezone.utc),
            field_count=len(self._state.fields),
            payload=payload,
        )
        self._events.append(event)

        if event_type == EventType.FORM_PUBLISHED:
            logger.info("Published form %s with %d fields", form_id, len(self._state.fields))
        else:
            logger.debug("Builder %s: %s", event_type.value, payload)

        if self.emitter is not None:
            self.emitter.emit(event)

    def get_events(self) -> List[BuilderEvent]:
        """Events recorded so far, in chronological order."""
        return list(self._events)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the current state."""
        return self._state.to_dict()

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        config: Optional[BuilderConfig] = None,
        emitter: Optional[EventEmitter] = None,
    ) -> "BuilderStateMachine":
        """Restore a store from a serialized state. The event trail starts empty."""
        return cls(state=BuilderState.from_dict(data, config), config=config, emitter=emitter)


__all__ = [
    "BuilderState",
    "BuilderStateMachine",
    "AddField",
    "UpdateField",
    "RemoveField",
    "ReorderFields",
    "PublishForm",
    "Mutation",
    "add_field",
    "update_field",
    "remove_field",
    "reorder_fields",
    "publish_form",
    "apply_mutation",
]
