"""Drag-interaction resolver for the FormBuilder canvas.

The gesture library reports a drag as "item X was released over target Y".
Palette drops and canvas reorders produce structurally similar events, so this
module classifies each drag-end into exactly one of: add a field, reorder a
field, or do nothing.

Classification rules, applied in order:
1. No drop target: no-op.
2. Palette item over the canvas container: AddField(field_type).
3. Canvas item over a different canvas item: ReorderFields(active, over).
4. Anything else (palette item over a field, self-drop, ...): no-op.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from formbuilder.state_machine import AddField, BuilderStateMachine, Mutation, ReorderFields
from formbuilder.types import DragSourceKind, FieldType

logger = logging.getLogger(__name__)

CANVAS_ID = "canvas"


@dataclass(frozen=True)
class DragItem:
    """Metadata of the item being dragged.

    Attributes:
        source_kind: Whether the drag started on the palette or on the canvas
        field_type: Field type offered by a palette item
        field_id: Id of the field being moved, for canvas items
    """
    source_kind: DragSourceKind
    field_type: Optional[Union[FieldType, str]] = None
    field_id: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.source_kind, str) and not isinstance(self.source_kind, DragSourceKind):
            object.__setattr__(self, "source_kind", DragSourceKind(self.source_kind))

    @classmethod
    def from_data(cls, data: Mapping[str, Any]) -> "DragItem":
        """Build a DragItem from the gesture library's data dict.

        Accepts ``sourceKind``, ``fieldType`` (or the palette's ``type``) and
        ``fieldId``. Missing ``sourceKind`` is inferred: an entry with a field
        id is a canvas item, otherwise a palette item.
        """
        field_type = data.get("fieldType", data.get("type"))
        field_id = data.get("fieldId")
        source_kind = data.get("sourceKind")
        if source_kind is None:
            source_kind = DragSourceKind.CANVAS_ITEM if field_id else DragSourceKind.PALETTE
        return cls(source_kind=source_kind, field_type=field_type, field_id=field_id)


def palette_item(field_type: Union[FieldType, str]) -> DragItem:
    return DragItem(source_kind=DragSourceKind.PALETTE, field_type=field_type)


def canvas_item(field_id: str) -> DragItem:
    return DragItem(source_kind=DragSourceKind.CANVAS_ITEM, field_id=field_id)


def resolve_drag(active: DragItem, over: Optional[str]) -> Optional[Mutation]:
    """Classify a drag-end into a builder mutation.

    Args:
        active: The dragged item
        over: Id of the drop target: ``"canvas"``, a field id, or None

    Returns:
        AddField, ReorderFields, or None for a no-op

    Examples:
        >>> resolve_drag(palette_item("select"), "canvas")
        AddField(field_type='select')
        >>> resolve_drag(canvas_item("fld_1"), "fld_1") is None
        True
    """
    if over is None:
        return None

    if active.source_kind == DragSourceKind.PALETTE:
        if over == CANVAS_ID and active.field_type:
            return AddField(active.field_type)
        return None

    if active.source_kind == DragSourceKind.CANVAS_ITEM:
        if over != CANVAS_ID and active.field_id and active.field_id != over:
            return ReorderFields(active_id=active.field_id, over_id=over)
        return None

    return None


def handle_drag_end(
    store: BuilderStateMachine,
    active: DragItem,
    over: Optional[str],
) -> Optional[Mutation]:
    """Resolve a drag-end and dispatch the resulting mutation to ``store``.

    Returns:
        The mutation that was dispatched, or None when the drag was a no-op
        (in which case the store's state object is left untouched)
    """
    mutation = resolve_drag(active, over)
    if mutation is None:
        logger.debug("Drag of %s over %r ignored", active, over)
        return None

    logger.debug("Drag of %s over %r resolved to %r", active, over, mutation)
    store.dispatch(mutation)
    return mutation


__all__ = [
    "CANVAS_ID",
    "DragItem",
    "palette_item",
    "canvas_item",
    "resolve_drag",
    "handle_drag_end",
]
