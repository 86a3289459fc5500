"""Field definition model for the FormBuilder core.

A form is an ordered sequence of field definitions. Each field type is its own
frozen dataclass variant, so the attributes a field carries are fixed by its
type: a SelectField always has options, a TextField never does.

Fields are only ever created by ``create_default`` (or deserialized with
``field_from_dict``) and only ever changed through ``apply_update``, which
returns a new value and leaves the input untouched.

Usage:
    >>> from formbuilder.fields import apply_update, create_default
    >>> field = create_default("text")
    >>> field.label
    'text field'
    >>> updated = apply_update(field, {"label": "Email", "inputType": "email"})
    >>> updated.input_type
    <InputType.EMAIL: 'email'>
    >>> updated.id == field.id
    True
"""

import dataclasses
import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type, Union

from jsonschema import Draft7Validator

from formbuilder.config import DEFAULT_CONFIG, BuilderConfig
from formbuilder.errors import (
    InvalidFieldAttributeError,
    InvalidFieldDefinitionError,
    UnknownFieldTypeError,
)
from formbuilder.types import CheckboxType, FieldType, InputType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FieldOption:
    """One choice of a select, radio or checkbox-group field.

    Attributes:
        id: Unique identifier within the owning field
        label: Text shown to the filler
        value: Value submitted when the option is chosen
    """
    id: str
    label: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for serialization."""
        return {"id": self.id, "label": self.label, "value": self.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], config: Optional[BuilderConfig] = None) -> "FieldOption":
        """Create FieldOption from dict, generating an id when none is given."""
        config = config or DEFAULT_CONFIG
        option_id = data.get("id") or config.make_id(config.option_id_prefix)
        return cls(id=option_id, label=data["label"], value=data["value"])


def new_option(index: int, config: Optional[BuilderConfig] = None) -> FieldOption:
    """Create the default option for 1-based position ``index``.

    Examples:
        >>> opt = new_option(2)
        >>> (opt.label, opt.value)
        ('Option 2', 'option2')
    """
    config = config or DEFAULT_CONFIG
    return FieldOption(
        id=config.make_id(config.option_id_prefix),
        label=f"Option {index}",
        value=f"option{index}",
    )


@dataclass(frozen=True)
class FieldDefinition:
    """Attributes shared by every field variant.

    Attributes:
        id: Opaque identifier, immutable after creation
        label: Display label
        required: Whether the filler must provide a value
        placeholder: Hint text; its meaning depends on the field type
    """
    id: str
    label: str
    required: bool = False
    placeholder: str = ""

    type: ClassVar[FieldType]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase dict used by the rendering layer."""
        result: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "label": self.label,
            "required": self.required,
            "placeholder": self.placeholder,
        }
        result.update(self._extra_dict())
        return result

    def _extra_dict(self) -> Dict[str, Any]:
        return {}


@dataclass(frozen=True)
class TextField(FieldDefinition):
    """Single-line input."""
    input_type: InputType = InputType.TEXT

    type: ClassVar[FieldType] = FieldType.TEXT

    def _extra_dict(self) -> Dict[str, Any]:
        return {"inputType": self.input_type.value}


@dataclass(frozen=True)
class TextareaField(FieldDefinition):
    """Multi-line input."""
    rows: int = DEFAULT_CONFIG.textarea_default_rows

    type: ClassVar[FieldType] = FieldType.TEXTAREA

    def _extra_dict(self) -> Dict[str, Any]:
        return {"rows": self.rows}


@dataclass(frozen=True)
class SelectField(FieldDefinition):
    """Dropdown; the placeholder is the text of the empty default option."""
    options: Tuple[FieldOption, ...] = ()

    type: ClassVar[FieldType] = FieldType.SELECT

    def _extra_dict(self) -> Dict[str, Any]:
        return {"options": [opt.to_dict() for opt in self.options]}


@dataclass(frozen=True)
class RadioField(FieldDefinition):
    """Radio button group; the placeholder is unused."""
    options: Tuple[FieldOption, ...] = ()

    type: ClassVar[FieldType] = FieldType.RADIO

    def _extra_dict(self) -> Dict[str, Any]:
        return {"options": [opt.to_dict() for opt in self.options]}


@dataclass(frozen=True)
class CheckboxField(FieldDefinition):
    """Single checkbox or checkbox group.

    A single checkbox is captioned by the placeholder and has no options. A
    group (``checkbox_type == MULTIPLE``) always has at least one option.
    """
    checkbox_type: CheckboxType = CheckboxType.SINGLE
    options: Tuple[FieldOption, ...] = ()

    type: ClassVar[FieldType] = FieldType.CHECKBOX

    @property
    def is_group(self) -> bool:
        return self.checkbox_type == CheckboxType.MULTIPLE

    def _extra_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"checkboxType": self.checkbox_type.value}
        if self.is_group:
            result["options"] = [opt.to_dict() for opt in self.options]
        return result


AnyField = Union[TextField, TextareaField, SelectField, RadioField, CheckboxField]

# A published form: immutable, ordered
FormDefinition = Tuple[FieldDefinition, ...]

FIELD_CLASSES: Dict[FieldType, Type[FieldDefinition]] = {
    FieldType.TEXT: TextField,
    FieldType.TEXTAREA: TextareaField,
    FieldType.SELECT: SelectField,
    FieldType.RADIO: RadioField,
    FieldType.CHECKBOX: CheckboxField,
}

# Wire (camelCase) name -> dataclass attribute name
ATTRIBUTE_NAMES: Dict[str, str] = {
    "inputType": "input_type",
    "checkboxType": "checkbox_type",
}

WIRE_NAMES: Dict[str, str] = {name: wire for wire, name in ATTRIBUTE_NAMES.items()}

IMMUTABLE_ATTRIBUTES = frozenset({"id", "type"})


def coerce_field_type(field_type: Union[FieldType, str]) -> FieldType:
    """Return ``field_type`` as a FieldType, raising UnknownFieldTypeError otherwise."""
    if isinstance(field_type, FieldType):
        return field_type
    try:
        return FieldType(field_type)
    except ValueError:
        raise UnknownFieldTypeError(field_type) from None


def create_default(
    field_type: Union[FieldType, str],
    config: Optional[BuilderConfig] = None,
) -> FieldDefinition:
    """Create a field of the given type populated with its defaults.

    Args:
        field_type: FieldType or its string value
        config: Optional config for id generation and textarea rows

    Returns:
        Fresh field variant with a newly generated id

    Raises:
        UnknownFieldTypeError: If ``field_type`` is not a known field type

    Examples:
        >>> create_default("select").options[0].label
        'Option 1'
        >>> create_default("checkbox").options
        ()
    """
    config = config or DEFAULT_CONFIG
    field_type = coerce_field_type(field_type)

    common: Dict[str, Any] = {
        "id": config.make_id(config.field_id_prefix),
        "label": f"{field_type.value} field",
    }
    if field_type == FieldType.TEXTAREA:
        common["rows"] = config.textarea_default_rows
    elif field_type in (FieldType.SELECT, FieldType.RADIO):
        common["options"] = (new_option(1, config),)

    field = FIELD_CLASSES[field_type](**common)
    logger.debug("Created %s field %s", field_type.value, field.id)
    return field


def _coerce_options(
    value: Any,
    attribute: str,
    config: BuilderConfig,
) -> Tuple[FieldOption, ...]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Iterable):
        raise InvalidFieldAttributeError(attribute, value, "options must be a sequence of options")

    options: List[FieldOption] = []
    for item in value:
        if isinstance(item, FieldOption):
            options.append(item)
        elif isinstance(item, Mapping):
            try:
                options.append(FieldOption.from_dict(item, config))
            except KeyError as exc:
                raise InvalidFieldAttributeError(
                    attribute, value, f"option is missing '{exc.args[0]}'"
                ) from None
        else:
            raise InvalidFieldAttributeError(attribute, value, f"unsupported option {item!r}")

    ids = [opt.id for opt in options]
    if len(ids) != len(set(ids)):
        raise InvalidFieldAttributeError(attribute, value, "option ids must be unique")
    return tuple(options)


def _coerce_attribute(name: str, value: Any, config: BuilderConfig) -> Any:
    """Convert a patch value to the type stored on the dataclass."""
    if name in ("label", "placeholder"):
        if not isinstance(value, str):
            raise InvalidFieldAttributeError(name, value, f"{name} must be a string")
        return value
    if name == "required":
        if not isinstance(value, bool):
            raise InvalidFieldAttributeError(name, value, "required must be a boolean")
        return value
    if name == "input_type":
        try:
            return InputType(value)
        except ValueError:
            raise InvalidFieldAttributeError("inputType", value) from None
    if name == "checkbox_type":
        try:
            return CheckboxType(value)
        except ValueError:
            raise InvalidFieldAttributeError("checkboxType", value) from None
    if name == "rows":
        if isinstance(value, bool):
            raise InvalidFieldAttributeError(name, value, "rows must be an integer")
        try:
            rows = int(value)
        except (OverflowError, TypeError, ValueError):
            raise InvalidFieldAttributeError(name, value, "rows must be an integer") from None
        return max(config.textarea_min_rows, min(config.textarea_max_rows, rows))
    if name == "options":
        return _coerce_options(value, name, config)
    return value


def _settle_options(field: FieldDefinition, changes: Dict[str, Any], config: BuilderConfig) -> None:
    """Keep the options invariant of choice fields after a patch.

    An options patch may never leave a choice field empty, switching a
    checkbox to a group seeds a default option and switching it back to a
    single checkbox drops them.
    """
    if isinstance(field, (SelectField, RadioField)):
        if "options" in changes and not changes["options"]:
            logger.debug("Ignoring empty options update on %s field %s", field.type.value, field.id)
            del changes["options"]
        return

    if not isinstance(field, CheckboxField):
        return

    checkbox_type = changes.get("checkbox_type", field.checkbox_type)
    if checkbox_type == CheckboxType.SINGLE:
        if field.options or "options" in changes:
            changes["options"] = ()
        return

    if "options" in changes and not changes["options"]:
        del changes["options"]
    if not changes.get("options", field.options):
        changes["options"] = (new_option(1, config),)


def apply_update(
    field: FieldDefinition,
    patch: Mapping[str, Any],
    config: Optional[BuilderConfig] = None,
) -> FieldDefinition:
    """Merge ``patch`` onto ``field`` and return the updated copy.

    Only attributes named in the patch change. Keys may use either the wire
    (camelCase) or the attribute (snake_case) spelling. ``id`` and ``type``
    are immutable and silently ignored, as are attributes that do not belong
    to the field's type.

    Args:
        field: Field to update (left untouched)
        patch: Attribute name -> new value
        config: Optional config for option ids and row bounds

    Returns:
        New field value, or ``field`` itself when nothing applicable changed

    Raises:
        InvalidFieldAttributeError: If a patch value cannot be stored on the field
    """
    config = config or DEFAULT_CONFIG
    allowed = {f.name for f in dataclasses.fields(field)}

    changes: Dict[str, Any] = {}
    for key, value in patch.items():
        name = ATTRIBUTE_NAMES.get(key, key)
        if name in IMMUTABLE_ATTRIBUTES:
            continue
        if name not in allowed:
            logger.debug("Ignoring attribute %r foreign to %s field %s", key, field.type.value, field.id)
            continue
        changes[name] = _coerce_attribute(name, value, config)

    _settle_options(field, changes, config)

    changes = {name: value for name, value in changes.items() if getattr(field, name) != value}
    if not changes:
        return field
    return dataclasses.replace(field, **changes)


def changed_attributes(before: FieldDefinition, after: FieldDefinition) -> List[str]:
    """Wire names of the attributes that differ between two versions of a field.

    Examples:
        >>> field = TextField(id="f1", label="Name")
        >>> changed_attributes(field, apply_update(field, {"label": "Email", "inputType": "email"}))
        ['inputType', 'label']
    """
    return sorted(
        WIRE_NAMES.get(f.name, f.name)
        for f in dataclasses.fields(before)
        if getattr(before, f.name) != getattr(after, f.name, None)
    )


def _options_of(field: FieldDefinition) -> Tuple[FieldOption, ...]:
    options = getattr(field, "options", None)
    if options is None:
        raise InvalidFieldAttributeError(
            "options", None, f"{field.type.value} fields have no options"
        )
    return options


def add_option(field: FieldDefinition, config: Optional[BuilderConfig] = None) -> Dict[str, Any]:
    """Return the options patch that appends a default option to ``field``.

    Examples:
        >>> field = create_default("select")
        >>> [opt.label for opt in add_option(field)["options"]]
        ['Option 1', 'Option 2']
    """
    options = _options_of(field)
    return {"options": options + (new_option(len(options) + 1, config),)}


def update_option(field: FieldDefinition, option_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
    """Return the options patch that changes the label and/or value of one option.

    Unknown option ids leave the options as they are.

    Raises:
        InvalidFieldAttributeError: If ``changes`` names anything but a string label or value
    """
    for key, value in changes.items():
        if key not in ("label", "value") or not isinstance(value, str):
            raise InvalidFieldAttributeError("options", dict(changes), f"cannot set option {key} to {value!r}")
    return {
        "options": tuple(
            dataclasses.replace(opt, **changes) if opt.id == option_id else opt
            for opt in _options_of(field)
        )
    }


def remove_option(field: FieldDefinition, option_id: str) -> Dict[str, Any]:
    """Return the options patch without ``option_id``. The last option is never removed."""
    options = _options_of(field)
    if len(options) <= 1:
        return {"options": options}
    return {"options": tuple(opt for opt in options if opt.id != option_id)}


def duplicate_option(
    field: FieldDefinition,
    option_id: str,
    config: Optional[BuilderConfig] = None,
) -> Dict[str, Any]:
    """Return the options patch that appends a copy of ``option_id`` under a fresh id.

    Examples:
        >>> field = create_default("radio")
        >>> copy = duplicate_option(field, field.options[0].id)["options"][-1]
        >>> (copy.label, copy.value)
        ('Option 1 (Copy)', 'option1_copy')
    """
    config = config or DEFAULT_CONFIG
    options = _options_of(field)
    for opt in options:
        if opt.id == option_id:
            copy = FieldOption(
                id=config.make_id(config.option_id_prefix),
                label=f"{opt.label} (Copy)",
                value=f"{opt.value}_copy",
            )
            return {"options": options + (copy,)}
    return {"options": options}


# JSON Schema (Draft 7) for the wire form of a field. Structural rules that
# depend on the field type are expressed with if/then clauses.
OPTION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "label": {"type": "string"},
        "value": {"type": "string"},
    },
    "required": ["label", "value"],
}

_NON_EMPTY_OPTIONS: Dict[str, Any] = {
    "required": ["options"],
    "properties": {"options": {"minItems": 1}},
}

FIELD_DEFINITION_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "minLength": 1},
        "type": {"enum": [t.value for t in FieldType]},
        "label": {"type": "string"},
        "required": {"type": "boolean"},
        "placeholder": {"type": "string"},
        "inputType": {"enum": [t.value for t in InputType]},
        "rows": {"type": "integer"},
        "checkboxType": {"enum": [t.value for t in CheckboxType]},
        "options": {"type": "array", "items": OPTION_SCHEMA},
    },
    "required": ["id", "type"],
    "allOf": [
        {
            "if": {"properties": {"type": {"const": "select"}}, "required": ["type"]},
            "then": _NON_EMPTY_OPTIONS,
        },
        {
            "if": {"properties": {"type": {"const": "radio"}}, "required": ["type"]},
            "then": _NON_EMPTY_OPTIONS,
        },
        {
            "if": {
                "properties": {
                    "type": {"const": "checkbox"},
                    "checkboxType": {"const": "multiple"},
                },
                "required": ["type", "checkboxType"],
            },
            "then": _NON_EMPTY_OPTIONS,
        },
    ],
}

Draft7Validator.check_schema(FIELD_DEFINITION_SCHEMA)
_FIELD_VALIDATOR = Draft7Validator(FIELD_DEFINITION_SCHEMA)


def _schema_problems(data: Any) -> List[str]:
    problems = []
    for error in _FIELD_VALIDATOR.iter_errors(data):
        path = ".".join(str(p) for p in error.absolute_path) or "<root>"
        problems.append(f"{path}: {error.message}")
    return problems


def field_from_dict(data: Mapping[str, Any], config: Optional[BuilderConfig] = None) -> FieldDefinition:
    """Create a field from its wire dict.

    The dict is checked against FIELD_DEFINITION_SCHEMA first. Keys foreign to
    the field's type are dropped.

    Raises:
        InvalidFieldDefinitionError: If the dict violates the schema or repeats option ids
    """
    config = config or DEFAULT_CONFIG
    problems = _schema_problems(data)
    if problems:
        raise InvalidFieldDefinitionError(problems)

    field_type = FieldType(data["type"])
    field = FIELD_CLASSES[field_type](
        id=data["id"],
        label=data.get("label", f"{field_type.value} field"),
    )
    if field_type == FieldType.TEXTAREA and "rows" not in data:
        field = dataclasses.replace(field, rows=config.textarea_default_rows)

    patch = {key: value for key, value in data.items() if key not in IMMUTABLE_ATTRIBUTES}
    try:
        return apply_update(field, patch, config)
    except InvalidFieldAttributeError as exc:
        raise InvalidFieldDefinitionError([f"{exc.attribute}: {exc}"]) from exc


def form_to_dicts(fields: Sequence[FieldDefinition]) -> List[Dict[str, Any]]:
    """Serialize an ordered field sequence."""
    return [field.to_dict() for field in fields]


def form_from_dicts(
    data: Sequence[Mapping[str, Any]],
    config: Optional[BuilderConfig] = None,
) -> FormDefinition:
    """Deserialize an ordered field sequence into an immutable form definition.

    Raises:
        InvalidFieldDefinitionError: If any field is invalid or two fields share an id
    """
    fields = tuple(field_from_dict(item, config) for item in data)
    ids = [field.id for field in fields]
    if len(ids) != len(set(ids)):
        raise InvalidFieldDefinitionError(["<root>: field ids must be unique"])
    return fields


__all__ = [
    "FieldOption",
    "FieldDefinition",
    "TextField",
    "TextareaField",
    "SelectField",
    "RadioField",
    "CheckboxField",
    "AnyField",
    "FormDefinition",
    "FIELD_CLASSES",
    "FIELD_DEFINITION_SCHEMA",
    "coerce_field_type",
    "create_default",
    "apply_update",
    "new_option",
    "add_option",
    "update_option",
    "remove_option",
    "duplicate_option",
    "changed_attributes",
    "field_from_dict",
    "form_to_dicts",
    "form_from_dicts",
]
