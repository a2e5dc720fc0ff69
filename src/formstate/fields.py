"""
Declarative field and subform definitions.

Field constructors are pure value builders: each returns a frozen FieldDef
describing one input of a form. Nothing is registered anywhere; a spec's
form_elements() simply returns a list of these values.

Fatal declaration errors (a dropdown whose default is not among its options)
raise FormConfigurationError at construction. A subform whose target lacks the
form capabilities is only a warning: the link is kept but marked
non-traversable, so resolution skips it.
"""

from dataclasses import dataclass, field
from enum import Enum
import logging
import re
from typing import Any, Dict, Optional, Sequence, Tuple

from formstate.config import get_form_config
from formstate.entity_spec import has_form_capabilities, missing_capabilities, spec_name
from formstate.errors import FormConfigurationError

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """Kinds of form elements."""
    IDENTITY = "identity"
    TEXT = "text"
    INTEGER = "integer"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    SUBFORM = "subform"
    SWITCHER = "switcher"


SUBFORM_KINDS = frozenset({FieldKind.SUBFORM, FieldKind.SWITCHER})

CARDINALITY_ONE = "one"
CARDINALITY_MANY = "many"


class _NoneSelected:
    """Sentinel marking an optional dropdown with nothing selected."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NONE"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


NONE = _NoneSelected()


@dataclass(frozen=True)
class Option:
    """One dropdown choice: key is the stored value, label is displayed."""
    key: Any
    label: str = ""


def option(key: Any, label: str) -> Option:
    """Create a dropdown option with the given key (state value) and label (visible)."""
    return Option(key=key, label=label)


@dataclass(frozen=True)
class FieldDef:
    """Declaration of one form element."""
    name: str
    kind: FieldKind
    default_value: Any = None
    validator: Optional[str] = None
    validator_args: Dict[str, Any] = field(default_factory=dict, compare=False)
    validate_on_blur: bool = False
    css_class: str = ""
    placeholder: str = ""
    options: Tuple[Option, ...] = ()

    @property
    def is_subform(self) -> bool:
        return self.kind in SUBFORM_KINDS

    @property
    def is_identity(self) -> bool:
        return self.kind is FieldKind.IDENTITY

    @property
    def is_optional(self) -> bool:
        """Dropdowns without a concrete default may be left unselected."""
        return self.kind is FieldKind.DROPDOWN and self.default_value is NONE

    def to_dict(self) -> Dict[str, Any]:
        """Export to a JSON-compatible dict."""
        data = {
            'name': self.name,
            'kind': self.kind.value,
            'defaultValue': None if self.default_value is NONE else self.default_value,
            'validator': self.validator,
            'validatorArgs': dict(self.validator_args),
            'cssClass': self.css_class,
        }
        if self.options:
            data['options'] = [{'key': o.key, 'label': o.label} for o in self.options]
        return data


@dataclass(frozen=True)
class SubformLink(FieldDef):
    """A field that links this form to one or many child forms."""
    cardinality: str = CARDINALITY_ONE
    target: Any = field(default=None, compare=False)
    select_key: Any = None

    @property
    def is_many(self) -> bool:
        return self.cardinality == CARDINALITY_MANY

    @property
    def is_traversable(self) -> bool:
        return has_form_capabilities(self.target)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            'cardinality': self.cardinality,
            'target': spec_name(self.target) if self.target is not None else None,
        })
        if self.select_key is not None:
            data['selectKey'] = self.select_key
        return data


def identity_field(name: str) -> FieldDef:
    """Declare a hidden identity field.

    Required so that temporary ids follow new entities through commit.
    """
    return FieldDef(name=name, kind=FieldKind.IDENTITY)


def text_field(
    name: str,
    *,
    validator: Optional[str] = None,
    validator_args: Optional[Dict[str, Any]] = None,
    validate_on_blur: bool = False,
    css_class: str = "",
    default_value: Any = "",
    placeholder: str = "",
) -> FieldDef:
    """Declare a text input.

    Args:
        name: Entity property the input edits
        validator: Name of a registered validator
        validator_args: Arguments passed to the validator
        validate_on_blur: Hint for the renderer to validate when focus leaves
        css_class: CSS classes for the renderer
        default_value: Value for entities lacking the property
        placeholder: Placeholder text for the renderer
    """
    return FieldDef(
        name=name,
        kind=FieldKind.TEXT,
        default_value=default_value,
        validator=validator,
        validator_args=dict(validator_args or {}),
        validate_on_blur=validate_on_blur,
        css_class=css_class,
        placeholder=placeholder,
    )


def integer_field(
    name: str,
    *,
    validator: Optional[str] = None,
    validator_args: Optional[Dict[str, Any]] = None,
    validate_on_blur: bool = False,
    css_class: str = "",
    default_value: Any = 0,
) -> FieldDef:
    """Declare an integer input. Input is coerced with coerce_integer_input()."""
    return FieldDef(
        name=name,
        kind=FieldKind.INTEGER,
        default_value=default_value,
        validator=validator,
        validator_args=dict(validator_args or {}),
        validate_on_blur=validate_on_blur,
        css_class=css_class,
    )


def checkbox_field(name: str, *, css_class: str = "", default_value: Any = False) -> FieldDef:
    """Declare a checkbox."""
    return FieldDef(
        name=name,
        kind=FieldKind.CHECKBOX,
        default_value=bool(default_value),
        css_class=css_class,
    )


def dropdown_field(
    name: str,
    options: Sequence[Option],
    *,
    default_value: Any = NONE,
    css_class: str = "",
) -> FieldDef:
    """Declare a dropdown selector.

    With a concrete default_value the input always holds a value. With the
    NONE sentinel (the default) the input may be left unselected.

    Raises:
        FormConfigurationError: options empty, an option without a key, or a
            default that is neither NONE nor the key of some option.
    """
    options = tuple(options or ())
    if not options:
        raise FormConfigurationError(f"Dropdown '{name}' needs at least one option")
    for opt in options:
        if not isinstance(opt, Option) or opt.key is None:
            raise FormConfigurationError(f"Dropdown '{name}' has an option without a key: {opt!r}")
    if default_value is not NONE and not any(opt.key == default_value for opt in options):
        raise FormConfigurationError(
            f"Dropdown '{name}' default {default_value!r} is not one of "
            f"{[opt.key for opt in options]!r} (use NONE for an optional dropdown)"
        )
    return FieldDef(
        name=name,
        kind=FieldKind.DROPDOWN,
        default_value=default_value,
        css_class=css_class,
        options=options,
    )


def subform_field(name: str, target: Any, cardinality: str = CARDINALITY_ONE) -> SubformLink:
    """Declare that property `name` links to subforms of type `target`.

    Subform links must be declared for form-wide operations (validate, dirty,
    commit, reset) to reach the children. An unknown cardinality is treated
    as "many".
    """
    if cardinality not in (CARDINALITY_ONE, CARDINALITY_MANY):
        cardinality = CARDINALITY_MANY
    if not has_form_capabilities(target):
        logger.warning(
            f"Subform element '{name}' (ignored). It points at {target!r} which must provide "
            f"ident, query and form_elements; missing: {list(missing_capabilities(target))}"
        )
    return SubformLink(
        name=name,
        kind=FieldKind.SUBFORM,
        cardinality=cardinality,
        target=target,
    )


def switcher_field(name: str, target: Any, select_key: Any) -> SubformLink:
    """Declare a to-many subform list of which one member is shown at a time.

    All members still take part in form-wide operations. select_key is for the
    renderer, which uses it to pick the active member.
    """
    link = subform_field(name, target, CARDINALITY_MANY)
    return SubformLink(
        name=link.name,
        kind=FieldKind.SWITCHER,
        cardinality=CARDINALITY_MANY,
        target=target,
        select_key=select_key,
    )


def coerce_integer_input(raw: Any) -> Any:
    """Coerce raw input to int when it fully matches the integer pattern.

    Anything else (partial input such as "-" or "12a", or non-strings) is
    passed through unchanged so the user can keep typing.
    """
    if isinstance(raw, str) and re.fullmatch(get_form_config().integer_pattern, raw):
        return int(raw)
    return raw
