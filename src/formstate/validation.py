"""
Open validator registry and tri-state validation.

Validators are plain predicates `(value, args) -> bool` registered under a
name. Fields refer to them by that name (FieldDef.validator), which keeps
form declarations serializable.

Validation only ever writes FieldState.validity; values are untouched.
"""

import logging
import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from formstate.config import get_form_config
from formstate.ident import Entity, Ident, Store
from formstate.overlay import (
    Validity,
    current_validity,
    current_value,
    editable_fields,
    field_config,
    form_ident,
    with_field_validity,
)
from formstate.resolver import reduce_forms, update_forms

logger = logging.getLogger(__name__)

Validator = Callable[[Any, Mapping[str, Any]], bool]


class ValidatorRegistry:
    """Registry of named field validators.

    Populated at startup (built-ins below, application validators through
    register()). Not thread-safe; register before serving form operations.
    """
    _validators: Dict[str, Validator] = {}

    @classmethod
    def register(cls, name: str, fn: Optional[Validator] = None):
        """Register fn under name. Usable as a decorator:

            @ValidatorRegistry.register("two_words")
            def two_words(value, args):
                return " " in value.strip()
        """
        if fn is None:
            def decorator(func: Validator) -> Validator:
                cls.register(name, func)
                return func
            return decorator
        if name in cls._validators:
            logger.warning(f"Overwriting existing validator: {name}")
        cls._validators[name] = fn
        logger.debug(f"Registered validator: {name}")
        return fn

    @classmethod
    def unregister(cls, name: str) -> None:
        cls._validators.pop(name, None)

    @classmethod
    def get(cls, name: str) -> Optional[Validator]:
        return cls._validators.get(name)

    @classmethod
    def is_registered(cls, name: str) -> bool:
        return name in cls._validators

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._validators)

    @classmethod
    def snapshot(cls) -> Dict[str, Validator]:
        """Copy of the current registrations (for tests)."""
        return dict(cls._validators)

    @classmethod
    def restore(cls, validators: Dict[str, Validator]) -> None:
        cls._validators.clear()
        cls._validators.update(validators)


register_validator = ValidatorRegistry.register


@register_validator("in_range")
def in_range(value: Any, args: Mapping[str, Any]) -> bool:
    """Integer value within the inclusive range [args["min"], args["max"]]."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        return False
    return args["min"] <= number <= args["max"]


@register_validator("matches")
def matches(value: Any, args: Mapping[str, Any]) -> bool:
    """The whole of str(value) matches the regular expression args["pattern"]."""
    if value is None:
        return False
    return re.fullmatch(args["pattern"], str(value)) is not None


def field_valid(validator_name: str, value: Any, args: Mapping[str, Any]) -> bool:
    """Run the named validator.

    An unregistered name never passes: unvalidated input is not accepted
    silently. A validator that raises counts as a failure.
    """
    fn = ValidatorRegistry.get(validator_name)
    if fn is None:
        if get_form_config().warn_unregistered_validators:
            logger.warning(f"Validator '{validator_name}' is not registered; field treated as invalid")
        return False
    try:
        return bool(fn(value, args))
    except Exception as e:
        logger.warning(f"Validator '{validator_name}' failed on {value!r}: {e}")
        return False


# ==================== PER NODE ====================

def update_validation(entity: Mapping[str, Any], name: str) -> Entity:
    """Return entity with field `name` validated. Does NOT recurse into subforms.

    Fields without a validator are always valid.
    """
    config = field_config(entity, name)
    if config is None or config.validator is None:
        return with_field_validity(entity, name, Validity.VALID)
    ok = field_valid(config.validator, current_value(entity, name), config.validator_args)
    if not ok:
        logger.debug(f"Field '{name}' of {form_ident(entity)!r} is invalid")
    return with_field_validity(entity, name, Validity.VALID if ok else Validity.INVALID)


def validate_fields(entity: Mapping[str, Any]) -> Entity:
    """Validate every editable field of one form (no recursion)."""
    for name in editable_fields(entity):
        entity = update_validation(entity, name)
    return entity


def is_valid(entity: Mapping[str, Any], name: Optional[str] = None) -> bool:
    """True iff the field (or every editable field) has been validated and passed.

    On a whole form this is only meaningful after validation has run, since
    unchecked fields are not valid.
    """
    if name is not None:
        return current_validity(entity, name) is Validity.VALID
    return all(is_valid(entity, f) for f in editable_fields(entity))


def is_invalid(entity: Mapping[str, Any], name: Optional[str] = None) -> bool:
    """True iff the field (or any editable field) has been validated and failed.

    Unchecked fields are ignored.
    """
    if name is not None:
        return current_validity(entity, name) is Validity.INVALID
    return any(is_invalid(entity, f) for f in editable_fields(entity))


# ==================== WHOLE TREE ====================

def validate_form(store: Store, root_ident: Ident) -> Store:
    """Validate the root form and all of its subforms. Returns the new store."""
    return update_forms(store, root_ident, lambda node: validate_fields(node.entity))


def all_valid(store: Store, root_ident: Ident) -> bool:
    """is_valid() over every form in the tree."""
    return reduce_forms(store, root_ident, lambda ok, node: ok and is_valid(node.entity), True)


def any_invalid(store: Store, root_ident: Ident) -> bool:
    """is_invalid() over every form in the tree."""
    return reduce_forms(store, root_ident, lambda bad, node: bad or is_invalid(node.entity), False)
