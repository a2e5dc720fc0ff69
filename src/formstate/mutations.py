"""
Named store-transform operations for the embedding framework.

Each mutation takes the current store plus parameters and returns the new
store. The framework runs them inside its own transaction mechanism and
re-renders; nothing here dispatches, persists or notifies.
"""

import logging
from typing import Any, Callable, Dict

from formstate.errors import EntityNotFoundError, FormConfigurationError, NotInitializedError, UnknownMutationError
from formstate.fields import NONE, FieldKind, coerce_integer_input
from formstate.ident import Ident, Store, assoc_entity
from formstate.overlay import current_value, field_config, field_type, is_initialized, with_field_value
from formstate.transactions import commit_to_entity, reset_from_entity
from formstate.validation import update_validation, validate_form

logger = logging.getLogger(__name__)


def _entity(store: Store, form_id: Ident):
    entity = store.get(form_id)
    if entity is None:
        raise EntityNotFoundError(form_id)
    if not is_initialized(entity):
        raise NotInitializedError(form_id)
    return entity


def update_field(store: Store, form_id: Ident, field: str, value: Any) -> Store:
    """Set the overlay value of one field."""
    entity = _entity(store, form_id)
    return assoc_entity(store, form_id, with_field_value(entity, field, value))


def set_integer_field(store: Store, form_id: Ident, field: str, raw: Any) -> Store:
    """Set an integer field from raw input, coercing complete integers."""
    return update_field(store, form_id, field, coerce_integer_input(raw))


def toggle_field(store: Store, form_id: Ident, field: str) -> Store:
    """Flip a checkbox field.

    Raises:
        FormConfigurationError: field is not a checkbox.
    """
    entity = _entity(store, form_id)
    if field_type(entity, field) is not FieldKind.CHECKBOX:
        raise FormConfigurationError(f"'{field}' on {form_id!r} is not a checkbox")
    return assoc_entity(store, form_id, with_field_value(entity, field, not current_value(entity, field)))


def select_option(store: Store, form_id: Ident, field: str, key: Any) -> Store:
    """Select a dropdown option by key.

    key may be the option key itself or its string form (as delivered by an
    HTML select). "" or NONE clears an optional dropdown.

    Raises:
        FormConfigurationError: field is not a dropdown, or key matches no option.
    """
    entity = _entity(store, form_id)
    config = field_config(entity, field)
    if config is None or config.kind is not FieldKind.DROPDOWN:
        raise FormConfigurationError(f"'{field}' on {form_id!r} is not a dropdown")

    if key is NONE or key == "":
        if not config.is_optional:
            raise FormConfigurationError(f"Dropdown '{field}' requires a selection")
        selected = NONE
    else:
        selected = next((opt.key for opt in config.options if opt.key == key), None)
        if selected is None:
            selected = next((opt.key for opt in config.options if str(opt.key) == str(key)), None)
        if selected is None:
            raise FormConfigurationError(f"Dropdown '{field}' has no option {key!r}")
    return assoc_entity(store, form_id, with_field_value(entity, field, selected))


def validate_field(store: Store, form_id: Ident, field: str) -> Store:
    """Validate a single field of one form (e.g. on blur)."""
    entity = _entity(store, form_id)
    return assoc_entity(store, form_id, update_validation(entity, field))


MUTATIONS: Dict[str, Callable[..., Store]] = {
    'update_field': update_field,
    'set_integer_field': set_integer_field,
    'toggle_field': toggle_field,
    'select_option': select_option,
    'validate_field': validate_field,
    'validate_form': validate_form,
    'commit_to_entity': commit_to_entity,
    'reset_from_entity': reset_from_entity,
}


def dispatch(store: Store, name: str, **params) -> Store:
    """Run the named mutation against store.

    Usage:
        store = dispatch(store, "update_field", form_id=ident, field="person/name", value="Tony Kay")
        store = dispatch(store, "commit_to_entity", root_ident=ident)
    """
    mutation = MUTATIONS.get(name)
    if mutation is None:
        raise UnknownMutationError(f"Unknown form mutation: {name!r} (known: {sorted(MUTATIONS)})")
    logger.debug(f"dispatch {name}: {params}")
    return mutation(store, **params)
