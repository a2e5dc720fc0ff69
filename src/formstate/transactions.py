"""
Commit and reset across a whole form tree.

commit copies overlay values into the entities' real properties; reset copies
real properties back into the overlays. Both operate on every form that
forms_in() resolves under the root, and both are pure store transforms.

Commit is all-or-nothing: the tree is validated first and, if any form is
invalid, no value is copied anywhere. The returned store then differs from
the input only in validity markers, so the UI can show the errors.
"""

import copy
from dataclasses import dataclass, field
import logging
from typing import Any, Dict, List, Mapping

from formstate.config import form_key
from formstate.dirty import modified_fields
from formstate.ident import Entity, Ident, Store, is_tempid
from formstate.overlay import (
    current_value,
    editable_fields,
    entity_value,
    field_config,
    form_ident,
    form_state,
)
from formstate.resolver import update_forms
from formstate.validation import any_invalid, validate_form

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CommitResult:
    """Outcome of commit().

    store is the new store (always returned, committed or not). delta maps
    each changed form's ident to its changed field names, as computed just
    before the copy; it is empty when nothing was committed.
    """
    store: Store = field(repr=False)
    form_id: Ident
    committed: bool
    delta: Dict[Ident, List[str]] = field(default_factory=dict)
    remote: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Export the payload a remote collaborator needs (JSON-compatible)."""
        changes = []
        for ident, fields in self.delta.items():
            entity = self.store.get(ident, {})
            changes.append({
                'ident': ident.to_list(),
                'fields': list(fields),
                'values': {name: _json_value(entity.get(name)) for name in fields},
            })
        return {
            'formId': self.form_id.to_list(),
            'committed': self.committed,
            'remote': self.remote,
            'delta': changes,
        }


def _json_value(value: Any) -> Any:
    if is_tempid(value):
        return str(value)
    if isinstance(value, Ident):
        return value.to_list()
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    return value


def _copy_to_entity(entity: Mapping[str, Any]) -> Entity:
    new_entity = dict(entity)
    stored = not form_ident(entity).is_temporary
    for name in editable_fields(entity):
        value = current_value(entity, name)
        if name not in entity and stored and field_config(entity, name).is_identity:
            # Only new entities get their id written
            continue
        # An absent property already reads as this value
        if name not in entity and value == entity_value(entity, name):
            continue
        new_entity[name] = copy.deepcopy(value)
    return new_entity


def _copy_from_entity(entity: Mapping[str, Any]) -> Entity:
    state = form_state(entity)
    for name in editable_fields(entity):
        config = field_config(entity, name)
        if name not in entity and config.is_identity:
            # Keep the temporary id until the entity gets a real one
            continue
        state = state.with_field(name, value=copy.deepcopy(entity_value(entity, name)))
    new_entity = dict(entity)
    new_entity[form_key()] = state
    return new_entity


def commit(store: Store, root_ident: Ident, remote: bool = False) -> CommitResult:
    """Validate the tree and, if nothing is invalid, copy every form into its entity.

    Args:
        store: Current store
        root_ident: Ident of the root form
        remote: Passed through to the result for the collaborator that
            forwards the delta to a server

    Returns:
        CommitResult with the new store, the delta and whether the copy ran.
    """
    validated = validate_form(store, root_ident)
    if any_invalid(validated, root_ident):
        logger.info(f"Commit of {root_ident!r} aborted: form tree has invalid fields")
        return CommitResult(store=validated, form_id=root_ident, committed=False, remote=remote)

    delta = modified_fields(validated, root_ident)
    committed = update_forms(validated, root_ident, lambda node: _copy_to_entity(node.entity))
    logger.info(f"Committed {root_ident!r}: {len(delta)} changed form(s)")
    return CommitResult(store=committed, form_id=root_ident, committed=True, delta=delta, remote=remote)


def commit_to_entity(store: Store, root_ident: Ident) -> Store:
    """Store-only form of commit()."""
    return commit(store, root_ident).store


def reset_from_entity(store: Store, root_ident: Ident) -> Store:
    """Discard overlay edits across the tree, then re-validate.

    Each editable field gets its entity's real value back (or its default when
    the entity lacks the property).
    """
    reset = update_forms(store, root_ident, lambda node: _copy_from_entity(node.entity))
    logger.info(f"Reset {root_ident!r} from entity")
    return validate_form(reset, root_ident)
