"""
Dirty tracking: overlay values vs. the entity's real properties.

A form is dirty when any editable field's overlay value differs from the
entity's value for that property, or when it still carries a temporary id.
A property the entity lacks compares as the field's declared default.
"""

import logging
from typing import Dict, List, Mapping, Any

from formstate.ident import Ident, Store, is_tempid
from formstate.overlay import current_value, editable_fields, element_names, entity_value
from formstate.resolver import reduce_forms

logger = logging.getLogger(__name__)


def changed_fields(entity: Mapping[str, Any]) -> List[str]:
    """Editable fields of one form whose overlay value differs from the entity."""
    editable = set(editable_fields(entity))
    return [
        name for name in element_names(entity)
        if name in editable and current_value(entity, name) != entity_value(entity, name)
    ]


def is_dirty(entity: Mapping[str, Any]) -> bool:
    """True if the form differs from its entity or holds a temporary id.

    Does not recurse into subforms.
    """
    for name in editable_fields(entity):
        if is_tempid(current_value(entity, name)) or is_tempid(entity_value(entity, name)):
            return True
    return bool(changed_fields(entity))


def any_dirty(store: Store, root_ident: Ident) -> bool:
    """True if the root form or any of its subforms is dirty."""
    return reduce_forms(store, root_ident, lambda d, node: d or is_dirty(node.entity), False)


def modified_fields(store: Store, root_ident: Ident) -> Dict[Ident, List[str]]:
    """Map each changed form's ident to the names of its changed fields.

    Forms without changes are left out; the result is the delta a commit
    would apply.
    """
    def collect(result: Dict[Ident, List[str]], node) -> Dict[Ident, List[str]]:
        fields = changed_fields(node.entity)
        if fields:
            result[node.ident] = fields
        return result

    delta = reduce_forms(store, root_ident, collect, {})
    logger.debug(f"modified_fields: root={root_ident!r} delta={delta}")
    return delta
