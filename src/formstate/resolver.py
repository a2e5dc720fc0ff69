"""
Subform discovery and form-tree resolution.

Two halves:

Static (schema only):
    subform_paths(spec) combines the spec's subform declarations with its
    query shape and returns every property path that leads to a subform,
    together with the spec of the form found there.

Dynamic (live store):
    resolve_instances() follows one property path through the store, fanning
    out over to-many relations. forms_in() runs it for every static path and
    yields the form nodes currently materialized under a root.

update_forms() / reduce_forms() are the tree-wide map and fold that
validation, dirty tracking and commit/reset are built on.
"""

from dataclasses import dataclass
import logging
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple, TypeVar

from formstate.entity_spec import spec_name
from formstate.errors import EntityNotFoundError, NotInitializedError
from formstate.ident import Entity, Ident, Store, is_ident, is_ident_list
from formstate.overlay import form_spec, is_initialized, subform_targets

logger = logging.getLogger(__name__)

T = TypeVar('T')

PropertyPath = Tuple[str, ...]


@dataclass(frozen=True)
class FormNode:
    """One form in a resolved tree: its ident, spec and current entity value."""
    ident: Ident
    spec: Any
    entity: Optional[Entity]


# ==================== STATIC ANALYSIS ====================

def subform_paths(spec: Any) -> List[Tuple[PropertyPath, Any]]:
    """Return [(property_path, child_spec)] for every subform reachable from spec.

    A join is accepted as a subform only when:
    - the spec declares a subform element for the join's property,
    - the join is a plain join (not a union, not recursive), and
    - the subform element targets the joined spec, which provides ident,
      query and form_elements.

    Rejected joins that were declared as subforms are reported as warnings.
    init_form() follows exactly the same links (see overlay.subform_targets).
    Nested subforms yield their full path, e.g. ("orders", "line-items").
    """
    return _subform_paths(spec, (), (spec,))


def _subform_paths(spec: Any, current_path: PropertyPath, chain: Tuple[Any, ...]) -> List[Tuple[PropertyPath, Any]]:
    result: List[Tuple[PropertyPath, Any]] = []
    for link, target in subform_targets(spec):
        path = current_path + (link.name,)
        result.append((path, target))
        if target in chain:
            logger.debug(f"{spec_name(spec)}: '{link.name}' closes a schema cycle at {spec_name(target)}, not expanding")
            continue
        result.extend(_subform_paths(target, path, chain + (target,)))
    return result


# ==================== LIVE RESOLUTION ====================

def resolve_instances(store: Store, obj: Optional[Mapping[str, Any]], path: Sequence[str]) -> List[Ident]:
    """Follow path from obj through the store and return the terminal idents.

    To-many relations fan out: the rest of the path is resolved against each
    member independently and the results are concatenated in member order.
    To-one relations continue from the related entity. Missing properties or
    entities end that branch with no result.
    """
    if obj is None or not path:
        return []
    key, remainder = path[0], tuple(path[1:])
    value = obj.get(key)
    if is_ident(value):
        return _follow(store, value, remainder)
    if is_ident_list(value):
        result: List[Ident] = []
        for member in value:
            result.extend(_follow(store, member, remainder))
        return result
    return []


def _follow(store: Store, ident: Ident, remainder: PropertyPath) -> List[Ident]:
    if not remainder:
        return [ident]
    return resolve_instances(store, store.get(ident), remainder)


def forms_in(store: Store, root_spec: Any, root_ident: Ident) -> List[FormNode]:
    """Return the root form and every live subform instance below it.

    Nodes come root first, then in subform-path order. Each ident appears
    once. Instances whose ident is not in the store, or whose key is None,
    are dropped.
    """
    root = store.get(root_ident)
    nodes = [FormNode(ident=root_ident, spec=root_spec, entity=root)]
    for path, child_spec in subform_paths(root_spec):
        for ident in resolve_instances(store, root, path):
            nodes.append(FormNode(ident=ident, spec=child_spec, entity=store.get(ident)))

    seen = set()
    result: List[FormNode] = []
    for node in nodes:
        if node.ident in seen or node.entity is None or node.ident.key is None:
            continue
        seen.add(node.ident)
        result.append(node)
    logger.debug(f"forms_in: root={root_ident!r} resolved {len(result)} form(s)")
    return result


def root_spec_of(store: Store, root_ident: Ident) -> Any:
    """Spec recorded on the root's overlay.

    Raises:
        EntityNotFoundError: root_ident is not in the store.
        NotInitializedError: the root has no overlay.
    """
    root = store.get(root_ident)
    if root is None:
        raise EntityNotFoundError(root_ident)
    if not is_initialized(root):
        raise NotInitializedError(root_ident)
    return form_spec(root)


def resolved_forms(store: Store, root_ident: Ident) -> List[FormNode]:
    """forms_in() using the spec recorded on the root overlay.

    Raises:
        NotInitializedError: any node of the tree has no overlay.
    """
    nodes = forms_in(store, root_spec_of(store, root_ident), root_ident)
    for node in nodes:
        if not is_initialized(node.entity):
            raise NotInitializedError(node.ident)
    return nodes


# ==================== TREE MAP / FOLD ====================

def update_forms(store: Store, root_ident: Ident, form_update_fn: Callable[[FormNode], Entity]) -> Store:
    """Apply form_update_fn to every form in the tree and return the new store.

    form_update_fn receives a FormNode and returns the new entity for its ident.
    """
    nodes = resolved_forms(store, root_ident)
    new_store = dict(store)
    for node in nodes:
        new_store[node.ident] = form_update_fn(node)
    return new_store


def reduce_forms(store: Store, root_ident: Ident, form_fn: Callable[[T, FormNode], T], starting_value: T) -> T:
    """Fold form_fn over every form in the tree.

    form_fn(accumulator, node) returns the new accumulator; the first call gets
    starting_value.
    """
    acc = starting_value
    for node in resolved_forms(store, root_ident):
        acc = form_fn(acc, node)
    return acc
