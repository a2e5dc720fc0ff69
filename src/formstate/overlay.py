"""
Form overlay: editable form state attached to an entity in the store.

build_form() adds a FormState under the reserved property (FormConfig.form_key)
of an entity. The entity keeps all of its real properties; the overlay holds
an independent working copy of each editable field plus its validity, so edits
never touch the entity until a commit.

Lifecycle:
- Created by build_form() / init_form()
- Field values changed by mutations (value only)
- Validity changed by validation (validity only)
- Copied into the entity by commit, copied back by reset
- Removed implicitly with the entity; there is no destructor

Every function here is pure: entities and stores are returned as new dicts,
never mutated in place.
"""

from collections import Counter
import copy
from dataclasses import dataclass, field, replace
from enum import Enum
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from formstate.config import form_key
from formstate.entity_spec import Join, spec_elements, spec_name, spec_query
from formstate.errors import FormConfigurationError, NotInitializedError
from formstate.fields import FieldDef, FieldKind, SubformLink
from formstate.ident import Entity, Ident, Store, is_ident, is_ident_list, tempid

logger = logging.getLogger(__name__)


class Validity(Enum):
    """Tri-state field validity."""
    UNCHECKED = "unchecked"
    VALID = "valid"
    INVALID = "invalid"


@dataclass(frozen=True)
class FieldState:
    """Working value and last validation result of one editable field."""
    value: Any
    validity: Validity = Validity.UNCHECKED


@dataclass(frozen=True)
class FormState:
    """Overlay stored on a form entity.

    Core Attributes:
    - ident: Ident of the entity carrying this overlay
    - elements_by_name: every declared element, subforms included
    - subform_links: the subform declarations, in declaration order
    - per_field: FieldState for each editable (non-subform) field
    - spec: the form spec that built the overlay
    """
    ident: Ident
    elements_by_name: Mapping[str, FieldDef]
    subform_links: Tuple[SubformLink, ...]
    per_field: Mapping[str, FieldState]
    spec: Any = field(default=None, compare=False)

    def with_field(self, name: str, **changes) -> 'FormState':
        """Return a copy with the named FieldState replaced."""
        per_field = dict(self.per_field)
        per_field[name] = replace(per_field[name], **changes)
        return replace(self, per_field=per_field)

    def to_dict(self) -> Dict[str, Any]:
        """Export to the JSON-compatible overlay layout."""
        return {
            'ident': self.ident.to_list(),
            'elementsByName': {name: el.to_dict() for name, el in self.elements_by_name.items()},
            'subformLinks': [link.name for link in self.subform_links],
            'perField': {
                name: {'value': fs.value, 'validity': fs.validity.value}
                for name, fs in self.per_field.items()
            },
        }


# ==================== SUBFORM LINKS ====================

def subform_targets(spec: Any) -> List[Tuple[SubformLink, Any]]:
    """Subform links of spec that form-wide operations follow, with their target spec.

    A link is followed only when the query joins its property with a plain
    join to the same spec the link targets, and that spec provides ident,
    query and form_elements. Every other declared link is reported as a
    warning and left out of traversal.
    """
    links = [el for el in spec_elements(spec) if el.is_subform]
    joins = {entry.key: entry for entry in spec_query(spec) if isinstance(entry, Join)}

    result: List[Tuple[SubformLink, Any]] = []
    for link in links:
        join = joins.get(link.name)
        if join is None:
            logger.warning(f"{spec_name(spec)}: subform '{link.name}' has no join in the query and will not be traversed")
            continue
        if join.is_union:
            logger.warning(
                f"{spec_name(spec)}: subforms cannot be on union joins ('{link.name}'). "
                f"Group such subforms manually."
            )
            continue
        if join.is_recursive:
            logger.warning(f"{spec_name(spec)}: recursive-query subforms are not supported ('{link.name}')")
            continue
        if not link.is_traversable:
            logger.warning(
                f"{spec_name(spec)}: declared subform for property '{link.name}' points at {link.target!r}, "
                f"which does not provide ident, query and form_elements"
            )
            continue
        if link.target is not join.target_spec:
            logger.warning(
                f"{spec_name(spec)}: subform '{link.name}' declares {spec_name(link.target)} but the query "
                f"joins {spec_name(join.target_spec)}; not traversed"
            )
            continue
        result.append((link, link.target))
    return result


# ==================== BUILDING ====================

def _initial_field_state(field_def: FieldDef, entity: Mapping[str, Any], known_key: Any = None) -> FieldState:
    if field_def.name in entity:
        value = copy.deepcopy(entity[field_def.name])
    elif field_def.is_identity:
        value = known_key if known_key is not None else tempid()
    else:
        value = copy.deepcopy(field_def.default_value)
    validity = Validity.VALID if field_def.is_identity else Validity.UNCHECKED
    return FieldState(value=value, validity=validity)


def build_form(spec: Any, entity: Mapping[str, Any], ident: Optional[Ident] = None) -> Entity:
    """Return a copy of entity with form state added.

    Fields the entity lacks are filled with the declared defaults (identity
    fields get a fresh temporary id). Subform links are recorded but their
    targets are NOT built; use init_form() for a whole graph.

    The store is not touched: the caller assigns the result under the
    entity's ident.

    Pass `ident` when the entity is already stored under a known ident: the
    overlay then carries that ident, and identity fields the entity lacks are
    seeded from its key instead of a temporary id.
    """
    elements = spec_elements(spec)
    subform_links = tuple(el for el in elements if el.is_subform)
    plain_fields = [el for el in elements if not el.is_subform]

    known_key = ident.key if ident is not None else None
    per_field = {fd.name: _initial_field_state(fd, entity, known_key) for fd in plain_fields}

    if ident is None or ident.key is None:
        # Ident sees seeded identity values so new entities get their tempid ident
        ident_props = dict(entity)
        for fd in plain_fields:
            if fd.is_identity:
                ident_props[fd.name] = per_field[fd.name].value
        ident = spec.ident(ident_props)

    state = FormState(
        ident=ident,
        elements_by_name={el.name: el for el in elements},
        subform_links=subform_links,
        per_field=per_field,
        spec=spec,
    )
    logger.debug(f"Built form overlay: spec={spec_name(spec)} ident={ident!r} fields={list(per_field)}")
    new_entity = dict(entity)
    new_entity[form_key()] = state
    return new_entity


def is_initialized(entity: Optional[Mapping[str, Any]]) -> bool:
    """True if the entity already carries a well-formed overlay."""
    return entity is not None and isinstance(entity.get(form_key()), FormState)


def init_form(store: Store, spec: Any, ident: Ident) -> Store:
    """Recursively initialize form state for ident and every reachable subform.

    - Never invents entities: idents missing from the store are skipped
    - Never re-initializes: existing overlays (and in-progress edits) are kept
    - Visits each relation target at most once per call, so cyclic or
      repeatedly-referenced graphs terminate
    - Targets whose key is None are skipped

    Returns the new store.
    """
    visited: Counter = Counter()
    visited[ident] += 1
    return _init_form(store, spec, ident, visited)


def _init_form(store: Store, spec: Any, ident: Ident, visited: Counter) -> Store:
    entity = store.get(ident)
    if entity is None:
        logger.debug(f"init_form: no entity at {ident!r}, skipping")
        return store

    if not is_initialized(entity):
        entity = build_form(spec, entity, ident)
        store = dict(store)
        store[ident] = entity

    for link, target in subform_targets(spec):
        for target_ident in _relation_idents(entity, link, ident):
            visited[target_ident] += 1
            if target_ident.key is None or visited[target_ident] != 1:
                continue
            store = _init_form(store, target, target_ident, visited)
    return store


def _relation_idents(entity: Mapping[str, Any], link: SubformLink, owner: Ident) -> List[Ident]:
    value = entity.get(link.name)
    if value is None:
        return []
    if is_ident(value):
        return [value]
    if is_ident_list(value):
        return list(value)
    logger.warning(
        f"Subform '{link.name}' on {owner!r} does not hold a relation "
        f"(expected an Ident or a list of Idents, got {value!r})"
    )
    return []


# ==================== READ ACCESS ====================

def form_state(entity: Optional[Mapping[str, Any]]) -> FormState:
    """Return the overlay of entity.

    Raises:
        NotInitializedError: entity is None or has no overlay.
    """
    if not is_initialized(entity):
        raise NotInitializedError()
    return entity[form_key()]


def form_ident(entity: Mapping[str, Any]) -> Ident:
    """Ident of the form's entity."""
    return form_state(entity).ident


def form_spec(entity: Mapping[str, Any]) -> Any:
    """The spec that built the form."""
    return form_state(entity).spec


def field_config(entity: Mapping[str, Any], name: str) -> Optional[FieldDef]:
    """Declaration of the named element, or None if not declared."""
    return form_state(entity).elements_by_name.get(name)


def field_type(entity: Mapping[str, Any], name: str) -> Optional[FieldKind]:
    config = field_config(entity, name)
    return config.kind if config is not None else None


def is_subform(entity: Mapping[str, Any], name: str) -> bool:
    config = field_config(entity, name)
    return config is not None and config.is_subform


def element_names(entity: Mapping[str, Any]) -> List[str]:
    """All declared element names, subforms included."""
    return list(form_state(entity).elements_by_name)


def editable_fields(entity: Mapping[str, Any]) -> List[str]:
    """Names of the fields that hold overlay values (every non-subform element)."""
    return list(form_state(entity).per_field)


def _field_state(entity: Mapping[str, Any], name: str) -> FieldState:
    state = form_state(entity)
    if name not in state.per_field:
        raise FormConfigurationError(f"Form {state.ident!r} has no editable field '{name}'")
    return state.per_field[name]


def current_value(entity: Mapping[str, Any], name: str) -> Any:
    """Current overlay value of a field."""
    return _field_state(entity, name).value


def current_validity(entity: Mapping[str, Any], name: str) -> Validity:
    """Last validation result of a field. Does not run validation."""
    return _field_state(entity, name).validity


def css_class(entity: Mapping[str, Any], name: str) -> Optional[str]:
    config = field_config(entity, name)
    return config.css_class if config is not None else None


def validator(entity: Mapping[str, Any], name: str) -> Optional[str]:
    """Name of the validator declared on a field."""
    config = field_config(entity, name)
    return config.validator if config is not None else None


def validator_args(entity: Mapping[str, Any], name: str) -> Dict[str, Any]:
    config = field_config(entity, name)
    return dict(config.validator_args) if config is not None else {}


def entity_value(entity: Mapping[str, Any], name: str) -> Any:
    """Real (committed) value of a field on the entity.

    A property the entity lacks reads as the field's declared default, which
    is what build_form() seeds the overlay with. A missing identity property
    reads as the key of the entity's ident, or None while that key is temporary.
    """
    if name in entity:
        return entity[name]
    config = field_config(entity, name)
    if config is None:
        return None
    if config.is_identity:
        ident = form_ident(entity)
        return None if ident.is_temporary else ident.key
    return config.default_value


# ==================== COPY-ON-WRITE UPDATES ====================

def with_field_value(entity: Mapping[str, Any], name: str, value: Any) -> Entity:
    """Return a copy of entity with a new overlay value for field `name`."""
    _field_state(entity, name)
    new_entity = dict(entity)
    new_entity[form_key()] = form_state(entity).with_field(name, value=value)
    return new_entity


def with_field_validity(entity: Mapping[str, Any], name: str, validity: Validity) -> Entity:
    """Return a copy of entity with a new validity for field `name`."""
    _field_state(entity, name)
    new_entity = dict(entity)
    new_entity[form_key()] = form_state(entity).with_field(name, validity=validity)
    return new_entity
