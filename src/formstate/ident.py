"""
Identity types for the normalized entity store.

An Ident names one entity as a (table, key) pair. The store is a plain dict
from Ident to entity dict; relation values inside entities are an Ident
(to-one) or a list/tuple of Idents (to-many).

Design Philosophy:
- Immutable identity (frozen dataclasses)
- UUID-based temporary ids for entities not yet persisted
- Store values are never mutated in place; helpers return new dicts
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional
import uuid

Entity = Dict[str, Any]


@dataclass(frozen=True)
class TempId:
    """Temporary identity for an entity that has not been persisted yet."""
    id: str

    @classmethod
    def create(cls) -> 'TempId':
        """Create a new temporary id with an auto-generated UUID."""
        return cls(id=str(uuid.uuid4()))

    def __str__(self) -> str:
        return f"tempid:{self.id}"


def tempid() -> TempId:
    """Generate a fresh temporary id."""
    return TempId.create()


def is_tempid(value: Any) -> bool:
    return isinstance(value, TempId)


@dataclass(frozen=True)
class Ident:
    """(table, key) pair uniquely naming one entity in the store."""
    table: str
    key: Any

    def __iter__(self) -> Iterator[Any]:
        return iter((self.table, self.key))

    @classmethod
    def of(cls, value: Any) -> 'Ident':
        """Coerce an Ident or a (table, key) pair into an Ident."""
        if isinstance(value, Ident):
            return value
        if isinstance(value, (tuple, list)) and len(value) == 2 and isinstance(value[0], str):
            return cls(table=value[0], key=value[1])
        raise TypeError(f"Cannot build an Ident from {value!r}")

    @property
    def is_temporary(self) -> bool:
        return is_tempid(self.key)

    def to_list(self) -> List[Any]:
        """Export to a JSON-compatible [table, key] pair."""
        key = str(self.key) if is_tempid(self.key) else self.key
        return [self.table, key]


Store = Dict[Ident, Entity]


def is_ident(value: Any) -> bool:
    return isinstance(value, Ident)


def is_ident_list(value: Any) -> bool:
    """True for a to-many relation value: a list/tuple whose members are all Idents."""
    return isinstance(value, (list, tuple)) and all(is_ident(v) for v in value)


def get_entity(store: Store, ident: Ident) -> Optional[Entity]:
    return store.get(ident)


def assoc_entity(store: Store, ident: Ident, entity: Entity) -> Store:
    """Return a new store with entity placed under ident."""
    new_store = dict(store)
    new_store[ident] = entity
    return new_store
