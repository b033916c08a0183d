# ternary_cache/tree/node.py
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union, TYPE_CHECKING
from pydantic import BaseModel
from ternary_cache.cache.adapter import CacheAdapter

if TYPE_CHECKING:
    from ternary_cache.tree.arena import NodeArena

CACHE_KEY_FORMAT = "TernaryNode|id|{node_id}"

def format_key(node_id: int) -> str:
    """Cache key a node is stored under."""
    return CACHE_KEY_FORMAT.format(node_id=node_id)

class Edge(str, Enum):
    LOWER = "lower"
    CONTINUATION = "continuation"
    HIGHER = "higher"

@dataclass(frozen=True)
class Loaded:
    """Child held in memory at this arena index."""
    index: int

@dataclass(frozen=True)
class Unloaded:
    """Child persisted in the cache under this node id, not fetched yet."""
    node_id: int

Slot = Optional[Union[Loaded, Unloaded]]

class NodeRecord(BaseModel):
    """Cache form of a node: children are stored as node ids, never nested."""
    node_id: int
    character: str
    terminal: bool = False
    value: Any = None
    lower: Optional[int] = None
    continuation: Optional[int] = None
    higher: Optional[int] = None

@dataclass(eq=False)
class Node:
    """One character of one or more keys, with three child slots."""
    character: str
    node_id: int
    value: Any = None
    terminal: bool = False
    lower: Slot = None
    continuation: Slot = None
    higher: Slot = None

    def slot(self, edge: Edge) -> Slot:
        return getattr(self, edge.value)

    def set_slot(self, edge: Edge, slot: Slot) -> None:
        setattr(self, edge.value, slot)

    def has_lower(self) -> bool:
        return self.lower is not None

    def has_continuation(self) -> bool:
        return self.continuation is not None

    def has_higher(self) -> bool:
        return self.higher is not None

    def set_value(self, value: Any) -> None:
        self.value = value
        self.terminal = True

@dataclass(eq=False)
class LazyNode(Node):
    """Node persisted in the cache, one entry per node.

    Its slots may hold ``Unloaded`` ids; the owning arena swaps them for
    ``Loaded`` indices the first time they are followed.
    """

    @property
    def cache_key(self) -> str:
        return format_key(self.node_id)

    @classmethod
    def from_record(cls, record: NodeRecord) -> "LazyNode":
        def unloaded(node_id: Optional[int]) -> Slot:
            return None if node_id is None else Unloaded(node_id)

        return cls(
            character=record.character,
            node_id=record.node_id,
            value=record.value,
            terminal=record.terminal,
            lower=unloaded(record.lower),
            continuation=unloaded(record.continuation),
            higher=unloaded(record.higher),
        )

    def save(self, arena: "NodeArena") -> bool:
        payload = arena.record(self).model_dump_json()
        return arena.cache.set(self.cache_key, payload)

    def delete(self, cache: CacheAdapter) -> bool:
        return cache.delete(self.cache_key)
