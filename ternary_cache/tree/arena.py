# ternary_cache/tree/arena.py
from typing import List, Optional
from pydantic import ValidationError
from ternary_cache.cache.adapter import CacheAdapter, get_cache
from ternary_cache.logging import get_logger, LogTemplates
from ternary_cache.tree.errors import KeyNotFoundError, TreeCorruptError
from ternary_cache.tree.node import Edge, LazyNode, Loaded, Node, NodeRecord, Slot, Unloaded, format_key

logger = get_logger("tree.arena")

class NodeArena:
    """Owns every in-memory node of one tree; slots address nodes by index.

    Unloaded slots are resolved here and nowhere else.
    """

    def __init__(self, cache: Optional[CacheAdapter] = None):
        self._nodes: List[Node] = []
        self._cache = cache

    @property
    def cache(self) -> CacheAdapter:
        if self._cache is None:
            self._cache = get_cache()
        return self._cache

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Node:
        return self._nodes[index]

    def add(self, node: Node) -> Loaded:
        self._nodes.append(node)
        return Loaded(len(self._nodes) - 1)

    def fetch(self, cache_key: str) -> Optional[Loaded]:
        """Load one node record from the cache into the arena, or None if absent."""
        raw = self.cache.get(cache_key)
        if raw is None:
            return None
        try:
            record = NodeRecord.model_validate_json(raw)
        except ValidationError as e:
            logger.error(LogTemplates.ERROR.format(msg=f"Malformed node record at {cache_key}: {e}"))
            raise TreeCorruptError(f"Malformed node record at {cache_key}") from e
        return self.add(LazyNode.from_record(record))

    def resolve(self, slot: Slot) -> Slot:
        """Turn an Unloaded slot into a Loaded one; other slots pass through."""
        if not isinstance(slot, Unloaded):
            return slot
        cache_key = format_key(slot.node_id)
        loaded = self.fetch(cache_key)
        if loaded is None:
            logger.error(LogTemplates.CACHE_MISS.format(key=cache_key))
            raise KeyNotFoundError(cache_key)
        return loaded

    def child(self, index: int, edge: Edge) -> Optional[int]:
        """Arena index of a child, fetching it on first access."""
        node = self._nodes[index]
        slot = node.slot(edge)
        if isinstance(slot, Unloaded):
            slot = self.resolve(slot)
            node.set_slot(edge, slot)
        return slot.index if slot is not None else None

    def set_child(self, index: int, edge: Edge, child: int) -> None:
        self._nodes[index].set_slot(edge, Loaded(child))

    def node_id(self, slot: Slot) -> Optional[int]:
        if slot is None:
            return None
        if isinstance(slot, Unloaded):
            return slot.node_id
        return self._nodes[slot.index].node_id

    def record(self, node: Node) -> NodeRecord:
        """Serializable form of node with every child replaced by its id."""
        return NodeRecord(
            node_id=node.node_id,
            character=node.character,
            terminal=node.terminal,
            value=node.value,
            lower=self.node_id(node.lower),
            continuation=self.node_id(node.continuation),
            higher=self.node_id(node.higher),
        )
