# ternary_cache/tree/tree.py
from collections.abc import Mapping
from contextlib import nullcontext
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple
from ternary_cache.cache.adapter import CacheAdapter
from ternary_cache.logging import get_logger, LogTemplates
from ternary_cache.tree.arena import NodeArena
from ternary_cache.tree.errors import KeyNotFoundError, TreeCorruptError
from ternary_cache.tree.node import Edge, LazyNode, Loaded, Node, Slot, Unloaded, format_key
from ternary_cache.utils.decorators import timing

logger = get_logger("tree")

class TraversalOrder(Enum):
    POST_ORDER = 1

_VISIT = 0
_EMIT = 1

class TernaryTree:
    """A ternary search tree mapping string keys to values.

    With ``caching`` enabled every node is a ``LazyNode`` persisted to the cache
    under its own key, so a tree can later be reopened from its root and
    materialized one node at a time.

    >>> tree = TernaryTree()
    >>> tree.build({"cat": 1, "car": 2, "cart": 3, "dog": 4})
    True
    >>> tree.prefix_search("car")
    {'car': 2, 'cart': 3}
    >>> tree.prefix_search("x") is None
    True
    """

    ROOT_NODE_KEY = format_key(0)

    def __init__(self, caching: bool = False, read_only: bool = False, cache: Optional[CacheAdapter] = None):
        self._arena = NodeArena(cache)
        self._root: Slot = None
        self._num_keys = 0  # not durable across a reload from cache
        self._num_nodes = 0
        self._caching = caching
        self._read_only = read_only
        self._building = False

    @property
    def caching(self) -> bool:
        return self._caching

    @property
    def read_only(self) -> bool:
        return self._read_only

    @property
    def key_count(self) -> int:
        return self._num_keys

    @property
    def node_count(self) -> int:
        return self._num_nodes

    @property
    def cache(self) -> CacheAdapter:
        return self._arena.cache

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @timing
    def build(self, key_values: Mapping) -> bool:
        """Insert every key of key_values, medians first, then publish if caching.

        Keys that are not strings are skipped. An existing cached tree is
        deleted before anything is written so generations never mix.
        """
        if not isinstance(key_values, Mapping):
            logger.warning(LogTemplates.KEY_REJECTED.format(key=key_values, reason="build input is not a mapping"))
            return False
        if self._read_only:
            logger.warning("Refusing to build a read-only tree")
            return False

        keys = []
        for key in key_values:
            if isinstance(key, str) and key:
                keys.append(key)
            else:
                logger.warning(LogTemplates.KEY_REJECTED.format(key=key, reason="not a non-empty string"))
        keys.sort()
        logger.info(LogTemplates.BUILD_START.format(count=len(keys), caching=self._caching))

        with self.cache.batch() if self._caching else nullcontext():
            if self._caching:
                self._evict_cached_tree()

            self._building = True
            try:
                self._build_balanced(keys, key_values)
            finally:
                self._building = False

            if self._caching:
                self.save_to_cache()
        logger.info(LogTemplates.BUILD_DONE.format(keys=self._num_keys, nodes=self._num_nodes))
        return True

    def _evict_cached_tree(self) -> None:
        if self.cache.get(self.ROOT_NODE_KEY) is not None:
            logger.info(LogTemplates.CACHE_EVICT.format(key=self.ROOT_NODE_KEY))
            TernaryTree.delete_cached_tree(self.cache)

    def _build_balanced(self, keys: List[str], key_values: Mapping) -> None:
        # ranges are (start, n); left half is processed before the right one
        stack: List[Tuple[int, int]] = [(0, len(keys))]
        while stack:
            start, n = stack.pop()
            if n < 1:
                continue
            mid = n >> 1
            key = keys[start + mid]
            self.insert(key, key_values[key])
            stack.append((start + mid + 1, n - mid - 1))
            stack.append((start, mid))

    def insert(self, key: str, value: Any) -> bool:
        """Insert one key/value pair. Returns False for bad keys or read-only trees."""
        if not isinstance(key, str) or not key:
            logger.warning(LogTemplates.KEY_REJECTED.format(key=key, reason="not a non-empty string"))
            return False
        if self._read_only:
            logger.warning(LogTemplates.KEY_REJECTED.format(key=key, reason="tree is read-only"))
            return False

        if not self._caching or self._building:
            self._insert_iterative(key, value)
        else:
            with self.cache.batch():
                # a first insert starts a new generation, like build does
                if self._root is None:
                    self._evict_cached_tree()
                for index in self._insert_iterative(key, value):
                    node = self._arena[index]
                    if isinstance(node, LazyNode):
                        node.save(self._arena)
        self._num_keys += 1
        return True

    def _insert_iterative(self, key: str, value: Any) -> Set[int]:
        touched: Set[int] = set()
        parent: Optional[int] = None
        edge = Edge.CONTINUATION
        pos = 0
        while pos < len(key):
            char = key[pos]
            index = self._child(parent, edge)
            if index is None:
                index = self._new_node(char)
                self._attach(parent, edge, index)
                touched.add(index)
                if parent is not None:
                    touched.add(parent)

            node = self._arena[index]
            if char < node.character:
                parent, edge = index, Edge.LOWER
            elif char > node.character:
                parent, edge = index, Edge.HIGHER
            else:
                pos += 1
                if pos == len(key):
                    node.set_value(value)
                    touched.add(index)
                parent, edge = index, Edge.CONTINUATION
        return touched

    def _new_node(self, char: str) -> int:
        node_cls = LazyNode if self._caching else Node
        loaded = self._arena.add(node_cls(character=char, node_id=self._num_nodes))
        self._num_nodes += 1
        return loaded.index

    def _attach(self, parent: Optional[int], edge: Edge, index: int) -> None:
        if parent is None:
            self._root = Loaded(index)
        else:
            self._arena.set_child(parent, edge, index)

    def _child(self, parent: Optional[int], edge: Edge) -> Optional[int]:
        """Arena index reached from parent via edge; parent None means the root."""
        if parent is not None:
            return self._arena.child(parent, edge)
        if isinstance(self._root, Unloaded):
            self._root = self._arena.resolve(self._root)
        return self._root.index if self._root is not None else None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def prefix_search(self, prefix: str) -> Optional[Dict[str, Any]]:
        """All keys starting with prefix, in sorted order, or None on a miss.

        Raises TreeCorruptError if a node needed to answer is gone from the cache.
        """
        if not isinstance(prefix, str):
            logger.warning(LogTemplates.KEY_REJECTED.format(key=prefix, reason="prefix is not a string"))
            return None
        try:
            if not prefix:
                root = self._child(None, Edge.CONTINUATION)
                return {} if root is None else self.as_dict(root, "", anchor=False)
            index = self._find(prefix)
            if index is None:
                return None
            return self.as_dict(index, prefix)
        except KeyNotFoundError as exc:
            logger.error(LogTemplates.ERROR.format(msg=f"Tree corrupt while searching {prefix!r}: {exc}"))
            raise TreeCorruptError("Tree corrupt.") from exc

    def get(self, key: str, default: Any = None) -> Any:
        """Value stored for exactly key, or default."""
        if not isinstance(key, str) or not key:
            return default
        try:
            index = self._find(key)
        except KeyNotFoundError as exc:
            logger.error(LogTemplates.ERROR.format(msg=f"Tree corrupt while looking up {key!r}: {exc}"))
            raise TreeCorruptError("Tree corrupt.") from exc
        if index is None or not self._arena[index].terminal:
            return default
        return self._arena[index].value

    def _find(self, key: str) -> Optional[int]:
        """Index of the node matching the last character of key."""
        parent: Optional[int] = None
        edge = Edge.CONTINUATION
        pos = 0
        while True:
            index = self._child(parent, edge)
            if index is None:
                return None
            char = key[pos]
            node = self._arena[index]
            if char < node.character:
                parent, edge = index, Edge.LOWER
            elif char > node.character:
                parent, edge = index, Edge.HIGHER
            else:
                pos += 1
                if pos == len(key):
                    return index
                parent, edge = index, Edge.CONTINUATION

    def as_dict(self, index: int, current_key: str, anchor: bool = True) -> Dict[str, Any]:
        """Collect completed keys below a node, rebuilding each key from its path.

        With anchor set, current_key already ends in the node's character and
        only the node itself and its continuation subtree are collected.
        Otherwise the node's lower and higher siblings are included too.
        """
        out: Dict[str, Any] = {}
        stack: List[Tuple[int, Any, Any]] = []
        if anchor:
            node = self._arena[index]
            if node.terminal:
                out[current_key] = node.value
            middle = self._arena.child(index, Edge.CONTINUATION)
            if middle is not None:
                stack.append((_VISIT, middle, current_key))
        else:
            stack.append((_VISIT, index, current_key))

        while stack:
            kind, item, base = stack.pop()
            if kind == _EMIT:
                out[item] = base
                continue
            node = self._arena[item]
            key = base + node.character
            # pushed in reverse so keys come out sorted
            higher = self._arena.child(item, Edge.HIGHER)
            if higher is not None:
                stack.append((_VISIT, higher, base))
            middle = self._arena.child(item, Edge.CONTINUATION)
            if middle is not None:
                stack.append((_VISIT, middle, key))
            if node.terminal:
                stack.append((_EMIT, key, node.value))
            lower = self._arena.child(item, Edge.LOWER)
            if lower is not None:
                stack.append((_VISIT, lower, base))
        return out

    def height(self) -> int:
        """Number of nodes on the longest path from the root."""
        root = self._child(None, Edge.CONTINUATION)
        if root is None:
            return 0
        deepest = 0
        stack = [(root, 1)]
        while stack:
            index, depth = stack.pop()
            deepest = max(deepest, depth)
            for edge in Edge:
                child = self._arena.child(index, edge)
                if child is not None:
                    stack.append((child, depth + 1))
        return deepest

    # ------------------------------------------------------------------
    # Traversal and persistence
    # ------------------------------------------------------------------

    def traverse_tree(
        self,
        order: TraversalOrder,
        visit: Callable[[Node], Any],
        skip_missing: bool = False,
    ) -> None:
        """Depth-first walk calling visit on every node.

        POST_ORDER visits lower, continuation and higher subtrees before the
        node itself. With skip_missing, subtrees whose cache entry is gone are
        skipped instead of raising KeyNotFoundError.
        """
        if order is not TraversalOrder.POST_ORDER:
            raise ValueError(f"Unsupported traversal order: {order}")

        root = self._resolve_child(None, Edge.CONTINUATION, skip_missing)
        if root is None:
            return
        stack: List[Tuple[int, bool]] = [(root, False)]
        while stack:
            index, expanded = stack.pop()
            if expanded:
                visit(self._arena[index])
                continue
            stack.append((index, True))
            for edge in (Edge.HIGHER, Edge.CONTINUATION, Edge.LOWER):
                child = self._resolve_child(index, edge, skip_missing)
                if child is not None:
                    stack.append((child, False))

    def _resolve_child(self, parent: Optional[int], edge: Edge, skip_missing: bool) -> Optional[int]:
        try:
            return self._child(parent, edge)
        except KeyNotFoundError as exc:
            if not skip_missing:
                raise
            logger.warning(f"Skipping missing subtree: {exc}")
            return None

    @timing
    def save_to_cache(self) -> bool:
        """Persist every node, one cache entry each."""
        if not self._caching:
            logger.warning("save_to_cache called on a tree without caching")
            return False
        with self.cache.batch():
            self.traverse_tree(TraversalOrder.POST_ORDER, lambda node: node.save(self._arena))
        return True

    def load_from_cache(self, cache_key: str = ROOT_NODE_KEY) -> bool:
        """Make the node stored under cache_key the root. False if it is absent.

        The loaded tree becomes read-only: new node ids would collide with the
        ids already published under the same cache.
        """
        loaded = self._arena.fetch(cache_key)
        if loaded is None:
            return False
        self._root = loaded
        self._read_only = True
        return True

    def delete_from_cache(self) -> int:
        """Delete the cache entry of every node; returns how many were removed."""
        deleted = 0

        def delete(node: Node) -> None:
            nonlocal deleted
            if isinstance(node, LazyNode) and node.delete(self.cache):
                deleted += 1

        with self.cache.batch():
            self.traverse_tree(TraversalOrder.POST_ORDER, delete, skip_missing=True)
        return deleted

    @staticmethod
    def get_cached_tree(cache: Optional[CacheAdapter] = None, root_key: str = ROOT_NODE_KEY) -> Optional["TernaryTree"]:
        """Read-only tree backed by the cache, or None if nothing is cached."""
        tree = TernaryTree(caching=False, read_only=True, cache=cache)
        return tree if tree.load_from_cache(root_key) else None

    @staticmethod
    def delete_cached_tree(cache: Optional[CacheAdapter] = None, root_key: str = ROOT_NODE_KEY) -> int:
        """Evict the whole cached tree; returns the number of entries removed."""
        tree = TernaryTree(caching=False, read_only=True, cache=cache)
        if not tree.load_from_cache(root_key):
            return 0
        return tree.delete_from_cache()
