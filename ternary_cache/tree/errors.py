# ternary_cache/tree/errors.py

class TernaryError(Exception):
    pass

class KeyNotFoundError(TernaryError):
    """A node the tree links to is missing from the cache, most likely evicted."""

    def __init__(self, cache_key: str):
        super().__init__(f"Key {cache_key} not found in cache backend. Tree should be rebuilt")
        self.cache_key = cache_key

class TreeCorruptError(TernaryError):
    """The persisted tree is structurally incomplete; rebuild it rather than retrying."""
