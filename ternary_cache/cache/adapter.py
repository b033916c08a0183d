# ternary_cache/cache/adapter.py
"""Key-value stores that tree nodes are persisted into.

Every adapter stores strings under string keys. ``delete`` of a missing key
is not an error.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional, Union
import redis
from ternary_cache.config import CONFIG
from ternary_cache.logging import get_logger, LogTemplates
from ternary_cache.utils.files import read_json, write_json

logger = get_logger("cache")

class CacheAdapter(ABC):
    """get/set/delete by string key against a shared store."""

    @abstractmethod
    def get(self, key: str) -> Optional[Union[str, bytes]]:
        """Return the stored payload, or None if absent."""

    @abstractmethod
    def set(self, key: str, value: str) -> bool:
        """Store value under key."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key. Returns False if nothing was stored."""

    def flush(self) -> None:
        """Push buffered writes to the store. Write-through adapters do nothing."""

    @contextmanager
    def batch(self) -> Iterator["CacheAdapter"]:
        """Group many writes; buffered adapters flush once when the outermost batch ends."""
        yield self

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

class MemoryCache(CacheAdapter):
    """In-process dict store."""

    def __init__(self):
        self.data: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> bool:
        self.data[key] = value
        return True

    def delete(self, key: str) -> bool:
        return self.data.pop(key, None) is not None

    def __len__(self) -> int:
        return len(self.data)

class JsonFileCache(MemoryCache):
    """Dict store mirrored to a JSON file.

    Outside a batch every write rewrites the file. Inside one, the file is
    written once when the outermost batch exits.
    """

    def __init__(self, path: Union[str, Path]):
        super().__init__()
        self.path = Path(path)
        self._depth = 0
        self._dirty = False
        if self.path.exists():
            self.data = read_json(self.path)

    def set(self, key: str, value: str) -> bool:
        super().set(key, value)
        self._changed()
        return True

    def delete(self, key: str) -> bool:
        existed = super().delete(key)
        if existed:
            self._changed()
        return existed

    def _changed(self) -> None:
        self._dirty = True
        if not self._depth:
            self.flush()

    def flush(self) -> None:
        if self._dirty:
            write_json(self.path, self.data)
            self._dirty = False

    @contextmanager
    def batch(self) -> Iterator["JsonFileCache"]:
        self._depth += 1
        try:
            yield self
        finally:
            self._depth -= 1
            if not self._depth:
                self.flush()

class RedisCache(CacheAdapter):
    """Store backed by a redis server."""

    def __init__(
        self,
        url: str = CONFIG.redis_url,
        ttl: Optional[int] = CONFIG.cache_ttl,
        client: Optional[redis.Redis] = None,
    ):
        self.client = client if client is not None else redis.Redis.from_url(url)
        self.ttl = ttl

    def get(self, key: str) -> Optional[str]:
        value = self.client.get(key)
        if isinstance(value, bytes):
            return value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> bool:
        return bool(self.client.set(key, value, ex=self.ttl))

    def delete(self, key: str) -> bool:
        return bool(self.client.delete(key))

_instance: Optional[CacheAdapter] = None

def create_cache(backend: str = CONFIG.cache_backend) -> CacheAdapter:
    """Build the adapter named by backend."""
    if backend == "memory":
        return MemoryCache()
    if backend == "json":
        return JsonFileCache(CONFIG.cache_file)
    if backend == "redis":
        return RedisCache(CONFIG.redis_url, CONFIG.cache_ttl)
    logger.error(LogTemplates.ERROR.format(msg=f"Unknown cache backend: {backend}"))
    raise ValueError(f"Unknown cache backend: {backend}")

def get_cache() -> CacheAdapter:
    """Return the process-wide adapter, creating it from CONFIG on first use."""
    global _instance
    if _instance is None:
        _instance = create_cache(CONFIG.cache_backend)
        logger.debug(f"Using {type(_instance).__name__} cache backend")
    return _instance

def set_cache(cache: Optional[CacheAdapter]) -> None:
    """Replace the process-wide adapter; None resets it to the configured one."""
    global _instance
    _instance = cache
