import os

os.environ.setdefault("TERNARY_LOG_TO_FILE", "false")
os.environ.setdefault("TERNARY_CACHE_BACKEND", "memory")

import pytest

from ternary_cache.cache.adapter import MemoryCache


class CountingCache(MemoryCache):
    """MemoryCache that remembers which keys were read."""

    def __init__(self):
        super().__init__()
        self.reads = []

    def get(self, key):
        self.reads.append(key)
        return super().get(key)


@pytest.fixture
def cache():
    return CountingCache()


@pytest.fixture
def scenario():
    return {"cat": 1, "car": 2, "cart": 3, "dog": 4}


@pytest.fixture
def words():
    return {
        word: index
        for index, word in enumerate(
            [
                "a", "ab", "abc", "abd", "able", "about", "above", "b", "ba", "bad",
                "badge", "bag", "banana", "band", "bandana", "can", "candle", "candy",
                "cane", "z", "zebra", "zeal", "zero", "zest", "über", "uber", "under",
            ],
            start=1,
        )
    }
