"""
Tests for persisting trees into a cache and reading them back lazily
"""

import pytest

from ternary_cache.cache.adapter import JsonFileCache
from ternary_cache.tree.errors import KeyNotFoundError, TreeCorruptError
from ternary_cache.tree.node import format_key
from ternary_cache.tree.tree import TernaryTree, TraversalOrder
from ternary_cache.utils.files import write_json


def published(key_values, cache):
    tree = TernaryTree(caching=True, cache=cache)
    assert tree.build(key_values)
    return tree


class TestPersistence:
    def test_one_entry_per_node(self, scenario, cache):
        tree = published(scenario, cache)
        assert len(cache) == tree.node_count == 8
        assert TernaryTree.ROOT_NODE_KEY == "TernaryNode|id|0"
        assert TernaryTree.ROOT_NODE_KEY in cache

    def test_reload_gives_identical_results(self, words, cache):
        tree = published(words, cache)
        cached = TernaryTree.get_cached_tree(cache)
        prefixes = {""} | {key[:i] for key in words for i in range(1, len(key) + 1)} | {"zzz", "q"}
        for prefix in prefixes:
            assert cached.prefix_search(prefix) == tree.prefix_search(prefix), prefix

    def test_reload_traversal_visits_every_node(self, words, cache):
        tree = published(words, cache)
        cached = TernaryTree.get_cached_tree(cache)
        visited = []
        cached.traverse_tree(TraversalOrder.POST_ORDER, visited.append)
        assert len(visited) == tree.node_count
        assert cached.height() == tree.height()

    def test_loading_is_lazy(self, scenario, cache):
        published(scenario, cache)
        cache.reads.clear()
        cached = TernaryTree.get_cached_tree(cache)
        assert cache.reads == [format_key(0)]

        assert cached.prefix_search("d") == {"dog": 4}
        assert format_key(1) not in cache.reads
        assert format_key(3) not in cache.reads

    def test_nodes_fetched_once(self, scenario, cache):
        published(scenario, cache)
        cached = TernaryTree.get_cached_tree(cache)
        cached.prefix_search("ca")
        cache.reads.clear()
        assert cached.prefix_search("car") == {"car": 2, "cart": 3}
        assert cache.reads == []

    def test_nothing_cached(self, cache):
        assert TernaryTree.get_cached_tree(cache) is None
        tree = TernaryTree(cache=cache)
        assert tree.load_from_cache() is False
        assert tree.prefix_search("") == {}

    def test_survives_new_cache_instance(self, scenario, tmp_path):
        path = tmp_path / "cache.json"
        published(scenario, JsonFileCache(path))
        cached = TernaryTree.get_cached_tree(JsonFileCache(path))
        assert cached.prefix_search("ca") == {"cat": 1, "car": 2, "cart": 3}


class TestReadOnly:
    def test_cached_tree_is_read_only(self, scenario, cache):
        published(scenario, cache)
        snapshot = dict(cache.data)
        cached = TernaryTree.get_cached_tree(cache)
        assert cached.read_only
        assert cached.insert("cab", 5) is False
        assert cached.build({"x": 1}) is False
        assert cache.data == snapshot
        assert cached.prefix_search("cab") is None

    def test_loaded_tree_does_not_overwrite_published_nodes(self, scenario, cache):
        published(scenario, cache)
        snapshot = dict(cache.data)
        tree = TernaryTree(caching=True, cache=cache)
        assert tree.load_from_cache()
        assert tree.read_only
        assert tree.insert("zebra", 9) is False
        assert cache.data == snapshot
        assert TernaryTree.get_cached_tree(cache).prefix_search("car") == {"car": 2, "cart": 3}


class TestCorruption:
    def test_evicted_node_raises_tree_corrupt(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(3))
        cached = TernaryTree.get_cached_tree(cache)
        with pytest.raises(TreeCorruptError) as exc:
            cached.prefix_search("car")
        assert isinstance(exc.value.__cause__, KeyNotFoundError)

    def test_unaffected_branches_still_answer(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(3))
        cached = TernaryTree.get_cached_tree(cache)
        assert cached.prefix_search("d") == {"dog": 4}
        assert cached.prefix_search("cat") == {"cat": 1}

    def test_collection_below_match_raises(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(4))
        cached = TernaryTree.get_cached_tree(cache)
        with pytest.raises(TreeCorruptError):
            cached.prefix_search("ca")

    def test_get_raises_tree_corrupt(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(3))
        with pytest.raises(TreeCorruptError):
            TernaryTree.get_cached_tree(cache).get("cart")

    def test_traverse_raises_key_not_found(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(6))
        cached = TernaryTree.get_cached_tree(cache)
        with pytest.raises(KeyNotFoundError):
            cached.traverse_tree(TraversalOrder.POST_ORDER, lambda node: None)

    def test_corrupt_tree_can_be_rebuilt(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(3))
        published(scenario, cache)
        cached = TernaryTree.get_cached_tree(cache)
        assert cached.prefix_search("car") == {"car": 2, "cart": 3}


class TestEviction:
    def test_delete_cached_tree(self, scenario, cache):
        published(scenario, cache)
        assert TernaryTree.delete_cached_tree(cache) == 8
        assert len(cache) == 0
        assert TernaryTree.get_cached_tree(cache) is None

    def test_delete_when_nothing_cached(self, cache):
        assert TernaryTree.delete_cached_tree(cache) == 0

    def test_delete_skips_missing_subtrees(self, scenario, cache):
        published(scenario, cache)
        cache.delete(format_key(3))
        # node 4 hangs below the missing node and cannot be reached
        assert TernaryTree.delete_cached_tree(cache) == 6
        assert TernaryTree.ROOT_NODE_KEY not in cache

    def test_build_replaces_previous_generation(self, scenario, cache):
        published(scenario, cache)
        tree = published({"x": 1}, cache)
        assert len(cache) == tree.node_count == 1
        assert TernaryTree.get_cached_tree(cache).prefix_search("") == {"x": 1}


class TestInsertAfterBuild:
    def test_insert_is_persisted(self, scenario, cache):
        tree = published(scenario, cache)
        assert tree.insert("cab", 5)
        assert tree.node_count == 9
        cached = TernaryTree.get_cached_tree(cache)
        assert cached.prefix_search("ca") == {"cab": 5, "car": 2, "cart": 3, "cat": 1}

    def test_value_update_is_persisted(self, scenario, cache):
        tree = published(scenario, cache)
        assert tree.insert("ca", 7)
        assert TernaryTree.get_cached_tree(cache).get("ca") == 7


class TestInsertWithoutBuild:
    def test_first_insert_replaces_cached_tree(self, scenario, cache):
        published(scenario, cache)
        tree = TernaryTree(caching=True, cache=cache)
        assert tree.insert("zebra", 9)
        assert len(cache) == tree.node_count == 5
        assert TernaryTree.get_cached_tree(cache).prefix_search("") == {"zebra": 9}

    def test_later_inserts_extend_the_tree(self, cache):
        tree = TernaryTree(caching=True, cache=cache)
        assert tree.insert("cat", 1)
        assert tree.insert("car", 2)
        assert len(cache) == tree.node_count == 4
        assert TernaryTree.get_cached_tree(cache).prefix_search("ca") == {"car": 2, "cat": 1}


class TestJsonBackend:
    @pytest.fixture
    def writes(self, monkeypatch):
        paths = []

        def counting_write(path, data):
            paths.append(path)
            write_json(path, data)

        monkeypatch.setattr("ternary_cache.cache.adapter.write_json", counting_write)
        return paths

    def test_build_writes_file_once(self, words, tmp_path, writes):
        path = tmp_path / "cache.json"
        published(words, JsonFileCache(path))
        assert len(writes) == 1
        assert TernaryTree.get_cached_tree(JsonFileCache(path)).prefix_search("zer") == {"zero": 23}

    def test_rebuild_and_delete_write_once_each(self, scenario, words, tmp_path, writes):
        path = tmp_path / "cache.json"
        published(words, JsonFileCache(path))
        published(scenario, JsonFileCache(path))
        assert len(writes) == 2
        assert len(JsonFileCache(path)) == 8

        assert TernaryTree.delete_cached_tree(JsonFileCache(path)) == 8
        assert len(writes) == 3
        assert len(JsonFileCache(path)) == 0

    def test_insert_writes_file_once(self, scenario, tmp_path, writes):
        cache = JsonFileCache(tmp_path / "cache.json")
        tree = published(scenario, cache)
        assert tree.insert("cab", 5)
        assert len(writes) == 2
