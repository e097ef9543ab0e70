"""Tests for the progress store and its persistence."""

import json
from unittest.mock import MagicMock

import pytest

from questlog.models import ProgressState
from questlog.storage import MemoryStorage, StorageUnavailable
from questlog.store import DEFAULT_STORAGE_KEY, ProgressStore, clamp_percent


class TestGetNodeProgress:
    def test_default_for_unknown_node(self, store):
        progress = store.get_node_progress("unknown-node")
        assert progress.explored_percent == 0
        assert progress.discovered_topics_on_page == []
        assert progress.visited_at is None

    def test_returns_stored_progress(self, store):
        store.update_explored_percent("test-node", 50)
        assert store.get_node_progress("test-node").explored_percent == 50

    def test_returns_a_copy(self, store):
        store.update_explored_percent("test-node", 50)
        progress = store.get_node_progress("test-node")
        progress.explored_percent = 5
        progress.discovered_topics_on_page.append("sneaky")
        fresh = store.get_node_progress("test-node")
        assert fresh.explored_percent == 50
        assert fresh.discovered_topics_on_page == []

    def test_read_does_not_create_record(self, store):
        store.get_node_progress("ghost")
        assert "ghost" not in store.state.nodes


class TestUpdateExploredPercent:
    def test_updates(self, store):
        store.update_explored_percent("topic-1", 50)
        assert store.get_node_progress("topic-1").explored_percent == 50

    def test_high_water_mark(self, store):
        store.update_explored_percent("topic-1", 75)
        store.update_explored_percent("topic-1", 50)
        assert store.get_node_progress("topic-1").explored_percent == 75

    @pytest.mark.parametrize("first,second", [(30, 80), (80, 30), (150, 20), (-5, 40)])
    def test_order_independent(self, store, first, second):
        store.update_explored_percent("n", first)
        store.update_explored_percent("n", second)
        expected = max(clamp_percent(first), clamp_percent(second))
        assert store.get_node_progress("n").explored_percent == expected

    def test_half_rounds_up(self, store):
        store.update_explored_percent("topic-1", 99.5)
        assert store.get_node_progress("topic-1").explored_percent == 100
        store.update_explored_percent("topic-2", 99.4)
        assert store.get_node_progress("topic-2").explored_percent == 99

    def test_caps_at_100(self, store):
        store.update_explored_percent("topic-1", 150)
        assert store.get_node_progress("topic-1").explored_percent == 100

    def test_negative_is_zero(self, store):
        store.update_explored_percent("topic-1", -20)
        assert store.get_node_progress("topic-1").explored_percent == 0

    def test_no_write_when_unchanged(self):
        storage = MagicMock(spec=MemoryStorage)
        storage.get.return_value = None
        store = ProgressStore(storage)
        store.init()
        store.update_explored_percent("n", 60)
        store.update_explored_percent("n", 40)
        store.update_explored_percent("n", 60)
        assert storage.set.call_count == 1

    def test_does_not_discover(self, store):
        store.update_explored_percent("n", 60)
        assert not store.is_topic_discovered("n")


class TestMarkVisited:
    def test_sets_visited_at(self, store):
        store.mark_visited("topic-1")
        assert store.get_node_progress("topic-1").visited_at is not None

    def test_also_discovers(self, store):
        store.mark_visited("topic-1")
        assert store.is_topic_discovered("topic-1")
        assert store.get_node_progress("topic-1").discovered_at is not None

    def test_idempotent(self, store):
        store.mark_visited("topic-1")
        first = store.get_node_progress("topic-1")
        store.mark_visited("topic-1")
        second = store.get_node_progress("topic-1")
        assert first.visited_at == second.visited_at
        assert store.state.all_discovered_topics == ["topic-1"]

    def test_keeps_existing_discovered_at(self, store):
        store.record_discovery("topic-1")
        discovered_at = store.get_node_progress("topic-1").discovered_at
        store.mark_visited("topic-1")
        assert store.get_node_progress("topic-1").discovered_at == discovered_at


class TestMarkQuestComplete:
    def test_sets_percent_and_completed_at(self, store):
        store.mark_quest_complete("topic-1")
        progress = store.get_node_progress("topic-1")
        assert progress.explored_percent == 100
        assert progress.completed_at is not None

    def test_marks_discovered_and_visited(self, store):
        store.mark_quest_complete("topic-1")
        assert store.is_topic_discovered("topic-1")
        assert store.get_node_progress("topic-1").visited_at is not None

    def test_credits_linked_topics(self, store):
        store.mark_quest_complete("topic-1", ["topic-2", "topic-3", "topic-1"])
        progress = store.get_node_progress("topic-1")
        assert progress.discovered_topics_on_page == ["topic-2", "topic-3"]
        # Crediting a page does not discover the topics globally.
        assert not store.is_topic_discovered("topic-2")


class TestRecordDiscovery:
    def test_new_then_repeat(self, store):
        assert store.record_discovery("topic-1") is True
        assert store.record_discovery("topic-1") is False

    def test_credits_page(self, store):
        store.record_discovery("topic-2", current_page_id="topic-1")
        assert store.get_node_progress("topic-1").discovered_topics_on_page == ["topic-2"]

    def test_self_page_not_credited(self, store):
        store.record_discovery("topic-1", current_page_id="topic-1")
        assert store.get_node_progress("topic-1").discovered_topics_on_page == []


class TestReset:
    def test_reset_node(self, store):
        store.mark_visited("topic-1")
        store.update_explored_percent("topic-1", 75)
        store.record_discovery("topic-2")

        store.reset_node_progress("topic-1")

        assert not store.is_topic_discovered("topic-1")
        assert store.get_node_progress("topic-1").explored_percent == 0
        assert "topic-1" not in store.state.nodes
        assert store.is_topic_discovered("topic-2")

    def test_reset_all(self, store):
        store.mark_visited("topic-1")
        store.record_discovery("topic-2")
        store.reset_all_progress()
        assert store.state == ProgressState()


class TestStats:
    def test_counts(self, store):
        store.record_discovery("a")
        store.mark_visited("b")
        store.mark_quest_complete("c")
        stats = store.progress_stats()
        assert stats.discovered == 3
        assert stats.visited == 2
        assert stats.complete == 1


class TestListeners:
    def test_notified_with_copy(self, store):
        seen = []
        store.subscribe(seen.append)
        store.mark_visited("n")
        assert len(seen) == 1
        assert seen[0].nodes["n"].visited_at is not None
        seen[0].nodes.clear()
        assert "n" in store.state.nodes

    def test_unsubscribe(self, store):
        seen = []
        unsubscribe = store.subscribe(seen.append)
        unsubscribe()
        store.mark_visited("n")
        assert seen == []

    def test_failing_listener_does_not_block_others(self, store):
        seen = []
        store.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        store.subscribe(seen.append)
        store.mark_visited("n")
        assert len(seen) == 1

    def test_no_notification_without_change(self, store):
        store.mark_visited("n")
        seen = []
        store.subscribe(seen.append)
        store.mark_visited("n")
        assert seen == []


class TestPersistence:
    def test_writes_camel_case_blob(self, tmp_storage):
        store = ProgressStore(tmp_storage)
        store.init()
        store.record_discovery("topic-2", current_page_id="topic-1")

        data = json.loads(tmp_storage.get(DEFAULT_STORAGE_KEY))
        assert data["allDiscoveredTopics"] == ["topic-2"]
        assert data["nodes"]["topic-1"]["discoveredTopicsOnPage"] == ["topic-2"]
        assert data["nodes"]["topic-1"]["exploredPercent"] == 0

    def test_survives_reload(self, tmp_storage):
        store = ProgressStore(tmp_storage)
        store.init()
        store.mark_visited("topic-1")
        store.update_explored_percent("topic-1", 40)

        reloaded = ProgressStore(tmp_storage)
        reloaded.init()
        assert reloaded.is_topic_discovered("topic-1")
        assert reloaded.get_node_progress("topic-1").explored_percent == 40

    def test_reset_all_erases_storage(self, tmp_storage):
        store = ProgressStore(tmp_storage)
        store.init()
        store.record_discovery("topic-1")
        store.reset_all_progress()
        assert tmp_storage.get(DEFAULT_STORAGE_KEY) is None

    def test_versioned_key(self, tmp_storage):
        old = ProgressStore(tmp_storage, key="questlog-progress-v3")
        old.init()
        old.record_discovery("topic-1")

        current = ProgressStore(tmp_storage)
        current.init()
        assert not current.is_topic_discovered("topic-1")

    @pytest.mark.parametrize("blob", [
        "{not json",
        "[1, 2]",
        "null",
        '{"nodes": {"a": {"exploredPercent": "lots"}}}',
        '{"nodes": {"a": {"exploredPercent": 250}}}',
        '{"nodes": {"b": {"exploredPercent": -40}}}',
        '{"allDiscoveredTopics": ["a", "a"]}',
        '{"nodes": {"a": {"discoveredTopicsOnPage": ["b", "b"]}}}',
    ])
    def test_malformed_blob_is_empty_state(self, blob):
        storage = MemoryStorage()
        storage.set(DEFAULT_STORAGE_KEY, blob)
        store = ProgressStore(storage)
        store.init()
        assert store.state == ProgressState()

    def test_valid_blob_still_loads(self):
        storage = MemoryStorage()
        storage.set(DEFAULT_STORAGE_KEY, json.dumps({
            "nodes": {"a": {"exploredPercent": 100, "discoveredTopicsOnPage": ["b"]}},
            "allDiscoveredTopics": ["a", "b"],
        }))
        store = ProgressStore(storage)
        store.init()
        assert store.get_node_progress("a").explored_percent == 100
        assert store.progress_stats().discovered == 2

    def test_unavailable_storage_stays_in_memory(self):
        storage = MagicMock(spec=MemoryStorage)
        storage.get.side_effect = StorageUnavailable("disabled")
        storage.set.side_effect = StorageUnavailable("quota exceeded")
        storage.delete.side_effect = StorageUnavailable("disabled")
        store = ProgressStore(storage)
        store.init()

        store.mark_visited("topic-1")
        store.update_explored_percent("topic-1", 100)
        assert store.get_node_progress("topic-1").explored_percent == 100
        assert storage.set.call_count == 2

        store.reset_all_progress()
        assert store.state == ProgressState()

    def test_reset_keeps_storage(self, tmp_storage):
        store = ProgressStore(tmp_storage)
        store.init()
        store.record_discovery("topic-1")
        store.reset()
        assert not store.is_topic_discovered("topic-1")
        store.init()
        assert store.is_topic_discovered("topic-1")
