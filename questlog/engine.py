"""Wiring: config -> storage -> store, discovery and metadata."""

import logging
from typing import Any

from questlog.config import Config
from questlog.discovery import DiscoveryEngine
from questlog.metadata import ContentMetadata, load_metadata
from questlog.models import QuestStatus
from questlog.quest_log import build_quest_log, cycle_status
from questlog.scanner import ContentScanner, LayoutScanner
from questlog.scheduler import Clock
from questlog.status import QUEST_STATUS_INFO, count_discovered_topics, get_quest_status
from questlog.storage import KeyValueStorage, MemoryStorage, SQLiteStorage, StorageUnavailable
from questlog.store import ProgressStore
from questlog.tracker import ExplorationTracker

logger = logging.getLogger(__name__)


def open_storage(config: Config) -> KeyValueStorage:
    """Open the configured backend, falling back to memory if it cannot be opened."""
    if config.storage.backend == "memory":
        return MemoryStorage()
    storage = SQLiteStorage(config.resolved_db_path)
    try:
        storage.init_db()
    except StorageUnavailable as e:
        logger.warning("Falling back to in-memory progress: %s", e)
        return MemoryStorage()
    return storage


class QuestEngine:
    """A store, its discovery engine and the content metadata, ready to use."""

    def __init__(
        self,
        config: Config,
        storage: KeyValueStorage | None = None,
        metadata: ContentMetadata | None = None,
    ) -> None:
        self.config = config
        self.storage = storage if storage is not None else open_storage(config)
        self.store = ProgressStore(self.storage, key=config.storage.key)
        self.store.init()
        self.discovery = DiscoveryEngine(self.store)
        self.metadata = metadata if metadata is not None else load_metadata(config)

    def close(self) -> None:
        self.storage.close()

    def require_node(self, node_id: str) -> None:
        if node_id not in self.metadata:
            raise ValueError(f"Unknown node: {node_id}")

    def status(self, node_id: str) -> QuestStatus:
        return get_quest_status(self.store, node_id, self.metadata.linked_topics(node_id))

    def describe(self, node_id: str) -> dict[str, Any]:
        """Progress and status for one known node."""
        self.require_node(node_id)
        progress = self.store.get_node_progress(node_id)
        linked = self.metadata.linked_topics(node_id)
        status = self.status(node_id)
        return {
            "id": node_id,
            "title": self.metadata.title(node_id),
            "status": status.value,
            "label": QUEST_STATUS_INFO[status].label,
            "explored_percent": progress.explored_percent,
            "topics_on_page": len(progress.discovered_topics_on_page),
            "topics_discovered": count_discovered_topics(self.store, linked),
            "topics_total": len(linked),
            "discovered_at": progress.discovered_at,
            "visited_at": progress.visited_at,
            "completed_at": progress.completed_at,
        }

    def quest_log(self) -> dict[str, Any]:
        return build_quest_log(
            self.store, self.metadata, self.config.content.category_order,
        ).model_dump(mode="json")

    def complete(self, node_id: str) -> dict[str, Any]:
        self.require_node(node_id)
        self.store.mark_quest_complete(node_id, self.metadata.linked_topics(node_id))
        return self.describe(node_id)

    def reset(self, node_id: str) -> dict[str, Any]:
        self.require_node(node_id)
        self.store.reset_node_progress(node_id)
        return self.describe(node_id)

    def cycle(self, node_id: str) -> dict[str, Any]:
        self.require_node(node_id)
        cycle_status(self.store, node_id, self.status(node_id), self.metadata.linked_topics(node_id))
        return self.describe(node_id)

    def tracker(
        self,
        node_id: str,
        container: Any,
        clock: Clock,
        scanner: ContentScanner | None = None,
    ) -> ExplorationTracker:
        tracker_config = self.config.tracker
        return ExplorationTracker(
            node_id,
            self.store,
            self.discovery,
            scanner if scanner is not None else LayoutScanner(),
            container,
            clock,
            metadata=self.metadata,
            settle_delay=tracker_config.settle_delay,
            frame_interval=tracker_config.frame_interval,
            link_threshold=tracker_config.link_visibility_threshold,
            index_node_id=tracker_config.index_node_id,
        )
