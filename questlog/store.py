"""Progress store: durable, observable per-node progress state.

The store is the only place a ``ProgressState`` is mutated. Every mutating
operation updates the in-memory state first, then writes the whole state
through to storage. Storage failures are logged and swallowed so the store
keeps working in-memory for the rest of the session.
"""

import json
import logging
import math
from collections.abc import Callable, Iterable
from datetime import datetime, timezone

from pydantic import ValidationError

from questlog.models import NodeProgress, ProgressState, ProgressStats
from questlog.storage import KeyValueStorage, StorageUnavailable

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "questlog-progress-v4"

StateListener = Callable[[ProgressState], None]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def clamp_percent(percent: float) -> int:
    """Clamp a raw percentage to an integer in [0, 100]."""
    return math.floor(min(100.0, max(0.0, float(percent))) + 0.5)


class ProgressStore:
    """Per-node progress records plus the global discovered-topic ledger."""

    def __init__(self, storage: KeyValueStorage, key: str = DEFAULT_STORAGE_KEY) -> None:
        self.storage = storage
        self.key = key
        self._state = ProgressState()
        self._listeners: list[StateListener] = []

    # --- Lifecycle ---

    def init(self) -> None:
        """Load persisted state. Absent or unreadable data yields an empty state."""
        self._state = self._load()
        logger.info(
            "Progress loaded: %d nodes, %d discovered topics",
            len(self._state.nodes),
            len(self._state.all_discovered_topics),
        )

    def reset(self) -> None:
        """Drop in-memory state without touching storage."""
        self._state = ProgressState()

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a copy of the state after every change."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def state(self) -> ProgressState:
        return self._state.model_copy(deep=True)

    # --- Reads ---

    def get_node_progress(self, node_id: str) -> NodeProgress:
        progress = self._state.nodes.get(node_id)
        if progress is None:
            return NodeProgress()
        return progress.model_copy(deep=True)

    def is_topic_discovered(self, node_id: str) -> bool:
        return node_id in self._state.all_discovered_topics

    def progress_stats(self) -> ProgressStats:
        stats = ProgressStats(discovered=len(self._state.all_discovered_topics))
        for progress in self._state.nodes.values():
            if progress.visited_at:
                stats.visited += 1
            if progress.explored_percent >= 100:
                stats.complete += 1
        return stats

    # --- Mutations ---

    def mark_visited(self, node_id: str) -> None:
        """Record the first navigation into a node. Also discovers it."""
        record = self._record(node_id)
        if record.visited_at:
            return
        self._discover(node_id, record)
        record.visited_at = _now()
        logger.debug("Visited %s", node_id)
        self._commit()

    def update_explored_percent(self, node_id: str, percent: float) -> None:
        """Raise the node's high-water mark; lower values are ignored."""
        current = self._state.nodes.get(node_id)
        current_percent = current.explored_percent if current else 0
        new_percent = max(current_percent, clamp_percent(percent))
        if new_percent == current_percent:
            return
        self._record(node_id).explored_percent = new_percent
        logger.debug("Explored %s: %d%% -> %d%%", node_id, current_percent, new_percent)
        self._commit()

    def mark_quest_complete(
        self,
        node_id: str,
        linked_topic_ids: Iterable[str] | None = None,
    ) -> None:
        """Force a node to read as complete.

        With ``linked_topic_ids`` the topics are attributed to the node's page,
        so the completion also holds for a resolver that checks linked topics.
        """
        record = self._record(node_id)
        self._discover(node_id, record)
        now = _now()
        if not record.visited_at:
            record.visited_at = now
        record.explored_percent = 100
        record.completed_at = now
        for topic_id in linked_topic_ids or ():
            if topic_id != node_id and topic_id not in record.discovered_topics_on_page:
                record.discovered_topics_on_page.append(topic_id)
        logger.info("Quest %s marked complete", node_id)
        self._commit()

    def record_discovery(self, node_id: str, current_page_id: str | None = None) -> bool:
        """Add ``node_id`` to the discovery ledger. Returns True if it was new.

        Repeat discoveries change nothing. On a first discovery made while
        ``current_page_id`` is the active page, the topic is credited to it.
        """
        if self.is_topic_discovered(node_id):
            return False
        self._discover(node_id, self._record(node_id))
        if current_page_id and current_page_id != node_id:
            page = self._record(current_page_id)
            if node_id not in page.discovered_topics_on_page:
                page.discovered_topics_on_page.append(node_id)
        logger.debug("Discovered %s (page=%s)", node_id, current_page_id)
        self._commit()
        return True

    def reset_node_progress(self, node_id: str) -> None:
        self._state.nodes.pop(node_id, None)
        self._state.all_discovered_topics = [
            t for t in self._state.all_discovered_topics if t != node_id
        ]
        logger.info("Progress reset for %s", node_id)
        self._commit()

    def reset_all_progress(self) -> None:
        """Clear every record and erase the persisted blob."""
        self._state = ProgressState()
        try:
            self.storage.delete(self.key)
        except StorageUnavailable as e:
            logger.warning("Could not erase stored progress: %s", e)
        logger.info("All progress reset")
        self._notify()

    # --- Internals ---

    def _record(self, node_id: str) -> NodeProgress:
        """Return the live record for ``node_id``, creating it lazily."""
        record = self._state.nodes.get(node_id)
        if record is None:
            record = NodeProgress()
            self._state.nodes[node_id] = record
        return record

    def _discover(self, node_id: str, record: NodeProgress) -> None:
        if node_id not in self._state.all_discovered_topics:
            self._state.all_discovered_topics.append(node_id)
        if not record.discovered_at:
            record.discovered_at = _now()

    def _commit(self) -> None:
        self._save()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:
                logger.exception("Progress listener failed")

    def _load(self) -> ProgressState:
        try:
            raw = self.storage.get(self.key)
        except StorageUnavailable as e:
            logger.warning("Stored progress unavailable: %s", e)
            return ProgressState()
        if not raw:
            return ProgressState()
        try:
            return ProgressState.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring malformed stored progress under %s: %s", self.key, e)
            return ProgressState()

    def _save(self) -> None:
        try:
            self.storage.set(self.key, self._state.model_dump_json(by_alias=True))
        except StorageUnavailable as e:
            logger.warning("Could not persist progress: %s", e)
