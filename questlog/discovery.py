"""Discovery engine — records topics whose links became visible."""

import logging
from collections.abc import Callable
from typing import Any

from questlog.store import ProgressStore

logger = logging.getLogger(__name__)

DiscoveryCallback = Callable[[str, Any], None]


class DiscoveryEngine:
    """Discover-once semantics on top of a ProgressStore.

    Listeners are told about new discoveries that came from a concrete
    source (a link element, a rendered anchor). They exist for presentation
    only; the store has already persisted the discovery when they run.
    """

    def __init__(self, store: ProgressStore) -> None:
        self.store = store
        self._callbacks: list[DiscoveryCallback] = []

    def subscribe(self, callback: DiscoveryCallback) -> Callable[[], None]:
        self._callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unsubscribe

    def is_topic_discovered(self, node_id: str) -> bool:
        return self.store.is_topic_discovered(node_id)

    def mark_topic_discovered(
        self,
        node_id: str,
        source_ref: Any = None,
        current_page_id: str | None = None,
    ) -> bool:
        """Mark a topic discovered. Returns True only for a new discovery."""
        was_new = self.store.record_discovery(node_id, current_page_id=current_page_id)
        if was_new and source_ref is not None:
            self._emit(node_id, source_ref)
        return was_new

    def _emit(self, node_id: str, source_ref: Any) -> None:
        for callback in list(self._callbacks):
            try:
                callback(node_id, source_ref)
            except Exception:
                logger.exception("Discovery listener failed for %s", node_id)
