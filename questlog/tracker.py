"""Exploration tracking for the node currently on screen.

The tracker turns scroll, resize and expand/collapse events into explored
percentages and topic discoveries. Bursts of events are coalesced so at most
one recompute runs per frame. Regressions (scrolling back up) need no special
handling here: the store keeps a high-water mark.
"""

import functools
import logging
from collections.abc import Callable
from typing import Any

from questlog.discovery import DiscoveryEngine
from questlog.geometry import (
    calculate_exploration_percent,
    calculate_section_visibility,
    is_link_visible,
    seen_ratio,
)
from questlog.metadata import ContentMetadata
from questlog.models import Section, Viewport
from questlog.scanner import ContentScanner
from questlog.scheduler import DEFAULT_FRAME_INTERVAL, Clock, FrameScheduler, Handle
from questlog.store import ProgressStore

logger = logging.getLogger(__name__)


class ExplorationTracker:
    """Tracks exploration of one node's content body."""

    def __init__(
        self,
        node_id: str,
        store: ProgressStore,
        discovery: DiscoveryEngine,
        scanner: ContentScanner,
        container: Any,
        clock: Clock,
        metadata: ContentMetadata | None = None,
        settle_delay: float = 0.1,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        link_threshold: float = 0.5,
        index_node_id: str | None = None,
    ) -> None:
        self.node_id = node_id
        self.store = store
        self.discovery = discovery
        self.scanner = scanner
        self.container = container
        self.clock = clock
        self.metadata = metadata
        self.settle_delay = settle_delay
        self.frame_interval = frame_interval
        self.link_threshold = link_threshold
        self.index_node_id = index_node_id

        self.viewport = Viewport()
        self.sections: list[Section] = []
        self._mounted = False
        # Bumped on every mount/unmount; scheduled work carries the value it saw.
        self._generation = 0
        self._scheduler: FrameScheduler | None = None
        self._settle_handle: Handle | None = None
        self._unwatch: Callable[[], None] | None = None

    @property
    def mounted(self) -> bool:
        return self._mounted

    @property
    def tracks_links(self) -> bool:
        # Links on the index page are a shortcut, not a discovery.
        return self.node_id != self.index_node_id

    def mount(self, viewport: Viewport | None = None) -> None:
        """Start tracking: visit the node, compute now and once more after layout settles."""
        if self._mounted:
            return
        if viewport is not None:
            self.viewport = viewport
        self._mounted = True
        self._generation += 1
        generation = self._generation

        self.store.mark_visited(self.node_id)
        self._scheduler = FrameScheduler(
            self.clock,
            functools.partial(self._run_if_current, generation),
            self.frame_interval,
        )
        self._unwatch = self.scanner.watch(self.container, self._request)
        logger.debug("Tracking %s", self.node_id)

        self.recompute()
        self._settle_handle = self.clock.call_later(
            self.settle_delay, self._run_if_current, generation,
        )

    def unmount(self) -> None:
        """Stop tracking and discard any scheduled work."""
        if not self._mounted:
            return
        self._mounted = False
        self._generation += 1
        if self._scheduler is not None:
            self._scheduler.cancel()
            self._scheduler = None
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None
        if self._unwatch is not None:
            self._unwatch()
            self._unwatch = None
        logger.debug("Stopped tracking %s", self.node_id)

    def switch_node(self, node_id: str, container: Any, viewport: Viewport | None = None) -> None:
        """Move tracking to another node and its content."""
        self.unmount()
        self.node_id = node_id
        self.container = container
        self.sections = []
        self.mount(viewport if viewport is not None else Viewport(height=self.viewport.height))

    # --- Events ---

    def on_scroll(self, viewport: Viewport) -> None:
        self.viewport = viewport
        self._request()

    def on_resize(self, viewport: Viewport) -> None:
        self.viewport = viewport
        self._request()

    def on_toggle(self) -> None:
        self._request()

    def _request(self) -> None:
        if self._mounted and self._scheduler is not None:
            self._scheduler.request_recompute()

    def _run_if_current(self, generation: int) -> None:
        if not self._mounted or generation != self._generation:
            logger.debug("Discarding stale recompute for %s", self.node_id)
            return
        self.recompute()

    # --- Computation ---

    def recompute(self) -> int:
        """Scan, measure, and record progress. Returns the computed percent."""
        sections = self.scanner.scan(self.container)
        self.sections = sections
        if not sections:
            # Content not rendered yet; nothing to measure.
            return 0

        bottom = self.viewport.bottom
        total_height = 0.0
        seen_height = 0.0
        for section in sections:
            if not section.countable:
                section.seen_ratio = 0.0
                continue
            section.seen_ratio = seen_ratio(section, bottom)
            total_height += section.height_px
            seen_height += calculate_section_visibility(
                section.top_px, section.height_px, bottom,
            )

        percent = calculate_exploration_percent(total_height, seen_height)
        self.store.update_explored_percent(self.node_id, percent)

        if self.tracks_links:
            self._discover_visible_links()
        return percent

    def _discover_visible_links(self) -> int:
        found = 0
        for link in self.scanner.links(self.container):
            if self.metadata is not None and link.node_id not in self.metadata:
                continue
            if self.discovery.is_topic_discovered(link.node_id):
                continue
            if not is_link_visible(link, self.viewport, self.link_threshold):
                continue
            if self.discovery.mark_topic_discovered(
                link.node_id, source_ref=link, current_page_id=self.node_id,
            ):
                found += 1
        return found
