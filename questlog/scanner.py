"""Content scanners: turn a content body into trackable sections."""

import abc
import logging
from collections.abc import Callable
from typing import Any

from questlog.layout import Block, ContentContainer, Expandable
from questlog.models import Section, TopicLink

logger = logging.getLogger(__name__)


class ContentScanner(abc.ABC):
    """Base class for content scanners.

    Scans run on every recompute, so implementations must be cheap to call
    repeatedly.
    """

    @abc.abstractmethod
    def scan(self, container: Any) -> list[Section]:
        """Return the container's sections in document order."""
        ...

    @abc.abstractmethod
    def links(self, container: Any) -> list[TopicLink]:
        """Return internal topic links found in the container."""
        ...

    @abc.abstractmethod
    def watch(self, container: Any, on_change: Callable[[], None]) -> Callable[[], None]:
        """Call ``on_change`` when the container mutates. Returns an unsubscribe."""
        ...


class LayoutScanner(ContentScanner):
    """Scanner for a headless ContentContainer."""

    def scan(self, container: ContentContainer) -> list[Section]:
        sections: list[Section] = []
        for child, top in container.positions():
            if isinstance(child, Expandable):
                section_id = child.section_id or f"expandable-{len(sections)}"
                content_top = top
                # The header is always visible.
                if child.header_height is not None:
                    sections.append(Section(
                        id=f"{section_id}-header",
                        top_px=top,
                        height_px=child.header_height,
                    ))
                    content_top += child.header_height
                sections.append(Section(
                    id=f"{section_id}-content",
                    top_px=content_top,
                    height_px=child.content_height,
                    is_conditional=True,
                    is_expanded=child.open,
                ))
            elif isinstance(child, Block) and child.height > 0:
                sections.append(Section(
                    id=f"block-{len(sections)}",
                    top_px=top,
                    height_px=child.height,
                ))
        logger.debug("Scanned %d sections", len(sections))
        return sections

    def links(self, container: ContentContainer) -> list[TopicLink]:
        found: list[TopicLink] = []
        for child, top in container.positions():
            visible = True
            if isinstance(child, Expandable):
                top += child.header_height or 0.0
                visible = child.open
            for link in child.links:
                found.append(TopicLink(
                    node_id=link.node_id,
                    top_px=top + link.offset,
                    height_px=link.height,
                    visible=visible,
                ))
        return found

    def watch(self, container: ContentContainer, on_change: Callable[[], None]) -> Callable[[], None]:
        return container.observe(on_change)
