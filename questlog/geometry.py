"""Pure geometry for exploration tracking.

Exploration follows the furthest point reached: a section counts as seen up to
the viewport's bottom edge, however far the user has since scrolled back.
"""

import math

from questlog.models import Section, TopicLink, Viewport


def calculate_exploration_percent(total_height: float, seen_height: float) -> int:
    """Percentage of countable height seen, as an integer in [0, 100]."""
    if total_height == 0:
        return 100
    # Half-up rounding: 12.5 reads as 13.
    percent = math.floor(seen_height / total_height * 100 + 0.5)
    # Overlapping measurements can push seen past total.
    return max(0, min(100, percent))


def calculate_section_visibility(
    section_top: float,
    section_height: float,
    viewport_bottom: float,
) -> float:
    """How much of a section lies above the viewport's bottom edge."""
    section_bottom = section_top + section_height
    if viewport_bottom >= section_bottom:
        return section_height
    if viewport_bottom > section_top:
        return max(0, viewport_bottom - section_top)
    return 0


def seen_ratio(section: Section, viewport_bottom: float) -> float:
    if section.height_px <= 0:
        return 1.0
    seen = calculate_section_visibility(section.top_px, section.height_px, viewport_bottom)
    return seen / section.height_px


def is_link_visible(link: TopicLink, viewport: Viewport, threshold: float = 0.5) -> bool:
    """Whether at least ``threshold`` of the link is inside the viewport."""
    if not link.visible or viewport.height <= 0:
        return False
    top = max(link.top_px, viewport.scroll_y)
    bottom = min(link.top_px + link.height_px, viewport.bottom)
    overlap = bottom - top
    if link.height_px <= 0:
        return viewport.scroll_y <= link.top_px <= viewport.bottom
    return overlap > 0 and overlap / link.height_px >= threshold
