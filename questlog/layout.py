"""Headless layout tree for a node's content body.

Children stack vertically from ``origin``. An expandable block only takes up
room for its content while open, so toggling it reflows every block below.
Mutations notify observers synchronously.
"""

from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class Link:
    """An internal link, positioned relative to the top of its block."""
    node_id: str
    offset: float = 0.0
    height: float = 20.0


@dataclass
class Block:
    height: float
    links: list[Link] = field(default_factory=list)


@dataclass
class Expandable:
    content_height: float
    header_height: float | None = 40.0
    open: bool = False
    section_id: str | None = None
    links: list[Link] = field(default_factory=list)

    @property
    def height(self) -> float:
        header = self.header_height or 0.0
        return header + (self.content_height if self.open else 0.0)


Child = Block | Expandable


class ContentContainer:
    """The content body of one node."""

    def __init__(self, children: list[Child] | None = None, origin: float = 0.0) -> None:
        self.children: list[Child] = list(children or [])
        self.origin = origin
        self._observers: list[Callable[[], None]] = []

    def positions(self) -> list[tuple[Child, float]]:
        """Each child with its document-absolute top."""
        placed = []
        cursor = self.origin
        for child in self.children:
            placed.append((child, cursor))
            cursor += child.height
        return placed

    @property
    def height(self) -> float:
        return sum(child.height for child in self.children)

    def observe(self, callback: Callable[[], None]) -> Callable[[], None]:
        self._observers.append(callback)

        def disconnect() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return disconnect

    def toggle(self, section_id: str) -> bool:
        """Flip an expandable's open state. Returns the new state."""
        for child in self.children:
            if isinstance(child, Expandable) and child.section_id == section_id:
                child.open = not child.open
                self._changed()
                return child.open
        raise KeyError(section_id)

    def append(self, child: Child) -> None:
        self.children.append(child)
        self._changed()

    def replace_children(self, children: list[Child]) -> None:
        self.children = list(children)
        self._changed()

    def _changed(self) -> None:
        for callback in list(self._observers):
            callback()
