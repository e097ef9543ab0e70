"""Pydantic models for the quest log progress engine."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QuestStatus(str, Enum):
    UNDISCOVERED = "undiscovered"
    DISCOVERED = "discovered"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"


# --- Persisted models (camelCase on the wire) ---


class _WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _require_unique(ids: list[str]) -> list[str]:
    if len(set(ids)) != len(ids):
        raise ValueError("duplicate topic ids")
    return ids


class NodeProgress(_WireModel):
    """Exploration record for one content node."""
    explored_percent: int = Field(0, ge=0, le=100)
    discovered_topics_on_page: list[str] = Field(default_factory=list)
    discovered_at: str | None = None
    visited_at: str | None = None
    completed_at: str | None = None

    @field_validator("discovered_topics_on_page")
    @classmethod
    def unique_topics(cls, v: list[str]) -> list[str]:
        return _require_unique(v)


class ProgressState(_WireModel):
    """Everything the store persists under its storage key."""
    nodes: dict[str, NodeProgress] = Field(default_factory=dict)
    all_discovered_topics: list[str] = Field(default_factory=list)

    @field_validator("all_discovered_topics")
    @classmethod
    def unique_ledger(cls, v: list[str]) -> list[str]:
        return _require_unique(v)


class ProgressStats(BaseModel):
    discovered: int = 0
    visited: int = 0
    complete: int = 0


# --- Layout models (ephemeral, recomputed per scan) ---


class Section(BaseModel):
    id: str
    top_px: float
    height_px: float
    is_conditional: bool = False
    is_expanded: bool = True
    seen_ratio: float = 0.0

    @property
    def countable(self) -> bool:
        """Collapsed conditional content does not count toward exploration."""
        return not self.is_conditional or self.is_expanded


class TopicLink(BaseModel):
    """An internal link to another node found in the content body."""
    node_id: str
    top_px: float
    height_px: float = 20.0
    visible: bool = True


class Viewport(BaseModel):
    scroll_y: float = 0.0
    height: float = 0.0

    @property
    def bottom(self) -> float:
        return self.scroll_y + self.height


# --- Content metadata ---


class NodeMeta(BaseModel):
    id: str
    title: str
    summary: str = ""
    category: str | None = None
    order: int | None = None
    children: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)
    draft: bool = False

    @property
    def linked_topics(self) -> list[str]:
        return [*self.children, *self.related]


# --- Quest log output models ---


class QuestLogEntry(BaseModel):
    id: str
    title: str
    category: str
    order: int
    status: QuestStatus
    explored_percent: int
    discovered_topics_count: int
    total_topics_count: int


class QuestLogStats(BaseModel):
    total: int = 0
    discovered: int = 0
    complete: int = 0
    in_progress: int = 0
    just_discovered: int = 0


class CategoryProgress(BaseModel):
    complete: int = 0
    total: int = 0


class QuestLog(BaseModel):
    categories: dict[str, list[QuestLogEntry]] = Field(default_factory=dict)
    category_progress: dict[str, CategoryProgress] = Field(default_factory=dict)
    stats: QuestLogStats = Field(default_factory=QuestLogStats)
