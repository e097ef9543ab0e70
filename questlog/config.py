"""Configuration loading for the quest log engine."""

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = "data/questlog.db"
    # Bump the version suffix on schema change; old blobs are ignored, not migrated.
    key: str = "questlog-progress-v4"


class TrackerConfig(BaseModel):
    settle_delay: float = 0.1
    frame_interval: float = 1 / 60
    link_visibility_threshold: float = 0.5
    index_node_id: str = "index"


class ContentConfig(BaseModel):
    catalog_path: str | None = None
    content_dir: str | None = None
    # Quest log categories listed first, in this order; others follow as found.
    category_order: list[str] = Field(default_factory=list)


class Config(BaseModel):
    storage: StorageConfig = Field(default_factory=StorageConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    content: ContentConfig = Field(default_factory=ContentConfig)

    @property
    def resolved_db_path(self) -> Path:
        """Resolve db_path relative to project root."""
        return _resolve(self.storage.db_path)

    @property
    def resolved_catalog_path(self) -> Path | None:
        if self.content.catalog_path is None:
            return None
        return _resolve(self.content.catalog_path)

    @property
    def resolved_content_dir(self) -> Path | None:
        if self.content.content_dir is None:
            return None
        return _resolve(self.content.content_dir)


def _project_root() -> Path:
    """Return the questlog project root directory."""
    return Path(__file__).parent.parent


def _resolve(path: str) -> Path:
    p = Path(path).expanduser()
    if p.is_absolute():
        return p
    return _project_root() / p


def load_config(config_path: Path | None = None) -> Config:
    """Load config from YAML file. Falls back to defaults if file missing."""
    if config_path is None:
        config_path = _project_root() / "config.yaml"

    if config_path.exists():
        raw: dict[str, Any] = yaml.safe_load(config_path.read_text()) or {}
        return Config(**raw)

    return Config()
