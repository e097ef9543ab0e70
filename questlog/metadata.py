"""Read-only content metadata: titles and outbound topic links per node."""

import logging
import re
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from questlog.config import Config
from questlog.models import NodeMeta

logger = logging.getLogger(__name__)

FRONTMATTER_RE = re.compile(r"\A---\r?\n(.*?)\r?\n---", re.DOTALL)
CONTENT_SUFFIXES = {".md", ".mdx"}


class ContentMetadata:
    """Node metadata keyed by node id."""

    def __init__(self, nodes: Iterable[NodeMeta] = ()) -> None:
        self._nodes: dict[str, NodeMeta] = {n.id: n for n in nodes}

    def __iter__(self) -> Iterator[NodeMeta]:
        return iter(self._nodes.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def get(self, node_id: str) -> NodeMeta | None:
        return self._nodes.get(node_id)

    def linked_topics(self, node_id: str) -> list[str]:
        """Outbound topic ids; unknown nodes link to nothing."""
        meta = self._nodes.get(node_id)
        return meta.linked_topics if meta else []

    def title(self, node_id: str) -> str:
        meta = self._nodes.get(node_id)
        return meta.title if meta else node_id

    def all_node_ids(self) -> list[str]:
        return list(self._nodes)

    # --- Loaders ---

    @classmethod
    def from_catalog(cls, path: Path) -> "ContentMetadata":
        """Load a YAML catalog: a list of nodes, or a mapping of id -> fields."""
        try:
            raw = yaml.safe_load(Path(path).read_text()) or []
        except yaml.YAMLError as e:
            logger.warning("Invalid catalog %s: %s", path, e)
            return cls()
        if isinstance(raw, dict) and "nodes" in raw:
            raw = raw["nodes"] or []
        if isinstance(raw, dict):
            raw = [
                {"id": node_id, **fields} if isinstance(fields, dict) else {"id": node_id}
                for node_id, fields in raw.items()
            ]
        if not isinstance(raw, list):
            logger.warning("Catalog %s is not a list or mapping of nodes", path)
            return cls()

        nodes: list[NodeMeta] = []
        for entry in raw:
            meta = _parse_meta(entry, source=str(path))
            if meta:
                nodes.append(meta)
        logger.info("Loaded %d nodes from catalog %s", len(nodes), path)
        return cls(nodes)

    @classmethod
    def from_content_dir(cls, content_dir: Path) -> "ContentMetadata":
        """Read YAML front matter from every Markdown/MDX file under a directory.

        The node id is the front matter ``id`` or else the file stem.
        """
        nodes: list[NodeMeta] = []
        for path in sorted(Path(content_dir).rglob("*")):
            if path.suffix not in CONTENT_SUFFIXES or not path.is_file():
                continue
            fields = parse_frontmatter(path.read_text(encoding="utf-8"))
            if fields is None:
                continue
            fields.setdefault("id", path.stem)
            meta = _parse_meta(fields, source=str(path))
            if meta:
                nodes.append(meta)
        logger.info("Loaded %d nodes from %s", len(nodes), content_dir)
        return cls(nodes)


def parse_frontmatter(text: str) -> dict[str, Any] | None:
    """Return the front matter mapping, or None if there is none or it is invalid."""
    match = FRONTMATTER_RE.match(text)
    if not match:
        return None
    try:
        fields = yaml.safe_load(match.group(1))
    except yaml.YAMLError as e:
        logger.warning("Invalid front matter: %s", e)
        return None
    return fields if isinstance(fields, dict) else None


def _parse_meta(entry: Any, source: str) -> NodeMeta | None:
    if not isinstance(entry, dict):
        logger.warning("Skipping non-mapping node entry in %s", source)
        return None
    entry = dict(entry)
    entry.setdefault("title", entry.get("id", ""))
    try:
        return NodeMeta(**entry)
    except (ValidationError, TypeError) as e:
        logger.warning("Skipping invalid node %r in %s: %s", entry.get("id"), source, e)
        return None


def load_metadata(config: Config) -> ContentMetadata:
    """Build metadata from the configured catalog and/or content directory."""
    nodes: list[NodeMeta] = []
    catalog = config.resolved_catalog_path
    if catalog is not None:
        if catalog.exists():
            nodes.extend(ContentMetadata.from_catalog(catalog))
        else:
            logger.warning("Catalog not found: %s", catalog)
    content_dir = config.resolved_content_dir
    if content_dir is not None:
        if content_dir.is_dir():
            nodes.extend(ContentMetadata.from_content_dir(content_dir))
        else:
            logger.warning("Content directory not found: %s", content_dir)
    return ContentMetadata(nodes)
