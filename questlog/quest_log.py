"""Quest log — per-node status summary grouped by category."""

import logging
from collections.abc import Iterable, Sequence

from questlog.metadata import ContentMetadata
from questlog.models import CategoryProgress, QuestLog, QuestLogEntry, QuestLogStats, QuestStatus
from questlog.status import count_discovered_topics, get_quest_status
from questlog.store import ProgressStore

logger = logging.getLogger(__name__)

DEFAULT_ORDER = 999
DEFAULT_CATEGORY = "Other"


def build_entries(store: ProgressStore, metadata: ContentMetadata) -> list[QuestLogEntry]:
    """Status for every published top-level node, sorted by order."""
    entries: list[QuestLogEntry] = []
    for meta in metadata:
        # Nested pages and drafts are not quests.
        if "/" in meta.id or meta.draft:
            continue
        linked = meta.linked_topics
        entries.append(QuestLogEntry(
            id=meta.id,
            title=meta.title,
            category=meta.category or DEFAULT_CATEGORY,
            order=meta.order if meta.order is not None else DEFAULT_ORDER,
            status=get_quest_status(store, meta.id, linked),
            explored_percent=store.get_node_progress(meta.id).explored_percent,
            discovered_topics_count=count_discovered_topics(store, linked),
            total_topics_count=len(linked),
        ))
    entries.sort(key=lambda e: e.order)
    return entries


def build_quest_log(
    store: ProgressStore,
    metadata: ContentMetadata,
    category_order: Sequence[str] = (),
) -> QuestLog:
    """Discovered quests grouped by category, plus overall counts.

    Categories named in ``category_order`` come first in that order; the rest
    follow in the order their first quest appears.
    """
    entries = build_entries(store, metadata)
    discovered = [e for e in entries if e.status != QuestStatus.UNDISCOVERED]

    grouped: dict[str, list[QuestLogEntry]] = {}
    for entry in discovered:
        grouped.setdefault(entry.category, []).append(entry)

    ordered = [c for c in category_order if c in grouped]
    ordered += [c for c in grouped if c not in ordered]
    categories = {c: grouped[c] for c in ordered}
    category_progress = {
        c: CategoryProgress(
            complete=sum(1 for e in group if e.status == QuestStatus.COMPLETE),
            total=len(group),
        )
        for c, group in categories.items()
    }

    stats = QuestLogStats(
        total=len(entries),
        discovered=len(discovered),
        complete=sum(1 for e in discovered if e.status == QuestStatus.COMPLETE),
        in_progress=sum(1 for e in discovered if e.status == QuestStatus.IN_PROGRESS),
        just_discovered=sum(1 for e in discovered if e.status == QuestStatus.DISCOVERED),
    )
    return QuestLog(categories=categories, category_progress=category_progress, stats=stats)


def cycle_status(
    store: ProgressStore,
    node_id: str,
    current_status: QuestStatus,
    linked_topic_ids: Iterable[str] | None = None,
) -> None:
    """Toggle a quest: complete quests are reset, anything else is completed."""
    if current_status == QuestStatus.COMPLETE:
        store.reset_node_progress(node_id)
    else:
        store.mark_quest_complete(node_id, linked_topic_ids)
