"""Quest status derivation and display info."""

from collections.abc import Iterable

from pydantic import BaseModel

from questlog.models import QuestStatus
from questlog.store import ProgressStore


class StatusInfo(BaseModel):
    label: str
    icon: str
    class_name: str


QUEST_STATUS_INFO: dict[QuestStatus, StatusInfo] = {
    QuestStatus.UNDISCOVERED: StatusInfo(label="Undiscovered", icon="?", class_name="quest-undiscovered"),
    QuestStatus.DISCOVERED: StatusInfo(label="Discovered", icon="○", class_name="quest-discovered"),
    QuestStatus.IN_PROGRESS: StatusInfo(label="In Progress", icon="◐", class_name="quest-in-progress"),
    QuestStatus.COMPLETE: StatusInfo(label="Complete", icon="●", class_name="quest-complete"),
}


def get_quest_status(
    store: ProgressStore,
    node_id: str,
    linked_topic_ids: Iterable[str] | None = None,
) -> QuestStatus:
    """Derive a node's quest status from stored progress.

    A node is complete once it has been fully scrolled and at least as many
    topics were discovered on it as it links to. With no linked topics the
    second condition holds trivially.
    """
    if not store.is_topic_discovered(node_id):
        return QuestStatus.UNDISCOVERED

    progress = store.get_node_progress(node_id)
    if not progress.visited_at:
        return QuestStatus.DISCOVERED

    required = len(list(linked_topic_ids or ()))
    fully_explored = progress.explored_percent >= 100
    all_topics_found = len(progress.discovered_topics_on_page) >= required
    if fully_explored and all_topics_found:
        return QuestStatus.COMPLETE

    return QuestStatus.IN_PROGRESS


def count_discovered_topics(store: ProgressStore, topic_ids: Iterable[str] | None) -> int:
    """How many of ``topic_ids`` have been discovered anywhere."""
    if not topic_ids:
        return 0
    return sum(1 for topic_id in topic_ids if store.is_topic_discovered(topic_id))
