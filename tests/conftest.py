"""Shared test fixtures for questlog tests."""

import pytest

from questlog.config import Config, ContentConfig, StorageConfig, TrackerConfig
from questlog.discovery import DiscoveryEngine
from questlog.engine import QuestEngine
from questlog.layout import Block, ContentContainer, Expandable, Link
from questlog.metadata import ContentMetadata
from questlog.models import NodeMeta
from questlog.scheduler import ManualClock
from questlog.storage import MemoryStorage, SQLiteStorage
from questlog.store import ProgressStore


@pytest.fixture()
def tmp_config(tmp_path):
    return Config(
        storage=StorageConfig(db_path=str(tmp_path / "progress.db")),
        tracker=TrackerConfig(),
        content=ContentConfig(),
    )


@pytest.fixture()
def tmp_storage(tmp_config):
    """A SQLiteStorage backed by a temp file."""
    storage = SQLiteStorage(tmp_config.resolved_db_path)
    storage.init_db()
    yield storage
    storage.close()


@pytest.fixture()
def store():
    s = ProgressStore(MemoryStorage())
    s.init()
    return s


@pytest.fixture()
def discovery(store):
    return DiscoveryEngine(store)


@pytest.fixture()
def metadata():
    """Small content graph: intro links to tokens and embeddings."""
    return ContentMetadata([
        NodeMeta(id="intro", title="What is an LLM?", category="Intro", order=1,
                 children=["tokens"], related=["embeddings"]),
        NodeMeta(id="tokens", title="Tokens", category="Foundations", order=2,
                 children=["context-window"]),
        NodeMeta(id="embeddings", title="Embeddings", category="Foundations", order=3),
        NodeMeta(id="context-window", title="Context Window", category="Foundations", order=4),
        NodeMeta(id="drafty", title="Unfinished", draft=True),
        NodeMeta(id="tokens/bpe", title="Byte Pair Encoding"),
        NodeMeta(id="index", title="Index", children=["intro"]),
    ])


@pytest.fixture()
def clock():
    return ManualClock()


@pytest.fixture()
def intro_container():
    """1000px of content: 400px text, a collapsed aside, 560px text.

    Closed: header 40px at 400, second block at 440..1000.
    Open: aside content 200px at 440..640, second block at 640..1200.
    """
    return ContentContainer([
        Block(height=400, links=[Link("tokens", offset=100)]),
        Expandable(content_height=200, header_height=40, section_id="aside",
                   links=[Link("embeddings", offset=50)]),
        Block(height=560),
    ])


@pytest.fixture()
def engine(tmp_config, tmp_storage, metadata):
    e = QuestEngine(tmp_config, storage=tmp_storage, metadata=metadata)
    yield e
