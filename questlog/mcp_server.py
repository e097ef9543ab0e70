#!/usr/bin/env python3
"""Quest log MCP server — query and adjust exploration progress."""

import json
import logging
import sys

from mcp.server.fastmcp import FastMCP

from questlog.config import load_config
from questlog.engine import QuestEngine

mcp = FastMCP("questlog")
logger = logging.getLogger(__name__)

# Redirect all logging to stderr so stdout stays clean for MCP stdio transport
logging.basicConfig(
    stream=sys.stderr,
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

_engine: QuestEngine | None = None


def _get_engine() -> QuestEngine:
    global _engine
    if _engine is None:
        _engine = QuestEngine(load_config())
    return _engine


@mcp.tool()
def get_quest_status(node_id: str) -> str:
    """Get a node's quest status, explored percent and topic counts."""
    try:
        return json.dumps(_get_engine().describe(node_id))
    except ValueError as e:
        return json.dumps({"error": str(e)})


@mcp.tool()
def get_quest_log() -> str:
    """Get all discovered quests grouped by category, with overall counts."""
    return json.dumps(_get_engine().quest_log())


@mcp.tool()
def get_progress_stats() -> str:
    """Count discovered topics, visited nodes and fully explored nodes."""
    return json.dumps(_get_engine().store.progress_stats().model_dump())


@mcp.tool()
def mark_quest_complete(node_id: str) -> str:
    """Force a quest to complete (manual override)."""
    try:
        return json.dumps(_get_engine().complete(node_id))
    except ValueError as e:
        return json.dumps({"error": str(e)})


@mcp.tool()
def reset_node_progress(node_id: str) -> str:
    """Reset a node to undiscovered, dropping its progress."""
    try:
        return json.dumps(_get_engine().reset(node_id))
    except ValueError as e:
        return json.dumps({"error": str(e)})


if __name__ == "__main__":
    mcp.run()
