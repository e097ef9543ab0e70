"""CLI entry point for the quest log."""

import argparse
import logging
import sys
from typing import Any

from questlog.config import load_config
from questlog.engine import QuestEngine
from questlog.status import QUEST_STATUS_INFO

QUEST_STATUS_INFO_BY_VALUE = {status.value: info for status, info in QUEST_STATUS_INFO.items()}


def _print_node(info: dict[str, Any]) -> None:
    icon = QUEST_STATUS_INFO_BY_VALUE[info["status"]].icon
    print(f"{icon} {info['title']} ({info['id']}): {info['label']}")
    print(
        f"  explored {info['explored_percent']}%, "
        f"topics {info['topics_on_page']}/{info['topics_total']} found here "
        f"({info['topics_discovered']} discovered anywhere)"
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Quest log progress tracker")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    status_parser = sub.add_parser("status", help="Show a node's quest status")
    status_parser.add_argument("node_id")

    sub.add_parser("log", help="Show the quest log grouped by category")
    sub.add_parser("stats", help="Show discovery and completion counts")

    visit_parser = sub.add_parser("visit", help="Record a visit to a node")
    visit_parser.add_argument("node_id")

    discover_parser = sub.add_parser("discover", help="Record a topic discovery")
    discover_parser.add_argument("node_id")
    discover_parser.add_argument(
        "--page", default=None,
        help="Node the topic was discovered on (credits the discovery to that page)",
    )

    explore_parser = sub.add_parser("explore", help="Record how far a node was scrolled")
    explore_parser.add_argument("node_id")
    explore_parser.add_argument("percent", type=float)

    complete_parser = sub.add_parser("complete", help="Force a quest to complete")
    complete_parser.add_argument("node_id")

    cycle_parser = sub.add_parser("cycle", help="Complete a quest, or reset it if already complete")
    cycle_parser.add_argument("node_id")

    reset_parser = sub.add_parser("reset", help="Reset progress for a node or everything")
    reset_parser.add_argument("node_id", nargs="?")
    reset_parser.add_argument("--all", action="store_true", help="Erase all progress")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = load_config()
    engine = QuestEngine(config)

    try:
        if args.command == "status":
            _print_node(engine.describe(args.node_id))

        elif args.command == "log":
            log = engine.quest_log()
            stats = log["stats"]
            if not log["categories"]:
                print("No quests discovered yet.")
            for category, entries in log["categories"].items():
                counts = log["category_progress"][category]
                print(f"\n{category} ({counts['complete']}/{counts['total']}):")
                for e in entries:
                    icon = QUEST_STATUS_INFO_BY_VALUE[e["status"]].icon
                    print(
                        f"  {icon} {e['title']} - {e['explored_percent']}% explored, "
                        f"{e['discovered_topics_count']}/{e['total_topics_count']} topics"
                    )
            print(
                f"\n{stats['discovered']}/{stats['total']} discovered, "
                f"{stats['complete']} complete, {stats['in_progress']} in progress"
            )

        elif args.command == "stats":
            stats = engine.store.progress_stats()
            print(f"  discovered: {stats.discovered}")
            print(f"  visited:    {stats.visited}")
            print(f"  explored:   {stats.complete}")

        elif args.command == "visit":
            engine.store.mark_visited(args.node_id)
            print(f"Visited {engine.metadata.title(args.node_id)}")

        elif args.command == "discover":
            engine.discovery.subscribe(
                lambda node_id, source: print(f"Discovered {engine.metadata.title(node_id)}!")
            )
            was_new = engine.discovery.mark_topic_discovered(
                args.node_id, source_ref="cli", current_page_id=args.page,
            )
            if not was_new:
                print(f"{engine.metadata.title(args.node_id)} was already discovered")

        elif args.command == "explore":
            engine.store.update_explored_percent(args.node_id, args.percent)
            progress = engine.store.get_node_progress(args.node_id)
            print(f"{args.node_id}: {progress.explored_percent}% explored")

        elif args.command == "complete":
            _print_node(engine.complete(args.node_id))

        elif args.command == "cycle":
            _print_node(engine.cycle(args.node_id))

        elif args.command == "reset":
            if args.all:
                engine.store.reset_all_progress()
                print("All progress reset")
            elif args.node_id:
                _print_node(engine.reset(args.node_id))
            else:
                reset_parser.error("give a node id or --all")

        else:
            parser.print_help()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    finally:
        engine.close()


if __name__ == "__main__":
    main()
