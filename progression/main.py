"""Command line entry point for the progression engine"""
import argparse
import asyncio
import json
import logging
import sys
from typing import List, Optional

from progression.config import validate_config, LOG_LEVEL, CATALOG_PATH, ENABLE_METRICS
from progression.gamification.catalog import load_catalog
from progression.gamification.persistence import JsonFileKeyValueStore
from progression.models.events import GamificationEvent, GamificationEventType
from progression.observability.metrics import init_metrics
from progression.services.container import ServiceContainer
from progression.services.experience_rewards import ExperienceRecord

# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=getattr(logging, LOG_LEVEL.upper())
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Progression & reward engine")
    parser.add_argument("--state-file", help="State file (default: DATA_PATH/STATE_FILE_NAME)")
    parser.add_argument("--catalog", help="Catalog JSON file (default: bundled catalog)")
    sub = parser.add_subparsers(dest="command", required=True)

    event = sub.add_parser("event", help="Process one gamification event")
    event.add_argument("type", choices=[t.value for t in GamificationEventType], help="Event type")
    event.add_argument("--meta", action="append", default=[], metavar="KEY=VALUE", help="Event metadata")

    experience = sub.add_parser("experience", help="Reward a journal experience")
    experience.add_argument("id", help="Experience ID")
    experience.add_argument("--title", default="", help="Experience title")
    experience.add_argument("--text", default="", help="Experience notes")

    quest = sub.add_parser("quest", help="Start a quest or submit a quest step")
    quest.add_argument("quest_id", help="Quest ID")
    quest.add_argument("--step", help="Step ID to submit (omit to start the quest)")
    quest.add_argument("--answer", help="Answer for quiz steps")

    sub.add_parser("challenge", help="Show (and generate) this week's challenge")
    sub.add_parser("stats", help="Print progression stats")
    sub.add_parser("insights", help="Print progress insights")
    return parser


def _parse_metadata(pairs: List[str]) -> dict:
    metadata = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Metadata must be KEY=VALUE, got '{pair}'")
        metadata[key.strip()] = value.strip()
    return metadata


def _print(data) -> None:
    print(json.dumps(data, indent=2, default=str))


async def run(args: argparse.Namespace) -> int:
    """Execute one CLI command; returns the exit code"""
    catalog = load_catalog(args.catalog or CATALOG_PATH or None)
    if ENABLE_METRICS:
        init_metrics(catalog.version)
    container = ServiceContainer(store=JsonFileKeyValueStore(args.state_file), catalog=catalog)
    engine = container.engine
    await engine.load()

    if args.command == "event":
        event = GamificationEvent(
            type=GamificationEventType(args.type),
            metadata=_parse_metadata(args.meta),
        )
        result = await engine.process_event(event)
        _print(result.model_dump(mode="json"))

    elif args.command == "experience":
        record = ExperienceRecord(id=args.id, title=args.title, text=args.text)
        result = await container.experience_rewards.process_experience(record)
        _print(result.model_dump(mode="json"))

    elif args.command == "quest":
        if args.step is None:
            outcome = await engine.start_quest(args.quest_id)
        else:
            outcome = await engine.complete_quest_step(args.quest_id, args.step, args.answer)
        if not outcome.success:
            print(outcome.message, file=sys.stderr)
            return 1
        value = outcome.value
        _print(value.model_dump(mode="json") if hasattr(value, "model_dump") else {"accepted": value})

    elif args.command == "challenge":
        challenge = await engine.generate_weekly_challenge()
        if challenge is None:
            print("No challenge available for your level")
            return 0
        if engine.challenge_progress.value is None:
            await engine.start_challenge(challenge.id)
        _print({
            "challenge": challenge.model_dump(mode="json"),
            "progress": engine.challenge_progress.value.model_dump(mode="json")
            if engine.challenge_progress.value else None,
        })

    elif args.command == "stats":
        _print(engine.get_stats().model_dump(mode="json"))

    elif args.command == "insights":
        _print([insight.model_dump(mode="json") for insight in engine.get_progress_insights()])

    if engine.persist_pending:
        logger.warning("State could not be written; changes are lost when this process exits")
        return 2
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point"""
    args = build_parser().parse_args(argv)
    try:
        validate_config()
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
