import argparse
import json
import logging
import sys
from pathlib import Path

from .config import LOG_FORMAT, AssistantSettings
from .constants import EXAMPLE_PROGRAM
from .learning.coordinator import LearningCoordinator
from .learning.neural import NeuralPredictor
from .processing.program_processor import ProgramProcessor
from .services.storage import FallbackStorage, FirestoreStorage, LocalJsonStorage, Storage

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )

    # Suppress request logging from the Google client libraries
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def build_storage(settings: AssistantSettings) -> Storage:
    """Local JSON files, behind Firestore when a project is configured."""
    local = LocalJsonStorage(settings.storage_dir)
    if not settings.use_firestore:
        return local

    remote = FirestoreStorage(
        project=settings.firestore_project,
        collection=settings.firestore_collection,
        credentials_path=settings.credentials_path,
    )
    return FallbackStorage(remote, local)


def build_coordinator(settings: AssistantSettings) -> LearningCoordinator:
    """Create and initialize the learning coordinator for this process."""
    coordinator = LearningCoordinator(
        storage=build_storage(settings),
        neural=NeuralPredictor(hidden_size=settings.hidden_nodes, seed=settings.random_seed),
    )
    coordinator.initialize()
    return coordinator


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="production-sheet",
        description="Generate a production sheet from a service running order.",
    )
    parser.add_argument("program", nargs="?", help="Running-order text file (default: built-in example)")
    parser.add_argument("--third-sunday", action="store_true", help="Apply third-Sunday rules")
    parser.add_argument("--rules-only", action="store_true", help="Skip learned predictions")
    parser.add_argument("--env-file", help="Path to a .env file")
    parser.add_argument("--status", action="store_true", help="Print learning system status and exit")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Generate and print a production sheet."""
    args = parse_args(argv)
    settings = AssistantSettings.from_env(args.env_file)
    configure_logging(settings.log_level)

    coordinator = None if args.rules_only else build_coordinator(settings)

    if args.status:
        if coordinator is None:
            print("Learning system disabled (--rules-only)")
        else:
            print(json.dumps(coordinator.get_system_status(), indent=2, default=str))
        return 0

    text = Path(args.program).read_text(encoding="utf-8") if args.program else EXAMPLE_PROGRAM
    processor = ProgramProcessor(coordinator=coordinator)
    program = processor.process_program(text, is_third_sunday=args.third_sunday)

    for row in program.rows:
        marker = "*" if row.ai_fields else " "
        print(
            f"{marker} {row.item.title:<40} cam={row.camera:<4} scene={row.scene:<3} "
            f"mic={row.mic:<10} stream={row.stream:<4} {row.notes}"
        )
    print(program.summary.to_display_string())

    if program.missing_indices:
        logger.warning(f"{len(program.missing_indices)} items need manual settings")
    return 0


if __name__ == "__main__":
    sys.exit(main())
