import argparse
import json
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

from models.expectation_models import FixtureSet
from operators.fixture_store import FixtureStore
from operators.snapshot_operator import DEFAULT_DIFF_KINDS, diff_snapshots, take_snapshot
from utils.fixture_loader import load_fixture_set

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(ROOT_DIR / ".env")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
EVALS_LOG_FILE = os.getenv("EVALS_LOG_FILE", "").strip()
EVALS_FIXTURES_DIR = os.getenv("EVALS_FIXTURES_DIR", "fixtures").strip()
EVALS_DIFF_KINDS = os.getenv("EVALS_DIFF_KINDS", ",".join(DEFAULT_DIFF_KINDS))


def _attach_file_handler(log_file_path: Path, *logger_names: str) -> None:
    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    for name in logger_names:
        logging.getLogger(name).addHandler(file_handler)


def configure_logging() -> None:
    logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT)
    if EVALS_LOG_FILE:
        log_path = Path(EVALS_LOG_FILE)
        if not log_path.is_absolute():
            log_path = ROOT_DIR / log_path
        _attach_file_handler(log_path, "operators", "utils")


def diff_kinds_from_env(value: str = EVALS_DIFF_KINDS) -> list[str]:
    return [kind.strip() for kind in value.split(",") if kind.strip()]


def _fixture_set_from_args(args: argparse.Namespace) -> FixtureSet:
    return FixtureSet(
        project=args.project,
        chapter=args.chapter,
        timelines=args.timelines,
        blocks=args.blocks,
        media_assets=args.media_assets,
    )


def _load_store(base_path: Path, fixture_set: FixtureSet) -> FixtureStore:
    store = FixtureStore()
    load_fixture_set(store, fixture_set, base_path)
    return store


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and diff agent test fixtures")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_fixture_names(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("--project", help="Project fixture name")
        sub.add_argument("--chapter", help="Chapter fixture name")
        sub.add_argument("--timelines", help="Timelines fixture name")
        sub.add_argument("--blocks", help="Blocks fixture name")
        sub.add_argument("--media-assets", dest="media_assets", help="Media assets fixture name")

    summary = subparsers.add_parser("summary", help="Load a fixture set and print record counts")
    summary.add_argument(
        "fixtures_dir",
        nargs="?",
        default=EVALS_FIXTURES_DIR,
        help="Fixture root directory",
    )
    add_fixture_names(summary)

    diff = subparsers.add_parser("diff", help="Diff the same fixture set from two directories")
    diff.add_argument("before_dir", help="Fixture root for the before state")
    diff.add_argument("after_dir", help="Fixture root for the after state")
    diff.add_argument(
        "--kinds",
        default=",".join(diff_kinds_from_env()),
        help="Comma-separated entity kinds to diff",
    )
    add_fixture_names(diff)

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    fixture_set = _fixture_set_from_args(args)

    if args.command == "summary":
        store = _load_store(Path(args.fixtures_dir), fixture_set)
        print(json.dumps(store.counts(), indent=2))
        return 0

    before = take_snapshot(_load_store(Path(args.before_dir), fixture_set))
    after = take_snapshot(_load_store(Path(args.after_dir), fixture_set))
    data_diff = diff_snapshots(before, after, kinds=diff_kinds_from_env(args.kinds))
    print(json.dumps(data_diff.to_report(), indent=2))
    print(data_diff.summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
