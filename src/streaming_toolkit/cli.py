"""
Command-line entry point.

Runs an exercise headlessly with a scripted learner and prints the results
as JSON:

    python -m streaming_toolkit simulate story.json --exercise fluent --difficulty hard
    python -m streaming_toolkit bubble words.json --speed 70 --duration 30
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from streaming_toolkit import __version__
from streaming_toolkit.core.models import DifficultyLevel
from streaming_toolkit.engine import (
    ContentUnavailable,
    EngineConfig,
    FixedWidthMeasurer,
    ManualClock,
    ParseError,
    PillowTextMeasurer,
    load_engine_config,
    load_narrative_file,
)
from streaming_toolkit.exercises import (
    BubblePopExercise,
    BubbleSettings,
    FluentReadingExercise,
    FluentSettings,
    SpeedReadingExercise,
    SpeedSettings,
)
from streaming_toolkit.exercises.speed_reading import default_speed_engine
from streaming_toolkit.simulation import run_simulation
from streaming_toolkit.utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="streaming-toolkit",
        description="Run streaming text exercises headlessly",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="Logging level (default: WARNING)")
    parser.add_argument("--config", type=Path, help="Engine config JSON file")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--accuracy", type=float, default=1.0, help="Scripted learner accuracy (0-1)")
    parser.add_argument(
        "--estimate-widths", action="store_true",
        help="Estimate word widths instead of measuring with a font",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    simulate = sub.add_parser("simulate", help="Simulate a reading exercise")
    simulate.add_argument("narrative", type=Path, help="Narrative JSON file")
    simulate.add_argument("--exercise", "-x", choices=["fluent", "speed"], default="fluent")
    simulate.add_argument(
        "--difficulty", "-d", choices=[level.value for level in DifficultyLevel],
        default=None, help="Difficulty level (exercise default if omitted)",
    )
    simulate.add_argument("--wpm", type=float, default=None, help="Nominal words per minute")

    bubble = sub.add_parser("bubble", help="Simulate bubble pop")
    bubble.add_argument("vocabulary", type=Path, nargs="?", help="JSON list of words")
    bubble.add_argument("--speed", type=float, default=50.0, help="Speed dial 0-100")
    bubble.add_argument("--duration", type=float, default=60.0, help="Session length in seconds")
    bubble.add_argument("--error-rate", type=float, default=30.0, help="Spelling error rate (%%)")
    return parser


def _engine_config(args: argparse.Namespace, default: EngineConfig) -> EngineConfig:
    config = load_engine_config(args.config) if args.config else default
    if args.seed is not None:
        config = replace(config, seed=args.seed)
    return config


def _load_vocabulary(path: Optional[Path]) -> Optional[List[str]]:
    if path is None:
        return None
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"Vocabulary must be a JSON list: {path}")
    # Accept ["word", ...] or [{"word": ...}, ...]
    words: List[str] = []
    for i, item in enumerate(data):
        if isinstance(item, dict):
            item = item.get("word")
        if not isinstance(item, str):
            raise ValueError(f"Vocabulary entry {i} must be a word or {{\"word\": ...}}: {path}")
        words.append(item)
    return words


def _make_exercise(args: argparse.Namespace, clock: ManualClock):
    measurer = FixedWidthMeasurer() if args.estimate_widths else PillowTextMeasurer()

    if args.command == "bubble":
        defaults = BubbleSettings()
        vocabulary = _load_vocabulary(args.vocabulary) or defaults.vocabulary
        settings = BubbleSettings(
            duration_seconds=args.duration,
            speed=args.speed,
            spelling_error_rate=args.error_rate,
            vocabulary=tuple(vocabulary),
            engine=_engine_config(args, defaults.engine),
        )
        exercise = BubblePopExercise(clock, settings, measurer=measurer)
        exercise.initialize()
        return exercise

    records = load_narrative_file(args.narrative)
    if args.exercise == "speed":
        defaults = SpeedSettings()
        settings = SpeedSettings(
            words_per_minute=args.wpm or defaults.words_per_minute,
            difficulty=DifficultyLevel.parse(args.difficulty or defaults.difficulty),
            engine=_engine_config(args, default_speed_engine()),
        )
        exercise = SpeedReadingExercise(clock, settings, measurer=measurer)
    else:
        defaults = FluentSettings()
        settings = FluentSettings(
            words_per_minute=args.wpm or defaults.words_per_minute,
            difficulty=DifficultyLevel.parse(args.difficulty or defaults.difficulty),
            engine=_engine_config(args, EngineConfig()),
        )
        exercise = FluentReadingExercise(clock, settings, measurer=measurer)
    exercise.initialize(records)
    return exercise


def main(argv: Optional[List[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        configure_logging(args.log_level)
    except ValueError as e:
        parser.error(str(e))

    clock = ManualClock()
    try:
        exercise = _make_exercise(args, clock)
    except (ParseError, ContentUnavailable, ValueError, OSError) as e:
        logger.error(f"Cannot start exercise: {e}")
        print(f"error: {e}", file=sys.stderr)
        return 1

    results = run_simulation(exercise, clock, accuracy=args.accuracy, seed=args.seed)
    print(json.dumps(results.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
