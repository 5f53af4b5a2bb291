"""
Command-line entry point for the posture coach.

Commands:
    posture-coach analyze LANDMARKS.json [--out FILE] [--interval S]
        Replay a recorded landmark dump through the full-video pipeline and
        print (or write) the JSON sequence analysis.

    posture-coach postures
        List the supported posture catalog and whether each posture has a
        reference in the bundled library.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from ..utils.io_utils import save_json
from .catalog import list_supported_postures
from .config import LOG_LEVEL, get_analysis_settings, load_analysis_settings
from .errors import AnalysisError, ConfigurationError, InvalidInputError
from .references import get_reference_library, load_reference_library
from .replay import LandmarkReplay
from .sequence import VideoSequenceAnalyzer

logger = logging.getLogger("posture_coach")


def _build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="posture-coach", description="Pilates posture analysis")
    ap.add_argument("--log-level", default=LOG_LEVEL, help="Logging level (default: %(default)s).")
    sub = ap.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze a recorded landmark dump.")
    analyze.add_argument("landmarks", type=Path, help="JSON dump {duration, frames[]}.")
    analyze.add_argument("--out", type=Path, default=None, help="Write JSON here instead of stdout.")
    analyze.add_argument("--interval", type=float, default=None, help="Sampling interval in seconds.")
    analyze.add_argument("--library", type=Path, default=None, help="Reference library JSON.")
    analyze.add_argument("--config", type=Path, default=None, help="Analysis thresholds YAML.")

    sub.add_parser("postures", help="List supported postures.")
    return ap


def run_analyze(args: argparse.Namespace) -> int:
    settings = load_analysis_settings(args.config) if args.config else get_analysis_settings()
    if args.interval is not None:
        if args.interval <= 0:
            raise InvalidInputError("--interval must be positive.")
        sequence = settings.sequence.model_copy(update={"sample_interval": args.interval})
        settings = settings.model_copy(update={"sequence": sequence})

    library = load_reference_library(args.library) if args.library else get_reference_library()
    replay = LandmarkReplay.from_file(args.landmarks, tolerance=settings.sequence.sample_interval / 2)
    analyzer = VideoSequenceAnalyzer(replay, library=library, settings=settings)

    last_logged = -1

    def on_progress(percent: int) -> None:
        nonlocal last_logged
        if percent // 10 > last_logged // 10:
            logger.info("Progress: %d%%", percent)
            last_logged = percent

    result = asyncio.run(analyzer.analyze(replay, on_progress=on_progress, video_name=args.landmarks.name))
    payload = result.model_dump(mode="json")

    if args.out:
        save_json(payload, args.out)
    else:
        json.dump(payload, sys.stdout, indent=2)
        sys.stdout.write("\n")
    return 0


def run_postures(args: argparse.Namespace) -> int:
    try:
        library_names = set(get_reference_library().names)
    except FileNotFoundError:
        logger.warning("Reference library missing; listing catalog only.")
        library_names = set()

    for posture in list_supported_postures():
        marker = "*" if posture["name"] in library_names else " "
        print(f"{marker} {posture['id']:<28} {posture['name']}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(levelname)s | %(name)s | %(message)s",
    )

    try:
        if args.command == "analyze":
            return run_analyze(args)
        return run_postures(args)
    except (InvalidInputError, ConfigurationError, AnalysisError, FileNotFoundError) as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
