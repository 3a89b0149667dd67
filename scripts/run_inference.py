#!/usr/bin/env python3
"""Run whale-call inference over a live or archived hydrophone stream.

Clips are pulled from the stream configured in the JSON file, scored with the
configured classifier and, when enabled, logged to per-clip JSON results.

Usage:
    python scripts/run_inference.py --config config/orcasound_lab_live.json
    python scripts/run_inference.py --config config/range.json --max-iterations 20

Exit codes:
    0  finished (stream over, iteration limit reached or stopped)
    1  configuration error
    3  model could not be loaded
    4  stream could not be built
"""

import argparse
import json
import logging
import signal
import sys
import threading
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from detector import get_model
from detector.errors import ModelError
from hls.errors import StreamError
from service.config import load_settings
from service.errors import ServiceError
from service.logging import setup_logging
from service.runner import InferenceRunner, build_stream


logger = logging.getLogger("run_inference")


def _error_payload(e) -> str:
    return json.dumps({"error": e.message, "code": e.code, "details": e.details}, default=str)


def main() -> int:
    """Main entry point for the script.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description="Run whale-call inference over a hydrophone HLS stream",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --config live.json
    %(prog)s --config range.json --max-iterations 20
        """,
    )
    parser.add_argument(
        "--config", "-c",
        type=str,
        required=True,
        help="Path to the JSON configuration file",
    )
    parser.add_argument(
        "--max-iterations", "--max_iterations",
        dest="max_iterations",
        type=int,
        default=None,
        help="Maximum number of clip cycles (default: unlimited)",
    )

    args = parser.parse_args()
    if args.max_iterations is not None and args.max_iterations < 0:
        parser.error("--max-iterations must be a non-negative integer")

    try:
        settings = load_settings(args.config)
    except ServiceError as e:
        print(_error_payload(e), file=sys.stderr)
        return 1

    setup_logging(settings.log_level)

    try:
        classifier = get_model(settings.model_file, device=settings.device)
    except ModelError as e:
        logger.error("Model load failed: %s", e)
        print(_error_payload(e), file=sys.stderr)
        return 3

    try:
        stream = build_stream(settings)
    except StreamError as e:
        logger.error("Failed to instantiate HLS stream: %s", e)
        print(_error_payload(e), file=sys.stderr)
        return 4

    stop_event = threading.Event()

    def request_stop(signum, frame) -> None:
        logger.info("Received signal %d, stopping after the current cycle", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    runner = InferenceRunner(stream, classifier, settings)
    try:
        runner.run(max_iterations=args.max_iterations, stop_event=stop_event)
    finally:
        stream.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
