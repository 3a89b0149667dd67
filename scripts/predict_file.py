#!/usr/bin/env python3
"""Predict whale calls in a single WAV clip.

This script runs sliding-window inference on one clip and outputs the
prediction record as JSON to stdout.

Usage:
    python scripts/predict_file.py --input clip.wav --model-path model/stg2-rn18.pt
    python scripts/predict_file.py --input clip.wav --model-path model/stg2-rn18.pt --threshold 0.6
    python scripts/predict_file.py --input clip.wav --model-path model/stg2-rn18.pt --device cuda

Example output:
    {
        "wav_filename": "clip.wav",
        "timestamp": null,
        "local_predictions": [0, 1, 1],
        "local_confidences": [0.2, 0.6, 0.7],
        "global_prediction": 0,
        "global_confidence": 65.0,
        "submission": [{"wav_filename": "clip.wav", "start_time_s": 0, "duration_s": 1.0, "confidence": 0.2}, ...]
    }
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from detector import AggregationConfig, get_model, predict_clip
from detector.errors import AggregationConfigError, ModelError


def main() -> int:
    """Main entry point for the script.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        description="Predict whale calls in a WAV clip",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    %(prog)s --input clip.wav --model-path model.pt
    %(prog)s --input clip.wav --model-path model.pt --min-positive 2
        """,
    )
    parser.add_argument(
        "--input", "-i",
        type=str,
        required=True,
        help="Path to the input clip (WAV format)",
    )
    parser.add_argument(
        "--model-path", "-m",
        type=str,
        required=True,
        help="Path to the TorchScript classifier",
    )
    parser.add_argument(
        "--device", "-d",
        type=str,
        default="cpu",
        help="Device to run inference on (cpu or cuda, default: cpu)",
    )
    parser.add_argument(
        "--threshold", "-t",
        type=float,
        default=0.5,
        help="Per-second confidence threshold (default: 0.5)",
    )
    parser.add_argument(
        "--min-positive",
        type=int,
        default=3,
        help="Positive seconds needed for a clip-level detection (default: 3)",
    )
    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=1,
        help="Windows scored concurrently (default: 1)",
    )
    parser.add_argument(
        "--pretty", "-p",
        action="store_true",
        help="Pretty-print JSON output with indentation",
    )

    args = parser.parse_args()

    # Validate input file exists
    input_path = Path(args.input)
    if not input_path.exists():
        print(json.dumps({
            "error": "File not found",
            "code": "FILE_NOT_FOUND",
            "path": str(input_path),
        }), file=sys.stderr)
        return 1

    try:
        aggregation_config = AggregationConfig(
            threshold=args.threshold,
            min_positive_count=args.min_positive,
        )
    except AggregationConfigError as e:
        print(json.dumps({
            "error": e.message,
            "code": e.code,
            "details": e.details,
        }), file=sys.stderr)
        return 2

    try:
        classifier = get_model(args.model_path, device=args.device)
        result = predict_clip(
            input_path,
            classifier,
            aggregation_config=aggregation_config,
            max_workers=args.workers,
        )

        output = result.to_dict()
        if args.pretty:
            print(json.dumps(output, indent=2))
        else:
            print(json.dumps(output))

        return 0

    except ModelError as e:
        print(json.dumps({
            "error": e.message,
            "code": e.code,
            "details": e.details,
        }), file=sys.stderr)
        return 3

    except Exception as e:
        print(json.dumps({
            "error": str(e),
            "code": "UNKNOWN_ERROR",
        }), file=sys.stderr)
        return 4


if __name__ == "__main__":
    sys.exit(main())
