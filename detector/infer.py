"""Sliding-window whale-call inference over a WAV clip.

The clip is cut into overlapping two-second windows ``[i, i + 2)`` at
one-second steps. Each window becomes a mel spectrogram and one classifier
score; the scores are then rolled up into a ``ClipPrediction``.

Example:
    >>> from detector import get_model, predict_clip
    >>> classifier = get_model("models/stg2-rn18.pt")
    >>> result = predict_clip("wav_dir/rpi_orcasound_lab_2024_07_01_12_00_00_-07:00.wav", classifier)
    >>> result.global_prediction, result.global_confidence
    (1, 78.4)
"""

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Union

from hydroaudio import (
    DEFAULT_SPECTROGRAM_CONFIG,
    SpectrogramConfig,
    WavFormatError,
    extract_features,
    parse_wav_header,
    slice_wav,
)

from .aggregate import AggregationConfig, aggregate
from .errors import InferenceError
from .types import ClipPrediction, WhalecallClassifier


logger = logging.getLogger(__name__)

WINDOW_SEC = 2


def window_count(duration_sec: float) -> int:
    """Number of two-second windows in a clip of ``duration_sec`` seconds."""
    return max(0, math.floor(duration_sec) - 1)


def _score_window(
    data: bytes,
    index: int,
    classifier: WhalecallClassifier,
    spectrogram_config: SpectrogramConfig,
) -> float:
    window = slice_wav(data, index, index + WINDOW_SEC)
    features = extract_features(window, spectrogram_config)
    try:
        return float(classifier.predict(features))
    except InferenceError:
        raise
    except Exception as e:
        raise InferenceError(
            message=f"Classifier failed on window {index}: {e}",
            code="INFERENCE_FAILED",
            details={"window": index, "error": str(e)},
        ) from e


def score_windows(
    data: bytes,
    classifier: WhalecallClassifier,
    spectrogram_config: SpectrogramConfig = DEFAULT_SPECTROGRAM_CONFIG,
    max_workers: int = 1,
) -> list[float]:
    """Raw classifier score of every two-second window, in window order.

    Args:
        data: WAV container bytes.
        classifier: Window classifier.
        spectrogram_config: Feature constants.
        max_workers: Windows scored concurrently; 1 scores them in turn.

    Returns:
        One score per window. Malformed containers have no windows.

    Raises:
        InferenceError: If the classifier fails on any window.
    """
    try:
        duration = parse_wav_header(data).duration_sec
    except WavFormatError as e:
        logger.warning("Unreadable clip container, no windows scored: %s", e)
        return []

    indices = range(window_count(duration))
    if max_workers <= 1 or len(indices) <= 1:
        return [_score_window(data, i, classifier, spectrogram_config) for i in indices]

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        # map() yields in submission order
        return list(
            pool.map(lambda i: _score_window(data, i, classifier, spectrogram_config), indices)
        )


def predict_clip(
    path_or_bytes: Union[str, Path, bytes],
    classifier: WhalecallClassifier,
    aggregation_config: AggregationConfig | None = None,
    spectrogram_config: SpectrogramConfig = DEFAULT_SPECTROGRAM_CONFIG,
    max_workers: int = 1,
    timestamp: str | None = None,
    wav_filename: str | None = None,
) -> ClipPrediction:
    """Predict whale calls in a WAV clip.

    This function:
    1. Reads the container once and measures its duration
    2. Slices two-second windows in memory and extracts their features
    3. Scores each window with the classifier
    4. Rolls scores up into per-second and clip-level verdicts

    Args:
        path_or_bytes: Path to a WAV file or its raw bytes.
        classifier: Window classifier (see ``detector.registry.get_model``).
        aggregation_config: Detection thresholds. Defaults to 0.5 and 3.
        spectrogram_config: Feature constants.
        max_workers: Windows scored concurrently.
        timestamp: ISO-8601 start of the clip, copied into the result.
        wav_filename: Name recorded in the result; defaults to the file name.

    Returns:
        ClipPrediction for the clip. A missing file yields an empty
        prediction with ``global_prediction == 0``.

    Raises:
        InferenceError: If the classifier fails.
    """
    if isinstance(path_or_bytes, bytes):
        data = path_or_bytes
        name = wav_filename or ""
    else:
        path = Path(path_or_bytes)
        name = wav_filename or path.name
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning("Cannot read clip %s: %s", path, e)
            data = b""

    raw = score_windows(data, classifier, spectrogram_config, max_workers) if data else []
    logger.debug("Scored %d windows for %s", len(raw), name or "<bytes>")

    return aggregate(
        raw,
        config=aggregation_config,
        wav_filename=name,
        timestamp=timestamp,
    )
