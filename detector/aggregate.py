"""Roll-up of per-window confidences into per-second and clip-level verdicts.

The classifier scores overlapping two-second windows ``[i, i + 2)``. Those
scores are folded into one confidence per second, thresholded, and counted:

    >>> rollup_per_second([0.2, 0.8, 0.4])
    [0.2, 0.6, 0.4]
    >>> local_detections([0.2, 0.6, 0.7], threshold=0.5)
    [0, 1, 1]

The roll-up keeps the first window's raw score at index 0 and appends the
last window's raw score, which downstream consumers depend on.
"""

from dataclasses import dataclass

from .errors import AggregationConfigError
from .types import ClipPrediction


@dataclass(frozen=True)
class AggregationConfig:
    """Detection thresholds.

    Attributes:
        threshold: Per-second confidence a second must exceed to count.
        min_positive_count: Positive seconds needed for a clip-level detection.
    """

    threshold: float = 0.5
    min_positive_count: int = 3

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            AggregationConfigError: If any value is invalid.
        """
        if not 0.0 <= self.threshold <= 1.0:
            raise AggregationConfigError(
                message=f"threshold must be within [0, 1], got {self.threshold}",
                code="INVALID_THRESHOLD",
                details={"threshold": self.threshold},
            )
        if self.min_positive_count < 0:
            raise AggregationConfigError(
                message=f"min_positive_count must be non-negative, got {self.min_positive_count}",
                code="INVALID_MIN_POSITIVE",
                details={"min_positive_count": self.min_positive_count},
            )


def rollup_per_second(raw: list[float]) -> list[float]:
    """Fold two-second window scores into per-second confidences.

    Produces one value per window: the ``len(raw) - 1`` pairwise means of
    neighbours, with index 0 replaced by ``raw[0]`` and ``raw[-1]`` appended.
    """
    if not raw:
        return []
    if len(raw) == 1:
        return [raw[0]]

    rolled = [(a + b) / 2 for a, b in zip(raw, raw[1:])]
    rolled[0] = raw[0]
    rolled.append(raw[-1])
    return rolled


def local_detections(confidences: list[float], threshold: float) -> list[int]:
    return [1 if c > threshold else 0 for c in confidences]


def global_detection(local_predictions: list[int], min_positive_count: int) -> int:
    return 1 if sum(local_predictions) >= min_positive_count else 0


def global_confidence(confidences: list[float], threshold: float) -> float:
    """Mean of the above-threshold confidences times 100, or 0.0 if none."""
    above = [c for c in confidences if c > threshold]
    if not above:
        return 0.0
    return sum(above) / len(above) * 100.0


def aggregate(
    raw: list[float],
    config: AggregationConfig | None = None,
    wav_filename: str = "",
    timestamp: str | None = None,
) -> ClipPrediction:
    """Build the clip verdict from raw per-window classifier outputs."""
    if config is None:
        config = AggregationConfig()

    per_second = rollup_per_second(list(raw))
    local = local_detections(per_second, config.threshold)
    return ClipPrediction(
        local_confidences=per_second,
        local_predictions=local,
        global_prediction=global_detection(local, config.min_positive_count),
        global_confidence=global_confidence(per_second, config.threshold),
        wav_filename=wav_filename,
        timestamp=timestamp,
        window_confidences=list(raw),
    )
