"""Type definitions for clip inference."""

from dataclasses import dataclass, field
from typing import Protocol

import torch


@dataclass
class ClipPrediction:
    """Whale-call verdict for one clip.

    Attributes:
        local_confidences: Per-second confidences after roll-up (0.0 to 1.0).
        local_predictions: Per-second 0/1 detections.
        global_prediction: 1 if the clip holds a call, else 0.
        global_confidence: Mean of above-threshold confidences, scaled to 0-100.
        wav_filename: File name of the clip the prediction belongs to.
        timestamp: ISO-8601 UTC start of the clip, if known.
        window_confidences: Raw classifier outputs, one per two-second window.
    """

    local_confidences: list[float]
    local_predictions: list[int]
    global_prediction: int
    global_confidence: float
    wav_filename: str = ""
    timestamp: str | None = None
    window_confidences: list[float] = field(default_factory=list)

    def submission(self) -> list[dict]:
        """Per-second rows: wav_filename, start_time_s, duration_s, confidence."""
        return [
            {
                "wav_filename": self.wav_filename,
                "start_time_s": i,
                "duration_s": 1.0,
                "confidence": float(conf),
            }
            for i, conf in enumerate(self.local_confidences)
        ]

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization.

        All numeric values are converted to Python native types to ensure
        JSON serialization works correctly.
        """
        return {
            "wav_filename": self.wav_filename,
            "timestamp": self.timestamp,
            "local_predictions": [int(p) for p in self.local_predictions],
            "local_confidences": [float(c) for c in self.local_confidences],
            "global_prediction": int(self.global_prediction),
            "global_confidence": float(self.global_confidence),
            "submission": self.submission(),
        }


class WhalecallClassifier(Protocol):
    """Protocol for the per-window classifier.

    Any callable model wrapper exposing ``predict`` conforms.
    """

    def predict(self, features: torch.Tensor) -> float:
        """Score one window.

        Args:
            features: Normalized mel spectrogram with shape [n_mels, n_frames].

        Returns:
            Call probability in [0, 1].
        """
        ...
