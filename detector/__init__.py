"""Whale-call detector: classifier loading, window scoring and verdicts.

This module provides:
- Loading and caching of TorchScript whale-call classifiers
- Sliding-window inference over WAV clips
- Roll-up of window scores into per-second and clip-level verdicts

Example:
    >>> from detector import get_model, predict_clip
    >>> classifier = get_model("models/stg2-rn18.pt", device="cpu")
    >>> result = predict_clip("clip.wav", classifier)
    >>> print(result.global_prediction, result.global_confidence)
    1 78.4
"""

from .aggregate import (
    AggregationConfig,
    aggregate,
    global_confidence,
    global_detection,
    local_detections,
    rollup_per_second,
)
from .errors import AggregationConfigError, InferenceError, ModelError, ModelLoadError
from .infer import predict_clip, score_windows, window_count
from .registry import TorchScriptWhalecallModel, clear_cache, get_model
from .types import ClipPrediction, WhalecallClassifier

__all__ = [
    # Main inference functions
    "predict_clip",
    "score_windows",
    "window_count",
    # Aggregation
    "AggregationConfig",
    "aggregate",
    "rollup_per_second",
    "local_detections",
    "global_detection",
    "global_confidence",
    # Registry
    "get_model",
    "clear_cache",
    "TorchScriptWhalecallModel",
    # Types
    "ClipPrediction",
    "WhalecallClassifier",
    # Errors
    "ModelError",
    "ModelLoadError",
    "InferenceError",
    "AggregationConfigError",
]
