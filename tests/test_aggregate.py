"""Tests for detector.aggregate module."""

import json

import pytest

from detector import (
    AggregationConfig,
    AggregationConfigError,
    aggregate,
    global_confidence,
    global_detection,
    local_detections,
    rollup_per_second,
)


class TestRollupPerSecond:
    """Tests for the per-second roll-up law."""

    def test_empty(self):
        assert rollup_per_second([]) == []

    def test_single_window(self):
        assert rollup_per_second([0.2]) == [0.2]

    def test_three_windows(self):
        """Means 0.5 and 0.6, index 0 overwritten to 0.2, then 0.4 appended."""
        assert rollup_per_second([0.2, 0.8, 0.4]) == pytest.approx([0.2, 0.6, 0.4])

    def test_two_windows(self):
        assert rollup_per_second([0.1, 0.9]) == pytest.approx([0.1, 0.9])

    def test_one_value_per_window(self):
        assert len(rollup_per_second([0.5] * 58)) == 58


class TestDetections:
    """Tests for local and global detections."""

    def test_local_detection_law(self):
        assert local_detections([0.2, 0.6, 0.7], threshold=0.5) == [0, 1, 1]

    def test_threshold_is_strict(self):
        assert local_detections([0.5], threshold=0.5) == [0]

    def test_global_detection(self):
        assert global_detection([0, 1, 1], min_positive_count=2) == 1
        assert global_detection([0, 1, 0], min_positive_count=2) == 0

    def test_global_confidence(self):
        assert global_confidence([0.2, 0.6, 0.7], threshold=0.5) == pytest.approx(65.0)

    def test_global_confidence_none_above(self):
        assert global_confidence([0.1, 0.2], threshold=0.5) == 0.0


class TestAggregationConfig:
    """Tests for AggregationConfig validation."""

    def test_defaults(self):
        config = AggregationConfig()

        assert config.threshold == 0.5
        assert config.min_positive_count == 3

    def test_invalid_threshold(self):
        with pytest.raises(AggregationConfigError) as exc_info:
            AggregationConfig(threshold=1.5)

        assert exc_info.value.code == "INVALID_THRESHOLD"

    def test_invalid_min_positive(self):
        with pytest.raises(AggregationConfigError) as exc_info:
            AggregationConfig(min_positive_count=-1)

        assert exc_info.value.code == "INVALID_MIN_POSITIVE"


class TestAggregate:
    """Tests for the full clip verdict."""

    def test_detection_example(self):
        """Per-second [0.2, 0.6, 0.7] with threshold 0.5 and min 2 is a detection."""
        prediction = aggregate(
            [0.2, 0.5, 0.7],
            AggregationConfig(threshold=0.5, min_positive_count=2),
        )

        assert prediction.local_confidences == pytest.approx([0.2, 0.6, 0.7])
        assert prediction.local_predictions == [0, 1, 1]
        assert prediction.global_prediction == 1
        assert prediction.global_confidence == pytest.approx(65.0)

    def test_threshold_law_on_rolled_values(self):
        raw = [0.2, 0.8, 0.4, 0.8, 0.6]
        prediction = aggregate(raw, AggregationConfig(threshold=0.5, min_positive_count=3))

        assert prediction.local_confidences == pytest.approx([0.2, 0.6, 0.6, 0.7, 0.6])
        assert prediction.local_predictions == [0, 1, 1, 1, 1]
        assert prediction.global_prediction == 1
        assert prediction.window_confidences == raw

    def test_empty_clip(self):
        prediction = aggregate([])

        assert prediction.local_confidences == []
        assert prediction.local_predictions == []
        assert prediction.global_prediction == 0
        assert prediction.global_confidence == 0.0

    def test_record_is_json_serializable(self):
        prediction = aggregate([0.2, 0.8, 0.4], wav_filename="clip.wav", timestamp="2024-07-01T19:00:00Z")

        record = prediction.to_dict()
        json.dumps(record)

        assert record["wav_filename"] == "clip.wav"
        assert record["timestamp"] == "2024-07-01T19:00:00Z"
        assert set(record) >= {
            "local_predictions", "local_confidences",
            "global_prediction", "global_confidence", "submission",
        }

    def test_submission_rows(self):
        prediction = aggregate([0.2, 0.8, 0.4], wav_filename="clip.wav")

        rows = prediction.submission()

        assert [r["start_time_s"] for r in rows] == [0, 1, 2]
        assert all(r["duration_s"] == 1.0 for r in rows)
        assert all(r["wav_filename"] == "clip.wav" for r in rows)
        assert [r["confidence"] for r in rows] == pytest.approx(prediction.local_confidences)
