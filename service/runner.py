"""The driving loop: acquire a clip, score it, report it, repeat.

Example:
    >>> from service.config import load_settings
    >>> from service.runner import InferenceRunner, build_stream
    >>> from detector import get_model
    >>> settings = load_settings("config.json")
    >>> runner = InferenceRunner(build_stream(settings), get_model(settings.model_file), settings)
    >>> summary = runner.run(max_iterations=10)
"""

import json
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Sequence

import httpx

from hls import (
    Clip,
    ClipSource,
    Clock,
    DateRangeHlsStream,
    FfmpegTranscoder,
    LiveHlsStream,
    SystemClock,
    TranscodeError,
    Transcoder,
)
from detector import AggregationConfig, ClipPrediction, InferenceError, WhalecallClassifier, predict_clip

from .config import Settings, get_settings
from .logging import clip_context


logger = logging.getLogger(__name__)

# Clips should end a little before "now" so the stream has published them.
INITIAL_LAG_SEC = 10

Reporter = Callable[[Clip, ClipPrediction], None]


@dataclass
class RunSummary:
    """Counters for one ``InferenceRunner.run`` call.

    Attributes:
        iterations: Cycles started.
        clips: Clips scored successfully.
        detections: Clips with ``global_prediction == 1``.
        failures: Cycles or clips that ended in an error.
        empty_cycles: Cycles that produced no clip.
    """

    iterations: int = 0
    clips: int = 0
    detections: int = 0
    failures: int = 0
    empty_cycles: int = 0


def build_stream(
    settings: Settings,
    client: httpx.Client | None = None,
    clock: Clock | None = None,
    transcoder: Transcoder | None = None,
) -> ClipSource:
    """Build the clip source selected by ``settings.hls_stream_type``."""
    common = dict(
        stream_base=settings.stream_base,
        polling_interval=settings.hls_polling_interval,
        wav_dir=settings.wav_dir,
        client=client,
        clock=clock,
        transcoder=transcoder or FfmpegTranscoder(settings.ffmpeg_binary),
        source_id=settings.hls_hydrophone_id,
        audio_offset=settings.hls_audio_offset,
        tz_name=settings.hls_timezone,
    )

    if settings.hls_stream_type == "LiveHLS":
        return LiveHlsStream(**common)

    start, end = settings.date_range_utc
    return DateRangeHlsStream(
        start_time=start,
        end_time=end,
        real_time=settings.hls_real_time,
        overwrite_output=settings.hls_overwrite_output,
        **common,
    )


def write_result_log(
    directory: str | Path,
    clip: Clip,
    prediction: ClipPrediction,
    settings: Settings,
) -> Path:
    """Write the prediction record plus model metadata to ``{clip}.json``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    record = prediction.to_dict()
    record.update(
        {
            "source_id": clip.source_id,
            "start_timestamp": clip.start_timestamp,
            "model_type": settings.model_type,
            "model_name": settings.model_name,
            "model_path": settings.model_path,
        }
    )

    out_path = directory / f"{clip.path.stem}.json"
    out_path.write_text(json.dumps(record), encoding="utf-8")
    return out_path


class InferenceRunner:
    """Sequential loop over a clip source.

    Stop requests and the iteration limit are honoured at iteration
    boundaries only; a cycle in progress always completes.
    """

    def __init__(
        self,
        stream: ClipSource,
        classifier: WhalecallClassifier,
        settings: Settings | None = None,
        clock: Clock | None = None,
        reporters: Sequence[Reporter] = (),
    ) -> None:
        self.stream = stream
        self.classifier = classifier
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.reporters = list(reporters)
        self.aggregation_config = AggregationConfig(
            threshold=self.settings.model_local_threshold,
            min_positive_count=self.settings.model_global_threshold,
        )

    def run(
        self,
        start_time: datetime | None = None,
        max_iterations: int | None = None,
        stop_event: threading.Event | None = None,
    ) -> RunSummary:
        """Run cycles until the stream ends, the limit is hit or a stop is requested.

        Args:
            start_time: Initial cursor; defaults to ``INITIAL_LAG_SEC`` before now.
            max_iterations: Maximum number of cycles, or None for no limit.
            stop_event: Set from another thread (or a signal handler) to stop.

        Returns:
            Counters for the run.
        """
        cursor = start_time or self.clock.now() - timedelta(seconds=INITIAL_LAG_SEC)
        summary = RunSummary()

        while True:
            if stop_event is not None and stop_event.is_set():
                logger.info("Stop requested")
                break
            if self.stream.is_stream_over():
                logger.info("Stream is over")
                break
            if max_iterations is not None and summary.iterations >= max_iterations:
                break

            summary.iterations += 1
            cursor = self.run_once(cursor, summary)

        logger.info(
            "Processing finished: iterations=%d clips=%d detections=%d failures=%d",
            summary.iterations, summary.clips, summary.detections, summary.failures,
        )
        return summary

    def run_once(self, cursor: datetime, summary: RunSummary) -> datetime:
        """Run one cycle and return the cursor for the next one."""
        try:
            result = self.stream.get_next_clip(cursor)
        except TranscodeError as e:
            logger.error("Clip assembly failed: %s", e)
            summary.failures += 1
            return e.next_clip_end_time or cursor
        except Exception:
            logger.exception("Cycle failed at cursor %s", cursor.isoformat())
            summary.failures += 1
            self.clock.sleep(self.settings.idle_delay_sec)
            return cursor

        if result.clip is None:
            summary.empty_cycles += 1
            self.clock.sleep(self.settings.idle_delay_sec)
            return result.next_clip_end_time

        self.process_clip(result.clip, summary)
        return result.next_clip_end_time

    def process_clip(self, clip: Clip, summary: RunSummary) -> ClipPrediction | None:
        """Score one clip, then report, log and clean it up."""
        with clip_context(clip.name, clip.source_id):
            try:
                prediction = predict_clip(
                    clip.path,
                    self.classifier,
                    aggregation_config=self.aggregation_config,
                    max_workers=self.settings.inference_workers,
                    timestamp=clip.start_timestamp,
                )
            except InferenceError as e:
                logger.error("Prediction failed: %s", e)
                summary.failures += 1
                return None

            summary.clips += 1
            logger.info("local_confidences=%s", prediction.local_confidences)
            logger.info("local_predictions=%s", prediction.local_predictions)
            logger.info(
                "global_prediction=%d global_confidence=%.2f",
                prediction.global_prediction, prediction.global_confidence,
            )

            if prediction.global_prediction == 1:
                summary.detections += 1
                logger.info("Orca found: hydrophone_id=%s start=%s", clip.source_id, clip.start_timestamp)

            for reporter in self.reporters:
                try:
                    reporter(clip, prediction)
                except Exception:
                    logger.exception("Reporter %r failed", reporter)
                    summary.failures += 1

            if self.settings.log_results:
                try:
                    path = write_result_log(self.settings.log_results, clip, prediction, self.settings)
                    logger.debug("Wrote result log %s", path)
                except OSError as e:
                    logger.warning("Failed to write result log: %s", e)

            if self.settings.delete_local_wavs:
                try:
                    clip.path.unlink(missing_ok=True)
                except OSError as e:
                    logger.warning("Failed to delete %s: %s", clip.path, e)

            return prediction
