"""Segment-index arithmetic that maps wall-clock cursors onto playlists.

A stream folder starts at a unix epoch (its name) and grows by roughly one
segment every ``target_duration`` seconds. The planner turns "I want the
``polling_interval`` seconds of audio that end at the cursor" into a
half-open segment range ``[start, end)``, compensating for the fixed latency
between wall clock and audio (``audio_offset``).

Example:
    >>> from hls.planner import plan_live_window
    >>> window = plan_live_window(segments, clip_end_time, folder_epoch=1700000000,
    ...                           polling_interval=60)
    >>> window.segment_start_index, window.segment_end_index
    (6, 12)
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterator

from .playlist import PlaylistSegment, target_duration


# Extra audio that must exist in the folder beyond one clip before planning.
MIN_BUFFER_SEC = 20
DEFAULT_AUDIO_OFFSET_SEC = 2


@dataclass(frozen=True)
class ClipWindow:
    """The planner's decision for one cycle.

    Attributes:
        segment_start_index: First segment index (inclusive, may be < 0).
        segment_end_index: One past the last segment index.
        nominal_clip_end_time: New cursor value, UTC.
        segments_per_clip: Segments covering one polling interval.
        target_duration: Mean segment duration used for the arithmetic.
        total_segments: Segment count of the playlist planned against.
    """

    segment_start_index: int
    segment_end_index: int
    nominal_clip_end_time: datetime
    segments_per_clip: int
    target_duration: float
    total_segments: int

    @property
    def available(self) -> bool:
        """Whether the playlist already lists every planned segment."""
        return self.segment_end_index <= self.total_segments

    def indices(self) -> Iterator[int]:
        """Planned indices inside ``[0, total_segments)``, in order.

        Out-of-range indices are skipped one by one, so a window that hangs
        over the start of the folder still yields its valid part.
        """
        for i in range(self.segment_start_index, self.segment_end_index):
            if 0 <= i < self.total_segments:
                yield i


def to_unix_seconds(moment: datetime) -> int:
    """Whole unix seconds of a datetime; naive values are taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return math.floor(moment.timestamp())


def from_unix_seconds(seconds: float) -> datetime:
    """UTC datetime for unix ``seconds``."""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def segments_per_clip(polling_interval: float, segment_duration: float) -> int:
    """Number of segments needed to cover one polling interval."""
    return math.ceil(polling_interval / segment_duration)


def plan_live_window(
    segments: list[PlaylistSegment],
    clip_end_time: datetime,
    folder_epoch: int,
    polling_interval: int,
    audio_offset: int = DEFAULT_AUDIO_OFFSET_SEC,
) -> ClipWindow | None:
    """Plan the clip that ends at ``clip_end_time`` in a live folder.

    Args:
        segments: Parsed playlist of the folder.
        clip_end_time: Current cursor (end of the previous clip).
        folder_epoch: Unix start time of the folder.
        polling_interval: Clip length in seconds.
        audio_offset: Latency of audio relative to wall clock, in seconds.

    Returns:
        The planned window, or None when the folder does not yet hold one
        clip plus ``MIN_BUFFER_SEC`` of audio. Check ``window.available``
        before downloading; its ``nominal_clip_end_time`` is the new cursor
        either way.

    Raises:
        PlaylistError: If the playlist is empty or its durations are not
            positive.
    """
    target = target_duration(segments)
    per_clip = segments_per_clip(polling_interval, target)

    elapsed = (to_unix_seconds(clip_end_time) - folder_epoch) - audio_offset
    if elapsed < polling_interval + MIN_BUFFER_SEC:
        return None

    min_segments_required = math.ceil(elapsed / target)
    start = min_segments_required - per_clip
    end = start + per_clip

    nominal_end = round(end * target + folder_epoch + audio_offset)

    return ClipWindow(
        segment_start_index=start,
        segment_end_index=end,
        nominal_clip_end_time=from_unix_seconds(nominal_end),
        segments_per_clip=per_clip,
        target_duration=target,
        total_segments=len(segments),
    )


def plan_date_range_window(
    segments: list[PlaylistSegment],
    clip_start_unix: int,
    folder_epoch: int,
    polling_interval: int,
    audio_offset: int = DEFAULT_AUDIO_OFFSET_SEC,
) -> ClipWindow:
    """Plan the clip that starts at ``clip_start_unix`` in an archived folder.

    Raises:
        PlaylistError: If the playlist is empty or its durations are not
            positive.
    """
    target = target_duration(segments)
    per_clip = segments_per_clip(polling_interval, target)

    elapsed = (clip_start_unix - folder_epoch) - audio_offset
    start = math.ceil(elapsed / target)
    end = start + per_clip

    return ClipWindow(
        segment_start_index=start,
        segment_end_index=end,
        nominal_clip_end_time=from_unix_seconds(clip_start_unix + polling_interval),
        segments_per_clip=per_clip,
        target_duration=target,
        total_segments=len(segments),
    )
