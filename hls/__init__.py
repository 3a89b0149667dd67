"""HLS clip acquisition: playlists, window planning and clip sources."""

from .clock import Clock, SystemClock, sleep_until
from .errors import (
    PlaylistError,
    StreamConfigError,
    StreamError,
    StreamFetchError,
    TranscodeError,
)
from .naming import get_readable_clip_name, source_id_from_stream_base
from .planner import (
    MIN_BUFFER_SEC,
    ClipWindow,
    plan_date_range_window,
    plan_live_window,
    segments_per_clip,
)
from .playlist import PlaylistSegment, parse_playlist, segment_url, target_duration
from .stream import Clip, ClipSource, DateRangeHlsStream, LiveHlsStream, NextClip
from .transcode import FfmpegTranscoder, Transcoder

__all__ = [
    "Clip",
    "ClipSource",
    "ClipWindow",
    "Clock",
    "DateRangeHlsStream",
    "FfmpegTranscoder",
    "LiveHlsStream",
    "MIN_BUFFER_SEC",
    "NextClip",
    "PlaylistError",
    "PlaylistSegment",
    "StreamConfigError",
    "StreamError",
    "StreamFetchError",
    "SystemClock",
    "TranscodeError",
    "Transcoder",
    "get_readable_clip_name",
    "parse_playlist",
    "plan_date_range_window",
    "plan_live_window",
    "segment_url",
    "segments_per_clip",
    "sleep_until",
    "source_id_from_stream_base",
    "target_duration",
]
