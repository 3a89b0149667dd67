"""Parsing of HLS media playlists into ordered segment lists.

Example:
    >>> from hls.playlist import parse_playlist
    >>> parse_playlist("#EXTM3U\\n#EXTINF:10.0,\\nlive000.ts\\n")
    [PlaylistSegment(duration=10.0, uri='live000.ts')]
"""

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import PlaylistError


EXTINF_TAG = "#EXTINF:"

_LINE_SPLIT = re.compile(r"[\r\n]+")


@dataclass(frozen=True)
class PlaylistSegment:
    """One addressable chunk of the stream.

    Attributes:
        duration: Segment duration in seconds, from its EXTINF marker.
        uri: Segment locator, relative to the playlist or absolute.
    """

    duration: float
    uri: str


def parse_playlist(text: str) -> list[PlaylistSegment]:
    """Parse duration-tagged entries of a playlist in document order.

    A ``#EXTINF:<duration>[,<title>]`` line is paired with the line right
    after it when that line is not a ``#`` comment or tag. Markers whose
    duration does not parse, and markers not followed by a URI, are skipped.

    Args:
        text: Raw playlist text.

    Returns:
        Segments in playlist order. An empty list means "no segments yet".
    """
    lines = [line.strip() for line in _LINE_SPLIT.split(text)]
    lines = [line for line in lines if line]

    segments: list[PlaylistSegment] = []
    for i, line in enumerate(lines[:-1]):
        if not line.upper().startswith(EXTINF_TAG):
            continue

        duration_field = line[len(EXTINF_TAG):].split(",", 1)[0].strip()
        try:
            duration = float(duration_field)
        except ValueError:
            continue

        uri = lines[i + 1]
        if uri.startswith("#"):
            continue
        segments.append(PlaylistSegment(duration=duration, uri=uri))

    return segments


def target_duration(segments: list[PlaylistSegment]) -> float:
    """Mean segment duration, the unit the window planner counts in.

    Raises:
        PlaylistError: If there are no segments or the mean is not positive.
    """
    if not segments:
        raise PlaylistError(message="Playlist has no segments", code="NO_SEGMENTS")

    mean = sum(seg.duration for seg in segments) / len(segments)
    if mean <= 0:
        raise PlaylistError(
            message=f"Invalid target duration {mean} from playlist",
            code="INVALID_TARGET_DURATION",
            details={"target_duration": mean, "segments": len(segments)},
        )
    return mean


def playlist_base_uri(playlist_url: str) -> str:
    """Everything up to and including the last ``/`` of the playlist URL."""
    return playlist_url[: playlist_url.rfind("/") + 1]


def segment_url(base_uri: str, uri: str) -> str:
    """Resolve a segment locator against the playlist's base URI."""
    if urlsplit(uri).scheme in ("http", "https"):
        return uri
    return base_uri + uri
