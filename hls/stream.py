"""Clip sources that turn a segmented HLS stream into consecutive WAV clips.

Two variants share one contract:

- ``LiveHlsStream`` follows the newest folder announced by ``latest.txt``
  and produces one clip per polling interval in (slightly delayed) real time.
- ``DateRangeHlsStream`` walks archived folders between two instants and
  produces clips as fast as the network allows, unless real-time pacing is
  requested.

Both return ``NextClip(clip, next_clip_end_time)`` per cycle. ``clip`` is
None whenever the cycle produced nothing; the returned cursor is what the
caller passes into the next cycle.

Example:
    >>> stream = LiveHlsStream(
    ...     "https://s3-us-west-2.amazonaws.com/audio-orcasound-net/rpi_orcasound_lab",
    ...     polling_interval=60,
    ...     wav_dir="wav_dir",
    ... )
    >>> result = stream.get_next_clip(cursor)
    >>> if result.clip is not None:
    ...     print(result.clip.path)
"""

import logging
import tempfile
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import NamedTuple, Protocol, Sequence

import httpx

from .clock import Clock, SystemClock, sleep_until
from .errors import PlaylistError, StreamConfigError, StreamFetchError, TranscodeError
from .naming import DEFAULT_TIMEZONE, get_readable_clip_name, source_id_from_stream_base
from .planner import (
    DEFAULT_AUDIO_OFFSET_SEC,
    ClipWindow,
    from_unix_seconds,
    plan_date_range_window,
    plan_live_window,
    to_unix_seconds,
)
from .playlist import PlaylistSegment, parse_playlist, playlist_base_uri, segment_url
from .transcode import FfmpegTranscoder, Transcoder


logger = logging.getLogger(__name__)

HTTP_TIMEOUT_SEC = 30.0
# Delay behind wall clock before a live cycle asks for new audio.
LIVE_LAG_SEC = 10


@dataclass(frozen=True)
class Clip:
    """A WAV clip produced by one cycle.

    Attributes:
        path: Location of the transcoded WAV file.
        start_time: UTC start of the audio the clip covers.
        end_time: UTC end of the audio the clip covers.
        source_id: Hydrophone identifier the clip came from.
    """

    path: Path
    start_time: datetime
    end_time: datetime
    source_id: str

    @property
    def name(self) -> str:
        return self.path.stem

    @property
    def start_timestamp(self) -> str:
        """ISO-8601 UTC start, e.g. ``2024-07-01T19:00:00.000000Z``."""
        start = self.start_time.astimezone(timezone.utc)
        return start.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class NextClip(NamedTuple):
    clip: Clip | None
    next_clip_end_time: datetime


class ClipSource(Protocol):
    """Contract shared by the live and date-range streams."""

    def get_next_clip(self, current_clip_end_time: datetime) -> NextClip:
        ...

    def is_stream_over(self) -> bool:
        ...

    def close(self) -> None:
        ...


class _HlsStreamBase:
    """HTTP access, segment download and clip assembly for HLS streams."""

    def __init__(
        self,
        stream_base: str,
        polling_interval: int,
        wav_dir: str | Path,
        client: httpx.Client | None = None,
        clock: Clock | None = None,
        transcoder: Transcoder | None = None,
        source_id: str | None = None,
        audio_offset: int = DEFAULT_AUDIO_OFFSET_SEC,
        tz_name: str = DEFAULT_TIMEZONE,
    ) -> None:
        if polling_interval <= 0:
            raise StreamConfigError(
                message=f"Polling interval must be positive, got {polling_interval}",
                code="INVALID_POLLING_INTERVAL",
                details={"polling_interval": polling_interval},
            )

        self.stream_base = stream_base.rstrip("/")
        self.polling_interval = polling_interval
        self.wav_dir = Path(wav_dir)
        self.audio_offset = audio_offset
        self.tz_name = tz_name
        self.source_id = source_id or source_id_from_stream_base(self.stream_base)

        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=HTTP_TIMEOUT_SEC)
        self.clock = clock or SystemClock()
        self.transcoder = transcoder or FfmpegTranscoder()

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def playlist_url(self, folder: int | str) -> str:
        return f"{self.stream_base}/hls/{folder}/live.m3u8"

    def _get(self, url: str) -> httpx.Response:
        """GET ``url``, raising StreamFetchError for transport or status failures."""
        try:
            response = self.client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StreamFetchError(
                message=f"HTTP {e.response.status_code} for {url}",
                code="HTTP_ERROR",
                details={"url": url, "status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise StreamFetchError(
                message=f"Request failed for {url}: {e}",
                code="FETCH_FAILED",
                details={"url": url},
            ) from e
        except httpx.InvalidURL as e:
            raise StreamFetchError(
                message=f"Invalid URL {url!r}: {e}",
                code="INVALID_URL",
                details={"url": url},
            ) from e
        return response

    def _fetch_text(self, url: str) -> str:
        return self._get(url).text

    def _fetch_playlist(self, folder: int | str) -> tuple[str, list[PlaylistSegment]]:
        url = self.playlist_url(folder)
        return url, parse_playlist(self._fetch_text(url))

    def _download_segments(
        self,
        playlist_url: str,
        segments: Sequence[PlaylistSegment],
        window: ClipWindow,
        tmp_dir: Path,
    ) -> list[Path]:
        """Download the window's segments in index order; failures are skipped."""
        base_uri = playlist_base_uri(playlist_url)
        downloaded: list[Path] = []

        for index in window.indices():
            path = tmp_dir / f"segment_{index:06d}.ts"
            try:
                url = segment_url(base_uri, segments[index].uri)
                path.write_bytes(self._get(url).content)
            except (StreamFetchError, ValueError, OSError) as e:
                logger.warning("Skipping segment %d: %s", index, e)
                continue
            downloaded.append(path)

        return downloaded

    def _assemble_clip(
        self,
        playlist_url: str,
        segments: Sequence[PlaylistSegment],
        window: ClipWindow,
        clip_start: datetime,
        clip_end: datetime,
        overwrite: bool,
    ) -> Clip | None:
        """Download, concatenate and transcode one window into a named WAV.

        Returns:
            The clip, or None when none of its segments could be downloaded.

        Raises:
            TranscodeError: If the transcoder fails. ``next_clip_end_time``
                is set to ``window.nominal_clip_end_time``.
        """
        clip_name, _ = get_readable_clip_name(self.source_id, clip_start, self.tz_name)
        self.wav_dir.mkdir(parents=True, exist_ok=True)
        wav_path = self.wav_dir / f"{clip_name}.wav"

        with tempfile.TemporaryDirectory(prefix="hls_clip_") as tmp:
            tmp_dir = Path(tmp)
            parts = self._download_segments(playlist_url, segments, window, tmp_dir)
            if not parts:
                logger.warning("No segments downloaded for %s", clip_name)
                return None

            concatenated = tmp_dir / f"{clip_name}.ts"
            with open(concatenated, "wb") as out:
                for part in parts:
                    out.write(part.read_bytes())

            try:
                self.transcoder(concatenated, wav_path, overwrite)
            except TranscodeError as e:
                e.next_clip_end_time = window.nominal_clip_end_time
                raise

        logger.info(
            "Clip %s ready (%d/%d segments)",
            clip_name, len(parts), window.segments_per_clip,
        )
        return Clip(
            path=wav_path,
            start_time=clip_start,
            end_time=clip_end,
            source_id=self.source_id,
        )


class LiveHlsStream(_HlsStreamBase):
    """Clip source following the newest folder of a live stream."""

    def is_stream_over(self) -> bool:
        return False

    def get_next_clip(self, current_clip_end_time: datetime) -> NextClip:
        """Produce the clip that follows ``current_clip_end_time``.

        Blocks on the clock until ``LIVE_LAG_SEC`` after the cursor so the
        stream has had time to publish the audio.
        """
        sleep_until(self.clock, current_clip_end_time + timedelta(seconds=LIVE_LAG_SEC))
        no_clip = NextClip(None, current_clip_end_time)

        try:
            token = self._fetch_text(f"{self.stream_base}/latest.txt").strip()
        except StreamFetchError as e:
            logger.warning("Could not read latest folder: %s", e)
            return no_clip

        try:
            folder_epoch = int(token)
        except ValueError:
            error = StreamConfigError(
                message=f"Latest folder token is not a unix epoch: {token!r}",
                code="INVALID_FOLDER_ID",
                details={"token": token},
            )
            logger.error("%s", error)
            return no_clip

        try:
            playlist_url, segments = self._fetch_playlist(folder_epoch)
        except StreamFetchError as e:
            logger.warning("Could not read playlist: %s", e)
            return no_clip

        if not segments:
            logger.info("Playlist for folder %d has no segments yet", folder_epoch)
            return no_clip

        try:
            window = plan_live_window(
                segments,
                current_clip_end_time,
                folder_epoch,
                self.polling_interval,
                self.audio_offset,
            )
        except PlaylistError as e:
            logger.warning("Cannot plan against folder %d: %s", folder_epoch, e)
            return no_clip

        if window is None:
            logger.info("Not enough data in folder %d yet", folder_epoch)
            return no_clip

        clip_end = window.nominal_clip_end_time
        if not window.available:
            logger.info(
                "Window [%d, %d) not yet listed (%d segments), skipping to %s",
                window.segment_start_index,
                window.segment_end_index,
                window.total_segments,
                clip_end.isoformat(),
            )
            return NextClip(None, clip_end)

        clip_start = clip_end - timedelta(seconds=self.polling_interval)
        clip = self._assemble_clip(
            playlist_url, segments, window, clip_start, clip_end, overwrite=True
        )
        return NextClip(clip, clip_end)


class DateRangeHlsStream(_HlsStreamBase):
    """Clip source walking archived folders between two instants.

    Folder epochs default to ``range(start, end + 1, polling_interval)``;
    pass ``folder_epochs`` when the real folder list is known.
    """

    def __init__(
        self,
        stream_base: str,
        polling_interval: int,
        start_time: datetime,
        end_time: datetime,
        wav_dir: str | Path,
        folder_epochs: Sequence[int] | None = None,
        real_time: bool = False,
        overwrite_output: bool = False,
        **kwargs,
    ) -> None:
        super().__init__(stream_base, polling_interval, wav_dir, **kwargs)

        self.start_unix = to_unix_seconds(start_time)
        self.end_unix = to_unix_seconds(end_time)
        if self.end_unix < self.start_unix:
            raise StreamConfigError(
                message="Date range ends before it starts",
                code="INVALID_TIME_RANGE",
                details={"start": start_time.isoformat(), "end": end_time.isoformat()},
            )

        if folder_epochs is None:
            folder_epochs = range(self.start_unix, self.end_unix + 1, max(1, polling_interval))
        self.folder_epochs = list(folder_epochs)
        self.real_time = real_time
        self.overwrite_output = overwrite_output

        self._folder_index = 0
        self._clip_start_unix = self.start_unix
        self._over = False

    @property
    def current_folder(self) -> int | None:
        if self._folder_index < len(self.folder_epochs):
            return self.folder_epochs[self._folder_index]
        return None

    @property
    def clip_start_position(self) -> datetime:
        return from_unix_seconds(self._clip_start_unix)

    def is_stream_over(self) -> bool:
        """True once the range or the folder list is exhausted; stays true."""
        if not self._over:
            self._over = (
                self._clip_start_unix >= self.end_unix
                or self._folder_index >= len(self.folder_epochs)
            )
        return self._over

    def _advance_folder(self) -> None:
        self._folder_index += 1
        folder = self.current_folder
        if folder is not None:
            self._clip_start_unix = folder
        logger.debug("Advanced to folder index %d (%s)", self._folder_index, folder)

    def get_next_clip(self, current_clip_end_time: datetime) -> NextClip:
        no_clip = NextClip(None, current_clip_end_time)
        if self.is_stream_over():
            return no_clip

        if self.real_time:
            sleep_until(self.clock, current_clip_end_time + timedelta(seconds=LIVE_LAG_SEC))

        folder_epoch = self.current_folder
        try:
            playlist_url, segments = self._fetch_playlist(folder_epoch)
        except StreamFetchError as e:
            logger.warning("Skipping folder %d: %s", folder_epoch, e)
            self._advance_folder()
            return no_clip

        if not segments:
            logger.info("Folder %d has no segments, skipping", folder_epoch)
            self._advance_folder()
            return no_clip

        try:
            window = plan_date_range_window(
                segments,
                self._clip_start_unix,
                folder_epoch,
                self.polling_interval,
                self.audio_offset,
            )
        except PlaylistError as e:
            logger.warning("Skipping folder %d: %s", folder_epoch, e)
            self._advance_folder()
            return no_clip

        if not window.available:
            logger.info(
                "Folder %d ends before window [%d, %d), moving on",
                folder_epoch, window.segment_start_index, window.segment_end_index,
            )
            self._advance_folder()
            return no_clip

        clip_start = from_unix_seconds(self._clip_start_unix)
        clip_end = window.nominal_clip_end_time
        self._clip_start_unix += self.polling_interval

        clip = self._assemble_clip(
            playlist_url, segments, window, clip_start, clip_end,
            overwrite=self.overwrite_output,
        )
        return NextClip(clip, clip_end)
