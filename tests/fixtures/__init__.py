"""Test fixtures for audio and stream tests.

This module provides utilities for generating in-memory WAV files and HLS
playlists for testing. No binary files are committed - fixtures are
generated programmatically.
"""

import io
import threading
from datetime import datetime, timedelta
from pathlib import Path

import httpx
import numpy as np
import soundfile as sf
import torch

from hydroaudio.wav import write_wav
from hls.errors import TranscodeError


def generate_sine_wav_bytes(
    frequency: float = 440.0,
    duration_sec: float = 1.0,
    sample_rate: int = 16000,
    amplitude: float = 0.5,
    channels: int = 1,
    subtype: str = "PCM_16",
) -> bytes:
    """Generate a sine wave WAV file as bytes.

    Args:
        frequency: Sine wave frequency in Hz.
        duration_sec: Duration in seconds.
        sample_rate: Sample rate in Hz.
        amplitude: Amplitude (0.0 to 1.0).
        channels: Number of channels (1=mono, 2=stereo).
        subtype: soundfile subtype, e.g. "PCM_16" or "FLOAT".

    Returns:
        WAV file as bytes.
    """
    num_samples = int(sample_rate * duration_sec)
    t = np.arange(num_samples, dtype=np.float32) / sample_rate
    signal = (amplitude * np.sin(2 * np.pi * frequency * t)).astype(np.float32)

    if channels > 1:
        signal = np.column_stack([signal] * channels)

    buffer = io.BytesIO()
    sf.write(buffer, signal, sample_rate, format="WAV", subtype=subtype)
    buffer.seek(0)
    return buffer.read()


def generate_silence_wav_bytes(
    duration_sec: float = 1.0,
    sample_rate: int = 16000,
    channels: int = 1,
) -> bytes:
    """Generate a silent (all zeros) WAV file as bytes.

    Args:
        duration_sec: Duration in seconds.
        sample_rate: Sample rate in Hz.
        channels: Number of channels.

    Returns:
        WAV file as bytes.
    """
    num_samples = int(sample_rate * duration_sec)
    signal = np.zeros(num_samples, dtype=np.float32)

    if channels > 1:
        signal = np.column_stack([signal] * channels)

    buffer = io.BytesIO()
    sf.write(buffer, signal, sample_rate, format="WAV", subtype="PCM_16")
    buffer.seek(0)
    return buffer.read()


def generate_pcm16_wav_bytes(
    duration_sec: float = 1.0,
    sample_rate: int = 16000,
    channels: int = 1,
    seed: int = 42,
) -> bytes:
    """Generate a canonical 44-byte-header PCM16 WAV of random samples.

    Built with ``hydroaudio.wav.write_wav`` so header layout is exact.

    Args:
        duration_sec: Duration in seconds.
        sample_rate: Sample rate in Hz.
        channels: Number of channels.
        seed: Random seed for reproducibility.

    Returns:
        WAV file as bytes.
    """
    rng = np.random.default_rng(seed)
    num_frames = int(sample_rate * duration_sec)
    samples = rng.integers(-8000, 8000, size=num_frames * channels, dtype=np.int16)
    return write_wav(samples.astype("<i2").tobytes(), sample_rate, channels, 16)


def build_playlist(
    durations: list[float],
    prefix: str = "live",
    header: bool = True,
) -> str:
    """Build an HLS media playlist with one entry per duration.

    Segment URIs are ``{prefix}{index:03d}.ts``.
    """
    lines = []
    if header:
        lines += ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-TARGETDURATION:10"]
    for i, duration in enumerate(durations):
        lines.append(f"#EXTINF:{duration},")
        lines.append(f"{prefix}{i:03d}.ts")
    return "\n".join(lines) + "\n"


class FakeClock:
    """Clock whose time only moves when something sleeps on it."""

    def __init__(self, start: datetime) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        if seconds > 0:
            self.current += timedelta(seconds=seconds)


class FakeTranscoder:
    """Transcoder that writes a PCM16 WAV instead of running ffmpeg.

    Records every call and the bytes of the concatenated input.
    """

    def __init__(self, duration_sec: float = 6.0, fail: bool = False) -> None:
        self.duration_sec = duration_sec
        self.fail = fail
        self.calls: list[dict] = []

    def __call__(self, input_path: Path, output_path: Path, overwrite: bool) -> None:
        self.calls.append(
            {
                "input": Path(input_path),
                "output": Path(output_path),
                "overwrite": overwrite,
                "payload": Path(input_path).read_bytes(),
            }
        )
        if self.fail:
            raise TranscodeError(message="ffmpeg exited with code 1")
        Path(output_path).write_bytes(
            generate_pcm16_wav_bytes(duration_sec=self.duration_sec, sample_rate=8000)
        )


class FakeClassifier:
    """Deterministic classifier returning scores from a list, in call order."""

    def __init__(self, scores: list[float] | None = None, default: float = 0.0) -> None:
        self.scores = list(scores or [])
        self.default = default
        self.calls = 0
        self.shapes: list[tuple[int, ...]] = []
        self._lock = threading.Lock()

    def predict(self, features: torch.Tensor) -> float:
        with self._lock:
            self.shapes.append(tuple(features.shape))
            index = self.calls
            self.calls += 1
        if index < len(self.scores):
            return self.scores[index]
        return self.default


CONNECT_ERROR = object()


class FakeHlsServer:
    """In-memory HLS bucket served through ``httpx.MockTransport``.

    Routes map absolute URLs to bytes (200), an int status code, or
    ``CONNECT_ERROR``. Unknown URLs answer 404.
    """

    def __init__(self, stream_base: str) -> None:
        self.stream_base = stream_base.rstrip("/")
        self.routes: dict[str, object] = {}
        self.requests: list[str] = []

    def set_latest(self, folder) -> None:
        self.routes[f"{self.stream_base}/latest.txt"] = f"{folder}\n".encode()

    def playlist_url(self, folder) -> str:
        return f"{self.stream_base}/hls/{folder}/live.m3u8"

    def segment_payload(self, folder, index: int) -> bytes:
        return f"<{folder}:seg{index:03d}>".encode()

    def add_folder(self, folder, count: int, duration: float = 10.0) -> None:
        """Publish a folder with ``count`` segments of ``duration`` seconds."""
        self.routes[self.playlist_url(folder)] = build_playlist([duration] * count).encode()
        for i in range(count):
            url = f"{self.stream_base}/hls/{folder}/live{i:03d}.ts"
            self.routes[url] = self.segment_payload(folder, i)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url, 404)
        if route is CONNECT_ERROR:
            raise httpx.ConnectError("connection refused", request=request)
        if isinstance(route, int):
            return httpx.Response(route)
        return httpx.Response(200, content=route)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))
