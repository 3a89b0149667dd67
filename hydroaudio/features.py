"""Mel spectrogram features for the whale-call classifier.

Turns one audio window into the fixed-shape tensor the classifier expects:

1. Decode the PCM container and downmix/resample (``preprocess_audio``)
2. Pad or truncate to ``duration_sec``
3. Frame (no centering), symmetric Hann window, real FFT, power spectrum
4. Project through an HTK triangular mel filterbank
5. Convert power to dB and clip to ``top_db`` below the window's peak
6. Resize the time axis to ``n_frames``
7. Min-max normalize to [0, 1]

The constants are fixed per deployment; ``SpectrogramConfig`` exists so they
live in one place, not so they can be tuned at run time.

Example:
    >>> from hydroaudio.features import SpectrogramConfig, extract_features
    >>> features = extract_features("clip_0_2.wav")
    >>> features.shape
    torch.Size([256, 256])
"""

import logging
import math
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Union

import torch
import torchaudio.functional as AF

from .errors import AudioIOError
from .loader import load_audio
from .preprocess import fit_length, preprocess_audio
from .utils import seconds_to_samples


logger = logging.getLogger(__name__)

AMIN = 1e-10


@dataclass(frozen=True)
class SpectrogramConfig:
    """Feature extraction constants.

    Attributes:
        sample_rate: Rate every window is resampled to.
        n_fft: FFT size (also the analysis window length).
        hop_length: Frame hop in samples.
        n_mels: Number of mel bands (output rows).
        f_min: Lowest filterbank frequency in Hz.
        f_max: Highest filterbank frequency in Hz.
        top_db: Dynamic range kept below the window's peak.
        duration_sec: Length every window is padded or truncated to.
        n_frames: Number of output time frames (output columns).
        downmix: Whether multi-channel input is averaged to mono.
    """

    sample_rate: int = 20000
    n_fft: int = 2560
    hop_length: int = 256
    n_mels: int = 256
    f_min: float = 0.0
    f_max: float = 10000.0
    top_db: float = 100.0
    duration_sec: float = 4.0
    n_frames: int = 256
    downmix: bool = True

    @property
    def num_samples(self) -> int:
        """Samples per window after padding/truncation."""
        return seconds_to_samples(self.duration_sec, self.sample_rate)

    @property
    def shape(self) -> tuple[int, int]:
        """Output tensor shape (n_mels, n_frames)."""
        return (self.n_mels, self.n_frames)


DEFAULT_SPECTROGRAM_CONFIG = SpectrogramConfig()


@lru_cache(maxsize=4)
def _hann_window(n_fft: int) -> torch.Tensor:
    return torch.hann_window(n_fft, periodic=False, dtype=torch.float64)


@lru_cache(maxsize=4)
def _mel_filterbank(
    n_fft: int,
    sample_rate: int,
    n_mels: int,
    f_min: float,
    f_max: float,
) -> torch.Tensor:
    # (n_fft // 2 + 1, n_mels)
    return AF.melscale_fbanks(
        n_freqs=n_fft // 2 + 1,
        f_min=f_min,
        f_max=f_max,
        n_mels=n_mels,
        sample_rate=sample_rate,
        norm=None,
        mel_scale="htk",
    ).to(torch.float64)


def zero_features(config: SpectrogramConfig = DEFAULT_SPECTROGRAM_CONFIG) -> torch.Tensor:
    """All-zero tensor of the output shape, used for degenerate input."""
    return torch.zeros(config.shape, dtype=torch.float32)


def power_spectrogram(samples: torch.Tensor, n_fft: int, hop_length: int) -> torch.Tensor:
    """Power spectrum of non-centered Hann-windowed frames.

    Args:
        samples: 1-D signal.
        n_fft: Frame and FFT length.
        hop_length: Frame hop.

    Returns:
        Tensor of shape [n_fft // 2 + 1, n_frames].
    """
    samples = samples.to(torch.float64)
    if samples.numel() < n_fft:
        samples = fit_length(samples, n_fft)

    frames = samples.unfold(0, n_fft, hop_length) * _hann_window(n_fft)
    spectrum = torch.fft.rfft(frames, n=n_fft, dim=-1)
    return (spectrum.real ** 2 + spectrum.imag ** 2).T


def mel_spectrogram(samples: torch.Tensor, config: SpectrogramConfig) -> torch.Tensor:
    """Mel-band power, shape [n_mels, n_frames_raw]."""
    power = power_spectrogram(samples, config.n_fft, config.hop_length)
    fbank = _mel_filterbank(config.n_fft, config.sample_rate, config.n_mels, config.f_min, config.f_max)
    return fbank.T @ power


def power_to_db(mel: torch.Tensor, top_db: float) -> torch.Tensor:
    """10*log10 of power, floored at ``AMIN`` and clipped to ``top_db`` below the peak."""
    return AF.amplitude_to_DB(mel, multiplier=10.0, amin=AMIN, db_multiplier=0.0, top_db=top_db)


def resize_time_axis(spec: torch.Tensor, n_frames: int) -> torch.Tensor:
    """Resize the last axis to ``n_frames`` columns.

    Shorter inputs repeat their last column. Longer inputs are block-averaged:
    output column ``x`` is the mean of source columns
    ``floor(x * s) .. min(cols - 1, floor((x + 1) * s))`` inclusive, where
    ``s = cols / n_frames``. Neighbouring blocks share their boundary column.
    """
    cols = spec.shape[-1]
    if cols == n_frames:
        return spec.clone()
    if cols < n_frames:
        tail = spec[..., -1:].expand(*spec.shape[:-1], n_frames - cols)
        return torch.cat([spec, tail], dim=-1)

    scale = cols / n_frames
    out = torch.empty(*spec.shape[:-1], n_frames, dtype=spec.dtype)
    for x in range(n_frames):
        i_start = math.floor(x * scale)
        i_end = min(cols - 1, math.floor((x + 1) * scale))
        if i_start > i_end:
            out[..., x] = spec[..., min(i_start, cols - 1)]
        else:
            out[..., x] = spec[..., i_start:i_end + 1].mean(dim=-1)
    return out


def minmax_normalize(spec: torch.Tensor) -> torch.Tensor:
    """Scale to [0, 1]; a constant input maps to all zeros."""
    low = spec.min()
    value_range = spec.max() - low
    if value_range <= 0:
        value_range = torch.ones((), dtype=spec.dtype)
    return (spec - low) / value_range


def extract_features_from_waveform(
    waveform: torch.Tensor,
    sample_rate: int,
    config: SpectrogramConfig = DEFAULT_SPECTROGRAM_CONFIG,
) -> torch.Tensor:
    """Run the feature pipeline on an already-decoded waveform [channels, T].

    Returns:
        Float32 tensor of shape (n_mels, n_frames) in [0, 1].
    """
    if waveform.numel() == 0:
        return zero_features(config)

    mono, _ = preprocess_audio(
        waveform,
        sample_rate=sample_rate,
        target_sample_rate=config.sample_rate,
        to_mono=config.downmix,
    )
    samples = fit_length(mono[0], config.num_samples)

    mel = mel_spectrogram(samples, config)
    mel_db = power_to_db(mel, config.top_db)
    resized = resize_time_axis(mel_db, config.n_frames)
    return minmax_normalize(resized).to(torch.float32)


def extract_features(
    path_or_bytes: Union[str, Path, bytes],
    config: SpectrogramConfig = DEFAULT_SPECTROGRAM_CONFIG,
) -> torch.Tensor:
    """Load a PCM container and compute its normalized mel spectrogram.

    Unreadable, missing or zero-length audio yields an all-zero tensor so the
    caller always receives a well-formed shape.

    Args:
        path_or_bytes: Path to a WAV file or its raw bytes.
        config: Feature constants.

    Returns:
        Float32 tensor of shape (n_mels, n_frames).
    """
    try:
        waveform, sample_rate = load_audio(path_or_bytes)
        return extract_features_from_waveform(waveform, sample_rate, config)
    except AudioIOError as e:
        logger.warning("Degenerate audio window, using zero features: %s", e)
        return zero_features(config)
