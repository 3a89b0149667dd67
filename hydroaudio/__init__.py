"""Audio I/O module: PCM containers, loading, preprocessing and features.

This module provides the audio side of the hydrophone inference pipeline:
- Parsing, measuring and slicing RIFF/WAVE containers
- Loading WAV audio from files or bytes
- Downmixing, resampling and fixed-length fitting
- Mel spectrogram features for the classifier

Example:
    >>> from hydroaudio import extract_features, slice_wav, wav_duration
    >>> with open("clip.wav", "rb") as f:
    ...     data = f.read()
    >>> wav_duration(data)
    60.0
    >>> extract_features(slice_wav(data, 0, 2)).shape
    torch.Size([256, 256])
"""

from .errors import (
    AudioDecodeError,
    AudioIOError,
    AudioPreprocessError,
    WavFormatError,
)
from .features import (
    DEFAULT_SPECTROGRAM_CONFIG,
    SpectrogramConfig,
    extract_features,
    extract_features_from_waveform,
)
from .loader import load_audio
from .preprocess import downmix, fit_length, preprocess_audio
from .utils import ensure_float32_torch, seconds_to_samples
from .wav import WavInfo, parse_wav_header, slice_wav, slice_wav_file, wav_duration, write_wav


__all__ = [
    # Errors
    "AudioIOError",
    "AudioDecodeError",
    "AudioPreprocessError",
    "WavFormatError",
    # Container codec
    "WavInfo",
    "parse_wav_header",
    "wav_duration",
    "slice_wav",
    "slice_wav_file",
    "write_wav",
    # Loader
    "load_audio",
    # Preprocessing
    "preprocess_audio",
    "downmix",
    "fit_length",
    # Features
    "SpectrogramConfig",
    "DEFAULT_SPECTROGRAM_CONFIG",
    "extract_features",
    "extract_features_from_waveform",
    # Utils
    "seconds_to_samples",
    "ensure_float32_torch",
]
