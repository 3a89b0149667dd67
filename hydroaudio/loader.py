"""Decoding of PCM containers into float tensors."""

import io
from pathlib import Path
from typing import Union

import numpy as np
import soundfile as sf
import torch

from .errors import AudioDecodeError


def load_audio(source: Union[str, Path, bytes]) -> tuple[torch.Tensor, int]:
    """Decode a WAV file or in-memory container.

    Args:
        source: Path to a WAV file, or the container's raw bytes.

    Returns:
        Tuple of (waveform, sample_rate) where waveform is a float32 tensor
        with shape [channels, num_samples].

    Raises:
        AudioDecodeError: If the source is missing, empty or undecodable.

    Examples:
        >>> waveform, sr = load_audio("wav_dir/rpi_orcasound_lab_2024_07_01_12_00_00_-07:00.wav")
        >>> waveform.shape
        torch.Size([1, 2880000])
    """
    if isinstance(source, bytes):
        if not source:
            raise AudioDecodeError(
                message="Audio data is empty",
                code="EMPTY_FILE",
                details={"bytes_length": 0},
            )
        label = f"<{len(source)} bytes>"
        handle = io.BytesIO(source)
    else:
        path = Path(source)
        if not path.is_file():
            raise AudioDecodeError(
                message=f"Audio file not found: {path}",
                code="FILE_NOT_FOUND",
                details={"path": str(path)},
            )
        if path.stat().st_size == 0:
            raise AudioDecodeError(
                message=f"Audio file is empty: {path}",
                code="EMPTY_FILE",
                details={"path": str(path)},
            )
        label = str(path)
        handle = str(path)

    try:
        # (frames, channels) even for mono
        frames, sample_rate = sf.read(handle, dtype="float32", always_2d=True)
    except Exception as e:
        raise AudioDecodeError(
            message=f"Failed to decode {label}: {e}",
            code="INVALID_WAV",
            details={"source": label, "error": str(e)},
        ) from e

    if frames.size == 0:
        raise AudioDecodeError(
            message=f"No samples in {label}",
            code="EMPTY_AUDIO",
            details={"source": label},
        )

    return torch.from_numpy(np.ascontiguousarray(frames.T)), int(sample_rate)
