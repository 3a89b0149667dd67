"""Audio preprocessing: downmix, resample and fixed-length fitting."""

from functools import lru_cache

import torch
import torchaudio.transforms as T

from .errors import AudioPreprocessError
from .utils import ensure_float32_torch


@lru_cache(maxsize=8)
def _get_resampler(orig_freq: int, new_freq: int) -> T.Resample:
    return T.Resample(orig_freq=orig_freq, new_freq=new_freq)


def downmix(waveform: torch.Tensor) -> torch.Tensor:
    """Average all channels with equal weight into shape [1, T]."""
    if waveform.shape[0] == 1:
        return waveform
    return waveform.mean(dim=0, keepdim=True)


def fit_length(waveform: torch.Tensor, num_samples: int) -> torch.Tensor:
    """Truncate or right-pad with zeros to exactly ``num_samples``.

    Examples:
        >>> fit_length(torch.ones(1, 3), 5)
        tensor([[1., 1., 1., 0., 0.]])
    """
    current = waveform.shape[-1]
    if current == num_samples:
        return waveform
    if current > num_samples:
        return waveform[..., :num_samples]
    pad = torch.zeros(
        *waveform.shape[:-1], num_samples - current,
        dtype=waveform.dtype,
        device=waveform.device,
    )
    return torch.cat([waveform, pad], dim=-1)


def preprocess_audio(
    waveform: torch.Tensor,
    sample_rate: int,
    target_sample_rate: int,
    to_mono: bool = True,
) -> tuple[torch.Tensor, int]:
    """Bring a decoded waveform to the feature extractor's canonical form.

    - Mono channel (equal-weight average, if to_mono=True)
    - Target sample rate
    - Float32 dtype, non-finite values replaced by zero

    Args:
        waveform: Input audio tensor with shape [channels, samples].
        sample_rate: Input sample rate in Hz.
        target_sample_rate: Output sample rate in Hz.
        to_mono: Whether to convert to mono.

    Returns:
        Tuple of (processed_waveform, target_sample_rate).

    Raises:
        AudioPreprocessError: If the shape is wrong or resampling fails.

    Examples:
        >>> waveform = torch.randn(2, 32000)  # Stereo, 16kHz
        >>> processed, sr = preprocess_audio(waveform, 16000, 20000)
        >>> processed.shape
        torch.Size([1, 40000])
    """
    waveform = ensure_float32_torch(waveform)

    if waveform.ndim != 2:
        raise AudioPreprocessError(
            message=f"Expected 2D tensor [channels, samples], got shape {list(waveform.shape)}",
            code="INVALID_SHAPE",
            details={"shape": list(waveform.shape)},
        )

    if to_mono:
        waveform = downmix(waveform)

    if sample_rate != target_sample_rate:
        try:
            waveform = _get_resampler(sample_rate, target_sample_rate)(waveform)
        except Exception as e:
            raise AudioPreprocessError(
                message=f"Resampling failed: {e}",
                code="RESAMPLE_FAILED",
                details={
                    "original_sr": sample_rate,
                    "target_sr": target_sample_rate,
                    "error": str(e),
                },
            ) from e

    waveform = torch.nan_to_num(waveform, nan=0.0, posinf=0.0, neginf=0.0)

    return waveform, target_sample_rate
