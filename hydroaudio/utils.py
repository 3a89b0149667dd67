"""Small tensor and unit helpers shared by the audio modules."""

import torch


def seconds_to_samples(sec: float, sample_rate: int) -> int:
    """Convert seconds to sample count (truncating, as frame counts do).

    Examples:
        >>> seconds_to_samples(4.0, 20000)
        80000
    """
    return int(sec * sample_rate)


def ensure_float32_torch(waveform) -> torch.Tensor:
    if not isinstance(waveform, torch.Tensor):
        waveform = torch.as_tensor(waveform)
    return waveform.to(dtype=torch.float32)
