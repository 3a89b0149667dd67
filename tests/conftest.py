"""Pytest configuration and fixtures for the test suite."""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest
import torch

# Ensure project root is in path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from tests.fixtures import FakeClassifier, FakeClock, FakeTranscoder  # noqa: E402


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock starting at 2024-07-01T19:00:00Z."""
    return FakeClock(datetime(2024, 7, 1, 19, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def fake_transcoder() -> FakeTranscoder:
    return FakeTranscoder()


@pytest.fixture
def fake_classifier() -> FakeClassifier:
    return FakeClassifier()


@pytest.fixture
def sample_waveform() -> tuple[torch.Tensor, int]:
    """Generate a sample waveform for testing.

    Returns:
        Tuple of (waveform, sample_rate) where waveform is [1, 40000] (2 seconds).
    """
    sample_rate = 20000
    duration = 2.0
    t = torch.arange(int(sample_rate * duration)) / sample_rate
    # Tonal content in the band whale calls occupy
    waveform = torch.zeros_like(t)
    for freq in [500, 1500, 3000, 6000]:
        waveform += torch.sin(2 * torch.pi * freq * t) / 4
    waveform = waveform.unsqueeze(0).float()
    return waveform, sample_rate


def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow"
    )
