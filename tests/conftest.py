"""
pytest configuration and shared fixtures.

This module provides shared fixtures and configuration for all tests.
"""

import pytest
import numpy as np
import sys
import os

# Add src to path for all tests
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))


# =============================================================================
# CONFIGURATION
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )


# =============================================================================
# SHARED FIXTURES
# =============================================================================

@pytest.fixture
def random_seed():
    """Set random seed for reproducibility."""
    np.random.seed(42)
    return 42


@pytest.fixture
def fs():
    """Sampling rate of the sensor stream."""
    return 250


@pytest.fixture
def sine_window(fs):
    """2500 samples of a 1 Hz, 0.5 mV sine (10 full cycles)."""
    t = np.arange(2500) / fs
    return 0.5 * np.sin(2 * np.pi * 1.0 * t)


@pytest.fixture
def sample_ecg_signal(fs):
    """12 seconds of clean synthetic ECG in mV."""
    from ecgguard.data.synthetic import synthetic_ecg
    return synthetic_ecg(duration_sec=12.0, fs=fs, noise_std=0.01, random_seed=7)


@pytest.fixture
def sample_ecg_counts(sample_ecg_signal):
    """The clean ECG as int16 ADC counts."""
    from ecgguard.data.synthetic import to_adc_counts
    return to_adc_counts(sample_ecg_signal)


# =============================================================================
# ORACLE FIXTURES
# =============================================================================

@pytest.fixture
def identity_oracle():
    """Perfect reconstruction oracle."""
    from ecgguard.models.oracle import IdentityOracle
    return IdentityOracle()


@pytest.fixture
def zero_oracle():
    """Oracle that reconstructs every window as a flat line."""
    return lambda window: np.zeros_like(window)


class FakeClock:
    """Manually advanced wall clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def fake_clock():
    return FakeClock()
