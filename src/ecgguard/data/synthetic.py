"""
Synthetic ECG Stream Generator

Produces ECG-like signals and the irregular packet stream a wireless
single-lead sensor would send. Used by the CLI demo and by the tests.

Each beat is a sum of Gaussian waves (P, Q, R, S, T) placed relative to
the R peak. Optional degradations follow what real recordings show:
- Baseline wander from respiration
- Gaussian (muscle / electronic) noise
- Spike artifacts from electrode movement
"""

import numpy as np
from typing import Iterator, Optional

from .contracts import RawBatch


# (offset from R peak in s, amplitude in mV, width in s)
PQRST_WAVES = (
    (-0.20, 0.15, 0.025),   # P
    (-0.03, -0.15, 0.008),  # Q
    (0.00, 1.20, 0.010),    # R
    (0.03, -0.25, 0.009),   # S
    (0.25, 0.30, 0.040),    # T
)


def synthetic_ecg(
    duration_sec: float = 10.0,
    fs: int = 250,
    heart_rate_bpm: float = 72.0,
    noise_std: float = 0.02,
    baseline_wander: float = 0.0,
    spike_rate_hz: float = 0.0,
    random_seed: Optional[int] = None,
) -> np.ndarray:
    """
    Generate a single-lead ECG-like signal in mV

    Args:
        duration_sec: Signal duration in seconds
        fs: Sampling frequency in Hz
        heart_rate_bpm: Mean heart rate
        noise_std: Std of additive Gaussian noise (mV)
        baseline_wander: Amplitude of 0.3 Hz respiratory drift (mV)
        spike_rate_hz: Mean rate of electrode spike artifacts
        random_seed: Seed for reproducibility

    Returns:
        Signal array of length duration_sec * fs
    """
    rng = np.random.RandomState(random_seed)
    n_samples = int(round(duration_sec * fs))
    t = np.arange(n_samples) / fs
    ecg = np.zeros(n_samples)

    rr = 60.0 / heart_rate_bpm
    beat_time = 0.25
    while beat_time < duration_sec + 0.5:
        for offset, amplitude, width in PQRST_WAVES:
            center = beat_time + offset
            ecg += amplitude * np.exp(-0.5 * ((t - center) / width) ** 2)
        # Mild heart rate variability
        beat_time += rr * (1.0 + 0.03 * rng.randn())

    if baseline_wander > 0:
        ecg += baseline_wander * np.sin(2 * np.pi * 0.3 * t + rng.uniform(0, 2 * np.pi))

    if noise_std > 0:
        ecg += noise_std * rng.randn(n_samples)

    if spike_rate_hz > 0:
        n_spikes = rng.poisson(spike_rate_hz * duration_sec)
        positions = rng.randint(0, n_samples, size=n_spikes)
        ecg[positions] += rng.choice([-1, 1], size=n_spikes) * rng.uniform(3.0, 6.0, size=n_spikes)

    return ecg


def to_adc_counts(signal_mv: np.ndarray, scale: float = 0.001) -> np.ndarray:
    """
    Quantize a mV signal to signed 16-bit ADC counts

    Args:
        signal_mv: Signal in mV
        scale: mV per count

    Returns:
        int16 counts, clipped to the int16 range
    """
    counts = np.round(np.asarray(signal_mv, dtype=np.float64) / scale)
    info = np.iinfo(np.int16)
    return np.clip(counts, info.min, info.max).astype(np.int16)


def iter_batches(
    counts: np.ndarray,
    min_size: int = 1,
    max_size: int = 40,
    random_seed: Optional[int] = None,
) -> Iterator[RawBatch]:
    """
    Split a count stream into irregularly sized packets

    Args:
        counts: int16 sample stream
        min_size: Smallest packet size
        max_size: Largest packet size
        random_seed: Seed for reproducibility

    Yields:
        RawBatch objects in stream order
    """
    if min_size < 1 or max_size < min_size:
        raise ValueError("Need 1 <= min_size <= max_size")
    rng = np.random.RandomState(random_seed)
    counts = np.asarray(counts, dtype=np.int16)
    pos = 0
    while pos < counts.shape[0]:
        size = rng.randint(min_size, max_size + 1)
        yield RawBatch(counts[pos:pos + size])
        pos += size


def encode_batch(batch: RawBatch) -> bytes:
    """Little-endian payload a sensor would notify for this batch"""
    return batch.to_bytes()
