"""
ECG Signal Conditioning Module
Deterministic sanitize -> detrend -> smooth chain applied to every window
"""

import numpy as np
from scipy import ndimage
from typing import Union

from ..data.contracts import AnalysisWindow, ConditionedWindow
from ..exceptions import DegenerateWindow


# Savitzky-Golay smoothing, 11 taps, quadratic/cubic fit.
# Anomaly thresholds downstream were tuned against exactly these ratios.
SAVGOL_NUMERATORS = np.array(
    [-36.0, 9.0, 44.0, 69.0, 84.0, 89.0, 84.0, 69.0, 44.0, 9.0, -36.0]
)
SAVGOL_NORM = 429.0


def sanitize(ecg_signal: np.ndarray) -> np.ndarray:
    """
    Replace NaN and +/-inf samples with 0.0

    Args:
        ecg_signal: Raw samples

    Returns:
        New array, finite everywhere
    """
    x = np.array(ecg_signal, dtype=np.float64).reshape(-1)
    x[~np.isfinite(x)] = 0.0
    return x


def fit_line(ecg_signal: np.ndarray):
    """
    Closed-form least-squares line y = m*i + c over the sample index

    Args:
        ecg_signal: Samples

    Returns:
        (slope, intercept)

    Raises:
        DegenerateWindow: the fit is undefined (n <= 1)
    """
    y = np.asarray(ecg_signal, dtype=np.float64)
    n = y.shape[0]
    i = np.arange(n, dtype=np.float64)

    sum_x = i.sum()
    sum_y = y.sum()
    sum_xy = np.dot(i, y)
    sum_xx = np.dot(i, i)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        raise DegenerateWindow(f"No line fit for {n} samples")

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return slope, intercept


def detrend_linear(ecg_signal: np.ndarray) -> np.ndarray:
    """
    Remove linear baseline drift

    Fits a least-squares line over the sample index and subtracts it.
    A window of length 0 or 1 has no defined fit and is returned as-is.

    Args:
        ecg_signal: Sanitized samples

    Returns:
        Detrended copy of the signal
    """
    y = np.array(ecg_signal, dtype=np.float64).reshape(-1)
    try:
        slope, intercept = fit_line(y)
    except DegenerateWindow:
        return y
    return y - (slope * np.arange(y.shape[0], dtype=np.float64) + intercept)


def savgol_smooth(ecg_signal: np.ndarray) -> np.ndarray:
    """
    Fixed 11-tap Savitzky-Golay smoothing

    Centered convolution. Near both edges the index is clamped to the
    nearest valid sample instead of zero padding, so the ends do not decay.

    Args:
        ecg_signal: Detrended samples

    Returns:
        Smoothed copy of the signal
    """
    x = np.array(ecg_signal, dtype=np.float64).reshape(-1)
    if x.shape[0] == 0:
        return x
    # mode='nearest' replicates the boundary sample, i.e. clamps the index
    summed = ndimage.correlate1d(x, SAVGOL_NUMERATORS, mode='nearest')
    return summed / SAVGOL_NORM


def normalize_signal(ecg_signal: np.ndarray, method: str = 'center') -> np.ndarray:
    """
    Normalize a window before it reaches the reconstruction model

    Args:
        ecg_signal: Conditioned samples
        method: 'center' (mean removal) or 'zscore' (mean and std)

    Returns:
        Normalized copy of the signal
    """
    x = np.array(ecg_signal, dtype=np.float64).reshape(-1)
    if x.shape[0] == 0:
        return x
    mean = x.mean()

    if method == 'center':
        return x - mean

    elif method == 'zscore':
        std = x.std()
        if std < 1e-10:
            return x - mean
        return (x - mean) / std

    else:
        raise ValueError(f"Unknown normalization method: {method}")


class SignalConditioner:
    """
    ECG window conditioner

    Implements, in this fixed order:
    - Sanitize (non-finite samples -> 0.0)
    - Linear detrend (baseline drift removal)
    - Savitzky-Golay smoothing (high-frequency noise removal)

    Conditioning is a pure function of the input samples: identical input
    always gives identical output, and the input is never modified.
    """

    def condition(self, window: Union[AnalysisWindow, np.ndarray]) -> ConditionedWindow:
        """
        Apply the full conditioning chain

        Args:
            window: Analysis window (or bare sample array)

        Returns:
            Freshly allocated ConditionedWindow of the same length
        """
        if isinstance(window, AnalysisWindow):
            samples = window.samples
            session_id, sequence = window.session_id, window.sequence
        else:
            samples = np.asarray(window, dtype=np.float64)
            session_id, sequence = 0, 0

        processed = self.condition_array(samples)
        return ConditionedWindow(processed, session_id=session_id, sequence=sequence)

    def condition_array(self, ecg_signal: np.ndarray) -> np.ndarray:
        """Conditioning chain on a plain array"""
        processed = sanitize(ecg_signal)
        processed = detrend_linear(processed)
        processed = savgol_smooth(processed)
        return processed
