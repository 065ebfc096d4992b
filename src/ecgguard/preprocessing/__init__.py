# Signal conditioning module
from .signal_processing import (
    SignalConditioner,
    sanitize,
    fit_line,
    detrend_linear,
    savgol_smooth,
    normalize_signal,
    SAVGOL_NUMERATORS,
    SAVGOL_NORM,
)
