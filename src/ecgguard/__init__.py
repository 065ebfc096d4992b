"""
ECGGuard: streaming single-lead ECG anomaly detection.

Packets of int16 samples are buffered into overlapping 10 s windows,
conditioned (sanitize, detrend, Savitzky-Golay), gated for flatline and
motion artifact, and scored by a reconstruction model with structural
false-positive suppression.
"""

__version__ = "0.3.0"

from .config import PipelineConfig, PipelineMode, NormalizationMode, get_default_config
from .data import Decision, Verdict, RawBatch
from .detection import PipelineOrchestrator
from .exceptions import (
    PipelineError,
    TransientOracleFailure,
    DegenerateWindow,
    ConfigurationError,
)
from .streaming.session import StreamSession

__all__ = [
    'PipelineConfig',
    'PipelineMode',
    'NormalizationMode',
    'get_default_config',
    'Decision',
    'Verdict',
    'RawBatch',
    'PipelineOrchestrator',
    'StreamSession',
    'PipelineError',
    'TransientOracleFailure',
    'DegenerateWindow',
    'ConfigurationError',
]
