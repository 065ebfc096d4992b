"""
Error taxonomy for the ECGGuard streaming pipeline.

Nothing here is fatal to the process. The orchestrator is the only place
these are turned into decisions; DSP, gate and scorer code just raise.
Artifact rejection is a verdict, not an exception.
"""


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class TransientOracleFailure(PipelineError):
    """
    The inference oracle failed for one window.

    Raised when the oracle throws, times out, or hands back a
    reconstruction that does not match the input length. Recoverable:
    the window's score is dropped and the stream continues.
    """


class DegenerateWindow(PipelineError):
    """Window too short or empty for a statistic to be defined."""


class ConfigurationError(PipelineError, ValueError):
    """Invalid pipeline configuration."""
