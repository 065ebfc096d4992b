"""
Reconstruction-error Anomaly Scorer.

Turns a conditioned window into an anomaly score:

1. Normalize the window (mean-centering by default)
2. Ask the inference oracle for a reconstruction
3. Raw error = mean squared reconstruction error
4. Structural check: is the error concentrated in the QRS-like
   high-amplitude samples, or spread evenly over the window?
5. Suppress the score to 0.0 when a high error is not structural

Diffuse reconstruction error (noise, electrode movement) raises the raw
error without the model having mis-modelled a heartbeat, so a high score
is only kept when the error sits where the beats are.

The scorer never decides whether a failure is user-visible: oracle errors
are re-raised as TransientOracleFailure for the orchestrator to handle.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from ..config.pipeline_config import NormalizationMode
from ..data.contracts import ConditionedWindow, InferenceResult
from ..exceptions import TransientOracleFailure
from ..preprocessing.signal_processing import normalize_signal


# =============================================================================
# RESULT CONTRACTS
# =============================================================================

@dataclass(frozen=True)
class StructuralCheck:
    """Evidence behind the structural plausibility decision."""
    is_structural: bool
    error_in_qrs: Optional[float] = None     # Mean |error| on QRS-like samples
    error_total: Optional[float] = None      # Mean |error| on all samples
    qrs_count: int = 0
    skipped: bool = False                    # Raw error under threshold, not analysed


@dataclass(frozen=True)
class ScoreResult:
    """Full output of one scoring call."""
    raw_error: float
    final_error: float
    structural: StructuralCheck
    centered: np.ndarray
    reconstruction: np.ndarray

    @property
    def is_structural(self) -> bool:
        return self.structural.is_structural

    @property
    def suppressed(self) -> bool:
        """True if a high raw error was zeroed as a likely false alarm."""
        return self.final_error == 0.0 and self.raw_error > 0.0 and not self.is_structural

    def to_dict(self) -> Dict[str, Any]:
        return {
            'raw_error': self.raw_error,
            'final_error': self.final_error,
            'is_structural': self.is_structural,
            'error_in_qrs': self.structural.error_in_qrs,
            'error_total': self.structural.error_total,
            'qrs_count': self.structural.qrs_count,
            'suppressed': self.suppressed,
        }


# =============================================================================
# SCORER
# =============================================================================

class AnomalyScorer:
    """
    Reconstruction-error scorer with structural false-positive suppression.

    Attributes:
        anomaly_threshold: Raw error above which the structural check runs
        qrs_amplitude_threshold: |centered| above this marks a QRS-like sample
        empty_qrs_is_structural: Outcome when no sample is QRS-like
        normalization: CENTERED (canonical) or ZSCORE
    """

    def __init__(
        self,
        anomaly_threshold: float = 0.30,
        qrs_amplitude_threshold: float = 0.4,
        empty_qrs_is_structural: bool = True,
        normalization: NormalizationMode = NormalizationMode.CENTERED,
    ):
        self.anomaly_threshold = anomaly_threshold
        self.qrs_amplitude_threshold = qrs_amplitude_threshold
        self.empty_qrs_is_structural = empty_qrs_is_structural
        self.normalization = normalization

    def normalize(self, samples: np.ndarray) -> np.ndarray:
        """Prepare a conditioned window for the oracle."""
        method = 'zscore' if self.normalization is NormalizationMode.ZSCORE else 'center'
        return normalize_signal(samples, method=method)

    def reconstruct(self, centered: np.ndarray, oracle) -> InferenceResult:
        """
        Invoke the oracle on a centered window.

        Raises:
            TransientOracleFailure: oracle raised, or returned a malformed,
                wrong-length or non-finite reconstruction
        """
        try:
            output = oracle.infer(centered.copy())
            if output is None:
                raise TransientOracleFailure("Oracle returned no reconstruction")
            result = InferenceResult(output)
        except TransientOracleFailure:
            raise
        except Exception as e:
            raise TransientOracleFailure(f"{type(e).__name__}: {e}") from e

        if len(result) != centered.shape[0]:
            raise TransientOracleFailure(
                f"Reconstruction length {len(result)} != window length {centered.shape[0]}"
            )
        if not np.isfinite(result.reconstruction).all():
            raise TransientOracleFailure("Reconstruction contains non-finite values")
        return result

    def reconstruction_error(self, centered: np.ndarray, reconstruction: np.ndarray) -> float:
        """Mean squared difference over the window length."""
        diff = centered - reconstruction
        return float(np.dot(diff, diff) / centered.shape[0])

    def check_structural(
        self,
        centered: np.ndarray,
        reconstruction: np.ndarray,
        raw_error: float,
    ) -> StructuralCheck:
        """
        Decide whether a reconstruction error is structurally plausible.

        Low errors are structural without further analysis. Otherwise the
        error is structural when its mean magnitude on QRS-like samples
        exceeds its mean magnitude over the whole window.
        """
        if raw_error <= self.anomaly_threshold:
            return StructuralCheck(is_structural=True, skipped=True)

        abs_error = np.abs(centered - reconstruction)
        qrs_mask = np.abs(centered) > self.qrs_amplitude_threshold
        qrs_count = int(np.count_nonzero(qrs_mask))
        error_total = float(abs_error.mean())

        if qrs_count == 0:
            return StructuralCheck(
                is_structural=self.empty_qrs_is_structural,
                error_total=error_total,
                qrs_count=0,
            )

        error_in_qrs = float(abs_error[qrs_mask].mean())
        return StructuralCheck(
            is_structural=error_in_qrs > error_total,
            error_in_qrs=error_in_qrs,
            error_total=error_total,
            qrs_count=qrs_count,
        )

    def score_detailed(
        self,
        window: Union[ConditionedWindow, np.ndarray],
        oracle,
    ) -> ScoreResult:
        """
        Score one conditioned window.

        Args:
            window: Conditioned window (or bare sample array)
            oracle: Object exposing ``infer(window) -> reconstruction``

        Returns:
            ScoreResult with raw and final error plus structural evidence
        """
        samples = window.samples if isinstance(window, ConditionedWindow) else window
        centered = self.normalize(samples)

        reconstruction = self.reconstruct(centered, oracle).reconstruction
        raw_error = self.reconstruction_error(centered, reconstruction)
        structural = self.check_structural(centered, reconstruction, raw_error)

        if raw_error > self.anomaly_threshold and not structural.is_structural:
            final_error = 0.0
        else:
            final_error = raw_error

        return ScoreResult(
            raw_error=raw_error,
            final_error=final_error,
            structural=structural,
            centered=centered,
            reconstruction=reconstruction,
        )

    def score(self, window: Union[ConditionedWindow, np.ndarray], oracle) -> Tuple[float, bool]:
        """
        Score one conditioned window.

        Returns:
            (final_error, is_structural)
        """
        result = self.score_detailed(window, oracle)
        return result.final_error, result.is_structural
