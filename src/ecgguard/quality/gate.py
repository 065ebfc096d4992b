"""
Mechanical Quality Gate.

Fast O(n) pre-filter that keeps obviously invalid windows away from the
(expensive) reconstruction model. Runs on the conditioned window.

Rejects:
1. Flatline - standard deviation below a floor (lead off / disconnected)
2. Artifact - too many samples beyond an absolute amplitude limit
   (motion, saturation)

Usage:
    gate = QualityGate()
    result = gate.evaluate(conditioned.samples)

    if not result.is_acceptable:
        # Reject window as artifact, skip scoring
        pass
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from ..data.contracts import ConditionedWindow, GateReason


@dataclass(frozen=True)
class GateResult:
    """Outcome of the quality gate with the statistics behind it."""
    is_acceptable: bool
    mean: float
    std: float
    outlier_ratio: float
    reason: Optional[GateReason] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_acceptable': self.is_acceptable,
            'mean': self.mean,
            'std': self.std,
            'outlier_ratio': self.outlier_ratio,
            'reason': self.reason.value if self.reason else None,
        }


class QualityGate:
    """
    Statistical flatline / artifact check.

    Attributes:
        flatline_std_threshold: Windows with population std below this are flat
        outlier_abs_threshold: Absolute amplitude marking a sample as extreme
        max_outlier_ratio: Largest acceptable fraction of extreme samples
    """

    def __init__(
        self,
        flatline_std_threshold: float = 0.001,
        outlier_abs_threshold: float = 3.0,
        max_outlier_ratio: float = 0.1,
    ):
        self.flatline_std_threshold = flatline_std_threshold
        self.outlier_abs_threshold = outlier_abs_threshold
        self.max_outlier_ratio = max_outlier_ratio

    def evaluate(self, window: Union[ConditionedWindow, np.ndarray]) -> GateResult:
        """
        Assess one window.

        Args:
            window: Conditioned window (or bare sample array)

        Returns:
            GateResult; ``reason`` is set when the window is rejected
        """
        samples = window.samples if isinstance(window, ConditionedWindow) else window
        x = np.asarray(samples, dtype=np.float64).reshape(-1)

        if x.shape[0] == 0:
            return GateResult(False, 0.0, 0.0, 0.0, reason=GateReason.EMPTY)

        mean = float(np.mean(x))
        std = float(np.std(x))  # population std
        outlier_ratio = float(np.count_nonzero(np.abs(x) > self.outlier_abs_threshold)) / x.shape[0]

        reason = None
        if std < self.flatline_std_threshold:
            reason = GateReason.FLATLINE
        elif outlier_ratio > self.max_outlier_ratio:
            reason = GateReason.ARTIFACT

        return GateResult(
            is_acceptable=reason is None,
            mean=mean,
            std=std,
            outlier_ratio=outlier_ratio,
            reason=reason,
        )

    def is_acceptable(self, window: Union[ConditionedWindow, np.ndarray]) -> bool:
        """True if the window is worth scoring."""
        return self.evaluate(window).is_acceptable
