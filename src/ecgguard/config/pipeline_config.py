"""
Pipeline configuration for ECGGuard.

Every tunable of the streaming pipeline lives in one dataclass. The
anomaly threshold was tuned against the mean-centered oracle input and
the fixed 11-tap Savitzky-Golay smoother, so the named presets below are
the supported combinations. Run against a preset, not ad-hoc values.
"""

import json
from dataclasses import dataclass, asdict, fields, replace
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from ..exceptions import ConfigurationError


class NormalizationMode(Enum):
    """
    How a conditioned window is normalized before it reaches the oracle.

    CENTERED is canonical: it pairs with the 0.30 threshold. ZSCORE is the
    alternate oracle wrapper (mean and std); its threshold must be tuned
    for the model in use.
    """
    CENTERED = "centered"   # DC removal only
    ZSCORE = "zscore"       # Mean removal and unit variance


class PipelineMode(Enum):
    """Named pipeline presets."""
    STANDARD = "standard"                    # Canonical behavior
    ZSCORE_VARIANT = "zscore_variant"        # Full z-score oracle input
    LEGACY_STRICT_QRS = "legacy_strict_qrs"  # No QRS evidence -> not structural


@dataclass
class PipelineConfig:
    """
    Complete configuration for one pipeline instance.

    Sizes are in samples. The defaults describe a 250 Hz single-lead
    stream analysed over 10 second windows.
    """
    mode: PipelineMode = PipelineMode.STANDARD

    # === Windowing ===
    sampling_rate_hz: int = 250
    required_size: int = 2500           # Samples needed to emit a window
    max_size: int = 3000                # Hard cap on buffered samples
    trim_chunk: int = 250               # Eviction quantum (1 s)
    sample_scale: float = 0.001         # ADC counts -> mV

    # === Quality gate ===
    flatline_std_threshold: float = 0.001
    outlier_abs_threshold: float = 3.0
    max_outlier_ratio: float = 0.1

    # === Anomaly scoring ===
    normalization: NormalizationMode = NormalizationMode.CENTERED
    anomaly_threshold: float = 0.30
    qrs_amplitude_threshold: float = 0.4
    empty_qrs_is_structural: bool = True

    # === Output / runtime ===
    display_samples: int = 500          # Tail exposed for rendering (2 s)
    queue_maxsize: int = 8
    oracle_timeout_sec: Optional[float] = None

    def validate(self) -> bool:
        """Validate configuration consistency."""
        if self.sampling_rate_hz <= 0:
            raise ConfigurationError("sampling_rate_hz must be positive")
        if self.required_size <= 0:
            raise ConfigurationError("required_size must be positive")
        if self.max_size < self.required_size:
            raise ConfigurationError(
                f"max_size ({self.max_size}) must be >= required_size ({self.required_size})"
            )
        if not 0 < self.trim_chunk <= self.max_size:
            raise ConfigurationError(
                f"trim_chunk must be in (0, max_size], got {self.trim_chunk}"
            )
        if self.max_size - self.trim_chunk < self.required_size:
            raise ConfigurationError(
                f"max_size - trim_chunk ({self.max_size - self.trim_chunk}) must be >= "
                f"required_size ({self.required_size}) so eviction never starves a window"
            )
        if self.sample_scale <= 0:
            raise ConfigurationError("sample_scale must be positive")
        if self.flatline_std_threshold < 0:
            raise ConfigurationError("flatline_std_threshold must be >= 0")
        if self.outlier_abs_threshold <= 0:
            raise ConfigurationError("outlier_abs_threshold must be positive")
        if not 0.0 <= self.max_outlier_ratio <= 1.0:
            raise ConfigurationError("max_outlier_ratio must be within [0, 1]")
        if self.anomaly_threshold < 0:
            raise ConfigurationError("anomaly_threshold must be >= 0")
        if self.qrs_amplitude_threshold < 0:
            raise ConfigurationError("qrs_amplitude_threshold must be >= 0")
        if self.display_samples <= 0:
            raise ConfigurationError("display_samples must be positive")
        if self.queue_maxsize <= 0:
            raise ConfigurationError("queue_maxsize must be positive")
        if self.oracle_timeout_sec is not None and self.oracle_timeout_sec <= 0:
            raise ConfigurationError("oracle_timeout_sec must be positive or None")
        return True

    @property
    def window_duration_sec(self) -> float:
        """Duration covered by one analysis window."""
        return self.required_size / self.sampling_rate_hz

    def with_overrides(self, **overrides: Any) -> 'PipelineConfig':
        """Return a validated copy with some fields replaced."""
        config = replace(self, **overrides)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data['mode'] = self.mode.value
        data['normalization'] = self.normalization.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PipelineConfig':
        """
        Build a config from a dictionary.

        A ``mode`` key selects the preset the remaining keys override.
        Unknown keys are rejected.
        """
        data = dict(data)
        mode = PipelineMode(data.pop('mode', PipelineMode.STANDARD.value))
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")
        if 'normalization' in data:
            data['normalization'] = NormalizationMode(data['normalization'])
        return get_pipeline_config(mode).with_overrides(**data)


# =============================================================================
# Pre-defined Pipeline Modes
# =============================================================================

PIPELINE_MODES: Dict[PipelineMode, PipelineConfig] = {

    PipelineMode.STANDARD: PipelineConfig(
        mode=PipelineMode.STANDARD,
    ),

    PipelineMode.ZSCORE_VARIANT: PipelineConfig(
        mode=PipelineMode.ZSCORE_VARIANT,
        normalization=NormalizationMode.ZSCORE,
        # Same nominal value as STANDARD; retune per model
        anomaly_threshold=0.30,
    ),

    PipelineMode.LEGACY_STRICT_QRS: PipelineConfig(
        mode=PipelineMode.LEGACY_STRICT_QRS,
        empty_qrs_is_structural=False,
    ),
}


def get_pipeline_config(mode: PipelineMode) -> PipelineConfig:
    """Get a fresh copy of the configuration for a pipeline mode."""
    return replace(PIPELINE_MODES[mode])


def get_default_mode() -> PipelineMode:
    """Get the default pipeline mode (STANDARD)."""
    return PipelineMode.STANDARD


def get_default_config() -> PipelineConfig:
    """Get the default pipeline configuration."""
    return get_pipeline_config(get_default_mode())


def load_config(path: Union[str, Path]) -> PipelineConfig:
    """Load a pipeline configuration from a JSON file."""
    path = Path(path)
    try:
        with path.open('r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")
    return PipelineConfig.from_dict(data)
