"""
Core data contracts for the ECGGuard streaming pipeline.

Every value that crosses a component boundary is one of these types.
Batches, windows and decisions are immutable once built; sample arrays
are frozen (read-only) so no downstream stage can alias and mutate an
upstream buffer.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np


# Wire format of one transport notification: little-endian int16 pairs
SAMPLE_DTYPE = np.dtype('<i2')


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class Verdict(Enum):
    """Per-window outcome."""
    NORMAL = "normal"
    ANOMALOUS = "anomalous"
    ARTIFACT_REJECTED = "artifact_rejected"


class GateReason(Enum):
    """Why the quality gate rejected a window."""
    FLATLINE = "flatline"           # Std below floor: lead off / disconnected
    ARTIFACT = "artifact"           # Too many extreme samples: motion / saturation
    EMPTY = "empty"                 # Nothing to assess


# Banner strings shown by the monitoring app
STATUS_TEXT: Dict[Verdict, str] = {
    Verdict.NORMAL: "NORMAL RHYTHM",
    Verdict.ANOMALOUS: "ANOMALY DETECTED",
    Verdict.ARTIFACT_REJECTED: "ARTIFACT / MOTION DETECTED",
}


@dataclass(frozen=True)
class RawBatch:
    """
    Samples extracted from one transport notification.

    Attributes:
        samples: Signed 16-bit ADC counts in arrival order
    """
    samples: np.ndarray

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.int16).reshape(-1)
        object.__setattr__(self, 'samples', _frozen(samples))

    def __len__(self) -> int:
        return int(self.samples.shape[0])

    @classmethod
    def from_bytes(cls, payload: Union[bytes, bytearray, memoryview]) -> 'RawBatch':
        """
        Decode a notification payload of little-endian int16 pairs.

        A trailing odd byte is not a complete sample and is ignored.
        """
        n_pairs = len(payload) // SAMPLE_DTYPE.itemsize
        samples = np.frombuffer(bytes(payload), dtype=SAMPLE_DTYPE, count=n_pairs)
        return cls(samples.astype(np.int16))

    @classmethod
    def from_counts(cls, counts: Sequence[int]) -> 'RawBatch':
        """Build a batch from integer ADC counts."""
        return cls(np.asarray(counts, dtype=np.int16))

    def to_bytes(self) -> bytes:
        """Encode back to the little-endian wire format."""
        return self.samples.astype(SAMPLE_DTYPE).tobytes()

    def to_float(self, scale: float = 1.0) -> np.ndarray:
        """Convert to floating point, applying a fixed-point scale factor."""
        return self.samples.astype(np.float64) * scale


@dataclass(frozen=True)
class AnalysisWindow:
    """
    Fixed-length snapshot of the most recent buffered samples.

    Attributes:
        samples: Scaled samples (mV), oldest first
        session_id: Stream session the window belongs to
        sequence: Packet count at the moment the window was taken
    """
    samples: np.ndarray
    session_id: int = 0
    sequence: int = 0

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64).reshape(-1)
        object.__setattr__(self, 'samples', _frozen(samples))

    def __len__(self) -> int:
        return int(self.samples.shape[0])


@dataclass(frozen=True)
class ConditionedWindow:
    """An AnalysisWindow after sanitize, detrend and smoothing."""
    samples: np.ndarray
    session_id: int = 0
    sequence: int = 0

    def __post_init__(self):
        samples = np.array(self.samples, dtype=np.float64).reshape(-1)
        object.__setattr__(self, 'samples', _frozen(samples))

    def __len__(self) -> int:
        return int(self.samples.shape[0])


@dataclass(frozen=True)
class InferenceResult:
    """Reconstruction returned by the oracle for one centered window."""
    reconstruction: np.ndarray

    def __post_init__(self):
        recon = np.array(self.reconstruction, dtype=np.float64).reshape(-1)
        object.__setattr__(self, 'reconstruction', _frozen(recon))

    def __len__(self) -> int:
        return int(self.reconstruction.shape[0])


@dataclass(frozen=True)
class Decision:
    """
    Pipeline output for one analysis window.

    Created once per emitted window and never modified. ``final_error`` is
    the reconstruction error after false-positive suppression;
    ``raw_error`` is the error before it.
    """
    final_error: float
    is_structural: bool
    verdict: Verdict
    latency_ms: float

    raw_error: float = 0.0
    gate_reason: Optional[GateReason] = None
    diagnostic: Optional[str] = None
    session_id: int = 0
    sequence: int = 0

    @property
    def is_anomalous(self) -> bool:
        return self.verdict is Verdict.ANOMALOUS

    @property
    def is_rejected(self) -> bool:
        return self.verdict is Verdict.ARTIFACT_REJECTED

    @property
    def status_text(self) -> str:
        """Banner text for presentation."""
        return STATUS_TEXT[self.verdict]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            'final_error': self.final_error,
            'raw_error': self.raw_error,
            'is_structural': self.is_structural,
            'verdict': self.verdict.value,
            'latency_ms': self.latency_ms,
            'gate_reason': self.gate_reason.value if self.gate_reason else None,
            'diagnostic': self.diagnostic,
            'session_id': self.session_id,
            'sequence': self.sequence,
        }


@dataclass
class BufferStats:
    """
    Transport-level diagnostics maintained by the sample buffer.

    Exposed for observability only; the pipeline never acts on them.
    Timestamps are wall-clock seconds, ``None`` until the first packet.
    """
    packet_count: int = 0
    samples_received: int = 0
    eviction_count: int = 0
    first_packet_time: Optional[float] = None
    last_packet_time: Optional[float] = None

    @property
    def elapsed_sec(self) -> float:
        if self.first_packet_time is None or self.last_packet_time is None:
            return 0.0
        return self.last_packet_time - self.first_packet_time

    @property
    def mean_packet_interval_ms(self) -> Optional[float]:
        """Mean gap between packets, ``None`` with fewer than two packets."""
        if self.packet_count < 2:
            return None
        return 1000.0 * self.elapsed_sec / (self.packet_count - 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'packet_count': self.packet_count,
            'samples_received': self.samples_received,
            'eviction_count': self.eviction_count,
            'first_packet_time': self.first_packet_time,
            'last_packet_time': self.last_packet_time,
            'mean_packet_interval_ms': self.mean_packet_interval_ms,
        }
