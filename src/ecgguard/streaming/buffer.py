"""
Sliding sample buffer for streaming ECG.

Samples are appended at the tail as packets arrive. Once the buffer holds
``required_size`` samples every packet yields a window of the most recent
``required_size`` samples, so consecutive windows overlap and slide by the
packet size. The buffer never grows past ``max_size``: each eviction drops
a fixed ``trim_chunk`` of the oldest samples.
"""

import logging
import time
from typing import Callable, Optional, Sequence, Union

import numpy as np

from ..data.contracts import AnalysisWindow, BufferStats, RawBatch

logger = logging.getLogger(__name__)


class SampleWindowBuffer:
    """
    Append-only, capped sample store with overlapping window extraction.

    The buffer is the sole owner of its storage. Windows are copies.

    Usage:
        buf = SampleWindowBuffer()
        buf.append(batch.to_float(0.001))
        window = buf.try_take_window()
        if window is None:
            # still buffering
            pass
    """

    def __init__(
        self,
        required_size: int = 2500,
        max_size: int = 3000,
        trim_chunk: int = 250,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the buffer.

        Args:
            required_size: Minimum length before a window is produced
            max_size: Hard cap on buffered samples
            trim_chunk: Samples dropped from the head per eviction
            clock: Wall-clock source for packet timestamps
        """
        if required_size <= 0 or max_size < required_size:
            raise ValueError("Need 0 < required_size <= max_size")
        if not 0 < trim_chunk <= max_size:
            raise ValueError("Need 0 < trim_chunk <= max_size")
        if max_size - trim_chunk < required_size:
            raise ValueError("Need max_size - trim_chunk >= required_size")

        self.required_size = required_size
        self.max_size = max_size
        self.trim_chunk = trim_chunk
        self._clock = clock

        self._samples = np.empty(0, dtype=np.float64)
        self.stats = BufferStats()
        self.session_id = 0

    def __len__(self) -> int:
        return int(self._samples.shape[0])

    @property
    def is_ready(self) -> bool:
        """True once enough samples are buffered to emit a window."""
        return len(self) >= self.required_size

    def append(self, samples: Union[RawBatch, np.ndarray, Sequence[float]]) -> int:
        """
        Append one packet worth of samples to the tail.

        Scaling is the caller's job; a RawBatch is appended unscaled.

        Args:
            samples: Samples in arrival order

        Returns:
            Number of eviction events this append triggered
        """
        if isinstance(samples, RawBatch):
            incoming = samples.to_float()
        else:
            incoming = np.asarray(samples, dtype=np.float64).reshape(-1)

        now = self._clock()
        if self.stats.first_packet_time is None:
            self.stats.first_packet_time = now
        self.stats.last_packet_time = now
        self.stats.packet_count += 1
        self.stats.samples_received += int(incoming.shape[0])

        self._samples = np.concatenate([self._samples, incoming])

        evictions = 0
        while len(self) > self.max_size:
            self._samples = self._samples[self.trim_chunk:]
            evictions += 1
        if evictions:
            self.stats.eviction_count += evictions
            logger.debug(
                f"Evicted {evictions * self.trim_chunk} samples, buffer at {len(self)}"
            )
        return evictions

    def try_take_window(self) -> Optional[AnalysisWindow]:
        """
        Snapshot the most recent ``required_size`` samples.

        Returns:
            A new AnalysisWindow, or None while still buffering
        """
        if len(self) < self.required_size:
            return None
        return AnalysisWindow(
            samples=self._samples[-self.required_size:],
            session_id=self.session_id,
            sequence=self.stats.packet_count,
        )

    def tail(self, n: int) -> np.ndarray:
        """Copy of the last ``n`` buffered samples."""
        if n <= 0:
            return np.empty(0, dtype=np.float64)
        return self._samples[-n:].copy()

    def clear(self) -> None:
        """Empty the buffer and reset transport counters."""
        self._samples = np.empty(0, dtype=np.float64)
        self.stats = BufferStats()

    def __repr__(self) -> str:
        return (f"SampleWindowBuffer(len={len(self)}, required={self.required_size}, "
                f"max={self.max_size}, packets={self.stats.packet_count})")
