"""
Pipeline Orchestrator for streaming ECG anomaly detection.

Single authority for turning packets into decisions:

    Buffering -> (window ready) -> Conditioned -> Gate
        gate fail -> Rejected (ARTIFACT_REJECTED)
        gate pass -> Scored   (NORMAL / ANOMALOUS)

One window is analysed per packet once the buffer is primed, so windows
overlap and slide by the packet size. This cadence is intentional and is
not debounced.

The orchestrator is the only error boundary of the pipeline. A failed
inference degrades to a rejected decision carrying a diagnostic; the next
packet is processed normally.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Optional

import numpy as np

from ..config.pipeline_config import PipelineConfig, get_default_config
from ..data.contracts import AnalysisWindow, Decision, GateReason, RawBatch, Verdict
from ..exceptions import TransientOracleFailure
from ..models.oracle import as_oracle
from ..preprocessing.signal_processing import SignalConditioner
from ..quality.gate import QualityGate
from ..streaming.buffer import SampleWindowBuffer
from .anomaly_scorer import AnomalyScorer, ScoreResult

logger = logging.getLogger(__name__)


class PipelineOrchestrator:
    """
    Wires buffer -> conditioner -> gate -> scorer for one stream session.

    Usage:
        pipeline = PipelineOrchestrator(oracle)

        for batch in stream:
            decision = pipeline.on_batch(batch)
            if decision is None:
                continue  # still buffering
            show(decision.status_text, pipeline.display_tail())
    """

    def __init__(
        self,
        oracle,
        config: PipelineConfig = None,
        buffer: SampleWindowBuffer = None,
        conditioner: SignalConditioner = None,
        gate: QualityGate = None,
        scorer: AnomalyScorer = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            oracle: Reconstruction oracle (``infer`` method or plain callable)
            config: Pipeline configuration (default: STANDARD preset)
            buffer: Sample buffer (built from config if omitted)
            conditioner: Signal conditioner
            gate: Quality gate (built from config if omitted)
            scorer: Anomaly scorer (built from config if omitted)
        """
        self.config = config or get_default_config()
        self.config.validate()
        c = self.config

        self.oracle = as_oracle(oracle)
        self.buffer = buffer or SampleWindowBuffer(
            required_size=c.required_size,
            max_size=c.max_size,
            trim_chunk=c.trim_chunk,
        )
        self.conditioner = conditioner or SignalConditioner()
        self.gate = gate or QualityGate(
            flatline_std_threshold=c.flatline_std_threshold,
            outlier_abs_threshold=c.outlier_abs_threshold,
            max_outlier_ratio=c.max_outlier_ratio,
        )
        self.scorer = scorer or AnomalyScorer(
            anomaly_threshold=c.anomaly_threshold,
            qrs_amplitude_threshold=c.qrs_amplitude_threshold,
            empty_qrs_is_structural=c.empty_qrs_is_structural,
            normalization=c.normalization,
        )

        # Latest centered window for presentation (no history kept)
        self.latest_window: Optional[np.ndarray] = None
        self.last_decision: Optional[Decision] = None
        self.last_score: Optional[ScoreResult] = None

        self._executor: Optional[ThreadPoolExecutor] = None

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    @property
    def session_id(self) -> int:
        return self.buffer.session_id

    def reset(self) -> int:
        """
        Start a new stream session.

        Empties the buffer, resets counters and forgets the previous
        session's outputs.

        Returns:
            The new session id
        """
        self.buffer.clear()
        self.buffer.session_id += 1
        self.latest_window = None
        self.last_decision = None
        self.last_score = None
        logger.info(f"Stream session {self.buffer.session_id} started")
        return self.buffer.session_id

    def close(self) -> None:
        """Release the oracle timeout worker, if any."""
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None

    # -------------------------------------------------------------------------
    # Per-packet processing
    # -------------------------------------------------------------------------

    def buffer_batch(self, batch: RawBatch) -> Optional[AnalysisWindow]:
        """
        Scale and buffer one packet, then snapshot a window if primed.

        Returns:
            The window to analyse, or None while buffering
        """
        self.buffer.append(batch.to_float(self.config.sample_scale))
        return self.buffer.try_take_window()

    def on_batch(self, batch: RawBatch) -> Optional[Decision]:
        """
        Process one packet end to end.

        Returns:
            Decision for the window this packet completes, or None while buffering
        """
        window = self.buffer_batch(batch)
        if window is None:
            return None
        return self.process_window(window)

    def on_bytes(self, payload: bytes) -> Optional[Decision]:
        """Process one raw notification payload."""
        return self.on_batch(RawBatch.from_bytes(payload))

    def process_window(self, window: AnalysisWindow) -> Decision:
        """
        Condition, gate and score one analysis window.

        Never raises for oracle failures; those become rejected decisions.
        """
        start = time.perf_counter()

        conditioned = self.conditioner.condition(window)
        gate_result = self.gate.evaluate(conditioned)

        if not gate_result.is_acceptable:
            decision = self._rejected(
                window, start,
                gate_reason=gate_result.reason,
                diagnostic=f"gate: {gate_result.reason.value} "
                           f"(std={gate_result.std:.4f}, outliers={gate_result.outlier_ratio:.3f})",
            )
            logger.info(f"[seq {window.sequence}] Window rejected by gate: {gate_result.reason.value}")
            return decision

        try:
            result = self._score(conditioned)
        except TransientOracleFailure as e:
            decision = self._rejected(window, start, diagnostic=f"oracle: {e}")
            logger.warning(f"[seq {window.sequence}] Inference failed, window skipped: {e}")
            return decision

        latency_ms = (time.perf_counter() - start) * 1000.0
        verdict = (Verdict.ANOMALOUS if result.final_error > self.config.anomaly_threshold
                   else Verdict.NORMAL)

        decision = Decision(
            final_error=result.final_error,
            is_structural=result.is_structural,
            verdict=verdict,
            latency_ms=latency_ms,
            raw_error=result.raw_error,
            session_id=window.session_id,
            sequence=window.sequence,
        )

        self.latest_window = result.centered
        self.last_score = result
        self.last_decision = decision

        logger.debug(
            f"[seq {window.sequence}] MSE: {result.final_error:.4f} "
            f"(raw {result.raw_error:.4f}) | Structural: {result.is_structural} | "
            f"{verdict.value} in {latency_ms:.1f} ms"
        )
        return decision

    # -------------------------------------------------------------------------
    # Presentation helpers
    # -------------------------------------------------------------------------

    def display_tail(self, n: int = None) -> np.ndarray:
        """Last ``n`` samples of the latest centered window (default: 2 s)."""
        if self.latest_window is None:
            return np.empty(0, dtype=np.float64)
        n = n or self.config.display_samples
        return self.latest_window[-n:].copy()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _score(self, conditioned) -> ScoreResult:
        timeout = self.config.oracle_timeout_sec
        if timeout is None:
            return self.scorer.score_detailed(conditioned, self.oracle)

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='ecgguard-oracle')
        future = self._executor.submit(self.scorer.score_detailed, conditioned, self.oracle)
        try:
            return future.result(timeout=timeout)
        except FutureTimeoutError as e:
            future.cancel()
            raise TransientOracleFailure(f"no reconstruction within {timeout:.2f} s") from e

    def _rejected(
        self,
        window: AnalysisWindow,
        start: float,
        gate_reason: Optional[GateReason] = None,
        diagnostic: Optional[str] = None,
    ) -> Decision:
        decision = Decision(
            final_error=0.0,
            is_structural=False,
            verdict=Verdict.ARTIFACT_REJECTED,
            latency_ms=(time.perf_counter() - start) * 1000.0,
            gate_reason=gate_reason,
            diagnostic=diagnostic,
            session_id=window.session_id,
            sequence=window.sequence,
        )
        self.last_decision = decision
        return decision
