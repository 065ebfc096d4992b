"""
Integration tests for the pipeline orchestrator.

Tests for:
- Buffering -> conditioning -> gate -> scoring per packet
- Verdict assignment and false-positive suppression
- Oracle failure recovery
- Session reset and presentation helpers
"""

import time

import pytest
import numpy as np
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ecgguard.config import get_default_config, PipelineMode, get_pipeline_config
from ecgguard.data.contracts import AnalysisWindow, GateReason, RawBatch, Verdict
from ecgguard.data.synthetic import iter_batches, encode_batch
from ecgguard.detection.orchestrator import PipelineOrchestrator
from ecgguard.exceptions import ConfigurationError
from ecgguard.models.oracle import IdentityOracle


# =============================================================================
# HELPERS
# =============================================================================

def sine(amplitude, fs=250, n=2500, freq=1.0):
    t = np.arange(n) / fs
    return amplitude * np.sin(2 * np.pi * freq * t)


class FlakyOracle:
    """Fails on the first ``failures`` calls, then reconstructs perfectly."""

    def __init__(self, failures=1):
        self.failures = failures
        self.calls = 0

    def infer(self, window):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("accelerator busy")
        return np.array(window, copy=True)


def baseline_error(window):
    """Exact on QRS-like samples, 0.8 off on everything else."""
    sign = np.where(np.arange(window.shape[0]) % 2 == 0, 1.0, -1.0)
    recon = window + 0.8 * sign
    qrs = np.abs(window) > 0.4
    recon[qrs] = window[qrs]
    return recon


# =============================================================================
# END-TO-END TESTS
# =============================================================================

@pytest.mark.integration
class TestPacketFlow:

    def test_zero_stream_rejected_as_flatline(self):
        pipeline = PipelineOrchestrator(IdentityOracle())
        zeros = RawBatch.from_counts([0] * 500)

        for _ in range(4):
            assert pipeline.on_batch(zeros) is None
        decision = pipeline.on_batch(zeros)

        assert decision is not None
        assert decision.verdict is Verdict.ARTIFACT_REJECTED
        assert decision.gate_reason is GateReason.FLATLINE
        assert decision.final_error == 0.0
        assert decision.is_structural is False
        assert decision.status_text == "ARTIFACT / MOTION DETECTED"

    def test_clean_ecg_is_normal(self, sample_ecg_counts):
        pipeline = PipelineOrchestrator(IdentityOracle())
        decisions = []
        for batch in iter_batches(sample_ecg_counts, random_seed=1):
            decision = pipeline.on_bytes(encode_batch(batch))
            if decision is not None:
                decisions.append(decision)

        assert len(decisions) > 0
        assert all(d.verdict is Verdict.NORMAL for d in decisions)
        assert all(d.final_error < 1e-20 for d in decisions)
        assert all(d.latency_ms >= 0.0 for d in decisions)
        assert len(pipeline.buffer) <= 3000

    def test_samples_are_scaled_to_millivolts(self):
        pipeline = PipelineOrchestrator(IdentityOracle())
        pipeline.on_batch(RawBatch.from_counts([1000, -500]))
        np.testing.assert_allclose(pipeline.buffer.tail(2), [1.0, -0.5])

    def test_one_decision_per_packet_once_primed(self):
        pipeline = PipelineOrchestrator(IdentityOracle())
        counts = np.round(sine(0.5, n=3000) / 0.001).astype(np.int16)
        results = [pipeline.on_batch(RawBatch(counts[i:i + 3])) for i in range(0, 3000, 3)]

        first = next(i for i, r in enumerate(results) if r is not None)
        assert first == 833
        assert all(r is not None for r in results[first:])
        assert results[-1].sequence == 1000


# =============================================================================
# VERDICT TESTS
# =============================================================================

class TestVerdicts:

    def test_structural_error_is_anomalous(self):
        pipeline = PipelineOrchestrator(lambda w: np.zeros_like(w))
        decision = pipeline.process_window(AnalysisWindow(sine(1.5)))

        assert decision.verdict is Verdict.ANOMALOUS
        assert decision.is_structural is True
        assert decision.final_error == decision.raw_error
        assert decision.final_error > 0.30
        assert decision.status_text == "ANOMALY DETECTED"

    def test_diffuse_error_suppressed_to_normal(self):
        pipeline = PipelineOrchestrator(baseline_error)
        decision = pipeline.process_window(AnalysisWindow(sine(0.5)))

        assert decision.raw_error > 0.30
        assert decision.final_error == 0.0
        assert decision.is_structural is False
        assert decision.verdict is Verdict.NORMAL
        assert pipeline.last_score.suppressed

    def test_motion_artifact_rejected(self):
        x = sine(0.5)
        x[1000:1500] = 5.0
        decision = PipelineOrchestrator(IdentityOracle()).process_window(AnalysisWindow(x))

        assert decision.verdict is Verdict.ARTIFACT_REJECTED
        assert decision.gate_reason is GateReason.ARTIFACT
        assert decision.diagnostic.startswith("gate: artifact")

    def test_gate_rejection_skips_oracle(self):
        oracle = FlakyOracle(failures=0)
        PipelineOrchestrator(oracle).process_window(AnalysisWindow(np.zeros(2500)))
        assert oracle.calls == 0


# =============================================================================
# FAILURE RECOVERY TESTS
# =============================================================================

class TestOracleFailure:

    def test_failure_becomes_rejected_decision(self):
        pipeline = PipelineOrchestrator(FlakyOracle(failures=1))
        decision = pipeline.process_window(AnalysisWindow(sine(0.5)))

        assert decision.verdict is Verdict.ARTIFACT_REJECTED
        assert decision.gate_reason is None
        assert "accelerator busy" in decision.diagnostic
        assert decision.diagnostic.startswith("oracle:")

    def test_next_window_processed_normally(self):
        pipeline = PipelineOrchestrator(FlakyOracle(failures=1))
        pipeline.process_window(AnalysisWindow(sine(0.5)))
        decision = pipeline.process_window(AnalysisWindow(sine(0.5)))

        assert decision.verdict is Verdict.NORMAL
        assert decision.diagnostic is None

    def test_failure_keeps_previous_display_window(self):
        pipeline = PipelineOrchestrator(FlakyOracle(failures=0))
        pipeline.process_window(AnalysisWindow(sine(0.5)))
        shown = pipeline.display_tail()

        pipeline.oracle = FlakyOracle(failures=1)
        pipeline.process_window(AnalysisWindow(sine(0.9)))
        np.testing.assert_array_equal(pipeline.display_tail(), shown)

    def test_malformed_output_becomes_rejected_decision(self):
        class RaggedOnce(FlakyOracle):
            def infer(self, window):
                self.calls += 1
                if self.calls == 1:
                    return [[1.0, 2.0], [3.0]]
                return np.array(window, copy=True)

        pipeline = PipelineOrchestrator(RaggedOnce())
        first = pipeline.process_window(AnalysisWindow(sine(0.5)))
        second = pipeline.process_window(AnalysisWindow(sine(0.5)))

        assert first.verdict is Verdict.ARTIFACT_REJECTED
        assert first.diagnostic.startswith("oracle:")
        assert second.verdict is Verdict.NORMAL

    def test_nan_reconstruction_is_not_normal(self):
        pipeline = PipelineOrchestrator(lambda w: np.full_like(w, np.nan))
        decision = pipeline.process_window(AnalysisWindow(sine(0.5)))

        assert decision.verdict is Verdict.ARTIFACT_REJECTED
        assert decision.final_error == 0.0
        assert "non-finite" in decision.diagnostic

    @pytest.mark.slow
    def test_oracle_timeout(self):
        def stalled(window):
            time.sleep(0.5)
            return window

        config = get_default_config().with_overrides(oracle_timeout_sec=0.05)
        pipeline = PipelineOrchestrator(stalled, config=config)
        try:
            decision = pipeline.process_window(AnalysisWindow(sine(0.5)))
        finally:
            pipeline.close()

        assert decision.verdict is Verdict.ARTIFACT_REJECTED
        assert "no reconstruction within" in decision.diagnostic


# =============================================================================
# LIFECYCLE / PRESENTATION TESTS
# =============================================================================

class TestLifecycle:

    def test_display_tail(self):
        pipeline = PipelineOrchestrator(IdentityOracle())
        assert pipeline.display_tail().shape == (0,)

        pipeline.process_window(AnalysisWindow(sine(0.5)))
        tail = pipeline.display_tail()
        assert tail.shape == (500,)
        assert pipeline.display_tail(100).shape == (100,)
        assert abs(pipeline.latest_window.mean()) < 1e-9

    def test_reset_starts_new_session(self):
        pipeline = PipelineOrchestrator(IdentityOracle())
        pipeline.on_batch(RawBatch.from_counts([100] * 2600))
        assert pipeline.last_decision is not None

        new_id = pipeline.reset()
        assert new_id == 1
        assert pipeline.session_id == 1
        assert len(pipeline.buffer) == 0
        assert pipeline.buffer.stats.packet_count == 0
        assert pipeline.last_decision is None
        assert pipeline.on_batch(RawBatch.from_counts([100] * 10)) is None

    def test_decisions_carry_session_id(self):
        pipeline = PipelineOrchestrator(IdentityOracle())
        pipeline.reset()
        counts = np.round(sine(0.5) / 0.001).astype(np.int16)
        decision = pipeline.on_batch(RawBatch(counts))
        assert decision.session_id == 1
        assert decision.sequence == 1

    def test_preset_config(self):
        config = get_pipeline_config(PipelineMode.LEGACY_STRICT_QRS)
        pipeline = PipelineOrchestrator(IdentityOracle(), config=config)
        assert pipeline.scorer.empty_qrs_is_structural is False

    def test_invalid_oracle(self):
        with pytest.raises(ConfigurationError):
            PipelineOrchestrator(oracle=42)
