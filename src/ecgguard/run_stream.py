"""
Streaming demo for ECGGuard.

Generates a synthetic single-lead stream, splits it into irregular
sensor packets and runs every packet through the pipeline, either inline
or through the threaded StreamSession. Prints a verdict summary and
latency figures at the end.
"""

import logging
import sys
from collections import Counter
from datetime import datetime
from typing import List, Optional

import numpy as np

from .config import PipelineMode, get_pipeline_config, load_config
from .data.contracts import Decision, Verdict
from .data.synthetic import synthetic_ecg, to_adc_counts, iter_batches, encode_batch
from .detection.orchestrator import PipelineOrchestrator
from .models.oracle import IdentityOracle
from .streaming.session import StreamSession

logger = logging.getLogger(__name__)


def build_oracle(name: str, checkpoint: Optional[str] = None):
    """Create the reconstruction oracle selected on the command line."""
    if name == 'identity':
        return IdentityOracle()

    # torch is only needed for the learned model
    from .models.autoencoder import LSTMAutoencoder, TorchReconstructionOracle
    if checkpoint:
        return TorchReconstructionOracle.from_checkpoint(checkpoint)
    logger.warning("No checkpoint given, using an untrained LSTM autoencoder")
    return TorchReconstructionOracle(LSTMAutoencoder())


def summarize(decisions: List[Decision]) -> None:
    """Print verdict counts and latency statistics."""
    print("\n" + "=" * 60)
    print("STREAM SUMMARY")
    print("=" * 60)
    print(f"Windows analysed: {len(decisions)}")
    if not decisions:
        return

    counts = Counter(d.verdict for d in decisions)
    for verdict in Verdict:
        print(f"  {verdict.value:<20} {counts.get(verdict, 0)}")

    latencies = np.array([d.latency_ms for d in decisions])
    print(f"Latency: mean {latencies.mean():.2f} ms | p95 {np.percentile(latencies, 95):.2f} ms")

    scored = [d for d in decisions if not d.is_rejected]
    if scored:
        errors = np.array([d.final_error for d in scored])
        suppressed = sum(1 for d in scored if d.raw_error > 0 and d.final_error == 0.0)
        print(f"Final error: mean {errors.mean():.4f} | max {errors.max():.4f} | suppressed {suppressed}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='ECGGuard streaming anomaly detection demo')
    parser.add_argument('--duration', type=float, default=30.0,
                        help='Seconds of synthetic ECG to stream')
    parser.add_argument('--heart-rate', type=float, default=72.0,
                        help='Synthetic heart rate (bpm)')
    parser.add_argument('--noise', type=float, default=0.02,
                        help='Additive noise std (mV)')
    parser.add_argument('--oracle', type=str, default='identity',
                        choices=['identity', 'lstm'],
                        help='Reconstruction oracle')
    parser.add_argument('--checkpoint', type=str, default=None,
                        help='LSTM autoencoder state dict')
    parser.add_argument('--mode', type=str, default=PipelineMode.STANDARD.value,
                        choices=[m.value for m in PipelineMode],
                        help='Pipeline preset')
    parser.add_argument('--config', type=str, default=None,
                        help='JSON configuration file (overrides --mode)')
    parser.add_argument('--threaded', action='store_true',
                        help='Score windows on a worker thread')
    parser.add_argument('--seed', type=int, default=42,
                        help='Random seed')
    parser.add_argument('--log-level', type=str, default='INFO',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    if args.config:
        config = load_config(args.config)
    else:
        config = get_pipeline_config(PipelineMode(args.mode))

    print("=" * 60)
    print("ECGGUARD - STREAMING ANOMALY DETECTION")
    print("=" * 60)
    print(f"Start time: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Mode: {config.mode.value} | Oracle: {args.oracle} | "
          f"Window: {config.window_duration_sec:.1f} s")

    signal_mv = synthetic_ecg(
        duration_sec=args.duration,
        fs=config.sampling_rate_hz,
        heart_rate_bpm=args.heart_rate,
        noise_std=args.noise,
        random_seed=args.seed,
    )
    counts = to_adc_counts(signal_mv, scale=config.sample_scale)

    pipeline = PipelineOrchestrator(build_oracle(args.oracle, args.checkpoint), config=config)
    decisions: List[Decision] = []

    if args.threaded:
        with StreamSession(pipeline, on_decision=decisions.append) as session:
            for batch in iter_batches(counts, random_seed=args.seed):
                session.submit_bytes(encode_batch(batch))
            session.flush()
        if session.windows_dropped:
            print(f"Windows dropped while the worker was busy: {session.windows_dropped}")
    else:
        for batch in iter_batches(counts, random_seed=args.seed):
            decision = pipeline.on_bytes(encode_batch(batch))
            if decision is not None:
                decisions.append(decision)
        pipeline.close()

    summarize(decisions)
    stats = pipeline.buffer.stats
    print(f"Packets: {stats.packet_count} | Samples: {stats.samples_received} | "
          f"Evictions: {stats.eviction_count}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
