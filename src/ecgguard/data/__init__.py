# Data contracts and synthetic stream module

from .contracts import (
    SAMPLE_DTYPE,
    STATUS_TEXT,
    Verdict,
    GateReason,
    RawBatch,
    AnalysisWindow,
    ConditionedWindow,
    InferenceResult,
    Decision,
    BufferStats,
)
from .synthetic import (
    synthetic_ecg,
    to_adc_counts,
    iter_batches,
    encode_batch,
)

__all__ = [
    # Contracts
    'SAMPLE_DTYPE',
    'STATUS_TEXT',
    'Verdict',
    'GateReason',
    'RawBatch',
    'AnalysisWindow',
    'ConditionedWindow',
    'InferenceResult',
    'Decision',
    'BufferStats',

    # Synthetic stream
    'synthetic_ecg',
    'to_adc_counts',
    'iter_batches',
    'encode_batch',
]
