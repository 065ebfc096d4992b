# Detection module
# Anomaly scoring and the per-window pipeline orchestrator

from .anomaly_scorer import (
    AnomalyScorer,
    ScoreResult,
    StructuralCheck,
)
from .orchestrator import PipelineOrchestrator

__all__ = [
    # Scorer
    'AnomalyScorer',
    'ScoreResult',
    'StructuralCheck',

    # Orchestrator
    'PipelineOrchestrator',
]
