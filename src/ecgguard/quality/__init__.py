# Signal Quality module
# Mechanical gate run on every conditioned window before scoring

from .gate import QualityGate, GateResult

__all__ = [
    'QualityGate',
    'GateResult',
]
