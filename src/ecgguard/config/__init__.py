"""
Configuration module for ECGGuard.

Contains the pipeline configuration dataclass and its named presets.
"""

from .pipeline_config import (
    NormalizationMode,
    PipelineMode,
    PipelineConfig,
    PIPELINE_MODES,
    get_pipeline_config,
    get_default_mode,
    get_default_config,
    load_config,
)

__all__ = [
    'NormalizationMode',
    'PipelineMode',
    'PipelineConfig',
    'PIPELINE_MODES',
    'get_pipeline_config',
    'get_default_mode',
    'get_default_config',
    'load_config',
]
