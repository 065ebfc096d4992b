"""
Unit tests for pipeline configuration and presets.
"""

import json

import pytest
import sys
import os

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ecgguard.config import (
    NormalizationMode,
    PipelineMode,
    PipelineConfig,
    PIPELINE_MODES,
    get_pipeline_config,
    get_default_config,
    get_default_mode,
    load_config,
)
from ecgguard.exceptions import ConfigurationError


class TestDefaults:

    def test_standard_values(self):
        config = get_default_config()
        assert get_default_mode() is PipelineMode.STANDARD
        assert config.required_size == 2500
        assert config.max_size == 3000
        assert config.trim_chunk == 250
        assert config.sample_scale == 0.001
        assert config.anomaly_threshold == 0.30
        assert config.qrs_amplitude_threshold == 0.4
        assert config.normalization is NormalizationMode.CENTERED
        assert config.empty_qrs_is_structural is True
        assert config.window_duration_sec == pytest.approx(10.0)

    def test_all_presets_valid(self):
        for mode in PipelineMode:
            assert get_pipeline_config(mode).validate()

    def test_presets_differ_where_documented(self):
        zscore = get_pipeline_config(PipelineMode.ZSCORE_VARIANT)
        legacy = get_pipeline_config(PipelineMode.LEGACY_STRICT_QRS)
        assert zscore.normalization is NormalizationMode.ZSCORE
        assert legacy.empty_qrs_is_structural is False

    def test_preset_copy_is_independent(self):
        config = get_default_config()
        config.anomaly_threshold = 0.9
        assert PIPELINE_MODES[PipelineMode.STANDARD].anomaly_threshold == 0.30


class TestValidation:

    @pytest.mark.parametrize("overrides", [
        {'max_size': 2000},
        {'trim_chunk': 0},
        {'sample_scale': 0.0},
        {'max_outlier_ratio': 1.5},
        {'anomaly_threshold': -0.1},
        {'queue_maxsize': 0},
        {'oracle_timeout_sec': 0.0},
        {'required_size': 2900},
        {'trim_chunk': 600},
    ])
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            get_default_config().with_overrides(**overrides)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            PipelineConfig(required_size=0).validate()


class TestSerialization:

    def test_dict_round_trip(self):
        config = get_pipeline_config(PipelineMode.ZSCORE_VARIANT).with_overrides(queue_maxsize=3)
        restored = PipelineConfig.from_dict(config.to_dict())
        assert restored == config

    def test_to_dict_is_json_friendly(self):
        data = get_default_config().to_dict()
        assert data['mode'] == 'standard'
        assert data['normalization'] == 'centered'
        json.dumps(data)

    def test_load_config_applies_overrides(self, tmp_path):
        path = tmp_path / 'pipeline.json'
        path.write_text(json.dumps({'mode': 'legacy_strict_qrs', 'anomaly_threshold': 0.25}))

        config = load_config(path)
        assert config.mode is PipelineMode.LEGACY_STRICT_QRS
        assert config.empty_qrs_is_structural is False
        assert config.anomaly_threshold == 0.25

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigurationError, match="threshhold"):
            PipelineConfig.from_dict({'anomaly_threshhold': 0.2})

    def test_invalid_json(self, tmp_path):
        path = tmp_path / 'broken.json'
        path.write_text('{"mode": ')
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_non_object_json(self, tmp_path):
        path = tmp_path / 'list.json'
        path.write_text('[1, 2]')
        with pytest.raises(ConfigurationError):
            load_config(path)
