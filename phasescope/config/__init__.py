"""PHASESCOPE Configuration Module."""

from phasescope.config.analysis import (
    AnalysisConfig,
    LagConfig,
    EmbeddingConfig,
    LyapunovConfig,
    TopologyConfig,
    DEFAULT_CONFIG_PATH,
    default_config_dict,
    load_analysis_config,
    dump_config,
)

__all__ = [
    'AnalysisConfig',
    'LagConfig',
    'EmbeddingConfig',
    'LyapunovConfig',
    'TopologyConfig',
    'DEFAULT_CONFIG_PATH',
    'default_config_dict',
    'load_analysis_config',
    'dump_config',
]
