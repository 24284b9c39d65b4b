"""
Feature definitions and the feature provider port.

Public API:
    FeatureDef, FeatureSettings, TrainSettings - Training inputs
    default_train_settings                     - Default feature selection
    FeatureProvider                            - Provider protocol
    NpyFeatureProvider                         - On-disk production provider
    InMemoryFeatureProvider                    - Dict-backed provider
    build_feature_vector                       - Concatenate features into one input vector
"""

from .defs import (
    FEATURE_REGISTRY,
    FeatureDef,
    FeatureSettings,
    TrainSettings,
    default_train_settings,
    get_feature_def,
)
from .provider import (
    FeatureProvider,
    InMemoryFeatureProvider,
    NpyFeatureProvider,
    build_feature_vector,
)

__all__ = [
    'FEATURE_REGISTRY',
    'FeatureDef',
    'FeatureSettings',
    'TrainSettings',
    'default_train_settings',
    'get_feature_def',
    'FeatureProvider',
    'InMemoryFeatureProvider',
    'NpyFeatureProvider',
    'build_feature_vector',
]
