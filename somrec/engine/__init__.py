"""
Engine controller and its ports.

Public API:
    FeaturesEngine       - SOM-based similarity engine (load, cancel, queries)
    SimilarityClassifier - Interface implemented by recommendation backends
    LoadResult, LoadStatus
    MusicLibrary         - Metadata port protocol
    InMemoryLibrary      - Dict/JSON-backed MusicLibrary
"""

from __future__ import annotations

import importlib
from typing import Any

__all__ = [
    "FeaturesEngine",
    "FeaturesEngineError",
    "SimilarityClassifier",
    "LoadResult",
    "LoadStatus",
    "MusicLibrary",
    "InMemoryLibrary",
    "TrackRecord",
]

_LAZY_IMPORTS: dict[str, tuple[str, str]] = {
    "FeaturesEngine": (".features_engine", "FeaturesEngine"),
    "FeaturesEngineError": (".features_engine", "FeaturesEngineError"),
    "SimilarityClassifier": (".classifier", "SimilarityClassifier"),
    "LoadResult": (".classifier", "LoadResult"),
    "LoadStatus": (".classifier", "LoadStatus"),
    "MusicLibrary": (".library", "MusicLibrary"),
    "InMemoryLibrary": (".library", "InMemoryLibrary"),
    "TrackRecord": (".library", "TrackRecord"),
}


def __getattr__(name: str) -> Any:
    if name not in _LAZY_IMPORTS:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, attr_name = _LAZY_IMPORTS[name]
    module = importlib.import_module(module_name, __name__)
    value = getattr(module, attr_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(list(globals().keys()) + __all__)
