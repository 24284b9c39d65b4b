"""
Map-based similarity search.

Public API:
    Category, ObjectKind, TrackArtistLinkType - Index granularities
    FeatureVector, CategoryIndex, Snapshot    - Indexed state
    build_indices                             - Assign vectors to cells per category
    get_similar_objects                       - Expanding-radius search
    encode, decode, save_cache, load_cache    - Snapshot cache
"""

from .categories import Category, ObjectKind, TrackArtistLinkType, all_categories
from .indices import (
    CategoryIndex,
    CategoryIndexBuilder,
    FeatureVector,
    Snapshot,
    build_indices,
)
from .similarity import get_similar_objects
from .cache import (
    CacheBlob,
    IncompatibleCacheError,
    clear_cache,
    decode,
    encode,
    load_cache,
    save_cache,
)

__all__ = [
    'Category',
    'ObjectKind',
    'TrackArtistLinkType',
    'all_categories',
    'CategoryIndex',
    'CategoryIndexBuilder',
    'FeatureVector',
    'Snapshot',
    'build_indices',
    'get_similar_objects',
    'CacheBlob',
    'IncompatibleCacheError',
    'clear_cache',
    'decode',
    'encode',
    'load_cache',
    'save_cache',
]
