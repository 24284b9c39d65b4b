"""
somrec: self-organizing-map similarity engine for tracks, releases and artists.

Subpackages:
    features - Feature definitions and the feature provider port
    som      - Network training and queries
    search   - Category indices, similarity search, snapshot cache
    engine   - FeaturesEngine controller and metadata port
"""

__version__ = "0.1.0"
