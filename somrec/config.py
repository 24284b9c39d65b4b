import os
from pathlib import Path
from typing import Any


class SomRecConfig:
    """
    Global configuration for the SOM similarity engine.

    Provides training defaults, the search cutoff and global paths
    (project_root, data_root). Environment variables override the defaults.
    """

    def __init__(self):
        # Project structure
        self.project_root = Path(__file__).parent.parent

        # Training defaults
        self.SOM_ITERATION_COUNT: int = 10
        self.SOM_SAMPLE_COUNT_PER_NEURON: float = 4.0
        self.SOM_LEARNING_RATE: float = 0.5
        self.SOM_RANDOM_SEED: int | None = 0
        self.SOM_BATCH_SIZE: int = 64

        # Search
        self.SOM_SEARCH_CUTOFF_FACTOR: float = 0.75

        # Paths (None means "derive from data_root")
        self.SOM_CACHE_DIR: str | None = None
        self.SOM_FEATURES_DIR: str | None = None

        self._apply_env_overrides()

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides for deployment flexibility."""
        if os.getenv('SOMREC_CACHE_DIR'):
            self.SOM_CACHE_DIR = os.getenv('SOMREC_CACHE_DIR')

        if os.getenv('SOMREC_FEATURES_DIR'):
            self.SOM_FEATURES_DIR = os.getenv('SOMREC_FEATURES_DIR')

        if os.getenv('SOMREC_ITERATIONS'):
            self.SOM_ITERATION_COUNT = int(os.getenv('SOMREC_ITERATIONS'))

        if os.getenv('SOMREC_SAMPLES_PER_NEURON'):
            self.SOM_SAMPLE_COUNT_PER_NEURON = float(os.getenv('SOMREC_SAMPLES_PER_NEURON'))

        if os.getenv('SOMREC_SEED'):
            self.SOM_RANDOM_SEED = int(os.getenv('SOMREC_SEED'))

    # =========================================================================
    # Training Configuration
    # =========================================================================

    @property
    def iteration_count(self) -> int:
        """Number of full passes over the training vectors."""
        return self.SOM_ITERATION_COUNT

    @property
    def sample_count_per_neuron(self) -> float:
        """Training vectors per grid cell, used to size the network."""
        return self.SOM_SAMPLE_COUNT_PER_NEURON

    @property
    def learning_rate(self) -> float:
        """Initial learning rate; decays linearly to the last iteration."""
        return self.SOM_LEARNING_RATE

    @property
    def random_seed(self) -> int | None:
        return self.SOM_RANDOM_SEED

    @property
    def batch_size(self) -> int:
        """Sample updates between two cancellation checks."""
        return self.SOM_BATCH_SIZE

    @property
    def search_cutoff_factor(self) -> float:
        """Fraction of the reference vector distance median allowed when expanding a search."""
        return self.SOM_SEARCH_CUTOFF_FACTOR

    # =========================================================================
    # Global Path Configuration
    # =========================================================================

    @property
    def data_root(self) -> Path:
        """
        Root data directory.

        Structure:
            data/
            ├── features/       # One subdirectory per feature name, <track_id>.npy
            └── cache/som/      # Persisted network + indices
        """
        return self.project_root / "data"

    @property
    def cache_dir(self) -> Path:
        if self.SOM_CACHE_DIR:
            return Path(self.SOM_CACHE_DIR)
        return self.data_root / "cache" / "som"

    @property
    def features_dir(self) -> Path:
        if self.SOM_FEATURES_DIR:
            return Path(self.SOM_FEATURES_DIR)
        return self.data_root / "features"

    # =========================================================================
    # Validation and Utilities
    # =========================================================================

    def validate_config(self) -> None:
        """Validate training and search parameters."""
        if self.iteration_count < 1:
            raise ValueError("iteration_count must be at least 1")
        if self.sample_count_per_neuron <= 0:
            raise ValueError("sample_count_per_neuron must be positive")
        if not 0 < self.learning_rate <= 1:
            raise ValueError("learning_rate must be in range (0, 1]")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.search_cutoff_factor < 0:
            raise ValueError("search_cutoff_factor must not be negative")

    def get_path_info(self) -> dict[str, Any]:
        """Get path information for debugging."""
        return {
            'project_root': str(self.project_root),
            'data_root': str(self.data_root),
            'cache_dir': str(self.cache_dir),
            'features_dir': str(self.features_dir),
        }


# ============================================================================
# Global Configuration Instance
# ============================================================================

somrec_config = SomRecConfig()
