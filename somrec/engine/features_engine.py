"""
SOM-based similarity engine.

Lifecycle:
    load()  - install a Snapshot from the cache, or train one from scratch
    query   - get_similar_* read whichever Snapshot is installed

A load builds its Snapshot without touching shared state and installs it with
a single reference assignment, so queries never lock and never see a partial
Snapshot. Cancelled or failed loads leave the previous Snapshot in place.

Usage:
    from somrec.engine import FeaturesEngine, InMemoryLibrary

    engine = FeaturesEngine(InMemoryLibrary.from_json("library.json"))
    result = engine.load(progress=lambda f: print(f"{f:.0%}"))
    if result.ok:
        engine.get_similar_tracks([17], max_count=10)
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from pathlib import Path

import numpy as np

from ..cancellation import Cancelled, CancellationToken, ProgressCallback, ProgressReporter
from ..config import SomRecConfig, somrec_config
from ..features.defs import TrainSettings, default_train_settings
from ..features.provider import FeatureProvider, NpyFeatureProvider, build_feature_vector
from ..som.network import train_network
from ..som.normalizer import DataNormalizer
from ..search.cache import IncompatibleCacheError, decode, encode, load_cache, save_cache
from ..search.categories import Category, TrackArtistLinkType
from ..search.indices import FeatureVector, ObjectId, Snapshot, build_indices
from ..search.similarity import get_similar_objects
from .classifier import LoadResult, LoadStatus, SimilarityClassifier
from .library import MusicLibrary

logger = logging.getLogger(__name__)

# Progress split between load stages
_FETCH_END = 0.2
_TRAIN_END = 0.9
_INDEX_END = 0.98


class FeaturesEngineError(RuntimeError):
    """Unrecoverable training failure (no usable features, provider down, ...)."""


class FeaturesEngine(SimilarityClassifier):
    """
    Similarity engine backed by a self-organizing map of track features.

    Args:
        library: Metadata port (tracks, releases, artists, track lists)
        feature_provider: Feature source; defaults to NpyFeatureProvider over config.features_dir
        train_settings: Feature selection and training sizes; defaults to default_train_settings()
        cache_dir: Snapshot cache directory; defaults to config.cache_dir
        persist_cache: Write a new cache after training
        config: Configuration (defaults to the global somrec_config)
    """

    def __init__(
        self,
        library: MusicLibrary,
        feature_provider: FeatureProvider | None = None,
        train_settings: TrainSettings | None = None,
        cache_dir: str | Path | None = None,
        persist_cache: bool = True,
        config: SomRecConfig | None = None,
    ) -> None:
        self.config = config or somrec_config
        self.config.validate_config()
        self.library = library
        self.feature_provider = feature_provider or NpyFeatureProvider(self.config.features_dir)
        self.train_settings = train_settings or default_train_settings(
            iteration_count=self.config.iteration_count,
            sample_count_per_neuron=self.config.sample_count_per_neuron,
        )
        self.cache_dir = Path(cache_dir) if cache_dir is not None else self.config.cache_dir
        self.persist_cache = persist_cache

        self._snapshot: Snapshot | None = None
        self._load_lock = threading.Lock()
        self._cancel_token: CancellationToken | None = None

    # =========================================================================
    # State
    # =========================================================================

    @property
    def name(self) -> str:
        return "features"

    @property
    def is_ready(self) -> bool:
        return self._snapshot is not None

    @property
    def snapshot(self) -> Snapshot | None:
        """Currently installed Snapshot, or None before the first successful load."""
        return self._snapshot

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, force_retrain: bool = False, progress: ProgressCallback | None = None) -> LoadResult:
        """
        Load from cache (unless force_retrain) or train, then install the result.

        Never raises for training-time errors: they are logged and reported as
        LoadStatus.FAILED. Only one load may run at a time.
        """
        if not self._load_lock.acquire(blocking=False):
            logger.warning("Load requested while another load is in progress")
            return LoadResult(LoadStatus.FAILED, error="A load is already in progress")

        token = CancellationToken()
        self._cancel_token = token
        reporter = ProgressReporter(progress)
        try:
            snapshot = None if force_retrain else self._load_from_cache()
            from_cache = snapshot is not None
            if snapshot is None:
                snapshot = self._load_from_training(token, reporter)

            token.raise_if_cancelled()
            self._snapshot = snapshot
            if not from_cache and self.persist_cache:
                self._persist(snapshot)
            reporter.report(1.0)
            logger.info(
                f"Installed SOM snapshot {snapshot.network!r} "
                f"({'cache' if from_cache else 'training'})"
            )
            return LoadResult(LoadStatus.SUCCESS, from_cache=from_cache)

        except Cancelled:
            logger.info("SOM load cancelled, keeping previous snapshot")
            return LoadResult(LoadStatus.CANCELLED)
        except Exception as e:
            logger.exception(f"SOM load failed: {e}")
            return LoadResult(LoadStatus.FAILED, error=str(e))
        finally:
            self._cancel_token = None
            self._load_lock.release()

    def request_cancel(self) -> None:
        """Ask the in-progress load to stop; no effect when idle."""
        token = self._cancel_token
        if token is not None:
            logger.info("Cancellation requested for in-progress SOM load")
            token.cancel()

    def _load_from_cache(self) -> Snapshot | None:
        try:
            blob = load_cache(self.cache_dir)
            snapshot = decode(
                blob,
                expected_dimensions=self.train_settings.dimension_count,
                expected_features=self.train_settings.feature_names,
            )
        except FileNotFoundError:
            logger.info(f"No SOM cache at {self.cache_dir}, training required")
            return None
        except IncompatibleCacheError as e:
            logger.warning(f"Ignoring incompatible SOM cache: {e}")
            return None

        logger.info(f"Loaded SOM snapshot from cache {self.cache_dir}")
        return snapshot

    def _fetch_track_vectors(
        self,
        token: CancellationToken,
        reporter: ProgressReporter,
    ) -> tuple[list[ObjectId], np.ndarray]:
        feature_names = self.train_settings.feature_names
        track_ids = list(self.library.track_ids())

        kept_ids: list[ObjectId] = []
        rows: list[np.ndarray] = []
        fetch_errors = 0
        for i, track_id in enumerate(track_ids):
            token.raise_if_cancelled()
            try:
                features = self.feature_provider.fetch(track_id, feature_names)
            except Exception as e:
                fetch_errors += 1
                logger.warning(f"Feature fetch failed for track {track_id}: {e}")
                continue

            if features is not None:
                vector = build_feature_vector(features, self.train_settings, source_name=f"track {track_id}")
                if vector is not None:
                    kept_ids.append(track_id)
                    rows.append(vector)
            reporter.report((i + 1) / len(track_ids))

        if track_ids and fetch_errors == len(track_ids):
            raise FeaturesEngineError(f"Feature provider failed for all {fetch_errors} tracks")
        if not kept_ids:
            raise FeaturesEngineError("No track has usable features, cannot train")

        logger.info(
            f"Fetched features for {len(kept_ids)}/{len(track_ids)} tracks "
            f"({fetch_errors} fetch errors)"
        )
        return kept_ids, np.vstack(rows)

    def _feature_vectors(self, track_ids: Sequence[ObjectId], data: np.ndarray) -> list[FeatureVector]:
        """One vector per track, reused for its release and every credited artist."""
        vectors: list[FeatureVector] = []
        for track_id, components in zip(track_ids, data):
            vectors.append(FeatureVector(track_id, Category.track(), components))

            release_id = self.library.release_of(track_id)
            if release_id is not None:
                vectors.append(FeatureVector(release_id, Category.release(), components))

            for link_type in TrackArtistLinkType:
                for artist_id in self.library.artists_of(track_id, link_type):
                    vectors.append(FeatureVector(artist_id, Category.artist(link_type), components))
        return vectors

    def _load_from_training(self, token: CancellationToken, reporter: ProgressReporter) -> Snapshot:
        settings = self.train_settings
        track_ids, raw = self._fetch_track_vectors(token, reporter.stage(0.0, _FETCH_END))

        data = DataNormalizer.fit(raw).normalize(raw)
        network = train_network(
            data,
            iteration_count=settings.iteration_count,
            sample_count_per_neuron=settings.sample_count_per_neuron,
            weights=settings.dimension_weights(),
            learning_rate=self.config.learning_rate,
            seed=self.config.random_seed,
            batch_size=self.config.batch_size,
            cancel=token,
            progress=reporter.stage(_FETCH_END, _TRAIN_END),
        )

        indices = build_indices(
            network,
            self._feature_vectors(track_ids, data),
            cancel=token,
            progress=reporter.stage(_TRAIN_END, _INDEX_END),
        )
        return Snapshot(network=network, indices=indices)

    def _persist(self, snapshot: Snapshot) -> None:
        """Write the installed snapshot to the cache; failures only cost the next startup."""
        try:
            save_cache(encode(snapshot, self.train_settings.feature_names), self.cache_dir)
        except Exception as e:
            logger.exception(f"Failed to persist SOM cache to {self.cache_dir}: {e}")

    # =========================================================================
    # Queries
    # =========================================================================

    def _search(
        self,
        snapshot: Snapshot | None,
        category: Category,
        ids: Iterable[ObjectId],
        max_count: int,
    ) -> list[ObjectId]:
        if max_count < 0:
            raise ValueError("max_count must not be negative")
        if snapshot is None:
            return []
        return get_similar_objects(
            ids,
            snapshot.network,
            snapshot.index(category),
            max_count,
            cutoff_factor=self.config.search_cutoff_factor,
        )

    def get_similar_tracks(self, track_ids: Iterable[ObjectId], max_count: int) -> list[ObjectId]:
        return self._search(self._snapshot, Category.track(), track_ids, max_count)

    def get_similar_tracks_from_list(self, tracklist_id: ObjectId, max_count: int) -> list[ObjectId]:
        snapshot = self._snapshot
        track_ids = self.library.tracks_of_list(tracklist_id)
        return self._search(snapshot, Category.track(), track_ids, max_count)

    def get_similar_releases(self, release_id: ObjectId, max_count: int) -> list[ObjectId]:
        return self._search(self._snapshot, Category.release(), [release_id], max_count)

    def get_similar_artists(
        self,
        artist_id: ObjectId,
        link_types: Sequence[TrackArtistLinkType],
        max_count: int,
    ) -> list[ObjectId]:
        """Similar artists over several link types, merged in link-type order."""
        if max_count < 0:
            raise ValueError("max_count must not be negative")
        snapshot = self._snapshot

        merged: dict[ObjectId, None] = {}
        for link_type in dict.fromkeys(TrackArtistLinkType(lt) for lt in link_types):
            for similar_id in self._search(snapshot, Category.artist(link_type), [artist_id], max_count):
                if len(merged) == max_count:
                    break
                merged.setdefault(similar_id, None)
        return list(merged)
