"""Root test fixtures for the somrec test suite."""

import numpy as np
import pytest

from somrec.config import SomRecConfig
from somrec.engine.library import InMemoryLibrary, TrackRecord
from somrec.features.defs import FeatureSettings, TrainSettings
from somrec.features.provider import InMemoryFeatureProvider
from somrec.search.categories import TrackArtistLinkType
from somrec.search.indices import CategoryIndexBuilder
from somrec.som.network import Network, Position

MFCC = "lowlevel.mfcc.mean"
HPCP = "tonal.hpcp.mean"
TRACKS_PER_CLUSTER = 6
CLUSTER_COUNT = 3


@pytest.fixture
def isolated_config(tmp_path):
    """SomRecConfig with project_root pointed at tmp_path and small training sizes."""
    config = SomRecConfig()
    config.project_root = tmp_path
    config.SOM_CACHE_DIR = None
    config.SOM_FEATURES_DIR = None
    config.SOM_ITERATION_COUNT = 5
    config.SOM_BATCH_SIZE = 2
    config.SOM_RANDOM_SEED = 0
    return config


@pytest.fixture
def close_grid_network():
    """
    2x2 network where (0,1) is close to (0,0) and everything else is far.

    Adjacent distances: 1, 10, 10, ~13.45 -> median 10, search cutoff 7.5.
    """
    ref_vectors = np.array(
        [
            [[0.0, 0.0], [1.0, 0.0]],
            [[0.0, 10.0], [10.0, 10.0]],
        ]
    )
    return Network(ref_vectors)


@pytest.fixture
def far_grid_network():
    """2x2 network with every adjacent pair 10 apart (cutoff 7.5 blocks expansion)."""
    ref_vectors = np.array(
        [
            [[0.0, 0.0], [10.0, 0.0]],
            [[0.0, 10.0], [10.0, 10.0]],
        ]
    )
    return Network(ref_vectors)


@pytest.fixture
def scenario_index():
    """A, B at (0,0); C at (0,1); D at (1,1)."""
    builder = CategoryIndexBuilder()
    builder.add("A", Position(0, 0))
    builder.add("B", Position(0, 0))
    builder.add("C", Position(0, 1))
    builder.add("D", Position(1, 1))
    return builder.build()


@pytest.fixture
def small_train_settings():
    return TrainSettings(
        iteration_count=5,
        sample_count_per_neuron=4.0,
        feature_settings={MFCC: FeatureSettings(weight=1.0)},
    )


@pytest.fixture
def clustered_features():
    """18 tracks (ids 1..18) in 3 well separated clusters, with MFCC and HPCP features."""
    rng = np.random.default_rng(42)
    features = {}
    for track_id in range(1, CLUSTER_COUNT * TRACKS_PER_CLUSTER + 1):
        cluster = (track_id - 1) // TRACKS_PER_CLUSTER
        features[track_id] = {
            MFCC: cluster * 5.0 + rng.normal(0.0, 0.1, size=13),
            HPCP: cluster * 5.0 + rng.normal(0.0, 0.1, size=36),
        }
    return features


@pytest.fixture
def feature_provider(clustered_features):
    return InMemoryFeatureProvider(clustered_features)


@pytest.fixture
def library():
    """
    Library matching clustered_features.

    Releases: 3 consecutive tracks per release (101..106).
    Artists: "artist" link 1001..1006 per release, "composer" link 2000 + cluster.
    Track list 7 holds tracks 1 and 2.
    """
    records = []
    for track_id in range(1, CLUSTER_COUNT * TRACKS_PER_CLUSTER + 1):
        group = (track_id - 1) // 3
        cluster = (track_id - 1) // TRACKS_PER_CLUSTER
        records.append(
            TrackRecord(
                track_id=track_id,
                release_id=101 + group,
                artists={
                    TrackArtistLinkType.ARTIST: (1001 + group,),
                    TrackArtistLinkType.COMPOSER: (2000 + cluster,),
                },
            )
        )
    return InMemoryLibrary(records, tracklists={7: [1, 2]})
