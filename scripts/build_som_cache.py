#!/usr/bin/env python3
"""
Train the SOM similarity engine and persist its cache.

Usage:
    python scripts/build_som_cache.py --library data/library.json --features data/features
    python scripts/build_som_cache.py --library data/library.json --features data/features \
        --cache data/cache/som --iterations 20 --query-track 17
"""

import argparse
import logging
import sys
from pathlib import Path

from tqdm import tqdm

from somrec.config import somrec_config
from somrec.engine import FeaturesEngine, InMemoryLibrary
from somrec.features import NpyFeatureProvider, default_train_settings

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def _parse_id(value: str):
    return int(value) if value.isdigit() else value


def main():
    parser = argparse.ArgumentParser(description="Train the SOM similarity engine")
    parser.add_argument(
        "--library",
        type=str,
        required=True,
        help="Library JSON (tracks with release/artist links, track lists)"
    )
    parser.add_argument(
        "--features",
        type=str,
        default=str(somrec_config.features_dir),
        help="Features directory (<feature name>/<track id>.npy)"
    )
    parser.add_argument(
        "--cache",
        type=str,
        default=str(somrec_config.cache_dir),
        help="Cache directory to write"
    )
    parser.add_argument(
        "--iterations",
        type=int,
        default=somrec_config.iteration_count,
        help=f"Training iterations (default: {somrec_config.iteration_count})"
    )
    parser.add_argument(
        "--samples-per-neuron",
        type=float,
        default=somrec_config.sample_count_per_neuron,
        help=f"Tracks per grid cell (default: {somrec_config.sample_count_per_neuron})"
    )
    parser.add_argument(
        "--use-cache",
        action="store_true",
        help="Load an existing compatible cache instead of retraining"
    )
    parser.add_argument(
        "--query-track",
        type=str,
        default=None,
        help="Print similar tracks for this track id once loaded"
    )
    parser.add_argument(
        "--count",
        type=int,
        default=10,
        help="Number of similar tracks to print (default: 10)"
    )

    args = parser.parse_args()

    try:
        somrec_config.validate_config()
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1
    logger.debug(f"Paths: {somrec_config.get_path_info()}")

    library_path = Path(args.library)
    if not library_path.exists():
        logger.error(f"Library file not found: {library_path}")
        return 1

    library = InMemoryLibrary.from_json(library_path)
    settings = default_train_settings(
        iteration_count=args.iterations,
        sample_count_per_neuron=args.samples_per_neuron,
    )
    engine = FeaturesEngine(
        library,
        feature_provider=NpyFeatureProvider(args.features),
        train_settings=settings,
        cache_dir=args.cache,
    )

    logger.info(f"Library: {len(library.track_ids())} tracks")
    logger.info(f"Features: {len(settings.feature_names)} features, {settings.dimension_count} dimensions")

    with tqdm(total=100, desc="Loading SOM", unit="%") as bar:
        def on_progress(fraction: float) -> None:
            bar.update(round(fraction * 100) - bar.n)

        result = engine.load(force_retrain=not args.use_cache, progress=on_progress)

    if not result.ok:
        logger.error(f"Load {result.status.value}: {result.error or ''}")
        return 1

    logger.info(f"Engine ready ({'cache' if result.from_cache else 'trained'}), cache at {args.cache}")

    if args.query_track is not None:
        similar = engine.get_similar_tracks([_parse_id(args.query_track)], args.count)
        print(f"\nTracks similar to {args.query_track}:")
        for rank, track_id in enumerate(similar, start=1):
            print(f"  {rank:2d}. {track_id}")
        if not similar:
            print("  (no similar tracks found)")

    return 0


if __name__ == "__main__":
    sys.exit(main())
