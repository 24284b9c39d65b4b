"""
Snapshot cache: encode/decode plus on-disk persistence.

A cache directory holds:
    manifest.json           - format tag, schema version, grid shape, features
    reference_vectors.npy   - (rows, columns, dims) reference vectors
    weights.npy             - per-dimension distance weights
    indices.json.gz         - per-category position index and grid matrix
    checksums.json          - sha256 + size of every file above

Decoding fails closed: any version, dimensionality or structural mismatch
raises IncompatibleCacheError and the caller retrains.
"""

from __future__ import annotations

import gzip
import hashlib
import json
import logging
import shutil
import uuid
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import numpy as np

from ..som.network import Network, Position
from .categories import Category
from .indices import CategoryIndex, Snapshot

logger = logging.getLogger(__name__)

FORMAT_TAG = "somrec-features-cache"
SCHEMA_VERSION = 1
REQUIRED_MANIFEST_FIELDS = {
    "format",
    "schema_version",
    "rows",
    "columns",
    "dimension_count",
    "feature_names",
    "categories",
    "created_at_utc",
}
MANIFEST_FILE = "manifest.json"
REF_VECTORS_FILE = "reference_vectors.npy"
WEIGHTS_FILE = "weights.npy"
INDICES_FILE = "indices.json.gz"
CHECKSUM_FILE = "checksums.json"


class IncompatibleCacheError(ValueError):
    """Raised when a cache does not match the current configuration or is malformed."""


@dataclass(frozen=True)
class CacheManifest:
    format: str
    schema_version: int
    rows: int
    columns: int
    dimension_count: int
    feature_names: list[str]
    categories: list[str]
    created_at_utc: str


@dataclass(frozen=True)
class CacheBlob:
    """Serialized form of a Snapshot."""

    manifest: CacheManifest
    ref_vectors: np.ndarray
    weights: np.ndarray
    indices: dict[str, dict[str, list[Any]]] = field(default_factory=dict)


def _now_utc_iso() -> str:
    return datetime.now(UTC).replace(microsecond=0).isoformat()


def _sha256_file(path: Path) -> str:
    h = hashlib.sha256()
    with path.open("rb") as f:
        while True:
            chunk = f.read(1024 * 1024)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def _encode_id(object_id: Any) -> Any:
    # numpy scalar ids (array-backed libraries) are not JSON serializable
    return object_id.item() if isinstance(object_id, np.generic) else object_id


def _encode_index(index: CategoryIndex) -> dict[str, list[Any]]:
    return {
        "positions": [
            [_encode_id(object_id), [[int(v) for v in position] for position in positions]]
            for object_id, positions in index.positions.items()
        ],
        "matrix": [
            [[int(v) for v in position], [_encode_id(object_id) for object_id in object_ids]]
            for position, object_ids in index.matrix.items()
        ],
    }


def _decode_position(raw: Any, network: Network) -> Position:
    row, column = raw
    if not isinstance(row, int) or not isinstance(column, int):
        raise IncompatibleCacheError(f"Invalid position {raw!r}")
    position = Position(row, column)
    if not network.contains(position):
        raise IncompatibleCacheError(f"{position} is outside the cached grid")
    return position


def _decode_index(payload: dict[str, list[Any]], network: Network) -> CategoryIndex:
    positions = {
        object_id: [_decode_position(raw, network) for raw in raw_positions]
        for object_id, raw_positions in payload["positions"]
    }
    matrix = {
        _decode_position(raw, network): list(object_ids)
        for raw, object_ids in payload["matrix"]
    }
    index = CategoryIndex(positions, matrix)
    if not index.is_consistent():
        raise IncompatibleCacheError("Position index and grid matrix disagree")
    return index


def encode(snapshot: Snapshot, feature_names: list[str] | None = None) -> CacheBlob:
    """Serialize snapshot; feature_names records the input layout it was trained on."""
    network = snapshot.network
    categories = sorted(snapshot.indices, key=str)
    manifest = CacheManifest(
        format=FORMAT_TAG,
        schema_version=SCHEMA_VERSION,
        rows=network.rows,
        columns=network.columns,
        dimension_count=network.dimension_count,
        feature_names=list(feature_names or []),
        categories=[str(category) for category in categories],
        created_at_utc=_now_utc_iso(),
    )
    return CacheBlob(
        manifest=manifest,
        ref_vectors=np.array(network.ref_vectors),
        weights=np.array(network.weights),
        indices={str(category): _encode_index(snapshot.indices[category]) for category in categories},
    )


def decode(
    blob: CacheBlob,
    expected_dimensions: int,
    expected_features: list[str] | None = None,
) -> Snapshot:
    """
    Rebuild a Snapshot from blob.

    Args:
        blob: Encoded cache
        expected_dimensions: Input dimensionality of the current feature settings
        expected_features: Current feature layout; checked when given

    Raises:
        IncompatibleCacheError: On any mismatch; nothing is partially rebuilt
    """
    manifest = blob.manifest
    if manifest.format != FORMAT_TAG:
        raise IncompatibleCacheError(f"Unknown cache format '{manifest.format}'")
    if manifest.schema_version != SCHEMA_VERSION:
        raise IncompatibleCacheError(
            f"Unsupported schema_version={manifest.schema_version}. Expected {SCHEMA_VERSION}."
        )
    if manifest.dimension_count != expected_dimensions:
        raise IncompatibleCacheError(
            f"Dimension mismatch: cache has {manifest.dimension_count}, "
            f"current settings need {expected_dimensions}"
        )
    if expected_features is not None and list(manifest.feature_names) != list(expected_features):
        raise IncompatibleCacheError("Cached feature layout differs from current settings")

    expected_shape = (manifest.rows, manifest.columns, manifest.dimension_count)
    if tuple(blob.ref_vectors.shape) != expected_shape:
        raise IncompatibleCacheError(
            f"Reference vector shape {blob.ref_vectors.shape} does not match manifest {expected_shape}"
        )

    try:
        network = Network(blob.ref_vectors, blob.weights)
        indices: dict[Category, CategoryIndex] = {}
        for name in manifest.categories:
            indices[Category.parse(name)] = _decode_index(blob.indices[name], network)
    except IncompatibleCacheError:
        raise
    except (KeyError, TypeError, ValueError) as exc:
        raise IncompatibleCacheError(f"Malformed cache content: {exc}") from exc

    return Snapshot(network=network, indices=indices)


def _validate_manifest_payload(payload: Any) -> None:
    if not isinstance(payload, dict):
        raise IncompatibleCacheError("Manifest content must be a JSON object.")
    missing = sorted(REQUIRED_MANIFEST_FIELDS - set(payload))
    if missing:
        raise IncompatibleCacheError(f"Manifest missing required fields: {', '.join(missing)}")


def _validate_checksums(root: Path, checksums: dict[str, dict[str, Any]]) -> None:
    for name, info in checksums.items():
        path = root / name
        if not path.exists():
            raise IncompatibleCacheError(f"Missing file referenced by checksums: {name}")

        expected_size = int(info["size"])
        actual_size = path.stat().st_size
        if actual_size != expected_size:
            raise IncompatibleCacheError(
                f"File size mismatch for {name}: expected {expected_size}, got {actual_size}"
            )

        if _sha256_file(path) != str(info["sha256"]):
            raise IncompatibleCacheError(f"SHA256 mismatch for {name}")


def save_cache(blob: CacheBlob, cache_dir: str | Path) -> Path:
    """
    Persist blob to cache_dir, replacing any previous cache.

    Files are written to a sibling temp directory first and swapped in by
    rename, so readers never see a half-written cache.
    """
    target = Path(cache_dir)
    target.parent.mkdir(parents=True, exist_ok=True)
    staging = target.with_name(f"{target.name}.tmp-{uuid.uuid4().hex}")
    staging.mkdir()

    try:
        manifest_path = staging / MANIFEST_FILE
        ref_vectors_path = staging / REF_VECTORS_FILE
        weights_path = staging / WEIGHTS_FILE
        indices_path = staging / INDICES_FILE

        manifest_path.write_text(json.dumps(asdict(blob.manifest), indent=2), encoding="utf-8")
        np.save(ref_vectors_path, blob.ref_vectors)
        np.save(weights_path, blob.weights)
        with gzip.open(indices_path, "wt", encoding="utf-8") as f:
            json.dump(blob.indices, f)

        checksums = {
            path.name: {"sha256": _sha256_file(path), "size": path.stat().st_size}
            for path in (manifest_path, ref_vectors_path, weights_path, indices_path)
        }
        (staging / CHECKSUM_FILE).write_text(json.dumps(checksums, indent=2), encoding="utf-8")

        previous = None
        if target.exists():
            previous = target.with_name(f"{target.name}.old-{uuid.uuid4().hex}")
            target.rename(previous)
        staging.rename(target)
        if previous is not None:
            shutil.rmtree(previous)
    except Exception:
        if staging.exists():
            shutil.rmtree(staging)
        raise

    logger.info(f"Saved SOM cache to {target}")
    return target


def load_cache(cache_dir: str | Path) -> CacheBlob:
    """
    Load a persisted cache with checksum validation.

    Raises:
        FileNotFoundError: No cache at cache_dir
        IncompatibleCacheError: Cache is malformed or fails integrity checks
    """
    root = Path(cache_dir)
    manifest_path = root / MANIFEST_FILE
    if not manifest_path.exists():
        raise FileNotFoundError(f"No SOM cache found at {root}")

    checksums_path = root / CHECKSUM_FILE
    if not checksums_path.exists():
        raise IncompatibleCacheError(f"Missing required file: {CHECKSUM_FILE}")

    try:
        checksums = json.loads(checksums_path.read_text(encoding="utf-8"))
        if not isinstance(checksums, dict):
            raise IncompatibleCacheError("Checksums content must be a JSON object.")
        for required in (MANIFEST_FILE, REF_VECTORS_FILE, WEIGHTS_FILE, INDICES_FILE):
            if required not in checksums:
                raise IncompatibleCacheError(f"Checksums do not cover {required}")
        _validate_checksums(root, checksums)

        manifest_payload = json.loads(manifest_path.read_text(encoding="utf-8"))
        _validate_manifest_payload(manifest_payload)
        manifest = CacheManifest(**{k: manifest_payload[k] for k in REQUIRED_MANIFEST_FIELDS})

        ref_vectors = np.load(root / REF_VECTORS_FILE, allow_pickle=False)
        weights = np.load(root / WEIGHTS_FILE, allow_pickle=False)
        with gzip.open(root / INDICES_FILE, "rt", encoding="utf-8") as f:
            indices = json.load(f)
    except IncompatibleCacheError:
        raise
    except (OSError, ValueError, KeyError, TypeError) as exc:
        raise IncompatibleCacheError(f"Unreadable SOM cache at {root}: {exc}") from exc

    return CacheBlob(manifest=manifest, ref_vectors=ref_vectors, weights=weights, indices=indices)


def clear_cache(cache_dir: str | Path) -> bool:
    """Remove the cache directory; returns whether anything was removed."""
    root = Path(cache_dir)
    if not root.exists():
        return False
    shutil.rmtree(root)
    logger.info(f"Cleared SOM cache at {root}")
    return True
