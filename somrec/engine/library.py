"""
Music library port: the metadata the engine needs from the database side.

InMemoryLibrary backs scripts and tests; production deployments pass an
adapter over their own metadata store.

JSON layout accepted by InMemoryLibrary.from_json:
    {
      "tracks": [
        {"id": 1, "release": 10, "artists": {"artist": [100], "composer": [200]}}
      ],
      "tracklists": {"5": [1, 2]}
    }
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from ..search.categories import TrackArtistLinkType
from ..search.indices import ObjectId


class MusicLibrary(Protocol):
    """Protocol for track/release/artist metadata lookups."""

    def track_ids(self) -> Sequence[ObjectId]:
        """Every known track id."""
        ...

    def release_of(self, track_id: ObjectId) -> ObjectId | None:
        ...

    def artists_of(self, track_id: ObjectId, link_type: TrackArtistLinkType) -> Sequence[ObjectId]:
        ...

    def tracks_of_list(self, tracklist_id: ObjectId) -> Sequence[ObjectId]:
        """Track ids of a track list (playlist); empty for unknown lists."""
        ...


@dataclass(frozen=True)
class TrackRecord:
    track_id: ObjectId
    release_id: ObjectId | None = None
    artists: Mapping[TrackArtistLinkType, tuple[ObjectId, ...]] = field(default_factory=dict)


class InMemoryLibrary:
    """Dict-backed MusicLibrary."""

    def __init__(
        self,
        tracks: Iterable[TrackRecord] = (),
        tracklists: Mapping[ObjectId, Sequence[ObjectId]] | None = None,
    ) -> None:
        self._tracks: dict[ObjectId, TrackRecord] = {}
        for record in tracks:
            if record.track_id in self._tracks:
                raise ValueError(f"Duplicate track id {record.track_id!r}")
            self._tracks[record.track_id] = record
        self._tracklists = {k: tuple(v) for k, v in (tracklists or {}).items()}

    @classmethod
    def from_json(cls, path: str | Path) -> InMemoryLibrary:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))

        records = []
        for row in payload.get("tracks", []):
            artists = {
                TrackArtistLinkType(link_name): tuple(artist_ids)
                for link_name, artist_ids in row.get("artists", {}).items()
            }
            records.append(TrackRecord(track_id=row["id"], release_id=row.get("release"), artists=artists))

        tracklists: dict[ObjectId, Sequence[ObjectId]] = {}
        for key, track_ids in payload.get("tracklists", {}).items():
            # JSON object keys are strings; restore numeric list ids
            tracklists[int(key) if key.isdigit() else key] = track_ids

        return cls(records, tracklists)

    def track_ids(self) -> list[ObjectId]:
        return list(self._tracks)

    def release_of(self, track_id: ObjectId) -> ObjectId | None:
        record = self._tracks.get(track_id)
        return record.release_id if record else None

    def artists_of(self, track_id: ObjectId, link_type: TrackArtistLinkType) -> tuple[ObjectId, ...]:
        record = self._tracks.get(track_id)
        if record is None:
            return ()
        return tuple(record.artists.get(link_type, ()))

    def tracks_of_list(self, tracklist_id: ObjectId) -> tuple[ObjectId, ...]:
        return self._tracklists.get(tracklist_id, ())
