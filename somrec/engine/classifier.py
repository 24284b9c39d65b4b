"""Similarity classifier interface shared by every recommendation backend."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from ..cancellation import ProgressCallback
from ..search.categories import TrackArtistLinkType
from ..search.indices import ObjectId


class LoadStatus(str, Enum):
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class LoadResult:
    status: LoadStatus
    from_cache: bool = False
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is LoadStatus.SUCCESS


class SimilarityClassifier(ABC):
    """
    Abstract recommendation backend.

    Callers hold this interface; the SOM-based FeaturesEngine is one
    implementation.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @property
    @abstractmethod
    def is_ready(self) -> bool:
        """Whether queries run against loaded state (as opposed to returning [] by default)."""
        ...

    @abstractmethod
    def load(self, force_retrain: bool = False, progress: ProgressCallback | None = None) -> LoadResult:
        ...

    @abstractmethod
    def request_cancel(self) -> None:
        ...

    @abstractmethod
    def get_similar_tracks(self, track_ids: Iterable[ObjectId], max_count: int) -> list[ObjectId]:
        ...

    @abstractmethod
    def get_similar_tracks_from_list(self, tracklist_id: ObjectId, max_count: int) -> list[ObjectId]:
        ...

    @abstractmethod
    def get_similar_releases(self, release_id: ObjectId, max_count: int) -> list[ObjectId]:
        ...

    @abstractmethod
    def get_similar_artists(
        self,
        artist_id: ObjectId,
        link_types: Sequence[TrackArtistLinkType],
        max_count: int,
    ) -> list[ObjectId]:
        ...
