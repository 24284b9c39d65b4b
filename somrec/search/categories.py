"""Object categories a similarity query can operate over."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ObjectKind(str, Enum):
    TRACK = "track"
    RELEASE = "release"
    ARTIST = "artist"


class TrackArtistLinkType(str, Enum):
    """How an artist is credited on a track."""

    ARTIST = "artist"
    ARRANGER = "arranger"
    COMPOSER = "composer"
    CONDUCTOR = "conductor"
    LYRICIST = "lyricist"
    MIXER = "mixer"
    PERFORMER = "performer"
    PRODUCER = "producer"
    RELEASE_ARTIST = "release_artist"
    REMIXER = "remixer"
    WRITER = "writer"


@dataclass(frozen=True)
class Category:
    """
    One index granularity: tracks, releases, or artists for one link type.

    The string form ("track", "release", "artist:composer") is used as the
    key in persisted caches.
    """

    kind: ObjectKind
    link_type: TrackArtistLinkType | None = None

    def __post_init__(self) -> None:
        if self.kind is ObjectKind.ARTIST and self.link_type is None:
            raise ValueError("Artist categories need a link type")
        if self.kind is not ObjectKind.ARTIST and self.link_type is not None:
            raise ValueError(f"Category '{self.kind.value}' does not take a link type")

    @classmethod
    def track(cls) -> Category:
        return cls(ObjectKind.TRACK)

    @classmethod
    def release(cls) -> Category:
        return cls(ObjectKind.RELEASE)

    @classmethod
    def artist(cls, link_type: TrackArtistLinkType) -> Category:
        return cls(ObjectKind.ARTIST, TrackArtistLinkType(link_type))

    @classmethod
    def parse(cls, value: str) -> Category:
        kind_name, _, link_name = value.partition(":")
        try:
            kind = ObjectKind(kind_name)
            link_type = TrackArtistLinkType(link_name) if link_name else None
        except ValueError as exc:
            raise ValueError(f"Malformed category '{value}'") from exc
        return cls(kind, link_type)

    def __str__(self) -> str:
        if self.link_type is None:
            return self.kind.value
        return f"{self.kind.value}:{self.link_type.value}"


def all_categories() -> list[Category]:
    """Every category the engine indexes."""
    return [
        Category.track(),
        Category.release(),
        *(Category.artist(link_type) for link_type in TrackArtistLinkType),
    ]
