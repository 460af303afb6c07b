"""Catalog record schemas. Every record is immutable once assembled."""

from enum import Enum
from typing import Any, ClassVar, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    Field,
    SerializerFunctionWrapHandler,
    field_serializer,
    field_validator,
    model_serializer,
)


class LyricsStatus(str, Enum):
    """Whether a track is known to have lyrics. UNKNOWN is not the same as ABSENT."""
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"

    @classmethod
    def from_flag(cls, flag: Optional[int]) -> "LyricsStatus":
        if flag is None:
            return cls.UNKNOWN
        return cls.PRESENT if flag == 1 else cls.ABSENT

    def as_bool(self) -> Optional[bool]:
        if self is LyricsStatus.UNKNOWN:
            return None
        return self is LyricsStatus.PRESENT


# ============== Catalog Schemas ==============

class CatalogRecord(BaseModel):
    """
    Immutable catalog record.

    Fields named in `omit_if_empty` are left out of the serialized form
    when they are null or empty, so clients see the same shape whether a
    value is missing from the store or never set.
    """
    omit_if_empty: ClassVar[frozenset[str]] = frozenset()

    model_config = {"frozen": True}

    # Unannotated return keeps the model fields in the JSON schema
    @model_serializer(mode="wrap")
    def _drop_empty(self, handler: SerializerFunctionWrapHandler):
        data = handler(self)
        return {
            key: value
            for key, value in data.items()
            if key not in self.omit_if_empty or value not in (None, "", [])
        }


class Image(CatalogRecord):
    """One size of an album or artist image."""
    url: str
    width: int
    height: int


class ArtistResponse(CatalogRecord):
    """Artist with genres and images."""
    omit_if_empty: ClassVar[frozenset[str]] = frozenset({"genres", "images"})

    id: str
    name: str
    followers: int = 0
    popularity: int = 0
    genres: list[str] = []
    images: list[Image] = []


class AlbumResponse(CatalogRecord):
    """Album with images (widest first) and credited artists in album order."""
    omit_if_empty: ClassVar[frozenset[str]] = frozenset({
        "upc", "copyright", "copyright_p", "images", "artists",
    })

    id: str
    name: str
    type: Optional[str] = None
    label: Optional[str] = None
    release_date: Optional[str] = None
    release_date_precision: Optional[str] = None
    upc: Optional[str] = None
    total_tracks: int = 0
    copyright: Optional[str] = None
    copyright_p: Optional[str] = None
    images: list[Image] = []
    artists: list[ArtistResponse] = []


class TrackAnnotation(BaseModel):
    """Supplementary per-track facts from the annotation store."""
    lyrics: LyricsStatus = LyricsStatus.UNKNOWN
    original_title: Optional[str] = None
    version_title: Optional[str] = None
    languages: Optional[list[str]] = None
    artist_roles: Optional[list[str]] = None

    model_config = {"frozen": True}


class TrackResponse(CatalogRecord):
    """Track with its album, its own artists and any annotation facts."""
    omit_if_empty: ClassVar[frozenset[str]] = frozenset({
        "isrc", "preview_url", "album", "artists",
        "original_title", "version_title", "lyrics", "has_lyrics",
        "languages", "artist_roles",
    })

    id: str
    name: str
    isrc: Optional[str] = None
    duration_ms: int = 0
    explicit: bool = False
    track_number: int = 0
    disc_number: int = 0
    popularity: int = 0
    preview_url: Optional[str] = None
    album: Optional[AlbumResponse] = None
    artists: list[ArtistResponse] = []

    # Annotation facts (defaults mean "no annotation row")
    original_title: Optional[str] = None
    version_title: Optional[str] = None
    lyrics: LyricsStatus = Field(
        default=LyricsStatus.UNKNOWN,
        validation_alias=AliasChoices("lyrics", "has_lyrics"),
        serialization_alias="has_lyrics",
    )
    languages: Optional[list[str]] = None
    artist_roles: Optional[list[str]] = None

    @field_validator("lyrics", mode="before")
    @classmethod
    def _lyrics_from_flag(cls, value: Any) -> Any:
        # Serialized form is a nullable bool
        if value is None:
            return LyricsStatus.UNKNOWN
        if isinstance(value, bool):
            return LyricsStatus.PRESENT if value else LyricsStatus.ABSENT
        return value

    @field_serializer("lyrics")
    def _lyrics_as_flag(self, lyrics: LyricsStatus) -> Optional[bool]:
        return lyrics.as_bool()
