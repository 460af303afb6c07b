# Import all models so both declarative bases know their tables
from metadata_api.models.catalog import (
    Album,
    AlbumImage,
    Artist,
    ArtistAlbum,
    ArtistGenre,
    ArtistImage,
    Track,
    TrackArtist,
)
from metadata_api.models.annotation import TrackFile

__all__ = [
    "Album",
    "AlbumImage",
    "Artist",
    "ArtistAlbum",
    "ArtistGenre",
    "ArtistImage",
    "Track",
    "TrackArtist",
    "TrackFile",
]
