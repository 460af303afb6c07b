"""Multi-category batch lookup schemas."""

from typing import Optional

from pydantic import BaseModel

from metadata_api.schemas.catalog import AlbumResponse, ArtistResponse, TrackResponse


class BatchLookupRequest(BaseModel):
    """Identifiers to resolve, grouped by category."""
    tracks: list[str] = []
    artists: list[str] = []
    albums: list[str] = []
    isrcs: list[str] = []

    @property
    def total_items(self) -> int:
        return len(self.tracks) + len(self.artists) + len(self.albums) + len(self.isrcs)


class BatchLookupResponse(BaseModel):
    """
    Resolved records per category.

    A category that failed keeps whatever it resolved and gets an entry in
    `errors`; `errors` is None when every category succeeded.
    """
    tracks: dict[str, TrackResponse] = {}
    artists: dict[str, ArtistResponse] = {}
    albums: dict[str, AlbumResponse] = {}
    isrcs: dict[str, list[TrackResponse]] = {}
    errors: Optional[dict[str, str]] = None
