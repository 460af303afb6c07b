"""Case-insensitive substring search over artist and track names."""
from typing import Optional

from metadata_api.config import get_settings
from metadata_api.database import CatalogStore
from metadata_api.models.catalog import Artist, Track
from metadata_api.schemas.catalog import ArtistResponse, TrackResponse
from metadata_api.utils.batch_queries import (
    artist_select,
    fetch_rows,
    hydrate_artists,
    hydrate_tracks,
    track_album_select,
)


def clamp_limit(limit: Optional[int]) -> int:
    """Out-of-range limits fall back to the default rather than the maximum."""
    settings = get_settings()
    if limit is None or limit <= 0 or limit > settings.search_max_limit:
        return settings.search_default_limit
    return limit


async def search_artists(store: CatalogStore, query: str, limit: Optional[int] = None) -> list[ArtistResponse]:
    """
    Search artists whose name contains the query.

    Args:
        store: Open catalog store
        query: Substring to look for (case-insensitive, wildcards are literal)
        limit: Maximum number of results (default 20, max 50)

    Returns:
        Matching artists, most followed first
    """
    if not query.strip():
        return []

    rows = await fetch_rows(
        store,
        artist_select()
        .where(Artist.name.icontains(query, autoescape=True))
        .order_by(Artist.followers_total.desc())
        .limit(clamp_limit(limit)),
        "artist search",
    )
    return await hydrate_artists(store, rows)


async def search_tracks(store: CatalogStore, query: str, limit: Optional[int] = None) -> list[TrackResponse]:
    """
    Search tracks whose name contains the query.

    Args:
        store: Open catalog store
        query: Substring to look for (case-insensitive, wildcards are literal)
        limit: Maximum number of results (default 20, max 50)

    Returns:
        Matching tracks with album, artists and annotations, most popular first
    """
    if not query.strip():
        return []

    rows = await fetch_rows(
        store,
        track_album_select()
        .where(Track.name.icontains(query, autoescape=True))
        .order_by(Track.popularity.desc())
        .limit(clamp_limit(limit)),
        "track search",
    )
    return await hydrate_tracks(store, rows)
