"""
Single-entity lookups.

Each lookup resolves one identifier into one hydrated record. A missing
identifier gives None (or an empty list), never an error; only a failure of
the lookup's own primary query raises QueryError.
"""
from typing import Optional

from sqlalchemy import select

from metadata_api.database import CatalogStore
from metadata_api.models.catalog import Album, Artist, Track
from metadata_api.schemas.catalog import AlbumResponse, ArtistResponse, TrackResponse
from metadata_api.utils.batch_queries import (
    ISRC_TRACK_ORDER,
    TRACK_COLUMNS,
    album_select,
    artist_select,
    fetch_rows,
    hydrate_albums,
    hydrate_artists,
    hydrate_tracks,
    track_album_select,
)


async def resolve_track(store: CatalogStore, track_id: str) -> Optional[TrackResponse]:
    """
    Look up a track by id with its album, artists and annotation.

    Args:
        store: Open catalog store
        track_id: Public track id

    Returns:
        The track, or None if no track with that id has an album
    """
    rows = await fetch_rows(
        store,
        track_album_select().where(Track.id == track_id).limit(1),
        "track",
    )
    if not rows:
        return None
    tracks = await hydrate_tracks(store, rows)
    return tracks[0]


async def resolve_tracks_by_isrc(store: CatalogStore, isrc: str) -> list[TrackResponse]:
    """All tracks carrying an ISRC, most popular first."""
    rows = await fetch_rows(
        store,
        track_album_select()
        .where(Track.external_id_isrc == isrc)
        .order_by(*ISRC_TRACK_ORDER),
        "isrc",
    )
    return await hydrate_tracks(store, rows)


async def resolve_artist(store: CatalogStore, artist_id: str) -> Optional[ArtistResponse]:
    """Look up an artist by id with genres and images."""
    rows = await fetch_rows(store, artist_select().where(Artist.id == artist_id).limit(1), "artist")
    if not rows:
        return None
    artists = await hydrate_artists(store, rows)
    return artists[0]


async def resolve_album(store: CatalogStore, album_id: str) -> Optional[AlbumResponse]:
    """Look up an album by id with images and credited artists."""
    rows = await fetch_rows(store, album_select().where(Album.id == album_id).limit(1), "album")
    if not rows:
        return None
    albums = await hydrate_albums(store, rows)
    return albums[0]


async def resolve_album_tracks(store: CatalogStore, album_id: str) -> list[TrackResponse]:
    """
    Tracks of an album in play order (disc, then track number).

    The tracks carry their artists and annotations but not the album itself.
    An unknown album gives an empty list.
    """
    rows = await fetch_rows(
        store,
        select(*TRACK_COLUMNS)
        .join(Album, Track.album_rowid == Album.rowid)
        .where(Album.id == album_id)
        .order_by(Track.disc_number, Track.track_number),
        "album tracks",
    )
    return await hydrate_tracks(store, rows, with_album=False)
