"""
Batch query utilities to avoid N+1 query problems.

A set of tracks is hydrated with one query per relation type instead of one
query per track: album images, album artists, track artists, artist genres,
artist images and annotations are each fetched once for the whole key set
and reassembled in memory. The single-entity lookups go through the same
fetchers with one key, so both paths produce identical records.
"""
import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Awaitable, Callable, Iterable, Optional, Sequence, TypeVar

from sqlalchemy import Row, Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection

from metadata_api.core.exceptions import QueryError
from metadata_api.database import CatalogStore
from metadata_api.models.annotation import TrackFile
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
from metadata_api.schemas.catalog import (
    AlbumResponse,
    ArtistResponse,
    Image,
    TrackAnnotation,
    TrackResponse,
)
from metadata_api.services.enrichment import merge_annotations, parse_annotation

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


# ============== Column Sets ==============

TRACK_COLUMNS = (
    Track.id,
    Track.name,
    Track.external_id_isrc,
    Track.duration_ms,
    Track.explicit,
    Track.track_number,
    Track.disc_number,
    Track.popularity,
    Track.preview_url,
    Track.album_rowid,
)

ALBUM_COLUMNS = (
    Album.id.label("album_id"),
    Album.name.label("album_name"),
    Album.album_type,
    Album.label,
    Album.release_date,
    Album.release_date_precision,
    Album.external_id_upc,
    Album.total_tracks,
    Album.copyright_c,
    Album.copyright_p,
)

ARTIST_COLUMNS = (
    Artist.rowid.label("artist_rowid"),
    Artist.id,
    Artist.name,
    Artist.followers_total,
    Artist.popularity,
)

# Tracks sharing an ISRC: most popular first, ties by storage order.
# Batch and single ISRC lookups must sort the same way.
ISRC_TRACK_ORDER = (Track.popularity.desc(), Track.rowid)


def track_album_select() -> Select:
    """Tracks joined to their album. The inner join drops tracks without one."""
    return select(*TRACK_COLUMNS, *ALBUM_COLUMNS).join(Album, Track.album_rowid == Album.rowid)


def album_select() -> Select:
    return select(Album.rowid.label("album_rowid"), *ALBUM_COLUMNS)


def artist_select() -> Select:
    return select(*ARTIST_COLUMNS)


@dataclass(frozen=True)
class ArtistLink:
    """Artist core fields plus the rowid needed to attach genres and images."""
    rowid: int
    id: str
    name: str
    followers: int
    popularity: int

    @classmethod
    def from_row(cls, row: Row) -> "ArtistLink":
        return cls(
            rowid=row.artist_rowid,
            id=row.id,
            name=row.name,
            followers=row.followers_total or 0,
            popularity=row.popularity or 0,
        )


# ============== Primary Queries ==============

async def fetch_rows(store: CatalogStore, stmt: Select, what: str) -> list[Row]:
    """
    Run a primary-store query that the caller cannot do without.

    Raises:
        QueryError: The query failed
    """
    try:
        async with store.primary_connection() as conn:
            result = await conn.execute(stmt)
            return list(result.all())
    except SQLAlchemyError as e:
        raise QueryError(f"query {what}: {e}") from e


# ============== Keyed Relation Fetchers ==============

async def fetch_album_images(conn: AsyncConnection, album_rowids: Sequence[int]) -> dict[int, list[Image]]:
    """Album images per album rowid, widest first, duplicates removed."""
    result = await conn.execute(
        select(AlbumImage.album_rowid, AlbumImage.url, AlbumImage.width, AlbumImage.height)
        .distinct()
        .where(AlbumImage.album_rowid.in_(album_rowids))
        .order_by(AlbumImage.album_rowid, AlbumImage.width.desc(), AlbumImage.url, AlbumImage.height)
    )
    images: dict[int, list[Image]] = defaultdict(list)
    for row in result:
        images[row.album_rowid].append(Image(url=row.url, width=row.width or 0, height=row.height or 0))
    return dict(images)


async def fetch_album_artists(conn: AsyncConnection, album_rowids: Sequence[int]) -> dict[int, list[ArtistLink]]:
    """
    Credited artists per album rowid.

    An artist may be linked to the same album several times; its position is
    the smallest non-null index among those links. Links with a null index
    do not credit the artist at all.
    """
    min_index = func.min(ArtistAlbum.index_in_album).label("idx")
    result = await conn.execute(
        select(ArtistAlbum.album_rowid, *ARTIST_COLUMNS, min_index)
        .select_from(Artist)
        .join(ArtistAlbum, Artist.rowid == ArtistAlbum.artist_rowid)
        .where(
            ArtistAlbum.album_rowid.in_(album_rowids),
            ArtistAlbum.index_in_album.isnot(None),
        )
        .group_by(
            ArtistAlbum.album_rowid,
            Artist.rowid,
            Artist.id,
            Artist.name,
            Artist.followers_total,
            Artist.popularity,
        )
        .order_by(ArtistAlbum.album_rowid, min_index)
    )
    artists: dict[int, list[ArtistLink]] = defaultdict(list)
    for row in result:
        artists[row.album_rowid].append(ArtistLink.from_row(row))
    return dict(artists)


async def fetch_track_artists(conn: AsyncConnection, track_ids: Sequence[str]) -> dict[str, list[ArtistLink]]:
    """
    Artists per track id.

    There is no ordering column on track_artists, so artists come back in
    whatever order the store returns them.
    """
    result = await conn.execute(
        select(Track.id.label("track_id"), *ARTIST_COLUMNS)
        .select_from(Artist)
        .join(TrackArtist, Artist.rowid == TrackArtist.artist_rowid)
        .join(Track, TrackArtist.track_rowid == Track.rowid)
        .where(Track.id.in_(track_ids))
    )
    artists: dict[str, list[ArtistLink]] = defaultdict(list)
    for row in result:
        artists[row.track_id].append(ArtistLink.from_row(row))
    return dict(artists)


async def fetch_artist_genres(conn: AsyncConnection, artist_rowids: Sequence[int]) -> dict[int, list[str]]:
    """Genre set per artist rowid, as a sorted list."""
    result = await conn.execute(
        select(ArtistGenre.artist_rowid, ArtistGenre.genre)
        .distinct()
        .where(ArtistGenre.artist_rowid.in_(artist_rowids))
        .order_by(ArtistGenre.artist_rowid, ArtistGenre.genre)
    )
    genres: dict[int, list[str]] = defaultdict(list)
    for row in result:
        genres[row.artist_rowid].append(row.genre)
    return dict(genres)


async def fetch_artist_images(conn: AsyncConnection, artist_rowids: Sequence[int]) -> dict[int, list[Image]]:
    """Artist images per artist rowid, widest first, duplicates removed."""
    result = await conn.execute(
        select(ArtistImage.artist_rowid, ArtistImage.url, ArtistImage.width, ArtistImage.height)
        .distinct()
        .where(ArtistImage.artist_rowid.in_(artist_rowids))
        .order_by(ArtistImage.artist_rowid, ArtistImage.width.desc(), ArtistImage.url, ArtistImage.height)
    )
    images: dict[int, list[Image]] = defaultdict(list)
    for row in result:
        images[row.artist_rowid].append(Image(url=row.url, width=row.width or 0, height=row.height or 0))
    return dict(images)


async def fetch_annotations(store: CatalogStore, track_ids: Sequence[str]) -> dict[str, TrackAnnotation]:
    """Annotations per track id from the secondary store. Empty when that store is off."""
    if not track_ids or not store.has_annotations:
        return {}
    async with store.annotation_connection() as conn:
        result = await conn.execute(
            select(
                TrackFile.track_id,
                TrackFile.has_lyrics,
                TrackFile.original_title,
                TrackFile.version_title,
                TrackFile.language_of_performance,
                TrackFile.artist_roles,
            ).where(TrackFile.track_id.in_(track_ids))
        )
        return {row.track_id: parse_annotation(row) for row in result}


async def _keyed(
    store: CatalogStore,
    fetch: Callable[[AsyncConnection, Sequence[K]], Awaitable[dict[K, V]]],
    keys: Sequence[K],
) -> dict[K, V]:
    """Run a keyed fetcher on its own pooled connection; no keys means no query."""
    if not keys:
        return {}
    async with store.primary_connection() as conn:
        return await fetch(conn, keys)


async def _tolerant(what: str, fetch: Awaitable[dict[K, V]]) -> dict[K, V]:
    """A failed relation fetch degrades to an empty relation instead of failing the batch."""
    try:
        return await fetch
    except SQLAlchemyError as e:
        logger.error(f"batch get {what} failed, continuing without it: {e}")
        return {}


# ============== Assembly ==============

def _build_artist(
    link: ArtistLink,
    genres: dict[int, list[str]],
    images: dict[int, list[Image]],
) -> ArtistResponse:
    return ArtistResponse(
        id=link.id,
        name=link.name,
        followers=link.followers,
        popularity=link.popularity,
        genres=genres.get(link.rowid, []),
        images=images.get(link.rowid, []),
    )


def _build_album(row: Row, images: list[Image], artists: list[ArtistResponse]) -> AlbumResponse:
    return AlbumResponse(
        id=row.album_id,
        name=row.album_name,
        type=row.album_type,
        label=row.label,
        release_date=row.release_date,
        release_date_precision=row.release_date_precision,
        upc=row.external_id_upc or None,
        total_tracks=row.total_tracks or 0,
        copyright=row.copyright_c or None,
        copyright_p=row.copyright_p or None,
        images=images,
        artists=artists,
    )


def _build_track(row: Row, album: Optional[AlbumResponse], artists: list[ArtistResponse]) -> TrackResponse:
    return TrackResponse(
        id=row.id,
        name=row.name,
        isrc=row.external_id_isrc or None,
        duration_ms=row.duration_ms or 0,
        explicit=bool(row.explicit),
        track_number=row.track_number or 0,
        disc_number=row.disc_number or 0,
        popularity=row.popularity or 0,
        preview_url=row.preview_url or None,
        album=album,
        artists=artists,
    )


async def _hydrate_artist_links(
    store: CatalogStore,
    artist_rowids: Iterable[int],
) -> tuple[dict[int, list[str]], dict[int, list[Image]]]:
    """Genres and images for a set of artist rowids, fetched concurrently."""
    keys = sorted(set(artist_rowids))
    genres, images = await asyncio.gather(
        _tolerant("artist genres", _keyed(store, fetch_artist_genres, keys)),
        _tolerant("artist images", _keyed(store, fetch_artist_images, keys)),
    )
    return genres, images


async def hydrate_tracks(
    store: CatalogStore,
    rows: Sequence[Row],
    *,
    with_album: bool = True,
) -> list[TrackResponse]:
    """
    Turn track rows into fully hydrated tracks, preserving row order.

    Rows come from `track_album_select()` (or plain `TRACK_COLUMNS` when
    `with_album` is False). Relation fetches that fail are logged and leave
    the relation empty.

    Args:
        store: Open catalog store
        rows: Track rows, in the order the result should have
        with_album: Attach the album (with its images and artists)

    Returns:
        One TrackResponse per row
    """
    if not rows:
        return []

    album_rowids = sorted({row.album_rowid for row in rows}) if with_album else []
    track_ids = list(dict.fromkeys(row.id for row in rows))

    # Relations keyed by already-known key sets, fetched concurrently
    album_images, album_artists, track_artists, annotations = await asyncio.gather(
        _tolerant("album images", _keyed(store, fetch_album_images, album_rowids)),
        _tolerant("album artists", _keyed(store, fetch_album_artists, album_rowids)),
        _tolerant("track artists", _keyed(store, fetch_track_artists, track_ids)),
        _tolerant("track annotations", fetch_annotations(store, track_ids)),
    )

    artist_rowids = {link.rowid for links in album_artists.values() for link in links}
    artist_rowids |= {link.rowid for links in track_artists.values() for link in links}
    genres, artist_images = await _hydrate_artist_links(store, artist_rowids)

    # All maps are complete from here on and only read
    albums: dict[int, AlbumResponse] = {}
    tracks = []
    for row in rows:
        album = None
        if with_album:
            album = albums.get(row.album_rowid)
            if album is None:
                album = _build_album(
                    row,
                    album_images.get(row.album_rowid, []),
                    [_build_artist(link, genres, artist_images) for link in album_artists.get(row.album_rowid, [])],
                )
                albums[row.album_rowid] = album
        artists = [_build_artist(link, genres, artist_images) for link in track_artists.get(row.id, [])]
        tracks.append(_build_track(row, album, artists))

    return merge_annotations(tracks, annotations)


async def hydrate_albums(store: CatalogStore, rows: Sequence[Row]) -> list[AlbumResponse]:
    """Albums from `album_select()` rows with their images and credited artists."""
    if not rows:
        return []

    album_rowids = sorted({row.album_rowid for row in rows})
    album_images, album_artists = await asyncio.gather(
        _tolerant("album images", _keyed(store, fetch_album_images, album_rowids)),
        _tolerant("album artists", _keyed(store, fetch_album_artists, album_rowids)),
    )
    genres, artist_images = await _hydrate_artist_links(
        store, (link.rowid for links in album_artists.values() for link in links)
    )

    return [
        _build_album(
            row,
            album_images.get(row.album_rowid, []),
            [_build_artist(link, genres, artist_images) for link in album_artists.get(row.album_rowid, [])],
        )
        for row in rows
    ]


async def hydrate_artists(store: CatalogStore, rows: Sequence[Row]) -> list[ArtistResponse]:
    """Artists from `artist_select()` rows with their genres and images."""
    if not rows:
        return []

    links = [ArtistLink.from_row(row) for row in rows]
    genres, images = await _hydrate_artist_links(store, (link.rowid for link in links))
    return [_build_artist(link, genres, images) for link in links]


async def batch_resolve_by_isrcs(store: CatalogStore, isrcs: Iterable[str]) -> dict[str, list[TrackResponse]]:
    """
    Resolve many ISRCs into hydrated tracks with a fixed number of queries.

    One joined query finds every (track, album) pair for the whole ISRC set;
    that query is the only one whose failure fails the call. Relations are
    then fetched per relation type and reassembled.

    Args:
        store: Open catalog store
        isrcs: ISRCs to resolve (duplicates are ignored)

    Returns:
        Map of ISRC to its tracks, most popular first. ISRCs with no track
        are absent from the map.

    Raises:
        QueryError: The joined track query failed
    """
    keys = sorted(set(isrcs))
    if not keys:
        return {}

    rows = await fetch_rows(
        store,
        track_album_select()
        .where(Track.external_id_isrc.in_(keys))
        .order_by(Track.external_id_isrc, *ISRC_TRACK_ORDER),
        "isrcs",
    )
    tracks = await hydrate_tracks(store, rows)

    result: dict[str, list[TrackResponse]] = defaultdict(list)
    for track in tracks:
        result[track.isrc].append(track)
    return dict(result)
