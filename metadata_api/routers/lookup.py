"""Lookup router for single tracks, artists, albums and ISRCs."""

from fastapi import APIRouter

from metadata_api.core.exceptions import NotFoundException
from metadata_api.dependencies import Store
from metadata_api.schemas.catalog import AlbumResponse, ArtistResponse, TrackResponse
from metadata_api.services import resolver

router = APIRouter()


@router.get(
    "/isrc/{isrc}",
    response_model=list[TrackResponse],
    response_model_exclude_none=True,
    summary="Look up tracks by ISRC",
)
async def lookup_isrc(isrc: str, store: Store):
    """
    Get every track carrying an ISRC, most popular first.

    An unknown ISRC returns an empty list.
    """
    return await resolver.resolve_tracks_by_isrc(store, isrc)


@router.get(
    "/track/{track_id}",
    response_model=TrackResponse,
    response_model_exclude_none=True,
    summary="Look up a track",
)
async def lookup_track(track_id: str, store: Store):
    """Get a track with its album, artists and annotation facts."""
    track = await resolver.resolve_track(store, track_id)
    if track is None:
        raise NotFoundException()
    return track


@router.get(
    "/artist/{artist_id}",
    response_model=ArtistResponse,
    response_model_exclude_none=True,
    summary="Look up an artist",
)
async def lookup_artist(artist_id: str, store: Store):
    artist = await resolver.resolve_artist(store, artist_id)
    if artist is None:
        raise NotFoundException()
    return artist


@router.get(
    "/album/{album_id}",
    response_model=AlbumResponse,
    response_model_exclude_none=True,
    summary="Look up an album",
)
async def lookup_album(album_id: str, store: Store):
    album = await resolver.resolve_album(store, album_id)
    if album is None:
        raise NotFoundException()
    return album


@router.get(
    "/album/{album_id}/tracks",
    response_model=list[TrackResponse],
    response_model_exclude_none=True,
    summary="List an album's tracks",
)
async def album_tracks(album_id: str, store: Store):
    """Get an album's tracks ordered by disc and track number."""
    return await resolver.resolve_album_tracks(store, album_id)
