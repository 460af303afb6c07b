"""Search router for substring search over artist and track names."""

import asyncio
from typing import Optional

from fastapi import APIRouter, Query

from metadata_api.config import get_settings
from metadata_api.core.exceptions import BadRequestException, RequestTimeoutException
from metadata_api.dependencies import Store
from metadata_api.schemas.catalog import ArtistResponse, TrackResponse
from metadata_api.services.search import search_artists, search_tracks

router = APIRouter()
settings = get_settings()


def _validate_query(q: str) -> str:
    q = q.strip()
    if not q:
        raise BadRequestException("q parameter required")
    # Short queries match most of the catalog
    if len(q) < settings.search_min_query_length:
        raise BadRequestException(
            f"query must be at least {settings.search_min_query_length} characters"
        )
    return q


def _parse_limit(limit: Optional[str]) -> Optional[int]:
    # An unparseable limit falls back to the default, like an out-of-range one
    try:
        return int(limit) if limit else None
    except ValueError:
        return None


@router.get(
    "/artist",
    response_model=list[ArtistResponse],
    response_model_exclude_none=True,
    summary="Search artists by name",
)
async def search_artist(
    store: Store,
    q: str = Query("", description="Substring of the artist name"),
    limit: Optional[str] = Query(None, description="Maximum results (default 20, max 50)"),
):
    """Search artists whose name contains `q`, most followed first."""
    query = _validate_query(q)
    try:
        return await asyncio.wait_for(search_artists(store, query, _parse_limit(limit)), settings.search_timeout_seconds)
    except asyncio.TimeoutError:
        raise RequestTimeoutException("search timeout - try a more specific query")


@router.get(
    "/track",
    response_model=list[TrackResponse],
    response_model_exclude_none=True,
    summary="Search tracks by name",
)
async def search_track(
    store: Store,
    q: str = Query("", description="Substring of the track name"),
    limit: Optional[str] = Query(None, description="Maximum results (default 20, max 50)"),
):
    """Search tracks whose name contains `q`, most popular first."""
    query = _validate_query(q)
    try:
        return await asyncio.wait_for(search_tracks(store, query, _parse_limit(limit)), settings.search_timeout_seconds)
    except asyncio.TimeoutError:
        raise RequestTimeoutException("search timeout - try a more specific query")
