"""Batch router resolving several categories of ids in one request."""

from fastapi import APIRouter

from metadata_api.config import get_settings
from metadata_api.core.exceptions import BadRequestException
from metadata_api.dependencies import Store
from metadata_api.schemas.batch import BatchLookupRequest, BatchLookupResponse
from metadata_api.services.lookup_service import batch_lookup

router = APIRouter()
settings = get_settings()


@router.post(
    "/lookup",
    response_model=BatchLookupResponse,
    response_model_exclude_none=True,
    summary="Batch lookup of tracks, artists, albums and ISRCs",
)
async def batch_lookup_endpoint(payload: BatchLookupRequest, store: Store):
    """
    Resolve up to `batch_max_items` ids across categories.

    - ISRCs are resolved with a fixed number of queries however many are sent
    - A failing category is listed in `errors`; the others are still returned
    """
    total_items = payload.total_items
    if total_items == 0:
        raise BadRequestException("at least one lookup type required")
    if total_items > settings.batch_max_items:
        raise BadRequestException(f"maximum {settings.batch_max_items} total items allowed")

    return await batch_lookup(store, payload)
