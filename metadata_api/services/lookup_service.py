"""
Multi-category batch lookup.

Each requested category (tracks, artists, albums, isrcs) resolves in its own
task. A category that fails or runs out of time is reported in the
response's error map while the other categories keep their results.

ISRCs go through the batched assembly in `utils.batch_queries`. Tracks,
artists and albums are resolved one id at a time, in parallel up to the
connection pool size.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Sequence

from metadata_api.database import CatalogStore
from metadata_api.schemas.batch import BatchLookupRequest, BatchLookupResponse
from metadata_api.services.resolver import resolve_album, resolve_artist, resolve_track
from metadata_api.utils.batch_queries import batch_resolve_by_isrcs

logger = logging.getLogger(__name__)


class PartialLookupError(Exception):
    """Some ids of a per-id category could not be resolved."""

    def __init__(self, category: str, found: dict[str, Any], failed: list[str]):
        super().__init__(f"failed to lookup some {category}")
        self.category = category
        self.found = found
        self.failed = failed


async def lookup_each(
    store: CatalogStore,
    category: str,
    ids: Sequence[str],
    resolve: Callable[[CatalogStore, str], Awaitable[Any]],
    semaphore: asyncio.Semaphore,
) -> dict[str, Any]:
    """
    Resolve ids one by one, at most `semaphore` lookups at a time.

    Ids that do not exist are left out of the result. Ids whose lookup
    fails or is cancelled are logged and skipped.

    Returns:
        Map of id to record, in request order

    Raises:
        PartialLookupError: At least one id failed; carries what was found
    """
    unique_ids = list(dict.fromkeys(ids))

    async def _one(item_id: str) -> Any:
        async with semaphore:
            return await resolve(store, item_id)

    outcomes = await asyncio.gather(*(_one(i) for i in unique_ids), return_exceptions=True)

    found: dict[str, Any] = {}
    failed: list[str] = []
    for item_id, outcome in zip(unique_ids, outcomes):
        if isinstance(outcome, (Exception, asyncio.CancelledError)):
            logger.error(f"batch lookup {category} id {item_id} failed: {outcome!r}")
            failed.append(item_id)
        elif isinstance(outcome, BaseException):
            raise outcome
        elif outcome is not None:
            found[item_id] = outcome

    if failed:
        raise PartialLookupError(category, found, failed)
    return found


async def _bounded(job: Awaitable[Any], timeout: Optional[float]) -> Any:
    if timeout is None:
        return await job
    return await asyncio.wait_for(job, timeout)


async def batch_lookup(
    store: CatalogStore,
    request: BatchLookupRequest,
    timeout: Optional[float] = None,
) -> BatchLookupResponse:
    """
    Resolve every requested category independently.

    Args:
        store: Open catalog store
        request: Ids per category
        timeout: Optional time limit in seconds, applied to each category

    Returns:
        Results per category (empty map when nothing was requested or
        found) and an error map naming the categories that failed, or None

    Raises:
        asyncio.CancelledError: The caller itself was cancelled. A single
            cancelled category is reported in the error map instead
    """
    semaphore = asyncio.Semaphore(store.pool_size)
    jobs: dict[str, Awaitable[Any]] = {}
    if request.tracks:
        jobs["tracks"] = lookup_each(store, "tracks", request.tracks, resolve_track, semaphore)
    if request.artists:
        jobs["artists"] = lookup_each(store, "artists", request.artists, resolve_artist, semaphore)
    if request.albums:
        jobs["albums"] = lookup_each(store, "albums", request.albums, resolve_album, semaphore)
    if request.isrcs:
        jobs["isrcs"] = batch_resolve_by_isrcs(store, request.isrcs)

    categories = list(jobs)
    outcomes = await asyncio.gather(
        *(_bounded(jobs[c], timeout) for c in categories),
        return_exceptions=True,
    )

    results: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for category, outcome in zip(categories, outcomes):
        if isinstance(outcome, PartialLookupError):
            results[category] = outcome.found
            errors[category] = str(outcome)
        elif isinstance(outcome, asyncio.TimeoutError):
            logger.error(f"batch lookup {category} timed out after {timeout}s")
            errors[category] = "timed out"
        elif isinstance(outcome, asyncio.CancelledError):
            # Only this category was cancelled; cancelling the caller
            # raises out of the gather above instead
            logger.error(f"batch lookup {category} was cancelled")
            errors[category] = "cancelled"
        elif isinstance(outcome, Exception):
            logger.error(f"batch lookup {category} failed: {outcome}")
            errors[category] = f"failed to lookup {category}"
        elif isinstance(outcome, BaseException):
            raise outcome
        else:
            results[category] = outcome

    return BatchLookupResponse(**results, errors=errors or None)
