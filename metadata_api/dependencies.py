from typing import Annotated, Optional

from fastapi import Depends, Request

from metadata_api.core.exceptions import ServiceUnavailableException
from metadata_api.database import CatalogStore


def get_optional_store(request: Request) -> Optional[CatalogStore]:
    """The catalog store opened at startup, or None if it could not be opened."""
    return getattr(request.app.state, "store", None)


def get_store(
    store: Annotated[Optional[CatalogStore], Depends(get_optional_store)]
) -> CatalogStore:
    """
    Dependency that provides the open catalog store.

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(store: Store):
            ...
    """
    if store is None:
        raise ServiceUnavailableException()
    return store


# Type aliases for cleaner dependency injection
Store = Annotated[CatalogStore, Depends(get_store)]
OptionalStore = Annotated[Optional[CatalogStore], Depends(get_optional_store)]
