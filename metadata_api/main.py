import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from metadata_api.config import get_settings
from metadata_api.core.exceptions import MetadataAPIError, QueryError
from metadata_api.database import CatalogStore
from metadata_api.dependencies import OptionalStore
from metadata_api.routers import batch, lookup, search
from metadata_api.services.enrichment import malformed_payloads

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup/shutdown events.
    """
    # Startup
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )
    logger.info(f"Starting {settings.app_name}...")
    try:
        app.state.store = await CatalogStore.open(settings.catalog_db_path, settings)
    except (MetadataAPIError, OSError) as e:
        # Keep serving /health so the failure is visible; lookups answer 503
        logger.error(f"Could not open catalog store: {e}")
        app.state.store = None
    yield
    # Shutdown
    logger.info(f"Shutting down {settings.app_name}...")
    if app.state.store is not None:
        await app.state.store.close()


app = FastAPI(
    title=settings.app_name,
    description="Read-only catalog metadata: tracks, albums, artists and ISRC lookups",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(QueryError)
async def query_error_handler(request: Request, exc: QueryError):
    logger.error(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "internal error"})


# Include routers
app.include_router(
    lookup.router,
    prefix="/lookup",
    tags=["Lookup"]
)
app.include_router(
    search.router,
    prefix="/search",
    tags=["Search"]
)
app.include_router(
    batch.router,
    prefix="/batch",
    tags=["Batch"]
)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - API info."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check(store: OptionalStore):
    """Health check endpoint."""
    return {
        "status": "ok" if store is not None else "unavailable",
        "annotations": store.has_annotations if store is not None else False,
        "malformed_payloads": dict(malformed_payloads),
    }
