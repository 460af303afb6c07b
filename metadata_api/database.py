import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import quote

import aiosqlite
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import AsyncAdaptedQueuePool

from metadata_api.config import Settings, get_settings
from metadata_api.core.exceptions import StoreConfigError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for models living in the primary catalog store."""
    pass


class AnnotationBase(DeclarativeBase):
    """Base class for models living in the secondary annotation store."""
    pass


def _read_only_uri(path: Path) -> str:
    # SQLite URI filename; mode=ro refuses to create or write the file.
    # '#', '?' and '%' in directory names must be percent-encoded.
    return f"file:{quote(path.as_posix())}?mode=ro"


def _create_engine(path: Path, settings: Settings) -> AsyncEngine:
    uri = _read_only_uri(path)

    async def _connect():
        return await aiosqlite.connect(uri, uri=True)

    # The URL only selects the dialect; connections come from _connect
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        async_creator=_connect,
        poolclass=AsyncAdaptedQueuePool,
        echo=settings.debug,            # Log SQL queries in debug mode
        pool_size=settings.pool_size,   # Bounded: at most pool_size concurrent connections
        max_overflow=0,
        pool_timeout=settings.pool_timeout,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _set_query_only(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA query_only = ON")
        cursor.close()

    return engine


class CatalogStore:
    """
    Read-only handle over the two catalog stores.

    The primary store holds tracks, albums, artists and their relation
    tables. The annotation store is optional: it is discovered next to the
    primary file and, when missing or unreadable, every annotation lookup
    comes back empty instead of failing.

    Usage:
        store = await CatalogStore.open("/data/spotify_clean.sqlite3")
        async with store.primary_connection() as conn:
            ...
        await store.close()
    """

    def __init__(
        self,
        primary: AsyncEngine,
        annotations: Optional[AsyncEngine],
        pool_size: int,
    ):
        self.primary_engine = primary
        self.annotation_engine = annotations
        self.pool_size = pool_size

    @classmethod
    async def open(
        cls,
        primary_path: str | Path | None,
        settings: Optional[Settings] = None,
    ) -> "CatalogStore":
        """
        Open the primary catalog and its sibling annotation store.

        Args:
            primary_path: Path to the primary catalog sqlite file
            settings: Settings to use (defaults to the cached application settings)

        Returns:
            An open CatalogStore

        Raises:
            StoreConfigError: No path was configured
            FileNotFoundError: The primary file does not exist
        """
        settings = settings or get_settings()
        if not primary_path:
            raise StoreConfigError("catalog db path is required")

        path = Path(primary_path).expanduser().resolve()
        if not path.is_file():
            raise FileNotFoundError(f"catalog db not found: {path}")

        primary = _create_engine(path, settings)
        annotations = await cls._open_annotations(path.parent / settings.annotations_filename, settings)

        logger.info(
            f"Opened catalog store {path} "
            f"(annotations: {'on' if annotations is not None else 'off'}, pool size {settings.pool_size})"
        )
        return cls(primary, annotations, settings.pool_size)

    @staticmethod
    async def _open_annotations(path: Path, settings: Settings) -> Optional[AsyncEngine]:
        """Open the annotation store, or return None when it is not usable."""
        if not path.is_file():
            logger.warning(f"Annotation store {path} not found, annotations disabled")
            return None

        engine = _create_engine(path, settings)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1 FROM track_files LIMIT 1"))
        except SQLAlchemyError as e:
            logger.warning(f"Annotation store {path} is unreachable, annotations disabled: {e}")
            await engine.dispose()
            return None
        return engine

    @property
    def has_annotations(self) -> bool:
        return self.annotation_engine is not None

    @asynccontextmanager
    async def primary_connection(self) -> AsyncIterator[AsyncConnection]:
        """Check out one pooled connection to the primary store."""
        async with self.primary_engine.connect() as conn:
            yield conn

    @asynccontextmanager
    async def annotation_connection(self) -> AsyncIterator[AsyncConnection]:
        """Check out one pooled connection to the annotation store."""
        if self.annotation_engine is None:
            raise StoreConfigError("annotation store is not open")
        async with self.annotation_engine.connect() as conn:
            yield conn

    async def close(self) -> None:
        """Dispose both connection pools."""
        if self.annotation_engine is not None:
            await self.annotation_engine.dispose()
        await self.primary_engine.dispose()
