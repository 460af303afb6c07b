"""
Pytest configuration and shared fixtures.

Fixture stores are real SQLite files laid out the way the ingestion pipeline
writes them: a primary catalog and a sibling `track_files.sqlite3`.
"""

import sqlite3
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import create_engine, event, text
from sqlalchemy.ext.asyncio import create_async_engine

from metadata_api.config import Settings
from metadata_api.database import CatalogStore

CATALOG_SCHEMA = [
    "CREATE TABLE artists (id TEXT, name TEXT, followers_total INTEGER, popularity INTEGER)",
    """CREATE TABLE albums (
        id TEXT, name TEXT, album_type TEXT, label TEXT, release_date TEXT,
        release_date_precision TEXT, external_id_upc TEXT, total_tracks INTEGER,
        copyright_c TEXT, copyright_p TEXT
    )""",
    """CREATE TABLE tracks (
        id TEXT, name TEXT, external_id_isrc TEXT, duration_ms INTEGER, explicit INTEGER,
        track_number INTEGER, disc_number INTEGER, popularity INTEGER, preview_url TEXT,
        album_rowid INTEGER
    )""",
    "CREATE TABLE track_artists (track_rowid INTEGER, artist_rowid INTEGER)",
    "CREATE TABLE artist_albums (artist_rowid INTEGER, album_rowid INTEGER, index_in_album INTEGER)",
    "CREATE TABLE album_images (album_rowid INTEGER, url TEXT, width INTEGER, height INTEGER)",
    "CREATE TABLE artist_images (artist_rowid INTEGER, url TEXT, width INTEGER, height INTEGER)",
    "CREATE TABLE artist_genres (artist_rowid INTEGER, genre TEXT)",
]

ANNOTATION_SCHEMA = [
    """CREATE TABLE track_files (
        track_id TEXT, has_lyrics INTEGER, original_title TEXT, version_title TEXT,
        language_of_performance TEXT, artist_roles TEXT
    )""",
]

ARTISTS = [
    {"rowid": 1, "id": "art1", "name": "Nova Lane", "followers_total": 5000, "popularity": 70},
    {"rowid": 2, "id": "art2", "name": "The Harbor", "followers_total": 1200, "popularity": 55},
    {"rowid": 3, "id": "art3", "name": "Ghost Credit", "followers_total": 10, "popularity": 5},
]

ALBUMS = [
    {
        "rowid": 1, "id": "alb1", "name": "Midnight Drive", "album_type": "single",
        "label": "Night Owl Records", "release_date": "2024-03-01", "release_date_precision": "day",
        "external_id_upc": "00602465123456", "total_tracks": 1,
        "copyright_c": "2024 Night Owl", "copyright_p": "2024 Night Owl",
    },
    {
        "rowid": 2, "id": "alb2", "name": "Neon Years", "album_type": "album",
        "label": "Harbor Sound", "release_date": "2006", "release_date_precision": "year",
        "external_id_upc": None, "total_tracks": 3,
        "copyright_c": None, "copyright_p": None,
    },
]

TRACKS = [
    {
        "rowid": 1, "id": "trk1", "name": "Night Drive", "external_id_isrc": "USUM72409273",
        "duration_ms": 201000, "explicit": 0, "track_number": 1, "disc_number": 1,
        "popularity": 80, "preview_url": "https://p.example/trk1.mp3", "album_rowid": 1,
    },
    {
        "rowid": 2, "id": "trk2", "name": "Neon Lights", "external_id_isrc": "GBAYE0601498",
        "duration_ms": 245000, "explicit": 1, "track_number": 2, "disc_number": 1,
        "popularity": 60, "preview_url": None, "album_rowid": 2,
    },
    {
        "rowid": 3, "id": "trk3", "name": "Neon Lights (Remastered)", "external_id_isrc": "GBAYE0601498",
        "duration_ms": 246000, "explicit": 0, "track_number": 1, "disc_number": 1,
        "popularity": 40, "preview_url": None, "album_rowid": 2,
    },
    {
        # Album row is missing, so this track can never be resolved
        "rowid": 4, "id": "trk4", "name": "Orphan", "external_id_isrc": "USXX00000001",
        "duration_ms": 1000, "explicit": 0, "track_number": 1, "disc_number": 1,
        "popularity": 99, "preview_url": None, "album_rowid": 99,
    },
    {
        "rowid": 5, "id": "trk5", "name": "Interlude", "external_id_isrc": None,
        "duration_ms": 60000, "explicit": 0, "track_number": 1, "disc_number": 2,
        "popularity": 10, "preview_url": None, "album_rowid": 2,
    },
]

TRACK_ARTISTS = [
    {"track_rowid": 1, "artist_rowid": 2},
    {"track_rowid": 2, "artist_rowid": 1},
    {"track_rowid": 2, "artist_rowid": 2},
    {"track_rowid": 3, "artist_rowid": 1},
    {"track_rowid": 5, "artist_rowid": 2},
]

ARTIST_ALBUMS = [
    {"artist_rowid": 1, "album_rowid": 1, "index_in_album": 0},
    {"artist_rowid": 1, "album_rowid": 1, "index_in_album": 2},
    {"artist_rowid": 3, "album_rowid": 1, "index_in_album": None},
    {"artist_rowid": 2, "album_rowid": 2, "index_in_album": 1},
    {"artist_rowid": 2, "album_rowid": 2, "index_in_album": None},
    {"artist_rowid": 1, "album_rowid": 2, "index_in_album": 0},
]

ALBUM_IMAGES = [
    {"album_rowid": 1, "url": "https://i.example/alb1-300.jpg", "width": 300, "height": 300},
    {"album_rowid": 1, "url": "https://i.example/alb1-640.jpg", "width": 640, "height": 640},
    {"album_rowid": 1, "url": "https://i.example/alb1-640.jpg", "width": 640, "height": 640},
    {"album_rowid": 2, "url": "https://i.example/alb2-64.jpg", "width": 64, "height": 64},
    {"album_rowid": 2, "url": "https://i.example/alb2-640.jpg", "width": 640, "height": 640},
]

ARTIST_IMAGES = [
    {"artist_rowid": 1, "url": "https://i.example/art1-160.jpg", "width": 160, "height": 160},
    {"artist_rowid": 1, "url": "https://i.example/art1-640.jpg", "width": 640, "height": 640},
    {"artist_rowid": 1, "url": "https://i.example/art1-640.jpg", "width": 640, "height": 640},
    {"artist_rowid": 2, "url": "https://i.example/art2-320.jpg", "width": 320, "height": 320},
]

ARTIST_GENRES = [
    {"artist_rowid": 1, "genre": "synthpop"},
    {"artist_rowid": 1, "genre": "indie pop"},
    {"artist_rowid": 1, "genre": "synthpop"},
    {"artist_rowid": 2, "genre": "shoegaze"},
]

TRACK_FILES = [
    {
        "track_id": "trk2", "has_lyrics": 1, "original_title": "Neon Lights",
        "version_title": None, "language_of_performance": '["en"]',
        "artist_roles": '["vocals", "guitar"]',
    },
    {
        "track_id": "trk3", "has_lyrics": 0, "original_title": "Neon Lights",
        "version_title": "Remastered", "language_of_performance": '["en"',
        "artist_roles": None,
    },
    {
        "track_id": "trk5", "has_lyrics": None, "original_title": None,
        "version_title": None, "language_of_performance": "", "artist_roles": '{"role": "piano"}',
    },
]


def _writable_engine(path: Path):
    # Plain filename, not a URL, so directory names are taken literally
    return create_engine("sqlite://", creator=lambda: sqlite3.connect(path))


def _insert(conn, table: str, rows: list[dict]) -> None:
    columns = list(rows[0])
    conn.execute(
        text(
            f"INSERT INTO {table} ({', '.join(columns)}) "
            f"VALUES ({', '.join(':' + c for c in columns)})"
        ),
        rows,
    )


def build_catalog(path: Path) -> Path:
    """Write the primary catalog fixture to `path`."""
    engine = _writable_engine(path)
    with engine.begin() as conn:
        for ddl in CATALOG_SCHEMA:
            conn.execute(text(ddl))
        _insert(conn, "artists", ARTISTS)
        _insert(conn, "albums", ALBUMS)
        _insert(conn, "tracks", TRACKS)
        _insert(conn, "track_artists", TRACK_ARTISTS)
        _insert(conn, "artist_albums", ARTIST_ALBUMS)
        _insert(conn, "album_images", ALBUM_IMAGES)
        _insert(conn, "artist_images", ARTIST_IMAGES)
        _insert(conn, "artist_genres", ARTIST_GENRES)
    engine.dispose()
    return path


def build_annotations(path: Path) -> Path:
    """Write the annotation store fixture to `path`."""
    engine = _writable_engine(path)
    with engine.begin() as conn:
        for ddl in ANNOTATION_SCHEMA:
            conn.execute(text(ddl))
        _insert(conn, "track_files", TRACK_FILES)
    engine.dispose()
    return path


@pytest_asyncio.fixture
async def broken_engine(tmp_path):
    """An async engine whose every query fails: the file is not a database."""
    garbage = tmp_path / "garbage.sqlite3"
    garbage.write_bytes(b"this is not a sqlite database" * 100)
    engine = create_async_engine(f"sqlite+aiosqlite:///{garbage}")
    yield engine
    await engine.dispose()


@pytest.fixture
def settings() -> Settings:
    """Settings for tests, independent of any .env file."""
    return Settings(_env_file=None, pool_size=4)


@pytest.fixture
def catalog_path(tmp_path) -> Path:
    """Primary catalog with its sibling annotation store."""
    primary = build_catalog(tmp_path / "spotify_clean.sqlite3")
    build_annotations(tmp_path / "track_files.sqlite3")
    return primary


@pytest.fixture
def bare_catalog_path(tmp_path) -> Path:
    """Primary catalog with no annotation store next to it."""
    return build_catalog(tmp_path / "spotify_clean.sqlite3")


async def _open_warm(path: Path, settings: Settings) -> CatalogStore:
    store = await CatalogStore.open(path, settings)
    # First connect runs dialect setup; keep it out of query counts
    async with store.primary_connection() as conn:
        await conn.execute(text("SELECT 1"))
    return store


@pytest_asyncio.fixture
async def store(catalog_path, settings):
    """Open store over the full fixture."""
    store = await _open_warm(catalog_path, settings)
    yield store
    await store.close()


@pytest_asyncio.fixture
async def bare_store(bare_catalog_path, settings):
    """Open store without annotations."""
    store = await _open_warm(bare_catalog_path, settings)
    yield store
    await store.close()


@pytest.fixture
def query_log(store):
    """Statements sent to either store while the test runs."""
    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    engines = [store.primary_engine.sync_engine]
    if store.annotation_engine is not None:
        engines.append(store.annotation_engine.sync_engine)
    for engine in engines:
        event.listen(engine, "before_cursor_execute", _record)
    yield statements
    for engine in engines:
        event.remove(engine, "before_cursor_execute", _record)


TIED_TRACKS = [
    {
        "rowid": 10 + n, "id": f"tie{n}", "name": f"Tie {n}", "external_id_isrc": "QZTIE0000001",
        "duration_ms": 1000, "explicit": 0, "track_number": n + 1, "disc_number": 1,
        "popularity": 50, "preview_url": None, "album_rowid": 1,
    }
    for n in range(6)
]


@pytest_asyncio.fixture
async def tied_store(tmp_path, settings):
    """
    Store with equally popular tracks sharing an ISRC.

    The (isrc, popularity) index lets SQLite walk ties in either direction
    depending on the query shape.
    """
    path = build_catalog(tmp_path / "spotify_clean.sqlite3")
    engine = _writable_engine(path)
    with engine.begin() as conn:
        conn.execute(text("CREATE INDEX idx_tracks_isrc_popularity ON tracks (external_id_isrc, popularity)"))
        _insert(conn, "tracks", TIED_TRACKS)
    engine.dispose()

    store = await _open_warm(path, settings)
    yield store
    await store.close()
