"""
Read-only mappings of the primary catalog store.

The store is produced by an external ingestion pipeline. Entities are keyed
publicly by their `id` column while relation tables join on SQLite's
implicit `rowid`. Link and image tables carry no primary key of their own,
so the keys declared here only exist at the mapper level and are never
created; queries select columns rather than entities.
"""

from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from metadata_api.database import Base


class Artist(Base):
    """Artist row with follower and popularity stats."""

    __tablename__ = "artists"

    rowid: Mapped[int] = mapped_column(Integer, primary_key=True)
    id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    followers_total: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    popularity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    def __repr__(self) -> str:
        return f"<Artist {self.name}>"


class Album(Base):
    """Album (release) row."""

    __tablename__ = "albums"

    rowid: Mapped[int] = mapped_column(Integer, primary_key=True)
    id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    album_type: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    label: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    release_date: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    release_date_precision: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    external_id_upc: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    total_tracks: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    copyright_c: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    copyright_p: Mapped[Optional[str]] = mapped_column(String, nullable=True)

    def __repr__(self) -> str:
        return f"<Album {self.name}>"


class Track(Base):
    """Track (recording) row. Every track belongs to exactly one album."""

    __tablename__ = "tracks"

    rowid: Mapped[int] = mapped_column(Integer, primary_key=True)
    id: Mapped[str] = mapped_column(String, index=True)
    name: Mapped[str] = mapped_column(String)
    external_id_isrc: Mapped[Optional[str]] = mapped_column(String, nullable=True, index=True)
    duration_ms: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    explicit: Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    track_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    disc_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    popularity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    preview_url: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    album_rowid: Mapped[int] = mapped_column(ForeignKey("albums.rowid"), index=True)

    def __repr__(self) -> str:
        return f"<Track {self.name}>"


class TrackArtist(Base):
    """Track to artist link. No ordering column exists."""

    __tablename__ = "track_artists"

    track_rowid: Mapped[int] = mapped_column(ForeignKey("tracks.rowid"), primary_key=True)
    artist_rowid: Mapped[int] = mapped_column(ForeignKey("artists.rowid"), primary_key=True)


class ArtistAlbum(Base):
    """
    Artist to album link.

    The same pair may appear more than once; `index_in_album` is nullable and
    rows without it are not part of the album's credited artist list.
    """

    __tablename__ = "artist_albums"

    artist_rowid: Mapped[int] = mapped_column(ForeignKey("artists.rowid"), primary_key=True)
    album_rowid: Mapped[int] = mapped_column(ForeignKey("albums.rowid"), primary_key=True)
    index_in_album: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class AlbumImage(Base):
    """Album cover image in one size."""

    __tablename__ = "album_images"

    album_rowid: Mapped[int] = mapped_column(ForeignKey("albums.rowid"), primary_key=True)
    url: Mapped[str] = mapped_column(String, primary_key=True)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class ArtistImage(Base):
    """Artist picture in one size."""

    __tablename__ = "artist_images"

    artist_rowid: Mapped[int] = mapped_column(ForeignKey("artists.rowid"), primary_key=True)
    url: Mapped[str] = mapped_column(String, primary_key=True)
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class ArtistGenre(Base):
    __tablename__ = "artist_genres"

    artist_rowid: Mapped[int] = mapped_column(ForeignKey("artists.rowid"), primary_key=True)
    genre: Mapped[str] = mapped_column(String, primary_key=True)
