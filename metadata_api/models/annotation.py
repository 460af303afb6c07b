"""Read-only mapping of the secondary annotation store (track_files.sqlite3)."""

from typing import Optional

from sqlalchemy import Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from metadata_api.database import AnnotationBase


class TrackFile(AnnotationBase):
    """Supplementary facts about a track, keyed by the track's public id."""

    __tablename__ = "track_files"

    track_id: Mapped[str] = mapped_column(String, primary_key=True)
    has_lyrics: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 1, 0 or NULL
    original_title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    version_title: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    language_of_performance: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON list
    artist_roles: Mapped[Optional[str]] = mapped_column(Text, nullable=True)  # JSON list

    def __repr__(self) -> str:
        return f"<TrackFile {self.track_id}>"
