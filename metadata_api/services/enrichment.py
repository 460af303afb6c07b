"""
Annotation overlay for assembled tracks.

Annotation rows come from the secondary store. Their list columns are JSON
encoded by the ingestion pipeline; a payload that does not decode to a list
of strings is tolerated (the field becomes an empty list) but is logged and
counted so that ingestion problems stay visible.
"""
import json
import logging
from collections import Counter
from typing import Any, Iterable, Mapping, Optional

from metadata_api.core.exceptions import MalformedPayloadError
from metadata_api.schemas.catalog import LyricsStatus, TrackAnnotation, TrackResponse

logger = logging.getLogger(__name__)

# Count of tolerated malformed payloads, per annotation field
malformed_payloads: Counter[str] = Counter()


def decode_string_list(field: str, raw: Optional[str]) -> Optional[list[str]]:
    """
    Decode a JSON-encoded list of strings.

    Returns None for a NULL or empty column.

    Raises:
        MalformedPayloadError: The payload is not a JSON list of strings
    """
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedPayloadError(field, raw) from e
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        raise MalformedPayloadError(field, raw)
    return value


def _tolerant_list(field: str, raw: Optional[str], track_id: str) -> Optional[list[str]]:
    try:
        return decode_string_list(field, raw)
    except MalformedPayloadError as e:
        malformed_payloads[field] += 1
        logger.warning(f"Ignoring {e} for track {track_id}")
        return []


def parse_annotation(row: Any) -> TrackAnnotation:
    """
    Build a TrackAnnotation from a `track_files` row.

    Args:
        row: Row exposing track_id, has_lyrics, original_title, version_title,
             language_of_performance and artist_roles

    Returns:
        The parsed annotation
    """
    return TrackAnnotation(
        lyrics=LyricsStatus.from_flag(row.has_lyrics),
        original_title=row.original_title or None,
        version_title=row.version_title or None,
        languages=_tolerant_list("language_of_performance", row.language_of_performance, row.track_id),
        artist_roles=_tolerant_list("artist_roles", row.artist_roles, row.track_id),
    )


def apply_annotation(track: TrackResponse, annotation: TrackAnnotation) -> TrackResponse:
    """Return a copy of the track carrying the annotation's facts."""
    return track.model_copy(update={
        "lyrics": annotation.lyrics,
        "original_title": annotation.original_title,
        "version_title": annotation.version_title,
        "languages": annotation.languages,
        "artist_roles": annotation.artist_roles,
    })


def merge_annotations(
    tracks: Iterable[TrackResponse],
    annotations: Mapping[str, TrackAnnotation],
) -> list[TrackResponse]:
    """
    Overlay annotations onto tracks by track id.

    Tracks without an annotation are returned unchanged, keeping unknown
    lyrics and empty titles and lists. Inputs are never modified.
    """
    merged = []
    for track in tracks:
        annotation = annotations.get(track.id)
        merged.append(apply_annotation(track, annotation) if annotation is not None else track)
    return merged
