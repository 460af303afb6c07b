"""
Tests for services/search.py - substring search.
"""

import pytest

from metadata_api.config import get_settings
from metadata_api.schemas.catalog import LyricsStatus
from metadata_api.services.search import clamp_limit, search_artists, search_tracks


class TestClampLimit:
    """Test the result limit rules."""

    @pytest.mark.parametrize("limit", [None, 0, -3, 51, 1000])
    def test_out_of_range_uses_default(self, limit):
        assert clamp_limit(limit) == get_settings().search_default_limit

    @pytest.mark.parametrize("limit", [1, 20, 50])
    def test_in_range_kept(self, limit):
        assert clamp_limit(limit) == limit


class TestSearchArtists:
    """Test artist name search."""

    @pytest.mark.asyncio
    async def test_case_insensitive_substring(self, store):
        artists = await search_artists(store, "nova")

        assert [a.id for a in artists] == ["art1"]
        assert artists[0].genres == ["indie pop", "synthpop"]

    @pytest.mark.asyncio
    async def test_most_followed_first(self, store):
        """Test ordering by follower count."""
        artists = await search_artists(store, "e")

        followers = [a.followers for a in artists]
        assert followers == sorted(followers, reverse=True)
        assert [a.id for a in artists] == ["art1", "art2", "art3"]

    @pytest.mark.asyncio
    async def test_limit(self, store):
        artists = await search_artists(store, "e", limit=1)

        assert [a.id for a in artists] == ["art1"]

    @pytest.mark.asyncio
    async def test_wildcards_are_literal(self, store):
        """Test that LIKE wildcards in the query match nothing special."""
        assert await search_artists(store, "%") == []
        assert await search_artists(store, "_") == []

    @pytest.mark.asyncio
    async def test_blank_query(self, store, query_log):
        assert await search_artists(store, "   ") == []
        assert query_log == []


class TestSearchTracks:
    """Test track name search."""

    @pytest.mark.asyncio
    async def test_most_popular_first(self, store):
        """Test matches are hydrated and ordered by popularity."""
        tracks = await search_tracks(store, "NEON")

        assert [t.id for t in tracks] == ["trk2", "trk3"]
        assert tracks[0].album.id == "alb2"
        assert tracks[0].lyrics is LyricsStatus.PRESENT

    @pytest.mark.asyncio
    async def test_tracks_without_album_excluded(self, store):
        assert await search_tracks(store, "orphan") == []
