"""Unit tests for utility functions."""

import pytest

from idgsync.utils import build_url, format_size, url_host


class TestFormatSize:
    """Tests for format_size function."""

    @pytest.mark.parametrize(
        "size,expected",
        [
            (0, "0 B"),
            (1023, "1023 B"),
            (1024, "1.0 KB"),
            (1536, "1.5 KB"),
            (1024 * 1024, "1.0 MB"),
            (5 * 1024 * 1024 * 1024, "5.0 GB"),
        ],
    )
    def test_format_size(self, size, expected):
        """Test sizes are formatted with binary units."""
        assert format_size(size) == expected


class TestBuildUrl:
    """Tests for build_url function."""

    def test_joins_with_single_slash(self):
        """Test base URL and path are joined with one slash."""
        assert (
            build_url("https://example.com/idgames/", "/newstuff/a.zip")
            == "https://example.com/idgames/newstuff/a.zip"
        )

    def test_quotes_special_characters(self):
        """Test spaces and other characters are percent-encoded."""
        assert (
            build_url("https://example.com/idgames", "levels/a b#1.zip")
            == "https://example.com/idgames/levels/a%20b%231.zip"
        )

    def test_keeps_unreserved_characters(self):
        """Test unreserved characters are left alone."""
        assert (
            build_url("https://example.com", "a-b_c.d~e/f.zip")
            == "https://example.com/a-b_c.d~e/f.zip"
        )


class TestUrlHost:
    """Tests for url_host function."""

    def test_host(self):
        """Test the host is extracted from a URL."""
        assert url_host("https://www.gamers.org/pub/idgames") == "www.gamers.org"

    def test_no_host(self):
        """Test URLs without a host return None."""
        assert url_host("newstuff/a.zip") is None
