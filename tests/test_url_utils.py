"""Tests for URL list loading and filename sanitization."""

from pathlib import Path

import pytest

from shotdiff.url_utils import find_collisions, load_url_list, sanitize_filename


class TestSanitizeFilename:

    def test_replaces_reserved_characters(self):
        assert sanitize_filename("https://a.com/x") == "https_a_com_x"

    def test_example_com(self):
        assert sanitize_filename("https://example.com") == "https_example_com"

    def test_deterministic(self):
        url = "https://example.com/path/page.html?q=1"
        assert sanitize_filename(url) == sanitize_filename(url)

    def test_other_characters_untouched(self):
        assert sanitize_filename("http://h/p?q=1&r=2#frag") == "http_h_p?q=1&r=2#frag"

    def test_total_on_empty_and_plain_strings(self):
        assert sanitize_filename("") == ""
        assert sanitize_filename("not a url") == "not a url"


class TestLoadUrlList:

    def test_one_url_per_line(self, tmp_path: Path):
        path = tmp_path / "urls.txt"
        path.write_text("https://example.com\nhttps://example.org/about\n")
        assert load_url_list(path) == ["https://example.com", "https://example.org/about"]

    def test_skips_blank_lines_and_comments(self, tmp_path: Path):
        path = tmp_path / "urls.txt"
        path.write_text("\n# staging\n  https://example.com  \n\r\n\nhttps://example.org\n")
        assert load_url_list(path) == ["https://example.com", "https://example.org"]

    def test_malformed_entries_are_kept(self, tmp_path: Path):
        path = tmp_path / "urls.txt"
        path.write_text("not a url\n")
        assert load_url_list(path) == ["not a url"]

    def test_missing_file_raises(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            load_url_list(tmp_path / "missing.txt")


class TestFindCollisions:

    def test_no_collisions(self):
        assert find_collisions(["https://a.com", "https://b.com"]) == {}

    def test_distinct_urls_with_same_name(self):
        collisions = find_collisions(["https://a.com/x", "https://a/com.x", "https://b.com"])
        assert collisions == {"https_a_com_x": ["https://a.com/x", "https://a/com.x"]}

    def test_duplicate_url(self):
        collisions = find_collisions(["https://a.com", "https://a.com"])
        assert collisions == {"https_a_com": ["https://a.com", "https://a.com"]}
