"""
Tests for the parsed-file cache.
"""

from __future__ import annotations

import pytest

from gitops_compliance.models import IaCFormat, IaCParseResult
from gitops_compliance.utils.cache import IaCFileCache, hash_content


@pytest.fixture
def cache(tmp_path) -> IaCFileCache:
    """Return a cache rooted in a temporary directory."""
    return IaCFileCache(str(tmp_path / "cache"))


@pytest.fixture
def source(tmp_path):
    """Return a small Terraform file on disk."""
    path = tmp_path / "main.tf"
    path.write_text('resource "aws_vpc" "main" {}\n')
    return path


@pytest.fixture
def parsed(make_resource) -> IaCParseResult:
    """Return a parse result with one resource."""
    return IaCParseResult(
        format=IaCFormat.TERRAFORM,
        resources=[make_resource("aws_vpc", "main", {"cidr_block": "10.0.0.0/16"})],
        metadata={"providers": ["aws"]},
    )


class TestHashContent:
    """Tests for hash_content."""

    def test_short_stable_digest(self):
        """Test digests are 16 hex characters and deterministic."""
        digest = hash_content("abc")

        assert len(digest) == 16
        assert digest == hash_content("abc")
        assert digest != hash_content("abd")


class TestIaCFileCache:
    """Tests for IaCFileCache."""

    def test_miss_when_empty(self, cache, source):
        """Test lookups miss before anything is stored."""
        assert cache.get(source) is None

    def test_set_then_get(self, cache, source, parsed):
        """Test stored results come back with the content hash recorded."""
        cache.set(source, parsed)

        cached = cache.get(source)

        assert cached is not None
        assert cached.resources == parsed.resources
        assert cached.metadata["providers"] == ["aws"]
        assert cached.metadata["content_hash"] == hash_content(source.read_text())

    def test_explicit_content(self, cache, tmp_path, parsed):
        """Test content may be supplied instead of read from disk."""
        path = tmp_path / "virtual.tf"

        cache.set(path, parsed, content="one")

        assert cache.get(path, content="one") is not None
        assert cache.get(path, content="two") is None

    def test_edit_misses(self, cache, source, parsed):
        """Test changing the file misses the old entry."""
        cache.set(source, parsed)
        source.write_text('resource "aws_vpc" "other" {}\n')

        assert cache.get(source) is None

    def test_is_stale(self, cache, source, parsed):
        """Test staleness follows the file content."""
        cache.set(source, parsed)
        cached = cache.get(source)

        assert cache.is_stale(source, cached) is False
        source.write_text("# changed\n")
        assert cache.is_stale(source, cached) is True
        source.unlink()
        assert cache.is_stale(source, cached) is True

    def test_disabled(self, tmp_path, source, parsed):
        """Test a disabled cache stores nothing and always misses."""
        cache = IaCFileCache(str(tmp_path / "cache"), enabled=False)

        cache.set(source, parsed)

        assert cache.get(source) is None
        assert not (tmp_path / "cache").exists()

    def test_unreadable_entry_is_ignored(self, cache, source, parsed):
        """Test a corrupt entry is treated as a miss."""
        cache.set(source, parsed)
        for entry in cache.cache_dir.glob("*.json"):
            entry.write_text("{not json")

        assert cache.get(source) is None

    def test_missing_source(self, cache, tmp_path, parsed):
        """Test unreadable sources are neither stored nor found."""
        missing = tmp_path / "missing.tf"

        cache.set(missing, parsed)

        assert cache.get(missing) is None
        assert cache.get_stats()["file_count"] == 0

    def test_stats_and_clear(self, cache, source, tmp_path, parsed):
        """Test statistics and clearing."""
        other = tmp_path / "other.tf"
        other.write_text("# other\n")
        cache.set(source, parsed)
        cache.set(other, parsed)

        stats = cache.get_stats()
        assert stats["file_count"] == 2
        assert stats["size"] > 0
        assert stats["cache_dir"] == str(cache.cache_dir)

        assert cache.clear() == 2
        assert cache.get_stats()["file_count"] == 0

    def test_clear_without_directory(self, tmp_path):
        """Test clearing a cache that was never written."""
        assert IaCFileCache(str(tmp_path / "never")).clear() == 0

    def test_home_directory_expansion(self, monkeypatch, tmp_path):
        """Test ~ expands to the home directory."""
        monkeypatch.setenv("HOME", str(tmp_path))

        cache = IaCFileCache("~/gce")

        assert cache.cache_dir == tmp_path / "gce"
