"""
Unit tests for the directory scanner module.

Tests traversal order, substring matching, root validation, handling of
unreadable entries and symbolic links, and statistics tracking of the
DirectoryScanner class.
"""

import os
import builtins
from pathlib import Path
from unittest.mock import patch
import pytest

from dirsearch.tools.scanner import DirectoryScanner, InvalidRootError, RootErrorKind, scan
from dirsearch.models.config import ScanConfig
from dirsearch.models.search_query import ScanQuery
from dirsearch.models.search_results import ScanResults, SkipReason


def _build_reference_tree(base: Path) -> None:
    """Create the test-directory fixture tree below base."""
    root = base / "test-directory"
    (root / "sub-directory" / "sub-directory").mkdir(parents=True)
    (root / "file").write_text("this file has a key in it")
    (root / "sub-directory" / "file.txt").write_text("key")
    (root / "sub-directory" / "file_2.txt").write_text("nothing to see here")
    (root / "sub-directory" / "sub-directory" / "file").write_text("another\nkey\n")


class TestReferenceTree:
    """Scans over the reference fixture tree, using relative roots."""

    @pytest.fixture(autouse=True)
    def _tree(self, tmp_path, monkeypatch):
        _build_reference_tree(tmp_path)
        monkeypatch.chdir(tmp_path)

    def test_finds_exactly_the_matching_files(self):
        """Test that the scan yields the three files containing 'key'."""
        matches = scan("test-directory/", "key")

        assert matches == [
            "test-directory/file",
            "test-directory/sub-directory/file.txt",
            "test-directory/sub-directory/sub-directory/file",
        ]

    def test_root_without_trailing_separator(self):
        """Test that paths keep the root exactly as supplied."""
        matches = scan("test-directory", "key")

        assert "test-directory/file" in matches
        assert all(m.startswith("test-directory/") for m in matches)
        assert not any(os.path.isabs(m) for m in matches)

    def test_empty_term_matches_every_file(self):
        """Test that an empty term reports every readable regular file."""
        matches = scan("test-directory/", "")

        assert len(matches) == 4
        assert "test-directory/sub-directory/file_2.txt" in matches

    def test_empty_term_is_logged(self, caplog):
        """Test that an empty term is noted at info level."""
        with caplog.at_level("INFO", logger="dirsearch.tools.scanner"):
            scan("test-directory/", "")

        assert any("Empty search term" in record.getMessage() for record in caplog.records)

    def test_no_matches(self):
        """Test a term that occurs in no file."""
        assert scan("test-directory/", "absent-term") == []

    def test_bytes_term(self):
        """Test that a bytes term behaves like its text equivalent."""
        assert scan("test-directory/", b"key") == scan("test-directory/", "key")

    def test_repeated_scans_are_identical(self):
        """Test that scanning an unchanged tree twice gives the same result."""
        scanner = DirectoryScanner()
        first = list(scanner.iter_matches("test-directory/", "key"))
        second = list(scanner.iter_matches("test-directory/", "key"))

        assert first == second

    def test_pathlike_root(self):
        """Test that os.PathLike roots are accepted."""
        matches = scan(Path("test-directory"), "key")
        assert len(matches) == 3


class TestRootValidation:
    """Test cases for invalid scan roots."""

    def test_missing_root(self, tmp_path):
        """Test that a missing root raises InvalidRootError."""
        missing = str(tmp_path / "does-not-exist")

        with pytest.raises(InvalidRootError, match="does not exist") as exc_info:
            scan(missing, "key")

        assert exc_info.value.kind == RootErrorKind.NOT_FOUND
        assert exc_info.value.path == missing

    def test_root_is_a_file(self, tmp_path):
        """Test that a regular file root raises InvalidRootError."""
        file_path = tmp_path / "plain.txt"
        file_path.write_text("key")

        with pytest.raises(InvalidRootError, match="not a directory") as exc_info:
            scan(str(file_path), "key")

        assert exc_info.value.kind == RootErrorKind.NOT_A_DIRECTORY

    def test_validation_is_eager(self, tmp_path):
        """Test that iter_matches raises before any iteration happens."""
        scanner = DirectoryScanner()

        with pytest.raises(InvalidRootError):
            scanner.iter_matches(str(tmp_path / "nope"), "key")

    def test_empty_root_is_not_found(self):
        """Test that an empty root fails like any missing directory."""
        with pytest.raises(InvalidRootError) as exc_info:
            scan("", "key")

        assert exc_info.value.kind == RootErrorKind.NOT_FOUND

    def test_whitespace_named_root(self, tmp_path, monkeypatch):
        """Test that a directory named with spaces is a valid root."""
        (tmp_path / "   ").mkdir()
        (tmp_path / "   " / "f").write_text("key")
        monkeypatch.chdir(tmp_path)

        assert scan("   ", "key") == ["   /f"]


def _make_undecodable(base: Path, name: bytes) -> str:
    """Create a file named with bytes that are not valid UTF-8."""
    path = os.path.join(os.fsencode(str(base)), name)
    try:
        with builtins.open(path, "wb") as handle:
            handle.write(b"key")
    except (OSError, ValueError):
        pytest.skip("filesystem rejects names that are not valid UTF-8")
    return os.fsdecode(path)


@pytest.mark.skipif(os.name != "posix", reason="byte file names are POSIX only")
class TestUndecodableNames:
    """Entries whose names are not valid UTF-8 are scanned like any other."""

    def test_matching_file_with_undecodable_name(self, tmp_path):
        """Test that such a file is reported alongside its siblings."""
        (tmp_path / "ok.txt").write_text("key")
        bad = _make_undecodable(tmp_path, b"bad\xff.txt")

        matches = scan(str(tmp_path), "key")

        assert matches == [bad, os.path.join(str(tmp_path), "ok.txt")]
        assert os.fsencode(matches[0]).endswith(b"bad\xff.txt")

    def test_undecodable_symlink_is_skipped(self, tmp_path):
        """Test that a skipped link with such a name is recorded."""
        (tmp_path / "ok.txt").write_text("key")
        link = os.path.join(os.fsencode(str(tmp_path)), b"ln\xff")
        try:
            os.symlink(os.fsencode(str(tmp_path / "ok.txt")), link)
        except (OSError, NotImplementedError):
            pytest.skip("cannot create symlink with this name")

        scanner = DirectoryScanner()
        matches = list(scanner.iter_matches(str(tmp_path), "key"))

        assert matches == [os.path.join(str(tmp_path), "ok.txt")]
        skipped = scanner.get_skipped()
        assert len(skipped) == 1
        assert skipped[0].reason == SkipReason.SYMLINK
        assert os.fsencode(skipped[0].path) == link

    def test_run_with_undecodable_name(self, tmp_path):
        """Test that full results and their dict form handle such names."""
        bad = _make_undecodable(tmp_path, b"\xfe\xff")

        results = DirectoryScanner().run(ScanQuery(root=str(tmp_path), term="key"))

        assert results.get_paths() == [bad]
        assert results.to_dict()['matches'][0]['path'] == bad


class TestContentMatching:
    """Test cases for the substring test applied to file contents."""

    def setup_method(self):
        self.scanner = DirectoryScanner()

    def test_binary_contents_are_matched_by_bytes(self, tmp_path):
        """Test that non-UTF-8 files are searched as raw bytes."""
        (tmp_path / "blob.bin").write_bytes(b"\xff\xfe\x00key\x00\x80")
        (tmp_path / "other.bin").write_bytes(b"\xff\xfe\x00\x80")

        matches = scan(str(tmp_path), "key")

        assert matches == [os.path.join(str(tmp_path), "blob.bin")]

    def test_non_utf8_term(self, tmp_path):
        """Test searching for bytes that are not valid UTF-8."""
        (tmp_path / "blob.bin").write_bytes(b"abc\xff\xfedef")

        assert len(scan(str(tmp_path), b"\xff\xfe")) == 1

    def test_unicode_term(self, tmp_path):
        """Test that text terms are encoded as UTF-8."""
        (tmp_path / "note.txt").write_text("café au lait", encoding="utf-8")

        assert len(scan(str(tmp_path), "café")) == 1

    def test_match_across_chunk_boundary(self, tmp_path):
        """Test that a term split over two reads is still found."""
        config = ScanConfig.from_dict({'scan': {'chunk_size': 8}})
        # 'needle' starts at offset 5, spanning the first two chunks
        (tmp_path / "split.txt").write_bytes(b"xxxxxneedlexxxxxxxx")

        assert len(scan(str(tmp_path), "needle", config)) == 1

    def test_no_false_match_from_overlap(self, tmp_path):
        """Test that carried-over bytes do not create matches on their own."""
        config = ScanConfig.from_dict({'scan': {'chunk_size': 4}})
        (tmp_path / "near.txt").write_bytes(b"neednee dle needl")

        assert scan(str(tmp_path), "needle", config) == []

    def test_empty_file_matches_only_empty_term(self, tmp_path):
        """Test that an empty file matches the empty term and nothing else."""
        (tmp_path / "empty.txt").write_bytes(b"")

        assert len(scan(str(tmp_path), "")) == 1
        assert scan(str(tmp_path), "k") == []

    def test_large_files_skipped_when_capped(self, tmp_path):
        """Test that max_bytes_per_file skips larger files."""
        config = ScanConfig.from_dict({'scan': {'max_bytes_per_file': 10}})
        (tmp_path / "small.txt").write_text("key")
        (tmp_path / "large.txt").write_text("key" + "x" * 100)

        scanner = DirectoryScanner(config)
        matches = list(scanner.iter_matches(str(tmp_path), "key"))

        assert matches == [os.path.join(str(tmp_path), "small.txt")]
        skipped = scanner.get_skipped()
        assert len(skipped) == 1
        assert skipped[0].reason == SkipReason.TOO_LARGE


class TestUnreadableEntries:
    """Per-entry failures are skipped without aborting the scan."""

    def setup_method(self):
        self.real_open = builtins.open
        self.real_scandir = os.scandir

    def _make_tree(self, base: Path) -> None:
        (base / "a.txt").write_text("key")
        (base / "locked.txt").write_text("key")
        (base / "locked-dir").mkdir()
        (base / "locked-dir" / "hidden.txt").write_text("key")
        (base / "open-dir").mkdir()
        (base / "open-dir" / "b.txt").write_text("key")

    def test_unreadable_file_is_skipped(self, tmp_path):
        """Test that a file raising PermissionError does not stop the scan."""
        self._make_tree(tmp_path)

        def fake_open(path, *args, **kwargs):
            if str(path).endswith("locked.txt"):
                raise PermissionError(13, "Permission denied", str(path))
            return self.real_open(path, *args, **kwargs)

        scanner = DirectoryScanner()
        with patch("dirsearch.tools.scanner.open", side_effect=fake_open, create=True):
            matches = list(scanner.iter_matches(str(tmp_path), "key"))

        names = [Path(m).name for m in matches]
        assert "locked.txt" not in names
        assert names == ["a.txt", "hidden.txt", "b.txt"]

        skipped = scanner.get_skipped()
        assert len(skipped) == 1
        assert skipped[0].reason == SkipReason.PERMISSION_DENIED
        assert skipped[0].is_directory is False

    def test_unlistable_directory_is_skipped(self, tmp_path):
        """Test that a directory that cannot be listed is skipped."""
        self._make_tree(tmp_path)

        def fake_scandir(path):
            if str(path).endswith("locked-dir"):
                raise PermissionError(13, "Permission denied", str(path))
            return self.real_scandir(path)

        scanner = DirectoryScanner()
        with patch("dirsearch.tools.scanner.os.scandir", side_effect=fake_scandir):
            matches = list(scanner.iter_matches(str(tmp_path), "key"))

        names = [Path(m).name for m in matches]
        assert "hidden.txt" not in names
        assert "b.txt" in names
        assert "locked.txt" in names

        skipped = scanner.get_skipped()
        assert len(skipped) == 1
        assert skipped[0].is_directory is True
        assert skipped[0].reason == SkipReason.PERMISSION_DENIED

    def test_file_removed_during_scan(self, tmp_path):
        """Test that a file vanishing between listing and opening is skipped."""
        self._make_tree(tmp_path)

        def fake_open(path, *args, **kwargs):
            if str(path).endswith("a.txt"):
                raise FileNotFoundError(2, "No such file or directory", str(path))
            return self.real_open(path, *args, **kwargs)

        scanner = DirectoryScanner()
        with patch("dirsearch.tools.scanner.open", side_effect=fake_open, create=True):
            matches = list(scanner.iter_matches(str(tmp_path), "key"))

        assert len(matches) == 3
        assert scanner.get_skipped()[0].reason == SkipReason.NOT_FOUND

    def test_unreadable_file_is_logged(self, tmp_path, caplog):
        """Test that skipped unreadable files produce a warning."""
        self._make_tree(tmp_path)

        def fake_open(path, *args, **kwargs):
            if str(path).endswith("locked.txt"):
                raise OSError(5, "Input/output error", str(path))
            return self.real_open(path, *args, **kwargs)

        with patch("dirsearch.tools.scanner.open", side_effect=fake_open, create=True):
            with caplog.at_level("WARNING", logger="dirsearch.tools.scanner"):
                scan(str(tmp_path), "key")

        assert any("locked.txt" in record.getMessage() for record in caplog.records)
        assert any("io_error" in record.getMessage() for record in caplog.records)


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks not supported")
class TestSymlinks:
    """Test cases for symbolic link handling."""

    def test_links_not_followed_by_default(self, tmp_path):
        """Test that file and directory links are treated as non-matching leaves."""
        (tmp_path / "target.txt").write_text("key")
        (tmp_path / "real-dir").mkdir()
        (tmp_path / "real-dir" / "inner.txt").write_text("key")
        os.symlink(tmp_path / "target.txt", tmp_path / "link.txt")
        os.symlink(tmp_path / "real-dir", tmp_path / "link-dir")

        scanner = DirectoryScanner()
        matches = list(scanner.iter_matches(str(tmp_path), "key"))

        names = sorted(Path(m).name for m in matches)
        assert names == ["inner.txt", "target.txt"]
        reasons = {entry.reason for entry in scanner.get_skipped()}
        assert reasons == {SkipReason.SYMLINK}

    def test_follow_symlinks(self, tmp_path):
        """Test that links are followed when configured."""
        (tmp_path / "target.txt").write_text("key")
        os.symlink(tmp_path / "target.txt", tmp_path / "link.txt")

        config = ScanConfig.from_dict({'scan': {'follow_symlinks': True}})
        matches = scan(str(tmp_path), "key", config)

        assert sorted(Path(m).name for m in matches) == ["link.txt", "target.txt"]

    def test_symlink_cycle_terminates(self, tmp_path):
        """Test that a link back to an ancestor is entered only once."""
        (tmp_path / "a").mkdir()
        (tmp_path / "a" / "file.txt").write_text("key")
        os.symlink(tmp_path, tmp_path / "a" / "loop")

        config = ScanConfig.from_dict({'scan': {'follow_symlinks': True}})
        matches = scan(str(tmp_path), "key", config)

        assert matches == [os.path.join(str(tmp_path), "a", "file.txt")]

    def test_broken_link_when_following(self, tmp_path):
        """Test that a dangling link is skipped."""
        os.symlink(tmp_path / "missing.txt", tmp_path / "dangling.txt")

        config = ScanConfig.from_dict({'scan': {'follow_symlinks': True}})
        scanner = DirectoryScanner(config)
        assert list(scanner.iter_matches(str(tmp_path), "")) == []
        assert scanner.get_skipped()[0].reason == SkipReason.NOT_FOUND


@pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="FIFOs not supported")
def test_special_files_are_never_opened(tmp_path):
    """Test that a FIFO is skipped instead of blocking the scan."""
    os.mkfifo(tmp_path / "pipe")
    (tmp_path / "plain.txt").write_text("")

    scanner = DirectoryScanner()
    matches = list(scanner.iter_matches(str(tmp_path), ""))

    assert matches == [os.path.join(str(tmp_path), "plain.txt")]
    assert scanner.get_skipped()[0].reason == SkipReason.SPECIAL_FILE


class TestStatsAndResults:
    """Test cases for statistics and the run() API."""

    def setup_method(self):
        self.scanner = DirectoryScanner()

    def test_stats_tracking(self, tmp_path):
        """Test that counters reflect the scan."""
        _build_reference_tree(tmp_path)
        root = str(tmp_path / "test-directory")

        list(self.scanner.iter_matches(root, "key"))
        stats = self.scanner.get_stats()

        assert stats.files_scanned == 4
        assert stats.files_matched == 3
        assert stats.directories_traversed == 3
        assert stats.entries_skipped == 0
        assert stats.bytes_read > 0

    def test_reset_stats(self, tmp_path):
        """Test that reset_stats clears counters."""
        (tmp_path / "f.txt").write_text("key")
        list(self.scanner.iter_matches(str(tmp_path), "key"))

        self.scanner.reset_stats()

        assert self.scanner.get_stats().files_scanned == 0
        assert self.scanner.get_skipped() == []

    def test_run_returns_results(self, tmp_path):
        """Test that run() collects matches, stats and timing."""
        _build_reference_tree(tmp_path)
        query = ScanQuery(root=str(tmp_path / "test-directory"), term="key")

        results = self.scanner.run(query)

        assert isinstance(results, ScanResults)
        assert results.get_match_count() == 3
        assert results.stats.files_matched == 3
        assert results.execution_time >= 0.0
        assert results.query == query
        assert not results.has_skipped()

    def test_early_stop(self, tmp_path):
        """Test that a consumer may stop iterating after the first match."""
        _build_reference_tree(tmp_path)
        iterator = self.scanner.iter_matches(str(tmp_path / "test-directory"), "key")

        first = next(iterator)
        iterator.close()

        assert first.endswith("file")
        assert self.scanner.get_stats().files_matched == 1
