"""
Directory scanner for dirsearch.

This module walks a directory tree depth-first and reports every regular file
whose contents contain a literal search term. Per-entry I/O failures are
logged and skipped so that one unreadable file never aborts a scan; only an
invalid root directory is fatal.
"""

import os
import time
import logging
from enum import Enum
from typing import Iterator, List, Optional, Set, Tuple, Union, BinaryIO

from ..models.config import ScanConfig
from ..models.search_query import ScanQuery
from ..models.search_results import FileMatch, ScanResults, ScanStats, SkippedEntry, SkipReason


logger = logging.getLogger(__name__)


class RootErrorKind(Enum):
    """Ways a scan root can be invalid."""
    NOT_FOUND = "not_found"
    NOT_A_DIRECTORY = "not_a_directory"


class ScanError(Exception):
    """Base class for errors that abort a scan."""
    pass


class InvalidRootError(ScanError):
    """Raised when the scan root is missing or is not a directory."""

    def __init__(self, path: str, kind: RootErrorKind):
        self.path = path
        self.kind = kind
        if kind == RootErrorKind.NOT_FOUND:
            message = f"Root directory does not exist: {path}"
        else:
            message = f"Root path is not a directory: {path}"
        super().__init__(message)


class DirectoryScanner:
    """
    Depth-first content scanner over a directory tree.

    Directories are walked with an explicit stack, so arbitrarily deep trees
    never hit the interpreter's recursion limit. Each directory listing is
    read and closed before its entries are visited, and each file is closed
    before its match is yielded, so no handle stays open across a yield.

    Entries within a directory are visited in name order, which makes the
    output deterministic for a given tree.
    """

    def __init__(self, config: Optional[ScanConfig] = None):
        """
        Initialize the scanner.

        Args:
            config: Scanner configuration; defaults reproduce the plain CLI behaviour
        """
        self.config = config or ScanConfig()
        self._stats = ScanStats()
        self._skipped: List[SkippedEntry] = []

    def iter_matches(self, root: Union[str, os.PathLike], term: Union[str, bytes]) -> Iterator[str]:
        """
        Validate the root and return an iterator over matching file paths.

        The root is checked before this method returns, so an invalid root
        raises immediately instead of on the first ``next()``.

        Args:
            root: Directory to scan; matched paths are built on this exact string
            term: Literal text or bytes to search for

        Returns:
            Iterator yielding matching paths in traversal order

        Raises:
            InvalidRootError: If root is missing or not a directory
        """
        query = ScanQuery(root=os.fspath(root), term=term)
        return (match.path for match in self.iter_file_matches(query))

    def iter_file_matches(self, query: ScanQuery) -> Iterator[FileMatch]:
        """
        Validate the query root and return an iterator over FileMatch objects.

        Raises:
            InvalidRootError: If the root is missing or not a directory
        """
        self._validate_root(query.root)
        self.reset_stats()
        logger.info(f"Scanning directory tree: {query.root}")
        if query.matches_everything():
            logger.info("Empty search term, every readable file will match")
        return self._walk(query.root, query.term_bytes())

    def run(self, query: ScanQuery) -> ScanResults:
        """
        Run a complete scan and collect the outcome.

        Args:
            query: Root and term to scan for

        Returns:
            ScanResults with matches, skipped entries and statistics

        Raises:
            InvalidRootError: If the root is missing or not a directory
        """
        started = time.perf_counter()
        matches = list(self.iter_file_matches(query))
        elapsed = time.perf_counter() - started

        results = ScanResults(
            query=query,
            matches=matches,
            skipped=self.get_skipped(),
            stats=self.get_stats(),
            execution_time=elapsed,
        )
        logger.info(str(results))
        return results

    def _validate_root(self, root: str) -> None:
        """Fail fast when the root cannot be scanned at all."""
        if not os.path.exists(root):
            raise InvalidRootError(root, RootErrorKind.NOT_FOUND)
        if not os.path.isdir(root):
            raise InvalidRootError(root, RootErrorKind.NOT_A_DIRECTORY)

    def _walk(self, root: str, needle: bytes) -> Iterator[FileMatch]:
        """
        Walk the tree below root and yield files containing needle.

        The stack holds (directory path, iterator over its sorted entries);
        descending into a subdirectory pushes a new frame, giving the same
        pre-order as a recursive walk.
        """
        visited: Set[Tuple[int, int]] = set()
        stack: List[Tuple[str, Iterator[os.DirEntry]]] = []

        entries = self._list_directory(root, visited)
        if entries is not None:
            stack.append((root, iter(entries)))

        while stack:
            dir_path, pending = stack[-1]
            entry = next(pending, None)
            if entry is None:
                stack.pop()
                continue

            path = os.path.join(dir_path, entry.name)
            kind = self._classify(entry, path)

            if kind == 'dir':
                entries = self._list_directory(path, visited)
                if entries is not None:
                    stack.append((path, iter(entries)))
            elif kind == 'file':
                match = self._search_file(path, needle)
                if match is not None:
                    yield match

    def _list_directory(self, path: str, visited: Set[Tuple[int, int]]) -> Optional[List[os.DirEntry]]:
        """
        Read a directory listing and close the handle straight away.

        Returns:
            Entries sorted by name, or None if the directory was skipped
        """
        if self.config.scan.follow_symlinks:
            # Symlinked directories can form cycles; enter each directory once.
            try:
                st = os.stat(path)
            except OSError as e:
                self._skip(path, self._reason_for(e), str(e), is_directory=True)
                return None
            key = (st.st_dev, st.st_ino)
            if key in visited:
                logger.debug(f"Directory already visited, not entering again: {path}")
                return None
            visited.add(key)

        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._skip(path, self._reason_for(e), str(e), is_directory=True)
            return None

        self._stats.directories_traversed += 1
        logger.debug(f"Listed {len(entries)} entries in {path}")
        return entries

    def _classify(self, entry: os.DirEntry, path: str) -> Optional[str]:
        """
        Decide how an entry is handled.

        Returns:
            'dir' to descend, 'file' to search, or None if the entry was skipped
        """
        follow = self.config.scan.follow_symlinks
        try:
            is_link = entry.is_symlink()
            if is_link and not follow:
                self._skip(path, SkipReason.SYMLINK, "symbolic link not followed")
                return None
            if entry.is_dir(follow_symlinks=follow):
                return 'dir'
            if entry.is_file(follow_symlinks=follow):
                return 'file'
        except OSError as e:
            self._skip(path, self._reason_for(e), str(e))
            return None

        if is_link:
            self._skip(path, SkipReason.NOT_FOUND, "broken symbolic link")
        else:
            self._skip(path, SkipReason.SPECIAL_FILE, "not a regular file or directory")
        return None

    def _search_file(self, path: str, needle: bytes) -> Optional[FileMatch]:
        """
        Search one regular file for needle.

        Returns:
            FileMatch if the file contains needle, None otherwise or if it was skipped
        """
        limit = self.config.scan.max_bytes_per_file
        try:
            if limit is not None:
                size = os.stat(path).st_size
                if size > limit:
                    self._skip(path, SkipReason.TOO_LARGE, f"{size} bytes exceeds limit of {limit}")
                    return None

            with open(path, 'rb') as handle:
                found, bytes_read = self._contains(handle, needle)
        except OSError as e:
            self._skip(path, self._reason_for(e), str(e))
            return None

        self._stats.files_scanned += 1
        self._stats.bytes_read += bytes_read

        if not found:
            return None

        self._stats.files_matched += 1
        logger.debug(f"Match: {path}")
        return FileMatch(path=path, size=bytes_read)

    def _contains(self, handle: BinaryIO, needle: bytes) -> Tuple[bool, int]:
        """
        Test whether the stream contains needle, reading it in chunks.

        The last len(needle) - 1 bytes of each window are carried into the
        next one so that a match spanning two chunks is still found.

        Returns:
            Tuple of (found, bytes_read)
        """
        chunk_size = self.config.scan.chunk_size

        if not needle:
            # Reading once still surfaces errors on unreadable files.
            return True, len(handle.read(chunk_size))

        overlap = len(needle) - 1
        tail = b''
        bytes_read = 0

        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                return False, bytes_read
            bytes_read += len(chunk)

            window = tail + chunk
            if needle in window:
                return True, bytes_read
            tail = window[-overlap:] if overlap else b''

    def _reason_for(self, error: OSError) -> SkipReason:
        """Map an OSError to the reason recorded for the skipped entry."""
        if isinstance(error, PermissionError):
            return SkipReason.PERMISSION_DENIED
        if isinstance(error, FileNotFoundError):
            return SkipReason.NOT_FOUND
        return SkipReason.IO_ERROR

    def _skip(self, path: str, reason: SkipReason, detail: str, is_directory: bool = False) -> None:
        """Record an entry that could not be examined and log it."""
        entry = SkippedEntry(path=path, reason=reason, detail=detail, is_directory=is_directory)
        self._skipped.append(entry)
        self._stats.entries_skipped += 1

        if entry.is_error():
            logger.warning(f"Skipping {entry}")
        else:
            logger.debug(f"Skipping {entry}")

    def get_stats(self) -> ScanStats:
        """
        Get statistics about the most recent scan.

        Returns:
            Copy of the counters collected so far
        """
        return self._stats.model_copy()

    def get_skipped(self) -> List[SkippedEntry]:
        """Get the entries skipped during the most recent scan."""
        return list(self._skipped)

    def reset_stats(self) -> None:
        """Reset the statistics counters and the skipped entry list."""
        self._stats = ScanStats()
        self._skipped = []


def scan(root: Union[str, os.PathLike], term: Union[str, bytes], config: Optional[ScanConfig] = None) -> List[str]:
    """
    Scan a directory tree and return the paths of files containing term.

    Args:
        root: Directory to scan
        term: Literal text or bytes to search for; empty matches every readable file
        config: Optional scanner configuration

    Returns:
        Matching paths in traversal order, rooted at root as given

    Raises:
        InvalidRootError: If root is missing or not a directory
    """
    scanner = DirectoryScanner(config)
    return list(scanner.iter_matches(root, term))
