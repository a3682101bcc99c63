"""
Scan results data models for dirsearch.

This module defines the outcome of a scan: the files whose contents matched,
the entries that had to be skipped along the way, and counters describing
the work done.
"""

from typing import Dict, List, Optional, Any
from datetime import datetime
from pathlib import Path
from enum import Enum
from pydantic import BaseModel, Field, field_validator

from .search_query import ScanQuery, validate_fs_path


def _non_empty_path(v: Any) -> str:
    path = validate_fs_path(v)
    if not path:
        raise ValueError("Path cannot be empty")
    return path


class SkipReason(Enum):
    """Reasons a filesystem entry was not examined."""
    PERMISSION_DENIED = "permission_denied"
    NOT_FOUND = "not_found"
    TOO_LARGE = "too_large"
    IO_ERROR = "io_error"
    SYMLINK = "symlink"
    SPECIAL_FILE = "special_file"


class FileMatch(BaseModel):
    """
    A single file whose contents contain the search term.

    Attributes:
        path: Path of the file, rooted at the root the caller supplied
        size: Number of bytes read before the match was confirmed
    """

    path: str = Field(..., description="Path of the matched file")
    size: Optional[int] = Field(None, ge=0, description="Bytes read from the file")

    @field_validator('path', mode='plain')
    @classmethod
    def validate_path(cls, v) -> str:
        """Accept any non-empty path, including names that are not valid UTF-8."""
        return _non_empty_path(v)

    def get_filename(self) -> str:
        """Get just the filename without directory path."""
        return Path(self.path).name

    def get_directory(self) -> str:
        """Get the directory containing this file."""
        return str(Path(self.path).parent)

    def to_dict(self) -> Dict[str, Any]:
        """Convert file match to dictionary representation."""
        return {
            'path': self.path,
            'size': self.size,
            'filename': self.get_filename(),
            'directory': self.get_directory(),
        }

    def __str__(self) -> str:
        return self.path


class SkippedEntry(BaseModel):
    """
    A file or directory the scanner could not examine.

    Attributes:
        path: Path of the entry, rooted at the supplied root
        reason: Why the entry was skipped
        detail: Error message or other explanation
        is_directory: Whether the entry is a directory that could not be listed
    """

    path: str = Field(..., description="Path of the skipped entry")
    reason: SkipReason = Field(..., description="Why the entry was skipped")
    detail: str = Field("", description="Error message or other explanation")
    is_directory: bool = Field(False, description="Whether the entry is a directory")

    @field_validator('path', mode='plain')
    @classmethod
    def validate_path(cls, v) -> str:
        """Accept any non-empty path, including names that are not valid UTF-8."""
        return _non_empty_path(v)

    @field_validator('detail', mode='plain')
    @classmethod
    def validate_detail(cls, v) -> str:
        return validate_fs_path(v)

    @field_validator('reason', mode='before')
    @classmethod
    def validate_reason(cls, v) -> SkipReason:
        """Ensure reason is a SkipReason enum."""
        if isinstance(v, str):
            try:
                return SkipReason(v)
            except ValueError:
                raise ValueError(f"Invalid skip reason: {v}")
        return v

    def is_error(self) -> bool:
        """Check if the entry was skipped because of an I/O failure."""
        return self.reason in (SkipReason.PERMISSION_DENIED, SkipReason.NOT_FOUND, SkipReason.IO_ERROR)

    def to_dict(self) -> Dict[str, Any]:
        """Convert skipped entry to dictionary representation."""
        return {
            'path': self.path,
            'reason': self.reason.value,
            'detail': self.detail,
            'is_directory': self.is_directory,
        }

    def __str__(self) -> str:
        kind = "directory" if self.is_directory else "file"
        text = f"{self.path} ({kind}, {self.reason.value})"
        if self.detail:
            text += f": {self.detail}"
        return text


class ScanStats(BaseModel):
    """
    Counters collected while scanning.

    Attributes:
        files_scanned: Regular files opened and searched
        files_matched: Files whose contents contained the term
        directories_traversed: Directories successfully listed
        entries_skipped: Files and directories that could not be examined
        bytes_read: Total bytes read from files
    """

    files_scanned: int = Field(0, ge=0)
    files_matched: int = Field(0, ge=0)
    directories_traversed: int = Field(0, ge=0)
    entries_skipped: int = Field(0, ge=0)
    bytes_read: int = Field(0, ge=0)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump()

    def __str__(self) -> str:
        parts = [f"Scanned {self.files_scanned} files"]
        parts.append(f"Matched {self.files_matched}")
        parts.append(f"Directories {self.directories_traversed}")
        parts.append(f"Skipped {self.entries_skipped}")
        parts.append(f"Read {self.bytes_read} bytes")
        return " | ".join(parts)


class ScanResults(BaseModel):
    """
    Complete results from a scan.

    Attributes:
        query: The query that produced these results
        matches: Matched files in traversal order
        skipped: Entries that could not be examined
        stats: Counters collected during the scan
        execution_time: Time taken to execute the scan in seconds
        timestamp: When the scan was executed
    """

    query: ScanQuery = Field(..., description="The query that produced these results")
    matches: List[FileMatch] = Field(default_factory=list, description="Matched files in traversal order")
    skipped: List[SkippedEntry] = Field(default_factory=list, description="Entries that could not be examined")
    stats: ScanStats = Field(default_factory=ScanStats, description="Counters collected during the scan")
    execution_time: float = Field(0.0, ge=0.0, description="Time taken to execute the scan")
    timestamp: datetime = Field(default_factory=datetime.now, description="When the scan was executed")

    def get_match_count(self) -> int:
        """Get the total number of matches."""
        return len(self.matches)

    def get_paths(self) -> List[str]:
        """Get the matched paths in traversal order."""
        return [match.path for match in self.matches]

    def has_skipped(self) -> bool:
        """Check if any entry had to be skipped."""
        return len(self.skipped) > 0

    def get_errors(self) -> List[SkippedEntry]:
        """Get the skipped entries caused by I/O failures."""
        return [entry for entry in self.skipped if entry.is_error()]

    def to_dict(self) -> Dict[str, Any]:
        """Convert scan results to dictionary representation."""
        return {
            'query': self.query.to_dict(),
            'matches': [match.to_dict() for match in self.matches],
            'match_count': self.get_match_count(),
            'skipped': [entry.to_dict() for entry in self.skipped],
            'stats': self.stats.to_dict(),
            'execution_time': self.execution_time,
            'timestamp': self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        """String representation of scan results."""
        parts = [f"Found {self.get_match_count()} matches"]
        parts.append(f"Scanned {self.stats.files_scanned} files")
        parts.append(f"Took {self.execution_time:.2f}s")

        if self.has_skipped():
            parts.append(f"Skipped: {len(self.skipped)}")

        return " | ".join(parts)
