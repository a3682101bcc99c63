"""
Scan query data model for dirsearch.

This module defines the pair of inputs every scan needs: the root directory
to walk and the literal term to look for inside file contents.
"""

import os
from typing import Dict, Any, Union
from pydantic import BaseModel, Field, field_validator


def validate_fs_path(v: Any) -> str:
    """
    Accept a filesystem path in the str form os.scandir produces.

    Names that are not valid UTF-8 arrive as str with surrogate escapes,
    which pydantic's str validation rejects, so paths skip that check.
    Bytes are decoded with os.fsdecode.
    """
    if isinstance(v, bytes):
        return os.fsdecode(v)
    if not isinstance(v, str):
        raise ValueError(f"Path must be a string, got {type(v).__name__}")
    return v


class ScanQuery(BaseModel):
    """
    Represents a single content search over a directory tree.

    The root is kept exactly as the caller wrote it, because matched paths are
    reported in the same form. Whether it names a directory is checked by the
    scanner, not here. The term may be empty, in which case every readable
    file matches.

    Attributes:
        root: Directory to scan, as supplied by the caller
        term: Literal text or bytes to search for
    """

    model_config = {'frozen': True}

    root: str = Field(..., description="Directory to scan")
    term: Union[str, bytes] = Field("", description="Literal substring to search for")

    @field_validator('root', mode='plain')
    @classmethod
    def validate_root(cls, v) -> str:
        """Keep the root as given, including names that are not valid UTF-8."""
        return validate_fs_path(v)

    @field_validator('term', mode='plain')
    @classmethod
    def validate_term(cls, v) -> Union[str, bytes]:
        """Accept str or bytes terms unchanged."""
        if not isinstance(v, (str, bytes)):
            raise ValueError(f"Search term must be str or bytes, got {type(v).__name__}")
        return v

    def term_bytes(self) -> bytes:
        """Get the term in the byte form used for matching."""
        if isinstance(self.term, bytes):
            return self.term
        return self.term.encode('utf-8', 'surrogateescape')

    def matches_everything(self) -> bool:
        """Check if the term is empty, so every readable file matches."""
        return len(self.term) == 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert the query to a dictionary representation."""
        term = self.term
        if isinstance(term, bytes):
            term = term.decode('utf-8', errors='replace')
        return {'root': self.root, 'term': term}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanQuery':
        """Create a ScanQuery instance from a dictionary."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the query."""
        return f"Root: '{self.root}' | Term: {self.term!r}"
