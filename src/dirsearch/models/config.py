"""
Configuration data models for dirsearch.

This module defines the settings that control how a directory tree is scanned
and how diagnostics are logged. The defaults reproduce the plain two-argument
behaviour of the command line tool, so a configuration file is never required.
"""

from typing import Dict, List, Optional, Any
from enum import Enum
import logging
from pydantic import BaseModel, ConfigDict, Field, field_validator


class LogLevel(Enum):
    """Supported logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_logging_level(self) -> int:
        """Get the numeric level understood by the logging module."""
        return getattr(logging, self.value)


class ScanSettings(BaseModel):
    """
    Settings for the directory scanner.

    Attributes:
        follow_symlinks: Whether symbolic links are followed during traversal
        chunk_size: Number of bytes read from a file per read call
        max_bytes_per_file: Files larger than this are skipped (no limit if None)
    """

    model_config = ConfigDict(extra='forbid')

    follow_symlinks: bool = Field(False, description="Whether symbolic links are followed")
    chunk_size: int = Field(65536, gt=0, description="Bytes read from a file per read call")
    max_bytes_per_file: Optional[int] = Field(None, gt=0, description="Maximum file size to search (bytes)")

    def get_max_size_human_readable(self) -> str:
        """Get the file size cap in human-readable format."""
        if self.max_bytes_per_file is None:
            return "unlimited"
        size = float(self.max_bytes_per_file)
        for unit in ['B', 'KB', 'MB', 'GB']:
            if size < 1024.0:
                return f"{size:.1f} {unit}"
            size /= 1024.0
        return f"{size:.1f} TB"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return self.model_dump()


class LoggingConfig(BaseModel):
    """
    Configuration for diagnostic logging.

    Attributes:
        level: Minimum level of messages written to standard error
        format: Format string passed to the logging handler
    """

    model_config = ConfigDict(extra='forbid')

    level: LogLevel = Field(LogLevel.WARNING, description="Minimum logging level")
    format: str = Field("%(levelname)s %(name)s: %(message)s", min_length=1, description="Log record format")

    @field_validator('level', mode='before')
    @classmethod
    def validate_level(cls, v) -> LogLevel:
        """Validate and convert level names to enum, case-insensitively."""
        if isinstance(v, str):
            try:
                return LogLevel(v.strip().upper())
            except ValueError:
                raise ValueError(f"Invalid log level: {v}")
        return v

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        data['level'] = self.level.value
        return data


class ScanConfig(BaseModel):
    """
    Main configuration class for dirsearch.

    Attributes:
        scan: Directory scanner settings
        logging: Diagnostic logging settings
    """

    model_config = ConfigDict(extra='forbid')

    scan: ScanSettings = Field(default_factory=ScanSettings, description="Directory scanner settings")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, description="Diagnostic logging settings")

    def validate_configuration(self) -> List[str]:
        """
        Check the configuration for settings that are valid but questionable.

        Returns:
            List of warning messages (empty if nothing stands out)
        """
        warnings = []

        if self.scan.follow_symlinks:
            warnings.append("Following symbolic links may visit files outside the root directory")

        if self.scan.chunk_size < 1024:
            warnings.append(f"Very small chunk_size ({self.scan.chunk_size} bytes) will slow down scanning")

        if self.scan.max_bytes_per_file is not None:
            warnings.append(
                f"Files larger than {self.scan.get_max_size_human_readable()} will be skipped "
                "and never reported as matches"
            )

        return warnings

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary representation."""
        return {
            'scan': self.scan.to_dict(),
            'logging': self.logging.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanConfig':
        """Create configuration from dictionary representation."""
        return cls.model_validate(data)

    def __str__(self) -> str:
        """String representation of the configuration."""
        parts = [f"Follow symlinks: {self.scan.follow_symlinks}"]
        parts.append(f"Chunk size: {self.scan.chunk_size}")
        parts.append(f"Max file size: {self.scan.get_max_size_human_readable()}")
        parts.append(f"Log level: {self.logging.level.value}")

        return " | ".join(parts)
