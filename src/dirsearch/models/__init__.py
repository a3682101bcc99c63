"""
Data models for dirsearch.

This module contains the core data structures used throughout the tool.
"""

from .config import LogLevel, LoggingConfig, ScanConfig, ScanSettings
from .search_query import ScanQuery
from .search_results import FileMatch, ScanResults, ScanStats, SkippedEntry, SkipReason

__all__ = [
    'LogLevel',
    'LoggingConfig',
    'ScanConfig',
    'ScanSettings',
    'ScanQuery',
    'FileMatch',
    'ScanResults',
    'ScanStats',
    'SkippedEntry',
    'SkipReason',
]
