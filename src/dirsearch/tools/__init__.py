"""
Search tools for dirsearch.

This module contains the directory scanner that walks a tree and searches
file contents.
"""

from .scanner import DirectoryScanner, InvalidRootError, RootErrorKind, ScanError, scan

__all__ = ['DirectoryScanner', 'InvalidRootError', 'RootErrorKind', 'ScanError', 'scan']
