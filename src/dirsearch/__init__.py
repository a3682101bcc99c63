"""
dirsearch - Core Package

Recursively walks a directory tree and reports the files whose contents
contain a literal search term.
"""

__version__ = "0.1.0"
__author__ = "dirsearch contributors"
