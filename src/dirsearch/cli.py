"""
Command line entry point for dirsearch.

Usage: dirsearch <root-path> <search-term>

Matching file paths are written to standard output, one per line, as they
are found. Diagnostics go to standard error.
"""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import ConfigurationError, load_config
from .models.config import ScanConfig
from .models.search_query import ScanQuery
from .tools.scanner import DirectoryScanner, InvalidRootError


logger = logging.getLogger(__name__)

PROG = "dirsearch"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Define the command line and parse argv."""
    parser = argparse.ArgumentParser(
        prog=PROG,
        description="Recursively list files whose contents contain a literal search term.",
    )
    parser.add_argument("root", help="directory to scan")
    parser.add_argument("term", help="literal text to search for (empty matches every readable file)")

    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="log more detail to standard error (repeat for debug output)",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="only log errors")
    parser.add_argument("--config", default=None, help="YAML settings file")
    parser.add_argument(
        "--follow-symlinks",
        action="store_true",
        help="follow symbolic links (directories are entered at most once)",
    )
    parser.add_argument("--stats", action="store_true", help="log a summary of the scan when it finishes")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    return parser.parse_args(argv)


def configure_logging(config: ScanConfig, verbose: int = 0, quiet: bool = False, stats: bool = False) -> None:
    """
    Send log records to standard error at the configured level.

    Each -v lowers the threshold one step; -q raises it to ERROR. With stats
    the summary logged by this module is shown whatever the threshold.
    """
    level = config.logging.level.to_logging_level()
    if quiet:
        level = logging.ERROR
    elif verbose:
        level = max(logging.DEBUG, min(level, logging.WARNING) - 10 * verbose)

    logging.basicConfig(
        level=level,
        format=config.logging.format,
        stream=sys.stderr,
        force=True,
    )
    logger.setLevel(logging.INFO if stats else logging.NOTSET)


def write_path(path: str) -> None:
    """Write one matched path to stdout as the raw filesystem bytes."""
    out = getattr(sys.stdout, 'buffer', None)
    if out is None:
        sys.stdout.write(path + "\n")
        sys.stdout.flush()
        return
    out.write(os.fsencode(path) + b"\n")
    out.flush()


def run(args: argparse.Namespace) -> int:
    """Execute one scan for parsed arguments and return the exit code."""
    try:
        config = load_config(args.config).config
    except ConfigurationError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return 1

    if args.follow_symlinks:
        config = config.model_copy(update={'scan': config.scan.model_copy(update={'follow_symlinks': True})})

    configure_logging(config, args.verbose, args.quiet, args.stats)

    # Raw argv bytes, so terms that are not valid UTF-8 still match.
    query = ScanQuery(root=args.root, term=os.fsencode(args.term))
    scanner = DirectoryScanner(config)

    try:
        for match in scanner.iter_file_matches(query):
            write_path(match.path)
    except InvalidRootError as e:
        print(f"{PROG}: {e}", file=sys.stderr)
        return 1

    if args.stats:
        logger.info(str(scanner.get_stats()))

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = parse_args(argv)
    try:
        return run(args)
    except BrokenPipeError:
        # Output consumer went away (e.g. piped into head).
        devnull = os.open(os.devnull, os.O_WRONLY)
        os.dup2(devnull, sys.stdout.fileno())
        return 0


if __name__ == "__main__":
    sys.exit(main())
