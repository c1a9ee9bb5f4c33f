"""Command line entry point: read a goroutine dump and print the buckets."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence, TextIO

from .buckets import Bucket, bucketize, sort_buckets
from .config import DEFAULT_CONFIG_NAME, TriageConfig, load_config
from .exceptions import StackTriageError
from .logging_config import close_debug_logger, configure_debug_file_logger
from .parser import parse_dump
from .report import render_buckets

LOGGER = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stack-triage",
        description="Collapse identical goroutines of a Go stack dump into buckets.",
    )
    parser.add_argument(
        "input",
        nargs="?",
        type=Path,
        help="Dump to read (default: stdin)",
    )
    parser.add_argument(
        "--aggressive",
        action="store_true",
        help="Merge stacks that only differ by pointer arguments",
    )
    parser.add_argument(
        "--full-path",
        action="store_true",
        help="Print full source paths instead of base names",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_NAME),
        help="YAML file listing known installation roots (default: %(default)s)",
    )
    parser.add_argument(
        "--debug-log",
        type=Path,
        help="Write a debug trace of the run to this file",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def triage(stream: TextIO, out: TextIO, *, aggressive: bool, config: TriageConfig) -> List[Bucket]:
    """Parse *stream*, forwarding junk to *out*, and return ordered buckets."""

    goroutines = parse_dump(stream, out)
    buckets = bucketize(goroutines, aggressive)
    LOGGER.info("%d goroutines in %d buckets", len(goroutines), len(buckets))
    return sort_buckets(buckets, config.known_roots)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s")
    debug_logger = None
    if args.debug_log is not None:
        debug_logger = configure_debug_file_logger("stack_triage", args.debug_log)

    try:
        config = load_config(args.config)
        if args.input is None:
            buckets = triage(sys.stdin, sys.stdout, aggressive=args.aggressive, config=config)
        else:
            with open(args.input, "r", encoding="utf-8") as handle:
                buckets = triage(handle, sys.stdout, aggressive=args.aggressive, config=config)
    except (StackTriageError, OSError, UnicodeDecodeError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if debug_logger is not None:
            close_debug_logger(debug_logger)

    sys.stdout.write(render_buckets(buckets, full_path=args.full_path, roots=config.known_roots))
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
