"""
Extract all lines starting with a date from a large log file.

Usage:
    logextract <log_file_path> <YYYY-MM-DD> <num_workers> [options]

Examples:
    logextract app.log 2024-01-01 8
    logextract app.log 2024-01-01 8 --truncate --ordered --show-chunks
"""

import argparse
import logging
import os
import sys

from errors import ExtractionError, OutputUnwritableError, SourceUnreadableError
from extractor import BACKENDS, DEFAULT_OUTPUT_DIR, extract_logs_for_date
from utils import print_chunk_table


def printable(value):
    # surrogate-escaped argv bytes would crash a strict stdout
    return os.fsencode(str(value)).decode("utf-8", "backslashreplace")


def positive_int(value):
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid worker count: {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"worker count must be >= 1, got {n}")
    return n


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="logextract",
        description="Extract log lines for one date using parallel chunked scanning",
    )
    parser.add_argument("log_file_path", help="Log file to scan")
    parser.add_argument("date", metavar="YYYY-MM-DD", help="Line prefix to extract")
    parser.add_argument("num_workers", type=positive_int, help="Number of parallel workers")

    parser.add_argument("--output-dir", default=DEFAULT_OUTPUT_DIR)
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="Replace the output file instead of appending to it",
    )
    parser.add_argument(
        "--ordered",
        action="store_true",
        help="Write matches in file order instead of chunk completion order",
    )
    parser.add_argument("--backend", choices=BACKENDS, default="process")
    parser.add_argument("--no-progress", action="store_true")
    parser.add_argument("--show-chunks", action="store_true", help="Print a per-chunk table")
    parser.add_argument("-v", "--verbose", action="store_true")

    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    try:
        result = extract_logs_for_date(
            args.log_file_path,
            args.date,
            args.num_workers,
            output_dir=args.output_dir,
            truncate=args.truncate,
            ordered=args.ordered,
            backend=args.backend,
            progress=not args.no_progress,
        )
    except SourceUnreadableError as e:
        print(f"Error: Unable to open log file: {e}", file=sys.stderr)
        return 1
    except OutputUnwritableError as e:
        print(f"Error: Unable to write output: {e}", file=sys.stderr)
        return 1
    except ExtractionError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.show_chunks:
        print_chunk_table(result)

    print(f"Logs for {printable(result.date)} extracted to {printable(result.output_path)}")

    failed = result.failed_chunks
    if failed:
        for c in failed:
            print(
                f"Warning: chunk {c.index} [{c.start}, {c.end}) was not scanned: {c.error}",
                file=sys.stderr,
            )
        print(
            f"Error: {len(failed)} of {len(result.chunks)} chunks failed; output is incomplete",
            file=sys.stderr,
        )
        return 1

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
