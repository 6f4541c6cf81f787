import logging
import multiprocessing as mp
import os
from dataclasses import dataclass, field
from multiprocessing.pool import ThreadPool
from pathlib import Path
from typing import List

from tqdm import tqdm

from aggregator import ResultAggregator
from errors import OutputUnwritableError
from file_scanner import scan_log_file
from log_reader import ChunkResult, process_chunk

logger = logging.getLogger(__name__)


DEFAULT_OUTPUT_DIR = "output"
OUTPUT_NAME_TEMPLATE = "output_{date}.txt"

# process: multiprocessing.Pool, thread: OS threads with the same Pool API
BACKENDS = ("process", "thread")


@dataclass
class ExtractionResult:
    date: str
    output_path: Path
    total_bytes: int
    chunks: List[ChunkResult] = field(default_factory=list)
    lines_written: int = 0

    @property
    def failed_chunks(self) -> List[ChunkResult]:
        return [c for c in self.chunks if not c.ok]

    @property
    def total_matches(self) -> int:
        return sum(len(c.matches) for c in self.chunks)

    @property
    def total_lines(self) -> int:
        return sum(c.lines_read for c in self.chunks)


def output_path_for(date, output_dir=DEFAULT_OUTPUT_DIR):
    return Path(output_dir) / OUTPUT_NAME_TEMPLATE.format(date=date)


def _make_pool(backend, processes):
    if backend == "thread":
        return ThreadPool(processes)
    return mp.Pool(processes)


# ------------------------------------------------------------
# Main extraction: plan -> scan in parallel -> aggregate
# ------------------------------------------------------------
def extract_logs_for_date(
    log_path,
    date,
    num_workers,
    output_dir=DEFAULT_OUTPUT_DIR,
    truncate=False,
    ordered=False,
    backend="process",
    progress=False,
):
    """
    Extract every line of `log_path` starting with `date` into
    `<output_dir>/output_<date>.txt`, scanning with `num_workers` workers.

    Raises SourceUnreadableError if the log cannot be opened and
    OutputUnwritableError if the output cannot be created. Per-chunk read
    failures do not abort the run; they show up in `failed_chunks`.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend {backend!r}, expected one of {BACKENDS}")

    scan_info = scan_log_file(log_path, num_workers)
    chunk_ranges = scan_info["chunk_ranges"]

    output_dir = Path(output_dir)
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OutputUnwritableError(f"{output_dir}: {e.strerror or e}") from e

    output_path = output_path_for(date, output_dir)
    # argv bytes that are not valid UTF-8 arrive as surrogate escapes
    prefix = os.fsencode(date)

    result = ExtractionResult(
        date=date,
        output_path=output_path,
        total_bytes=scan_info["total_bytes"],
    )

    # Output is opened before any worker starts, even with nothing to scan
    with ResultAggregator(output_path, truncate=truncate, ordered=ordered) as sink:
        if not chunk_ranges:
            logger.debug("Empty log file %s, nothing to scan", log_path)
            return result

        tasks = [(scan_info["path"], chunk, prefix) for chunk in chunk_ranges]

        with _make_pool(backend, len(tasks)) as pool:
            for chunk_result in tqdm(
                pool.imap_unordered(process_chunk, tasks),
                total=len(tasks),
                desc="Scanning",
                ncols=100,
                disable=not progress,
            ):
                if not sink.flush(chunk_result.index, chunk_result.matches):
                    chunk_result.error = chunk_result.error or "write to output failed"
                result.chunks.append(chunk_result)

    result.chunks.sort(key=lambda c: c.index)
    result.lines_written = sink.lines_written

    logger.debug(
        "Extracted %d of %d lines for %s into %s",
        result.total_matches, result.total_lines, date, output_path,
    )
    return result
