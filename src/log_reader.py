import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from file_scanner import ChunkRange

logger = logging.getLogger(__name__)


@dataclass
class ChunkResult:
    index: int
    start: int
    end: int
    lines_read: int = 0
    matches: List[bytes] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------- Predicate ----------

def matches_prefix(line: bytes, prefix: bytes) -> bool:
    # Raw byte comparison: case-sensitive, no whitespace trimming
    return line.startswith(prefix)


# ---------- Scan one chunk ----------

def scan_chunk(path, chunk: ChunkRange, prefix: bytes) -> Tuple[List[bytes], int]:
    """
    Read every line whose first byte lies in [chunk.start, chunk.end).

    The line straddling chunk.end is read to completion. Returns the matched
    lines (newline stripped, input order kept) and the number of lines read.
    Raises OSError if the file cannot be opened or read.
    """
    matches = []
    lines_read = 0

    if chunk.is_empty:
        return matches, lines_read

    with open(path, "rb") as f:
        f.seek(chunk.start)

        while f.tell() < chunk.end:
            line = f.readline()
            if not line:
                break

            lines_read += 1
            if matches_prefix(line, prefix):
                matches.append(line[:-1] if line.endswith(b"\n") else line)

    return matches, lines_read


# ---------- Worker: isolated failure ----------

def process_chunk(args):
    path, chunk, prefix = args
    result = ChunkResult(index=chunk.index, start=chunk.start, end=chunk.end)

    try:
        result.matches, result.lines_read = scan_chunk(path, chunk, prefix)
    except OSError as e:
        # Sibling chunks keep going; the failure is reported in the summary
        logger.error(
            "Unable to read chunk %d [%d, %d) of %s: %s",
            chunk.index, chunk.start, chunk.end, path, e,
        )
        result.matches = []
        result.lines_read = 0
        result.error = str(e)

    return result
