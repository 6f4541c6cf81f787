import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List

from errors import SourceUnreadableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChunkRange:
    """Half-open byte range [start, end) assigned to one worker."""
    index: int
    start: int
    end: int

    @property
    def size(self) -> int:
        return self.end - self.start

    @property
    def is_empty(self) -> bool:
        return self.end <= self.start


# ---------- Boundary alignment ----------

def align_to_line_start(f: BinaryIO, offset: int, stream_length: int) -> int:
    """
    Return the offset of the first full line starting at or after `offset`.

    An offset that already sits right after a newline is kept as-is;
    otherwise the rest of the partial line is consumed.
    """
    if offset <= 0:
        return 0
    if offset >= stream_length:
        return stream_length

    f.seek(offset - 1)
    if f.read(1) == b"\n":
        return offset

    f.readline()
    return min(f.tell(), stream_length)


# ---------- Planner ----------

def plan_chunks(stream_length: int, worker_count: int, source: BinaryIO) -> List[ChunkRange]:
    """
    Split [0, stream_length) into `worker_count` contiguous, line-aligned ranges.

    Empty streams produce no ranges. Ranges may be empty when there are
    more workers than lines.
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be >= 1, got {worker_count}")
    if stream_length == 0:
        return []

    base_size = stream_length // worker_count

    starts = [0]
    for i in range(1, worker_count):
        starts.append(align_to_line_start(source, i * base_size, stream_length))

    chunks = []
    for i, start in enumerate(starts):
        end = starts[i + 1] if i < worker_count - 1 else stream_length
        chunks.append(ChunkRange(index=i, start=start, end=end))

    return chunks


def scan_log_file(path, worker_count):
    """
    Measure the log file ONCE and plan its chunks:
    - stat the total byte length
    - align every chunk start to a line boundary
    """
    path = Path(path)

    try:
        stream_length = path.stat().st_size
        with path.open("rb") as f:
            chunks = plan_chunks(stream_length, worker_count, f)
    except OSError as e:
        raise SourceUnreadableError(f"{path}: {e.strerror or e}") from e

    logger.debug(
        "Planned %d chunks over %d bytes of %s",
        len(chunks), stream_length, path,
    )
    for chunk in chunks:
        logger.debug("  chunk %d: [%d, %d)", chunk.index, chunk.start, chunk.end)

    return {
        "path": str(path),
        "total_bytes": stream_length,
        "chunk_ranges": chunks,
    }
