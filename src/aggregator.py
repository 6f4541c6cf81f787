"""
Serialized writer for the matches produced by the chunk workers.

Every worker's match buffer arrives here as one flush. A single lock guards
the output file, so flushes never interleave; each buffer keeps its own
line order.

ORDERING
--------

    arrival (default)  buffers are written as they complete
    ordered=True       buffers are held back and written in chunk-index
                       order, so the output follows the input file

In ordered mode every chunk index must be flushed exactly once (failed
chunks flush an empty list), otherwise later chunks wait until close().
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Union

from errors import OutputUnwritableError

logger = logging.getLogger(__name__)


class ResultAggregator:
    """
    Append-only sink shared by all chunk workers.

    Example:
        >>> with ResultAggregator("output/output_2024-01-01.txt") as sink:
        ...     sink.flush(0, [b"2024-01-01 boot ok"])
    """

    def __init__(
        self,
        output_path: Union[str, Path],
        truncate: bool = False,
        ordered: bool = False,
    ):
        self.output_path = Path(output_path)
        self.truncate = truncate
        self.ordered = ordered

        self._lock = threading.Lock()
        self._out = None
        self._pending: Dict[int, List[bytes]] = {}
        self._next_index = 0

        self.lines_written = 0
        self.flushes = 0

    # ---------- Lifecycle ----------

    def open(self):
        mode = "wb" if self.truncate else "ab"
        try:
            self._out = open(self.output_path, mode)
        except OSError as e:
            raise OutputUnwritableError(
                f"{self.output_path}: {e.strerror or e}"
            ) from e
        return self

    def close(self):
        """
        Write any held-back chunks and close the output.

        Raises OutputUnwritableError if that final write fails; the file
        handle is closed either way.
        """
        with self._lock:
            if self._out is None:
                return

            try:
                if self._pending:
                    logger.warning(
                        "Writing %d held-back chunks with missing predecessors",
                        len(self._pending),
                    )
                    for index in sorted(self._pending):
                        self._write(self._pending.pop(index))
            except OSError as e:
                raise OutputUnwritableError(
                    f"{self.output_path}: {e.strerror or e}"
                ) from e
            finally:
                out, self._out = self._out, None
                try:
                    out.close()
                except OSError as e:
                    raise OutputUnwritableError(
                        f"{self.output_path}: {e.strerror or e}"
                    ) from e

    def __enter__(self):
        return self.open()

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ---------- Write API ----------

    def flush(self, index: int, matches: List[bytes]) -> bool:
        """
        Hand one chunk's ordered matches to the sink.

        Safe to call from several threads. Returns False if a write failed;
        in ordered mode the chunks behind a failed one are still written.
        """
        with self._lock:
            if self._out is None:
                raise RuntimeError("flush() called on a closed aggregator")

            self.flushes += 1

            if not self.ordered:
                ready = [(index, matches)]
            else:
                self._pending[index] = matches
                ready = []
                while self._next_index in self._pending:
                    ready.append((self._next_index, self._pending.pop(self._next_index)))
                    self._next_index += 1

            ok = True
            for chunk_index, batch in ready:
                try:
                    self._write(batch)
                except OSError as e:
                    logger.error(
                        "Failed writing chunk %d to %s: %s",
                        chunk_index, self.output_path, e,
                    )
                    ok = False

            try:
                self._out.flush()
            except OSError as e:
                logger.error("Failed flushing %s: %s", self.output_path, e)
                ok = False

        return ok

    def _write(self, matches: List[bytes]):
        for line in matches:
            self._out.write(line)
            self._out.write(b"\n")
        self.lines_written += len(matches)
