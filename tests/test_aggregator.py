"""
Tests for aggregator.py - the serialized output sink.
"""

import errno
import threading

import pytest

from aggregator import ResultAggregator
from errors import OutputUnwritableError


def read_lines(path):
    return path.read_bytes().splitlines()


class TestFlush:

    def test_writes_lines_with_newlines(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out) as sink:
            assert sink.flush(0, [b"a", b"b"])
            assert sink.flush(1, [])
        assert out.read_bytes() == b"a\nb\n"
        assert sink.lines_written == 2
        assert sink.flushes == 2

    def test_append_mode_accumulates(self, tmp_path):
        out = tmp_path / "out.txt"
        for _ in range(2):
            with ResultAggregator(out) as sink:
                sink.flush(0, [b"x"])
        assert read_lines(out) == [b"x", b"x"]

    def test_truncate_mode_replaces(self, tmp_path):
        out = tmp_path / "out.txt"
        out.write_bytes(b"old\n")
        with ResultAggregator(out, truncate=True) as sink:
            sink.flush(0, [b"new"])
        assert read_lines(out) == [b"new"]

    def test_file_created_even_without_flushes(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out):
            pass
        assert out.exists()
        assert out.read_bytes() == b""

    def test_flush_after_close_raises(self, tmp_path):
        sink = ResultAggregator(tmp_path / "out.txt").open()
        sink.close()
        with pytest.raises(RuntimeError):
            sink.flush(0, [b"late"])

    def test_unwritable_output(self, tmp_path):
        with pytest.raises(OutputUnwritableError):
            ResultAggregator(tmp_path / "no" / "such" / "dir" / "out.txt").open()


class TestOrdering:

    def test_arrival_order_by_default(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out) as sink:
            sink.flush(2, [b"c"])
            sink.flush(0, [b"a"])
            sink.flush(1, [b"b"])
        assert read_lines(out) == [b"c", b"a", b"b"]

    def test_ordered_mode_writes_chunk_index_order(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out, ordered=True) as sink:
            sink.flush(2, [b"c1", b"c2"])
            assert out.read_bytes() == b""
            sink.flush(0, [b"a"])
            assert read_lines(out) == [b"a"]
            sink.flush(1, [])
        assert read_lines(out) == [b"a", b"c1", b"c2"]

    def test_ordered_mode_writes_leftovers_on_close(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out, ordered=True) as sink:
            sink.flush(3, [b"d"])
            sink.flush(1, [b"b"])
        assert read_lines(out) == [b"b", b"d"]


class TestConcurrency:

    def test_concurrent_flushes_do_not_interleave(self, tmp_path):
        out = tmp_path / "out.txt"
        n_threads, n_lines = 16, 500

        with ResultAggregator(out) as sink:
            barrier = threading.Barrier(n_threads)

            def worker(idx):
                batch = [f"{idx:02d}-{i:04d}".encode() for i in range(n_lines)]
                barrier.wait()
                sink.flush(idx, batch)

            threads = [threading.Thread(target=worker, args=(i,)) for i in range(n_threads)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        lines = [l.decode() for l in read_lines(out)]
        assert len(lines) == n_threads * n_lines

        # each flush appears as one contiguous, internally ordered block
        for block_start in range(0, len(lines), n_lines):
            block = lines[block_start:block_start + n_lines]
            owner = block[0][:2]
            assert block == [f"{owner}-{i:04d}" for i in range(n_lines)]


# ─────────────────────────────────────────────────────────────────────
# Write failures
# ─────────────────────────────────────────────────────────────────────

class FullDiskHandle:
    """Wraps a real handle; writes of `fail_on` (or all writes) hit ENOSPC."""

    def __init__(self, inner, fail_on=None):
        self.inner = inner
        self.fail_on = fail_on
        self.closed = False

    def write(self, data):
        if self.fail_on is None or data == self.fail_on:
            raise OSError(errno.ENOSPC, "No space left on device")
        return self.inner.write(data)

    def flush(self):
        self.inner.flush()

    def close(self):
        self.closed = True
        self.inner.close()


class TestWriteFailures:

    def test_close_failure_is_reported_and_handle_closed(self, tmp_path):
        sink = ResultAggregator(tmp_path / "out.txt", ordered=True).open()
        sink.flush(2, [b"held back"])

        handle = FullDiskHandle(sink._out)
        sink._out = handle

        with pytest.raises(OutputUnwritableError):
            sink.close()

        assert handle.closed
        assert sink._out is None
        sink.close()  # second close is a no-op

    def test_context_manager_surfaces_close_failure(self, tmp_path):
        with pytest.raises(OutputUnwritableError):
            with ResultAggregator(tmp_path / "out.txt", ordered=True) as sink:
                sink.flush(1, [b"held back"])
                sink._out = FullDiskHandle(sink._out)

    def test_ordered_failure_does_not_block_later_chunks(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out, ordered=True) as sink:
            sink._out = FullDiskHandle(sink._out, fail_on=b"bad")

            assert not sink.flush(0, [b"bad"])
            assert sink.flush(1, [b"good"])
            assert sink._pending == {}

        assert read_lines(out) == [b"good"]

    def test_failure_behind_held_chunk_still_writes_the_rest(self, tmp_path):
        out = tmp_path / "out.txt"
        with ResultAggregator(out, ordered=True) as sink:
            sink._out = FullDiskHandle(sink._out, fail_on=b"bad")

            assert sink.flush(2, [b"third"])
            assert sink.flush(1, [b"bad"])
            assert not sink.flush(0, [b"first"])

        assert read_lines(out) == [b"first", b"third"]
