import pytest


@pytest.fixture
def write_log(tmp_path):
    """Write lines (str or bytes) to a log file and return its path."""

    def _write(lines, name="app.log", trailing_newline=True):
        data = b"\n".join(l.encode("utf-8") if isinstance(l, str) else l for l in lines)
        if lines and trailing_newline:
            data += b"\n"
        path = tmp_path / name
        path.write_bytes(data)
        return path

    return _write


@pytest.fixture
def numbered_lines():
    """Uniquely numbered lines of uneven length, spread over three dates."""
    dates = ["2024-01-01", "2024-01-02", "2024-01-03"]
    return [
        f"{dates[i % 3]} line-{i:05d} " + "x" * (i * 7 % 53)
        for i in range(500)
    ]
