from tabulate import tabulate
import pandas as pd


def print_table(title, rows):
    """Print a benchmark summary DataFrame or a list of chunk row dicts."""
    print("\n" + "=" * 80)
    print(title)
    print("=" * 80)

    if len(rows) == 0:
        print("(no rows)")
        return

    if isinstance(rows, pd.DataFrame):
        print(tabulate(rows, headers="keys", tablefmt="fancy_grid", showindex=False))
    else:
        print(tabulate(rows, headers="keys", tablefmt="fancy_grid"))


def chunk_rows(result):
    return [
        {
            "chunk": c.index,
            "start": c.start,
            "end": c.end,
            "bytes": c.end - c.start,
            "lines read": c.lines_read,
            "matches": len(c.matches),
            "status": "ok" if c.ok else f"FAILED: {c.error}",
        }
        for c in result.chunks
    ]


def print_chunk_table(result):
    print_table(
        f"CHUNKS for {result.date} ({result.total_bytes} bytes)",
        chunk_rows(result),
    )
    print(f"Total lines read : {result.total_lines}")
    print(f"Total matches    : {result.total_matches}")
    print("=" * 80)
