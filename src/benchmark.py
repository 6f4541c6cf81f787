import argparse
import time
from pathlib import Path

import pandas as pd

from extractor import BACKENDS, extract_logs_for_date
from utils import print_table

########################################
# EXPERIMENT CONFIGURATION
########################################

# Worker counts to compare
WORKER_COUNTS = [1, 2, 4, 8, 16]

# Number of repeated experiments per worker count
N_EXPERIMENTS = 3

# Scratch folder for extraction output (overwritten on every run)
BENCHMARK_OUTPUT_DIR = Path("benchmark_output")


########################################
# HELPER FUNCTIONS
########################################

def run_single(log_path, date, num_workers, output_dir, backend):
    """
    Run one truncating extraction and return its timing row.
    """
    start = time.perf_counter()
    result = extract_logs_for_date(
        log_path,
        date,
        num_workers,
        output_dir=output_dir,
        truncate=True,
        backend=backend,
    )
    elapsed = time.perf_counter() - start

    return {
        "workers": num_workers,
        "backend": backend,
        "elapsed_sec": elapsed,
        "lines_read": result.total_lines,
        "matches": result.total_matches,
        "failed_chunks": len(result.failed_chunks),
        "mb_per_sec": (result.total_bytes / 1_000_000) / elapsed if elapsed > 0 else 0.0,
    }


def run_benchmark(
    log_path,
    date,
    worker_counts=WORKER_COUNTS,
    n_experiments=N_EXPERIMENTS,
    output_dir=BENCHMARK_OUTPUT_DIR,
    backend="process",
) -> pd.DataFrame:
    """
    Run every (worker count, experiment) combination and collect
    one row per run.
    """
    rows = []
    for num_workers in worker_counts:
        for exp_id in range(1, n_experiments + 1):
            print(f"[RUN] workers={num_workers} experiment={exp_id}/{n_experiments}")
            row = run_single(log_path, date, num_workers, output_dir, backend)
            row["experiment"] = exp_id
            rows.append(row)

    return pd.DataFrame(rows)


def summarize_benchmark(df: pd.DataFrame) -> pd.DataFrame:
    """
    Summarize runs:
      - group by 'workers',
      - average all numeric columns,
      - flag worker counts whose match count differs from the others.
    """
    if df.empty:
        return df

    df = df.copy()

    numeric_cols = df.select_dtypes(include="number").columns.tolist()
    # 'experiment' is an ID and 'workers' is the group key, do not average them
    for col in ("experiment", "workers"):
        if col in numeric_cols:
            numeric_cols.remove(col)

    grouped = df.groupby("workers")
    summary = grouped[numeric_cols].mean().reset_index()
    summary["n_runs"] = grouped.size().values

    # every worker count must find the same lines
    summary["consistent"] = df["matches"].nunique() == 1

    return summary


########################################
# MAIN
########################################

def main(argv=None):
    parser = argparse.ArgumentParser(description="Benchmark parallel log extraction")
    parser.add_argument("log_file_path")
    parser.add_argument("date")
    parser.add_argument("--workers", type=int, nargs="+", default=WORKER_COUNTS)
    parser.add_argument("--experiments", type=int, default=N_EXPERIMENTS)
    parser.add_argument("--backend", choices=BACKENDS, default="process")
    parser.add_argument("--output-dir", type=Path, default=BENCHMARK_OUTPUT_DIR)
    parser.add_argument("--csv", type=Path, default=None, help="Save raw runs to CSV")
    args = parser.parse_args(argv)

    if any(n < 1 for n in args.workers):
        parser.error("worker counts must be >= 1")

    df = run_benchmark(
        args.log_file_path,
        args.date,
        worker_counts=args.workers,
        n_experiments=args.experiments,
        output_dir=args.output_dir,
        backend=args.backend,
    )

    if args.csv is not None:
        args.csv.parent.mkdir(parents=True, exist_ok=True)
        df.to_csv(args.csv, index=False)
        print(f"[SAVE] raw runs -> {args.csv}")

    summary = summarize_benchmark(df)
    print_table(f"SUMMARY for {Path(args.log_file_path).name} | date={args.date}", summary)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
