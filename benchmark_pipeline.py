import sys
import time
import logging
from pathlib import Path

from lexis.cli.main import read_text
from lexis.pipeline import HardWordPipeline

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger("benchmark")


def run_benchmark(path: Path, runs: int = 3):
    if runs < 1:
        raise ValueError(f"runs must be >= 1, got {runs}")
    logger.info(f"Benchmarking hard-word analysis on {path}")
    text = read_text(path)
    pipeline = HardWordPipeline()

    # Warm-up run loads wordfreq, the segmentation dictionary and GLiNER
    start_time = time.perf_counter()
    results, stats = pipeline.analyze(text)
    cold = time.perf_counter() - start_time

    timings = []
    for _ in range(runs):
        start_time = time.perf_counter()
        pipeline.analyze(text)
        timings.append(time.perf_counter() - start_time)

    words = len(text.split())
    warm = sum(timings) / len(timings)

    print("\n" + "=" * 50)
    print(" " * 15 + "BENCHMARK RESULTS")
    print("=" * 50)
    print(f"Words:                  {words}")
    print(f"Sentences:              {stats.sentence_count}")
    print(f"Candidates:             {stats.total_candidates}")
    print(f"Filtered as names:      {len(stats.filtered_by_entities)}")
    print(f"Hard words:             {len(results)}")
    print(f"First run (cold):       {cold:.3f} seconds")
    print(f"Mean of {runs} warm runs:   {warm:.3f} seconds")
    print(f"Throughput (warm):      {words / warm:.0f} words/second")
    print("=" * 50)


if __name__ == "__main__":
    runs = int(sys.argv[2]) if len(sys.argv) > 2 else 3
    if len(sys.argv) < 2 or runs < 1:
        print("usage: python benchmark_pipeline.py BOOK.txt [RUNS>=1]")
        sys.exit(1)
    run_benchmark(Path(sys.argv[1]), runs)
