# FILE: hopwatch/csv_log.py
# PURPOSE: Appends every sample to ping<N>.csv for the lifetime of a run.
# ==============================================================================
from __future__ import annotations

import collections
import csv
import logging
import statistics
from pathlib import Path
from typing import Dict, List, Optional

from .data_models import Sample, TIMEOUT_SENTINEL_MS

log = logging.getLogger(__name__)

LOG_NAME_TEMPLATE = "ping{}.csv"
MAX_LOG_INDEX = 9999
CSV_HEADER = ["timestamp", "endpoint", "rtt_ms"]


def open_next_log(directory: Path):
    """
    Creates the lowest-numbered ping<N>.csv that does not exist yet.
    Exclusive creation means an existing file is never truncated.
    Returns (path, file). Raises OSError when no file can be created.
    """
    directory = Path(directory)
    for n in range(1, MAX_LOG_INDEX + 1):
        path = directory / LOG_NAME_TEMPLATE.format(n)
        if path.exists():
            continue
        try:
            return path, open(path, "x", newline="")
        except FileExistsError:
            continue
    raise OSError(f"No free log name left in {directory} (tried up to {MAX_LOG_INDEX})")


def format_rtt(sample: Sample) -> str:
    if sample.timed_out:
        return f"{TIMEOUT_SENTINEL_MS:g}"
    return f"{sample.rtt_ms:.3f}"


def percentile(sorted_values: List[float], fraction: float) -> float:
    idx = min(int(len(sorted_values) * fraction), len(sorted_values) - 1)
    return sorted_values[idx]


class CsvLogger:
    """
    Owns the run's log file. Rows are written whole by csv.writer and flushed
    once per tick, so a crash loses at most the last tick. If the file cannot
    be created or written, logging turns itself off with a single warning.

    Use as a context manager, or call open() and close().
    """

    def __init__(self, directory: Path, enabled: bool = True, write_summary: bool = True):
        self.directory = Path(directory)
        self.enabled = enabled
        self.write_summary = write_summary
        self.path: Optional[Path] = None
        self.rows_written = 0
        self._file = None
        self._writer = None
        self._replies: Dict[str, List[float]] = collections.defaultdict(list)

    @property
    def active(self) -> bool:
        return self._writer is not None

    def open(self) -> "CsvLogger":
        if not self.enabled or self.active:
            return self
        try:
            self.path, self._file = open_next_log(self.directory)
            self._writer = csv.writer(self._file)
            self._writer.writerow(CSV_HEADER)
            self._file.flush()
        except OSError as e:
            self._disable(f"Cannot create a log file in {self.directory}: {e}")
        else:
            log.info("Logging samples to %s", self.path)
        return self

    def _disable(self, reason: str):
        log.warning("%s. Logging is disabled for this run.", reason)
        self.enabled = False
        self._writer = None
        if self._file is not None:
            try:
                self._file.close()
            except OSError as e:
                log.debug("Closing broken log file: %s", e)
            self._file = None

    def log(self, endpoint_label: str, sample: Sample):
        if not self.active:
            return
        try:
            self._writer.writerow([f"{sample.timestamp:.1f}", endpoint_label, format_rtt(sample)])
        except OSError as e:
            self._disable(f"Writing to {self.path} failed: {e}")
            return
        self.rows_written += 1
        if not sample.timed_out:
            self._replies[endpoint_label].append(sample.rtt_ms)

    def flush(self):
        if not self.active:
            return
        try:
            self._file.flush()
        except OSError as e:
            self._disable(f"Flushing {self.path} failed: {e}")

    def _summary_rows(self):
        rows = []
        for label, values in self._replies.items():
            ordered = sorted(values)
            rows.append(["average", label, f"{statistics.fmean(ordered):.3f}"])
            rows.append(["p95", label, f"{percentile(ordered, 0.95):.3f}"])
            rows.append(["p99", label, f"{percentile(ordered, 0.99):.3f}"])
        return rows

    def close(self):
        if not self.active:
            return
        try:
            if self.write_summary:
                self._writer.writerows(self._summary_rows())
            self._file.flush()
            self._file.close()
        except OSError as e:
            log.warning("Closing %s failed: %s", self.path, e)
        finally:
            self._file = None
            self._writer = None

    def __enter__(self):
        return self.open()

    def __exit__(self, *exc):
        self.close()
        return False
