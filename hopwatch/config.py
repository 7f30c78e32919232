# FILE: hopwatch/config.py
# PURPOSE: Default settings and the validated monitor configuration.
# ==============================================================================
from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

from .errors import ConfigError

# Hosts monitored when none are given
DEFAULT_TARGETS: List[str] = ["google.com"]

# Sampling
TIMESTAMP_RESOLUTION_S = 0.2     # log timestamps and intervals are multiples of this
DEFAULT_INTERVAL_S = 1.0
DEFAULT_BUFFER_SECONDS = 30      # visible chart window

# Hop discovery
DEFAULT_MAX_HOPS = 3
DEFAULT_DISCOVERY_INTERVAL_S = 30.0  # once every hop is known
DEFAULT_DISCOVERY_RETRY_S = 5.0      # while some hop is still unknown

# Dashboard
DEFAULT_HTTP_HOST = "127.0.0.1"
DEFAULT_HTTP_PORT = 8000


def program_dir() -> Path:
    """Directory of the running program, where ping<N>.csv files are placed."""
    argv0 = sys.argv[0] if sys.argv and sys.argv[0] else ""
    if not argv0 or argv0 == "-c":
        return Path.cwd()
    return Path(argv0).resolve().parent


def quantize_interval(seconds: float) -> float:
    """Round an interval up to the next multiple of the timestamp resolution."""
    steps = max(1, math.ceil(round(seconds / TIMESTAMP_RESOLUTION_S, 6)))
    return round(steps * TIMESTAMP_RESOLUTION_S, 1)


@dataclass
class MonitorConfig:
    targets: List[str] = field(default_factory=lambda: list(DEFAULT_TARGETS))
    interval_s: float = DEFAULT_INTERVAL_S
    buffer_seconds: float = DEFAULT_BUFFER_SECONDS
    probe_deadline_s: Optional[float] = None
    discovery_interval_s: float = DEFAULT_DISCOVERY_INTERVAL_S
    discovery_retry_s: float = DEFAULT_DISCOVERY_RETRY_S
    max_hops: int = DEFAULT_MAX_HOPS
    ip_version: Optional[int] = None
    log_dir: Optional[Path] = None
    log_enabled: bool = True
    write_summary: bool = True
    http_host: str = DEFAULT_HTTP_HOST
    http_port: int = DEFAULT_HTTP_PORT

    @property
    def interval_steps(self) -> int:
        """Number of timestamp-resolution steps in one sampling interval."""
        return int(round(self.interval_s / TIMESTAMP_RESOLUTION_S))

    @property
    def capacity(self) -> int:
        """Samples kept per endpoint to fill the chart window."""
        return max(1, math.ceil(round(self.buffer_seconds / self.interval_s, 6)))

    def validate(self) -> "MonitorConfig":
        """
        Checks every field and returns a normalised copy: the interval is
        quantised to the timestamp resolution and the probe deadline is made
        concrete. Raises ConfigError on the first invalid value.
        """
        targets = [t.strip() for t in self.targets if t and t.strip()]
        if not targets:
            raise ConfigError("At least one target is required.")
        # de-dup preserve order
        seen, ordered = set(), []
        for t in targets:
            if t not in seen:
                seen.add(t); ordered.append(t)

        if self.interval_s <= 0:
            raise ConfigError(f"Interval must be positive, got {self.interval_s}.")
        interval = quantize_interval(self.interval_s)

        if self.buffer_seconds <= 0:
            raise ConfigError(f"Buffer window must be positive, got {self.buffer_seconds}.")

        deadline = interval if self.probe_deadline_s is None else self.probe_deadline_s
        if deadline <= 0 or deadline > interval:
            raise ConfigError(
                f"Probe deadline must be in (0, {interval}] seconds, got {deadline}."
            )

        if self.discovery_interval_s <= 0 or self.discovery_retry_s <= 0:
            raise ConfigError("Discovery intervals must be positive.")
        if not 1 <= self.max_hops <= 30:
            raise ConfigError(f"max_hops must be between 1 and 30, got {self.max_hops}.")
        if self.ip_version not in (None, 4, 6):
            raise ConfigError(f"ip_version must be 4, 6 or None, got {self.ip_version}.")
        if not 0 < self.http_port < 65536:
            raise ConfigError(f"Invalid HTTP port {self.http_port}.")

        log_dir = Path(self.log_dir) if self.log_dir is not None else program_dir()

        return replace(
            self,
            targets=ordered,
            interval_s=interval,
            probe_deadline_s=deadline,
            log_dir=log_dir,
        )
