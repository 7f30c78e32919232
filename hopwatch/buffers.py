# FILE: hopwatch/buffers.py
# PURPOSE: Fixed-capacity sample history per endpoint, feeding the charts.
# ==============================================================================
from __future__ import annotations

import collections
import statistics
from threading import Lock
from typing import Dict, Iterable, Optional, Tuple

from .data_models import Endpoint, Sample


class SampleBuffer:
    """
    Ring buffer of the most recent `capacity` samples for one endpoint, in
    tick order. Written by the aggregator only; readers get a tuple snapshot.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._samples = collections.deque(maxlen=capacity)
        self._lock = Lock()

    def push(self, sample: Sample) -> bool:
        """Appends a sample, evicting the oldest at capacity. Out-of-order samples are rejected."""
        with self._lock:
            if self._samples and sample.tick <= self._samples[-1].tick:
                return False
            self._samples.append(sample)
            return True

    def window(self) -> Tuple[Sample, ...]:
        with self._lock:
            return tuple(self._samples)

    def latest(self) -> Optional[Sample]:
        with self._lock:
            return self._samples[-1] if self._samples else None

    def reset(self):
        with self._lock:
            self._samples.clear()

    def __len__(self):
        with self._lock:
            return len(self._samples)


class BufferStore:
    """All sample buffers, keyed by endpoint. Buffers are created on first push."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self._buffers: Dict[Endpoint, SampleBuffer] = {}
        self._lock = Lock()

    def _get(self, endpoint: Endpoint) -> SampleBuffer:
        with self._lock:
            buf = self._buffers.get(endpoint)
            if buf is None:
                buf = self._buffers[endpoint] = SampleBuffer(self.capacity)
            return buf

    def push(self, endpoint: Endpoint, sample: Sample) -> bool:
        return self._get(endpoint).push(sample)

    def window(self, endpoint: Endpoint) -> Tuple[Sample, ...]:
        with self._lock:
            buf = self._buffers.get(endpoint)
        return buf.window() if buf is not None else ()

    def latest(self, endpoint: Endpoint) -> Optional[Sample]:
        with self._lock:
            buf = self._buffers.get(endpoint)
        return buf.latest() if buf is not None else None

    def reset(self, endpoint: Endpoint):
        with self._lock:
            buf = self._buffers.get(endpoint)
        if buf is not None:
            buf.reset()

    def endpoints(self):
        with self._lock:
            return list(self._buffers)


def window_stats(samples: Iterable[Sample]) -> Dict[str, Optional[float]]:
    """
    Header figures for one chart series. Timeouts are counted but left out of
    the RTT figures, since the sentinel is not a real measurement.
    """
    samples = list(samples)
    rtts = [s.rtt_ms for s in samples if not s.timed_out]
    stats = {
        'last': samples[-1].rtt_ms if samples else None,
        'min': None, 'max': None, 'avg': None, 'jitter': None,
        'timeouts': sum(1 for s in samples if s.timed_out),
        'count': len(samples),
    }
    if rtts:
        stats['min'] = min(rtts)
        stats['max'] = max(rtts)
        stats['avg'] = statistics.fmean(rtts)
        # mean absolute difference between consecutive replies
        if len(rtts) > 1:
            stats['jitter'] = statistics.fmean(abs(b - a) for a, b in zip(rtts, rtts[1:]))
        else:
            stats['jitter'] = 0.0
    return stats
