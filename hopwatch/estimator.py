# FILE: hopwatch/estimator.py
# PURPOSE: Per-hop incremental latency for the topology minimap.
# ==============================================================================
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .buffers import BufferStore
from .data_models import Endpoint, Target, HOP_KNOWN, HOP_UNKNOWN, HOP_UNREACHED

ORIGIN_LABEL = "Your device"

# Minimap grading thresholds (ms of added latency per segment)
GRADE_GOOD_MS = 30
GRADE_FAIR_MS = 60
GRADE_POOR_MS = 90


def latency_grade(latency_ms: Optional[float]) -> str:
    if latency_ms is None:
        return "unknown"
    if latency_ms <= GRADE_GOOD_MS:
        return "good"
    if latency_ms <= GRADE_FAIR_MS:
        return "fair"
    if latency_ms <= GRADE_POOR_MS:
        return "poor"
    return "bad"


def hop_label(ordinal: int) -> str:
    return "Home Gateway" if ordinal == 1 else f"Internet Hop {ordinal - 1}"


@dataclass(frozen=True)
class HopEstimate:
    """One minimap segment: the latency added between the previous node and this one."""
    ordinal: int
    label: str
    address: Optional[str]
    state: str
    latency_ms: float = 0.0
    rtt_ms: Optional[float] = None
    timed_out: bool = False

    @property
    def grade(self) -> str:
        return latency_grade(self.latency_ms if self.state == HOP_KNOWN else None)

    def to_dict(self):
        return {
            'ordinal': self.ordinal, 'label': self.label, 'address': self.address,
            'state': self.state, 'latency_ms': self.latency_ms, 'rtt_ms': self.rtt_ms,
            'timed_out': self.timed_out, 'grade': self.grade,
        }


def _segment(ordinal, label, address, latest, reference):
    """Builds one segment; returns it with the reference for the next one."""
    if latest is None:
        return HopEstimate(ordinal, label, address, HOP_UNKNOWN), reference
    if latest.timed_out:
        # the sentinel is not a latency, and silence says nothing about this hop
        return HopEstimate(ordinal, label, address, HOP_UNKNOWN, timed_out=True), reference
    segment = HopEstimate(
        ordinal, label, address, HOP_KNOWN,
        latency_ms=max(0.0, latest.rtt_ms - reference), rtt_ms=latest.rtt_ms,
    )
    return segment, latest.rtt_ms


def estimate(target: Target, store: BufferStore) -> List[HopEstimate]:
    """
    Computes max(0, rtt(hop_n) - rtt(hop_n-1)) from the latest sample of each
    hop, with the origin at 0 ms. The destination is appended as the last
    segment. Hops without a reply in their latest sample (no sample yet, or
    a timeout) report state "unknown" and add nothing; the next known hop is
    measured against the nearest known predecessor.
    """
    result: List[HopEstimate] = []
    reference = 0.0

    for slot in target.hops:
        if slot.state == HOP_UNREACHED:
            result.append(HopEstimate(slot.ordinal, hop_label(slot.ordinal), None, HOP_UNREACHED))
            continue
        latest = store.latest(Endpoint(target.name, slot.ordinal)) if slot.known else None
        segment, reference = _segment(slot.ordinal, hop_label(slot.ordinal), slot.address, latest, reference)
        result.append(segment)

    latest = store.latest(Endpoint(target.name))
    segment, _ = _segment(len(target.hops) + 1, target.name, target.address, latest, reference)
    result.append(segment)
    return result
