# FILE: hopwatch/data_models.py
# PURPOSE: Defines shared data structures: probe outcomes, samples, targets, hops.
# ==============================================================================
from __future__ import annotations

from dataclasses import dataclass, field, replace
from threading import Lock
from typing import Iterator, List, NamedTuple, Optional, Tuple, Union

from .config import TIMESTAMP_RESOLUTION_S

# A timed out probe is drawn and logged as this RTT so charts spike instead of gapping
TIMEOUT_SENTINEL_MS = 1000.0

# Hop slot states
HOP_KNOWN = "known"
HOP_UNKNOWN = "unknown"        # no answer yet for this TTL
HOP_UNREACHED = "unreached"    # destination answered at a lower TTL


# --- Probe outcomes, as returned by a transport ---

@dataclass(frozen=True)
class Reply:
    rtt_ms: float


@dataclass(frozen=True)
class TtlExceeded:
    source: str
    rtt_ms: Optional[float] = None


@dataclass(frozen=True)
class Timeout:
    pass


ProbeOutcome = Union[Reply, TtlExceeded, Timeout]


# --- Samples ---

def tick_timestamp(tick: int, interval_steps: int) -> float:
    """Seconds from run start for a tick, exact to the timestamp resolution."""
    return round(tick * interval_steps * TIMESTAMP_RESOLUTION_S, 1)


@dataclass(frozen=True)
class Sample:
    tick: int
    timestamp: float
    rtt_ms: float
    timed_out: bool = False

    @classmethod
    def from_outcome(cls, tick: int, interval_steps: int, outcome: ProbeOutcome) -> "Sample":
        """Normalises an outcome. Anything but an echo reply becomes the timeout sentinel."""
        ts = tick_timestamp(tick, interval_steps)
        if isinstance(outcome, Reply):
            return cls(tick, ts, float(outcome.rtt_ms))
        return cls(tick, ts, TIMEOUT_SENTINEL_MS, timed_out=True)

    def to_dict(self):
        return {'t': self.timestamp, 'rtt_ms': self.rtt_ms, 'timeout': self.timed_out}


# --- Monitored endpoints ---

class Endpoint(NamedTuple):
    """A monitored endpoint: a target (hop == 0) or one of its hop slots."""
    target: str
    hop: int = 0

    @property
    def is_hop(self) -> bool:
        return self.hop > 0

    @property
    def label(self) -> str:
        return f"{self.target}/hop{self.hop}" if self.hop else self.target


@dataclass
class HopSlot:
    ordinal: int
    address: Optional[str] = None
    state: str = HOP_UNKNOWN

    @property
    def known(self) -> bool:
        return self.state == HOP_KNOWN and self.address is not None


@dataclass
class Target:
    name: str
    address: str
    hops: List[HopSlot] = field(default_factory=list)

    @classmethod
    def with_slots(cls, name: str, address: str, max_hops: int) -> "Target":
        return cls(name, address, [HopSlot(i) for i in range(1, max_hops + 1)])

    @property
    def display(self) -> str:
        return self.name if self.name == self.address else f"{self.name} ({self.address})"

    def hop(self, ordinal: int) -> HopSlot:
        return self.hops[ordinal - 1]

    def endpoints(self) -> Iterator[Tuple[Endpoint, str]]:
        """Yields (endpoint, address) for the target itself and each known hop."""
        yield Endpoint(self.name), self.address
        for slot in self.hops:
            if slot.known:
                yield Endpoint(self.name, slot.ordinal), slot.address

    def copy(self) -> "Target":
        return Target(self.name, self.address, [replace(s) for s in self.hops])


class TargetRegistry:
    """
    The set of monitored targets and their hop chains. Read by the pinger,
    discovery and the renderer; hop chains are replaced only by the aggregator.
    Readers always get copies.
    """

    def __init__(self, targets: List[Target]):
        self._targets = {t.name: t for t in targets}
        self._lock = Lock()

    def targets(self) -> List[Target]:
        with self._lock:
            return [t.copy() for t in self._targets.values()]

    def get(self, name: str) -> Optional[Target]:
        with self._lock:
            t = self._targets.get(name)
            return t.copy() if t else None

    def endpoints(self) -> List[Tuple[Endpoint, str]]:
        with self._lock:
            return [pair for t in self._targets.values() for pair in t.endpoints()]

    def address_of(self, endpoint: Endpoint) -> Optional[str]:
        with self._lock:
            t = self._targets.get(endpoint.target)
            if t is None:
                return None
            if not endpoint.hop:
                return t.address
            slot = t.hop(endpoint.hop)
            return slot.address if slot.known else None

    def replace_hops(self, name: str, hops: List[HopSlot]):
        with self._lock:
            self._targets[name].hops = hops


# --- Messages on the aggregator queue ---

@dataclass(frozen=True)
class ProbeResult:
    tick: int
    endpoint: Endpoint
    address: str
    outcome: ProbeOutcome


@dataclass(frozen=True)
class TickDone:
    tick: int


@dataclass(frozen=True)
class HopUpdate:
    target: str
    discovered: List[HopSlot]
