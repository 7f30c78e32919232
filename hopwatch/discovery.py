# FILE: hopwatch/discovery.py
# PURPOSE: Finds the first few routers toward each target with TTL-limited probes.
# ==============================================================================
from __future__ import annotations

import logging
import threading
from typing import List, Tuple

from .data_models import (
    HopSlot, HopUpdate, Reply, TtlExceeded, HOP_KNOWN, HOP_UNKNOWN, HOP_UNREACHED,
)
from .errors import TransportError
from .transport import ProbeTransport

log = logging.getLogger(__name__)


def discover_hops(transport: ProbeTransport, address: str, max_hops: int, deadline: float) -> List[HopSlot]:
    """
    One discovery pass. Probes TTL 1..max_hops in order:
    - TTL exceeded: the sender is that hop.
    - echo reply: the target itself is that hop, later slots are "unreached"
      and no further TTLs are probed.
    - nothing: the slot stays "unknown" for this pass.
    """
    slots = [HopSlot(i) for i in range(1, max_hops + 1)]
    for slot in slots:
        try:
            outcome = transport.probe(address, slot.ordinal, deadline)
        except TransportError as e:
            log.debug("Discovery probe failed: %s", e)
            continue
        if isinstance(outcome, TtlExceeded):
            slot.address, slot.state = outcome.source, HOP_KNOWN
        elif isinstance(outcome, Reply):
            slot.address, slot.state = address, HOP_KNOWN
            for later in slots[slot.ordinal:]:
                later.state = HOP_UNREACHED
            break
    return slots


def merge_hops(current: List[HopSlot], discovered: List[HopSlot]) -> Tuple[List[HopSlot], List[int]]:
    """
    Folds a discovery pass into the current hop chain. Returns the new chain
    and the ordinals whose sample history must be dropped.

    A slot that answered from a different address, or that now lies beyond
    the destination, loses its history. A slot that merely timed out this
    pass keeps its last known address.
    """
    merged: List[HopSlot] = []
    reset: List[int] = []
    for old, new in zip(current, discovered):
        if new.state == HOP_UNKNOWN:
            if old.state == HOP_KNOWN:
                merged.append(HopSlot(old.ordinal, old.address, old.state))
            else:
                merged.append(HopSlot(old.ordinal))
            continue
        if old.state == HOP_KNOWN and old.address != new.address:
            reset.append(old.ordinal)
        merged.append(HopSlot(new.ordinal, new.address, new.state))
    return merged, reset


class HopDiscovery(threading.Thread):
    """
    Background re-validation of every target's hop chain. Passes are posted
    to the aggregator queue and applied there, so a route change and the
    matching buffer reset never race with sample pushes.
    """

    def __init__(self, transport: ProbeTransport, registry, queue, config, stop_evt: threading.Event):
        super().__init__(name="hop-discovery", daemon=True)
        self.transport = transport
        self.registry = registry
        self.queue = queue
        self.config = config
        self.stop_evt = stop_evt
        # 1-2 sampling intervals per TTL
        self.deadline = 2 * config.interval_s

    def run_pass(self):
        for target in self.registry.targets():
            if self.stop_evt.is_set():
                return
            discovered = discover_hops(self.transport, target.address, self.config.max_hops, self.deadline)
            self.queue.put(HopUpdate(target.name, discovered))

    def next_delay(self) -> float:
        if any(slot.state == HOP_UNKNOWN for t in self.registry.targets() for slot in t.hops):
            return self.config.discovery_retry_s
        return self.config.discovery_interval_s

    def run(self):
        log.info("Hop discovery started (every %ss, retry %ss)",
                 self.config.discovery_interval_s, self.config.discovery_retry_s)
        while not self.stop_evt.is_set():
            self.run_pass()
            self.stop_evt.wait(self.next_delay())
