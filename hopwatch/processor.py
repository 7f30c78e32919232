# FILE: hopwatch/processor.py
# PURPOSE: Drains the probe queue and updates buffers, the CSV log and estimates.
# ==============================================================================
import logging
import threading
from queue import Empty
from typing import Dict, List

from .buffers import BufferStore
from .csv_log import CsvLogger
from .data_models import (
    Endpoint, HopUpdate, ProbeResult, Sample, TargetRegistry, TickDone,
)
from .discovery import merge_hops
from .estimator import HopEstimate, estimate

log = logging.getLogger(__name__)


class Aggregator:
    """
    The only writer of sample buffers and the CSV log. Probe tasks and hop
    discovery talk to it exclusively through the queue, so buffer resets
    after a route change are ordered with respect to every push.
    """

    def __init__(self, registry: TargetRegistry, store: BufferStore, logger: CsvLogger, interval_steps: int):
        self.registry = registry
        self.store = store
        self.logger = logger
        self.interval_steps = interval_steps
        self.closed_tick = -1
        self.discarded = 0
        self._estimates: Dict[str, List[HopEstimate]] = {}
        self._estimates_lock = threading.Lock()
        self.tick_listeners = []

    # --- message handlers ---

    def handle(self, msg):
        if isinstance(msg, ProbeResult):
            self.on_result(msg)
        elif isinstance(msg, TickDone):
            self.on_tick_done(msg.tick)
        elif isinstance(msg, HopUpdate):
            self.on_hop_update(msg)
        else:
            raise TypeError(f"Unexpected message on aggregator queue: {msg!r}")

    def on_result(self, result: ProbeResult):
        # late replies for a finished tick, or measured against a replaced hop address
        if result.tick <= self.closed_tick or self.registry.address_of(result.endpoint) != result.address:
            self.discarded += 1
            return
        sample = Sample.from_outcome(result.tick, self.interval_steps, result.outcome)
        if not self.store.push(result.endpoint, sample):
            self.discarded += 1
            return
        self.logger.log(f"{result.endpoint.label}@{result.address}", sample)

    def on_tick_done(self, tick: int):
        self.closed_tick = max(self.closed_tick, tick)
        self.logger.flush()
        self.refresh_estimates()
        for listener in self.tick_listeners:
            listener(tick)

    def on_hop_update(self, update: HopUpdate):
        target = self.registry.get(update.target)
        if target is None:
            return
        merged, reset = merge_hops(target.hops, update.discovered)
        self.registry.replace_hops(update.target, merged)
        for ordinal in reset:
            log.info("Route change for %s hop %d, history dropped", update.target, ordinal)
            self.store.reset(Endpoint(update.target, ordinal))
        if merged != target.hops:
            log.info("Hops for %s: %s", update.target,
                     ", ".join(s.address or s.state for s in merged))
        self.refresh_estimates()

    # --- estimates ---

    def refresh_estimates(self):
        fresh = {t.name: estimate(t, self.store) for t in self.registry.targets()}
        with self._estimates_lock:
            self._estimates = fresh

    def estimate(self, target_name: str) -> List[HopEstimate]:
        with self._estimates_lock:
            return list(self._estimates.get(target_name, []))

    # --- queue loop ---

    def drain(self, queue):
        """Handles every message already queued without blocking."""
        while True:
            try:
                msg = queue.get_nowait()
            except Empty:
                return
            self.handle(msg)

    def run(self, queue, stop_evt: threading.Event):
        """Processes messages until stop_evt is set, then drains what is left."""
        while not stop_evt.is_set():
            try:
                msg = queue.get(timeout=0.2)
            except Empty:
                continue
            self.handle(msg)
        self.drain(queue)
