# FILE: hopwatch/pinger.py
# PURPOSE: Periodic driver that probes every monitored endpoint once per tick.
# ==============================================================================
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Optional

from .data_models import ProbeResult, TargetRegistry, TickDone, Timeout
from .errors import TransportError
from .transport import DEFAULT_TTL, ProbeTransport

log = logging.getLogger(__name__)

# slack for thread scheduling on top of the per-probe deadline
TICK_GRACE_S = 0.05


class TargetPinger:
    """
    Every interval, snapshots the endpoint set and probes all endpoints in
    parallel. Each probe task puts its ProbeResult on the queue; the tick is
    closed with TickDone once every probe has answered or hit its deadline.
    Probes still running at that point are recorded as timeouts, and their
    late results are discarded by the aggregator.
    """

    def __init__(self, transport: ProbeTransport, registry: TargetRegistry, queue,
                 interval: float, deadline: float, max_workers: int = 16):
        self.transport = transport
        self.registry = registry
        self.queue = queue
        self.interval = interval
        self.deadline = deadline
        self.executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="probe")
        self._warned = set()
        self._warned_lock = threading.Lock()

    def _warn_once(self, endpoint, error):
        with self._warned_lock:
            if endpoint in self._warned:
                return
            self._warned.add(endpoint)
        log.warning("%s: %s (recording timeouts)", endpoint.label, error)

    def _probe(self, tick, endpoint, address):
        try:
            outcome = self.transport.probe(address, DEFAULT_TTL, self.deadline)
        except TransportError as e:
            self._warn_once(endpoint, e)
            outcome = Timeout()
        self.queue.put(ProbeResult(tick, endpoint, address, outcome))

    def run_tick(self, tick: int, budget: Optional[float] = None):
        """
        Runs one sampling tick. Returns after deadline + grace at most, never
        later than one interval, and never later than budget when given.
        """
        futures = {
            self.executor.submit(self._probe, tick, endpoint, address): (endpoint, address)
            for endpoint, address in self.registry.endpoints()
        }
        limit = min(self.deadline + TICK_GRACE_S, self.interval)
        if budget is not None:
            limit = max(0.0, min(limit, budget))
        _, pending = wait(futures, timeout=limit)
        for future in pending:
            endpoint, address = futures[future]
            self.queue.put(ProbeResult(tick, endpoint, address, Timeout()))
        self.queue.put(TickDone(tick))

    def run(self, stop_evt: threading.Event, max_ticks=None):
        """Ticks on a fixed schedule from the first tick until stop_evt is set."""
        started = time.monotonic()
        tick = 0
        try:
            while not stop_evt.is_set() and (max_ticks is None or tick < max_ticks):
                next_start = started + (tick + 1) * self.interval
                self.run_tick(tick, budget=next_start - time.monotonic())
                tick += 1
                delay = next_start - time.monotonic()
                if delay > 0 and stop_evt.wait(delay):
                    break
        finally:
            self.executor.shutdown(wait=False, cancel_futures=True)
