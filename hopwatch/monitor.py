# FILE: hopwatch/monitor.py
# PURPOSE: Owns the run: targets, buffers, log file and the worker threads.
# ==============================================================================
import logging
import queue
import threading
from typing import List, Optional

from .buffers import BufferStore, window_stats
from .config import MonitorConfig
from .csv_log import CsvLogger
from .data_models import Endpoint, Target, TargetRegistry
from .discovery import HopDiscovery
from .estimator import ORIGIN_LABEL, HopEstimate
from .origin import Origin, local_origin
from .pinger import TargetPinger
from .processor import Aggregator
from .targets import resolve_targets
from .transport import ProbeTransport, ScapyTransport

log = logging.getLogger(__name__)


class Monitor:
    """
    Top-level driver. Threads:
      - pinger: one tick per interval, probes run on a thread pool
      - discovery: re-validates hop chains at a lower rate
      - aggregator: single writer of buffers and the CSV log
    stop() lets the in-flight tick finish, drains the queue and closes the log.
    """

    def __init__(self, config: MonitorConfig, transport: Optional[ProbeTransport] = None,
                 targets: Optional[List[Target]] = None, detect_origin: bool = True):
        self.config = config.validate()
        self.transport = transport or ScapyTransport()
        self.failures = []
        if targets is None:
            targets, self.failures = resolve_targets(
                self.config.targets, self.config.max_hops, self.config.ip_version)
        self.registry = TargetRegistry(targets)
        self.store = BufferStore(self.config.capacity)
        self.logger = CsvLogger(self.config.log_dir, enabled=self.config.log_enabled,
                                write_summary=self.config.write_summary)
        self.queue = queue.Queue()
        self.aggregator = Aggregator(self.registry, self.store, self.logger, self.config.interval_steps)
        self.aggregator.tick_listeners.append(self._on_tick)
        self.detect_origin = detect_origin
        self.origin = Origin(None, None, False)
        self.last_tick = -1

        self._producers_stop = threading.Event()
        self._aggregator_stop = threading.Event()
        endpoints_max = len(targets) * (self.config.max_hops + 1)
        self.pinger = TargetPinger(self.transport, self.registry, self.queue,
                                   self.config.interval_s, self.config.probe_deadline_s,
                                   max_workers=max(4, 2 * endpoints_max))
        self.discovery = HopDiscovery(self.transport, self.registry, self.queue,
                                      self.config, self._producers_stop)
        self._threads: List[threading.Thread] = []
        self.running = False

    def _on_tick(self, tick):
        self.last_tick = tick

    # --- lifecycle ---

    def start(self):
        if self.running:
            return self
        self.logger.open()
        if self.detect_origin:
            first = self.registry.targets()[0]
            self.origin = local_origin(first.address)
            if self.origin.interface and not self.origin.is_up:
                log.warning("Interface %s looks down, expect timeouts", self.origin.interface)
        self._threads = [
            threading.Thread(target=self.aggregator.run, args=(self.queue, self._aggregator_stop),
                             name="aggregator", daemon=True),
            self.discovery,
            threading.Thread(target=self.pinger.run, args=(self._producers_stop,),
                             name="pinger", daemon=True),
        ]
        for t in self._threads:
            t.start()
        self.running = True
        log.info("Monitoring %d target(s) every %ss", len(self.registry.targets()), self.config.interval_s)
        return self

    def stop(self, timeout: float = 5.0):
        if not self.running:
            self.logger.close()
            return
        self._producers_stop.set()
        for t in self._threads:
            if t.name != "aggregator":
                t.join(timeout)
        self._aggregator_stop.set()
        for t in self._threads:
            if t.name == "aggregator":
                t.join(timeout)
        self.logger.close()
        self.running = False
        log.info("Monitoring stopped")

    def __enter__(self):
        return self.start()

    def __exit__(self, *exc):
        self.stop()
        return False

    # --- reads for the rendering side ---

    def window(self, endpoint: Endpoint):
        return self.store.window(endpoint)

    def estimate(self, target_name: str) -> List[HopEstimate]:
        return self.aggregator.estimate(target_name)

    def target_snapshot(self, target: Target):
        series = []
        for endpoint, address in target.endpoints():
            samples = self.store.window(endpoint)
            series.append({
                'endpoint': endpoint.label,
                'hop': endpoint.hop,
                'address': address,
                'samples': [s.to_dict() for s in samples],
                'stats': window_stats(samples),
            })
        return {
            'name': target.name,
            'address': target.address,
            'display': target.display,
            'hops': [{'ordinal': s.ordinal, 'address': s.address, 'state': s.state} for s in target.hops],
            'series': series,
            'minimap': [e.to_dict() for e in self.estimate(target.name)],
        }

    def snapshot(self):
        return {
            'tick': self.last_tick,
            'interval_s': self.config.interval_s,
            'capacity': self.config.capacity,
            'origin': {'label': ORIGIN_LABEL, 'interface': self.origin.interface,
                       'address': self.origin.address, 'is_up': self.origin.is_up},
            'log_file': str(self.logger.path) if self.logger.active else None,
            'targets': [self.target_snapshot(t) for t in self.registry.targets()],
            'excluded': [e.host for e in self.failures],
        }
