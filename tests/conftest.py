# tests/conftest.py
import threading
import time

import pytest

from hopwatch.config import MonitorConfig
from hopwatch.data_models import Reply, Target, Timeout, TtlExceeded
from hopwatch.transport import ProbeTransport


class FakeTransport(ProbeTransport):
    """
    Simulated network.
    routes: dict[dest] -> list of router addresses before dest (None = silent router)
    rtts:   dict[address] -> rtt_ms for echo replies; missing addresses never answer
    delays: dict[address] -> seconds to block before answering (ignores the deadline)
    """

    def __init__(self, routes=None, rtts=None, delays=None):
        self.routes = routes or {}
        self.rtts = rtts or {}
        self.delays = delays or {}
        self.calls = []
        self._lock = threading.Lock()

    def probe(self, address, ttl, deadline):
        with self._lock:
            self.calls.append((address, ttl))
        delay = self.delays.get(address)
        if delay:
            time.sleep(delay)
        path = self.routes.get(address, [])
        if ttl <= len(path):
            hop = path[ttl - 1]
            return Timeout() if hop is None else TtlExceeded(hop, 1.0)
        if address in self.rtts:
            return Reply(self.rtts[address])
        return Timeout()


@pytest.fixture
def fake_transport():
    return FakeTransport(
        routes={"203.0.113.10": ["192.168.1.1", "100.64.0.1", "198.51.100.1"]},
        rtts={"192.168.1.1": 2.0, "100.64.0.1": 9.0, "198.51.100.1": 15.0, "203.0.113.10": 20.0},
    )


@pytest.fixture
def config(tmp_path):
    return MonitorConfig(targets=["example.test"], interval_s=0.2, buffer_seconds=2,
                         log_dir=tmp_path).validate()


@pytest.fixture
def target():
    return Target.with_slots("example.test", "203.0.113.10", 3)


@pytest.fixture
def make_transport():
    return FakeTransport
