# tests/test_origin.py
import socket
from collections import namedtuple

import psutil

import hopwatch.origin as origin

Stats = namedtuple("Stats", "isup")
Addr = namedtuple("Addr", "family address")


def _fake_interfaces(monkeypatch, up=True):
    monkeypatch.setattr(psutil, "net_if_stats", lambda: {"eth0": Stats(up)})
    monkeypatch.setattr(psutil, "net_if_addrs", lambda: {"eth0": [Addr(socket.AF_INET, "192.168.1.20")]})


def test_origin_from_route(monkeypatch):
    _fake_interfaces(monkeypatch)
    monkeypatch.setattr(origin, "_route", lambda address: ("eth0", "192.168.1.20", "192.168.1.1"))
    assert origin.local_origin("203.0.113.10") == origin.Origin("eth0", "192.168.1.20", True)


def test_missing_source_falls_back_to_interface_address(monkeypatch):
    _fake_interfaces(monkeypatch, up=False)
    monkeypatch.setattr(origin, "_route", lambda address: ("eth0", "0.0.0.0", "0.0.0.0"))
    result = origin.local_origin("203.0.113.10")
    assert result.address == "192.168.1.20"
    assert not result.is_up


def test_route_lookup_failure(monkeypatch):
    def boom(address):
        raise OSError("no route")
    monkeypatch.setattr(origin, "_route", boom)
    assert origin.local_origin("203.0.113.10") == origin.Origin(None, None, False)
