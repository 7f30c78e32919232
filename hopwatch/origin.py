# FILE: hopwatch/origin.py
# PURPOSE: Finds the local interface and address that probes leave from.
# ==============================================================================
import ipaddress
import logging
import socket
from dataclasses import dataclass
from typing import Optional

import psutil
from scapy.config import conf

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Origin:
    """The "Your device" node of the minimap."""
    interface: Optional[str]
    address: Optional[str]
    is_up: bool


def _route(address: str):
    """(iface, source, gateway) from Scapy's routing table."""
    if ipaddress.ip_address(address).version == 6:
        return conf.route6.route(address)
    return conf.route.route(address)


def interface_is_up(iface_name: str) -> bool:
    stats = psutil.net_if_stats().get(iface_name)
    return bool(stats and stats.isup)


def interface_address(iface_name: str, family=socket.AF_INET) -> str:
    """Gets the primary address of the given family for an interface name."""
    for addr in psutil.net_if_addrs().get(iface_name, []):
        if addr.family == family:
            return addr.address
    return ""


def local_origin(address: str) -> Origin:
    try:
        iface, source, _ = _route(address)
    except (OSError, ValueError) as e:
        log.warning("No route lookup for %s: %s", address, e)
        return Origin(None, None, False)
    iface_name = getattr(iface, "name", iface)
    if not iface_name:
        return Origin(None, source or None, False)
    if not source or source in ("0.0.0.0", "::"):
        family = socket.AF_INET6 if ipaddress.ip_address(address).version == 6 else socket.AF_INET
        source = interface_address(iface_name, family) or None
    return Origin(iface_name, source, interface_is_up(iface_name))
