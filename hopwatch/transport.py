# FILE: hopwatch/transport.py
# PURPOSE: Sends single ICMP echo probes with a given TTL using Scapy.
# ==============================================================================
import ipaddress
import logging
from abc import ABC, abstractmethod
from time import perf_counter

from scapy.layers.inet import IP, ICMP
from scapy.layers.inet6 import IPv6, ICMPv6EchoRequest, ICMPv6EchoReply, ICMPv6TimeExceeded
from scapy.sendrecv import sr1

from .data_models import Reply, TtlExceeded, Timeout, ProbeOutcome
from .errors import TransportError

log = logging.getLogger(__name__)

DEFAULT_TTL = 64
ICMP_ECHO_REPLY = 0
ICMP_TIME_EXCEEDED = 11


class ProbeTransport(ABC):
    @abstractmethod
    def probe(self, address: str, ttl: int, deadline: float) -> ProbeOutcome:
        """Send exactly one echo request to address with the given TTL and wait at most deadline seconds."""
        raise NotImplementedError


def _new_probe_packet(address: str, ttl: int):
    if ipaddress.ip_address(address).version == 6:
        return IPv6(dst=address, hlim=ttl) / ICMPv6EchoRequest()
    return IP(dst=address, ttl=ttl) / ICMP()


def classify_reply(reply, rtt_ms: float) -> ProbeOutcome:
    """Maps a Scapy answer packet onto a probe outcome."""
    if reply is None:
        return Timeout()
    if reply.haslayer(ICMPv6EchoReply):
        return Reply(rtt_ms)
    if reply.haslayer(ICMPv6TimeExceeded):
        return TtlExceeded(reply[IPv6].src, rtt_ms)
    if reply.haslayer(ICMP):
        icmp_type = reply[ICMP].type
        if icmp_type == ICMP_ECHO_REPLY:
            return Reply(rtt_ms)
        if icmp_type == ICMP_TIME_EXCEEDED:
            return TtlExceeded(reply[IP].src, rtt_ms)
    # destination unreachable and friends: nothing usable arrived
    log.debug("Ignoring unexpected answer %s", reply.summary())
    return Timeout()


class ScapyTransport(ProbeTransport):
    """
    Probe transport backed by Scapy's sr1(). Needs raw socket privileges
    (root or CAP_NET_RAW); without them every probe raises TransportError.
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose

    def probe(self, address: str, ttl: int, deadline: float) -> ProbeOutcome:
        packet = _new_probe_packet(address, ttl)
        start = perf_counter()
        try:
            reply = sr1(packet, timeout=deadline, verbose=self.verbose)
        except OSError as e:
            raise TransportError(f"Could not probe {address} (ttl={ttl}): {e}") from e
        rtt_ms = (perf_counter() - start) * 1000
        # sr1 can overshoot its timeout slightly; an answer after the deadline does not count
        if reply is not None and rtt_ms > deadline * 1000:
            return Timeout()
        return classify_reply(reply, rtt_ms)
