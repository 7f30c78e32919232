# tests/test_transport.py
from scapy.layers.inet import IP, ICMP
from scapy.layers.inet6 import IPv6, ICMPv6EchoReply, ICMPv6TimeExceeded

from hopwatch.data_models import Reply, Timeout, TtlExceeded
from hopwatch.transport import _new_probe_packet, classify_reply


def test_echo_reply():
    pkt = IP(src="203.0.113.10", dst="192.168.1.20") / ICMP(type=0)
    assert classify_reply(pkt, 12.5) == Reply(12.5)


def test_time_exceeded_reports_router():
    pkt = IP(src="192.168.1.1", dst="192.168.1.20") / ICMP(type=11, code=0)
    assert classify_reply(pkt, 1.5) == TtlExceeded("192.168.1.1", 1.5)


def test_unreachable_and_silence_are_timeouts():
    pkt = IP(src="192.168.1.1") / ICMP(type=3, code=1)
    assert classify_reply(pkt, 3.0) == Timeout()
    assert classify_reply(None, 0.0) == Timeout()


def test_ipv6_replies():
    assert classify_reply(IPv6(src="2001:db8::1") / ICMPv6EchoReply(), 4.0) == Reply(4.0)
    assert classify_reply(IPv6(src="2001:db8::fe") / ICMPv6TimeExceeded(), 2.0) == TtlExceeded("2001:db8::fe", 2.0)


def test_probe_packet_carries_ttl():
    assert _new_probe_packet("203.0.113.10", 2)[IP].ttl == 2
    assert _new_probe_packet("2001:db8::1", 3)[IPv6].hlim == 3
