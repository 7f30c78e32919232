# FILE: hopwatch/targets.py
# PURPOSE: Resolves configured hosts into monitored targets.
# ==============================================================================
import ipaddress
import logging
import socket
from typing import List, Optional, Tuple

from .data_models import Target
from .errors import NoTargetsError, ResolutionError

log = logging.getLogger(__name__)

_FAMILIES = {4: socket.AF_INET, 6: socket.AF_INET6}


def resolve_host(host: str, ip_version: Optional[int] = None) -> str:
    """Returns the first address for host, optionally restricted to IPv4 or IPv6."""
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        pass
    family = _FAMILIES.get(ip_version, socket.AF_UNSPEC)
    try:
        infos = socket.getaddrinfo(host, None, family, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(host, str(e)) from e
    for _, _, _, _, sockaddr in infos:
        addr = sockaddr[0]
        if ip_version is None or ipaddress.ip_address(addr).version == ip_version:
            return addr
    raise ResolutionError(host, f"no IPv{ip_version} address")


def resolve_targets(hosts: List[str], max_hops: int,
                    ip_version: Optional[int] = None) -> Tuple[List[Target], List[ResolutionError]]:
    """
    Resolves every host. Hosts that fail are reported and left out; the others
    are monitored regardless. Raises NoTargetsError when nothing resolves.
    """
    targets, failures = [], []
    for host in hosts:
        try:
            address = resolve_host(host, ip_version)
        except ResolutionError as e:
            log.warning("%s, target excluded", e)
            failures.append(e)
            continue
        targets.append(Target.with_slots(host, address, max_hops))
    if not targets:
        raise NoTargetsError("None of the configured targets could be resolved: " + ", ".join(hosts))
    return targets, failures
