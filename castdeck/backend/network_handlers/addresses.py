"""Host address discovery for services the receiver must reach back to."""

from __future__ import annotations

import ipaddress
import socket
from typing import Iterable, Optional

import psutil

from castdeck.backend.common.logging import get_logger

log = get_logger(__name__)

_FALLBACK_IP = "127.0.0.1"
_PROBE_TARGET = ("192.0.2.1", 9)  # TEST-NET-1, never routed; connect() sends nothing for UDP


def _candidate_addresses() -> Iterable[str]:
    stats = psutil.net_if_stats()
    for name, addrs in psutil.net_if_addrs().items():
        stat = stats.get(name)
        if stat is not None and not stat.isup:
            continue
        for addr in addrs:
            if addr.family == socket.AF_INET:
                yield addr.address


def _is_usable(address: str) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return not (ip.is_loopback or ip.is_link_local or ip.is_unspecified)


def _probe_route() -> Optional[str]:
    sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    try:
        sock.connect(_PROBE_TARGET)
        return sock.getsockname()[0]
    except OSError:
        return None
    finally:
        sock.close()


def detect_outbound_ip() -> str:
    """Return the IPv4 address other LAN devices should use to reach this host.

    Private addresses are preferred over public ones; when no interface
    qualifies the kernel's route choice is asked, then loopback is returned.
    """

    usable = [a for a in _candidate_addresses() if _is_usable(a)]
    private = [a for a in usable if ipaddress.ip_address(a).is_private]
    if private:
        return private[0]
    if usable:
        return usable[0]

    probed = _probe_route()
    if probed and _is_usable(probed):
        return probed

    log.warning("outbound_ip_not_found", extra={"fallback": _FALLBACK_IP})
    return _FALLBACK_IP


__all__ = ["detect_outbound_ip"]
