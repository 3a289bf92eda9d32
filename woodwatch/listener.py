"""
Packet capture of inbound ICMP echo requests.

Capture goes through scapy with a BPF filter so only echo requests (and,
for a specific listen address, only those sent to it) reach Python.
"""

import threading
from typing import Any

from scapy.all import conf, sniff
from scapy.layers.inet import ICMP, IP

from woodwatch.core import PacketSource
from woodwatch.logging_config import get_logger

logger = get_logger(__name__)

ICMP_ECHO_REQUEST = 8
ECHO_REQUEST_FILTER = "icmp[icmptype] == icmp-echo"
ANY_ADDRESS = "0.0.0.0"
POLL_INTERVAL = 0.5


class ListenerClosedError(OSError):
    """Raised by ``receive`` once the listener has been closed."""


def capture_filter(address: str) -> str:
    """BPF filter for echo requests sent to ``address`` (any address for 0.0.0.0)."""
    if address == ANY_ADDRESS:
        return ECHO_REQUEST_FILTER
    return f"{ECHO_REQUEST_FILTER} and dst host {address}"


def is_echo_request(packet: Any) -> bool:
    """Whether a captured packet is an IPv4 ICMP echo request."""
    return bool(
        packet.haslayer(IP)
        and packet.haslayer(ICMP)
        and packet[ICMP].type == ICMP_ECHO_REQUEST
    )


class IcmpListener(PacketSource):
    """
    Yields the source address of each ICMP echo request captured.

    Needs CAP_NET_RAW (or root) to open the capture socket. ``receive``
    sniffs for at most ``poll_interval`` seconds at a time, so ``close``
    from another thread ends a pending receive within one interval.
    """

    def __init__(
        self,
        address: str,
        iface: str | None = None,
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        """
        Open a capture socket for echo requests sent to ``address``.

        Args:
            address: Listen address, 0.0.0.0 for any
            iface: Interface to capture on, scapy's default when not given
            poll_interval: Longest single sniff in seconds

        Raises:
            PermissionError: If the process may not capture packets
            OSError: If the capture socket cannot be opened
        """
        self.address = address
        self.bpf = capture_filter(address)
        self.poll_interval = poll_interval
        self._closed = threading.Event()
        self._receive_lock = threading.Lock()
        self._sock_closed = False
        self._sock = conf.L2listen(iface=iface, filter=self.bpf)
        logger.debug("Capturing on %s with filter %r", iface or conf.iface, self.bpf)

    def receive(self) -> str:
        """Block until an echo request arrives and return its source address."""
        with self._receive_lock:
            try:
                while not self._closed.is_set():
                    packets = sniff(
                        opened_socket=self._sock,
                        lfilter=is_echo_request,
                        count=1,
                        timeout=self.poll_interval,
                    )
                    for packet in packets:
                        return str(packet[IP].src)
                raise ListenerClosedError("listener is closed")
            finally:
                if self._closed.is_set():
                    self._close_socket()

    def close(self) -> None:
        """Stop capturing and end any pending ``receive``."""
        self._closed.set()
        # A receive in progress closes the socket itself once its sniff returns.
        if self._receive_lock.acquire(blocking=False):
            try:
                self._close_socket()
            finally:
                self._receive_lock.release()

    def _close_socket(self) -> None:
        if self._sock_closed:
            return
        self._sock_closed = True
        self._sock.close()
        logger.debug("Closed ICMP capture for %s", self.address)
