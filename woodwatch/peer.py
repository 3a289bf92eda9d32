"""
Peers and the peer registry.

A peer is a monitored endpoint identified by a network range. Packets are
routed to peers by source address; ranges are tried in the order the peers
were configured and the first range containing the address wins, so
overlapping ranges are allowed and resolved by declaration order.
"""

import ipaddress
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta

from woodwatch.config import Config
from woodwatch.logging_config import get_logger
from woodwatch.states import PeerState, initial_state

logger = get_logger(__name__)

Network = ipaddress.IPv4Network | ipaddress.IPv6Network


class TooFewPeersError(ValueError):
    """Raised when no peers are configured."""

    def __init__(self) -> None:
        super().__init__("One or more peers must be configured")


class InvalidAddressRangeError(ValueError):
    """Raised when a peer's network is not a valid CIDR range."""

    def __init__(self, peer_name: str, network: str, reason: str = "") -> None:
        self.peer_name = peer_name
        self.network = network
        message = f"Peer '{peer_name}' has an invalid network {network!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ReadWriteLock:
    """
    Lock allowing many concurrent readers or a single writer.

    Waiting writers block new readers so a steady stream of checks cannot
    starve packet updates.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        """Hold shared access for the duration of the block."""
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if not self._readers:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        """Hold exclusive access for the duration of the block."""
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class Peer:
    """
    A monitored peer.

    ``name``, ``network``, the thresholds and ``webhook`` are fixed at
    construction. ``last_seen`` is written by the packet ingestion loop and
    read by the check loop, always under ``last_seen_lock``. ``state`` is
    only touched by the check loop.
    """

    def __init__(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        name: str,
        network: str,
        up_threshold: int,
        down_threshold: int,
        webhook: str | None = None,
    ) -> None:
        """
        Initialize a peer in the Down state.

        Args:
            name: Display name, e.g. "Comcast" or "Cogeco :fire:"
            network: CIDR range echo requests are expected from
            up_threshold: Seen cycles needed to confirm the peer up
            down_threshold: Missed cycles needed to confirm the peer down
            webhook: Optional URL events for this peer are posted to

        Raises:
            InvalidAddressRangeError: If ``network`` is not a CIDR range
        """
        self.name = name
        self.network = parse_network(name, network)
        self.up_threshold = up_threshold
        self.down_threshold = down_threshold
        self.webhook = webhook or None
        self.last_seen_lock = ReadWriteLock()
        self._last_seen: datetime | None = None
        self.state: PeerState = initial_state(up_threshold, down_threshold)

    def __str__(self) -> str:
        return f"Peer {self.name} - Network {self.network} - State {self.state}"

    def __repr__(self) -> str:
        return f"Peer(name={self.name!r}, network='{self.network}')"

    def contains(self, address: ipaddress.IPv4Address | ipaddress.IPv6Address) -> bool:
        """Whether ``address`` falls in this peer's network."""
        return address in self.network

    def mark_seen(self, when: datetime) -> None:
        """Record that a packet from this peer arrived at ``when``."""
        with self.last_seen_lock.write():
            self._last_seen = when

    @property
    def last_seen(self) -> datetime | None:
        """When the last packet from this peer arrived, None if never."""
        with self.last_seen_lock.read():
            return self._last_seen

    def seen_within(self, now: datetime, timeout: timedelta) -> tuple[bool, datetime | None]:
        """
        Check whether a packet arrived less than ``timeout`` before ``now``.

        Returns:
            The observation and the last seen time it was based on
        """
        with self.last_seen_lock.read():
            last_seen = self._last_seen
            seen = last_seen is not None and now - last_seen < timeout
        return seen, last_seen


def parse_network(peer_name: str, network: str) -> Network:
    """
    Parse a CIDR range such as "192.168.1.0/24".

    Host bits may be set ("10.0.0.5/24" means 10.0.0.0/24) but the prefix
    length is required.

    Raises:
        InvalidAddressRangeError: If the range cannot be parsed
    """
    if "/" not in network:
        raise InvalidAddressRangeError(peer_name, network, "missing prefix length")
    try:
        return ipaddress.ip_network(network.strip(), strict=False)
    except ValueError as e:
        raise InvalidAddressRangeError(peer_name, network, str(e)) from e


class PeerRegistry:
    """Fixed, ordered collection of peers built once at startup."""

    def __init__(self, peers: list[Peer]) -> None:
        if not peers:
            raise TooFewPeersError()
        self._peers: tuple[Peer, ...] = tuple(peers)

    def __iter__(self) -> Iterator[Peer]:
        return iter(self._peers)

    def __len__(self) -> int:
        return len(self._peers)

    def __getitem__(self, index: int) -> Peer:
        return self._peers[index]

    def find_peer_for(self, address: str) -> Peer | None:
        """
        Find the peer a packet from ``address`` belongs to.

        Peers are tried in configuration order and the first whose network
        contains the address is returned.

        Returns:
            The matching peer, or None if no peer matches or the address
            cannot be parsed
        """
        try:
            parsed = ipaddress.ip_address(address)
        except ValueError:
            logger.debug("Ignoring unparsable address %r", address)
            return None

        for peer in self._peers:
            if peer.contains(parsed):
                return peer
        return None

    def get(self, name: str) -> Peer | None:
        """Look a peer up by name."""
        return next((p for p in self._peers if p.name == name), None)


def load_peers(config: Config) -> PeerRegistry:
    """
    Build the peer registry from configuration.

    Per-peer thresholds and webhook override the global values when they
    are non-zero/non-empty. Construction is all-or-nothing: one invalid
    peer aborts the whole registry.

    Raises:
        TooFewPeersError: If no peers are configured
        InvalidAddressRangeError: If any peer's network is invalid
    """
    if not config.peers:
        raise TooFewPeersError()

    peers = []
    for peer_config in config.peers:
        peers.append(
            Peer(
                name=peer_config.name,
                network=peer_config.network,
                up_threshold=peer_config.up_threshold or config.up_threshold,
                down_threshold=peer_config.down_threshold or config.down_threshold,
                webhook=peer_config.webhook or config.webhook or None,
            )
        )

    return PeerRegistry(peers)
