"""
Liveness monitor: packet ingestion and periodic peer checks.

Two activities share the peer registry. The ingestion loop blocks on the
packet source and stamps ``last_seen`` on the first peer whose network
contains each packet's source address. The check loop wakes once per
monitor cycle, turns every peer's ``last_seen`` into a seen/not-seen
observation, advances the peer's state and dispatches an event for
notable transitions (and, when verbose, for every visible state change).
"""

import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime

from woodwatch.config import Config
from woodwatch.core import Event, PacketSource
from woodwatch.dispatch import EventDispatcher
from woodwatch.listener import IcmpListener
from woodwatch.logging_config import get_logger
from woodwatch.peer import Peer, load_peers
from woodwatch.registry import create_notifier

logger = get_logger(__name__)


class MonitorError(Exception):
    """Base class for monitor lifecycle errors."""


class EmptyListenAddressError(MonitorError):
    """Raised when the monitor is given an empty listen address."""

    def __init__(self) -> None:
        super().__init__("Listen address must not be empty")


class AlreadyListeningError(MonitorError):
    """Raised when listen() is called more than once."""

    def __init__(self) -> None:
        super().__init__("listen() can only be called once")


class NotListeningError(MonitorError):
    """Raised when close() is called before listen()."""

    def __init__(self) -> None:
        super().__init__("close() must be called after listen()")


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def next_tick(deadline: float, cycle: float, now: float) -> float:
    """
    Monotonic time of the check after the one due at ``deadline``.

    Ticks stay on a fixed grid however long a check pass takes. When a pass
    overran one or more ticks, the missed ones are dropped and the next
    check runs at once.
    """
    following = deadline + cycle
    return following if following > now else now


class LivenessMonitor:  # pylint: disable=too-many-instance-attributes
    """Monitors peers by the ICMP echo requests they send."""

    def __init__(  # pylint: disable=too-many-arguments
        self,
        config: Config,
        listen_address: str = "0.0.0.0",
        verbose: bool = False,
        *,
        dispatcher: EventDispatcher | None = None,
        packet_source_factory: Callable[[str], PacketSource] = IcmpListener,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """
        Initialize the monitor. Nothing is received until listen() is called.

        Args:
            config: Validated configuration
            listen_address: Interface address to receive echo requests on
            verbose: Dispatch every state change, not just notable ones,
                and log packet routing
            dispatcher: Event dispatcher, built from ``config.notifier``
                when not given
            packet_source_factory: Opens the packet source for an address
            clock: Returns the current time

        Raises:
            EmptyListenAddressError: If ``listen_address`` is empty
            TooFewPeersError: If no peers are configured
            InvalidAddressRangeError: If a peer network is invalid
        """
        if not listen_address:
            raise EmptyListenAddressError()

        self.listen_address = listen_address
        self.verbose = verbose
        self.monitor_cycle = config.monitor_cycle_seconds
        self.peer_timeout = config.peer_timeout_delta
        self.peers = load_peers(config)
        self.dispatcher = dispatcher or EventDispatcher(
            create_notifier(config.notifier.type, config.notifier.config)
        )
        self._packet_source_factory = packet_source_factory
        self._clock = clock

        # Guards the lifecycle fields below.
        self._listen_lock = threading.Lock()
        self._listen_called = False
        self._torn_down = False
        self._source: PacketSource | None = None
        self._check_thread: threading.Thread | None = None
        self._shutdown = threading.Event()

        for peer in self.peers:
            logger.info("%s", peer)

    @property
    def listening(self) -> bool:
        """Whether listen() has opened the packet source and started checking."""
        with self._listen_lock:
            return self._source is not None

    @property
    def stopping(self) -> bool:
        """Whether shutdown has been requested."""
        return self._shutdown.is_set()

    def listen(self) -> None:
        """
        Start monitoring and receive packets until close() or stop() is called.

        Blocks the calling thread. Returns normally once monitoring has
        been stopped, including when stop() was called before listen().
        When the packet source fails, monitoring is shut down before the
        error propagates.

        Raises:
            AlreadyListeningError: If called more than once
            OSError: If the packet source cannot be opened or fails for
                any reason other than shutdown
        """
        with self._listen_lock:
            if self._listen_called:
                raise AlreadyListeningError()
            self._listen_called = True

            if self._shutdown.is_set():
                logger.info("Stopped before listening on %s", self.listen_address)
                self._torn_down = True
                self.dispatcher.close()
                return

            try:
                source = self._packet_source_factory(self.listen_address)
            except Exception:
                self._torn_down = True
                self.dispatcher.close()
                raise

            self._check_thread = threading.Thread(
                target=self._check_loop,
                name="woodwatch-check",
                daemon=True,
            )
            self._check_thread.start()
            self._source = source

        logger.info("Listening for ICMP echo requests on %s", self.listen_address)

        try:
            self._ingest(source)
        finally:
            self._teardown()

    def _ingest(self, source: PacketSource) -> None:
        while True:
            try:
                address = source.receive()
            except OSError:
                if self._shutdown.is_set():
                    return
                raise
            self.update_peer(address)

    def _check_loop(self) -> None:
        deadline = time.monotonic() + self.monitor_cycle
        while not self._shutdown.wait(max(0.0, deadline - time.monotonic())):
            self.check_peers()
            deadline = next_tick(deadline, self.monitor_cycle, time.monotonic())
        logger.info("Stopping monitoring")

    def update_peer(self, address: str) -> Peer | None:
        """
        Stamp the first peer whose network contains ``address`` as seen now.

        Returns:
            The updated peer, or None if no peer matched
        """
        peer = self.peers.find_peer_for(address)
        if peer is None:
            if self.verbose:
                logger.info("No configured peer matched %r", address)
            return None

        if self.verbose:
            logger.info("%s updated last seen for %s", address, peer.name)
        peer.mark_seen(self._clock())
        return peer

    def check_peers(self) -> None:
        """Check every peer once, in configuration order."""
        for peer in self.peers:
            self.check_peer(peer)

    def check_peer(self, peer: Peer) -> Event | None:
        """
        Advance one peer's state by one observation.

        Returns:
            The event that was dispatched, or None
        """
        now = self._clock()
        seen, last_seen = peer.seen_within(now, self.peer_timeout)

        old_state = str(peer.state)
        new_state, notable = peer.state.heartbeat(seen)
        new_state_name = str(new_state)

        event = None
        if notable or (self.verbose and old_state != new_state_name):
            event = Event.for_transition(
                peer_name=peer.name,
                prev_state=old_state,
                new_state=new_state_name,
                last_seen=last_seen,
                timestamp=now,
            )
            self.dispatcher.notify(peer, event)

        peer.state = new_state
        return event

    def close(self) -> None:
        """
        Stop monitoring and make listen() return.

        Raises:
            NotListeningError: If listen() has not opened the packet source
        """
        with self._listen_lock:
            if self._source is None:
                raise NotListeningError()
        self._teardown()

    def stop(self) -> None:
        """
        Stop monitoring whether or not listen() has started.

        A listen() that has not opened the packet source yet returns as
        soon as it is called.
        """
        with self._listen_lock:
            self._shutdown.set()
            if self._source is None:
                return
        self._teardown()

    def _teardown(self) -> None:
        with self._listen_lock:
            if self._torn_down:
                return
            self._torn_down = True
            self._shutdown.set()
            source = self._source
            check_thread = self._check_thread

        if source is not None:
            source.close()
        if check_thread is not None and check_thread is not threading.current_thread():
            check_thread.join(timeout=5)
        self.dispatcher.close()
