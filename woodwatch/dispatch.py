"""
Fire-and-forget event delivery.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING

from woodwatch.core import Event, Notifier
from woodwatch.logging_config import get_logger

if TYPE_CHECKING:
    from woodwatch.peer import Peer

logger = get_logger(__name__)


class EventDispatcher:
    """
    Logs every event and hands webhook delivery to a small worker pool.

    ``notify`` never waits for delivery: the monitor's check loop must not
    be slowed down by a slow or unreachable webhook. Delivery outcomes are
    only visible in the log.
    """

    def __init__(self, notifier: Notifier, max_workers: int = 4) -> None:
        """
        Initialize the dispatcher.

        Args:
            notifier: Notifier used to deliver events to webhook targets
            max_workers: Maximum number of concurrent deliveries
        """
        self.notifier = notifier
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="woodwatch-notify",
        )
        self._lock = threading.Lock()
        self._closed = False

    def notify(self, peer: "Peer", event: Event) -> None:
        """Log ``event`` and, if the peer has a webhook, deliver it in the background."""
        logger.info("%s", event.title)

        if not peer.webhook:
            return

        with self._lock:
            if self._closed:
                logger.debug("Dispatcher closed, dropping event '%s'", event.title)
                return
            self._executor.submit(self._deliver, peer.webhook, event)

    def _deliver(self, target: str, event: Event) -> None:
        try:
            if not self.notifier.notify(event, target):
                logger.warning(
                    "Notifier %s did not deliver '%s' to %s",
                    self.notifier.__class__.__name__,
                    event.title,
                    target
                )
        except Exception:
            logger.error(
                "Error delivering '%s' via %s",
                event.title,
                self.notifier.__class__.__name__,
                exc_info=True
            )

    def close(self, wait: bool = False) -> None:
        """
        Stop accepting events.

        Args:
            wait: Block until deliveries already handed off have finished
        """
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait)
