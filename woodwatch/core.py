"""
Core interfaces and data structures for Woodwatch.

This module defines the values and seams shared by the monitor and its
collaborators:
- Event: an immutable description of a peer state change
- Notifier: how events are delivered to a webhook target
- PacketSource: where inbound ICMP echo requests come from
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any

LAST_SEEN_FORMAT = "%Y-%m-%d %I:%M:%S %p %z"


@dataclass(frozen=True)
class Event:
    """A peer state change, snapshotted at the moment of a check."""
    title: str
    text: str
    timestamp: datetime
    last_seen: datetime | None  # None if the peer has never been seen
    new_state: str
    prev_state: str

    @classmethod
    def for_transition(
        cls,
        peer_name: str,
        prev_state: str,
        new_state: str,
        last_seen: datetime | None,
        timestamp: datetime,
    ) -> "Event":
        """Build the event describing ``peer_name`` moving between two states."""
        pretty_last_seen = last_seen.strftime(LAST_SEEN_FORMAT) if last_seen else "never"
        return cls(
            title=f"Peer {peer_name} is {new_state}",
            text=(
                f"{peer_name} (last seen {pretty_last_seen}) "
                f"was previously {prev_state} and is now {new_state}"
            ),
            timestamp=timestamp,
            last_seen=last_seen,
            new_state=new_state,
            prev_state=prev_state,
        )

    def validate(self) -> None:
        """
        Check that the event can be delivered.

        Raises:
            ValueError: If the title, new state or previous state is empty
        """
        if not self.title:
            raise ValueError("Event title must not be empty")
        if not self.new_state:
            raise ValueError("Event new_state must not be empty")
        if not self.prev_state:
            raise ValueError("Event prev_state must not be empty")

    def to_payload(self) -> dict[str, Any]:
        """Serialize the event as the JSON body posted to webhooks."""
        return {
            "title": self.title,
            "text": self.text,
            "timestamp": self.timestamp.isoformat(),
            "lastSeen": self.last_seen.isoformat() if self.last_seen else None,
            "newState": self.new_state,
            "prevState": self.prev_state,
        }


class Notifier(ABC):
    """
    Base class for all notifiers.

    Notifiers deliver events to an external webhook target.
    """

    def __init__(self, config: dict[str, Any]):
        """
        Initialize the notifier with configuration.

        Args:
            config: Type-specific configuration dictionary
        """
        self.config = config

    @abstractmethod
    def notify(self, event: Event, target: str) -> bool:
        """
        Deliver an event.

        Args:
            event: The event to deliver
            target: Destination URL

        Returns:
            True if the event was delivered, False otherwise
        """
        raise NotImplementedError


class PacketSource(ABC):
    """
    Base class for sources of inbound ICMP echo requests.

    ``receive`` blocks until the next packet arrives and ``close`` may be
    called from another thread to make a pending ``receive`` fail.
    """

    @abstractmethod
    def receive(self) -> str:
        """
        Wait for the next packet.

        Returns:
            The packet's source address

        Raises:
            OSError: If the source is closed or fails
        """
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Close the source, unblocking any pending ``receive``."""
        raise NotImplementedError
