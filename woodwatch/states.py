"""
Peer state machine.

A peer is always in exactly one of four states. Up and Down are the
baseline states; MaybeUp and MaybeDown are transitional states that count
consecutive corroborating observations towards a threshold before
confirming the move to the other baseline state.

Only the confirming transition is notable. Entering a transitional state,
counting within it, and falling back to the baseline state it came from
are all silent, so a flapping link does not produce a notification per
monitor cycle.
"""

from dataclasses import dataclass, replace
from typing import TypeAlias

UP = "Up"
DOWN = "Down"
MAYBE = "Maybe"


@dataclass(frozen=True)
class Thresholds:
    """Consecutive observations needed to confirm a peer up or down."""
    up: int
    down: int


@dataclass(frozen=True)
class Up:
    """The peer has been seen reliably."""
    thresholds: Thresholds

    def heartbeat(self, seen: bool) -> tuple["PeerState", bool]:
        return heartbeat(self, seen)

    def __str__(self) -> str:
        return UP


@dataclass(frozen=True)
class Down:
    """The peer has not been seen reliably. Every peer starts here."""
    thresholds: Thresholds

    def heartbeat(self, seen: bool) -> tuple["PeerState", bool]:
        return heartbeat(self, seen)

    def __str__(self) -> str:
        return DOWN


@dataclass(frozen=True)
class MaybeUp:
    """Counting seen observations towards Up; resets to Down when not seen."""
    count: int
    thresholds: Thresholds

    @property
    def threshold(self) -> int:
        return self.thresholds.up

    def heartbeat(self, seen: bool) -> tuple["PeerState", bool]:
        return heartbeat(self, seen)

    def __str__(self) -> str:
        return f"{MAYBE} {UP} ({self.count} of {self.threshold})"


@dataclass(frozen=True)
class MaybeDown:
    """Counting missed observations towards Down; resets to Up when seen."""
    count: int
    thresholds: Thresholds

    @property
    def threshold(self) -> int:
        return self.thresholds.down

    def heartbeat(self, seen: bool) -> tuple["PeerState", bool]:
        return heartbeat(self, seen)

    def __str__(self) -> str:
        return f"{MAYBE} {DOWN} ({self.count} of {self.threshold})"


PeerState: TypeAlias = Up | Down | MaybeUp | MaybeDown


def initial_state(up_threshold: int, down_threshold: int) -> PeerState:
    """Return the state of a newly configured peer: Down."""
    return Down(Thresholds(up=up_threshold, down=down_threshold))


def heartbeat(state: PeerState, seen: bool) -> tuple[PeerState, bool]:
    """
    Feed one observation to a state.

    Args:
        state: The current state
        seen: Whether the peer was seen within its timeout this cycle

    Returns:
        The next state and whether the transition is notable
    """
    match state:
        case Up(thresholds=limits):
            if seen:
                return state, False
            return MaybeDown(count=1, thresholds=limits), False

        case Down(thresholds=limits):
            if not seen:
                return state, False
            return MaybeUp(count=1, thresholds=limits), False

        case MaybeUp(count=count, thresholds=limits):
            if not seen:
                return Down(limits), False
            if count + 1 >= limits.up:
                return Up(limits), True
            return replace(state, count=count + 1), False

        case MaybeDown(count=count, thresholds=limits):
            if seen:
                return Up(limits), False
            if count + 1 >= limits.down:
                return Down(limits), True
            return replace(state, count=count + 1), False

    raise TypeError(f"Unknown peer state: {state!r}")
