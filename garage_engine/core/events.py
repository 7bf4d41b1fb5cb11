"""Flavor race events for the garage race engine.

Events annotate a race result for display.  They are generated after the
winner has been decided and never feed back into it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Hashable

from numpy.random import Generator


class EventKind(str, Enum):
    OVERTAKE = "overtake"
    BOOST = "boost"
    DRIFT = "drift"
    SHORTCUT = "shortcut"
    ERROR = "error"


EVENT_TEMPLATES: dict[EventKind, tuple[str, ...]] = {
    EventKind.OVERTAKE: (
        "{driver} executes a perfect overtake!",
        "{driver} finds an opening and passes!",
        "{driver} makes a bold move to take the lead!",
    ),
    EventKind.BOOST: (
        "{driver} hits the nitrous for a speed boost!",
        "{driver} activates boost at the perfect moment!",
        "{driver} accelerates with a sudden burst of speed!",
    ),
    EventKind.DRIFT: (
        "{driver} pulls off an impressive drift through the corner!",
        "{driver} slides through the turn with precision!",
        "Perfect drift by {driver}!",
    ),
    EventKind.SHORTCUT: (
        "{driver} takes a risky shortcut!",
        "{driver} finds a hidden path to gain time!",
        "{driver} cuts through an alley to make up ground!",
    ),
    EventKind.ERROR: (
        "{driver} nearly loses control on a tight corner!",
        "{driver} narrowly avoids hitting the barrier!",
        "{driver} makes a small driving error but recovers!",
    ),
}

EVENT_WINDOW: tuple[int, int] = (5, 55)  # seconds, inclusive


@dataclass(frozen=True)
class RaceEvent:
    """One highlight in the race log.

    Attributes:
        timestamp: Whole seconds into the race.
        kind: Event category.
        driver: Identity of the participant the event is attributed to.
        description: Rendered text.
    """

    timestamp: int
    kind: EventKind
    driver: Hashable
    description: str

    def to_dict(self) -> dict[str, object]:
        return {
            "timestamp": self.timestamp,
            "type": self.kind.value,
            "driver": str(self.driver),
            "description": self.description,
        }


def describe_event(kind: EventKind, driver_label: str, rng: Generator) -> str:
    """Render a random template for *kind* with *driver_label* substituted."""
    templates = EVENT_TEMPLATES[kind]
    template = templates[int(rng.integers(len(templates)))]
    return template.format(driver=driver_label)


def generate_events(
    challenger: Hashable,
    opponent: Hashable,
    count_range: tuple[int, int],
    rng: Generator,
    window: tuple[int, int] = EVENT_WINDOW,
) -> tuple[RaceEvent, ...]:
    """Generate a timestamp-sorted tuple of flavor events.

    Args:
        challenger: Identity of the challenger.
        opponent: Identity of the opponent.
        count_range: Inclusive ``(min, max)`` number of events.
        rng: Source of randomness.
        window: Inclusive ``(first, last)`` second an event may occur at.

    Returns:
        Events sorted by timestamp.  Events sharing a timestamp keep their
        generation order.

    Raises:
        ValueError: If a range is empty or negative.
    """
    lo, hi = count_range
    if lo < 0 or hi < lo:
        raise ValueError("count_range must satisfy 0 <= min <= max.")
    first, last = window
    if first < 0 or last < first:
        raise ValueError("window must satisfy 0 <= first <= last.")

    kinds: list[EventKind] = list(EventKind)
    n_events = int(rng.integers(lo, hi + 1))
    events: list[RaceEvent] = []
    for _ in range(n_events):
        kind = kinds[int(rng.integers(len(kinds)))]
        timestamp = int(rng.integers(first, last + 1))
        driver = challenger if rng.random() < 0.5 else opponent
        events.append(
            RaceEvent(
                timestamp=timestamp,
                kind=kind,
                driver=driver,
                description=describe_event(kind, str(driver), rng),
            )
        )

    events.sort(key=lambda e: e.timestamp)
    return tuple(events)
