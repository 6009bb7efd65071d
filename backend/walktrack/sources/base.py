from enum import Enum
from typing import AsyncIterator, Protocol

from walktrack.core.geo import distance_between
from walktrack.schemas.walk import Coordinate


class Accuracy(str, Enum):
    low = "low"
    balanced = "balanced"
    high = "high"
    best = "best"


class PositionSource(Protocol):
    """Device location service as seen by the tracking engine.

    `current_position` is a one-shot fix. `subscribe` returns a stream of
    samples that ends when the consuming task is cancelled. Both raise
    PermissionDenied or Unavailable.
    """

    async def current_position(self) -> Coordinate: ...

    def subscribe(self, min_distance_m: float, accuracy: Accuracy) -> AsyncIterator[Coordinate]: ...


class MovementFilter:
    """Drops samples closer than `min_distance_m` to the last one passed."""

    def __init__(self, min_distance_m: float):
        self.min_distance_m = min_distance_m
        self._last = None

    def accept(self, coord: Coordinate) -> bool:
        if self._last is not None and distance_between(self._last, coord) < self.min_distance_m:
            return False
        self._last = coord
        return True
