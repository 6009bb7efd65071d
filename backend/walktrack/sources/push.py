import asyncio
import logging
from typing import Optional

from walktrack.errors import PermissionDenied, PositionError, Unavailable
from walktrack.schemas.walk import Coordinate
from walktrack.sources.base import Accuracy, MovementFilter

logger = logging.getLogger(__name__)


class PushPositionSource:
    """Position source fed by the host, one sample at a time.

    The HTTP adapter forwards device fixes here. `publish` returns once
    every active subscriber has finished handling the sample, so a caller
    reading metrics right after sees the update applied.
    """

    def __init__(self, permission_granted: bool = True):
        self.permission_granted = permission_granted
        self._latest: Optional[Coordinate] = None
        self._subscribers: dict[asyncio.Queue, MovementFilter] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _check_permission(self) -> None:
        if not self.permission_granted:
            raise PermissionDenied("Location permission denied")

    async def current_position(self) -> Coordinate:
        self._check_permission()
        if self._latest is None:
            raise Unavailable("No position fix yet")
        return self._latest

    async def subscribe(self, min_distance_m: float = 0.0, accuracy: Accuracy = Accuracy.best):
        self._check_permission()
        queue: asyncio.Queue = asyncio.Queue()
        self._subscribers[queue] = MovementFilter(min_distance_m)
        logger.debug("Subscriber added (min_distance=%.1f m, accuracy=%s)", min_distance_m, accuracy.value)
        try:
            while True:
                item = await queue.get()
                try:
                    if isinstance(item, PositionError):
                        raise item
                    yield item
                finally:
                    queue.task_done()
        finally:
            self._subscribers.pop(queue, None)
            # Release any publisher still waiting on this queue
            while not queue.empty():
                queue.get_nowait()
                queue.task_done()

    async def publish(self, coord: Coordinate) -> int:
        """Deliver `coord` to subscribers; returns how many accepted it."""
        self._check_permission()
        self._latest = coord
        targets = [q for q, movement in list(self._subscribers.items()) if movement.accept(coord)]
        for queue in targets:
            queue.put_nowait(coord)
        if targets:
            await asyncio.gather(*(queue.join() for queue in targets))
        return len(targets)

    async def fail(self, error: PositionError) -> None:
        """Deliver a source failure to every subscriber."""
        targets = list(self._subscribers)
        for queue in targets:
            queue.put_nowait(error)
        if targets:
            await asyncio.gather(*(queue.join() for queue in targets))
