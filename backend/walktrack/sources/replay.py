import asyncio
import logging

import gpxpy
import gpxpy.gpx

from walktrack.errors import Unavailable
from walktrack.schemas.walk import Coordinate
from walktrack.sources.base import Accuracy, MovementFilter

logger = logging.getLogger(__name__)


def read_gpx_points(path: str) -> list[Coordinate]:
    """All track points of a GPX file, in file order."""
    with open(path, "r", encoding="utf-8") as f:
        gpx = gpxpy.parse(f)

    points = []
    for track in gpx.tracks:
        for seg in track.segments:
            for p in seg.points:
                points.append(Coordinate(latitude=p.latitude, longitude=p.longitude))
    return points


class GpxReplaySource:
    """Replays a recorded GPX track as if it were a live device.

    Useful for demos and for re-walking an exported session. One sample is
    emitted every `interval_s` seconds.
    """

    def __init__(self, path: str, interval_s: float = 1.0):
        self.path = path
        self.interval_s = interval_s
        self._points = None

    def _load(self) -> list[Coordinate]:
        if self._points is None:
            try:
                self._points = read_gpx_points(self.path)
            except (OSError, gpxpy.gpx.GPXException) as e:
                raise Unavailable(f"Cannot replay {self.path}: {e}") from e
            logger.info("Loaded %d replay point(s) from %s", len(self._points), self.path)
        return self._points

    async def current_position(self) -> Coordinate:
        points = self._load()
        if not points:
            raise Unavailable(f"No track points in {self.path}")
        return points[0]

    async def subscribe(self, min_distance_m: float = 0.0, accuracy: Accuracy = Accuracy.best):
        movement = MovementFilter(min_distance_m)
        for coord in self._load():
            if not movement.accept(coord):
                continue
            yield coord
            await asyncio.sleep(self.interval_s)
