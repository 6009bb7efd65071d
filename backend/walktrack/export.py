import logging
import os
import time
from typing import Callable, Protocol

import gpxpy
import gpxpy.gpx

from walktrack.core.constants import EXPORT_PREFIX, EXPORT_SUFFIX
from walktrack.errors import EmptyPathError

logger = logging.getLogger(__name__)

# Collisions are resolved by bumping the timestamp; give up after this many
MAX_NAME_ATTEMPTS = 1000


def build_gpx(path) -> str:
    """Serialize a path as a GPX 1.1 document.

    One track with one segment; points keep their recorded order and carry
    only latitude/longitude.
    """
    gpx = gpxpy.gpx.GPX()
    gpx.creator = "walktrack"

    track = gpxpy.gpx.GPXTrack()
    gpx.tracks.append(track)
    seg = gpxpy.gpx.GPXTrackSegment()
    track.segments.append(seg)

    for p in path:
        seg.points.append(gpxpy.gpx.GPXTrackPoint(latitude=p.latitude, longitude=p.longitude))

    return gpx.to_xml(version="1.1")


class FileSink(Protocol):
    def write(self, name: str, text: str) -> str:
        """Create `name` with `text`; return its identifier.

        Raises FileExistsError if `name` is taken, OSError on other failures.
        """
        ...


class DirectorySink:
    """Writes exports into a directory (the app's documents folder)."""

    def __init__(self, directory: str):
        self.directory = directory

    def write(self, name: str, text: str) -> str:
        os.makedirs(self.directory, exist_ok=True)
        dest = os.path.join(self.directory, name)
        # 'x' never overwrites an earlier export
        with open(dest, "x", encoding="utf-8") as f:
            f.write(text)
        return dest


def epoch_millis() -> int:
    return time.time_ns() // 1_000_000


class TrackExporter:
    def __init__(self, sink: FileSink, clock: Callable[[], int] = epoch_millis):
        self.sink = sink
        self.clock = clock

    def export(self, path) -> str:
        """Write `path` as walk_<epoch-millis>.gpx and return the destination.

        Raises EmptyPathError (nothing written) for an empty path. Write
        failures other than a name collision propagate unchanged.
        """
        points = list(path)
        if not points:
            raise EmptyPathError("Nothing to export: no points recorded")

        text = build_gpx(points)
        first = stamp = self.clock()
        for _ in range(MAX_NAME_ATTEMPTS):
            name = f"{EXPORT_PREFIX}{stamp}{EXPORT_SUFFIX}"
            try:
                dest = self.sink.write(name, text)
            except FileExistsError:
                stamp += 1
                continue
            logger.info("Exported %d point(s) to %s", len(points), dest)
            return dest
        raise FileExistsError(f"No free export name near {EXPORT_PREFIX}{first}{EXPORT_SUFFIX}")
