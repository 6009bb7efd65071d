import logging

from walktrack.core.config import Settings
from walktrack.engine import TrackingEngine
from walktrack.export import DirectorySink, TrackExporter
from walktrack.storage.profile import ProfileStore
from walktrack.storage.sessions import SessionStore

logger = logging.getLogger(__name__)


class WalkTracker:
    """Everything the presentation layer talks to, wired together.

    Stores and engine are built from explicitly passed collaborators so
    each piece can be swapped in tests.
    """

    def __init__(self, settings: Settings, kv, position_source, sink=None, exporter=None):
        self.settings = settings
        self.source = position_source
        self.profile = ProfileStore(kv, default_weight_kg=settings.default_weight_kg)
        self.history = SessionStore(kv)
        self.engine = TrackingEngine(
            position_source,
            self.history,
            weight_kg=settings.default_weight_kg,
            min_session_distance_m=settings.min_session_distance_m,
            distance_filter_m=settings.distance_filter_m,
            tick_interval_s=settings.tick_interval_s,
        )
        if exporter is None:
            exporter = TrackExporter(sink or DirectorySink(settings.documents_dir))
        self.exporter = exporter

    def load(self) -> None:
        """Load weight and history; never fails on bad stored data."""
        weight = self.profile.load()
        self.engine.set_weight(weight)
        self.history.load()
        logger.info("Tracker ready: weight %.1f kg, %d walk(s) in history", weight, len(self.history))

    def update_weight(self, weight) -> float:
        accepted = self.profile.update(weight)
        self.engine.set_weight(accepted)
        return accepted

    def export_current(self) -> tuple[str, int]:
        """Export the engine path; returns the destination and its point count."""
        path = self.engine.current_metrics().path
        return self.exporter.export(path), len(path)

    def export_session(self, index: int) -> str:
        return self.exporter.export(self.history.get(index).path)
