"""Walk tracking engine.

Turns a stream of position samples plus a once-per-second tick into a
running walk (distance, energy, elapsed time, path) and hands completed
walks to the session store.

Two producers feed the engine while tracking, both asyncio tasks on the
running loop:

  - the ticker, which sleeps `tick_interval_s` and calls `on_tick`
  - the position consumer, which iterates `position_source.subscribe()`
    and calls `on_position_sample`

Every `start()` bumps an epoch counter and each producer tags its
deliveries with the epoch it was started under. A delivery whose epoch
is no longer current, or that arrives while idle, is dropped; this is
what keeps a sample already in flight during `stop()` from touching the
next walk.
"""
import asyncio
import logging
import threading
from contextlib import aclosing
from typing import Callable, Optional

from walktrack.core.calories import energy_kcal
from walktrack.core.geo import distance_between
from walktrack.errors import PersistenceError, PositionError, Unavailable
from walktrack.schemas.walk import Coordinate, MetricsSnapshot, TrackingPhase, WalkSession
from walktrack.sources.base import Accuracy

logger = logging.getLogger(__name__)

Listener = Callable[[MetricsSnapshot], None]


class TrackingEngine:
    def __init__(
        self,
        position_source,
        sessions,
        weight_kg: float = 70.0,
        *,
        min_session_distance_m: float = 10.0,
        distance_filter_m: float = 3.0,
        tick_interval_s: float = 1.0,
    ):
        self._source = position_source
        self._sessions = sessions
        self.min_session_distance_m = min_session_distance_m
        self.distance_filter_m = distance_filter_m
        self.tick_interval_s = tick_interval_s

        self._lock = threading.RLock()
        self._phase = TrackingPhase.idle
        self._epoch = 0
        self._distance_m = 0.0
        self._energy_kcal = 0.0
        self._duration_s = 0
        self._path: list[Coordinate] = []
        self._last: Optional[Coordinate] = None
        self._current: Optional[Coordinate] = None
        self._weight_kg = weight_kg

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._tick_task: Optional[asyncio.Task] = None
        self._position_task: Optional[asyncio.Task] = None
        self._listeners: list[Listener] = []

        self.last_error: Optional[PositionError] = None

    # --------- State --------- #

    @property
    def phase(self) -> TrackingPhase:
        return self._phase

    @property
    def tracking(self) -> bool:
        return self._phase is TrackingPhase.tracking

    @property
    def epoch(self) -> int:
        return self._epoch

    @property
    def weight_kg(self) -> float:
        return self._weight_kg

    def current_metrics(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                phase=self._phase,
                distance_m=self._distance_m,
                energy_kcal=self._energy_kcal,
                duration_s=self._duration_s,
                weight_kg=self._weight_kg,
                path=tuple(self._path),
                last_coordinate=self._last,
                current_position=self._current,
            )

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        """Call `listener` with a fresh snapshot after every applied update.

        Returns a function that removes the listener.
        """
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def _notify(self) -> None:
        with self._lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        snap = self.current_metrics()
        for listener in listeners:
            try:
                listener(snap)
            except Exception:
                logger.exception("Metrics listener %r failed", listener)

    # --------- Lifecycle --------- #

    def start(self) -> bool:
        """Begin a new walk. Returns False if one is already running.

        Must be called with an event loop running; both producers are
        scheduled on it.
        """
        with self._lock:
            if self._phase is TrackingPhase.tracking:
                return False
            # Raises RuntimeError before any state changes when no loop runs
            loop = asyncio.get_running_loop()
            self._epoch += 1
            epoch = self._epoch
            self._distance_m = 0.0
            self._energy_kcal = 0.0
            self._duration_s = 0
            self._path = []
            self._last = None
            self.last_error = None
            self._phase = TrackingPhase.tracking

            self._loop = loop
            self._tick_task = loop.create_task(self._run_ticker(epoch))
            self._position_task = loop.create_task(self._consume_positions(epoch))

        logger.info("Walk started (epoch %d, weight %.1f kg)", epoch, self._weight_kg)
        self._notify()
        return True

    def stop(self) -> Optional[WalkSession]:
        """End the current walk and record it if long enough.

        Returns the recorded session, or None if idle or the walk was at or
        under the minimum distance. Metrics stay readable until the next
        `start()`. If the history write fails the session is still kept in
        memory and PersistenceError is raised with `.session` set.
        """
        with self._lock:
            if self._phase is not TrackingPhase.tracking:
                return None
            self._cancel_producers()
            self._phase = TrackingPhase.idle

            session = None
            if self._distance_m > self.min_session_distance_m:
                session = WalkSession(
                    distance_m=self._distance_m,
                    energy_kcal=self._energy_kcal,
                    duration_s=self._duration_s,
                    path=tuple(self._path),
                )
            distance, seconds = self._distance_m, self._duration_s

        try:
            if session is not None:
                try:
                    self._sessions.append(session)
                except PersistenceError as e:
                    logger.warning("Walk kept in memory but not saved: %s", e)
                    raise PersistenceError(str(e), session=session) from e
                logger.info("Walk recorded: %.1f m in %d s", distance, seconds)
            else:
                logger.info(
                    "Walk discarded: %.1f m does not exceed the %.1f m minimum",
                    distance,
                    self.min_session_distance_m,
                )
        finally:
            self._notify()
        return session

    def _cancel_producers(self) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        current = asyncio.current_task() if running is not None else None
        loop = self._loop
        for task in (self._tick_task, self._position_task):
            # The consumer may be the one stopping us (source failure);
            # it exits on its own once it sees the walk has ended.
            if task is None or task is current or task.done():
                continue
            if running is loop:
                task.cancel()
            elif loop is not None and not loop.is_closed():
                # Task.cancel is not thread-safe; hand it to the owning loop
                loop.call_soon_threadsafe(task.cancel)
        self._tick_task = None
        self._position_task = None

    def _is_current(self, epoch: Optional[int]) -> bool:
        if self._phase is not TrackingPhase.tracking:
            return False
        return epoch is None or epoch == self._epoch

    # --------- Callbacks --------- #

    def on_position_sample(self, coord: Coordinate, epoch: Optional[int] = None) -> bool:
        """Apply one position sample. Returns False if it was dropped."""
        with self._lock:
            if not self._is_current(epoch):
                logger.debug("Dropped stale sample %s (epoch %s)", coord, epoch)
                return False
            if self._last is not None:
                self._distance_m += distance_between(self._last, coord)
                self._energy_kcal = energy_kcal(self._distance_m, self._weight_kg)
            self._last = coord
            self._current = coord
            self._path.append(coord)
        self._notify()
        return True

    def on_tick(self, epoch: Optional[int] = None) -> bool:
        with self._lock:
            if not self._is_current(epoch):
                return False
            self._duration_s += 1
        self._notify()
        return True

    def set_weight(self, weight_kg: float) -> None:
        """Use `weight_kg` for energy from now on.

        Energy is re-derived from the cumulative distance right away, so the
        whole walk so far is priced at the new weight.
        """
        with self._lock:
            self._weight_kg = weight_kg
            self._energy_kcal = energy_kcal(self._distance_m, weight_kg)
        self._notify()

    async def locate(self) -> Coordinate:
        """One-shot position fix; PermissionDenied/Unavailable propagate."""
        coord = await self._source.current_position()
        with self._lock:
            self._current = coord
        self._notify()
        return coord

    # --------- Producers --------- #

    async def _run_ticker(self, epoch: int) -> None:
        while True:
            await asyncio.sleep(self.tick_interval_s)
            if not self.on_tick(epoch):
                return

    async def _consume_positions(self, epoch: int) -> None:
        try:
            stream = self._source.subscribe(self.distance_filter_m, Accuracy.best)
            async with aclosing(stream):
                async for coord in stream:
                    self.on_position_sample(coord, epoch)
                    if not self._is_current(epoch):
                        return
        except PositionError as e:
            self._source_failed(epoch, e)
        except Exception as e:
            error = Unavailable(f"Position source failed: {e}")
            error.__cause__ = e
            self._source_failed(epoch, error)

    def _source_failed(self, epoch: int, error: PositionError) -> None:
        if not self._is_current(epoch):
            return
        logger.warning("Position source failed, stopping walk: %s", error)
        self.last_error = error
        try:
            self.stop()
        except PersistenceError as save_error:
            # Nobody awaits this task; the walk is still in memory
            logger.error("Walk stopped by source failure could not be saved: %s", save_error)
