import asyncio

import pytest

from walktrack.core.geo import distance_between, path_distance
from walktrack.db import create_tables, make_engine, make_session_factory
from walktrack.engine import TrackingEngine
from walktrack.errors import PermissionDenied, PersistenceError, Unavailable
from walktrack.schemas.walk import Coordinate, TrackingPhase
from walktrack.sources.push import PushPositionSource
from walktrack.sources.replay import GpxReplaySource
from walktrack.storage.kv import SqlKeyValueStore
from walktrack.storage.sessions import SessionStore


class ReadOnlyKV:
    """Reads succeed (nothing stored), writes fail."""

    def get_string(self, key):
        return None

    def set_string(self, key, value):
        raise PersistenceError("read-only storage")

    def get_double(self, key):
        return None

    def set_double(self, key, value):
        raise PersistenceError("read-only storage")


def build(weight=70.0, tick_interval_s=3600.0, kv=None):
    if kv is None:
        db = make_engine("sqlite+pysqlite:///:memory:")
        create_tables(db)
        kv = SqlKeyValueStore(make_session_factory(db))
    source = PushPositionSource()
    store = SessionStore(kv)
    store.load()
    engine = TrackingEngine(
        source,
        store,
        weight_kg=weight,
        distance_filter_m=0.0,
        tick_interval_s=tick_interval_s,
    )
    return engine, source, store


def east(i, step=0.0001):
    """Points along the equator; 0.0001 deg of longitude is ~11.1 m."""
    return Coordinate(latitude=0.0, longitude=i * step)


async def settle():
    # Let freshly created/cancelled producer tasks run their first step
    for _ in range(3):
        await asyncio.sleep(0)


def test_initial_state_is_idle():
    engine, _, _ = build()
    snap = engine.current_metrics()
    assert snap.phase is TrackingPhase.idle
    assert snap.distance_m == 0.0
    assert snap.duration_s == 0
    assert snap.path == ()
    assert snap.last_coordinate is None


def test_distance_is_sum_of_segments_regardless_of_ticks():
    async def scenario():
        engine, _, _ = build()
        engine.start()
        points = [east(0), east(1), Coordinate(latitude=0.0002, longitude=0.0001), east(3)]
        for i, p in enumerate(points):
            for _ in range(i % 3):
                engine.on_tick()
            engine.on_position_sample(p)
        return engine.current_metrics(), points

    snap, points = asyncio.run(scenario())
    assert snap.distance_m == pytest.approx(path_distance(points))
    assert snap.duration_s == 0 + 1 + 2 + 0
    assert snap.path == tuple(points)
    assert snap.last_coordinate == points[-1]


def test_first_sample_adds_no_distance():
    async def scenario():
        engine, _, _ = build()
        engine.start()
        engine.on_position_sample(east(5))
        return engine.current_metrics()

    snap = asyncio.run(scenario())
    assert snap.distance_m == 0.0
    assert snap.energy_kcal == 0.0
    assert len(snap.path) == 1


def test_energy_tracks_distance_and_weight():
    async def scenario():
        engine, _, _ = build(weight=80.0)
        engine.start()
        for i in range(5):
            engine.on_position_sample(east(i))
            snap = engine.current_metrics()
            assert snap.energy_kcal == pytest.approx(snap.distance_m / 1000 * 80.0 * 0.9)

        # New weight re-prices the whole walk so far
        engine.set_weight(100.0)
        snap = engine.current_metrics()
        assert snap.energy_kcal == pytest.approx(snap.distance_m / 1000 * 100.0 * 0.9)

        engine.on_position_sample(east(5))
        snap = engine.current_metrics()
        assert snap.energy_kcal == pytest.approx(snap.distance_m / 1000 * 100.0 * 0.9)

    asyncio.run(scenario())


def test_start_resets_state_and_is_idempotent():
    async def scenario():
        engine, _, _ = build()
        assert engine.start() is True
        engine.on_position_sample(east(0))
        engine.on_position_sample(east(2))
        engine.on_tick()
        assert engine.start() is False
        assert len(engine.current_metrics().path) == 2

        engine.stop()
        stopped = engine.current_metrics()
        assert stopped.phase is TrackingPhase.idle
        # Metrics stay readable after stop
        assert stopped.distance_m > 0
        assert stopped.duration_s == 1

        engine.start()
        snap = engine.current_metrics()
        engine.stop()
        return snap

    snap = asyncio.run(scenario())
    assert snap.phase is TrackingPhase.tracking
    assert snap.distance_m == 0.0
    assert snap.energy_kcal == 0.0
    assert snap.duration_s == 0
    assert snap.path == ()
    assert snap.last_coordinate is None


def test_short_walk_is_not_recorded():
    async def scenario():
        engine, _, store = build()
        engine.start()
        engine.on_position_sample(east(0))
        engine.on_position_sample(east(0.5))  # ~5.6 m
        return engine.stop(), store

    session, store = asyncio.run(scenario())
    assert session is None
    assert store.all() == ()


def test_single_sample_walk_is_not_recorded():
    async def scenario():
        engine, _, store = build()
        engine.start()
        engine.on_position_sample(east(0))
        return engine.stop(), store

    session, store = asyncio.run(scenario())
    assert session is None
    assert len(store) == 0


def test_long_enough_walk_is_recorded_once():
    async def scenario():
        engine, _, store = build()
        engine.start()
        for i in range(3):
            engine.on_position_sample(east(i))
        engine.on_tick()
        engine.on_tick()
        snap = engine.current_metrics()
        session = engine.stop()
        # Stopping again is a no-op
        assert engine.stop() is None
        return snap, session, store

    snap, session, store = asyncio.run(scenario())
    assert store.all() == (session,)
    assert session.distance_m == snap.distance_m
    assert session.energy_kcal == snap.energy_kcal
    assert session.duration_s == 2
    assert session.path == snap.path
    assert session.distance_m > 10.0


def test_stale_epoch_sample_is_ignored():
    async def scenario():
        engine, _, _ = build()
        engine.start()
        old_epoch = engine.epoch
        engine.on_position_sample(east(0), old_epoch)
        engine.stop()

        # Idle: nothing applies
        before = engine.current_metrics()
        assert engine.on_position_sample(east(9), old_epoch) is False
        assert engine.on_tick(old_epoch) is False
        assert engine.current_metrics() == before

        engine.start()
        assert engine.epoch == old_epoch + 1
        assert engine.on_position_sample(east(9), old_epoch) is False
        assert engine.on_tick(old_epoch) is False
        snap = engine.current_metrics()
        engine.stop()
        return snap

    snap = asyncio.run(scenario())
    assert snap.path == ()
    assert snap.duration_s == 0


def test_samples_from_source_are_applied_until_stop():
    async def scenario():
        engine, source, _ = build()
        engine.start()
        await settle()
        assert source.subscriber_count == 1

        await source.publish(east(0))
        await source.publish(east(1))
        await source.publish(east(2))
        assert len(engine.current_metrics().path) == 3

        engine.stop()
        # Published right after stop, before the consumer saw its cancellation
        await source.publish(east(3))
        await settle()
        await source.publish(east(4))
        return engine.current_metrics(), source

    snap, source = asyncio.run(scenario())
    assert snap.path == (east(0), east(1), east(2))
    assert snap.distance_m == pytest.approx(distance_between(east(0), east(2)))
    assert source.subscriber_count == 0


def test_ticker_advances_duration_while_tracking():
    async def scenario():
        engine, _, _ = build(tick_interval_s=0.01)
        engine.start()
        await asyncio.sleep(0.1)
        engine.stop()
        frozen = engine.current_metrics().duration_s
        await asyncio.sleep(0.05)
        return frozen, engine.current_metrics().duration_s

    frozen, later = asyncio.run(scenario())
    assert frozen >= 1
    assert later == frozen


def test_source_failure_stops_walk_and_records_it():
    async def scenario():
        engine, source, store = build()
        engine.start()
        await settle()
        for i in range(3):
            await source.publish(east(i))
        await source.fail(Unavailable("lost GPS fix"))
        await settle()
        return engine, store

    engine, store = asyncio.run(scenario())
    assert engine.phase is TrackingPhase.idle
    assert isinstance(engine.last_error, Unavailable)
    assert len(store) == 1


def test_permission_denied_stops_walk():
    async def scenario():
        engine, source, store = build()
        source.permission_granted = False
        engine.start()
        await settle()
        with pytest.raises(PermissionDenied):
            await engine.locate()
        return engine, store

    engine, store = asyncio.run(scenario())
    assert not engine.tracking
    assert isinstance(engine.last_error, PermissionDenied)
    assert len(store) == 0


def test_unreadable_replay_track_stops_walk(tmp_path):
    async def scenario():
        engine, _, store = build(tick_interval_s=0.01)
        engine._source = GpxReplaySource(str(tmp_path / "missing.gpx"), interval_s=0)
        engine.start()
        await asyncio.sleep(0.05)
        frozen = engine.current_metrics().duration_s
        await asyncio.sleep(0.05)
        return engine, store, frozen

    engine, store, frozen = asyncio.run(scenario())
    assert engine.phase is TrackingPhase.idle
    assert isinstance(engine.last_error, Unavailable)
    assert "missing.gpx" in str(engine.last_error)
    assert engine.current_metrics().duration_s == frozen
    assert len(store) == 0


def test_unexpected_source_error_stops_walk():
    class BrokenSource:
        async def current_position(self):
            raise Unavailable("no fix")

        async def subscribe(self, min_distance_m=0.0, accuracy=None):
            raise RuntimeError("driver crashed")
            yield  # pragma: no cover

    async def scenario():
        engine, _, _ = build()
        engine._source = BrokenSource()
        engine.start()
        await settle()
        return engine

    engine = asyncio.run(scenario())
    assert engine.phase is TrackingPhase.idle
    assert isinstance(engine.last_error, Unavailable)
    assert isinstance(engine.last_error.__cause__, RuntimeError)


def test_start_without_event_loop_leaves_engine_idle():
    engine, source, _ = build()
    with pytest.raises(RuntimeError):
        engine.start()
    assert engine.phase is TrackingPhase.idle
    assert engine.epoch == 0
    assert engine.last_error is None
    assert source.subscriber_count == 0


def test_stop_from_worker_thread_cancels_producers():
    async def scenario():
        engine, source, _ = build(tick_interval_s=0.01)
        engine.start()
        await settle()
        assert source.subscriber_count == 1
        await asyncio.to_thread(engine.stop)
        frozen = engine.current_metrics().duration_s
        await asyncio.sleep(0.05)
        return engine, source, frozen

    engine, source, frozen = asyncio.run(scenario())
    assert engine.phase is TrackingPhase.idle
    assert engine.current_metrics().duration_s == frozen
    assert source.subscriber_count == 0


def test_locate_records_current_position():
    async def scenario():
        engine, source, _ = build()
        with pytest.raises(Unavailable):
            await engine.locate()
        await source.publish(east(7))
        return await engine.locate(), engine.current_metrics()

    coord, snap = asyncio.run(scenario())
    assert coord == east(7)
    assert snap.current_position == east(7)
    # Locating does not record anything
    assert snap.path == ()


def test_failed_save_is_reported_but_kept():
    async def scenario():
        engine, _, store = build(kv=ReadOnlyKV())
        engine.start()
        for i in range(3):
            engine.on_position_sample(east(i))
        with pytest.raises(PersistenceError) as exc:
            engine.stop()
        return engine, store, exc.value

    engine, store, err = asyncio.run(scenario())
    assert engine.phase is TrackingPhase.idle
    assert err.session is not None
    assert store.all() == (err.session,)


def test_listeners_see_every_update():
    seen = []

    async def scenario():
        engine, _, _ = build()
        remove = engine.add_listener(seen.append)
        engine.start()
        engine.on_position_sample(east(0))
        engine.on_tick()
        engine.stop()
        remove()
        engine.start()
        engine.stop()

    asyncio.run(scenario())
    assert [s.phase for s in seen] == [
        TrackingPhase.tracking,
        TrackingPhase.tracking,
        TrackingPhase.tracking,
        TrackingPhase.idle,
    ]
    assert seen[2].duration_s == 1


def test_failing_listener_does_not_break_tracking():
    def boom(snap):
        raise RuntimeError("render failed")

    async def scenario():
        engine, _, _ = build()
        engine.add_listener(boom)
        engine.start()
        engine.on_position_sample(east(0))
        engine.on_position_sample(east(1))
        snap = engine.current_metrics()
        engine.stop()
        return snap

    snap = asyncio.run(scenario())
    assert len(snap.path) == 2


def test_snapshot_display_helpers():
    async def scenario():
        engine, _, _ = build()
        engine.start()
        engine.on_position_sample(east(0))
        engine.on_position_sample(east(9))  # ~100 m
        for _ in range(75):
            engine.on_tick()
        snap = engine.current_metrics()
        engine.stop()
        return snap

    snap = asyncio.run(scenario())
    assert snap.clock == "1:15"
    assert snap.speed_kmh == pytest.approx(snap.distance_m / 1000 / (75 / 3600))
    assert snap.tracking
