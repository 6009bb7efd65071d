import random

from walktrack.core.calories import energy_kcal
from walktrack.core.config import Settings
from walktrack.core.geo import destination_point, path_distance
from walktrack.db import create_tables, make_engine, make_session_factory
from walktrack.schemas.walk import Coordinate, WalkSession
from walktrack.storage.kv import SqlKeyValueStore
from walktrack.storage.profile import ProfileStore
from walktrack.storage.sessions import SessionStore


def demo_walk(start: Coordinate, weight_kg: float, rng: random.Random) -> WalkSession:
    """A wandering walk of 200-600 points at ~1.3 m/s, one fix per ~4 s."""
    path = [start]
    bearing = rng.uniform(0, 360)
    for _ in range(rng.randint(200, 600)):
        bearing = (bearing + rng.uniform(-25, 25)) % 360
        path.append(destination_point(path[-1], bearing, rng.uniform(4.0, 6.5)))

    distance = path_distance(path)
    return WalkSession(
        distance_m=distance,
        energy_kcal=energy_kcal(distance, weight_kg),
        duration_s=len(path) * 4,
        path=tuple(path),
    )


def seed_demo_walks(store: SessionStore, weight_kg: float, count: int = 8, seed: int | None = None) -> None:
    rng = random.Random(seed)
    home = Coordinate(latitude=51.5072, longitude=-0.1276)
    for _ in range(count):
        store.append(demo_walk(home, weight_kg, rng))
    print(f"Seeded {count} demo walks")


def main():
    settings = Settings()
    engine = make_engine(settings.database_url)
    create_tables(engine)
    kv = SqlKeyValueStore(make_session_factory(engine))

    store = SessionStore(kv)
    store.load()
    weight = ProfileStore(kv, default_weight_kg=settings.default_weight_kg).load()
    seed_demo_walks(store, weight)


if __name__ == "__main__":
    main()
