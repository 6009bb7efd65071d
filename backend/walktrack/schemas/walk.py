from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from walktrack.core.constants import MAX_WEIGHT_KG, MIN_WEIGHT_KG
from walktrack.core.time_utils import compute_speed_kmh, seconds_to_clock


class Coordinate(BaseModel):
    """A latitude/longitude pair in degrees.

    Serialized as {"lat": ..., "lng": ...}; either the alias or the field
    name is accepted on input.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    latitude: float = Field(alias="lat")
    longitude: float = Field(alias="lng")


class WalkSession(BaseModel):
    """One completed walk as stored in the history log."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    distance_m: float = Field(alias="distance", ge=0)
    energy_kcal: float = Field(alias="calories", ge=0)
    duration_s: int = Field(alias="seconds", ge=0)
    path: tuple[Coordinate, ...] = ()

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000

    @property
    def minutes(self) -> int:
        return self.duration_s // 60


class TrackingPhase(str, Enum):
    idle = "idle"
    tracking = "tracking"


class MetricsSnapshot(BaseModel):
    """Read-only view of the engine after its last applied update."""

    model_config = ConfigDict(frozen=True)

    phase: TrackingPhase
    distance_m: float
    energy_kcal: float
    duration_s: int
    weight_kg: float
    path: tuple[Coordinate, ...] = ()
    last_coordinate: Optional[Coordinate] = None
    current_position: Optional[Coordinate] = None

    @property
    def tracking(self) -> bool:
        return self.phase is TrackingPhase.tracking

    @property
    def distance_km(self) -> float:
        return self.distance_m / 1000

    @property
    def speed_kmh(self) -> float:
        return compute_speed_kmh(self.distance_m, self.duration_s)

    @property
    def clock(self) -> str:
        return seconds_to_clock(self.duration_s)


class UserProfile(BaseModel):
    weight_kg: float = Field(gt=MIN_WEIGHT_KG, lt=MAX_WEIGHT_KG, allow_inf_nan=False)
