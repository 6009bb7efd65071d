"""Payloads returned by the HTTP adapter.

Engine and store types are reused where their JSON shape already fits;
these add the display-oriented fields the live panel and history list show.
"""
from typing import Optional

from pydantic import BaseModel

from walktrack.core.time_utils import seconds_to_hhmmss
from walktrack.schemas.walk import Coordinate, MetricsSnapshot, TrackingPhase, WalkSession


class MetricsRead(BaseModel):
    phase: TrackingPhase
    distance_m: float
    distance_km: float
    calories: float
    seconds: int
    clock: str  # 'M:SS'
    speed_kmh: float
    weight_kg: float
    points: int
    path: list[Coordinate]
    current_position: Optional[Coordinate] = None
    last_error: Optional[str] = None

    @classmethod
    def from_snapshot(cls, snap: MetricsSnapshot, last_error: Optional[str] = None) -> "MetricsRead":
        return cls(
            phase=snap.phase,
            distance_m=snap.distance_m,
            distance_km=round(snap.distance_km, 2),
            calories=round(snap.energy_kcal, 1),
            seconds=snap.duration_s,
            clock=snap.clock,
            speed_kmh=round(snap.speed_kmh, 2),
            weight_kg=snap.weight_kg,
            points=len(snap.path),
            path=list(snap.path),
            current_position=snap.current_position,
            last_error=last_error,
        )


class SessionRead(BaseModel):
    index: int
    distance: float
    calories: float
    seconds: int
    duration: str  # "HH:MM:SS"
    distance_km: float
    minutes: int
    path: list[Coordinate]

    @classmethod
    def from_session(cls, index: int, session: WalkSession) -> "SessionRead":
        return cls(
            index=index,
            distance=session.distance_m,
            calories=session.energy_kcal,
            seconds=session.duration_s,
            duration=seconds_to_hhmmss(session.duration_s),
            distance_km=round(session.distance_km, 2),
            minutes=session.minutes,
            path=list(session.path),
        )


class StopResult(BaseModel):
    recorded: bool
    session: Optional[SessionRead] = None
    metrics: MetricsRead


class WeightUpdate(BaseModel):
    # Range is enforced by the profile store so the stored value is the
    # single source of truth for what is accepted.
    weight_kg: float


class ProfileRead(BaseModel):
    weight_kg: float


class ExportResult(BaseModel):
    path: str
    points: int
