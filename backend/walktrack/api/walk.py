from fastapi import APIRouter, Depends, HTTPException

from walktrack.api.deps import get_tracker
from walktrack.errors import EmptyPathError, PermissionDenied, PersistenceError, Unavailable
from walktrack.schemas.api import ExportResult, MetricsRead, SessionRead, StopResult
from walktrack.schemas.walk import Coordinate
from walktrack.service import WalkTracker

router = APIRouter(prefix="/walk", tags=["walk"])


def _metrics(tracker: WalkTracker) -> MetricsRead:
    err = tracker.engine.last_error
    return MetricsRead.from_snapshot(
        tracker.engine.current_metrics(),
        last_error=str(err) if err is not None else None,
    )


@router.get("", response_model=MetricsRead)
def get_metrics(tracker: WalkTracker = Depends(get_tracker)):
    return _metrics(tracker)


@router.post("/start", response_model=MetricsRead)
async def start_walk(tracker: WalkTracker = Depends(get_tracker)):
    # async so the producers land on the server's event loop
    if not tracker.engine.start():
        raise HTTPException(status_code=409, detail="Walk already in progress")
    return _metrics(tracker)


@router.post("/stop", response_model=StopResult)
async def stop_walk(tracker: WalkTracker = Depends(get_tracker)):
    if not tracker.engine.tracking:
        raise HTTPException(status_code=409, detail="No walk in progress")
    try:
        session = tracker.engine.stop()
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Walk recorded but not saved: {e}")

    summary = None
    if session is not None:
        summary = SessionRead.from_session(len(tracker.history) - 1, session)
    return StopResult(recorded=session is not None, session=summary, metrics=_metrics(tracker))


@router.post("/positions", response_model=MetricsRead)
async def push_position(coord: Coordinate, tracker: WalkTracker = Depends(get_tracker)):
    """Feed one device fix into the push position source."""
    publish = getattr(tracker.source, "publish", None)
    if publish is None:
        raise HTTPException(status_code=409, detail="Position source does not accept pushed samples")
    try:
        await publish(coord)
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    return _metrics(tracker)


@router.get("/position", response_model=Coordinate)
async def locate(tracker: WalkTracker = Depends(get_tracker)):
    try:
        coord = await tracker.engine.locate()
    except PermissionDenied as e:
        raise HTTPException(status_code=403, detail=str(e))
    except Unavailable as e:
        raise HTTPException(status_code=503, detail=str(e))
    return coord


@router.post("/export", response_model=ExportResult)
def export_walk(tracker: WalkTracker = Depends(get_tracker)):
    try:
        dest, points = tracker.export_current()
    except EmptyPathError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Export failed: {e}")
    return ExportResult(path=dest, points=points)
