from fastapi import APIRouter, Depends, HTTPException

from walktrack.api.deps import get_tracker
from walktrack.errors import EmptyPathError
from walktrack.schemas.api import ExportResult, SessionRead
from walktrack.service import WalkTracker

router = APIRouter(prefix="/history", tags=["history"])


@router.get("", response_model=list[SessionRead])
def list_walks(tracker: WalkTracker = Depends(get_tracker)):
    """Recorded walks, oldest first (the order they were saved)."""
    return [SessionRead.from_session(i, s) for i, s in enumerate(tracker.history.all())]


@router.get("/{index}", response_model=SessionRead)
def get_walk(index: int, tracker: WalkTracker = Depends(get_tracker)):
    try:
        session = tracker.history.get(index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Walk not found")
    return SessionRead.from_session(index, session)


@router.post("/{index}/export", response_model=ExportResult)
def export_walk(index: int, tracker: WalkTracker = Depends(get_tracker)):
    try:
        session = tracker.history.get(index)
        dest = tracker.export_session(index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Walk not found")
    except EmptyPathError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except OSError as e:
        raise HTTPException(status_code=500, detail=f"Export failed: {e}")
    return ExportResult(path=dest, points=len(session.path))
