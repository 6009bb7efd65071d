from fastapi import APIRouter, Depends, HTTPException

from walktrack.api.deps import get_tracker
from walktrack.errors import PersistenceError, ValidationError
from walktrack.schemas.api import ProfileRead, WeightUpdate
from walktrack.service import WalkTracker

router = APIRouter(prefix="/profile", tags=["profile"])


@router.get("", response_model=ProfileRead)
def get_profile(tracker: WalkTracker = Depends(get_tracker)):
    return ProfileRead(weight_kg=tracker.profile.weight_kg)


@router.put("", response_model=ProfileRead)
def update_profile(payload: WeightUpdate, tracker: WalkTracker = Depends(get_tracker)):
    try:
        weight = tracker.update_weight(payload.weight_kg)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except PersistenceError as e:
        raise HTTPException(status_code=503, detail=f"Weight not saved: {e}")
    return ProfileRead(weight_kg=weight)
