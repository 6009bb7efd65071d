from fastapi import Request

from walktrack.service import WalkTracker


# Dependency used by routes to reach the tracker built in create_app()
def get_tracker(request: Request) -> WalkTracker:
    return request.app.state.tracker
