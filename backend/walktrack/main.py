import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from walktrack.api.history import router as history_router
from walktrack.api.profile import router as profile_router
from walktrack.api.walk import router as walk_router
from walktrack.core.config import Settings
from walktrack.db import create_tables, make_engine, make_session_factory
from walktrack.service import WalkTracker
from walktrack.sources.push import PushPositionSource
from walktrack.storage.kv import SqlKeyValueStore


def create_app(settings: Settings | None = None, position_source=None) -> FastAPI:
    """Build the app. Serve with: uvicorn --factory walktrack.main:create_app"""
    settings = settings or Settings()
    logging.basicConfig(level=settings.log_level)

    engine = make_engine(settings.database_url)
    # Create the key-value table on startup
    create_tables(engine)

    # Ensure export directory exists
    os.makedirs(settings.documents_dir, exist_ok=True)

    tracker = WalkTracker(
        settings,
        SqlKeyValueStore(make_session_factory(engine)),
        position_source or PushPositionSource(),
    )
    tracker.load()

    app = FastAPI(title="Walk Tracker")
    app.state.tracker = tracker

    # Allow CORS for local frontend
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(walk_router)
    app.include_router(history_router)
    app.include_router(profile_router)

    @app.get("/")
    def root():
        return {"message": "Walk tracker is running"}

    return app
