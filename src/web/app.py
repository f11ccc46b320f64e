"""
FastAPI application factory for the face overlay preview.

Routes:
- /api/status -> loop state and statistics
- /api/detections -> latest detections (or the "no input" signal)
- /api/cameras -> available camera devices
- /api/camera/live.mjpg -> annotated MJPEG preview
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routes import api
from .state import PreviewState


def create_app(preview: PreviewState) -> FastAPI:
    """Create the FastAPI app bound to one session's preview state."""
    app = FastAPI(
        title="Face Overlay",
        version="0.1.0",
        description="Live webcam face detection preview",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:5173", "http://127.0.0.1:5173"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.preview = preview
    app.include_router(api.router, prefix="/api")
    return app
