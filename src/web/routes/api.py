from __future__ import annotations

import logging
import time
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse

from ..api_models import CameraModel, DetectionsResponse, StatusResponse
from ..state import PreviewState

router = APIRouter()


def _preview(request: Request) -> PreviewState:
    return request.app.state.preview


def _compute_warnings(last_frame_age_s: Optional[float], errors: int, cycles: int) -> List[str]:
    """
    Thresholds: no frame or >10s => camera_offline; >2s => camera_stale;
    more errors than successful cycles => inference_failing.
    """
    warnings: List[str] = []
    if last_frame_age_s is None or last_frame_age_s > 10:
        warnings.append("camera_offline")
    elif last_frame_age_s > 2:
        warnings.append("camera_stale")
    if errors > 0 and errors > cycles:
        warnings.append("inference_failing")
    return warnings


@router.get("/status", response_model=StatusResponse)
def status(request: Request):
    preview = _preview(request)
    age = preview.renderer.last_frame_age()
    stats = preview.stats()
    warnings = _compute_warnings(age, stats.get("errors", 0), stats.get("cycles", 0))
    return StatusResponse(
        running=age is not None and age <= 10,
        state=preview.loop_state(),
        source=preview.source_id(),
        last_frame_age_s=round(age, 3) if age is not None else None,
        stats=stats,
        model=preview.model_info,
        warnings=warnings,
    )


@router.get("/detections", response_model=DetectionsResponse)
def detections(request: Request):
    return _preview(request).renderer.snapshot()


@router.get("/cameras", response_model=List[CameraModel])
def cameras(request: Request):
    preview = _preview(request)
    if preview.list_devices is None:
        return []
    return [d.to_dict() for d in preview.list_devices()]


@router.post("/cameras/{device_id}/select")
def select_camera(request: Request, device_id: int):
    """Switch the running pipeline to another camera."""
    preview = _preview(request)
    if preview.select_device is None:
        raise HTTPException(status_code=503, detail="Camera switching not available")
    try:
        preview.select_device(device_id)
    except Exception as e:
        logging.warning(f"Camera switch to {device_id} failed: {e}")
        raise HTTPException(status_code=500, detail=str(e))
    return {"ok": True, "device_id": device_id}


@router.get("/camera/live.mjpg")
def camera_live_stream(request: Request, fps: int = 10):
    """Stream MJPEG frames of the annotated preview."""
    preview = _preview(request)
    fps = max(1, min(30, int(fps)))
    delay = 1.0 / fps

    def gen():
        while True:
            jpg = preview.renderer.get_jpeg()
            if jpg is None:
                time.sleep(0.1)
                continue
            yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpg + b"\r\n"
            time.sleep(delay)

    return StreamingResponse(gen(), media_type="multipart/x-mixed-replace; boundary=frame")
