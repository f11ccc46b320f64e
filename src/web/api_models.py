from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class BoundingBoxModel(BaseModel):
    x_min: float
    y_min: float
    x_max: float
    y_max: float


class DetectionModel(BaseModel):
    confidence: float
    bbox: BoundingBoxModel


class DetectionsResponse(BaseModel):
    """Latest cycle result; input_available=false is the "no input" signal."""
    input_available: bool
    frame_index: int = 0
    source: Optional[str] = None
    timestamp: Optional[float] = None
    latency_ms: Optional[float] = None
    detections: List[DetectionModel] = Field(default_factory=list)


class StatusResponse(BaseModel):
    running: bool = Field(..., description="True if frames are flowing")
    state: str = Field(..., description="Frame loop state")
    source: Optional[str] = None
    last_frame_age_s: Optional[float] = Field(None, description="Seconds since last annotated frame")
    stats: Dict[str, Any] = Field(default_factory=dict)
    model: Dict[str, Any] = Field(default_factory=dict)
    warnings: List[str] = Field(default_factory=list)


class CameraModel(BaseModel):
    device_id: int
    label: str
