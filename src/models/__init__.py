"""
Typed models for the face overlay application.

Frames, tensors, detections, per-cycle results and configuration.
"""

from .frame import Frame
from .tensor import EncodedTensor, InferenceOutput, TensorGeometry
from .detection import Detection, BoundingBox
from .result import CycleResult
from .config import (
    Config,
    CameraConfig,
    ModelConfig,
    PreprocessConfig,
    DecoderConfig,
    LoopConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "Frame",
    # Tensors
    "EncodedTensor",
    "InferenceOutput",
    "TensorGeometry",
    # Detection
    "Detection",
    "BoundingBox",
    "CycleResult",
    # Config
    "Config",
    "CameraConfig",
    "ModelConfig",
    "PreprocessConfig",
    "DecoderConfig",
    "LoopConfig",
    "WebConfig",
]
