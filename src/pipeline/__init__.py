"""
Pipeline module for the face overlay system.

The pipeline orchestrates the per-frame flow:
- Frame acquisition from an observation source
- Tensor encoding and inference
- Output decoding
- Publication to the renderer
"""

from .engine import (
    FrameLoopController,
    LoopState,
    PipelineConfig,
    PipelineStats,
    create_engine_from_config,
)
from .scheduler import TickScheduler

__all__ = [
    "FrameLoopController",
    "LoopState",
    "PipelineConfig",
    "PipelineStats",
    "create_engine_from_config",
    "TickScheduler",
]
