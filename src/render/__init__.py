"""
Renderers for pipeline results.
"""

from .base import Renderer
from .overlay import OverlayRenderer, draw_detections

__all__ = [
    "Renderer",
    "OverlayRenderer",
    "draw_detections",
]
