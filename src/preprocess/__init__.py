"""
Frame preprocessing for the detection model.
"""

from .encoder import ResizePolicy, TensorEncoder, encode, letterbox_geometry, stretch_geometry

__all__ = [
    "ResizePolicy",
    "TensorEncoder",
    "encode",
    "letterbox_geometry",
    "stretch_geometry",
]
