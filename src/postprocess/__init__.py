"""
Model output decoding.
"""

from .decoder import DetectionDecoder, RecordLayout, decode, to_frame_coordinates

__all__ = [
    "DetectionDecoder",
    "RecordLayout",
    "decode",
    "to_frame_coordinates",
]
