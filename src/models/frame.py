"""
Frame model for captured video frames.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np


@dataclass
class Frame:
    """
    A captured video frame with interleaved RGBA pixels.

    Attributes:
        pixels: uint8 array of shape (height, width, 4), channels R, G, B, A.
        width: Frame width in pixels.
        height: Frame height in pixels.
        timestamp: Unix timestamp when frame was captured.
        frame_index: Sequential frame number since the source was opened.
        source: Identifier for the camera/video source.
    """
    pixels: Optional[np.ndarray]
    width: int
    height: int
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @classmethod
    def from_rgba(
        cls,
        pixels: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "Frame":
        """Create a Frame from an RGBA numpy array."""
        h, w = pixels.shape[:2]
        return cls(
            pixels=pixels,
            width=w,
            height=h,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @classmethod
    def from_bgr(
        cls,
        frame_bgr: np.ndarray,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "Frame":
        """Create a Frame from an OpenCV BGR capture."""
        rgba = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGBA)
        return cls.from_rgba(rgba, timestamp, frame_index=frame_index, source=source)

    @classmethod
    def empty(
        cls,
        timestamp: float,
        frame_index: int = 0,
        source: Optional[str] = None,
    ) -> "Frame":
        """A zero-sized frame, produced before the camera reports its dimensions."""
        return cls(
            pixels=None,
            width=0,
            height=0,
            timestamp=timestamp,
            frame_index=frame_index,
            source=source,
        )

    @property
    def is_empty(self) -> bool:
        return self.pixels is None or self.width <= 0 or self.height <= 0

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.width, self.height)

    def to_bgr(self) -> Optional[np.ndarray]:
        """Return a BGR copy for OpenCV drawing/encoding, or None if empty."""
        if self.is_empty:
            return None
        return cv2.cvtColor(self.pixels, cv2.COLOR_RGBA2BGR)
