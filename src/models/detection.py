"""
Detection models for face detection results.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in normalized [0, 1] coordinates.

    Attributes:
        x_min: Left edge, as a fraction of image width.
        y_min: Top edge, as a fraction of image height.
        x_max: Right edge, as a fraction of image width.
        y_max: Bottom edge, as a fraction of image height.
    """
    x_min: float
    y_min: float
    x_max: float
    y_max: float

    def as_tuple(self) -> Tuple[float, float, float, float]:
        """Return as (x_min, y_min, x_max, y_max) tuple."""
        return (self.x_min, self.y_min, self.x_max, self.y_max)

    def to_pixels(self, width: int, height: int) -> Tuple[int, int, int, int]:
        """Scale to integer pixel (x1, y1, x2, y2) for an image of the given size."""
        x1, y1, x2, y2 = self.as_tuple()
        return (
            int(round(x1 * width)),
            int(round(y1 * height)),
            int(round(x2 * width)),
            int(round(y2 * height)),
        )

    def clipped(self) -> "BoundingBox":
        """Return a copy with every edge clamped into [0, 1]."""
        return BoundingBox(
            x_min=min(max(self.x_min, 0.0), 1.0),
            y_min=min(max(self.y_min, 0.0), 1.0),
            x_max=min(max(self.x_max, 0.0), 1.0),
            y_max=min(max(self.y_max, 0.0), 1.0),
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            "x_min": self.x_min,
            "y_min": self.y_min,
            "x_max": self.x_max,
            "y_max": self.y_max,
        }


@dataclass(frozen=True)
class Detection:
    """
    A single face detection.

    Attributes:
        confidence: Detection confidence score (0-1).
        bbox: Bounding box in normalized coordinates.
        label: Label field from the model record, passed through unchecked.
        image_id: Batch index field from the model record, passed through unchecked.
    """
    confidence: float
    bbox: BoundingBox
    label: Optional[float] = None
    image_id: Optional[float] = None

    @classmethod
    def from_record(cls, record: np.ndarray, layout: Any) -> "Detection":
        """
        Adapter: Build a Detection from one fixed-stride output record.

        Args:
            record: One row of the model output buffer.
            layout: A RecordLayout naming the field positions.
        """
        return cls(
            confidence=float(record[layout.confidence]),
            bbox=BoundingBox(
                x_min=float(record[layout.x_min]),
                y_min=float(record[layout.y_min]),
                x_max=float(record[layout.x_max]),
                y_max=float(record[layout.y_max]),
            ),
            label=float(record[layout.label]) if layout.label is not None else None,
            image_id=float(record[layout.image_id]) if layout.image_id is not None else None,
        )

    def with_bbox(self, bbox: BoundingBox) -> "Detection":
        return Detection(
            confidence=self.confidence,
            bbox=bbox,
            label=self.label,
            image_id=self.image_id,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "confidence": self.confidence,
            "bbox": self.bbox.to_dict(),
        }

