"""
Detection decoder for SSD-style fixed-stride outputs.

The model emits max_records records of
[image_id, label, confidence, x_min, y_min, x_max, y_max], boxes normalized to
the input tensor. Records past the real detection count are padding; the
confidence threshold is the only thing that excludes them.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Union

import numpy as np

from inference.errors import DecodeMismatch
from models.config import DecoderConfig
from models.detection import BoundingBox, Detection
from models.tensor import InferenceOutput, TensorGeometry


@dataclass(frozen=True)
class RecordLayout:
    """Field positions inside one output record."""
    confidence: int = 2
    x_min: int = 3
    y_min: int = 4
    x_max: int = 5
    y_max: int = 6
    image_id: Optional[int] = 0
    label: Optional[int] = 1

    @classmethod
    def from_dict(cls, d: Optional[Dict[str, int]]) -> "RecordLayout":
        if not d:
            return cls()
        return cls(**{**asdict(cls()), **d})

    def required_stride(self) -> int:
        fields = [self.confidence, self.x_min, self.y_min, self.x_max, self.y_max]
        fields += [i for i in (self.image_id, self.label) if i is not None]
        return max(fields) + 1


def decode(
    output: Union[InferenceOutput, np.ndarray],
    record_stride: int,
    max_records: int,
    confidence_threshold: float,
    layout: Optional[RecordLayout] = None,
) -> List[Detection]:
    """
    Decode a flat output buffer into detections.

    Args:
        output: Flat output buffer of at least record_stride * max_records values.
        record_stride: Values per record (7 for this detector family).
        max_records: Number of records to read.
        confidence_threshold: Minimum confidence kept (inclusive).
        layout: Field positions; defaults to the SSD layout.

    Returns:
        Detections sorted by descending confidence, ties in record order.

    Raises:
        DecodeMismatch: Buffer is shorter than record_stride * max_records.
    """
    layout = layout or RecordLayout()
    if record_stride < layout.required_stride():
        raise ValueError(
            f"record_stride {record_stride} too small for layout (needs {layout.required_stride()})"
        )
    if max_records < 0:
        raise ValueError(f"max_records must be non-negative, got {max_records}")

    data = output.data if isinstance(output, InferenceOutput) else np.asarray(output, dtype=np.float32).reshape(-1)
    expected = record_stride * max_records
    if data.size < expected:
        raise DecodeMismatch(expected=expected, actual=int(data.size))
    if max_records == 0:
        return []

    records = data[:expected].reshape(max_records, record_stride)
    confidences = records[:, layout.confidence]
    # NaN compares False and is dropped here.
    keep = np.flatnonzero(confidences >= confidence_threshold)
    if keep.size == 0:
        return []

    order = keep[np.argsort(-confidences[keep], kind="stable")]
    return [Detection.from_record(records[i], layout) for i in order]


def to_frame_coordinates(detections: List[Detection], geometry: TensorGeometry) -> List[Detection]:
    """
    Map boxes normalized to the tensor back to boxes normalized to the source frame.

    Undoes the letterbox offset and scale, then clips to [0, 1]. For a
    stretch resize only the clipping applies.
    """
    if geometry.is_identity:
        return [d.with_bbox(d.bbox.clipped()) for d in detections]

    dst_w, dst_h = geometry.target_size
    scaled_w, scaled_h = geometry.scaled_size
    off_x, off_y = geometry.offset

    def _x(v: float) -> float:
        return (v * dst_w - off_x) / scaled_w

    def _y(v: float) -> float:
        return (v * dst_h - off_y) / scaled_h

    out: List[Detection] = []
    for d in detections:
        b = d.bbox
        projected = BoundingBox(
            x_min=_x(b.x_min),
            y_min=_y(b.y_min),
            x_max=_x(b.x_max),
            y_max=_y(b.y_max),
        )
        out.append(d.with_bbox(projected.clipped()))
    return out


class DetectionDecoder:
    """Decoder bound to one DecoderConfig, so the threshold lives in one place."""

    def __init__(self, config: DecoderConfig):
        self.config = config
        self.layout = RecordLayout.from_dict(config.layout)

    @property
    def expected_size(self) -> int:
        return self.config.record_stride * self.config.max_records

    def decode(self, output: InferenceOutput) -> List[Detection]:
        return decode(
            output,
            record_stride=self.config.record_stride,
            max_records=self.config.max_records,
            confidence_threshold=self.config.confidence_threshold,
            layout=self.layout,
        )
