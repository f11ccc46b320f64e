"""
CycleResult model: what one frame cycle hands to the renderer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .detection import Detection
from .frame import Frame


@dataclass
class CycleResult:
    """
    Output of one pipeline cycle.

    Either an ordered detection list (possibly empty) or, when
    input_available is False, the explicit "no input" signal.

    Attributes:
        detections: Detections sorted by descending confidence, boxes
            normalized to the original frame.
        input_available: False when no usable frame was captured.
        frame_index: Index of the frame the result belongs to.
        source: Source identifier of the stream that produced the frame.
        timestamp: Capture timestamp of the frame.
        latency_ms: Wall time from frame acquisition to publication.
        frame: The frame itself, kept for preview drawing only.
    """
    detections: List[Detection] = field(default_factory=list)
    input_available: bool = True
    frame_index: int = 0
    source: Optional[str] = None
    timestamp: Optional[float] = None
    latency_ms: Optional[float] = None
    frame: Optional[Frame] = field(default=None, repr=False, compare=False)

    @classmethod
    def no_input(
        cls,
        source: Optional[str] = None,
        timestamp: Optional[float] = None,
        frame_index: int = 0,
    ) -> "CycleResult":
        return cls(
            detections=[],
            input_available=False,
            frame_index=frame_index,
            source=source,
            timestamp=timestamp,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "input_available": self.input_available,
            "frame_index": self.frame_index,
            "source": self.source,
            "timestamp": self.timestamp,
            "latency_ms": self.latency_ms,
            "detections": [d.to_dict() for d in self.detections],
        }
