"""
OpenCV overlay renderer.

Draws detection boxes and confidence labels over the frame and keeps only the
latest annotated image, which the display window and the web preview read.
"""

from __future__ import annotations

import threading
import time
from typing import Any, Dict, List, Optional

import cv2
import numpy as np

from models.detection import Detection
from models.result import CycleResult

# Colors (BGR)
COLOR_BOX = (0, 255, 0)
COLOR_OUTLINE = (0, 0, 0)
LABEL_HEIGHT = 25


def draw_detections(image: np.ndarray, detections: List[Detection]) -> np.ndarray:
    """
    Draw boxes and "NN%" labels in place on a BGR image.

    Boxes are normalized; they are scaled to the image size here.
    """
    h, w = image.shape[:2]
    font = cv2.FONT_HERSHEY_SIMPLEX

    for det in detections:
        x1, y1, x2, y2 = det.bbox.to_pixels(w, h)

        # Black outer stroke, bright inner stroke
        cv2.rectangle(image, (x1, y1), (x2, y2), COLOR_OUTLINE, 4)
        cv2.rectangle(image, (x1, y1), (x2, y2), COLOR_BOX, 2)

        text = f"{int(round(det.confidence * 100))}%"
        (tw, th), _ = cv2.getTextSize(text, font, 0.7, 2)
        top = max(0, y1 - LABEL_HEIGHT)

        # Translucent label background
        x_end = min(w, x1 + tw + 10)
        if x_end > x1 and y1 > top:
            roi = image[top:y1, max(0, x1):x_end]
            image[top:y1, max(0, x1):x_end] = (roi * 0.5).astype(image.dtype)

        baseline_y = top + LABEL_HEIGHT - 5
        cv2.putText(image, text, (x1 + 5, baseline_y), font, 0.7, COLOR_OUTLINE, 4)
        cv2.putText(image, text, (x1 + 5, baseline_y), font, 0.7, COLOR_BOX, 2)

    return image


class OverlayRenderer:
    """
    Keeps the latest result and its annotated frame.

    publish() runs on the event loop; the display loop and web handlers read
    from other threads, so access goes through a lock.
    """

    def __init__(self, jpeg_quality: int = 80):
        self._lock = threading.Lock()
        self._result: Optional[CycleResult] = None
        self._annotated: Optional[np.ndarray] = None
        self._last_frame_ts: Optional[float] = None
        self.jpeg_quality = jpeg_quality
        self.published = 0

    def publish(self, result: CycleResult) -> None:
        annotated = None
        if result.input_available and result.frame is not None:
            image = result.frame.to_bgr()
            if image is not None:
                annotated = draw_detections(image, result.detections)

        with self._lock:
            # Previous result is discarded once the next one is drawn.
            self._result = result
            if annotated is not None:
                self._annotated = annotated
                self._last_frame_ts = time.time()
            self.published += 1

    def get_result(self) -> Optional[CycleResult]:
        with self._lock:
            return self._result

    def get_frame(self) -> Optional[np.ndarray]:
        with self._lock:
            if self._annotated is None:
                return None
            return self._annotated.copy()

    def get_jpeg(self) -> Optional[bytes]:
        frame = self.get_frame()
        if frame is None:
            return None
        ok, buf = cv2.imencode(".jpg", frame, [int(cv2.IMWRITE_JPEG_QUALITY), self.jpeg_quality])
        if not ok:
            return None
        return buf.tobytes()

    def last_frame_age(self) -> Optional[float]:
        with self._lock:
            if self._last_frame_ts is None:
                return None
            return time.time() - self._last_frame_ts

    def snapshot(self) -> Dict[str, Any]:
        result = self.get_result()
        if result is None:
            return {"input_available": False, "detections": []}
        return result.to_dict()
