"""
Tests for the overlay renderer.
"""

import time

import cv2
import numpy as np

from models.detection import BoundingBox, Detection
from models.frame import Frame
from models.result import CycleResult
from render.overlay import COLOR_BOX, OverlayRenderer, draw_detections

from conftest import make_rgba


def _frame(width=160, height=120):
    return Frame.from_rgba(make_rgba(width, height, rgb=(0, 0, 0)), timestamp=time.time(), frame_index=1)


class TestDrawDetections:
    def test_draws_box_edges(self):
        image = np.zeros((120, 160, 3), dtype=np.uint8)
        det = Detection(confidence=0.87, bbox=BoundingBox(0.25, 0.5, 0.75, 0.9))

        draw_detections(image, [det])

        x1, y1, x2, y2 = det.bbox.to_pixels(160, 120)
        assert tuple(image[y2, (x1 + x2) // 2]) == COLOR_BOX
        assert tuple(image[(y1 + y2) // 2, x2]) == COLOR_BOX
        # Box interior is left untouched
        assert tuple(image[(y1 + y2) // 2, (x1 + x2) // 2]) == (0, 0, 0)

    def test_no_detections_leaves_image(self):
        image = np.full((20, 20, 3), 7, dtype=np.uint8)
        draw_detections(image, [])
        assert (image == 7).all()

    def test_box_at_top_edge(self):
        image = np.zeros((60, 80, 3), dtype=np.uint8)
        det = Detection(confidence=0.5, bbox=BoundingBox(0.0, 0.0, 1.0, 1.0))
        draw_detections(image, [det])
        assert image.any()


class TestOverlayRenderer:
    def test_empty_until_published(self):
        renderer = OverlayRenderer()
        assert renderer.get_result() is None
        assert renderer.get_frame() is None
        assert renderer.get_jpeg() is None
        assert renderer.last_frame_age() is None
        assert renderer.snapshot() == {"input_available": False, "detections": []}

    def test_publish_annotates_frame(self):
        renderer = OverlayRenderer()
        det = Detection(confidence=0.9, bbox=BoundingBox(0.2, 0.2, 0.8, 0.8))
        result = CycleResult(detections=[det], frame_index=1, frame=_frame())

        renderer.publish(result)

        frame = renderer.get_frame()
        assert frame.shape == (120, 160, 3)
        assert frame.any()
        assert renderer.get_result() is result
        assert renderer.last_frame_age() < 5
        assert renderer.published == 1

    def test_get_frame_returns_copy(self):
        renderer = OverlayRenderer()
        renderer.publish(CycleResult(detections=[], frame=_frame()))
        renderer.get_frame()[:] = 255
        assert not renderer.get_frame().any()

    def test_no_input_keeps_last_frame(self):
        renderer = OverlayRenderer()
        renderer.publish(CycleResult(detections=[], frame=_frame()))
        renderer.publish(CycleResult.no_input(source="cam"))

        assert renderer.get_frame() is not None
        assert renderer.get_result().input_available is False
        assert renderer.snapshot()["input_available"] is False

    def test_latest_result_replaces_previous(self):
        renderer = OverlayRenderer()
        first = CycleResult(detections=[], frame_index=1, frame=_frame())
        second = CycleResult(detections=[], frame_index=2, frame=_frame())
        renderer.publish(first)
        renderer.publish(second)
        assert renderer.get_result() is second
        assert renderer.snapshot()["frame_index"] == 2

    def test_get_jpeg(self):
        renderer = OverlayRenderer(jpeg_quality=70)
        renderer.publish(CycleResult(detections=[], frame=_frame()))
        jpg = renderer.get_jpeg()
        assert jpg[:2] == b"\xff\xd8"
        decoded = cv2.imdecode(np.frombuffer(jpg, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (120, 160, 3)
