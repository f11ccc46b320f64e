"""
Pytest configuration and shared fixtures.
"""

import os
import sys
import threading
import time
from typing import Dict, List, Optional

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models.frame import Frame  # noqa: E402
from observation.base import ObservationConfig, ObservationSource  # noqa: E402


class FakeModelHandle:
    """
    In-memory ModelHandle.

    If a gate is given, infer() blocks until the gate is set, which lets tests
    hold a request "in flight".
    """

    def __init__(
        self,
        output: Optional[np.ndarray] = None,
        input_names: Optional[List[str]] = None,
        output_names: Optional[List[str]] = None,
        gate: Optional[threading.Event] = None,
        error: Optional[Exception] = None,
        ready: bool = True,
    ):
        self.output = output if output is not None else np.zeros(200 * 7, dtype=np.float32)
        self._input_names = input_names or ["data"]
        self._output_names = output_names or ["detection_out"]
        self.gate = gate
        self.error = error
        self.ready = ready
        self.calls = 0
        self.started = threading.Event()
        self.last_bindings: Optional[Dict[str, np.ndarray]] = None

    @property
    def is_ready(self) -> bool:
        return self.ready

    @property
    def input_names(self) -> List[str]:
        return list(self._input_names)

    @property
    def output_names(self) -> List[str]:
        return list(self._output_names)

    def input_shape(self, name: str):
        return (1, 3, 256, 256)

    def infer(self, bindings):
        self.calls += 1
        self.last_bindings = bindings
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.error is not None:
            raise self.error
        return {name: self.output.reshape(1, 1, -1, 7) for name in self._output_names}


class MockSource(ObservationSource):
    """Observation source returning a fixed RGBA frame (or None/empty frames)."""

    def __init__(self, config: ObservationConfig = None, frame: Optional[np.ndarray] = None, empty: bool = False):
        super().__init__(config or ObservationConfig(source_id="mock"))
        self._pixels = frame if frame is not None else make_rgba(64, 48)
        self._empty = empty
        self.closed = False

    def open(self) -> None:
        self._is_open = True
        self._frame_index = 0

    def read(self) -> Optional[Frame]:
        if not self._is_open:
            return None
        if self._empty:
            return Frame.empty(time.time(), source=self.source_id)
        self._frame_index += 1
        return Frame.from_rgba(
            self._pixels,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        self._is_open = False
        self.closed = True


class RecordingRenderer:
    """Renderer that remembers everything it was handed."""

    def __init__(self):
        self.results = []

    def publish(self, result):
        self.results.append(result)


def make_rgba(width: int, height: int, rgb=(10, 20, 30)) -> np.ndarray:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = rgb[0]
    pixels[..., 1] = rgb[1]
    pixels[..., 2] = rgb[2]
    pixels[..., 3] = 255
    return pixels


def make_output(records: Dict[int, List[float]], max_records: int = 200, stride: int = 7) -> np.ndarray:
    """Build a flat output buffer; unspecified records are zero padding."""
    out = np.zeros((max_records, stride), dtype=np.float32)
    for index, values in records.items():
        out[index, : len(values)] = values
    return out.reshape(-1)


@pytest.fixture
def rgba_frame():
    return Frame.from_rgba(make_rgba(640, 480), timestamp=time.time(), frame_index=1, source="cam")


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  resolution: [640, 480]
  fps: 30

model:
  path: "models/face.xml"
  device: "CPU"

preprocess:
  target_size: [256, 256]
  channel_means: [102.9801, 115.9465, 122.7717]
  resize_policy: "letterbox"

decoder:
  record_stride: 7
  max_records: 200
  confidence_threshold: 0.15

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "resolution": [640, 480],
            "fps": 30,
        },
        "model": {
            "path": "models/face.xml",
            "device": "CPU",
        },
        "preprocess": {
            "target_size": [256, 256],
            "channel_means": [102.9801, 115.9465, 122.7717],
            "channel_order": "BGR",
            "resize_policy": "letterbox",
        },
        "decoder": {
            "record_stride": 7,
            "max_records": 200,
            "confidence_threshold": 0.15,
        },
        "loop": {"tick_hz": 30},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }
