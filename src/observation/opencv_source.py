"""
Webcam source backed by cv2.VideoCapture.

A video file path works too, which is handy for replaying a recorded session.
Captured BGR images are converted to RGBA Frames.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Optional, Union

import cv2

from models.config import CameraConfig
from models.frame import Frame
from .base import ObservationSource, ObservationConfig

# Transient read failures tolerated before the camera is treated as gone.
MAX_READ_FAILURES = 3


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Webcam index, or a video file path.
        flip_horizontal: Mirror each frame (selfie view).
        open_attempts: Tries at opening the device.
        retry_delay_s: Pause between open attempts.
        warmup_s: Pause after a webcam opens, before the first read.
    """
    device_id: Union[int, str] = 0
    flip_horizontal: bool = False
    open_attempts: int = 3
    retry_delay_s: float = 1.0
    warmup_s: float = 0.5

    @classmethod
    def from_camera_config(cls, camera: CameraConfig, source_id: str = "camera") -> "OpenCVSourceConfig":
        """Adapter: Create from the typed camera section."""
        return cls(
            source_id=source_id,
            resolution=tuple(camera.resolution) if camera.resolution else None,
            fps=camera.fps,
            device_id=camera.device_id,
            flip_horizontal=camera.flip_horizontal,
            open_attempts=camera.open_attempts,
        )


class OpenCVSource(ObservationSource):
    """
    read() runs on a worker thread (the frame loop uses asyncio.to_thread)
    while close() can come from the event loop during a camera switch, so
    both hold the same lock.
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cv_config = config
        self._cap: Optional[cv2.VideoCapture] = None
        self._lock = threading.Lock()
        self._read_failures = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._cv_config.device_id

    @property
    def is_file(self) -> bool:
        return isinstance(self.device_id, str)

    def open(self) -> None:
        with self._lock:
            if self._is_open:
                return
            self._cap = self._open_capture()
            self._is_open = True
            self._frame_index = 0
            self._read_failures = 0

        if not self.is_file and self._cv_config.warmup_s > 0:
            time.sleep(self._cv_config.warmup_s)
        logging.info(f"Camera opened: source_id={self.source_id}, device={self.device_id}")

    def _open_capture(self) -> cv2.VideoCapture:
        attempts = max(1, self._cv_config.open_attempts)
        for attempt in range(1, attempts + 1):
            cap = cv2.VideoCapture(self.device_id)
            if cap.isOpened():
                self._apply_settings(cap)
                return cap
            cap.release()
            if attempt < attempts:
                logging.warning(f"Camera {self.device_id} did not open (attempt {attempt}/{attempts})")
                time.sleep(self._cv_config.retry_delay_s)
        raise RuntimeError(f"Failed to open device {self.device_id} after {attempts} attempts")

    def _apply_settings(self, cap: cv2.VideoCapture) -> None:
        if self.is_file:
            return
        if self._cv_config.resolution:
            w, h = self._cv_config.resolution
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        if self._cv_config.fps:
            cap.set(cv2.CAP_PROP_FPS, self._cv_config.fps)
        # Keep only the newest frame queued.
        cap.set(cv2.CAP_PROP_BUFFERSIZE, 1)
        logging.info(
            f"Camera {self.device_id} reports "
            f"{cap.get(cv2.CAP_PROP_FRAME_WIDTH)}x{cap.get(cv2.CAP_PROP_FRAME_HEIGHT)} "
            f"@ {cap.get(cv2.CAP_PROP_FPS)} fps"
        )

    def read(self) -> Optional[Frame]:
        """
        Returns an empty Frame while the device has no dimensions yet or after
        a transient read failure, and None once the stream has ended.
        """
        with self._lock:
            if not self._is_open or self._cap is None:
                return None

            now = time.time()
            width = int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
            height = int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
            if width <= 0 or height <= 0:
                return Frame.empty(now, frame_index=self._frame_index, source=self.source_id)

            ok, image = self._cap.read()
            if not ok or image is None:
                return self._on_read_failure(now)

            self._read_failures = 0
            if self._cv_config.flip_horizontal:
                image = cv2.flip(image, 1)
            self._frame_index += 1
            return Frame.from_bgr(image, timestamp=now, frame_index=self._frame_index, source=self.source_id)

    def _on_read_failure(self, now: float) -> Optional[Frame]:
        if self.is_file:
            logging.info(f"End of video {self.device_id}")
            return None
        self._read_failures += 1
        if self._read_failures > MAX_READ_FAILURES:
            logging.error(f"Camera {self.device_id} stopped delivering frames")
            return None
        logging.warning(f"Camera read failed ({self._read_failures}/{MAX_READ_FAILURES})")
        return Frame.empty(now, frame_index=self._frame_index, source=self.source_id)

    def close(self) -> None:
        with self._lock:
            if self._cap is not None:
                self._cap.release()
                self._cap = None
            was_open = self._is_open
            self._is_open = False
        if was_open:
            logging.info(f"Camera closed: source_id={self.source_id}")
