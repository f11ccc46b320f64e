"""
Observation layer for pluggable frame sources.

This layer abstracts where frames come from (webcam, video file) from the
frame pipeline. Each source implements the ObservationSource interface and
returns Frame objects.
"""

from models.config import CameraConfig

from .base import ObservationSource, ObservationConfig
from .devices import DeviceDescriptor, enumerate_devices
from .opencv_source import OpenCVSource, OpenCVSourceConfig


def create_source_from_config(camera: CameraConfig, source_id: str = "camera") -> ObservationSource:
    """Build an observation source from the camera section of the config."""
    if camera.backend != "opencv":
        raise ValueError(f"Unsupported camera backend: {camera.backend}")
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera, source_id=source_id))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "DeviceDescriptor",
    "enumerate_devices",
    "create_source_from_config",
]
