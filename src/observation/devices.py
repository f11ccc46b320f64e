"""
Camera enumeration.

OpenCV has no device listing API, so each index is tried in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import cv2


@dataclass(frozen=True)
class DeviceDescriptor:
    device_id: int
    label: str

    def to_dict(self) -> dict:
        return {"device_id": self.device_id, "label": self.label}


def _can_open(index: int) -> bool:
    cap = cv2.VideoCapture(index)
    try:
        return bool(cap.isOpened())
    finally:
        cap.release()


def enumerate_devices(
    max_index: int = 8,
    is_available: Optional[Callable[[int], bool]] = None,
) -> List[DeviceDescriptor]:
    """
    Return the camera indices that open, labelled "Camera 1", "Camera 2", ...

    Args:
        max_index: Number of indices to try, starting at 0.
        is_available: Override for opening a device (used by tests).
    """
    is_available = is_available or _can_open
    devices: List[DeviceDescriptor] = []
    for index in range(max_index):
        try:
            ok = is_available(index)
        except Exception as e:
            logging.debug(f"Opening camera {index} failed: {e}")
            ok = False
        if ok:
            devices.append(DeviceDescriptor(device_id=index, label=f"Camera {len(devices) + 1}"))
    logging.info(f"Found {len(devices)} camera(s)")
    return devices
