"""
Tensor encoder: RGBA frame -> planar, channel-ordered, mean-centered NCHW tensor.

The detection models in this family are trained on BGR planes with a fixed
per-channel mean subtracted and no scaling. Which resize the model expects
(letterbox or stretch) depends on its training preprocessing, so both are
selectable through PreprocessConfig.
"""

from __future__ import annotations

import logging
import math
from enum import Enum
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from models.config import PreprocessConfig
from models.frame import Frame
from models.tensor import EncodedTensor, TensorGeometry

# Index of each letter inside an RGB(A) pixel.
_RGB_INDEX = {"R": 0, "G": 1, "B": 2}


class ResizePolicy(str, Enum):
    LETTERBOX = "letterbox"
    STRETCH = "stretch"


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def letterbox_geometry(source_size: Tuple[int, int], target_size: Tuple[int, int]) -> TensorGeometry:
    """
    Compute the scale-to-fit placement of source_size inside target_size.

    The content keeps its aspect ratio and is centered; offsets round down.
    """
    src_w, src_h = source_size
    dst_w, dst_h = target_size
    scale = min(dst_w / src_w, dst_h / src_h)
    scaled_w = min(dst_w, max(1, _round_half_up(src_w * scale)))
    scaled_h = min(dst_h, max(1, _round_half_up(src_h * scale)))
    offset_x = (dst_w - scaled_w) // 2
    offset_y = (dst_h - scaled_h) // 2
    return TensorGeometry(
        source_size=(src_w, src_h),
        target_size=(dst_w, dst_h),
        scaled_size=(scaled_w, scaled_h),
        offset=(offset_x, offset_y),
    )


def stretch_geometry(source_size: Tuple[int, int], target_size: Tuple[int, int]) -> TensorGeometry:
    return TensorGeometry(
        source_size=tuple(source_size),
        target_size=tuple(target_size),
        scaled_size=tuple(target_size),
        offset=(0, 0),
    )


def _channel_indices(channel_order: str) -> Tuple[int, int, int]:
    order = channel_order.upper()
    if len(order) != 3 or set(order) != set("RGB"):
        raise ValueError(f"channel_order must be a permutation of 'RGB', got {channel_order!r}")
    return tuple(_RGB_INDEX[c] for c in order)


def encode(
    frame: Frame,
    target_size: Tuple[int, int],
    channel_means: Sequence[float],
    resize_policy: ResizePolicy = ResizePolicy.LETTERBOX,
    channel_order: str = "BGR",
    channel_scale: float = 1.0,
) -> Optional[EncodedTensor]:
    """
    Encode an RGBA frame into the model's input tensor.

    Args:
        frame: Captured frame with interleaved RGBA pixels.
        target_size: Model input (width, height).
        channel_means: One mean per output channel, in channel_order.
        resize_policy: Letterbox (zero padded, centered) or stretch.
        channel_order: Order of the output planes, e.g. "BGR".
        channel_scale: Divisor applied after mean subtraction.

    Returns:
        EncodedTensor of shape (1, 3, H, W), or None when the frame has no
        pixels yet (the "no input" signal).
    """
    if frame is None or frame.pixels is None:
        return None
    pixels = frame.pixels
    if pixels.ndim != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        return None
    if frame.width <= 0 or frame.height <= 0:
        return None
    if pixels.shape[2] < 3:
        raise ValueError(f"Expected RGBA pixels, got shape {pixels.shape}")
    if len(channel_means) != 3:
        raise ValueError(f"Expected 3 channel means, got {len(channel_means)}")

    dst_w, dst_h = int(target_size[0]), int(target_size[1])
    src_h, src_w = pixels.shape[:2]
    rgb = pixels[..., :3]

    policy = ResizePolicy(resize_policy)
    if policy is ResizePolicy.LETTERBOX:
        geometry = letterbox_geometry((src_w, src_h), (dst_w, dst_h))
    else:
        geometry = stretch_geometry((src_w, src_h), (dst_w, dst_h))

    scaled_w, scaled_h = geometry.scaled_size
    if (scaled_w, scaled_h) == (src_w, src_h):
        resized = rgb
    else:
        resized = cv2.resize(np.ascontiguousarray(rgb), (scaled_w, scaled_h), interpolation=cv2.INTER_LINEAR)

    canvas = np.zeros((dst_h, dst_w, 3), dtype=np.float32)
    off_x, off_y = geometry.offset
    canvas[off_y:off_y + scaled_h, off_x:off_x + scaled_w] = resized

    planes = canvas[..., list(_channel_indices(channel_order))].transpose(2, 0, 1)
    means = np.asarray(channel_means, dtype=np.float32)[:, None, None]
    data = planes - means
    if channel_scale != 1.0:
        data = data / np.float32(channel_scale)

    return EncodedTensor(
        data=np.ascontiguousarray(data, dtype=np.float32)[None],
        geometry=geometry,
        channel_order=channel_order.upper(),
    )


class TensorEncoder:
    """Encoder bound to one model's preprocessing configuration."""

    def __init__(self, config: PreprocessConfig):
        self.config = config
        self._target_size = (int(config.target_size[0]), int(config.target_size[1]))
        self._policy = ResizePolicy(config.resize_policy)
        _channel_indices(config.channel_order)

    @property
    def target_size(self) -> Tuple[int, int]:
        return self._target_size

    @property
    def resize_policy(self) -> ResizePolicy:
        return self._policy

    def encode(self, frame: Frame) -> Optional[EncodedTensor]:
        tensor = encode(
            frame,
            self._target_size,
            self.config.channel_means,
            resize_policy=self._policy,
            channel_order=self.config.channel_order,
            channel_scale=self.config.channel_scale,
        )
        if tensor is None:
            logging.debug("Frame not ready, no input")
        return tensor
