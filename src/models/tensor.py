"""
Tensor models passed between the encoder, the invoker and the decoder.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class TensorGeometry:
    """
    Where the source frame landed inside the model input.

    Attributes:
        source_size: Original frame (width, height).
        target_size: Tensor (width, height).
        scaled_size: Size of the resized content inside the tensor.
        offset: (x, y) of the content's top-left corner inside the tensor.
    """
    source_size: Tuple[int, int]
    target_size: Tuple[int, int]
    scaled_size: Tuple[int, int]
    offset: Tuple[int, int]

    @property
    def is_identity(self) -> bool:
        """True when the content fills the whole tensor (stretch resize)."""
        return self.offset == (0, 0) and self.scaled_size == self.target_size


@dataclass
class EncodedTensor:
    """
    Planar NCHW float32 model input for one frame cycle.

    Attributes:
        data: Array of shape (1, 3, height, width).
        geometry: How the source frame was placed inside the tensor.
        channel_order: Channel order of the planes, e.g. "BGR".
    """
    data: np.ndarray
    geometry: TensorGeometry
    channel_order: str = "BGR"

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self.data.shape)

    def channel(self, index: int) -> np.ndarray:
        """Return one H x W channel plane."""
        return self.data[0, index]


@dataclass(frozen=True)
class InferenceOutput:
    """
    Flat float32 output buffer of one inference request.

    The array is marked read-only on construction.
    """
    data: np.ndarray

    def __post_init__(self) -> None:
        flat = np.array(self.data, dtype=np.float32).reshape(-1)
        flat.setflags(write=False)
        object.__setattr__(self, "data", flat)

    def __len__(self) -> int:
        return int(self.data.size)
