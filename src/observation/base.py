"""
ObservationSource interface for pluggable frame sources.

The frame pipeline only consumes frames; opening, closing and device
selection stay with the source and its owner.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from models.frame import Frame


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.

    Attributes:
        source_id: Unique identifier for this source (e.g., "cam-0").
        resolution: Target resolution as (width, height). None = use source default.
        fps: Target frames per second. None = use source default.
        metadata: Additional source-specific configuration.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None
    fps: Optional[int] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.

    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Current frame index (number of frames read since open)."""
        return self._frame_index

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.

        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[Frame]:
        """
        Read the next frame from the source.

        Returns:
            A Frame (possibly empty while the device warms up), or None if no
            frame is available.
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """
        Close/release the observation source.

        Safe to call multiple times.
        """
        pass
