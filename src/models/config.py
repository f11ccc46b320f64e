"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

# Per-channel means of face-detection-retail-0005, in B, G, R order.
DEFAULT_CHANNEL_MEANS = [102.9801, 115.9465, 122.7717]
DEFAULT_MODEL_PATH = "models/face-detection-retail-0005/FP16-INT8/1/face-detection-retail-0005.xml"


@dataclass
class CameraConfig:
    """
    Camera configuration.

    device_id is a webcam index or a video file path. open_attempts is how
    many times opening the device is tried before giving up.
    """
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    resolution: List[int] = field(default_factory=lambda: [640, 480])
    fps: int = 30
    flip_horizontal: bool = False
    open_attempts: int = 3

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            resolution=d.get("resolution", [640, 480]),
            fps=d.get("fps", 30),
            flip_horizontal=d.get("flip_horizontal", False),
            open_attempts=d.get("open_attempts", 3),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "resolution": self.resolution,
            "fps": self.fps,
            "flip_horizontal": self.flip_horizontal,
            "open_attempts": self.open_attempts,
        }


@dataclass
class ModelConfig:
    """
    Model location and bindings.

    input_binding/output_binding of None select the model's first input/output.
    """
    path: str = DEFAULT_MODEL_PATH
    device: str = "CPU"
    input_binding: Optional[str] = None
    output_binding: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            path=d.get("path", DEFAULT_MODEL_PATH),
            device=d.get("device", "CPU"),
            input_binding=d.get("input_binding"),
            output_binding=d.get("output_binding"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "path": self.path,
            "device": self.device,
        }
        if self.input_binding is not None:
            d["input_binding"] = self.input_binding
        if self.output_binding is not None:
            d["output_binding"] = self.output_binding
        return d


@dataclass
class PreprocessConfig:
    """
    Tensor encoding parameters required by the model.

    Attributes:
        target_size: Model input (width, height).
        channel_means: Per-channel means, listed in channel_order.
        channel_order: Plane order of the encoded tensor ("BGR" or "RGB").
        resize_policy: "letterbox" (aspect-preserving, zero padded, centered)
            or "stretch" (direct resize).
        channel_scale: Divisor applied after mean subtraction; 1.0 is a no-op.
    """
    target_size: List[int] = field(default_factory=lambda: [256, 256])
    channel_means: List[float] = field(default_factory=lambda: list(DEFAULT_CHANNEL_MEANS))
    channel_order: str = "BGR"
    resize_policy: str = "letterbox"
    channel_scale: float = 1.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PreprocessConfig":
        return cls(
            target_size=d.get("target_size", [256, 256]),
            channel_means=d.get("channel_means", list(DEFAULT_CHANNEL_MEANS)),
            channel_order=d.get("channel_order", "BGR"),
            resize_policy=d.get("resize_policy", "letterbox"),
            channel_scale=d.get("channel_scale", 1.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target_size": self.target_size,
            "channel_means": self.channel_means,
            "channel_order": self.channel_order,
            "resize_policy": self.resize_policy,
            "channel_scale": self.channel_scale,
        }


@dataclass
class DecoderConfig:
    """
    Output decoding parameters.

    layout optionally overrides field positions inside a record, e.g.
    {"confidence": 2, "x_min": 3, "y_min": 4, "x_max": 5, "y_max": 6}.
    """
    record_stride: int = 7
    max_records: int = 200
    confidence_threshold: float = 0.15
    layout: Optional[Dict[str, int]] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DecoderConfig":
        return cls(
            record_stride=d.get("record_stride", 7),
            max_records=d.get("max_records", 200),
            confidence_threshold=d.get("confidence_threshold", 0.15),
            layout=d.get("layout"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "record_stride": self.record_stride,
            "max_records": self.max_records,
            "confidence_threshold": self.confidence_threshold,
        }
        if self.layout is not None:
            d["layout"] = self.layout
        return d


@dataclass
class LoopConfig:
    """Frame loop cadence."""
    tick_hz: float = 30.0
    stats_log_interval: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        return cls(
            tick_hz=d.get("tick_hz", 30.0),
            stats_log_interval=d.get("stats_log_interval", 60.0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tick_hz": self.tick_hz,
            "stats_log_interval": self.stats_log_interval,
        }


@dataclass
class WebConfig:
    """Web preview configuration."""
    enabled: bool = True
    host: str = "0.0.0.0"
    port: int = 5000

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            enabled=d.get("enabled", True),
            host=d.get("host", "0.0.0.0"),
            port=d.get("port", 5000),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "enabled": self.enabled,
            "host": self.host,
            "port": self.port,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    decoder: DecoderConfig = field(default_factory=DecoderConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/face_overlay.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            preprocess=PreprocessConfig.from_dict(d.get("preprocess", {}) or {}),
            decoder=DecoderConfig.from_dict(d.get("decoder", {}) or {}),
            loop=LoopConfig.from_dict(d.get("loop", {}) or {}),
            web=WebConfig.from_dict(d.get("web", {}) or {}),
            log_path=d.get("log_path", "logs/face_overlay.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary (for saving or logging)."""
        return {
            "camera": self.camera.to_dict(),
            "model": self.model.to_dict(),
            "preprocess": self.preprocess.to_dict(),
            "decoder": self.decoder.to_dict(),
            "loop": self.loop.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
