"""
Face Overlay: live webcam face detection with boxes and confidence scores.

Loads the detection model once, opens the camera, and runs the frame loop at
the configured cadence. Results are drawn into an OpenCV window (--display)
and served as an MJPEG/JSON preview over HTTP.

Usage:
    python src/main.py --config config/config.yaml --display

Arguments:
    --config: Path to configuration file
    --display: Show the annotated preview window
    --device: Camera index or video file, overrides camera.device_id
    --no-web: Do not start the web preview
    --list-cameras: Print available cameras and exit
"""

import os
import sys
import argparse
import asyncio
import dataclasses
import logging
import threading
from typing import Any, Dict, Optional, Tuple

import cv2
import uvicorn
import yaml

from inference.errors import PipelineError
from inference.invoker import InferenceInvoker, validate_bindings
from inference.openvino_backend import load_and_compile
from models.config import Config
from observation import create_source_from_config, enumerate_devices
from ops.logging import setup_logging
from pipeline.engine import FrameLoopController, create_engine_from_config
from pipeline.scheduler import TickScheduler
from render.overlay import OverlayRenderer
from web.app import create_app
from web.state import PreviewState

VALID_RESIZE_POLICIES = ("letterbox", "stretch")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    required_sections = ['camera', 'model', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    camera = config.get('camera', {}) or {}
    if 'device_id' not in camera:
        return False, "Missing camera.device_id"
    if not isinstance(camera['device_id'], (int, str)) or isinstance(camera['device_id'], bool):
        return False, "camera.device_id must be an integer (index) or string (file path)"
    if isinstance(camera['device_id'], int) and camera['device_id'] < 0:
        return False, "camera.device_id integer must be non-negative"
    resolution = camera.get('resolution', [640, 480])
    if not isinstance(resolution, list) or len(resolution) != 2:
        return False, "camera.resolution must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in resolution):
        return False, "camera.resolution values must be positive integers"
    attempts = camera.get('open_attempts', 3)
    if not isinstance(attempts, int) or isinstance(attempts, bool) or attempts < 1:
        return False, "camera.open_attempts must be a positive integer"

    model = config.get('model', {}) or {}
    if not isinstance(model.get('path'), str) or not model.get('path'):
        return False, "model.path must be a non-empty string"

    pre = config.get('preprocess', {}) or {}
    target_size = pre.get('target_size', [256, 256])
    if (
        not isinstance(target_size, list)
        or len(target_size) != 2
        or not all(isinstance(x, int) and x > 0 for x in target_size)
    ):
        return False, "preprocess.target_size must be [width, height] positive integers"
    means = pre.get('channel_means', [0, 0, 0])
    if not isinstance(means, list) or len(means) != 3 or not all(_is_number(m) for m in means):
        return False, "preprocess.channel_means must be a list of 3 numbers"
    if pre.get('resize_policy', 'letterbox') not in VALID_RESIZE_POLICIES:
        return False, f"preprocess.resize_policy must be one of {VALID_RESIZE_POLICIES}"
    order = str(pre.get('channel_order', 'BGR')).upper()
    if len(order) != 3 or set(order) != set("RGB"):
        return False, "preprocess.channel_order must be a permutation of RGB"
    scale = pre.get('channel_scale', 1.0)
    if not _is_number(scale) or scale == 0:
        return False, "preprocess.channel_scale must be a non-zero number"

    dec = config.get('decoder', {}) or {}
    stride = dec.get('record_stride', 7)
    if not isinstance(stride, int) or stride < 7:
        return False, "decoder.record_stride must be an integer >= 7"
    max_records = dec.get('max_records', 200)
    if not isinstance(max_records, int) or max_records <= 0:
        return False, "decoder.max_records must be a positive integer"
    threshold = dec.get('confidence_threshold', 0.15)
    if not _is_number(threshold) or not 0.0 <= threshold <= 1.0:
        return False, "decoder.confidence_threshold must be between 0 and 1"

    loop_cfg = config.get('loop', {}) or {}
    tick_hz = loop_cfg.get('tick_hz', 30.0)
    if not _is_number(tick_hz) or tick_hz <= 0:
        return False, "loop.tick_hz must be positive"

    if config['log_level'] not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        return False, f"Invalid log_level: {config['log_level']}"

    return True, None


def _parse_device(value: str):
    return int(value) if value.isdigit() else value


def start_web(preview: PreviewState, host: str, port: int) -> threading.Thread:
    def run_web_app():
        uvicorn.run(
            create_app(preview),
            host=host,
            port=port,
            log_level="warning",
        )

    web_thread = threading.Thread(target=run_web_app, daemon=True)
    web_thread.start()
    logging.info(f"Web preview started on http://{host}:{port}/api/camera/live.mjpg")
    return web_thread


async def run_display(renderer: OverlayRenderer, scheduler: TickScheduler, fps: float = 30.0) -> None:
    """Show the latest annotated frame until 'q' is pressed or the scheduler stops."""
    delay = 1.0 / fps
    try:
        while scheduler.running:
            frame = renderer.get_frame()
            if frame is not None:
                cv2.imshow("Face Overlay", frame)
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                logging.info("Display closed by user")
                scheduler.stop()
                break
            await asyncio.sleep(delay)
    finally:
        cv2.destroyAllWindows()


async def run_session(cfg: Config, display: bool, web: bool) -> int:
    """Run one camera session. Returns the process exit code."""
    # Setup errors end the session before any frame is processed.
    try:
        handle = load_and_compile(cfg.model.path, cfg.model.device)
        input_name, output_name = validate_bindings(handle, cfg.model.input_binding, cfg.model.output_binding)
    except PipelineError as e:
        logging.error(f"Failed to initialize model: {e}")
        return 1
    logging.info(f"Model bindings: input={input_name}, output={output_name}, shape={handle.input_shape(input_name)}")

    source = create_source_from_config(cfg.camera, source_id=f"camera-{cfg.camera.device_id}")
    try:
        await asyncio.to_thread(source.open)
    except RuntimeError as e:
        logging.error(f"Failed to open camera: {e}")
        return 1

    invoker = InferenceInvoker(handle)
    renderer = OverlayRenderer()
    controller: FrameLoopController = create_engine_from_config(cfg, invoker, source, renderer)
    scheduler = TickScheduler.from_hz(controller.tick, cfg.loop.tick_hz)
    loop = asyncio.get_running_loop()

    def select_device(device_id: int) -> None:
        camera = dataclasses.replace(cfg.camera, device_id=device_id)
        new_source = create_source_from_config(camera, source_id=f"camera-{device_id}")
        future = asyncio.run_coroutine_threadsafe(controller.switch_source(new_source), loop)
        future.result(timeout=30)

    if web and cfg.web.enabled:
        preview = PreviewState(
            renderer=renderer,
            controller=controller,
            model_info=handle.describe(),
            list_devices=enumerate_devices,
            select_device=select_device,
        )
        start_web(preview, cfg.web.host, cfg.web.port)

    logging.info(f"Frame loop running at {cfg.loop.tick_hz} Hz")
    tasks = [asyncio.create_task(scheduler.run())]
    if display:
        tasks.append(asyncio.create_task(run_display(renderer, scheduler)))

    exit_code = 0
    try:
        await asyncio.gather(*tasks)
    except PipelineError as e:
        logging.error(f"Session aborted: {e}")
        exit_code = 1
    finally:
        scheduler.stop()
        await controller.close()
        invoker.close()
    return exit_code


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Face Overlay - live webcam face detection')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--display', action='store_true',
                        help='Show the annotated preview window')
    parser.add_argument('--device', type=str, default=None,
                        help='Camera index or video file (overrides camera.device_id)')
    parser.add_argument('--no-web', action='store_true',
                        help='Do not start the web preview')
    parser.add_argument('--list-cameras', action='store_true',
                        help='Print available cameras and exit')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.device is not None:
        config.setdefault('camera', {})['device_id'] = _parse_device(args.device)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    setup_logging(config['log_path'], config['log_level'])

    if args.list_cameras:
        for device in enumerate_devices():
            print(f"{device.device_id}: {device.label}")
        return

    logging.info("Starting Face Overlay")
    cfg = Config.from_dict(config)

    try:
        exit_code = asyncio.run(run_session(cfg, display=args.display, web=not args.no_web))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        exit_code = 0

    logging.info("Face Overlay stopped")
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
