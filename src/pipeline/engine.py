"""
Frame loop controller for the face overlay pipeline.

One tick runs one cycle as a single suspend/resume chain:

    acquire frame -> encode -> infer -> decode -> publish

Ticks that arrive while a cycle is still running are dropped, not queued, so
latency stays bounded when inference is slower than the display cadence.
Per-tick failures are logged and absorbed; setup failures (ModelNotReady,
BindingNotFound) propagate and end the session.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from inference.errors import InferenceBusy, InputUnavailable, PipelineError
from inference.invoker import InferenceInvoker
from models.config import Config
from models.frame import Frame
from models.result import CycleResult
from observation.base import ObservationSource
from postprocess.decoder import DetectionDecoder, to_frame_coordinates
from preprocess.encoder import TensorEncoder
from render.base import Renderer


class LoopState(str, Enum):
    IDLE = "idle"
    ENCODING = "encoding"
    INFERRING = "inferring"
    DECODING = "decoding"
    ERROR = "error"


_BUSY_STATES = (LoopState.ENCODING, LoopState.INFERRING, LoopState.DECODING)


@dataclass
class PipelineConfig:
    """
    Configuration for the frame loop.

    Attributes:
        input_binding: Model input name (None = first input).
        output_binding: Model output name (None = first output).
        stats_log_interval: Seconds between status log messages.
    """
    input_binding: Optional[str] = None
    output_binding: Optional[str] = None
    stats_log_interval: float = 60.0


@dataclass
class PipelineStats:
    """Runtime statistics for the frame loop."""
    ticks: int = 0
    cycles: int = 0
    dropped_ticks: int = 0
    no_input: int = 0
    errors: int = 0
    stale_results: int = 0
    last_latency_ms: Optional[float] = None
    last_result_time: Optional[float] = None
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            "ticks": self.ticks,
            "cycles": self.cycles,
            "dropped_ticks": self.dropped_ticks,
            "no_input": self.no_input,
            "errors": self.errors,
            "stale_results": self.stale_results,
            "last_latency_ms": self.last_latency_ms,
            "last_result_time": self.last_result_time,
            "uptime_seconds": int(time.time() - self.start_time),
        }


class FrameLoopController:
    """
    Drives encode -> infer -> decode -> publish once per tick.

    The model handle is injected through the invoker and lives as long as the
    session. Switching sources swaps the source and bumps a generation
    counter in one step; a cycle that started under an older generation or
    another source never publishes.

    Ticks must run as their own tasks (TickScheduler does this) so that
    switch_source() can cancel an in-flight cycle without cancelling its caller.

    Example:
        controller = FrameLoopController(source, invoker, encoder, decoder, renderer)
        await TickScheduler(controller.tick, interval=1 / 30).run()
    """

    def __init__(
        self,
        source: ObservationSource,
        invoker: InferenceInvoker,
        encoder: TensorEncoder,
        decoder: DetectionDecoder,
        renderer: Renderer,
        config: Optional[PipelineConfig] = None,
    ):
        self._source = source
        self._invoker = invoker
        self._encoder = encoder
        self._decoder = decoder
        self._renderer = renderer
        self.config = config or PipelineConfig()
        self.stats = PipelineStats()
        self._state = LoopState.IDLE
        self._generation = 0
        self._cycle_task: Optional[asyncio.Task] = None

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def source(self) -> ObservationSource:
        return self._source

    async def tick(self) -> Optional[CycleResult]:
        """
        Run one pipeline cycle, or do nothing if one is already running.

        Returns the published result, or None if the tick was dropped, failed,
        or its result went stale.
        """
        self.stats.ticks += 1
        if self._state in _BUSY_STATES:
            self.stats.dropped_ticks += 1
            logging.debug(f"Tick dropped: cycle still {self._state.value}")
            return None

        # No await between the check above and this transition.
        self._state = LoopState.ENCODING
        generation = self._generation
        source = self._source
        task = asyncio.current_task()
        self._cycle_task = task

        try:
            result = await self._run_cycle(generation, source)
        except asyncio.CancelledError:
            logging.info(f"Frame cycle cancelled (generation={generation})")
            if self._cycle_task is task:
                self._state = LoopState.IDLE
            raise
        except PipelineError as e:
            self.stats.errors += 1
            self._state = LoopState.ERROR
            if e.fatal:
                logging.error(f"Fatal pipeline error: {e}")
                raise
            if isinstance(e, InferenceBusy):
                logging.debug(f"Frame cycle skipped: {e}")
            else:
                logging.warning(f"Frame cycle failed: {e}")
            return None
        except Exception as e:
            self.stats.errors += 1
            self._state = LoopState.ERROR
            logging.exception(f"Unexpected error in frame cycle: {e}")
            return None
        finally:
            if self._cycle_task is task:
                self._cycle_task = None

        self._state = LoopState.IDLE
        self._handle_periodic_tasks()
        return result

    def _is_stale(self, generation: int, source: ObservationSource) -> bool:
        return generation != self._generation or source is not self._source

    async def _run_cycle(self, generation: int, source: ObservationSource) -> Optional[CycleResult]:
        started = time.perf_counter()

        try:
            frame = await self._acquire_frame(source)
        except InputUnavailable as e:
            logging.debug(f"No input: {e}")
            frame = None
        if self._is_stale(generation, source):
            return self._discard_stale(generation)

        tensor = self._encoder.encode(frame) if frame is not None else None
        if tensor is None:
            self.stats.no_input += 1
            result = CycleResult.no_input(
                source=frame.source if frame is not None else source.source_id,
                timestamp=frame.timestamp if frame is not None else time.time(),
                frame_index=frame.frame_index if frame is not None else 0,
            )
            return await self._publish(result, generation, source)

        self._state = LoopState.INFERRING
        output = await self._invoker.infer(
            tensor,
            self.config.input_binding,
            self.config.output_binding,
        )
        if self._is_stale(generation, source):
            return self._discard_stale(generation)

        self._state = LoopState.DECODING
        detections = self._decoder.decode(output)
        detections = to_frame_coordinates(detections, tensor.geometry)
        del tensor, output

        result = CycleResult(
            detections=detections,
            input_available=True,
            frame_index=frame.frame_index,
            source=frame.source,
            timestamp=frame.timestamp,
            latency_ms=(time.perf_counter() - started) * 1000.0,
            frame=frame,
        )
        if detections:
            logging.debug(
                f"frame={frame.frame_index} detections={len(detections)} "
                f"top={detections[0].confidence:.2f}"
            )
        return await self._publish(result, generation, source)

    async def _acquire_frame(self, source: ObservationSource) -> Optional[Frame]:
        if not source.is_open:
            raise InputUnavailable(f"Source {source.source_id} is not open")
        try:
            return await asyncio.to_thread(source.read)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise InputUnavailable(f"Frame read failed: {e}") from e

    async def _publish(
        self,
        result: CycleResult,
        generation: int,
        source: ObservationSource,
    ) -> Optional[CycleResult]:
        # Frames tagged with another stream's id never reach the renderer.
        if self._is_stale(generation, source) or result.source not in (None, source.source_id):
            return self._discard_stale(generation)

        outcome = self._renderer.publish(result)
        if inspect.isawaitable(outcome):
            await outcome

        self.stats.cycles += 1
        self.stats.last_latency_ms = result.latency_ms
        self.stats.last_result_time = time.time()
        return result

    def _discard_stale(self, generation: int) -> None:
        self.stats.stale_results += 1
        logging.debug(f"Discarding result from stale generation {generation} (current={self._generation})")
        return None

    def _handle_periodic_tasks(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time >= self.config.stats_log_interval:
            logging.info(
                f"Pipeline stats: ticks={self.stats.ticks}, cycles={self.stats.cycles}, "
                f"dropped={self.stats.dropped_ticks}, no_input={self.stats.no_input}, "
                f"errors={self.stats.errors}, last_latency_ms={self.stats.last_latency_ms}"
            )
            self.stats.last_stats_log_time = now

    async def cancel_cycle(self) -> None:
        """Invalidate and cancel the in-flight cycle, if any."""
        self._generation += 1
        await self._cancel_running_cycle()

    async def _cancel_running_cycle(self) -> None:
        task = self._cycle_task
        if task is None or task.done() or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.wait([task])
        # A tick may have started a new cycle while we waited; leave it alone.
        if self._cycle_task is task:
            self._cycle_task = None
            self._state = LoopState.IDLE

    async def switch_source(self, source: ObservationSource) -> None:
        """
        Replace the frame source mid-stream.

        The new source is opened first; if that fails the current source stays
        in place and the error propagates. Otherwise the source swap and the
        generation bump happen together, the in-flight cycle is cancelled and
        the previous source is closed.
        """
        if not source.is_open:
            await asyncio.to_thread(source.open)

        old, self._source = self._source, source
        self._generation += 1
        logging.info(f"Switching source: {old.source_id} -> {source.source_id}")

        await self._cancel_running_cycle()
        try:
            old.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")

    async def close(self) -> None:
        """Stop publishing and release the source. The model handle is left to its owner."""
        await self.cancel_cycle()
        try:
            self._source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
        logging.info("Pipeline stopped")


def create_engine_from_config(
    config: Config,
    invoker: InferenceInvoker,
    source: ObservationSource,
    renderer: Renderer,
) -> FrameLoopController:
    """
    Factory function to create a FrameLoopController from the typed config.

    Args:
        config: Full application config.
        invoker: Invoker wrapping the session's model handle.
        source: Opened (or openable) frame source.
        renderer: Receiver of per-cycle results.
    """
    pipeline_config = PipelineConfig(
        input_binding=config.model.input_binding,
        output_binding=config.model.output_binding,
        stats_log_interval=config.loop.stats_log_interval,
    )
    return FrameLoopController(
        source=source,
        invoker=invoker,
        encoder=TensorEncoder(config.preprocess),
        decoder=DetectionDecoder(config.decoder),
        renderer=renderer,
        config=pipeline_config,
    )
