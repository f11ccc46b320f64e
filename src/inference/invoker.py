"""
Inference invoker: submits one encoded tensor to a model handle and awaits the output.

The handle's infer() blocks, so it runs on a dedicated single worker thread
while the event loop stays free. Only one request may be outstanding against
the handle; a second one is rejected with InferenceBusy rather than queued.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

from models.tensor import EncodedTensor, InferenceOutput
from .backend import ModelHandle
from .errors import BindingNotFound, InferenceBusy, InferenceFailed, ModelNotReady


def validate_bindings(
    handle: Optional[ModelHandle],
    input_binding: Optional[str],
    output_binding: Optional[str] = None,
) -> tuple[str, str]:
    """
    Resolve and check binding names against the compiled model.

    None selects the model's first input/output.

    Returns:
        (input_name, output_name)

    Raises:
        ModelNotReady: Handle is missing or not compiled.
        BindingNotFound: A requested name is not on the model.
    """
    if handle is None or not handle.is_ready:
        raise ModelNotReady("Model handle is not initialized")

    inputs = list(handle.input_names)
    outputs = list(handle.output_names)
    if not inputs or not outputs:
        raise ModelNotReady("Model has no inputs or outputs")

    input_name = input_binding if input_binding is not None else inputs[0]
    output_name = output_binding if output_binding is not None else outputs[0]
    if input_name not in inputs:
        raise BindingNotFound(input_name, inputs)
    if output_name not in outputs:
        raise BindingNotFound(output_name, outputs)
    return input_name, output_name


class InferenceInvoker:
    """
    Request/response wrapper around one ModelHandle.

    Example:
        invoker = InferenceInvoker(handle)
        output = await invoker.infer(tensor, "data")
        invoker.close()
    """

    def __init__(self, handle: Optional[ModelHandle]):
        self._handle = handle
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")
        self._in_flight = False
        self.invocations = 0

    @property
    def handle(self) -> Optional[ModelHandle]:
        return self._handle

    @property
    def in_flight(self) -> bool:
        """True while a request is running on the worker thread."""
        return self._in_flight

    async def infer(
        self,
        tensor: EncodedTensor,
        input_binding: Optional[str],
        output_binding: Optional[str] = None,
    ) -> InferenceOutput:
        """
        Run one inference request.

        Raises:
            ModelNotReady: Handle missing or uncompiled.
            BindingNotFound: Input/output name absent from the model.
            InferenceBusy: A previous request is still outstanding.
            InferenceFailed: The computation itself failed.
        """
        input_name, output_name = validate_bindings(self._handle, input_binding, output_binding)
        if self._in_flight:
            raise InferenceBusy("Inference already in flight for this model handle")

        loop = asyncio.get_running_loop()
        handle = self._handle
        bindings = {input_name: tensor.data}

        self._in_flight = True
        self.invocations += 1
        try:
            future = self._executor.submit(handle.infer, bindings)
        except RuntimeError as e:
            self._in_flight = False
            raise ModelNotReady("Invoker has been closed") from e

        # The flag is cleared by the worker's completion, not by the awaiting
        # task, so a cancelled cycle cannot let a second request overlap.
        def _on_done(_) -> None:
            if loop.is_closed():
                self._in_flight = False
                return
            try:
                loop.call_soon_threadsafe(self._clear_in_flight)
            except RuntimeError:
                self._in_flight = False

        future.add_done_callback(_on_done)

        try:
            outputs = await asyncio.wrap_future(future)
        except asyncio.CancelledError:
            logging.debug("Inference await cancelled; request will finish in background")
            raise
        except Exception as e:
            raise InferenceFailed(f"Inference failed: {e}") from e

        if output_name not in outputs:
            raise BindingNotFound(output_name, outputs)
        try:
            return InferenceOutput(outputs[output_name])
        except (TypeError, ValueError) as e:
            raise InferenceFailed(f"Output '{output_name}' is not numeric: {e}") from e

    def _clear_in_flight(self) -> None:
        self._in_flight = False

    def close(self) -> None:
        """Release the worker thread. Pending work is allowed to finish."""
        self._executor.shutdown(wait=False)
