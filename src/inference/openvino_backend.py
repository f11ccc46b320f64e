"""
OpenVINO model handle.

Reads an IR model (.xml/.bin) from local storage, compiles it for a device and
creates a single infer request. OpenVINO is imported lazily so the rest of the
project (and its tests) run without it.
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Tuple

import numpy as np

from .errors import BindingNotFound, ModelNotReady


class OpenVinoModelHandle:
    """Compiled model + infer request pair implementing ModelHandle."""

    def __init__(self, compiled_model: Any, infer_request: Any, model_path: str = "", device: str = "CPU"):
        self._compiled = compiled_model
        self._request = infer_request
        self.model_path = model_path
        self.device = device
        self._inputs = {p.get_any_name(): p for p in compiled_model.inputs}
        self._outputs = {p.get_any_name(): p for p in compiled_model.outputs}

    @property
    def is_ready(self) -> bool:
        return self._compiled is not None and self._request is not None

    @property
    def input_names(self) -> List[str]:
        return list(self._inputs)

    @property
    def output_names(self) -> List[str]:
        return list(self._outputs)

    def input_shape(self, name: str) -> Tuple[int, ...]:
        if name not in self._inputs:
            raise BindingNotFound(name, self._inputs)
        return tuple(int(d) for d in self._inputs[name].shape)

    def output_shape(self, name: str) -> Tuple[int, ...]:
        if name not in self._outputs:
            raise BindingNotFound(name, self._outputs)
        return tuple(int(d) for d in self._outputs[name].shape)

    def infer(self, bindings: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        self._request.infer({self._inputs[name]: arr for name, arr in bindings.items()})
        return {
            name: np.array(self._request.get_tensor(port).data, copy=True)
            for name, port in self._outputs.items()
        }

    def describe(self) -> Dict[str, Any]:
        return {
            "model_path": self.model_path,
            "device": self.device,
            "inputs": {n: list(self.input_shape(n)) for n in self._inputs},
            "outputs": {n: list(self.output_shape(n)) for n in self._outputs},
        }


def load_and_compile(model_path: str, device: str = "CPU") -> OpenVinoModelHandle:
    """
    Read and compile an IR model, returning a ready handle.

    Raises:
        ModelNotReady: If OpenVINO is missing, the file does not exist, or
            compilation fails.
    """
    if not os.path.exists(model_path):
        raise ModelNotReady(f"Model file doesn't exist at {model_path}")

    try:
        import openvino as ov  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ModelNotReady(
            "OpenVINO is not installed. Install with `pip install openvino`."
        ) from e

    try:
        core = ov.Core()
        model = core.read_model(model_path)
        logging.info(f"Model inputs: {len(model.inputs)}, outputs: {len(model.outputs)}")
        if model.inputs:
            logging.info(f"Input shape: {model.inputs[0].partial_shape}")
        if model.outputs:
            logging.info(f"Output shape: {model.outputs[0].partial_shape}")

        compiled = core.compile_model(model, device)
        request = compiled.create_infer_request()
    except Exception as e:
        raise ModelNotReady(f"Failed to compile {model_path} for {device}: {e}") from e

    logging.info(f"OpenVINO initialization successful: device={device}")
    return OpenVinoModelHandle(compiled, request, model_path=model_path, device=device)
