"""
Inference layer: model handle contract, OpenVINO loading and the invoker.
"""

from .backend import ModelHandle
from .errors import (
    PipelineError,
    InputUnavailable,
    ModelNotReady,
    BindingNotFound,
    InferenceFailed,
    DecodeMismatch,
    InferenceBusy,
)
from .invoker import InferenceInvoker, validate_bindings
from .openvino_backend import OpenVinoModelHandle, load_and_compile

__all__ = [
    "ModelHandle",
    "PipelineError",
    "InputUnavailable",
    "ModelNotReady",
    "BindingNotFound",
    "InferenceFailed",
    "DecodeMismatch",
    "InferenceBusy",
    "InferenceInvoker",
    "validate_bindings",
    "OpenVinoModelHandle",
    "load_and_compile",
]
