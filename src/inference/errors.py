"""
Pipeline error taxonomy.

Per-tick errors (InputUnavailable, InferenceFailed, DecodeMismatch,
InferenceBusy) are absorbed by the frame loop. Setup errors (ModelNotReady,
BindingNotFound) abort the session.
"""

from __future__ import annotations


class PipelineError(Exception):
    """Base class for all frame pipeline errors."""

    fatal = False


class InputUnavailable(PipelineError):
    """No usable frame yet (camera metadata not loaded, read failed)."""


class ModelNotReady(PipelineError):
    """The model handle is missing, failed to load, or was never compiled."""

    fatal = True


class BindingNotFound(PipelineError):
    """A configured input/output name does not exist on the compiled model."""

    fatal = True

    def __init__(self, name: str, available):
        self.name = name
        self.available = list(available)
        super().__init__(f"Binding '{name}' not found (available: {self.available})")


class InferenceFailed(PipelineError):
    """The underlying inference computation raised or returned garbage."""


class DecodeMismatch(InferenceFailed):
    """Output buffer is smaller than record_stride * max_records."""

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Output buffer has {actual} values, expected at least {expected}")


class InferenceBusy(PipelineError):
    """A request against the same handle is still in flight."""
