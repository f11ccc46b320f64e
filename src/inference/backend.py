"""
Model handle interface.

A handle is a compiled model plus one inference session. It is created once at
startup, owned by the session, and invoked by at most one request at a time.
"""

from __future__ import annotations

from typing import Dict, List, Protocol, Tuple

import numpy as np


class ModelHandle(Protocol):
    @property
    def is_ready(self) -> bool:
        ...

    @property
    def input_names(self) -> List[str]:
        ...

    @property
    def output_names(self) -> List[str]:
        ...

    def input_shape(self, name: str) -> Tuple[int, ...]:
        ...

    def infer(self, bindings: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        ...
