"""
Renderer interface.

A renderer receives one CycleResult per completed cycle and owns all pixel
drawing. publish() may return an awaitable; the frame loop awaits it.
"""

from __future__ import annotations

from typing import Any, Protocol

from models.result import CycleResult


class Renderer(Protocol):
    def publish(self, result: CycleResult) -> Any:
        ...
