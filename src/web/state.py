from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from observation.devices import DeviceDescriptor
from render.overlay import OverlayRenderer


@dataclass
class PreviewState:
    """
    What the web layer can see of the running session.

    Passed to create_app() instead of a module-level singleton.
    """
    renderer: OverlayRenderer
    controller: Any = None
    model_info: Dict[str, Any] = field(default_factory=dict)
    list_devices: Optional[Callable[[], List[DeviceDescriptor]]] = None
    select_device: Optional[Callable[[int], None]] = None

    def loop_state(self) -> str:
        if self.controller is None:
            return "stopped"
        return self.controller.state.value

    def stats(self) -> Dict[str, Any]:
        if self.controller is None:
            return {}
        return self.controller.stats.to_dict()

    def source_id(self) -> Optional[str]:
        if self.controller is None:
            return None
        return self.controller.source.source_id
