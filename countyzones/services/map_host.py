"""
Map rendering host contract.

The editor never draws anything itself. It hands the host polygons to render
(with a style and optional per-polygon event handlers) and listens to
map-level pointer events. Tile rendering and pan/zoom chrome belong to the
host.

Event names delivered through MapHost.on():
- "mousedown", "mouseup", "mouseout": map canvas events
- "window:mouseup": window-level pointer release, the commit safety net
Per-polygon handlers use "click" and "mousemove".

Author: CountyZones Project
License: AGPL-3.0
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

MAP_EVENTS = ("mousedown", "mouseup", "mouseout")
WINDOW_MOUSEUP = "window:mouseup"

Handler = Callable[..., None]


class MapHost(Protocol):
    def on(self, event: str, handler: Handler) -> None: ...

    def off(self, event: str, handler: Handler) -> None: ...

    def enable_dragging(self) -> None: ...

    def disable_dragging(self) -> None: ...


@dataclass(frozen=True)
class PointerEvent:
    """Minimal pointer payload; alt_key selects erase painting."""

    alt_key: bool = False
    lat: Optional[float] = None
    lng: Optional[float] = None


@dataclass(frozen=True)
class PathStyle:
    color: str
    weight: int
    fill_opacity: float
    fill_color: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        style = {"color": self.color, "weight": self.weight, "fillOpacity": self.fill_opacity}
        if self.fill_color is not None:
            style["fillColor"] = self.fill_color
        return style


SELECTED_CELL = PathStyle(color="green", weight=1, fill_opacity=0.3)
UNSELECTED_CELL = PathStyle(color="gray", weight=1, fill_opacity=0.05)
ZONE_CELL = PathStyle(color="green", weight=2, fill_opacity=0.3, fill_color="green")
EDITOR_MASK = PathStyle(color="black", weight=0, fill_opacity=0.5, fill_color="black")


@dataclass(frozen=True)
class RenderedPolygon:
    key: str
    positions: Tuple
    style: PathStyle
    interactive: bool = False
    handlers: Dict[str, Handler] = field(default_factory=dict, compare=False)
    cell_id: Optional[int] = None
