"""
Zone Selection Controller

Owns the working set of selected cell ids for the county open in the editor
and turns pointer input into zone edits.

Transition table:

    state      input                   effect
    ---------  ----------------------  ------------------------------------------
    Idle       pointer_down(alt)       -> Painting(erase=alt), disable map drag
    Painting   pointer_move(cell)      add cell (erase: remove); no notification
    Painting   pointer_up / mouseout   -> Idle, enable map drag, notify snapshot
               / window mouseup
    Idle       pointer_up              no-op
    Idle       click(cell)             toggle cell, notify snapshot

The erase flag is fixed when painting starts. Callers are only ever handed a
de-duplicated, ascending list; per-cell drag mutations are never reported.
In read-only mode nothing is interactive and only persisted zone cells render.

Author: CountyZones Project
License: AGPL-3.0
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, List, Optional, Set

from countyzones.geo.types import GridCell, canonical_zones
from countyzones.services.map_host import (
    MAP_EVENTS,
    SELECTED_CELL,
    UNSELECTED_CELL,
    WINDOW_MOUSEUP,
    ZONE_CELL,
    MapHost,
    RenderedPolygon,
)

logger = logging.getLogger(__name__)

ZonesChangedFn = Callable[[List[int]], None]


@dataclass(frozen=True)
class PaintState:
    painting: bool = False
    erase: bool = False

    @classmethod
    def idle(cls) -> "PaintState":
        return cls(painting=False, erase=False)

    @classmethod
    def start(cls, erase: bool) -> "PaintState":
        return cls(painting=True, erase=bool(erase))


class ZoneSelectionController:
    def __init__(
        self,
        zones: Optional[Iterable[int]] = None,
        on_zones_changed: Optional[ZonesChangedFn] = None,
        editable: bool = True,
    ):
        self.working: Set[int] = set(canonical_zones(zones))
        self.on_zones_changed = on_zones_changed
        self.editable = editable
        self.state = PaintState.idle()
        self.host: Optional[MapHost] = None
        self._handlers = {}

    # ─── host wiring ─────────────────────────────────────────────────────

    def attach(self, host: MapHost) -> None:
        """Register map and window pointer listeners (editable mode only)."""
        if not self.editable or self.host is not None:
            return
        self.host = host
        self._handlers = {event: self._on_map_pointer_up for event in MAP_EVENTS}
        self._handlers["mousedown"] = self._on_map_pointer_down
        self._handlers[WINDOW_MOUSEUP] = self._on_map_pointer_up
        for event, handler in self._handlers.items():
            host.on(event, handler)

    def detach(self) -> None:
        """Unregister every listener and hand panning back to the map."""
        host = self.host
        if host is None:
            return
        for event, handler in self._handlers.items():
            host.off(event, handler)
        self._handlers = {}
        self.state = PaintState.idle()
        host.enable_dragging()
        self.host = None

    def _on_map_pointer_down(self, event=None) -> None:
        self.pointer_down(erase=bool(getattr(event, "alt_key", False)))

    def _on_map_pointer_up(self, event=None) -> None:
        self.pointer_up()

    # ─── transitions ─────────────────────────────────────────────────────

    def sync(self, zones: Optional[Iterable[int]]) -> None:
        """Replace the working set after an external change (county switch, parent update)."""
        self.working = set(canonical_zones(zones))
        if self.state.painting and self.host is not None:
            self.host.enable_dragging()
        self.state = PaintState.idle()

    def pointer_down(self, erase: bool = False) -> None:
        if not self.editable:
            return
        self.state = PaintState.start(erase)
        if self.host is not None:
            self.host.disable_dragging()

    def pointer_move(self, cell_id: int) -> None:
        if not self.editable or not self.state.painting:
            return
        if self.state.erase:
            self.working.discard(cell_id)
        else:
            self.working.add(cell_id)

    def pointer_up(self) -> None:
        if not self.state.painting:
            return
        self.state = PaintState.idle()
        if self.host is not None:
            self.host.enable_dragging()
        self._notify()

    def click(self, cell_id: int) -> None:
        if not self.editable:
            return
        if cell_id in self.working:
            self.working.discard(cell_id)
        else:
            self.working.add(cell_id)
        self._notify()

    def zones(self) -> List[int]:
        return list(canonical_zones(self.working))

    def _notify(self) -> None:
        snapshot = self.zones()
        logger.debug(f"Zones committed: {len(snapshot)} cells")
        if self.on_zones_changed is not None:
            self.on_zones_changed(snapshot)

    # ─── render model ────────────────────────────────────────────────────

    def render(self, cells: Iterable[GridCell]) -> List[RenderedPolygon]:
        if not self.editable:
            return [
                RenderedPolygon(key=f"zone-{cell.id}", positions=cell.rings, style=ZONE_CELL,
                                interactive=False, cell_id=cell.id)
                for cell in cells
                if cell.id in self.working
            ]
        return [
            RenderedPolygon(
                key=str(cell.id),
                positions=cell.rings,
                style=SELECTED_CELL if cell.id in self.working else UNSELECTED_CELL,
                interactive=True,
                handlers={
                    "click": partial(self._on_cell_click, cell.id),
                    "mousemove": partial(self._on_cell_move, cell.id),
                },
                cell_id=cell.id,
            )
            for cell in cells
        ]

    def _on_cell_click(self, cell_id: int, event=None) -> None:
        self.click(cell_id)

    def _on_cell_move(self, cell_id: int, event=None) -> None:
        self.pointer_move(cell_id)
