"""
Coverage editor session.

Architectural Overview:
    Responsibility: Wire the pieces into the interactive county map:
        - CoverageZoneEditor: one county's grid overlay (editable or read-only),
          owning a GridBuildCoordinator and a ZoneSelectionController
        - CoverageEditorSession: the county picker plus at most one editable
          overlay, read-only overlays for other partially covered counties,
          and hydration from persisted FIPS codes
    Key Interactions:
        - geo.geometry_index.GeometryIndex resolves county polygons
        - geo.scheduler builds grids without blocking the event loop
        - services.county_selection.CountySelectionReconciler owns the list
    Lifecycle:
        Every overlay must be closed: close() cancels its pending build and
        unregisters its map listeners.

Author: CountyZones Project
License: AGPL-3.0
"""

import logging
from typing import Callable, Dict, Iterable, List, Optional

from countyzones.core import config
from countyzones.geo.geometry_index import GeometryIndex
from countyzones.geo.geometry_utils import outside_mask
from countyzones.geo.scheduler import GridBuildCoordinator, GridBuildTask, IncrementalScheduler
from countyzones.geo.types import CountyFeature, GridCell, SelectedCounty
from countyzones.services.county_selection import CountySelectionReconciler, SelectionChangedFn
from countyzones.services.map_host import EDITOR_MASK, MapHost, RenderedPolygon
from countyzones.services.zone_selection import ZoneSelectionController

logger = logging.getLogger(__name__)


class CoverageZoneEditor:
    """
    Grid overlay for one county.

    The grid is only built and rendered while the map zoom is at least
    GRID_MIN_ZOOM and the county polygon is known.
    """

    def __init__(
        self,
        feature: Optional[CountyFeature],
        county: SelectedCounty,
        grid_size: int = config.DEFAULT_GRID_SIZE,
        clip_edges: bool = config.DEFAULT_CLIP_EDGES,
        editable: bool = False,
        on_update_zones: Optional[Callable[[str, List[int]], None]] = None,
        scheduler: Optional[IncrementalScheduler] = None,
        zoom: Optional[float] = None,
    ):
        self.feature = feature
        self.county = county
        self.grid_size = grid_size
        self.clip_edges = clip_edges
        self.editable = editable
        self.on_update_zones = on_update_zones
        self.zoom = zoom
        self.controller = ZoneSelectionController(
            zones=county.zone,
            on_zones_changed=self._zones_changed,
            editable=editable,
        )
        self.grid = GridBuildCoordinator(scheduler=scheduler)
        self._mask = None

    @property
    def geo_id(self) -> str:
        return self.county.geo_id

    @property
    def visible(self) -> bool:
        return self.zoom is not None and self.zoom >= config.GRID_MIN_ZOOM

    @property
    def loading(self) -> bool:
        return self.grid.loading

    @property
    def cells(self) -> List[GridCell]:
        return self.grid.cells

    def open(self, host: Optional[MapHost] = None) -> Optional[GridBuildTask]:
        if host is not None:
            self.controller.attach(host)
        return self.refresh()

    def refresh(self) -> Optional[GridBuildTask]:
        """Re-point the grid at the current (county, grid_size, clip_edges, zoom)."""
        if self.feature is None or not self.visible:
            return self.grid.request(None, self.grid_size, self.clip_edges)
        return self.grid.request(self.feature, self.grid_size, self.clip_edges)

    def set_zoom(self, zoom: float) -> Optional[GridBuildTask]:
        self.zoom = zoom
        return self.refresh()

    def update(
        self,
        county: Optional[SelectedCounty] = None,
        grid_size: Optional[int] = None,
        clip_edges: Optional[bool] = None,
    ) -> Optional[GridBuildTask]:
        """Apply new props; an external zone change replaces the working set."""
        if county is not None:
            if county.geo_id != self.county.geo_id or county.zone != tuple(self.controller.zones()):
                self.controller.sync(county.zone)
            self.county = county
        if grid_size is not None:
            self.grid_size = grid_size
        if clip_edges is not None:
            self.clip_edges = clip_edges
        return self.refresh()

    def _zones_changed(self, zones: List[int]) -> None:
        self.county = self.county.with_zones(zones)
        if self.on_update_zones is not None:
            self.on_update_zones(self.county.geo_id, zones)

    def mask(self):
        if self.feature is None or not self.editable:
            return None
        if self._mask is None:
            self._mask = outside_mask(self.feature.geometry)
        return self._mask

    def render(self) -> List[RenderedPolygon]:
        if self.feature is None or not self.visible:
            return []
        layers = []
        for i, rings in enumerate(self.mask() or []):
            layers.append(RenderedPolygon(key=f"mask-{i}", positions=rings, style=EDITOR_MASK))
        layers.extend(self.controller.render(self.grid.cells))
        return layers

    def close(self) -> None:
        self.grid.close()
        self.controller.detach()


class CoverageEditorSession:
    """
    County picker state plus zone overlays for one profile.

    Callers: hydrate() after the profile's FIPS list is known, forward picker
    emissions to on_picker_change(), open/close the zone editor with
    toggle_edit(), and persist to_fips() on save.
    """

    def __init__(
        self,
        index: GeometryIndex,
        host: Optional[MapHost] = None,
        grid_size: int = config.DEFAULT_GRID_SIZE,
        clip_edges: bool = config.DEFAULT_CLIP_EDGES,
        on_county_selection_changed: Optional[SelectionChangedFn] = None,
        scheduler: Optional[IncrementalScheduler] = None,
        zoom: Optional[float] = None,
    ):
        self.index = index
        self.host = host
        self.grid_size = grid_size
        self.clip_edges = clip_edges
        self.scheduler = scheduler or IncrementalScheduler()
        self.zoom = zoom
        self.on_county_selection_changed = on_county_selection_changed
        self.selection = CountySelectionReconciler(on_county_selection_changed=self._selection_changed)
        self.editor: Optional[CoverageZoneEditor] = None
        self.overlays: Dict[str, CoverageZoneEditor] = {}

    @property
    def counties(self) -> List[SelectedCounty]:
        return list(self.selection.counties)

    async def hydrate(self, fips_list: Iterable[str]) -> bool:
        hydrated = await self.selection.hydrate(self.index, fips_list)
        if hydrated:
            self._sync_overlays()
        return hydrated

    def on_picker_change(self, emitted: List[SelectedCounty]) -> List[SelectedCounty]:
        return self.selection.apply_emitted(emitted)

    def remove(self, geo_id: str) -> None:
        self.selection.remove(geo_id)

    def toggle_edit(self, geo_id: str) -> Optional[CoverageZoneEditor]:
        self.selection.toggle_edit(geo_id)
        self._sync_overlays()
        return self.editor

    def set_zoom(self, zoom: float) -> None:
        self.zoom = zoom
        for overlay in self._all_overlays():
            overlay.set_zoom(zoom)

    def to_fips(self) -> List[str]:
        return self.selection.to_fips()

    def render(self) -> List[RenderedPolygon]:
        layers = []
        for overlay in self.overlays.values():
            layers.extend(overlay.render())
        if self.editor is not None:
            layers.extend(self.editor.render())
        return layers

    def close(self) -> None:
        for overlay in self._all_overlays():
            overlay.close()
        self.editor = None
        self.overlays = {}

    # ─── internals ───────────────────────────────────────────────────────

    def _all_overlays(self) -> List[CoverageZoneEditor]:
        overlays = list(self.overlays.values())
        if self.editor is not None:
            overlays.append(self.editor)
        return overlays

    def _selection_changed(self, counties: List[SelectedCounty]) -> None:
        self._sync_overlays()
        if self.on_county_selection_changed is not None:
            self.on_county_selection_changed(counties)

    def _on_update_zones(self, geo_id: str, zones: List[int]) -> None:
        self.selection.update_zones(geo_id, zones)

    def _make_overlay(self, county: SelectedCounty, editable: bool) -> CoverageZoneEditor:
        overlay = CoverageZoneEditor(
            feature=self.index.get(county.geo_id),
            county=county,
            grid_size=self.grid_size,
            clip_edges=self.clip_edges,
            editable=editable,
            on_update_zones=self._on_update_zones if editable else None,
            scheduler=self.scheduler,
            zoom=self.zoom,
        )
        overlay.open(self.host if editable else None)
        return overlay

    def _sync_overlays(self) -> None:
        """Reconcile open overlays with the selection and the active county."""
        active = self.selection.active_county

        if self.editor is not None and (active is None or active.geo_id != self.editor.geo_id):
            self.editor.close()
            self.editor = None
        if active is not None:
            if self.editor is None:
                self.editor = self._make_overlay(active, editable=True)
            elif active.zone != self.editor.county.zone:
                self.editor.update(county=active)

        wanted = {
            c.geo_id: c for c in self.selection.counties
            if c.is_partial and (active is None or c.geo_id != active.geo_id)
        }
        for geo_id in list(self.overlays):
            if geo_id not in wanted:
                self.overlays.pop(geo_id).close()
        for geo_id, county in wanted.items():
            overlay = self.overlays.get(geo_id)
            if overlay is None:
                self.overlays[geo_id] = self._make_overlay(county, editable=False)
            elif overlay.county.zone != county.zone:
                overlay.update(county=county)
