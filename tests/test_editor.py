"""
Coverage Editor Tests

End-to-end flows through CoverageZoneEditor and CoverageEditorSession:
hydrate, open the zone editor, paint, close, and read-only overlays.

Author: CountyZones Project
License: AGPL-3.0
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from countyzones.core import config
from countyzones.geo.types import SelectedCounty
from countyzones.services.editor import CoverageEditorSession, CoverageZoneEditor
from countyzones.services.map_host import EDITOR_MASK, ZONE_CELL, PointerEvent
from tests.conftest import HILLSBOROUGH, PINELLAS

VISIBLE_ZOOM = config.GRID_MIN_ZOOM + 1


class TestCoverageZoneEditor:
    """Test the single-county overlay."""

    @pytest.mark.asyncio
    async def test_hidden_below_min_zoom(self, county_index, scheduler):
        await county_index.load()
        feature = county_index.get(HILLSBOROUGH)
        editor = CoverageZoneEditor(feature, feature.to_selected(), grid_size=4, editable=True,
                                    scheduler=scheduler, zoom=config.GRID_MIN_ZOOM - 1)

        assert editor.open() is None
        assert editor.render() == []
        assert editor.grid.active_key is None

    @pytest.mark.asyncio
    async def test_zoom_in_builds_and_renders_mask_and_cells(self, county_index, scheduler):
        await county_index.load()
        feature = county_index.get(HILLSBOROUGH)
        editor = CoverageZoneEditor(feature, feature.to_selected(), grid_size=4, editable=True,
                                    scheduler=scheduler)
        editor.open()

        assert editor.set_zoom(VISIBLE_ZOOM) is not None
        assert editor.loading
        cells = await editor.grid.wait()

        layers = editor.render()
        masks = [layer for layer in layers if layer.style == EDITOR_MASK]
        assert len(masks) == 1
        assert len(layers) == len(cells) + 1
        editor.close()

    @pytest.mark.asyncio
    async def test_external_zone_update_resyncs_controller(self, county_index, scheduler):
        await county_index.load()
        feature = county_index.get(HILLSBOROUGH)
        editor = CoverageZoneEditor(feature, feature.to_selected(), editable=True, scheduler=scheduler)

        editor.update(county=feature.to_selected().with_zones([3, 1]))

        assert editor.controller.zones() == [1, 3]

    @pytest.mark.asyncio
    async def test_close_detaches_and_cancels(self, county_index, scheduler, map_host):
        await county_index.load()
        feature = county_index.get(HILLSBOROUGH)
        editor = CoverageZoneEditor(feature, feature.to_selected(), grid_size=4, editable=True,
                                    scheduler=scheduler, zoom=VISIBLE_ZOOM)
        task = editor.open(map_host)
        assert map_host.listener_count() == 4

        editor.close()

        assert map_host.listener_count() == 0
        with pytest.raises(asyncio.CancelledError):
            await task.result()
        assert editor.grid.active_key is None

    def test_unknown_feature_renders_nothing(self, scheduler):
        county = SelectedCounty(geo_id="0500000US00000", name="Nowhere", state="00")
        editor = CoverageZoneEditor(None, county, scheduler=scheduler, zoom=VISIBLE_ZOOM)
        assert editor.open() is None
        assert editor.render() == []


class TestCoverageEditorSession:
    """Test the full county select map flow."""

    @pytest.fixture
    def session(self, county_index, scheduler, map_host):
        session = CoverageEditorSession(county_index, host=map_host, grid_size=4,
                                        scheduler=scheduler, zoom=VISIBLE_ZOOM)
        yield session
        session.close()

    @pytest.mark.asyncio
    async def test_hydrate_then_edit_zones(self, session, map_host):
        changes = MagicMock()
        session.on_county_selection_changed = changes

        assert await session.hydrate(["12057", "12103"])
        assert [c.geo_id for c in session.counties] == [HILLSBOROUGH, PINELLAS]

        editor = session.toggle_edit(HILLSBOROUGH)
        assert editor is not None and editor.editable
        cells = await editor.grid.wait()
        assert cells

        map_host.fire("mousedown", PointerEvent(alt_key=False))
        for cell in cells[:3]:
            editor.controller.pointer_move(cell.id)
        map_host.fire("mouseup")

        expected = tuple(sorted(c.id for c in cells[:3]))
        assert session.selection.get(HILLSBOROUGH).zone == expected
        assert changes.call_args[0][0][0].zone == expected
        assert session.to_fips() == ["12057", "12103"]

    @pytest.mark.asyncio
    async def test_closing_editor_leaves_read_only_overlay(self, session, map_host):
        await session.hydrate(["12057"])
        editor = session.toggle_edit(HILLSBOROUGH)
        cells = await editor.grid.wait()
        editor.controller.click(cells[0].id)

        assert session.toggle_edit(HILLSBOROUGH) is None
        assert map_host.listener_count() == 0
        overlay = session.overlays[HILLSBOROUGH]
        assert not overlay.editable

        await overlay.grid.wait()
        layers = session.render()
        assert [layer.cell_id for layer in layers] == [cells[0].id]
        assert layers[0].style == ZONE_CELL

    @pytest.mark.asyncio
    async def test_switching_active_county(self, session, map_host):
        await session.hydrate(["12057", "12103"])
        first = session.toggle_edit(HILLSBOROUGH)
        second = session.toggle_edit(PINELLAS)

        assert second is not first
        assert second.geo_id == PINELLAS
        assert first.grid.active_key is None
        assert map_host.listener_count() == 4
        await second.grid.wait()

    @pytest.mark.asyncio
    async def test_picker_removal_closes_editor(self, session, map_host):
        await session.hydrate(["12057", "12103"])
        session.toggle_edit(PINELLAS)

        hillsborough = session.selection.get(HILLSBOROUGH)
        session.on_picker_change([hillsborough, SelectedCounty(geo_id=PINELLAS, name="Pinellas", state="12")])
        assert session.editor is not None

        session.remove(PINELLAS)
        assert session.editor is None
        assert map_host.listener_count() == 0

    @pytest.mark.asyncio
    async def test_hydration_failure_keeps_selection(self, scheduler):
        index = MagicMock()

        async def fail():
            raise OSError("offline")

        index.load = fail
        session = CoverageEditorSession(index, scheduler=scheduler)
        session.on_picker_change([SelectedCounty(geo_id=HILLSBOROUGH, name="Hillsborough", state="12")])

        assert not await session.hydrate(["12103"])
        assert [c.geo_id for c in session.counties] == [HILLSBOROUGH]
        session.close()

    @pytest.mark.asyncio
    async def test_zoom_out_hides_everything(self, session):
        await session.hydrate(["12057"])
        editor = session.toggle_edit(HILLSBOROUGH)
        await editor.grid.wait()

        session.set_zoom(config.GRID_MIN_ZOOM - 2)

        assert session.render() == []
