"""
County Reference Dataset Index Tests

Covers loading (in-memory, file, URL), lookups and the load-once /
retry-after-failure behaviour.

Author: CountyZones Project
License: AGPL-3.0
"""

import asyncio
import json
from unittest.mock import MagicMock, patch

import pytest
from shapely.geometry import Polygon

from countyzones.geo.geometry_index import GeometryIndex, build_county_records, read_county_frame
from countyzones.geo.types import SelectedCounty
from tests.conftest import AUTAUGA, HILLSBOROUGH, LIBERTY, PINELLAS


class TestLoading:
    """Test dataset reading and record building."""

    def test_read_in_memory_collection(self, county_collection):
        frame = read_county_frame(county_collection)
        assert len(frame) == 5
        assert "GEO_ID" in frame.columns

    def test_read_local_file(self, county_collection, tmp_path):
        path = tmp_path / "counties.json"
        path.write_text(json.dumps(county_collection))
        frame = read_county_frame(str(path))
        assert set(frame["NAME"]) >= {"Hillsborough", "Pinellas"}

    def test_read_url_uses_http_session(self, county_collection):
        response = MagicMock()
        response.json.return_value = county_collection
        session = MagicMock()
        session.get.return_value = response

        with patch("countyzones.geo.geometry_index.get_session", return_value=session):
            frame = read_county_frame("https://example.org/us-counties.json")

        session.get.assert_called_once()
        response.raise_for_status.assert_called_once()
        assert len(frame) == 5

    def test_records_skip_features_without_geo_id(self, county_collection):
        records = build_county_records(read_county_frame(county_collection))
        assert {r.geo_id for r in records} == {HILLSBOROUGH, PINELLAS, LIBERTY, AUTAUGA}

    def test_invalid_polygons_are_repaired(self):
        bowtie = Polygon([(0, 0), (1, 1), (1, 0), (0, 1), (0, 0)])
        collection = {
            "type": "FeatureCollection",
            "features": [{
                "type": "Feature",
                "properties": {"GEO_ID": "0500000US99001", "STATE": "99", "COUNTY": "001", "NAME": "Bowtie"},
                "geometry": {"type": "Polygon", "coordinates": [list(bowtie.exterior.coords)]},
            }],
        }
        records = build_county_records(read_county_frame(collection))
        assert len(records) == 1
        assert records[0].geometry.is_valid
        assert records[0].geometry.area > 0


class TestGeometryIndex:
    """Test GeometryIndex lookups."""

    @pytest.mark.asyncio
    async def test_lookups_before_load_return_none(self, county_index):
        assert not county_index.loaded
        assert county_index.get(HILLSBOROUGH) is None
        assert county_index.counties_for_fips(["12057"]) == []

    @pytest.mark.asyncio
    async def test_get_by_geo_id_and_fips(self, county_index):
        await county_index.load()

        assert county_index.loaded
        assert len(county_index) == 4
        feature = county_index.get(HILLSBOROUGH)
        assert feature.name == "Hillsborough"
        assert feature.fips == "12057"
        assert county_index.get_by_fips("12057") is feature
        assert county_index.get_by_fips("01001").geo_id == AUTAUGA

    @pytest.mark.asyncio
    async def test_unknown_ids_return_none(self, county_index):
        await county_index.load()
        assert county_index.get("0500000US00000") is None
        assert county_index.get(None) is None
        assert county_index.get_by_fips("99999") is None
        assert county_index.bounds("0500000US00000") is None
        assert county_index.editor_mask("0500000US00000") is None

    @pytest.mark.asyncio
    async def test_counties_for_fips_preserves_order_and_drops_unknown(self, county_index):
        await county_index.load()
        counties = county_index.counties_for_fips(["12103", "99999", "12057", "12103"])
        assert counties == [
            SelectedCounty(geo_id=PINELLAS, name="Pinellas", state="12"),
            SelectedCounty(geo_id=HILLSBOROUGH, name="Hillsborough", state="12"),
        ]
        assert all(c.zone == () for c in counties)

    @pytest.mark.asyncio
    async def test_bounds_are_south_west_north_east(self, county_index):
        await county_index.load()
        south, west, north, east = county_index.bounds(HILLSBOROUGH)
        assert (south, west, north, east) == pytest.approx((27.8, -82.6, 28.2, -82.1))

    @pytest.mark.asyncio
    async def test_editor_mask_has_county_hole(self, county_index):
        await county_index.load()
        mask = county_index.editor_mask(HILLSBOROUGH)
        assert len(mask) == 1
        exterior, hole = mask[0]
        assert (-95.0, -200.0) in exterior
        assert all(27.8 <= lat <= 28.2 for lat, _ in hole)

    @pytest.mark.asyncio
    async def test_concurrent_loads_share_one_read(self, county_collection):
        index = GeometryIndex(county_collection)
        with patch(
            "countyzones.geo.geometry_index.read_county_frame",
            wraps=read_county_frame,
        ) as reader:
            await asyncio.gather(index.load(), index.load(), index.load())
            await index.load()
        assert reader.call_count == 1

    @pytest.mark.asyncio
    async def test_failed_load_is_retried(self, county_collection):
        index = GeometryIndex(county_collection)
        with patch(
            "countyzones.geo.geometry_index.read_county_frame",
            side_effect=[OSError("network down"), read_county_frame(county_collection)],
        ):
            with pytest.raises(OSError):
                await index.load()
            assert not index.loaded

            await index.load()
        assert index.loaded
        assert index.get(PINELLAS) is not None
