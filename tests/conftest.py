"""
Test Configuration and Shared Fixtures

Shared pytest fixtures for the coverage editor test suite.

Fixtures:
- square_county / multipart_county / tiny_county: synthetic county polygons
- county_collection: in-memory GeoJSON FeatureCollection of those counties
- county_index: GeometryIndex over county_collection (not loaded yet)
- grid_cache_instance / scheduler: isolated grid cache and scheduler
- db_session: SQLAlchemy session on in-memory SQLite
- map_host: in-memory MapHost recording listeners and drag state

Author: CountyZones Project
License: AGPL-3.0
"""

import logging
from collections import defaultdict

import pytest
from shapely.geometry import MultiPolygon, box, mapping
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from countyzones.db.base import Base
from countyzones.geo.geometry_index import GeometryIndex
from countyzones.geo.grid_cache import GridCache
from countyzones.geo.hexgrid import HexGridBuilder
from countyzones.geo.scheduler import IncrementalScheduler
from countyzones.models.operating_county import OperatingCounty  # noqa: F401

# Configure logging for tests
logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

HILLSBOROUGH = "0500000US12057"
PINELLAS = "0500000US12103"
LIBERTY = "0500000US12077"
AUTAUGA = "0500000US01001"


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (slower)")
    config.addinivalue_line("markers", "slow: Slow-running tests")
    config.addinivalue_line("markers", "api: API endpoint tests")
    config.addinivalue_line("markers", "geo: Geometry and grid tests")
    config.addinivalue_line("markers", "models: Database model tests")


def pytest_collection_modifyitems(config, items):
    """Add markers based on test location."""
    for item in items:
        path = str(item.fspath)
        if "test_api" in path:
            item.add_marker(pytest.mark.api)
        elif "test_models" in path or "test_coverage_store" in path:
            item.add_marker(pytest.mark.models)
        elif any(name in path for name in ("test_hexgrid", "test_cell_identity", "test_geometry", "test_grid_cache")):
            item.add_marker(pytest.mark.geo)

        if "integration" not in item.keywords:
            item.add_marker(pytest.mark.unit)


def county_feature(geo_id, state, county, name, geometry):
    """GeoJSON Feature shaped like a row of the county reference dataset."""
    return {
        "type": "Feature",
        "properties": {"GEO_ID": geo_id, "STATE": state, "COUNTY": county, "NAME": name},
        "geometry": mapping(geometry),
    }


@pytest.fixture
def square_county():
    """Roughly 50 x 45 km box near Tampa."""
    return box(-82.6, 27.8, -82.1, 28.2)


@pytest.fixture
def multipart_county():
    """Two disjoint boxes, like a county split by a bay."""
    return MultiPolygon([
        box(-82.9, 27.6, -82.7, 27.8),
        box(-82.6, 27.9, -82.4, 28.1),
    ])


@pytest.fixture
def tiny_county():
    """About 1 km across, far below the minimum hex size."""
    return box(-84.90, 30.20, -84.89, 30.21)


@pytest.fixture
def county_collection(square_county, multipart_county, tiny_county):
    """
    In-memory county dataset.

    Includes one feature without GEO_ID, which loading must skip.
    """
    features = [
        county_feature(HILLSBOROUGH, "12", "057", "Hillsborough", square_county),
        county_feature(PINELLAS, "12", "103", "Pinellas", multipart_county),
        county_feature(LIBERTY, "12", "077", "Liberty", tiny_county),
        county_feature(AUTAUGA, "1", "001", "Autauga", box(-86.9, 32.3, -86.4, 32.7)),
        {
            "type": "Feature",
            "properties": {"GEO_ID": None, "STATE": "12", "COUNTY": "999", "NAME": "Broken"},
            "geometry": mapping(box(-81.0, 27.0, -80.9, 27.1)),
        },
    ]
    return {"type": "FeatureCollection", "features": features}


@pytest.fixture
def county_index(county_collection):
    return GeometryIndex(county_collection)


@pytest.fixture
def grid_cache_instance():
    return GridCache()


@pytest.fixture
def scheduler(grid_cache_instance):
    """Scheduler with small batches and an isolated cache."""
    return IncrementalScheduler(builder=HexGridBuilder(batch_size=5), cache=grid_cache_instance)


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    """Provide a fresh database session for each test."""
    Session = sessionmaker(bind=db_engine, autocommit=False, autoflush=False)
    session = Session()
    yield session
    session.close()


class FakeMapHost:
    """In-memory MapHost: records listeners and the drag flag."""

    def __init__(self):
        self.handlers = defaultdict(list)
        self.dragging = True
        self.drag_toggles = []

    def on(self, event, handler):
        self.handlers[event].append(handler)

    def off(self, event, handler):
        if handler in self.handlers[event]:
            self.handlers[event].remove(handler)

    def enable_dragging(self):
        self.dragging = True
        self.drag_toggles.append(True)

    def disable_dragging(self):
        self.dragging = False
        self.drag_toggles.append(False)

    def fire(self, event, payload=None):
        for handler in list(self.handlers[event]):
            handler(payload)

    def listener_count(self):
        return sum(len(h) for h in self.handlers.values())


@pytest.fixture
def map_host():
    return FakeMapHost()
