"""
Test Suite for CountyZones

Unit and integration tests plus shared fixtures for the county coverage
and hex-grid zone editor.

Test Categories:
- test_fips / test_cell_identity / test_hexgrid: identifiers and grid geometry
- test_geometry_index: county dataset loading and lookups
- test_grid_cache / test_scheduler: memoisation and incremental builds
- test_zone_selection / test_county_selection / test_editor: editor state
- test_models / test_coverage_store: persisted coverage
- test_api / test_cache / test_resilience: HTTP surface, Redis, health
- conftest.py: Shared fixtures and test configuration

Running Tests:
    pytest              # Run all tests
    pytest -v           # Verbose output
    pytest tests/test_hexgrid.py -v  # Run specific test file
    pytest --cov        # With coverage report

Author: CountyZones Project
License: AGPL-3.0
"""
