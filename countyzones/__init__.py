"""
@file __init__.py
@brief CountyZones backend package initialization

@details
Package providing county coverage selection and the coverage-zone grid editor:
users pick the counties they operate in and, inside a county, mark partial
coverage as a set of hex grid cells.

**Package Structure:**
- geo/: County reference dataset, FIPS conversions, hex grid construction,
  cell identity, grid cache and the incremental build scheduler
- services/: Zone paint controller, county selection reconciler, editor session
  and the coverage persistence adapter
- api/: FastAPI route handlers and endpoint definitions
- models/: SQLAlchemy ORM models for persisted coverage
- db/: Database configuration and session management
- core/: Configuration, logging, caching, health and error handling

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0

@see main for FastAPI application setup
@see geo.hexgrid for grid construction
@see services.editor for the editor session
"""
