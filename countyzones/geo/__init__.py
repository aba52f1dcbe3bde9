"""
Geometry layer for the coverage-zone editor.

- fips: GEO_ID / FIPS conversions used at the storage boundary
- geometry_index: county reference dataset loading and lookup
- hexgrid: clipped hex grid construction over a county polygon
- cell_identity: geometry-stable integer ids for grid cells
- grid_cache: memoised grids keyed by (county, grid size, clip mode)
- scheduler: time-sliced, cancellable grid builds on the event loop
"""
