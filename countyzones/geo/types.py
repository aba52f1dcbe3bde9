"""
Core value types shared by the geometry layer and the editor services.

- CountyFeature: read-only county record from the reference dataset
- SelectedCounty: a county the user covers, plus its partial-coverage zone ids
- GridCell: one derived hex cell, rings already in (lat, lng) render order

Author: CountyZones Project
License: AGPL-3.0
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, Optional, Tuple

from shapely.geometry.base import BaseGeometry

from countyzones.geo.fips import fips_from_state_county

LatLng = Tuple[float, float]
Ring = Tuple[LatLng, ...]


def canonical_zones(zones: Optional[Iterable[int]]) -> Tuple[int, ...]:
    """De-duplicated, ascending zone ids; the only form ever reported to callers."""
    if not zones:
        return ()
    return tuple(sorted({int(z) for z in zones}))


@dataclass(frozen=True)
class CountyFeature:
    geo_id: str
    state: str
    county: str
    name: str
    geometry: BaseGeometry = field(repr=False, compare=False)

    @property
    def fips(self) -> Optional[str]:
        return fips_from_state_county(self.state, self.county)

    def to_selected(self) -> "SelectedCounty":
        return SelectedCounty(geo_id=self.geo_id, name=self.name, state=self.state)


@dataclass(frozen=True)
class SelectedCounty:
    """
    A county in the user's coverage.

    An empty ``zone`` means the whole county is covered; otherwise ``zone``
    holds the grid cell ids marking partial coverage.
    """

    geo_id: str
    name: str
    state: str
    zone: Tuple[int, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "zone", canonical_zones(self.zone))

    @property
    def is_partial(self) -> bool:
        return len(self.zone) > 0

    def with_zones(self, zones: Iterable[int]) -> "SelectedCounty":
        return replace(self, zone=canonical_zones(zones))

    def to_dict(self) -> Dict[str, Any]:
        return {"GEO_ID": self.geo_id, "NAME": self.name, "STATE": self.state, "ZONE": list(self.zone)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SelectedCounty":
        zone = data.get("ZONE")
        return cls(
            geo_id=str(data["GEO_ID"]),
            name=str(data.get("NAME", "")),
            state=str(data.get("STATE", "")),
            zone=zone if isinstance(zone, (list, tuple)) else (),
        )


@dataclass(frozen=True)
class GridCell:
    id: int
    rings: Tuple[Ring, ...]
    geometry: BaseGeometry = field(repr=False, compare=False, default=None)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "rings": [[list(pt) for pt in ring] for ring in self.rings]}
