"""
County Selection Reconciler

Folds the county picker's emitted selection into the authoritative
SelectedCounty list and hydrates that list from persisted FIPS codes.

Picker protocol (kept for compatibility with existing pickers):
- emitted []          -> Clear
- emitted [c]         -> Toggle(c): remove if present, add if absent
- emitted [a, b, ...] -> Replace(list), de-duplicated by GEO_ID

New code should dispatch the explicit actions instead of relying on arity.

Hydration:
- runs at most once successfully per reconciler (HydrationGate PENDING -> DONE)
- only ever adds counties; entries the user added or edited are kept, and
  counties the user removed before hydration finished are not re-added
- a dataset load failure leaves the current selection untouched (fail open)

Author: CountyZones Project
License: AGPL-3.0
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from countyzones.geo.fips import fips_list_from_geo_ids
from countyzones.geo.geometry_index import GeometryIndex
from countyzones.geo.types import SelectedCounty

logger = logging.getLogger(__name__)

SelectionChangedFn = Callable[[List[SelectedCounty]], None]


@dataclass(frozen=True)
class Clear:
    pass


@dataclass(frozen=True)
class Toggle:
    county: SelectedCounty


@dataclass(frozen=True)
class Replace:
    counties: Tuple[SelectedCounty, ...]


SelectionAction = Union[Clear, Toggle, Replace]

Emitted = Union[SelectedCounty, Mapping[str, Any]]


class HydrationGate(enum.Enum):
    PENDING = "pending"
    DONE = "done"


def as_county(value: Emitted) -> SelectedCounty:
    """Accept a SelectedCounty or its JSON form ({"GEO_ID", "NAME", "STATE", "ZONE"})."""
    if isinstance(value, SelectedCounty):
        return value
    return SelectedCounty.from_dict(value)


def dedupe_by_geo_id(counties: Iterable[SelectedCounty]) -> List[SelectedCounty]:
    """Keep the first entry per GEO_ID, preserving order."""
    seen = set()
    out = []
    for county in counties:
        if county.geo_id not in seen:
            seen.add(county.geo_id)
            out.append(county)
    return out


def toggle_county(counties: Sequence[SelectedCounty], county: SelectedCounty) -> List[SelectedCounty]:
    """Remove county if present (by GEO_ID), otherwise append it."""
    if any(c.geo_id == county.geo_id for c in counties):
        return [c for c in counties if c.geo_id != county.geo_id]
    return list(counties) + [county]


def action_from_emitted(emitted: Optional[Sequence[Emitted]]) -> SelectionAction:
    """Translate the picker's arity-based emission into an explicit action."""
    emitted = [as_county(value) for value in emitted or []]
    if not emitted:
        return Clear()
    if len(emitted) == 1:
        return Toggle(emitted[0])
    return Replace(tuple(emitted))


class CountySelectionReconciler:
    def __init__(
        self,
        counties: Optional[Iterable[SelectedCounty]] = None,
        on_county_selection_changed: Optional[SelectionChangedFn] = None,
    ):
        self.counties: List[SelectedCounty] = dedupe_by_geo_id(counties or [])
        self.on_county_selection_changed = on_county_selection_changed
        self.active_geo_id: Optional[str] = None
        self.hydration = HydrationGate.PENDING
        self._removed_before_hydration: Set[str] = set()

    # ─── queries ─────────────────────────────────────────────────────────

    def get(self, geo_id: str) -> Optional[SelectedCounty]:
        return next((c for c in self.counties if c.geo_id == geo_id), None)

    @property
    def active_county(self) -> Optional[SelectedCounty]:
        return self.get(self.active_geo_id) if self.active_geo_id else None

    def geo_ids(self) -> List[str]:
        return [c.geo_id for c in self.counties]

    def to_fips(self) -> List[str]:
        """FIPS codes for persistence; GEO_IDs that cannot convert are dropped."""
        return fips_list_from_geo_ids(self.geo_ids())

    # ─── edits ───────────────────────────────────────────────────────────

    def apply_emitted(self, emitted: Optional[Sequence[Emitted]]) -> List[SelectedCounty]:
        return self.dispatch(action_from_emitted(emitted))

    def dispatch(self, action: SelectionAction) -> List[SelectedCounty]:
        if isinstance(action, Clear):
            next_counties = []
        elif isinstance(action, Toggle):
            next_counties = toggle_county(self.counties, action.county)
        elif isinstance(action, Replace):
            next_counties = dedupe_by_geo_id(action.counties)
        else:
            raise TypeError(f"Unknown selection action: {action!r}")
        self._commit(next_counties)
        return self.counties

    def update_zones(self, geo_id: str, zones: Iterable[int]) -> None:
        """Store a committed zone snapshot for one county; unknown GEO_IDs are ignored."""
        if self.get(geo_id) is None:
            return
        self._commit([c.with_zones(zones) if c.geo_id == geo_id else c for c in self.counties])

    def remove(self, geo_id: str) -> None:
        self._commit([c for c in self.counties if c.geo_id != geo_id])

    def toggle_edit(self, geo_id: str) -> Optional[SelectedCounty]:
        """Open the zone editor for geo_id, or close it if it is already open."""
        if self.active_geo_id == geo_id or self.get(geo_id) is None:
            self.active_geo_id = None
        else:
            self.active_geo_id = geo_id
        return self.active_county

    def _commit(self, next_counties: List[SelectedCounty]) -> None:
        if self.hydration is HydrationGate.PENDING:
            next_ids = {c.geo_id for c in next_counties}
            self._removed_before_hydration |= {g for g in self.geo_ids() if g not in next_ids}
            self._removed_before_hydration -= next_ids
        self._set(next_counties)

    def _set(self, next_counties: List[SelectedCounty]) -> None:
        changed = next_counties != self.counties
        self.counties = next_counties
        if self.active_geo_id and self.get(self.active_geo_id) is None:
            self.active_geo_id = None
        if changed and self.on_county_selection_changed is not None:
            self.on_county_selection_changed(list(self.counties))

    # ─── hydration ───────────────────────────────────────────────────────

    async def hydrate(self, index: GeometryIndex, fips_list: Iterable[str]) -> bool:
        """
        Merge persisted counties into the selection once the dataset is loaded.

        Returns True when hydration ran, False when it was skipped or failed.
        """
        if self.hydration is HydrationGate.DONE:
            return False
        try:
            await index.load()
        except Exception as e:
            logger.warning(f"County hydration skipped, dataset unavailable: {e}")
            return False
        if self.hydration is HydrationGate.DONE:
            return False

        persisted = index.counties_for_fips(fips_list)
        self.hydration = HydrationGate.DONE

        present = set(self.geo_ids())
        additions = [
            c for c in persisted
            if c.geo_id not in present and c.geo_id not in self._removed_before_hydration
        ]
        self._removed_before_hydration.clear()
        logger.info(f"Hydrated {len(additions)} of {len(persisted)} persisted counties")
        if additions:
            self._set(self.counties + additions)
        return True
