"""
In-process grid memoisation.

Key: GridKey(county_id, grid_size, clip_edges). Value: the finished cell list.

Policy:
- pure memoisation, unbounded for the session (the county set is small)
- only completed builds are stored; interrupted builds never reach put()
- a hit bypasses the incremental scheduler entirely

A module default instance ``grid_cache`` exists for the application; tests and
callers that need isolation construct their own GridCache and inject it.

Author: CountyZones Project
License: AGPL-3.0
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional

from countyzones.geo.types import GridCell

logger = logging.getLogger(__name__)


class GridKey(NamedTuple):
    county_id: str
    grid_size: int
    clip_edges: bool

    def __str__(self) -> str:
        return f"{self.county_id}-hex-{self.grid_size}-{str(self.clip_edges).lower()}"


@dataclass
class CacheStats:
    """Hit/miss counters for grid cache tracking."""

    hits: int = 0
    misses: int = 0
    stores: int = 0

    def hit_rate(self) -> float:
        """Hit rate as a percentage."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return (self.hits / total) * 100.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "stores": self.stores,
            "hit_rate_pct": round(self.hit_rate(), 1),
        }


class GridCache:
    def __init__(self):
        self._grids: Dict[GridKey, List[GridCell]] = {}
        self.stats = CacheStats()

    def get(self, key: GridKey) -> Optional[List[GridCell]]:
        cells = self._grids.get(key)
        if cells is None:
            self.stats.misses += 1
            return None
        self.stats.hits += 1
        return list(cells)

    def put(self, key: GridKey, cells: List[GridCell]) -> None:
        self._grids[key] = list(cells)
        self.stats.stores += 1
        logger.debug(f"Cached grid {key}: {len(cells)} cells")

    def __contains__(self, key: GridKey) -> bool:
        return key in self._grids

    def __len__(self) -> int:
        return len(self._grids)

    def clear(self) -> None:
        self._grids.clear()
        self.stats = CacheStats()


# Global instance
grid_cache = GridCache()
