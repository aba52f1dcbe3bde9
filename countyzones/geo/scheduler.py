"""
Incremental, cancellable grid construction on the asyncio event loop.

Architectural Overview:
    Responsibility: Build large hex grids without holding the event loop for
        more than one batch at a time, and guarantee that a build can only
        publish results for the (county, grid_size, clip_edges) it was started for.
    Key Interactions:
        - hexgrid.HexGridBuilder supplies candidates() and process_batch()
        - grid_cache.GridCache receives completed builds (never partial ones)
        - services.editor owns one GridBuildCoordinator per open editor
    Concurrency Model:
        Single event loop, cooperative. Between batches the build awaits the
        injected idle primitive (default: asyncio.sleep(0)), which is the only
        point where it can be cancelled. A cancelled build writes nothing.

Author: CountyZones Project
License: AGPL-3.0
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional

from shapely.errors import GEOSException
from shapely.geometry.base import BaseGeometry

from countyzones.geo.grid_cache import GridCache, GridKey, grid_cache
from countyzones.geo.hexgrid import GridAccumulator, HexGridBuilder
from countyzones.geo.types import CountyFeature, GridCell

logger = logging.getLogger(__name__)

IdleFn = Callable[[], Awaitable[None]]
CompletionFn = Callable[[GridKey, List[GridCell]], None]


async def yield_to_loop() -> None:
    """Default idle primitive: give every other ready task a turn."""
    await asyncio.sleep(0)


class GridBuildTask:
    """Handle on one in-flight build with an explicit cancel() contract."""

    def __init__(self, key: GridKey, task: "asyncio.Task[List[GridCell]]"):
        self.key = key
        self._task = task

    def cancel(self) -> bool:
        """Cancel the pending continuation; True if it had not finished yet."""
        return self._task.cancel()

    def done(self) -> bool:
        return self._task.done()

    def cancelled(self) -> bool:
        return self._task.cancelled()

    async def result(self) -> List[GridCell]:
        """Await the finished cell list (raises CancelledError if cancelled)."""
        return await self._task


class IncrementalScheduler:
    """
    Runs HexGridBuilder work in fixed-size batches separated by idle slots.
    """

    def __init__(
        self,
        builder: Optional[HexGridBuilder] = None,
        cache: Optional[GridCache] = None,
        idle: IdleFn = yield_to_loop,
    ):
        self.builder = builder or HexGridBuilder()
        self.cache = cache if cache is not None else grid_cache
        self.idle = idle

    @property
    def batch_size(self) -> int:
        return self.builder.batch_size

    def start(
        self,
        key: GridKey,
        county: BaseGeometry,
        on_complete: Optional[CompletionFn] = None,
    ) -> GridBuildTask:
        """Schedule a build; must be called with a running event loop."""
        task = asyncio.ensure_future(self._run(key, county, on_complete))
        return GridBuildTask(key, task)

    async def _run(
        self,
        key: GridKey,
        county: BaseGeometry,
        on_complete: Optional[CompletionFn],
    ) -> List[GridCell]:
        started = time.perf_counter()
        # First slice starts on a later turn of the loop, like the batches after it
        await self.idle()

        try:
            hexes = self.builder.candidates(county, key.grid_size)
        except GEOSException as e:
            logger.warning(f"Grid {key}: candidate selection failed, nothing to render: {e}")
            if on_complete is not None:
                on_complete(key, [])
            return []

        accumulator = GridAccumulator()
        batch = max(1, self.batch_size)
        for offset in range(0, len(hexes), batch):
            self.builder.process_batch(hexes[offset:offset + batch], county, key.clip_edges, accumulator)
            if offset + batch < len(hexes):
                await self.idle()

        cells = accumulator.cells
        self.cache.put(key, cells)
        elapsed = time.perf_counter() - started
        logger.info(f"Grid {key} built: {len(cells)} cells from {len(hexes)} hexes in {elapsed:.2f}s")
        if on_complete is not None:
            on_complete(key, cells)
        return cells


class GridBuildCoordinator:
    """
    Owns the grid shown by one editor.

    At most one build is in flight. Requesting different parameters cancels it,
    cache hits are applied immediately, and a completion is applied only if
    its key is still the active one.
    """

    def __init__(
        self,
        scheduler: Optional[IncrementalScheduler] = None,
        on_change: Optional[Callable[[List[GridCell], bool], None]] = None,
    ):
        self.scheduler = scheduler or IncrementalScheduler()
        self.on_change = on_change
        self.cells: List[GridCell] = []
        self.loading = False
        self.active_key: Optional[GridKey] = None
        self._task: Optional[GridBuildTask] = None

    @property
    def cache(self) -> GridCache:
        return self.scheduler.cache

    @property
    def task(self) -> Optional[GridBuildTask]:
        return self._task

    def request(
        self,
        county: Optional[CountyFeature],
        grid_size: int,
        clip_edges: bool,
    ) -> Optional[GridBuildTask]:
        """
        Point the grid at (county, grid_size, clip_edges).

        Returns the build task when a build was started or is already running
        for the same key, otherwise None.
        """
        if county is None or grid_size <= 0:
            self._cancel()
            self.active_key = None
            self._publish([], loading=False)
            return None

        key = GridKey(county.geo_id, int(grid_size), bool(clip_edges))
        if key == self.active_key and self._task is not None and not self._task.done():
            return self._task

        self._cancel()
        self.active_key = key

        cached = self.cache.get(key)
        if cached is not None:
            self._publish(cached, loading=False)
            return None

        self._publish([], loading=True)
        self._task = self.scheduler.start(key, county.geometry, on_complete=self._complete)
        return self._task

    def _complete(self, key: GridKey, cells: List[GridCell]) -> None:
        if key != self.active_key:
            logger.debug(f"Discarding stale grid {key} (active: {self.active_key})")
            return
        self._task = None
        self._publish(cells, loading=False)

    def _publish(self, cells: List[GridCell], loading: bool) -> None:
        self.cells = list(cells)
        self.loading = loading
        if self.on_change is not None:
            self.on_change(self.cells, self.loading)

    def _cancel(self) -> None:
        if self._task is not None:
            if self._task.cancel():
                logger.debug(f"Cancelled pending grid build {self._task.key}")
            self._task = None
        self.loading = False

    async def wait(self) -> List[GridCell]:
        """Wait until no build is in flight and return the current cells."""
        while self._task is not None and not self._task.done():
            task = self._task
            try:
                await task.result()
            except asyncio.CancelledError:
                # Superseded by a newer request; keep waiting on that one
                if not task.cancelled():
                    raise
        return self.cells

    def close(self) -> None:
        """Teardown: cancel any pending build and forget the active key."""
        self._cancel()
        self.active_key = None
