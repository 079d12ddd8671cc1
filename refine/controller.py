"""Subdivision controller: turns stop events into region splits.

For every region R that stopped during a tick:
  - each FLIPPED neighbor N with |t_R - t_N| < threshold marks R and N
  - a timed-out R marks itself (timeouts are never comparison values)

All events of the tick are read before any split is performed, so the
grid is only mutated here, in one serialized pass.
"""

from __future__ import annotations

import logging

from refine.config import FLIP_TIME_THRESHOLD
from refine.grid import RegionGrid
from refine.region import Region, RegionStatus, StopEvent

logger = logging.getLogger(__name__)


class SubdivisionController:
    """Single writer of the RegionGrid after start-up."""

    def __init__(self, grid: RegionGrid, threshold: float = FLIP_TIME_THRESHOLD):
        self._grid = grid
        self._threshold = threshold
        self.splits = 0
        self.leaves = 0

    @property
    def threshold(self) -> float:
        return self._threshold

    def mark(self, event: StopEvent) -> set[int]:
        """Handles that the event marks for subdivision."""
        if event.timed_out:
            return {event.handle}

        marked = set()
        for handle in self._grid.neighbors(event.handle).all():
            neighbor = self._grid.get(handle)
            if neighbor.status is not RegionStatus.FLIPPED:
                continue
            if abs(event.flip_time - neighbor.flip_time) < self._threshold:
                marked.add(event.handle)
                marked.add(handle)
        return marked

    def process(self, events: list[StopEvent]) -> list[Region]:
        """Apply the subdivision rule to one tick's stop events.

        Returns:
            The new RUNNING children, in handle order of their parents.
        """
        marked: set[int] = set()
        for event in events:
            if event.handle not in self._grid:
                logger.debug("Ignoring stop event for removed region %d", event.handle)
                continue
            marked |= self.mark(event)

        created: list[Region] = []
        for handle in sorted(marked):
            children = self._grid.split(handle)
            if not children:
                # Below minimum size: stays a stopped leaf
                self.leaves += 1
                continue
            self._grid.replace(handle, children)
            self.splits += 1
            created.extend(children)

        if marked:
            logger.debug(
                "Marked %d regions from %d stop events, %d new regions",
                len(marked), len(events), len(created),
            )
        return created
