"""Region grid: arena of regions plus an edge index for neighbor lookup.

Regions are stored by integer handle (handles grow monotonically, so
iteration order is creation order). Instead of a parent/child tree, the
grid indexes every rectangle by its four edge coordinates. A neighbor on
the right of R is any region whose left edge lies on R's right edge and
whose vertical extent overlaps R's, which works across subdivision
depths: the neighbor may be larger or smaller than R.

Halving a rectangle is exact in binary floating point, so edge
coordinates of adjacent regions compare equal and can be used as keys.

The grid holds no subdivision policy; SubdivisionController decides
what to split.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from typing import Iterator, NamedTuple

from refine.region import Rect, Region, RegionStatus, seed_state

logger = logging.getLogger(__name__)


class Neighbors(NamedTuple):
    """Handles of the regions touching each side; empty at the canvas edge."""

    up: list[int]
    down: list[int]
    left: list[int]
    right: list[int]

    def all(self) -> list[int]:
        return self.up + self.down + self.left + self.right


def _spans_overlap(a0: float, a1: float, b0: float, b1: float) -> bool:
    return max(a0, b0) < min(a1, b1)


class RegionGrid:
    """Set of regions exactly tiling a width x height canvas."""

    def __init__(self, width: float, height: float, min_split_size: float):
        self.width = width
        self.height = height
        self.min_split_size = min_split_size

        self._regions: dict[int, Region] = {}
        self._next_handle = 0

        # Edge coordinate -> handles with that edge
        self._by_left: dict[float, set[int]] = defaultdict(set)
        self._by_right: dict[float, set[int]] = defaultdict(set)
        self._by_top: dict[float, set[int]] = defaultdict(set)
        self._by_bottom: dict[float, set[int]] = defaultdict(set)

        self._insert(self._new_region(Rect(0.0, 0.0, width, height), depth=0))

    # -- Container protocol --

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self) -> Iterator[Region]:
        return iter(list(self._regions.values()))

    def __contains__(self, handle: int) -> bool:
        return handle in self._regions

    def get(self, handle: int) -> Region:
        """Region for a handle. Raises KeyError if it is not in the grid."""
        return self._regions[handle]

    # -- Queries --

    def running(self) -> list[Region]:
        """Running regions, oldest first."""
        return [r for r in self._regions.values() if r.running]

    def counts(self) -> Counter:
        """Number of regions per RegionStatus."""
        counts = Counter({status: 0 for status in RegionStatus})
        counts.update(r.status for r in self._regions.values())
        return counts

    def find(self, px: float, py: float) -> Region | None:
        """Region containing the canvas point, or None outside the canvas.

        Every region is a quadrant of a quadrant of the canvas, so the
        lookup descends through the quadrants containing the point and
        checks the edge index at each level.
        """
        rect = Rect(0.0, 0.0, self.width, self.height)
        if not rect.contains(px, py):
            return None
        while True:
            candidates = (
                self._by_left.get(rect.x, set()) & self._by_top.get(rect.y, set())
            )
            for h in candidates:
                if self._regions[h].rect == rect:
                    return self._regions[h]
            if rect.width < self.min_split_size or rect.height < self.min_split_size:
                return None
            tl, tr, bl, br = rect.quadrants()
            right = px >= tr.x
            if py >= bl.y:
                rect = br if right else bl
            else:
                rect = tr if right else tl

    def seed(self, rect: Rect):
        """Initial state of a region occupying rect on this canvas."""
        return seed_state(rect, self.width, self.height)

    def neighbors(self, handle: int) -> Neighbors:
        """Regions sharing a boundary segment with the given region."""
        rect = self._regions[handle].rect

        def pick(candidates: set[int], horizontal: bool) -> list[int]:
            found = []
            for h in candidates:
                other = self._regions[h].rect
                if horizontal:
                    touching = _spans_overlap(rect.x, rect.right, other.x, other.right)
                else:
                    touching = _spans_overlap(rect.y, rect.bottom, other.y, other.bottom)
                if touching:
                    found.append(h)
            return sorted(found)

        return Neighbors(
            up=pick(self._by_bottom.get(rect.y, set()), horizontal=True),
            down=pick(self._by_top.get(rect.bottom, set()), horizontal=True),
            left=pick(self._by_right.get(rect.x, set()), horizontal=False),
            right=pick(self._by_left.get(rect.right, set()), horizontal=False),
        )

    def is_tiled(self) -> bool:
        """Check that the regions cover the canvas with no gaps or overlaps.

        Quadratic in the number of regions; meant for verification.
        """
        rects = [r.rect for r in self._regions.values()]
        return _covers_exactly(Rect(0.0, 0.0, self.width, self.height), rects)

    # -- Mutation --

    def split(self, handle: int) -> list[Region]:
        """Build the four quadrant children of a region.

        The children are not inserted; pass them to replace(). Returns an
        empty list when the region is below the minimum splittable size.
        """
        region = self._regions[handle]
        rect = region.rect
        if rect.width < self.min_split_size or rect.height < self.min_split_size:
            return []
        return [self._new_region(q, region.depth + 1) for q in rect.quadrants()]

    def replace(self, handle: int, children: list[Region]) -> None:
        """Atomically swap a region for children covering the same rectangle.

        Raises:
            KeyError: if the handle is not in the grid.
            ValueError: if the children do not tile the parent exactly.
        """
        parent = self._regions[handle]
        if not children or not _covers_exactly(parent.rect, [c.rect for c in children]):
            raise ValueError(f"Children do not tile {parent!r}")
        for child in children:
            if child.handle in self._regions:
                raise ValueError(f"Handle {child.handle} already in the grid")

        self._remove(parent)
        for child in children:
            self._insert(child)

    def presplit(self, depth: int) -> None:
        """Uniformly subdivide every region depth times (start of a run only)."""
        for _ in range(depth):
            for region in list(self._regions.values()):
                children = self.split(region.handle)
                if children:
                    self.replace(region.handle, children)
        logger.debug("Presplit to depth %d: %d regions", depth, len(self))

    # -- Internals --

    def _new_region(self, rect: Rect, depth: int) -> Region:
        handle = self._next_handle
        self._next_handle = handle + 1
        return Region(handle, rect, self.seed(rect), depth)

    def _insert(self, region: Region) -> None:
        rect = region.rect
        self._regions[region.handle] = region
        self._by_left[rect.x].add(region.handle)
        self._by_right[rect.right].add(region.handle)
        self._by_top[rect.y].add(region.handle)
        self._by_bottom[rect.bottom].add(region.handle)

    def _remove(self, region: Region) -> None:
        rect = region.rect
        del self._regions[region.handle]
        for index, key in (
            (self._by_left, rect.x),
            (self._by_right, rect.right),
            (self._by_top, rect.y),
            (self._by_bottom, rect.bottom),
        ):
            index[key].discard(region.handle)
            if not index[key]:
                del index[key]


def _covers_exactly(outer: Rect, rects: list[Rect]) -> bool:
    """True if rects lie inside outer, do not overlap, and fill its area."""
    for r in rects:
        if r.width <= 0 or r.height <= 0:
            return False
        if r.x < outer.x or r.y < outer.y or r.right > outer.right or r.bottom > outer.bottom:
            return False
    if sum(r.area for r in rects) != outer.area:
        return False
    for i, a in enumerate(rects):
        for b in rects[i + 1:]:
            if a.overlaps(b):
                return False
    return True
