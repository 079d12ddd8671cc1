"""Tests for refine/controller.py: subdivision trigger rule and base case."""

from refine.config import FLIP_TIME_THRESHOLD, RefineConfig
from refine.controller import SubdivisionController
from refine.grid import RegionGrid
from refine.region import RegionStatus

CONFIG = RefineConfig(dt=0.01, max_time=60.0)


def _quadrant_grid(size=64.0, min_split_size=8.0):
    grid = RegionGrid(size, size, min_split_size)
    root = next(iter(grid)).handle
    children = grid.split(root)
    grid.replace(root, children)
    tl, tr, bl, br = children
    return grid, {"tl": tl.handle, "tr": tr.handle, "bl": bl.handle, "br": br.handle}


def _flip(grid, handle, steps):
    """Stop a region as flipped after the given number of steps."""
    region = grid.get(handle)
    return region.apply(region.state, steps, True, CONFIG)


def _time_out(grid, handle):
    region = grid.get(handle)
    return region.apply(region.state, CONFIG.max_steps, False, CONFIG)


class TestTriggerRule:
    """|t_R - t_N| < threshold marks both regions."""

    def test_default_threshold(self):
        grid, _ = _quadrant_grid()
        assert SubdivisionController(grid).threshold == FLIP_TIME_THRESHOLD == 0.9

    def test_close_flip_times_split_both(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        _flip(grid, q["tl"], 100)              # t = 1.00
        event = _flip(grid, q["tr"], 185)      # t = 1.85

        assert controller.mark(event) == {q["tl"], q["tr"]}

        created = controller.process([event])
        assert len(created) == 8
        assert q["tl"] not in grid
        assert q["tr"] not in grid
        assert len(grid) == 10
        assert grid.is_tiled()
        assert all(c.running for c in created)

    def test_far_flip_times_do_not_split(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        _flip(grid, q["tl"], 100)              # t = 1.00
        event = _flip(grid, q["tr"], 200)      # t = 2.00

        assert controller.mark(event) == set()
        assert controller.process([event]) == []
        assert len(grid) == 4

    def test_running_neighbor_not_compared(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        event = _flip(grid, q["tr"], 100)
        # tl, bl, br still running
        assert controller.process([event]) == []
        assert len(grid) == 4

    def test_timed_out_neighbor_not_compared(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        _time_out(grid, q["tl"])
        event = _flip(grid, q["tr"], 100)

        assert controller.mark(event) == set()

    def test_only_adjacent_regions_compared(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        _flip(grid, q["tl"], 100)
        event = _flip(grid, q["br"], 100)      # diagonal, same time
        assert controller.mark(event) == set()

    def test_custom_threshold(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid, threshold=0.5)
        _flip(grid, q["tl"], 100)
        event = _flip(grid, q["tr"], 160)
        assert controller.mark(event) == set()


class TestTimeouts:

    def test_timeout_always_splits(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        event = _time_out(grid, q["tl"])

        assert controller.mark(event) == {q["tl"]}
        created = controller.process([event])
        assert len(created) == 4
        assert q["tl"] not in grid
        assert grid.is_tiled()

    def test_timeout_below_min_size_stays_leaf(self):
        grid, q = _quadrant_grid(size=64.0, min_split_size=40.0)
        controller = SubdivisionController(grid)
        event = _time_out(grid, q["tl"])

        assert controller.process([event]) == []
        region = grid.get(q["tl"])
        assert region.status is RegionStatus.TIMED_OUT
        assert controller.leaves == 1


class TestBaseCase:

    def test_min_size_region_keeps_stopped_color(self):
        grid, q = _quadrant_grid(size=64.0, min_split_size=40.0)
        controller = SubdivisionController(grid)
        _flip(grid, q["tl"], 100)
        event = _flip(grid, q["tr"], 150)
        colors = {h: grid.get(h).current_color() for h in (q["tl"], q["tr"])}

        assert controller.mark(event) == {q["tl"], q["tr"]}
        assert controller.process([event]) == []
        assert len(grid) == 4
        for h, color in colors.items():
            region = grid.get(h)
            assert region.status is RegionStatus.FLIPPED
            assert region.current_color() == color


class TestProcessBatch:

    def test_events_of_one_tick_split_each_region_once(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        events = [_flip(grid, q["tl"], 100), _flip(grid, q["tr"], 120)]

        created = controller.process(events)
        assert len(created) == 8
        assert controller.splits == 2
        assert grid.is_tiled()

    def test_stale_event_ignored(self):
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        event = _time_out(grid, q["tl"])
        controller.process([event])
        # Replaying the event for the removed region does nothing
        assert controller.process([event]) == []
        assert grid.is_tiled()

    def test_split_children_compare_with_coarse_neighbors(self):
        """A child flipping near a coarse neighbor's time splits both."""
        grid, q = _quadrant_grid()
        controller = SubdivisionController(grid)
        _flip(grid, q["tr"], 300)
        created = controller.process([_time_out(grid, q["tl"])])
        top_right_child = created[1]

        event = _flip(grid, top_right_child.handle, 310)
        assert controller.mark(event) == {top_right_child.handle, q["tr"]}
