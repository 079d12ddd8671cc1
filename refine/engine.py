"""Refinement engine: the tick driver tying grid, integrator and controller.

One tick:
  1. advance every running region (oldest first, up to max_active) as a
     single vectorized batch
  2. apply lifecycle transitions and paint each region that stopped
  3. hand the tick's stop events to the SubdivisionController
  4. paint the children it created, then refresh the sink

Running regions are not painted by tick(); their live colors are pulled
with paint_running() at whatever rate the render adapter redraws.
"""

from __future__ import annotations

import logging
from typing import NamedTuple, Protocol

import numpy as np

from simulation import DoublePendulumParams
from refine.config import RefineConfig
from refine.controller import SubdivisionController
from refine.grid import RegionGrid
from refine.integrator import advance_batch
from refine.region import Rect, Region, StopEvent

logger = logging.getLogger(__name__)


class RenderSink(Protocol):
    """Paint target for the engine (pixel buffer, window, test recorder)."""

    def paint(self, rect: Rect, color: tuple[int, int, int]) -> None:
        ...

    def refresh(self) -> None:
        ...


class TickReport(NamedTuple):
    """What happened during one tick."""

    advanced: int
    stopped: list[StopEvent]
    created: list[Region]


class RefinementEngine:
    """Owns one RegionGrid and drives it to completion tick by tick."""

    def __init__(
        self,
        config: RefineConfig | None = None,
        params: DoublePendulumParams | None = None,
        sink: RenderSink | None = None,
    ):
        self.config = config if config is not None else RefineConfig()
        self.params = params if params is not None else DoublePendulumParams()
        self.sink = sink

        self.grid = RegionGrid(
            self.config.width, self.config.height, self.config.min_split_size,
        )
        self.grid.presplit(self.config.initial_depth)
        self.controller = SubdivisionController(self.grid, self.config.flip_threshold)

        self.ticks = 0
        self.stop_count = 0

    @property
    def done(self) -> bool:
        """True once no region is running."""
        return not any(r.running for r in self.grid)

    @property
    def max_simulated_time(self) -> float:
        """Largest elapsed simulated time among current regions."""
        return max(r.elapsed(self.config.dt) for r in self.grid)

    def tick(self) -> TickReport:
        """Advance all running regions by one tick and process stop events."""
        config = self.config
        running = self.grid.running()
        if config.max_active:
            running = running[:config.max_active]
        if not running:
            return TickReport(0, [], [])

        states = np.array([r.state for r in running], dtype=np.float64)
        steps = np.array([r.steps for r in running], dtype=np.int64)
        states, steps, flipped = advance_batch(
            states, steps, self.params, config.dt,
            config.steps_per_tick, config.max_steps,
        )

        events: list[StopEvent] = []
        for i, region in enumerate(running):
            event = region.apply(states[i], int(steps[i]), bool(flipped[i]), config)
            if event is not None:
                events.append(event)
                self._paint(region)

        created = self.controller.process(events)
        for child in created:
            self._paint(child)

        self.ticks += 1
        self.stop_count += len(events)
        logger.debug(
            "Tick %d: advanced %d, stopped %d, created %d, regions %d",
            self.ticks, len(running), len(events), len(created), len(self.grid),
        )

        if self.sink is not None:
            self.sink.refresh()
        return TickReport(len(running), events, created)

    def run(self, max_ticks: int | None = None) -> list[StopEvent]:
        """Tick until every region has stopped (or max_ticks is reached).

        Returns:
            All stop events in the order they occurred.
        """
        events: list[StopEvent] = []
        while not self.done:
            if max_ticks is not None and self.ticks >= max_ticks:
                break
            events.extend(self.tick().stopped)
        logger.info(
            "Run finished after %d ticks: %d regions, %d splits",
            self.ticks, len(self.grid), self.controller.splits,
        )
        return events

    def paint_all(self) -> None:
        """Paint every region once (initial frame or after a sink change)."""
        for region in self.grid:
            self._paint(region)
        if self.sink is not None:
            self.sink.refresh()

    def paint_running(self) -> None:
        """Paint the live colors of all running regions."""
        for region in self.grid.running():
            self._paint(region)

    def _paint(self, region: Region) -> None:
        if self.sink is not None:
            self.sink.paint(region.rect, region.current_color())
