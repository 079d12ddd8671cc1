"""Regions: one double pendulum simulation per canvas rectangle.

A Region's initial state comes from its rectangle center:
  x-center / canvas width  -> theta1 in [0, 2*pi)
  y-center / canvas height -> theta2 in [0, pi)
with both angular velocities zero.

Lifecycle: RUNNING -> FLIPPED(t) or RUNNING -> TIMED_OUT. Both stopped
states are terminal; the state vector and color are frozen from then on.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import NamedTuple

import numpy as np

from simulation import DoublePendulumParams
from refine.config import RefineConfig
from refine.coloring import TIMEOUT_COLOR, flip_color, running_color
from refine.integrator import advance


class RegionStatus(enum.Enum):
    RUNNING = "running"
    FLIPPED = "flipped"
    TIMED_OUT = "timed out"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned canvas rectangle; y grows downward."""

    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def contains(self, px: float, py: float) -> bool:
        """Half-open containment: left/top edges inside, right/bottom outside."""
        return self.x <= px < self.right and self.y <= py < self.bottom

    def overlaps(self, other: Rect) -> bool:
        """True if the interiors intersect (shared edges do not count)."""
        return (
            max(self.x, other.x) < min(self.right, other.right)
            and max(self.y, other.y) < min(self.bottom, other.bottom)
        )

    def quadrants(self) -> tuple[Rect, Rect, Rect, Rect]:
        """Exact halves in both dimensions: top-left, top-right, bottom-left, bottom-right."""
        hw = self.width / 2
        hh = self.height / 2
        return (
            Rect(self.x, self.y, hw, hh),
            Rect(self.x + hw, self.y, hw, hh),
            Rect(self.x, self.y + hh, hw, hh),
            Rect(self.x + hw, self.y + hh, hw, hh),
        )


class StopEvent(NamedTuple):
    """Emitted once when a region leaves the RUNNING state.

    ``flip_time`` is None for a timeout.
    """

    handle: int
    rect: Rect
    flip_time: float | None

    @property
    def timed_out(self) -> bool:
        return self.flip_time is None


def seed_state(rect: Rect, canvas_width: float, canvas_height: float) -> np.ndarray:
    """Initial [theta1, theta2, omega1, omega2] for a rectangle."""
    cx, cy = rect.center
    theta1 = cx / canvas_width * 2.0 * math.pi
    theta2 = cy / canvas_height * math.pi
    return np.array([theta1, theta2, 0.0, 0.0], dtype=np.float64)


class Region:
    """Pendulum simulation unit owning one rectangle of the canvas."""

    def __init__(self, handle: int, rect: Rect, state, depth: int = 0):
        self.handle = handle
        self.rect = rect
        self.depth = depth
        self.state = np.array(state, dtype=np.float64)
        self.status = RegionStatus.RUNNING
        self.steps = 0
        self.flip_time: float | None = None
        self._color: tuple[int, int, int] | None = None

    def __repr__(self):
        return (
            f"Region({self.handle}, {self.rect}, {self.status.value}, "
            f"steps={self.steps})"
        )

    @property
    def running(self) -> bool:
        return self.status is RegionStatus.RUNNING

    def current_color(self) -> tuple[int, int, int]:
        """Display color: live from theta2 while running, frozen once stopped."""
        if self._color is not None:
            return self._color
        return running_color(float(self.state[1]))

    def elapsed(self, dt: float) -> float:
        """Simulated time integrated so far."""
        return self.steps * dt

    def tick(self, params: DoublePendulumParams, config: RefineConfig) -> StopEvent | None:
        """Advance this region by one engine tick.

        Returns the StopEvent if the region flipped or timed out during
        the tick, else None. Stopped regions are left untouched.
        """
        if not self.running:
            return None
        state, steps, flipped = advance(
            self.state, params, config.dt, self.steps,
            config.steps_per_tick, config.max_steps,
        )
        return self.apply(state, steps, flipped, config)

    def apply(self, state, steps: int, flipped: bool, config: RefineConfig) -> StopEvent | None:
        """Record integration results and perform the lifecycle transition.

        Raises:
            RuntimeError: if the region has already stopped.
        """
        if not self.running:
            raise RuntimeError(f"{self!r} has already stopped")

        self.state = np.array(state, dtype=np.float64)
        self.steps = int(steps)

        if flipped:
            self.status = RegionStatus.FLIPPED
            self.flip_time = self.steps * config.dt
            self._color = flip_color(self.flip_time, config.hue_period)
        elif self.steps >= config.max_steps:
            self.status = RegionStatus.TIMED_OUT
            self._color = TIMEOUT_COLOR
        else:
            return None

        return StopEvent(self.handle, self.rect, self.flip_time)
