"""Refinement configuration: defaults and the frozen RefineConfig.

All tunables of the adaptive flip fractal live here. A RefineConfig is
built once when a run starts (or is reset from the controls) and is
shared read-only by the engine, grid and controller.
"""

from __future__ import annotations

from dataclasses import dataclass

# Canvas size in canvas units (one unit = one pixel of the buffer)
DEFAULT_CANVAS_SIZE = 512.0

# Integration step and steps per engine tick
DEFAULT_DT = 0.01
DEFAULT_STEPS_PER_TICK = 120

# Simulated-time cap before a region is declared timed out
DEFAULT_MAX_TIME = 60.0

# Neighbouring flip times closer than this trigger subdivision
FLIP_TIME_THRESHOLD = 0.9

# Regions narrower or shorter than this are never split
DEFAULT_MIN_SPLIT_SIZE = 8.0

# Flip time that maps to one full turn of the hue wheel
DEFAULT_HUE_PERIOD = 10.0


@dataclass(frozen=True)
class RefineConfig:
    """Immutable settings of one refinement run."""

    width: float = DEFAULT_CANVAS_SIZE
    height: float = DEFAULT_CANVAS_SIZE
    dt: float = DEFAULT_DT
    steps_per_tick: int = DEFAULT_STEPS_PER_TICK
    max_time: float = DEFAULT_MAX_TIME
    flip_threshold: float = FLIP_TIME_THRESHOLD
    min_split_size: float = DEFAULT_MIN_SPLIT_SIZE
    initial_depth: int = 0
    max_active: int = 0  # 0 means no cap
    hue_period: float = DEFAULT_HUE_PERIOD

    def __post_init__(self):
        for name in ("width", "height", "dt", "max_time",
                     "flip_threshold", "min_split_size", "hue_period"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value}")
        if self.steps_per_tick < 1:
            raise ValueError(
                f"steps_per_tick must be >= 1, got {self.steps_per_tick}"
            )
        if self.initial_depth < 0:
            raise ValueError(
                f"initial_depth must be >= 0, got {self.initial_depth}"
            )
        if self.max_active < 0:
            raise ValueError(f"max_active must be >= 0, got {self.max_active}")

    @property
    def max_steps(self) -> int:
        """Integration steps after which a running region times out."""
        return max(1, round(self.max_time / self.dt))
