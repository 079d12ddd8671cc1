"""Tests for refine/config.py: defaults and validation."""

import pytest

from refine.config import (
    DEFAULT_CANVAS_SIZE, DEFAULT_DT, DEFAULT_MAX_TIME, DEFAULT_MIN_SPLIT_SIZE,
    DEFAULT_STEPS_PER_TICK, FLIP_TIME_THRESHOLD, RefineConfig,
)


class TestDefaults:

    def test_default_values(self):
        config = RefineConfig()
        assert config.width == config.height == DEFAULT_CANVAS_SIZE
        assert config.dt == DEFAULT_DT == 0.01
        assert config.steps_per_tick == DEFAULT_STEPS_PER_TICK == 120
        assert config.max_time == DEFAULT_MAX_TIME
        assert config.flip_threshold == FLIP_TIME_THRESHOLD == 0.9
        assert config.min_split_size == DEFAULT_MIN_SPLIT_SIZE
        assert config.initial_depth == 0
        assert config.max_active == 0

    def test_max_steps(self):
        assert RefineConfig().max_steps == 6000
        assert RefineConfig(max_time=1.0, dt=0.01).max_steps == 100

    def test_max_steps_at_least_one(self):
        assert RefineConfig(max_time=0.001, dt=0.01).max_steps == 1

    def test_immutable(self):
        config = RefineConfig()
        with pytest.raises(AttributeError):
            config.dt = 0.02


class TestValidation:

    @pytest.mark.parametrize("field", [
        "width", "height", "dt", "max_time",
        "flip_threshold", "min_split_size", "hue_period",
    ])
    def test_non_positive_rejected(self, field):
        with pytest.raises(ValueError, match=field):
            RefineConfig(**{field: 0.0})

    def test_steps_per_tick(self):
        with pytest.raises(ValueError):
            RefineConfig(steps_per_tick=0)

    def test_negative_depth(self):
        with pytest.raises(ValueError):
            RefineConfig(initial_depth=-1)

    def test_negative_max_active(self):
        with pytest.raises(ValueError):
            RefineConfig(max_active=-5)
