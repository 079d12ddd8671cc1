"""Tests for refine/integrator.py: RK4 steps, flip detection, batch advance."""

import math

import numpy as np
import pytest

from simulation import DoublePendulumParams, reference_flip_time, total_energy
from refine.integrator import (
    advance, advance_batch, crossed_dead_center, derivatives_batch,
    flip_index, step, step_batch,
)

DT = 0.01


class TestFlipDetection:
    """Dead center crossings of theta2 at odd multiples of pi."""

    @pytest.mark.parametrize("before, after", [
        (3.1, 3.2),                 # upward through pi
        (3.2, 3.1),                 # back down through pi
        (-3.1, -3.2),               # through -pi
        (3 * math.pi - 0.01, 3 * math.pi + 0.01),
    ])
    def test_crossing_detected(self, before, after):
        assert crossed_dead_center(before, after)

    @pytest.mark.parametrize("before, after", [
        (0.1, -0.1),                # through the bottom
        (3.0, 3.1),
        (2 * math.pi - 0.1, 2 * math.pi + 0.1),
        (1.0, 1.0),
    ])
    def test_no_crossing(self, before, after):
        assert not crossed_dead_center(before, after)

    def test_flip_index_vectorized(self):
        theta2 = np.array([0.0, 3.2, -3.2, 10.0])
        np.testing.assert_array_equal(flip_index(theta2), [0, 1, -1, 2])


class TestStep:
    """Test the single-state RK4 step."""

    def test_deterministic(self):
        params = DoublePendulumParams()
        state = [math.pi, math.pi / 2, 0.0, 0.0]
        np.testing.assert_array_equal(step(state, params, DT), step(state, params, DT))

    def test_rest_state_stays_at_rest(self):
        params = DoublePendulumParams()
        s = step([0.0, 0.0, 0.0, 0.0], params, DT)
        np.testing.assert_array_equal(s, [0.0, 0.0, 0.0, 0.0])

    def test_does_not_mutate_input(self):
        params = DoublePendulumParams()
        state = np.array([1.0, 0.5, 0.0, 0.0])
        step(state, params, DT)
        np.testing.assert_array_equal(state, [1.0, 0.5, 0.0, 0.0])

    def test_non_finite_state_raises(self):
        params = DoublePendulumParams()
        with pytest.raises(FloatingPointError):
            step([np.nan, 0.0, 0.0, 0.0], params, DT)

    def test_energy_drift_small(self):
        """RK4 at dt=0.01 keeps energy close to its initial value over 10 s."""
        params = DoublePendulumParams()
        state = np.array([math.pi / 2, math.pi / 2, 0.0, 0.0])
        e0 = total_energy(state, params)
        for _ in range(1000):
            state = step(state, params, DT)
        assert abs(total_energy(state, params) - e0) < 5e-2


class TestStepBatch:
    """Cross-validate the batch step against the scalar step."""

    def test_matches_scalar(self):
        params = DoublePendulumParams.uniform(1.5, 0.8)
        test_states = [
            [0.0, 0.0, 0.0, 0.0],
            [math.pi / 2, math.pi / 2, 0.0, 0.0],
            [1.0, -1.0, 2.0, -2.0],
            [math.pi, math.pi / 2, 0.0, 0.0],
        ]
        batch = step_batch(np.array(test_states), params, DT)
        for j, state in enumerate(test_states):
            np.testing.assert_allclose(batch[j], step(state, params, DT), rtol=0, atol=1e-12)

    def test_derivatives_batch_shape(self):
        params = DoublePendulumParams()
        states = np.random.default_rng(0).normal(size=(50, 4))
        assert derivatives_batch(states, params).shape == (50, 4)


class TestAdvance:
    """Test the multi-step advance with early stop."""

    def test_spinning_arm_flips(self):
        params = DoublePendulumParams()
        state, steps, flipped = advance([0.0, 0.0, 0.0, 15.0], params, DT, 0, 500, 10_000)
        assert flipped
        assert 0 < steps < 500
        # Stopped on the first step past the top
        assert flip_index(state[1]) == 1

    def test_flip_time_close_to_reference(self):
        """Fixed-step flip time lands within two steps of the DOP853 reference."""
        params = DoublePendulumParams()
        _, steps, flipped = advance([0.0, 0.0, 0.0, 15.0], params, DT, 0, 500, 10_000)
        t_ref = reference_flip_time(params, 0.0, 0.0, 0.0, 15.0, t_max=5.0)
        assert flipped
        assert abs(steps * DT - t_ref) <= 2 * DT

    def test_budget_exhausted_without_flip(self):
        params = DoublePendulumParams()
        _, steps, flipped = advance([0.1, 0.1, 0.0, 0.0], params, DT, 0, 50, 10_000)
        assert not flipped
        assert steps == 50

    def test_stops_at_max_steps(self):
        params = DoublePendulumParams()
        _, steps, flipped = advance([0.1, 0.1, 0.0, 0.0], params, DT, 95, 50, 100)
        assert not flipped
        assert steps == 100

    def test_at_cap_is_noop(self):
        params = DoublePendulumParams()
        state, steps, flipped = advance([0.1, 0.2, 0.0, 0.0], params, DT, 100, 50, 100)
        np.testing.assert_array_equal(state, [0.1, 0.2, 0.0, 0.0])
        assert steps == 100
        assert not flipped

    def test_tick_grouping_invariant(self):
        """One call of 100 steps equals four calls of 25, bit for bit."""
        params = DoublePendulumParams()
        start = [2.0, 1.0, 0.0, 0.0]
        whole, whole_steps, _ = advance(start, params, DT, 0, 100, 10_000)

        state, steps = np.array(start), 0
        for _ in range(4):
            state, steps, _ = advance(state, params, DT, steps, 25, 10_000)

        assert steps == whole_steps
        np.testing.assert_array_equal(state, whole)


class TestAdvanceBatch:
    """Cross-validate advance_batch against per-row advance."""

    def test_matches_scalar_rows(self):
        params = DoublePendulumParams()
        rows = [
            ([0.0, 0.0, 0.0, 15.0], 0),     # flips quickly
            ([0.1, 0.1, 0.0, 0.0], 0),      # never flips
            ([0.1, 0.1, 0.0, 0.0], 180),    # reaches the cap mid-call
            ([0.5, 0.2, 0.0, 0.0], 200),    # already at the cap
        ]
        max_steps = 200
        states = np.array([r[0] for r in rows])
        steps = np.array([r[1] for r in rows])

        b_states, b_steps, b_flipped = advance_batch(states, steps, params, DT, 120, max_steps)

        for j, (state, start_steps) in enumerate(rows):
            s_state, s_steps, s_flipped = advance(state, params, DT, start_steps, 120, max_steps)
            assert b_steps[j] == s_steps
            assert b_flipped[j] == s_flipped
            np.testing.assert_allclose(b_states[j], s_state, rtol=0, atol=1e-9)

    def test_does_not_mutate_inputs(self):
        params = DoublePendulumParams()
        states = np.array([[1.0, 0.5, 0.0, 0.0]])
        steps = np.array([0])
        advance_batch(states, steps, params, DT, 10, 100)
        np.testing.assert_array_equal(states, [[1.0, 0.5, 0.0, 0.0]])
        np.testing.assert_array_equal(steps, [0])

    def test_non_finite_raises(self):
        params = DoublePendulumParams()
        states = np.array([[np.nan, 0.0, 0.0, 0.0]])
        with pytest.raises(FloatingPointError):
            advance_batch(states, np.array([0]), params, DT, 5, 100)
