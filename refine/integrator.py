"""Fixed-step RK4 integrator with upper dead center (flip) detection.

Two flavours share the physics in simulation.derivatives():
  - step / advance: a single state vector, used by Region.tick
  - step_batch / advance_batch: (N, 4) arrays, all regions of a tick
    advancing through each timestep simultaneously

Time is counted in integer steps (elapsed = steps * dt) so that results
do not depend on how steps are grouped into ticks.

No in-place mutation of caller arrays: every function returns new arrays.
"""

from __future__ import annotations

import math

import numpy as np

from simulation import DoublePendulumParams, derivatives

TWO_PI = 2.0 * math.pi


def flip_index(theta2):
    """Index of the angular sector delimited by the upper dead center.

    Sector boundaries sit at theta2 = pi + 2*pi*k. The index changes
    exactly when the second arm passes straight up, in either direction.
    Works on scalars and arrays.
    """
    return np.floor((theta2 + math.pi) / TWO_PI)


def crossed_dead_center(theta2_before, theta2_after):
    """True if the second arm passed its upper dead center between two states."""
    return flip_index(theta2_before) != flip_index(theta2_after)


def step(state, params: DoublePendulumParams, dt: float) -> np.ndarray:
    """Advance one state vector [theta1, theta2, omega1, omega2] by one RK4 step.

    Raises:
        FloatingPointError: if the new state is not finite.
    """
    s = np.asarray(state, dtype=np.float64)

    k1 = np.array(derivatives(s, params))
    k2 = np.array(derivatives(s + 0.5 * dt * k1, params))
    k3 = np.array(derivatives(s + 0.5 * dt * k2, params))
    k4 = np.array(derivatives(s + dt * k3, params))

    s_next = s + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)

    if not np.all(np.isfinite(s_next)):
        raise FloatingPointError(f"Non-finite pendulum state {s_next} from {s}")
    return s_next


def derivatives_batch(states: np.ndarray, params: DoublePendulumParams) -> np.ndarray:
    """Compute derivatives for N states at once.

    Args:
        states: (N, 4) array with columns [theta1, theta2, omega1, omega2].

    Returns:
        (N, 4) array of derivatives.
    """
    return np.stack(derivatives(states.T, params), axis=1)


def step_batch(states: np.ndarray, params: DoublePendulumParams, dt: float) -> np.ndarray:
    """Advance an (N, 4) array of states by one RK4 step."""
    k1 = derivatives_batch(states, params)
    k2 = derivatives_batch(states + 0.5 * dt * k1, params)
    k3 = derivatives_batch(states + 0.5 * dt * k2, params)
    k4 = derivatives_batch(states + dt * k3, params)

    return states + (dt / 6.0) * (k1 + 2 * k2 + 2 * k3 + k4)


def advance(
    state,
    params: DoublePendulumParams,
    dt: float,
    steps: int,
    n_steps: int,
    max_steps: int,
) -> tuple[np.ndarray, int, bool]:
    """Run up to n_steps RK4 steps, stopping early on a flip or at max_steps.

    Args:
        state: Current state vector.
        steps: Steps already taken by this pendulum.
        n_steps: Step budget for this call.
        max_steps: Step count at which the pendulum stops integrating.

    Returns:
        (state, steps, flipped) after the call.
    """
    state = np.asarray(state, dtype=np.float64)
    for _ in range(n_steps):
        if steps >= max_steps:
            break
        next_state = step(state, params, dt)
        steps = steps + 1
        flipped = crossed_dead_center(state[1], next_state[1])
        state = next_state
        if flipped:
            return state, steps, True
    return state, steps, False


def advance_batch(
    states: np.ndarray,
    steps: np.ndarray,
    params: DoublePendulumParams,
    dt: float,
    n_steps: int,
    max_steps: int,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Vectorized advance() for N pendulums.

    A row stops changing on the step it flips or reaches max_steps; the
    remaining rows keep integrating until the budget is spent.

    Args:
        states: (N, 4) float array.
        steps: (N,) int array of steps already taken.

    Returns:
        (states, steps, flipped): (N, 4) float64, (N,) int64, (N,) bool.

    Raises:
        FloatingPointError: if any active row becomes non-finite.
    """
    states = np.asarray(states, dtype=np.float64)
    steps = np.asarray(steps, dtype=np.int64)

    flipped = np.zeros(states.shape[0], dtype=bool)
    active = steps < max_steps

    for _ in range(n_steps):
        if not np.any(active):
            break

        states_next = step_batch(states, params, dt)
        if not np.all(np.isfinite(states_next[active])):
            raise FloatingPointError("Non-finite pendulum state in batch step")

        crossed = active & crossed_dead_center(states[:, 1], states_next[:, 1])

        # Stopped rows keep their frozen state
        states = np.where(active[:, np.newaxis], states_next, states)
        steps = steps + active
        flipped = flipped | crossed
        active = active & ~crossed & (steps < max_steps)

    return states, steps, flipped
