"""Double pendulum physics engine.

Implements the Lagrangian equations of motion for a double pendulum
with both angles measured from the downward vertical. The second arm's
upper dead center is therefore at theta2 = pi (mod 2*pi).

The equations are written so that the same function works on a single
state vector and on the transposed (4, N) batch used by the integrator.
"""

import math
from dataclasses import dataclass

import numpy as np
from scipy.integrate import solve_ivp


@dataclass(frozen=True)
class DoublePendulumParams:
    """Physical parameters of the double pendulum system."""

    m1: float = 1.0
    m2: float = 1.0
    l1: float = 1.0
    l2: float = 1.0
    g: float = 9.81

    def __post_init__(self):
        for name in ("m1", "m2", "l1", "l2"):
            value = getattr(self, name)
            if not value > 0:
                raise ValueError(f"{name} must be positive, got {value}")

    @classmethod
    def uniform(cls, mass=1.0, length=1.0, g=9.81):
        """Params with identical mass and length for both arms."""
        return cls(m1=mass, m2=mass, l1=length, l2=length, g=g)


def derivatives(state, params):
    """Compute the four first-order ODEs for the double pendulum.

    State vector: [theta1, theta2, omega1, omega2]
    Returns: [d_theta1/dt, d_theta2/dt, d_omega1/dt, d_omega2/dt]

    ``state`` may also be a (4, N) array, in which case every returned
    component is an (N,) array.
    """
    theta1, theta2, omega1, omega2 = state
    m1, m2, l1, l2, g = params.m1, params.m2, params.l1, params.l2, params.g

    delta = theta1 - theta2
    sin_delta = np.sin(delta)
    cos_delta = np.cos(delta)
    denom = m1 + m2 - m2 * cos_delta**2

    alpha1 = (
        -m2 * l1 * omega1**2 * sin_delta * cos_delta
        - m2 * l2 * omega2**2 * sin_delta
        - (m1 + m2) * g * np.sin(theta1)
        + m2 * g * np.sin(theta2) * cos_delta
    ) / (l1 * denom)

    alpha2 = (
        (m1 + m2) * l1 * omega1**2 * sin_delta
        + (m1 + m2) * g * np.sin(theta1) * cos_delta
        + m2 * l2 * omega2**2 * sin_delta * cos_delta
        - (m1 + m2) * g * np.sin(theta2)
    ) / (l2 * denom)

    return [omega1, omega2, alpha1, alpha2]


def positions(state, params):
    """Convert a single state to Cartesian coordinates.

    Returns (x1, y1, x2, y2) with y pointing up and the pivot at the origin.
    """
    theta1, theta2 = state[0], state[1]
    l1, l2 = params.l1, params.l2

    x1 = l1 * np.sin(theta1)
    y1 = -l1 * np.cos(theta1)

    x2 = x1 + l2 * np.sin(theta2)
    y2 = y1 - l2 * np.cos(theta2)

    return x1, y1, x2, y2


def total_energy(state, params):
    """Compute total mechanical energy (T + V) for a single state.

    Potential energy is measured from the pivot point (y=0).
    """
    theta1, theta2, omega1, omega2 = state
    m1, m2, l1, l2, g = params.m1, params.m2, params.l1, params.l2, params.g

    # Kinetic energy
    T = (
        0.5 * (m1 + m2) * l1**2 * omega1**2
        + 0.5 * m2 * l2**2 * omega2**2
        + m2 * l1 * l2 * omega1 * omega2 * np.cos(theta1 - theta2)
    )

    # Potential energy (from pivot)
    V = -(m1 + m2) * g * l1 * np.cos(theta1) - m2 * g * l2 * np.cos(theta2)

    return T + V


def _dead_center_event(t, state):
    # Zero whenever theta2 is an odd multiple of pi
    return math.sin((state[1] - math.pi) / 2)


_dead_center_event.terminal = True


def reference_flip_time(params, theta1_0, theta2_0, omega1_0=0.0, omega2_0=0.0,
                        t_max=60.0, rtol=1e-10, atol=1e-10):
    """Time at which the second arm first passes its upper dead center.

    Integrates with SciPy's DOP853 and a terminal crossing event, which
    makes it an accurate (but slow) reference for the fixed-step
    integrator used by the refinement engine.

    Returns:
        The flip time, or None if the arm does not flip before t_max.
    """
    sol = solve_ivp(
        fun=lambda t, y: derivatives(y, params),
        t_span=(0.0, t_max),
        y0=[theta1_0, theta2_0, omega1_0, omega2_0],
        method="DOP853",
        events=_dead_center_event,
        rtol=rtol,
        atol=atol,
    )
    if sol.t_events[0].size == 0:
        return None
    return float(sol.t_events[0][0])
