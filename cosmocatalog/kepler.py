import jax
import jax.numpy as jnp
from jax import jit
import numpy as np

from .orbital_elements import OrbitalElements
from .cartesian_state import CartesianState


def solve_kepler(M: float, e: float, max_iter: int = 50) -> float:
    """
    Solve Kepler's equation M = E - e*sin(E) for eccentric anomaly E
    using Newton-Raphson iteration with jax.lax.scan.
    """
    # Initial guess: use jax.lax.cond for JIT compatibility
    E = jax.lax.cond(e < 0.8, lambda: M, lambda: jnp.pi * jnp.ones_like(M))

    def body_fn(E, _):
        f = E - e * jnp.sin(E) - M
        fp = 1.0 - e * jnp.cos(E)
        E_new = E - f / fp
        return E_new, E_new

    E_final, _ = jax.lax.scan(body_fn, E, None, length=max_iter)
    return E_final


@jit
def _elements_to_state(q, e, i, Omega, omega, M0, n, dt):
    a = q / (1.0 - e)
    mu = n**2 * a**3

    # Mean anomaly at time t, wrapped to [-pi, pi) for the Newton iteration
    M = jnp.mod(M0 + n * dt + jnp.pi, 2.0 * jnp.pi) - jnp.pi

    E = solve_kepler(M, e)

    # True anomaly
    theta = 2.0 * jnp.arctan2(
        jnp.sqrt(1.0 + e) * jnp.sin(E / 2.0),
        jnp.sqrt(1.0 - e) * jnp.cos(E / 2.0)
    )

    r_mag = a * (1.0 - e**2) / (1.0 + e * jnp.cos(theta))
    v_mag = jnp.sqrt(2.0 * mu / r_mag - mu / a)

    # Flight path angle
    gamma = jnp.arctan2(e * jnp.sin(theta), 1.0 + e * jnp.cos(theta))

    cos_theta_omega = jnp.cos(theta + omega)
    sin_theta_omega = jnp.sin(theta + omega)
    cos_Omega = jnp.cos(Omega)
    sin_Omega = jnp.sin(Omega)
    cos_i = jnp.cos(i)
    sin_i = jnp.sin(i)

    x = r_mag * (cos_theta_omega * cos_Omega - sin_theta_omega * cos_i * sin_Omega)
    y = r_mag * (cos_theta_omega * sin_Omega + sin_theta_omega * cos_i * cos_Omega)
    z = r_mag * sin_theta_omega * sin_i

    cos_theta_omega_gamma = jnp.cos(theta + omega - gamma)
    sin_theta_omega_gamma = jnp.sin(theta + omega - gamma)

    vx = v_mag * (-sin_theta_omega_gamma * cos_Omega - cos_theta_omega_gamma * cos_i * sin_Omega)
    vy = v_mag * (-sin_theta_omega_gamma * sin_Omega + cos_theta_omega_gamma * cos_i * cos_Omega)
    vz = v_mag * cos_theta_omega_gamma * sin_i

    return jnp.array([x, y, z]), jnp.array([vx, vy, vz])


def elements_to_cartesian(elements: OrbitalElements, t: float) -> CartesianState:
    """
    Convert orbital elements to a Cartesian state at time t.

    t is TDB seconds since J2000; the elements are propagated from their own
    epoch. Only elliptical orbits (0 <= e < 1) are supported.
    """
    r, v = _elements_to_state(
        elements.periapsis_distance,
        elements.eccentricity,
        elements.inclination,
        elements.ascending_node,
        elements.argument_of_periapsis,
        elements.mean_anomaly_at_epoch,
        elements.mean_motion,
        t - elements.epoch,
    )
    return CartesianState(r=np.asarray(r), v=np.asarray(v))


_batched_elements_to_state = jit(jax.vmap(_elements_to_state, in_axes=(0, 0, 0, 0, 0, 0, 0, 0)))


def elements_to_positions(q, e, i, Omega, omega, M0, n, dt) -> np.ndarray:
    """
    Positions of many bodies at once.

    Every argument is an array of length N (dt may also be a scalar).

    Returns:
        (N, 3) array of positions in km
    """
    q = jnp.asarray(q)
    dt = jnp.broadcast_to(jnp.asarray(dt, dtype=q.dtype), q.shape)
    r, _ = _batched_elements_to_state(q, jnp.asarray(e), jnp.asarray(i), jnp.asarray(Omega),
                                      jnp.asarray(omega), jnp.asarray(M0), jnp.asarray(n), dt)
    return np.asarray(r)
