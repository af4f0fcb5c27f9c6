"""
Orbital elements representation for Keplerian trajectories.
"""
from typing import NamedTuple


class OrbitalElements(NamedTuple):
    """
    Keplerian orbital elements of a body about its arc center.

    All angular quantities are in radians.

    Attributes:
        periapsis_distance: Distance of closest approach (km)
        eccentricity: Eccentricity (dimensionless, 0 <= e < 1 for elliptical orbits)
        inclination: Inclination relative to the trajectory frame (radians)
        ascending_node: Longitude of the ascending node (radians)
        argument_of_periapsis: Argument of periapsis (radians)
        mean_anomaly_at_epoch: Mean anomaly at epoch (radians)
        mean_motion: Mean motion (radians / s)
        epoch: Epoch of the elements (TDB seconds since J2000)
    """
    periapsis_distance: float  # km
    eccentricity: float
    inclination: float  # rad
    ascending_node: float  # rad
    argument_of_periapsis: float  # rad
    mean_anomaly_at_epoch: float  # rad
    mean_motion: float  # rad/s
    epoch: float = 0.0  # s past J2000

    @property
    def semi_major_axis(self) -> float:
        return self.periapsis_distance / (1.0 - self.eccentricity)

    @property
    def mu(self) -> float:
        """Gravitational parameter implied by the semi-major axis and mean motion (km^3/s^2)."""
        return self.mean_motion**2 * self.semi_major_axis**3
