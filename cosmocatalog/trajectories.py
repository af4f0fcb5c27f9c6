"""
Trajectory variants constructed by the catalog loader.

A trajectory gives the position (and velocity) of a body relative to the
center of its arc, expressed in the arc's trajectory frame, as a function
of TDB seconds since J2000.
"""
import logging
from abc import ABC, abstractmethod

import numpy as np
from scipy.interpolate import CubicHermiteSpline, CubicSpline
from sgp4.api import SGP4_ERRORS, Satrec

from .cartesian_state import CartesianState
from .constants import DAY, J2000
from .ephemeris import StateSamples
from .errors import FormatError, MalformedTleRecord
from .kepler import elements_to_cartesian
from .orbital_elements import OrbitalElements

logger = logging.getLogger(__name__)

TLE_LINE_LENGTH = 69


class Trajectory(ABC):
    """Base class for all trajectories."""

    @abstractmethod
    def state(self, t: float) -> CartesianState:
        """Return the state at time t (TDB seconds since J2000)."""

    def position(self, t: float) -> np.ndarray:
        return self.state(t).r

    def velocity(self, t: float) -> np.ndarray:
        return self.state(t).v


class FixedPointTrajectory(Trajectory):
    """A body at rest at a fixed position."""

    def __init__(self, position):
        self.position_vector = np.asarray(position, dtype=float)

    def state(self, t: float) -> CartesianState:
        return CartesianState(r=self.position_vector.copy(), v=np.zeros(3))

    def __repr__(self) -> str:
        return f"FixedPointTrajectory({self.position_vector.tolist()})"


class KeplerianTrajectory(Trajectory):
    """Two-body motion described by a fixed set of orbital elements."""

    def __init__(self, elements: OrbitalElements):
        self.elements = elements

    def state(self, t: float) -> CartesianState:
        return elements_to_cartesian(self.elements, t)

    def period(self) -> float:
        """Orbital period in seconds."""
        return 2.0 * np.pi / self.elements.mean_motion


class InterpolatedStateTrajectory(Trajectory):
    """
    A trajectory interpolated from a list of time-tagged samples.

    Positions with velocities use cubic Hermite interpolation; position-only
    samples use a cubic spline whose derivative supplies the velocity.
    Times outside the sampled span are clamped to the first or last sample.
    """

    def __init__(self, samples: StateSamples):
        times = np.asarray(samples.times, dtype=float)
        if times.size == 0:
            raise FormatError("Interpolated trajectory has no samples")
        if times.size > 1 and np.any(np.diff(times) <= 0.0):
            raise FormatError("Interpolated trajectory samples must be strictly increasing in time")

        self.samples = samples
        self._spline = None
        if times.size > 1:
            try:
                if samples.velocities is not None:
                    self._spline = CubicHermiteSpline(times, samples.positions, samples.velocities, axis=0)
                else:
                    self._spline = CubicSpline(times, samples.positions, axis=0)
            except ValueError as exc:
                raise FormatError(f"Bad interpolated trajectory samples: {exc}") from exc

    @property
    def start_time(self) -> float:
        return float(self.samples.times[0])

    @property
    def end_time(self) -> float:
        return float(self.samples.times[-1])

    def state(self, t: float) -> CartesianState:
        if self._spline is None:
            v = self.samples.velocities[0] if self.samples.velocities is not None else np.zeros(3)
            return CartesianState(r=np.array(self.samples.positions[0]), v=np.array(v))

        t = min(max(t, self.start_time), self.end_time)
        return CartesianState(r=self._spline(t), v=self._spline(t, 1))


def create_satrec(line1: str, line2: str) -> Satrec:
    """
    Build an SGP4 satellite record from a two-line element set.

    Raises:
        MalformedTleRecord: if either line is badly formed or the elements are rejected
    """
    line1 = line1.rstrip()
    line2 = line2.rstrip()
    if not line1.startswith('1 ') or len(line1) < TLE_LINE_LENGTH:
        raise MalformedTleRecord(f"Bad first TLE line: '{line1}'")
    if not line2.startswith('2 ') or len(line2) < TLE_LINE_LENGTH:
        raise MalformedTleRecord(f"Bad second TLE line: '{line2}'")

    try:
        satrec = Satrec.twoline2rv(line1, line2)
    except (ValueError, IndexError) as exc:
        raise MalformedTleRecord(f"Invalid TLE data: {exc}") from exc

    if satrec.error != 0:
        raise MalformedTleRecord(f"Invalid TLE data: {SGP4_ERRORS.get(satrec.error, satrec.error)}")

    return satrec


class TleTrajectory(Trajectory):
    """
    A trajectory propagated with SGP4 from a two-line element set.

    Instances are long-lived handles: ``copy`` replaces the element set in
    place so that every arc holding the trajectory sees new elements on its
    next evaluation.
    """

    def __init__(self, satrec: Satrec, line1: str, line2: str):
        self._satrec = satrec
        self.line1 = line1
        self.line2 = line2

    @classmethod
    def create(cls, line1: str, line2: str) -> 'TleTrajectory':
        return cls(create_satrec(line1, line2), line1, line2)

    def copy(self, other: 'TleTrajectory') -> None:
        """Replace this trajectory's elements with those of ``other``."""
        self._satrec = other._satrec
        self.line1 = other.line1
        self.line2 = other.line2

    @property
    def epoch(self) -> float:
        """Epoch of the element set in seconds since J2000."""
        return ((self._satrec.jdsatepoch - J2000) + self._satrec.jdsatepochF) * DAY

    def state(self, t: float) -> CartesianState:
        jd = J2000 + t / DAY
        jd_whole = np.floor(jd)
        error, r, v = self._satrec.sgp4(jd_whole, jd - jd_whole)
        if error != 0:
            raise ValueError(f"SGP4 propagation failed: {SGP4_ERRORS.get(error, error)}")
        return CartesianState(r=np.array(r), v=np.array(v))

    def __repr__(self) -> str:
        return f"TleTrajectory(satnum={self._satrec.satnum})"
