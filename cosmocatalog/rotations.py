"""
Rotation model variants constructed by the catalog loader.

A rotation model gives the orientation of a body relative to its arc's body
frame as a scipy ``Rotation``. Quaternions exchanged with the catalog are
ordered [w, x, y, z]; scipy stores them as [x, y, z, w].
"""
from abc import ABC, abstractmethod

import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from .ephemeris import OrientationSamples
from .errors import FormatError


def rotation_from_wxyz(q) -> Rotation:
    q = np.asarray(q, dtype=float)
    try:
        return Rotation.from_quat(np.roll(q, -1, axis=-1))
    except ValueError as exc:
        raise FormatError(f"Invalid quaternion: {exc}") from exc


def rotation_to_wxyz(rotation: Rotation) -> np.ndarray:
    return np.roll(rotation.as_quat(), 1, axis=-1)


def node_inclination_rotation(inclination: float, ascending_node: float) -> Rotation:
    """Rz(node) * Rx(inclination)"""
    return Rotation.from_euler('ZX', [ascending_node, inclination])


class RotationModel(ABC):
    """Base class for all rotation models."""

    @abstractmethod
    def orientation(self, t: float) -> Rotation:
        """Return the orientation at time t (TDB seconds since J2000)."""

    def angular_velocity(self, t: float) -> np.ndarray:
        return np.zeros(3)


class FixedRotationModel(RotationModel):
    """A constant orientation."""

    def __init__(self, rotation: Rotation = None):
        self.rotation = rotation if rotation is not None else Rotation.identity()

    @classmethod
    def from_euler_angles(cls, inclination: float, ascending_node: float, meridian_angle: float) -> 'FixedRotationModel':
        """Rz(node) * Rx(inclination) * Rz(meridian)"""
        return cls(Rotation.from_euler('ZXZ', [ascending_node, inclination, meridian_angle]))

    def orientation(self, t: float) -> Rotation:
        return self.rotation


class UniformRotationModel(RotationModel):
    """
    Rotation at a constant rate about a fixed axis.

    The axis is the z axis tilted by the inclination and ascending node; the
    meridian angle grows linearly from its value at ``epoch``.
    """

    def __init__(self, inclination: float, ascending_node: float, rotation_rate: float,
                 meridian_angle_at_epoch: float, epoch: float = 0.0):
        self.rotation_rate = rotation_rate
        self.meridian_angle_at_epoch = meridian_angle_at_epoch
        self.epoch = epoch
        self.axis_rotation = node_inclination_rotation(inclination, ascending_node)

    @property
    def axis(self) -> np.ndarray:
        return self.axis_rotation.apply([0.0, 0.0, 1.0])

    def orientation(self, t: float) -> Rotation:
        meridian_angle = self.meridian_angle_at_epoch + (t - self.epoch) * self.rotation_rate
        return self.axis_rotation * Rotation.from_euler('z', meridian_angle)

    def angular_velocity(self, t: float) -> np.ndarray:
        return self.axis * self.rotation_rate


class InterpolatedRotationModel(RotationModel):
    """Spherical linear interpolation between sampled orientations, clamped at the ends."""

    def __init__(self, samples: OrientationSamples):
        times = np.asarray(samples.times, dtype=float)
        if times.size == 0:
            raise FormatError("Interpolated rotation has no samples")
        if times.size > 1 and np.any(np.diff(times) <= 0.0):
            raise FormatError("Interpolated rotation samples must be strictly increasing in time")

        self.samples = samples
        self._rotations = rotation_from_wxyz(samples.quaternions)
        self._slerp = Slerp(times, self._rotations) if times.size > 1 else None

    def orientation(self, t: float) -> Rotation:
        if self._slerp is None:
            return self._rotations[0]
        t = min(max(t, float(self.samples.times[0])), float(self.samples.times[-1]))
        return self._slerp(t)
