"""
Reference frames.

Every frame reports its orientation relative to the ICRF as a scipy
``Rotation``. Frames that depend on other bodies hold direct references to
the Entity objects they were resolved against at load time.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from .constants import B1950_THETA, B1950_Z, B1950_ZETA, OBLIQUITY_J2000

if TYPE_CHECKING:
    from .entity import Entity


class Frame(ABC):
    """Base class for all reference frames."""

    @abstractmethod
    def orientation(self, t: float) -> Rotation:
        """Orientation of the frame relative to the ICRF at time t."""


class InertialFrame(Frame):
    """One of a small fixed set of named, non-rotating frames."""

    def __init__(self, name: str, rotation: Rotation):
        self.name = name
        self.rotation = rotation

    def orientation(self, t: float) -> Rotation:
        return self.rotation

    def __repr__(self) -> str:
        return f"InertialFrame('{self.name}')"

    @classmethod
    def named(cls, name: str) -> Optional['InertialFrame']:
        """Return the inertial frame with this name, or None if there is none."""
        return INERTIAL_FRAMES.get(name)

    @classmethod
    def icrf(cls) -> 'InertialFrame':
        return INERTIAL_FRAMES['ICRF']

    @classmethod
    def equator_j2000(cls) -> 'InertialFrame':
        return INERTIAL_FRAMES['EquatorJ2000']

    @classmethod
    def ecliptic_j2000(cls) -> 'InertialFrame':
        return INERTIAL_FRAMES['EclipticJ2000']

    @classmethod
    def equator_b1950(cls) -> 'InertialFrame':
        return INERTIAL_FRAMES['EquatorB1950']


# B1950 -> J2000 precession: Rz(-z) * Ry(theta) * Rz(-zeta)
_B1950_TO_J2000 = Rotation.from_euler('ZYZ', [-B1950_Z, B1950_THETA, -B1950_ZETA])

INERTIAL_FRAMES = {
    'ICRF': InertialFrame('ICRF', Rotation.identity()),
    'EquatorJ2000': InertialFrame('EquatorJ2000', Rotation.identity()),
    'EclipticJ2000': InertialFrame('EclipticJ2000', Rotation.from_euler('x', OBLIQUITY_J2000)),
    'EquatorB1950': InertialFrame('EquatorB1950', _B1950_TO_J2000),
}


class BodyFixedFrame(Frame):
    """A frame that rotates rigidly with a body."""

    def __init__(self, body: 'Entity'):
        self.body = body

    def orientation(self, t: float) -> Rotation:
        return self.body.orientation(t)

    def __repr__(self) -> str:
        return f"BodyFixedFrame('{self.body.name}')"


class Axis(Enum):
    POSITIVE_X = (0, 1.0)
    POSITIVE_Y = (1, 1.0)
    POSITIVE_Z = (2, 1.0)
    NEGATIVE_X = (0, -1.0)
    NEGATIVE_Y = (1, -1.0)
    NEGATIVE_Z = (2, -1.0)

    @property
    def index(self) -> int:
        return self.value[0]

    @property
    def sign(self) -> float:
        return self.value[1]

    @classmethod
    def parse(cls, label: str) -> Optional['Axis']:
        """Parse an axis label such as 'x', '+y' or '-Z'; None if invalid."""
        return AXIS_LABELS.get(label.lower())


AXIS_LABELS = {
    'x': Axis.POSITIVE_X, '+x': Axis.POSITIVE_X,
    'y': Axis.POSITIVE_Y, '+y': Axis.POSITIVE_Y,
    'z': Axis.POSITIVE_Z, '+z': Axis.POSITIVE_Z,
    '-x': Axis.NEGATIVE_X,
    '-y': Axis.NEGATIVE_Y,
    '-z': Axis.NEGATIVE_Z,
}


class FrameDirection(ABC):
    """A direction vector in the ICRF used to build a TwoVectorFrame."""

    def __init__(self, observer: 'Entity', target: 'Entity'):
        self.observer = observer
        self.target = target

    @abstractmethod
    def direction(self, t: float) -> np.ndarray:
        pass


class RelativePosition(FrameDirection):
    """Position of the target relative to the observer."""

    def direction(self, t: float) -> np.ndarray:
        return self.target.position(t) - self.observer.position(t)


class RelativeVelocity(FrameDirection):
    """Velocity of the target relative to the observer."""

    def direction(self, t: float) -> np.ndarray:
        return self.target.velocity(t) - self.observer.velocity(t)


class TwoVectorFrame(Frame):
    """
    A frame whose primary axis points along one direction and whose
    secondary axis lies in the plane of the primary and a second direction.
    """

    def __init__(self, primary: FrameDirection, primary_axis: Axis,
                 secondary: FrameDirection, secondary_axis: Axis):
        if not self.orthogonal_axes(primary_axis, secondary_axis):
            raise ValueError("Primary and secondary axes must be orthogonal")
        self.primary = primary
        self.primary_axis = primary_axis
        self.secondary = secondary
        self.secondary_axis = secondary_axis

    @staticmethod
    def orthogonal_axes(primary: Axis, secondary: Axis) -> bool:
        return primary.index != secondary.index

    def orientation(self, t: float) -> Rotation:
        p = self.primary.direction(t)
        s = self.secondary.direction(t)
        p_hat = p / np.linalg.norm(p)
        s_perp = s - np.dot(s, p_hat) * p_hat
        s_hat = s_perp / np.linalg.norm(s_perp)

        axes = [None, None, None]
        axes[self.primary_axis.index] = self.primary_axis.sign * p_hat
        axes[self.secondary_axis.index] = self.secondary_axis.sign * s_hat
        k = 3 - self.primary_axis.index - self.secondary_axis.index
        axes[k] = np.cross(axes[(k + 1) % 3], axes[(k + 2) % 3])

        return Rotation.from_matrix(np.column_stack(axes))
