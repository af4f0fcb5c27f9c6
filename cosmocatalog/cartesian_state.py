"""
State vector representation in Cartesian coordinates.
"""
from typing import NamedTuple
import numpy as np


class CartesianState(NamedTuple):
    """
    Cartesian state of a body relative to its arc center.

    Attributes:
        r: Position vector [x, y, z] in km
        v: Velocity vector [vx, vy, vz] in km/s

    Note:
        - The coordinate system is the trajectory frame of the arc that
          owns the trajectory producing the state.

    Examples:
        >>> import numpy as np
        >>> state = CartesianState(
        ...     r=np.array([7000.0, 0.0, 0.0]),
        ...     v=np.array([0.0, 7.5, 0.0])
        ... )
    """
    r: np.ndarray  # position [x, y, z] (km)
    v: np.ndarray  # velocity [vx, vy, vz] (km/s)
