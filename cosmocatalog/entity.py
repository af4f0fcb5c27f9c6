"""
Entities and their timelines.

An Entity's motion is described by a Chronology: a sequence of contiguous
Arcs, each valid over its own interval and each carrying its own center,
trajectory, rotation model and frames.
"""
import bisect
import logging
from typing import Dict, List, Optional

import numpy as np
from scipy.spatial.transform import Rotation

from .constants import DEFAULT_END_TIME, DEFAULT_START_TIME
from .frames import Frame, InertialFrame
from .rotations import FixedRotationModel, RotationModel
from .trajectories import FixedPointTrajectory, Trajectory

logger = logging.getLogger(__name__)


class Arc:
    """
    A single validity interval of an entity's motion.

    The trajectory gives the position relative to ``center`` in
    ``trajectory_frame``; the rotation model gives the orientation relative
    to ``body_frame``.
    """

    def __init__(self, center: Optional['Entity'] = None,
                 trajectory: Optional[Trajectory] = None,
                 rotation_model: Optional[RotationModel] = None,
                 trajectory_frame: Optional[Frame] = None,
                 body_frame: Optional[Frame] = None,
                 duration: float = DEFAULT_END_TIME - DEFAULT_START_TIME):
        self.center = center
        self.trajectory = trajectory if trajectory is not None else FixedPointTrajectory(np.zeros(3))
        self.rotation_model = rotation_model if rotation_model is not None else FixedRotationModel()
        self.trajectory_frame = trajectory_frame if trajectory_frame is not None else InertialFrame.icrf()
        self.body_frame = body_frame if body_frame is not None else InertialFrame.icrf()
        self.duration = duration

    def __repr__(self) -> str:
        center = self.center.name if self.center is not None else None
        return f"Arc(center={center!r}, trajectory={self.trajectory!r}, duration={self.duration})"


class Chronology:
    """An ordered list of contiguous arcs starting at ``beginning``."""

    def __init__(self, beginning: float = DEFAULT_START_TIME):
        self.beginning = beginning
        self.arcs: List[Arc] = []

    def add_arc(self, arc: Arc) -> None:
        if arc.duration <= 0.0:
            raise ValueError(f"Arc duration must be positive, got {arc.duration}")
        self.arcs.append(arc)

    def clear_arcs(self) -> None:
        self.arcs.clear()

    @property
    def arc_count(self) -> int:
        return len(self.arcs)

    def start_times(self) -> List[float]:
        """Start time of each arc."""
        times = []
        t = self.beginning
        for arc in self.arcs:
            times.append(t)
            t += arc.duration
        return times

    def arc_start_time(self, index: int) -> float:
        return self.start_times()[index]

    @property
    def ending(self) -> float:
        return self.beginning + sum(arc.duration for arc in self.arcs)

    def active_arc(self, t: float) -> Optional[Arc]:
        """
        The arc valid at time t. Times before the first arc map to the first
        arc and times after the last arc map to the last.
        """
        if not self.arcs:
            return None
        index = bisect.bisect_right(self.start_times(), t) - 1
        return self.arcs[min(max(index, 0), len(self.arcs) - 1)]


class Entity:
    """
    A named object in the catalog.

    Geometry and visualizers are display attachments; the chronology
    determines where the entity is and how it is oriented at any time.
    """

    def __init__(self, name: str):
        self.name = name
        self.chronology = Chronology()
        self.geometry = None
        self.visible = True
        self.visualizers: Dict[str, object] = {}

    def set_geometry(self, geometry) -> None:
        """Attach new geometry, releasing whatever was attached before."""
        if self.geometry is not None and self.geometry is not geometry:
            self.geometry.release()
        self.geometry = geometry

    def set_chronology(self, chronology: Chronology) -> None:
        self.chronology = chronology

    def set_visualizer(self, tag: str, visualizer) -> None:
        self.visualizers[tag] = visualizer

    def visualizer(self, tag: str):
        return self.visualizers.get(tag)

    def remove_visualizer(self, tag: str) -> None:
        self.visualizers.pop(tag, None)

    def position(self, t: float) -> np.ndarray:
        """Position relative to the ICRF origin at time t."""
        arc = self.chronology.active_arc(t)
        if arc is None:
            return np.zeros(3)
        r = arc.trajectory_frame.orientation(t).apply(arc.trajectory.position(t))
        if arc.center is not None:
            r = r + arc.center.position(t)
        return r

    def velocity(self, t: float) -> np.ndarray:
        """Velocity relative to the ICRF origin at time t."""
        arc = self.chronology.active_arc(t)
        if arc is None:
            return np.zeros(3)
        v = arc.trajectory_frame.orientation(t).apply(arc.trajectory.velocity(t))
        if arc.center is not None:
            v = v + arc.center.velocity(t)
        return v

    def orientation(self, t: float) -> Rotation:
        """Orientation relative to the ICRF at time t."""
        arc = self.chronology.active_arc(t)
        if arc is None:
            return Rotation.identity()
        return arc.body_frame.orientation(t) * arc.rotation_model.orientation(t)

    def __repr__(self) -> str:
        return f"Entity('{self.name}', arcs={self.chronology.arc_count})"


class Body(Entity):
    """An entity defined by a catalog 'body' item."""
