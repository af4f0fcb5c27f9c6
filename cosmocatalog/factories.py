"""
Construction of trajectories, rotation models, frames and arcs from catalog
records.

Each factory dispatches on the record's ``type`` and raises a CatalogError
when the record can't be turned into an object; nothing is returned in a
partially built state. Named references are resolved against the catalog at
the moment of construction, so referenced bodies must already be loaded.
"""
import logging
from typing import TYPE_CHECKING, List, Union

import numpy as np

from .constants import DEFAULT_END_TIME
from .entity import Arc
from .ephemeris import load_orientation_samples, load_state_samples
from .errors import SchemaError, UnresolvedReferenceError
from .frames import (
    Axis,
    BodyFixedFrame,
    Frame,
    FrameDirection,
    InertialFrame,
    RelativePosition,
    RelativeVelocity,
    TwoVectorFrame,
)
from .orbital_elements import OrbitalElements
from .rotations import (
    FixedRotationModel,
    InterpolatedRotationModel,
    RotationModel,
    UniformRotationModel,
    rotation_from_wxyz,
)
from .schema import optional_field, require_mapping, required_field
from .trajectories import FixedPointTrajectory, InterpolatedStateTrajectory, KeplerianTrajectory, Trajectory
from .units import angle_value, date_value, distance_value, duration_value, quaternion_value, vec3_value

if TYPE_CHECKING:
    from .catalog import UniverseCatalog
    from .entity import Entity
    from .loader import UniverseLoader

logger = logging.getLogger(__name__)


# Trajectories

def load_fixed_trajectory(info: dict) -> FixedPointTrajectory:
    if info.get('position') is None:
        raise SchemaError("Missing position for FixedPoint trajectory")
    return FixedPointTrajectory(vec3_value(info['position']))


def load_keplerian_trajectory(info: dict) -> KeplerianTrajectory:
    """
    Elements are given with a semi-major axis and a period; the mean motion
    and periapsis distance are derived from them.
    """
    what = 'Keplerian trajectory'
    if info.get('semiMajorAxis') is None:
        raise SchemaError(f"Missing semiMajorAxis for {what}")
    if info.get('period') is None:
        raise SchemaError(f"Missing period for {what}")

    sma = distance_value(info['semiMajorAxis'])
    period = duration_value(info['period'], 'd')
    if sma <= 0.0:
        raise SchemaError(f"semiMajorAxis for {what} must be positive")
    if period <= 0.0:
        raise SchemaError(f"period for {what} must be positive")

    eccentricity = float(optional_field(info, 'eccentricity', (int, float), what, 0.0))
    if not 0.0 <= eccentricity < 1.0:
        raise SchemaError(f"eccentricity for {what} must be in [0, 1), got {eccentricity}")

    epoch = date_value(info['epoch']) if info.get('epoch') is not None else 0.0

    elements = OrbitalElements(
        periapsis_distance=(1.0 - eccentricity) * sma,
        eccentricity=eccentricity,
        inclination=angle_value(info.get('inclination')),
        ascending_node=angle_value(info.get('ascendingNode')),
        argument_of_periapsis=angle_value(info.get('argumentOfPeriapsis')),
        mean_anomaly_at_epoch=angle_value(info.get('meanAnomaly')),
        mean_motion=2.0 * np.pi / period,
        epoch=epoch,
    )
    return KeplerianTrajectory(elements)


def load_builtin_trajectory(info: dict, catalog: 'UniverseCatalog') -> Trajectory:
    name = required_field(info, 'name', str, 'Builtin trajectory')
    trajectory = catalog.builtin_trajectory(name)
    if trajectory is None:
        raise UnresolvedReferenceError(f"Unknown builtin trajectory '{name}'")
    return trajectory


def load_interpolated_states_trajectory(info: dict, loader: 'UniverseLoader') -> InterpolatedStateTrajectory:
    source = required_field(info, 'source', str, 'InterpolatedStates trajectory')
    return InterpolatedStateTrajectory(load_state_samples(loader.data_file_name(source)))


def load_tle_trajectory(info: dict, loader: 'UniverseLoader') -> Trajectory:
    what = 'TLE trajectory'
    name = required_field(info, 'name', str, what)
    line1 = required_field(info, 'line1', str, what)
    line2 = required_field(info, 'line2', str, what)
    source = optional_field(info, 'source', str, what, '')
    return loader.tle_updates.trajectory_for(source, name, line1, line2)


def load_trajectory(info: dict, catalog: 'UniverseCatalog', loader: 'UniverseLoader') -> Trajectory:
    """
    Build a trajectory from a ``trajectory`` object.

    Raises:
        SchemaError: unknown type or missing/invalid fields
        UnresolvedReferenceError: unknown builtin name
        FormatError: bad sample file or TLE
        CatalogIOError: sample file can't be read
    """
    trajectory_type = required_field(info, 'type', str, 'trajectory')

    if trajectory_type == 'FixedPoint':
        return load_fixed_trajectory(info)
    elif trajectory_type == 'Keplerian':
        return load_keplerian_trajectory(info)
    elif trajectory_type == 'Builtin':
        return load_builtin_trajectory(info, catalog)
    elif trajectory_type == 'InterpolatedStates':
        return load_interpolated_states_trajectory(info, loader)
    elif trajectory_type == 'TLE':
        return load_tle_trajectory(info, loader)

    raise SchemaError(f"Unknown trajectory type '{trajectory_type}'")


# Rotation models

def load_fixed_rotation_model(info: dict) -> FixedRotationModel:
    if info.get('quaternion') is not None:
        q = quaternion_value(info['quaternion'])
        if not np.any(q):
            raise SchemaError("Quaternion for Fixed rotation model must be non-zero")
        return FixedRotationModel(rotation_from_wxyz(q))

    return FixedRotationModel.from_euler_angles(angle_value(info.get('inclination')),
                                                angle_value(info.get('ascendingNode')),
                                                angle_value(info.get('meridianAngle')))


def load_uniform_rotation_model(info: dict) -> UniformRotationModel:
    if info.get('period') is None:
        raise SchemaError("Missing period for Uniform rotation model")
    period = duration_value(info['period'], 'd')
    if period == 0.0:
        raise SchemaError("period for Uniform rotation model must be non-zero")

    epoch = date_value(info['epoch']) if info.get('epoch') is not None else 0.0
    return UniformRotationModel(inclination=angle_value(info.get('inclination')),
                                ascending_node=angle_value(info.get('ascendingNode')),
                                rotation_rate=2.0 * np.pi / period,
                                meridian_angle_at_epoch=angle_value(info.get('meridianAngle')),
                                epoch=epoch)


def load_builtin_rotation_model(info: dict, catalog: 'UniverseCatalog') -> RotationModel:
    name = required_field(info, 'name', str, 'Builtin rotation model')
    rotation_model = catalog.builtin_rotation_model(name)
    if rotation_model is None:
        raise UnresolvedReferenceError(f"Unknown builtin rotation model '{name}'")
    return rotation_model


def load_interpolated_rotation_model(info: dict, loader: 'UniverseLoader') -> InterpolatedRotationModel:
    what = 'Interpolated rotation model'
    source = required_field(info, 'source', str, what)
    if not source.lower().endswith('.q'):
        raise SchemaError(f"Unknown interpolated rotation format for '{source}'")
    # Celestia orientation files use a different axis convention
    legacy = optional_field(info, 'compatibility', str, what) == 'celestia'
    return InterpolatedRotationModel(load_orientation_samples(loader.data_file_name(source), legacy))


def load_rotation_model(info: dict, catalog: 'UniverseCatalog', loader: 'UniverseLoader') -> RotationModel:
    """Build a rotation model from a ``rotationModel`` object."""
    rotation_type = required_field(info, 'type', str, 'rotation model')

    if rotation_type == 'Fixed':
        return load_fixed_rotation_model(info)
    elif rotation_type == 'Uniform':
        return load_uniform_rotation_model(info)
    elif rotation_type == 'Builtin':
        return load_builtin_rotation_model(info, catalog)
    elif rotation_type == 'Interpolated':
        return load_interpolated_rotation_model(info, loader)

    raise SchemaError(f"Unknown rotation model type '{rotation_type}'")


# Frames

def load_inertial_frame(name: str) -> InertialFrame:
    frame = InertialFrame.named(name)
    if frame is None:
        raise SchemaError(f"Unknown inertial frame '{name}'")
    return frame


def _find_entity(catalog: 'UniverseCatalog', name: str, what: str) -> 'Entity':
    entity = catalog.find(name)
    if entity is None:
        raise UnresolvedReferenceError(f"{what} '{name}' not found")
    return entity


def load_body_fixed_frame(info: dict, catalog: 'UniverseCatalog') -> BodyFixedFrame:
    body_name = required_field(info, 'body', str, 'BodyFixed frame')
    return BodyFixedFrame(_find_entity(catalog, body_name, "BodyFixed frame body"))


def load_frame_direction(info: dict, catalog: 'UniverseCatalog') -> FrameDirection:
    direction_type = required_field(info, 'type', str, 'TwoVector frame direction')
    if direction_type == 'RelativePosition':
        direction_class = RelativePosition
    elif direction_type == 'RelativeVelocity':
        direction_class = RelativeVelocity
    else:
        raise SchemaError(f"Unknown TwoVector frame direction type '{direction_type}'")

    observer_name = required_field(info, 'observer', str, f"{direction_type} direction")
    target_name = required_field(info, 'target', str, f"{direction_type} direction")
    observer = _find_entity(catalog, observer_name, f"Observer body for {direction_type} direction")
    target = _find_entity(catalog, target_name, f"Target body for {direction_type} direction")
    return direction_class(observer, target)


def _parse_axis(label: str, which: str) -> Axis:
    axis = Axis.parse(label)
    if axis is None:
        raise SchemaError(f"Invalid label '{label}' for {which} axis in TwoVector frame")
    return axis


def load_two_vector_frame(info: dict, catalog: 'UniverseCatalog') -> TwoVectorFrame:
    """
    The axis labels are validated, including the orthogonality of the two
    axes, before either direction is resolved.
    """
    what = 'TwoVector frame'
    primary = required_field(info, 'primary', dict, what)
    secondary = required_field(info, 'secondary', dict, what)
    primary_axis = _parse_axis(required_field(info, 'primaryAxis', str, what), 'primary')
    secondary_axis = _parse_axis(required_field(info, 'secondaryAxis', str, what), 'secondary')

    if not TwoVectorFrame.orthogonal_axes(primary_axis, secondary_axis):
        raise SchemaError("Bad TwoVector frame: primary and secondary axes must be orthogonal")

    return TwoVectorFrame(load_frame_direction(primary, catalog), primary_axis,
                          load_frame_direction(secondary, catalog), secondary_axis)


def load_frame(info: Union[str, dict], catalog: 'UniverseCatalog') -> Frame:
    """
    Build a frame from either an inertial frame name or a frame object.
    """
    if isinstance(info, str):
        return load_inertial_frame(info)

    info = require_mapping(info, 'Frame definition')
    frame_type = required_field(info, 'type', str, 'frame')
    if frame_type == 'BodyFixed':
        return load_body_fixed_frame(info, catalog)
    elif frame_type == 'TwoVector':
        return load_two_vector_frame(info, catalog)
    return load_inertial_frame(frame_type)


# Arcs

def load_arc(info: dict, catalog: 'UniverseCatalog', loader: 'UniverseLoader', start_time: float,
             default_end_time: float = DEFAULT_END_TIME) -> Arc:
    """
    Build one arc starting at ``start_time``.

    Omitted parts take their defaults: a fixed point at the center, the
    identity rotation and ICRF frames. The arc ends at ``endTime`` (default
    2100 Jan 1), which must be later than ``start_time``.

    Raises:
        CatalogError: if any part of the arc can't be built
    """
    what = 'arc'
    center_name = required_field(info, 'center', str, what)
    center = _find_entity(catalog, center_name, "Arc center")

    trajectory = None
    trajectory_info = optional_field(info, 'trajectory', dict, what)
    if trajectory_info is not None:
        trajectory = load_trajectory(trajectory_info, catalog, loader)

    rotation_model = None
    rotation_info = optional_field(info, 'rotationModel', dict, what)
    if rotation_info is not None:
        rotation_model = load_rotation_model(rotation_info, catalog, loader)

    trajectory_frame = None
    frame_info = optional_field(info, 'trajectoryFrame', (str, dict), what)
    if frame_info is not None:
        trajectory_frame = load_frame(frame_info, catalog)

    body_frame = None
    frame_info = optional_field(info, 'bodyFrame', (str, dict), what)
    if frame_info is not None:
        body_frame = load_frame(frame_info, catalog)

    end_time = date_value(info['endTime']) if info.get('endTime') is not None else default_end_time
    if end_time <= start_time:
        raise SchemaError("End time must be after the start time")

    return Arc(center=center,
               trajectory=trajectory,
               rotation_model=rotation_model,
               trajectory_frame=trajectory_frame,
               body_frame=body_frame,
               duration=end_time - start_time)


def load_chronology(arcs: list, catalog: 'UniverseCatalog', loader: 'UniverseLoader',
                    start_time: float, default_end_time: float = DEFAULT_END_TIME) -> List[Arc]:
    """
    Build a list of consecutive arcs, each starting where the previous one
    ended. A failure anywhere discards the whole list.
    """
    result = []
    next_start_time = start_time
    for index, arc_info in enumerate(arcs):
        if not isinstance(arc_info, dict):
            raise SchemaError(f"Invalid arc {index} in arcs list")
        arc = load_arc(arc_info, catalog, loader, next_start_time, default_end_time)
        next_start_time += arc.duration
        result.append(arc)
    return result
