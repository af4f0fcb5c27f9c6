# Configure JAX to use double precision (64-bit floats) throughout the package
import jax
jax.config.update("jax_enable_x64", True)

from .orbital_elements import OrbitalElements
from .cartesian_state import CartesianState

from .constants import (
    # Constants
    KMPAU,
    DAY,
    YEAR,
    J2000,
    DEFAULT_START_TIME,
    DEFAULT_END_TIME,
    MAX_REQUIRE_DEPTH,
)

from .errors import (
    # Errors
    CatalogError,
    CatalogParseError,
    InvalidUnit,
    InvalidNumber,
    InvalidDate,
    SchemaError,
    UnresolvedReferenceError,
    FormatError,
    TruncatedRecord,
    MalformedTleRecord,
    UnsupportedFontFormat,
    TruncatedFontData,
    LimitExceeded,
    RequireTooDeep,
    ParticleLimitExceeded,
    CatalogIOError,
)

from .units import (
    # Value parsing
    distance_value,
    duration_value,
    angle_value,
    date_value,
    format_distance,
    format_duration,
)

from .kepler import (
    # Functions
    solve_kepler,
    elements_to_cartesian,
)

from .trajectories import (
    # Trajectories
    Trajectory,
    FixedPointTrajectory,
    KeplerianTrajectory,
    InterpolatedStateTrajectory,
    TleTrajectory,
)

from .rotations import (
    # Rotation models
    RotationModel,
    FixedRotationModel,
    UniformRotationModel,
    InterpolatedRotationModel,
)

from .frames import (
    # Frames
    Frame,
    InertialFrame,
    BodyFixedFrame,
    TwoVectorFrame,
    RelativePosition,
    RelativeVelocity,
)

from .entity import (
    # Entities
    Arc,
    Chronology,
    Entity,
    Body,
)

from .tle import TleRecord, parse_tle_set
from .tle_updates import TleUpdatePipeline
from .txf import TextureFont
from .mesh import MeshGeometry
from .asset_cache import GeometryCache
from .body_info import BodyInfo
from .catalog import UniverseCatalog
from .config import LoaderConfig, make_loader_config
from .loader import UniverseLoader

# Alias for compatibility with existing code
AU = KMPAU

__all__ = [
    # Constants
    "AU",
    "KMPAU",
    "DAY",
    "YEAR",
    "J2000",
    "DEFAULT_START_TIME",
    "DEFAULT_END_TIME",
    "MAX_REQUIRE_DEPTH",

    # Named tuples
    "OrbitalElements",
    "CartesianState",

    # Errors
    "CatalogError",
    "CatalogParseError",
    "InvalidUnit",
    "InvalidNumber",
    "InvalidDate",
    "SchemaError",
    "UnresolvedReferenceError",
    "FormatError",
    "TruncatedRecord",
    "MalformedTleRecord",
    "UnsupportedFontFormat",
    "TruncatedFontData",
    "LimitExceeded",
    "RequireTooDeep",
    "ParticleLimitExceeded",
    "CatalogIOError",

    # Value parsing
    "distance_value",
    "duration_value",
    "angle_value",
    "date_value",
    "format_distance",
    "format_duration",

    # Functions
    "solve_kepler",
    "elements_to_cartesian",

    # Trajectories
    "Trajectory",
    "FixedPointTrajectory",
    "KeplerianTrajectory",
    "InterpolatedStateTrajectory",
    "TleTrajectory",

    # Rotation models
    "RotationModel",
    "FixedRotationModel",
    "UniformRotationModel",
    "InterpolatedRotationModel",

    # Frames
    "Frame",
    "InertialFrame",
    "BodyFixedFrame",
    "TwoVectorFrame",
    "RelativePosition",
    "RelativeVelocity",

    # Entities
    "Arc",
    "Chronology",
    "Entity",
    "Body",

    # TLE
    "TleRecord",
    "parse_tle_set",
    "TleUpdatePipeline",

    # Assets
    "TextureFont",
    "MeshGeometry",
    "GeometryCache",

    # Catalog
    "BodyInfo",
    "UniverseCatalog",
    "LoaderConfig",
    "make_loader_config",
    "UniverseLoader",
]
