"""
Visual geometry attached to bodies.

These are plain descriptions handed to the renderer; nothing here draws.
Textures are requested through a ``TextureLoader`` supplied by the host.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, NamedTuple, Optional, Protocol, Tuple, Union

import numpy as np

from .astorb import SwarmElements, load_astorb
from .constants import MAX_PARTICLES_PER_EMITTER, MAX_TILE_LEVELS, MAX_TILE_SIZE, MIN_TILE_SIZE
from .errors import CatalogError, ParticleLimitExceeded, SchemaError, UnresolvedReferenceError
from .kepler import elements_to_positions
from .mesh import MeshGeometry
from .schema import optional_field, required_field
from .units import (
    angle_value,
    color_value,
    date_value,
    distance_value,
    double_value,
    vec3_value,
)

if TYPE_CHECKING:
    from .catalog import UniverseCatalog
    from .entity import Entity
    from .loader import UniverseLoader

logger = logging.getLogger(__name__)

Color = Tuple[float, float, float]

CLOUD_ALTITUDE = 6.0  # km


class TextureProperties(NamedTuple):
    address_s: str = 'wrap'  # 'wrap' or 'clamp'
    address_t: str = 'wrap'
    usage: str = 'color'  # 'color', 'alpha' or 'compressed_normal_map'


class TextureLoader(Protocol):
    """Host collaborator that locates, fetches and decodes textures."""

    local_search_path: Optional[Path]

    def load_texture(self, name: str, properties: TextureProperties):
        ...


class TextureHandle(NamedTuple):
    name: str
    properties: TextureProperties


class NullTextureLoader:
    """Records texture requests and returns handles without loading anything."""

    def __init__(self):
        self.local_search_path: Optional[Path] = None
        self.requested: List[str] = []

    def load_texture(self, name: str, properties: TextureProperties) -> TextureHandle:
        self.requested.append(name)
        return TextureHandle(name, properties)


class Geometry:
    """Base class for all geometry."""

    def release(self) -> None:
        """Give up any shared resources held by this geometry."""


@dataclass
class WMSTiledMap:
    layer: str
    level_count: int
    tile_size: int


@dataclass
class MultiWMSTiledMap:
    base_layer: str
    base_level_count: int
    detail_layer: str
    detail_level_count: int
    tile_size: int


TiledMap = Union[WMSTiledMap, MultiWMSTiledMap]


@dataclass
class PlanetaryRings(Geometry):
    inner_radius: float  # km
    outer_radius: float  # km
    texture: object = None


@dataclass
class WorldGeometry(Geometry):
    """A planet or moon drawn as an ellipsoid."""
    radii: np.ndarray  # km
    base_map: object = None  # texture handle or tiled map
    normal_map: object = None
    cloud_map: object = None
    cloud_altitude: float = 0.0  # km
    emissive: bool = False
    atmosphere: Optional[Path] = None
    ring_system: Optional[PlanetaryRings] = None

    @property
    def max_radius(self) -> float:
        return float(np.max(self.radii))


class MeshInstanceGeometry(Geometry):
    """A scaled instance of a shared, cached mesh."""

    def __init__(self, mesh: MeshGeometry, scale: float = 1.0):
        self.mesh = mesh
        self.scale = scale
        self._released = False
        mesh.add_ref()

    def release(self) -> None:
        if not self._released:
            self._released = True
            self.mesh.release()

    def __repr__(self) -> str:
        return f"MeshInstanceGeometry({self.mesh.source!r}, scale={self.scale})"


@dataclass
class ArrowGeometry(Geometry):
    """Three labelled arrows along the body axes."""
    scale: float = 1.0
    shaft_length: float = 1.0
    shaft_radius: float = 0.005
    head_length: float = 0.05
    head_radius: float = 0.01
    opacity: float = 1.0


@dataclass
class SensorFrustumGeometry(Geometry):
    source: Optional['Entity']
    target: 'Entity'
    range: float  # km
    shape: str = 'elliptical'
    horizontal_fov: float = np.deg2rad(5.0)
    vertical_fov: float = np.deg2rad(5.0)
    color: Color = (1.0, 1.0, 1.0)
    opacity: float = 0.3
    grid_opacity: float = 0.15


@dataclass
class KeplerianSwarm(Geometry):
    """A cloud of points on independent Keplerian orbits, e.g. the asteroid belt."""
    elements: SwarmElements
    color: Color = (1.0, 1.0, 1.0)
    opacity: float = 1.0
    point_size: float = 1.0

    def positions(self, t: float) -> np.ndarray:
        """(N, 3) positions in km at time t."""
        if len(self.elements) == 0:
            return np.zeros((0, 3))
        e = self.elements
        return elements_to_positions(e.periapsis_distance, e.eccentricity, e.inclination, e.ascending_node,
                                     e.argument_of_periapsis, e.mean_anomaly_at_epoch, e.mean_motion,
                                     t - e.epoch)


@dataclass
class PointGenerator:
    position: np.ndarray
    velocity: np.ndarray


@dataclass
class BoxGenerator:
    sides: np.ndarray
    center: np.ndarray
    velocity: np.ndarray


@dataclass
class DiscGenerator:
    radius: float
    velocity: np.ndarray


@dataclass
class ParticleEmitter:
    generator: object
    lifetime: float  # s
    spawn_rate: float  # particles / s
    start_size: float = 0.0  # km
    end_size: float = 1.0  # km
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    velocity_variation: float = 0.0
    force: np.ndarray = field(default_factory=lambda: np.zeros(3))
    colors: List[Tuple[Color, float]] = field(default_factory=lambda: [((1.0, 1.0, 1.0), 1.0)])
    texture: object = None

    @property
    def max_particles(self) -> float:
        return self.lifetime * self.spawn_rate


@dataclass
class ParticleSystemGeometry(Geometry):
    emitters: List[ParticleEmitter] = field(default_factory=list)


# Loaders

def _int_field(info: dict, key: str, what: str) -> int:
    value = required_field(info, key, (int, float), what)
    return int(value)


def load_tiled_map(info: dict) -> TiledMap:
    what = 'tiled map'
    map_type = optional_field(info, 'type', str, what)
    if map_type == 'WMS':
        layer = required_field(info, 'layer', str, what)
        level_count = _int_field(info, 'levelCount', what)
        tile_size = _int_field(info, 'tileSize', what)
        return WMSTiledMap(layer=layer,
                           level_count=max(1, min(MAX_TILE_LEVELS, level_count)),
                           tile_size=max(MIN_TILE_SIZE, min(MAX_TILE_SIZE, tile_size)))
    elif map_type == 'MultiWMS':
        base_layer = required_field(info, 'baseLayer', str, what)
        base_level_count = _int_field(info, 'baseLevelCount', what)
        detail_layer = required_field(info, 'detailLayer', str, what)
        detail_level_count = _int_field(info, 'detailLevelCount', what)
        tile_size = _int_field(info, 'tileSize', what)

        base_level_count = max(1, min(MAX_TILE_LEVELS, base_level_count))
        detail_level_count = max(base_level_count + 1, min(MAX_TILE_LEVELS, detail_level_count))
        return MultiWMSTiledMap(base_layer=base_layer, base_level_count=base_level_count,
                                detail_layer=detail_layer, detail_level_count=detail_level_count,
                                tile_size=max(MIN_TILE_SIZE, min(MAX_TILE_SIZE, tile_size)))
    raise SchemaError(f"Unknown tiled map type '{map_type}'")


def load_ring_system(info: dict, loader: 'UniverseLoader') -> PlanetaryRings:
    what = 'ring system'
    for key in ('innerRadius', 'outerRadius', 'texture'):
        if info.get(key) is None:
            raise SchemaError(f"{key} missing for {what}")

    texture_name = required_field(info, 'texture', str, what)
    # Radial texture coordinate is clamped, the angular one wraps
    texture = loader.texture_loader.load_texture(texture_name, TextureProperties('clamp', 'wrap'))
    return PlanetaryRings(inner_radius=distance_value(info['innerRadius']),
                          outer_radius=distance_value(info['outerRadius']),
                          texture=texture)


def load_globe(info: dict, loader: 'UniverseLoader') -> WorldGeometry:
    what = 'globe geometry'
    textures = loader.texture_loader

    if info.get('radius') is not None:
        radii = np.full(3, distance_value(info['radius']))
    elif info.get('radii') is not None:
        radii = vec3_value(info['radii'])
    else:
        radii = np.zeros(3)

    world = WorldGeometry(radii=radii)
    map_properties = TextureProperties('wrap', 'clamp')

    base_map = info.get('baseMap')
    if isinstance(base_map, str):
        world.base_map = textures.load_texture(base_map, map_properties)
    elif isinstance(base_map, dict):
        world.base_map = load_tiled_map(base_map)

    normal_map = optional_field(info, 'normalMap', str, what)
    if normal_map is not None:
        world.normal_map = textures.load_texture(normal_map, TextureProperties('wrap', 'clamp', 'compressed_normal_map'))

    world.emissive = optional_field(info, 'emissive', bool, what, False)

    cloud_map = optional_field(info, 'cloudMap', str, what)
    if cloud_map is not None:
        world.cloud_map = textures.load_texture(cloud_map, map_properties)
        world.cloud_altitude = CLOUD_ALTITUDE

    atmosphere = optional_field(info, 'atmosphere', str, what)
    if atmosphere is not None:
        world.atmosphere = loader.data_file_name(atmosphere)

    rings = optional_field(info, 'ringSystem', dict, what)
    if rings is not None:
        world.ring_system = load_ring_system(rings, loader)

    return world


def load_mesh_geometry(info: dict, loader: 'UniverseLoader') -> MeshInstanceGeometry:
    """
    A ``size`` scales the mesh to fit a sphere of that radius; otherwise
    ``scale`` (default 1) is applied directly.
    """
    what = 'mesh geometry'
    source = required_field(info, 'source', str, what)
    radius = distance_value(info['size']) if info.get('size') is not None else 0.0
    scale = double_value(info.get('scale'), 1.0)

    mesh = loader.load_mesh_file(loader.model_file_name(source))
    if radius > 0.0:
        bounding_radius = mesh.bounding_sphere_radius()
        scale = radius / bounding_radius if bounding_radius > 0.0 else 1.0
    return MeshInstanceGeometry(mesh, scale)


def load_axes(info: dict) -> ArrowGeometry:
    return ArrowGeometry(scale=double_value(info.get('scale'), 1.0))


def load_sensor(info: dict, catalog: 'UniverseCatalog', source: Optional['Entity']) -> SensorFrustumGeometry:
    what = 'sensor geometry'
    target_name = required_field(info, 'target', str, what)
    if info.get('range') is None:
        raise SchemaError(f"Missing range for {what}")
    sensor_range = distance_value(info['range'])

    target = catalog.find(target_name)
    if target is None:
        raise UnresolvedReferenceError(f"Target '{target_name}' for sensor geometry not found")

    sensor = SensorFrustumGeometry(
        source=source,
        target=target,
        range=sensor_range,
        horizontal_fov=angle_value(info.get('horizontalFov'), np.deg2rad(5.0)),
        vertical_fov=angle_value(info.get('verticalFov'), np.deg2rad(5.0)),
        color=color_value(info.get('frustumColor')),
        opacity=double_value(info.get('frustumOpacity'), 0.3),
        grid_opacity=double_value(info.get('gridOpacity'), 0.15),
    )
    shape = info.get('shape')
    if shape in ('elliptical', 'rectangular'):
        sensor.shape = shape
    return sensor


def load_swarm(info: dict, loader: 'UniverseLoader') -> KeplerianSwarm:
    what = 'Keplerian swarm'
    source = required_field(info, 'source', str, what)
    swarm_format = required_field(info, 'format', str, what)
    if swarm_format != 'astorb':
        raise SchemaError(f"Unknown format '{swarm_format}' for {what}")

    elements = load_astorb(loader.data_file_name(source))
    return KeplerianSwarm(elements=elements,
                          color=color_value(info.get('color')),
                          opacity=double_value(info.get('opacity'), 1.0),
                          point_size=double_value(info.get('particleSize'), 1.0))


def _optional_vec3(info: dict, key: str) -> np.ndarray:
    return vec3_value(info[key]) if info.get(key) is not None else np.zeros(3)


def load_particle_generator(info: dict):
    generator_type = required_field(info, 'type', str, 'particle generator')
    if generator_type == 'Point':
        return PointGenerator(position=_optional_vec3(info, 'position'),
                              velocity=_optional_vec3(info, 'velocity'))
    elif generator_type == 'Box':
        return BoxGenerator(sides=_optional_vec3(info, 'sides'),
                            center=_optional_vec3(info, 'center'),
                            velocity=_optional_vec3(info, 'velocity'))
    elif generator_type == 'Disc':
        return DiscGenerator(radius=double_value(info.get('radius'), 0.0),
                             velocity=_optional_vec3(info, 'velocity'))
    raise SchemaError(f"Unknown particle generator type '{generator_type}'")


def load_particle_emitter(info: dict, max_particles: int = MAX_PARTICLES_PER_EMITTER) -> ParticleEmitter:
    """
    Raises:
        SchemaError: missing spawn rate, lifetime or generator, or non-positive values
        ParticleLimitExceeded: lifetime * spawnRate exceeds the per-emitter cap
    """
    what = 'particle emitter'
    spawn_rate = float(required_field(info, 'spawnRate', (int, float), what))
    lifetime = float(required_field(info, 'lifetime', (int, float), what))
    generator = load_particle_generator(required_field(info, 'generator', dict, what))

    if lifetime <= 0.0:
        raise SchemaError("Particle lifetime must be a positive value")
    if spawn_rate <= 0.0:
        raise SchemaError("Particle spawn rate must be a positive value")
    if lifetime * spawn_rate > max_particles:
        raise ParticleLimitExceeded(
            f"{max_particles} particle per emitter limit exceeded; reduce the spawn rate"
        )

    emitter = ParticleEmitter(generator=generator, lifetime=lifetime, spawn_rate=spawn_rate)
    if info.get('startSize') is not None:
        emitter.start_size = distance_value(info['startSize'])
    if info.get('endSize') is not None:
        emitter.end_size = distance_value(info['endSize'])
    if info.get('startTime') is not None:
        emitter.start_time = date_value(info['startTime'])
    if info.get('endTime') is not None:
        emitter.end_time = date_value(info['endTime'])
    emitter.velocity_variation = double_value(info.get('velocityVariation'), 0.0)
    if info.get('force') is not None:
        emitter.force = vec3_value(info['force'])

    # Interleaved color and opacity, e.g. ["#00ff00", 0.0, "#ffff80", 1.0]; at most five colors
    colors = info.get('colors')
    if isinstance(colors, list) and len(colors) >= 2:
        emitter.colors = [(color_value(colors[2 * i]), double_value(colors[2 * i + 1], 1.0))
                          for i in range(min(len(colors) // 2, 5))]

    return emitter


def load_particle_system(info: dict, loader: 'UniverseLoader') -> ParticleSystemGeometry:
    emitters = required_field(info, 'emitters', list, 'particle system')

    particles = ParticleSystemGeometry()
    for index, emitter_info in enumerate(emitters):
        if not isinstance(emitter_info, dict):
            logger.warning("Bad emitter %d in particle system", index)
            continue
        try:
            emitter = load_particle_emitter(emitter_info, loader.config.max_particles_per_emitter)
        except CatalogError as exc:
            logger.warning("Skipping particle emitter %d: %s", index, exc)
            continue
        texture_name = emitter_info.get('texture')
        if isinstance(texture_name, str):
            emitter.texture = loader.texture_loader.load_texture(
                texture_name, TextureProperties('clamp', 'clamp'))
        particles.emitters.append(emitter)

    return particles


def load_geometry(info: dict, catalog: 'UniverseCatalog', loader: 'UniverseLoader',
                  body: Optional['Entity'] = None) -> Geometry:
    """
    Build geometry from a catalog ``geometry`` object.

    Args:
        info: The geometry object; its ``type`` selects the variant
        catalog: Catalog used to resolve sensor targets
        loader: Supplies search paths, the texture loader and the mesh cache
        body: The body being defined, used as the source of sensor geometry

    Raises:
        CatalogError: if the geometry can't be built
    """
    geometry_type = required_field(info, 'type', str, 'geometry')

    if geometry_type == 'Globe':
        return load_globe(info, loader)
    elif geometry_type == 'Mesh':
        return load_mesh_geometry(info, loader)
    elif geometry_type == 'Axes':
        return load_axes(info)
    elif geometry_type == 'Sensor':
        return load_sensor(info, catalog, body)
    elif geometry_type == 'KeplerianSwarm':
        return load_swarm(info, loader)
    elif geometry_type == 'ParticleSystem':
        return load_particle_system(info, loader)
    elif geometry_type == 'Rings':
        return load_ring_system(info, loader)

    raise SchemaError(f"Unknown type '{geometry_type}' for geometry")
