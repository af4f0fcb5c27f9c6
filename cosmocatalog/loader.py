"""
Catalog loading.

A catalog file is a JSON object with an optional list of other catalog files
to ``require`` and a list of ``items``. Required files are loaded depth
first before the file's own items, so bodies defined in them can be
referenced by name. Body items are then built and committed one at a time;
``Visualizer`` items are attached once all bodies in the file are loaded.

    {
        "name": "Solar System",
        "require": ["planets.json"],
        "items": [
            {
                "name": "Moon",
                "center": "Earth",
                "trajectory": {"type": "Keplerian", "semiMajorAxis": "384400km", "period": 27.32},
                "geometry": {"type": "Globe", "radius": 1737.1}
            }
        ]
    }
"""
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, TextIO

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .asset_cache import GeometryCache
from .body_info import load_body_info
from .catalog import UniverseCatalog
from .config import LoaderConfig
from .entity import Body, Chronology
from .errors import CatalogError, CatalogIOError, CatalogParseError, RequireTooDeep, SchemaError
from .factories import load_arc, load_chronology
from .geometry import NullTextureLoader, TextureLoader, load_geometry
from .mesh import MeshGeometry
from .schema import optional_field
from .tle_updates import TleUpdatePipeline
from .txf import TextureFont, load_font
from .units import date_value
from .visualizers import load_visualizer

logger = logging.getLogger(__name__)


class LoadState(Enum):
    LOADING = 'loading'
    LOADED = 'loaded'
    FAILED = 'failed'


class CatalogDocument(BaseModel):
    """Top level of a catalog file."""
    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(None, description="Descriptive name of the catalog")
    require: List[str] = Field(default_factory=list, description="Catalog files to load first")
    items: List[Any] = Field(default_factory=list, description="Body and Visualizer items")

    @field_validator('name', mode='before')
    @classmethod
    def validate_name(cls, v):
        return v if isinstance(v, str) else None

    @field_validator('require', mode='before')
    @classmethod
    def validate_require(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            logger.warning("Require property must be a list of filenames")
            return []
        return [name for name in v if isinstance(name, str)]

    @field_validator('items', mode='before')
    @classmethod
    def validate_items(cls, v):
        if v is None:
            return []
        if not isinstance(v, list):
            logger.warning("items is not a list")
            return []
        return v


class UniverseLoader:
    """
    Loads catalog files into a UniverseCatalog.

    One loader corresponds to one loading session: it remembers which files
    have been loaded and owns the mesh cache and the TLE update pipeline.
    """

    def __init__(self, config: Optional[LoaderConfig] = None, texture_loader: Optional[TextureLoader] = None):
        self.config = config if config is not None else LoaderConfig()
        self.data_search_path = Path(self.config.data_path)
        self.model_search_path = Path(self.config.model_path)
        self.texture_search_path = Path(self.config.texture_path)
        self.texture_loader = texture_loader if texture_loader is not None else NullTextureLoader()
        self.geometry_cache = GeometryCache()
        self.tle_updates = TleUpdatePipeline()
        self._file_states: Dict[Path, LoadState] = {}

    # Search paths

    def data_file_name(self, file_name: str) -> Path:
        return self.data_search_path / file_name

    def model_file_name(self, file_name: str) -> Path:
        return self.model_search_path / file_name

    def file_state(self, file_name: str | Path) -> Optional[LoadState]:
        return self._file_states.get(self.data_file_name(str(file_name)).resolve())

    # Catalog files

    def load_catalog_file(self, file_name: str | Path, catalog: UniverseCatalog, require_depth: int = 0) -> List[str]:
        """
        Load a catalog file and, first, every file it requires.

        A file that is already loaded, or is still being loaded further up
        a ``require`` chain, is skipped.

        Args:
            file_name: Path relative to the data search path
            catalog: Catalog receiving the bodies
            require_depth: Nesting depth of this file; 0 for a top-level load

        Returns:
            Names of all bodies loaded, including those from required files

        Raises:
            RequireTooDeep: if ``require`` nesting exceeds the configured limit
            CatalogIOError: if the file (or a required file) can't be read
            CatalogParseError: if the file (or a required file) is not a JSON object
        """
        path = self.data_file_name(str(file_name)).resolve()

        state = self._file_states.get(path)
        if state is LoadState.LOADED:
            logger.debug("Catalog file %s is already loaded", path)
            return []
        if state is LoadState.LOADING:
            logger.warning("Recursive require of catalog file %s ignored", path)
            return []

        if require_depth > self.config.max_require_depth:
            raise RequireTooDeep(f"'require' is nested too deeply at {path} (recursive requires?)")

        self._file_states[path] = LoadState.LOADING
        try:
            contents = self._read_catalog(path)

            saved_paths = (self.data_search_path, self.model_search_path)
            self.data_search_path = self.model_search_path = path.parent
            try:
                names = self._load_items(contents, catalog, require_depth)
            finally:
                self.data_search_path, self.model_search_path = saved_paths
        except Exception:
            self._file_states[path] = LoadState.FAILED
            raise

        self._file_states[path] = LoadState.LOADED
        return names

    def load_catalog_items(self, contents: dict, catalog: UniverseCatalog) -> List[str]:
        """Load an already decoded catalog document; required files are resolved against the data path."""
        if not isinstance(contents, dict):
            raise CatalogParseError("Catalog contents must be a JSON object")
        return self._load_items(contents, catalog, 0)

    @staticmethod
    def _read_catalog(path: Path) -> dict:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                contents = json.load(f)
        except json.JSONDecodeError as exc:
            raise CatalogParseError(f"Error in {path}, line {exc.lineno}: {exc.msg}") from exc
        except (OSError, UnicodeDecodeError) as exc:
            raise CatalogIOError(f"Cannot open catalog file {path}: {exc}") from exc

        if not isinstance(contents, dict):
            raise CatalogParseError(f"Catalog file {path} must contain a JSON object")
        if not contents:
            logger.warning("Catalog file %s is empty", path)
        return contents

    def _load_items(self, contents: dict, catalog: UniverseCatalog, require_depth: int) -> List[str]:
        document = CatalogDocument.model_validate(contents)
        if document.name:
            logger.debug("Loading catalog %s", document.name)

        names = []
        for required in document.require:
            names.extend(self.load_catalog_file(required, catalog, require_depth + 1))

        visualizer_items = []
        for index, item in enumerate(document.items):
            if not isinstance(item, dict):
                logger.warning("Invalid item %d in items list", index)
                continue

            item_type = item.get('type') or 'body'
            if item_type == 'body':
                name = self._load_body(item, catalog)
                if name is not None:
                    names.append(name)
            elif item_type == 'Visualizer':
                visualizer_items.append(item)
            else:
                logger.warning("Unknown item type '%s' ignored", item_type)

        for item in visualizer_items:
            self._load_visualizer_item(item, catalog)

        return names

    def _load_body(self, item: dict, catalog: UniverseCatalog) -> Optional[str]:
        """
        Build a body and commit it to the catalog, or leave the catalog as it was.

        A new body is registered as a placeholder before it is built so that
        its own definition may refer to it. An existing body keeps its
        identity and is only modified if the whole definition succeeds.
        """
        name = item.get('name')
        if not isinstance(name, str) or not name:
            logger.warning("Skipping body with bad or missing name")
            return None

        body = catalog.find(name)
        new_body = body is None
        if new_body:
            body = Body(name)
            catalog.add_entity(body)

        geometry = None
        try:
            what = f"body '{name}'"
            geometry_info = optional_field(item, 'geometry', dict, what)
            if geometry_info is not None:
                geometry = load_geometry(geometry_info, catalog, self, body)

            start_time = self.config.default_start_time
            if item.get('startTime') is not None:
                start_time = date_value(item['startTime'])

            if 'arcs' in item:
                arcs_info = item['arcs']
                if not isinstance(arcs_info, list):
                    raise SchemaError("Arcs must be an array")
                arcs = load_chronology(arcs_info, catalog, self, start_time, self.config.default_end_time)
            else:
                arcs = [load_arc(item, catalog, self, start_time, self.config.default_end_time)]
            if not arcs:
                raise SchemaError("At least one arc is required")

            visible = optional_field(item, 'visible', bool, what, True)
            info = load_body_info(item)
        except Exception as exc:
            if geometry is not None:
                geometry.release()
            if new_body:
                catalog.remove_entity(name)
            if not isinstance(exc, CatalogError):
                raise
            logger.warning("Skipping body %s because of errors: %s", name, exc)
            return None

        chronology = Chronology(start_time)
        for arc in arcs:
            chronology.add_arc(arc)

        catalog.set_body_info(name, info)
        body.set_geometry(geometry)
        body.visible = visible
        body.set_chronology(chronology)
        return name

    @staticmethod
    def _load_visualizer_item(item: dict, catalog: UniverseCatalog) -> None:
        tag = item.get('tag')
        body_name = item.get('body')
        if not isinstance(tag, str):
            logger.warning("Bad or missing tag for visualizer")
            return
        if not isinstance(body_name, str):
            logger.warning("Bad or missing body name for visualizer")
            return

        body = catalog.find(body_name)
        if body is None:
            logger.warning("Can't find body %s for visualizer %s", body_name, tag)
            return

        try:
            visualizer = load_visualizer(item, catalog)
        except CatalogError as exc:
            logger.warning("Skipping visualizer %s on %s: %s", tag, body_name, exc)
            return
        body.set_visualizer(tag, visualizer)

    # Assets

    def load_mesh_file(self, path: Path) -> MeshGeometry:
        """
        Return the cached mesh for ``path``, loading it if needed.

        While a mesh is decoded the texture loader searches the mesh's own
        directory unless that has been disabled in the configuration.
        """
        saved_path = self.texture_loader.local_search_path
        if self.config.textures_in_model_directory:
            self.texture_loader.local_search_path = Path(path).parent
        try:
            return self.geometry_cache.get_or_load(path)
        finally:
            self.texture_loader.local_search_path = saved_path

    def clean_geometry_cache(self) -> List[str]:
        """Evict meshes that no body uses any more."""
        return self.geometry_cache.sweep()

    def load_font(self, file_name: str) -> TextureFont:
        """Load a TXF glyph atlas from the data search path."""
        return load_font(self.data_file_name(file_name))

    # TLE updates

    def update_tle(self, source: str, name: str, line1: str, line2: str) -> None:
        """Queue a TLE update; it takes effect at the next ``process_updates``."""
        self.tle_updates.submit(source, name, line1, line2)

    def process_tle_set(self, source: str, stream: TextIO) -> int:
        return self.tle_updates.process_tle_set(source, stream)

    def process_updates(self) -> int:
        """Apply all queued TLE updates; returns the number of live trajectories updated."""
        return self.tle_updates.drain()

    def resource_requests(self) -> set:
        return self.tle_updates.resource_requests()

    def clear_resource_requests(self) -> None:
        self.tle_updates.clear_resource_requests()
