"""
Cache of decoded meshes keyed by source path.

The cache holds one reference to every mesh it stores. Geometry that uses a
mesh acquires another, so a mesh whose reference count is exactly one is no
longer displayed by anything and can be evicted by ``sweep``.
"""
import logging
from pathlib import Path
from typing import Callable, Dict, List

from .mesh import MeshGeometry, load_mesh

logger = logging.getLogger(__name__)


class GeometryCache:

    def __init__(self, loader: Callable[[Path], MeshGeometry] = load_mesh):
        self._loader = loader
        self._meshes: Dict[str, MeshGeometry] = {}

    def __contains__(self, path) -> bool:
        return self._key(path) in self._meshes

    def __len__(self) -> int:
        return len(self._meshes)

    @staticmethod
    def _key(path) -> str:
        return str(Path(path).resolve())

    def get_or_load(self, path: str | Path) -> MeshGeometry:
        """
        Return the cached mesh for ``path``, decoding it on first use.

        Newly decoded meshes have their submeshes merged and duplicate
        vertices removed before they are cached.

        Raises:
            FormatError: if the mesh is malformed
            CatalogIOError: if the file can't be read
        """
        key = self._key(path)
        mesh = self._meshes.get(key)
        if mesh is None:
            mesh = self._loader(Path(key))
            mesh.merge_submeshes()
            mesh.uniquify_vertices()
            mesh.add_ref()
            self._meshes[key] = mesh
        return mesh

    def sweep(self) -> List[str]:
        """
        Evict every mesh referenced only by the cache.

        Returns:
            The paths of the evicted meshes
        """
        evicted = [key for key, mesh in self._meshes.items() if mesh.ref_count == 1]
        for key in evicted:
            self._meshes.pop(key).release()
        if evicted:
            logger.debug("Evicted %d meshes from the geometry cache", len(evicted))
        return evicted
