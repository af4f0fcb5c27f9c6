"""
Triangle meshes loaded from Wavefront OBJ files.

Each submesh owns an interleaved vertex array with columns
[x, y, z, nx, ny, nz, u, v] and an (n, 3) array of triangle indices into
it. Attributes missing from the file are zero.
"""
import logging
from pathlib import Path
from typing import List, NamedTuple, TextIO

import numpy as np

from .errors import CatalogIOError, FormatError

logger = logging.getLogger(__name__)

VERTEX_SIZE = 8


class RefCounted:
    """Explicit reference count shared by cached assets."""

    def __init__(self):
        self._ref_count = 0

    @property
    def ref_count(self) -> int:
        return self._ref_count

    def add_ref(self) -> int:
        self._ref_count += 1
        return self._ref_count

    def release(self) -> int:
        if self._ref_count <= 0:
            raise RuntimeError(f"release() called on {self!r} with no references")
        self._ref_count -= 1
        return self._ref_count


class Submesh(NamedTuple):
    material: str
    vertices: np.ndarray  # (n, 8)
    indices: np.ndarray  # (m, 3)


class MeshGeometry(RefCounted):
    """A decoded mesh, shared between every body that displays it."""

    def __init__(self, submeshes: List[Submesh], source: str = ''):
        super().__init__()
        self.submeshes = list(submeshes)
        self.source = source

    @property
    def vertex_count(self) -> int:
        return sum(len(s.vertices) for s in self.submeshes)

    @property
    def triangle_count(self) -> int:
        return sum(len(s.indices) for s in self.submeshes)

    def bounding_sphere_radius(self) -> float:
        """Distance from the origin to the farthest vertex."""
        if not self.submeshes:
            return 0.0
        positions = np.vstack([s.vertices[:, :3] for s in self.submeshes])
        return float(np.max(np.linalg.norm(positions, axis=1), initial=0.0))

    def merge_submeshes(self) -> None:
        """Combine all submeshes that use the same material into one."""
        merged = {}
        for submesh in self.submeshes:
            merged.setdefault(submesh.material, []).append(submesh)

        submeshes = []
        for material, parts in merged.items():
            if len(parts) == 1:
                submeshes.append(parts[0])
                continue
            offsets = np.cumsum([0] + [len(p.vertices) for p in parts[:-1]])
            vertices = np.vstack([p.vertices for p in parts])
            indices = np.vstack([p.indices + offset for p, offset in zip(parts, offsets)])
            submeshes.append(Submesh(material, vertices, indices))

        self.submeshes = submeshes

    def uniquify_vertices(self) -> None:
        """Remove duplicate vertices from each submesh and remap its indices."""
        submeshes = []
        for submesh in self.submeshes:
            vertices, inverse = np.unique(submesh.vertices, axis=0, return_inverse=True)
            inverse = inverse.reshape(-1)
            submeshes.append(Submesh(submesh.material, vertices, inverse[submesh.indices]))
        self.submeshes = submeshes

    def __repr__(self) -> str:
        return f"MeshGeometry('{self.source}', submeshes={len(self.submeshes)}, refs={self.ref_count})"


def _floats(tokens: List[str], count: int, line_number: int) -> List[float]:
    if len(tokens) < count:
        raise FormatError(f"Line {line_number}: expected {count} values")
    try:
        return [float(t) for t in tokens[:count]]
    except ValueError:
        raise FormatError(f"Line {line_number}: invalid number") from None


def _resolve_index(token: str, count: int, line_number: int) -> int:
    """Convert a 1-based (or negative, relative) OBJ index to a 0-based index."""
    try:
        index = int(token)
    except ValueError:
        raise FormatError(f"Line {line_number}: invalid index '{token}'") from None
    index = index - 1 if index > 0 else count + index
    if not 0 <= index < count:
        raise FormatError(f"Line {line_number}: index {token} out of range")
    return index


def load_obj(stream: TextIO, source: str = '') -> MeshGeometry:
    """
    Parse a Wavefront OBJ mesh.

    Polygons are triangulated as fans. A new submesh starts at every
    ``usemtl``, ``o`` or ``g`` statement that follows some faces.

    Raises:
        FormatError: if the file is malformed or contains no faces
    """
    positions = []
    normals = []
    tex_coords = []

    submeshes = []
    material = ''
    vertices = []
    triangles = []

    def finish_submesh():
        if triangles:
            submeshes.append(Submesh(material,
                                     np.array(vertices, dtype=float).reshape(-1, VERTEX_SIZE),
                                     np.array(triangles, dtype=np.int64).reshape(-1, 3)))
        vertices.clear()
        triangles.clear()

    for line_number, line in enumerate(stream, start=1):
        tokens = line.split('#', 1)[0].split()
        if not tokens:
            continue
        keyword, args = tokens[0], tokens[1:]

        if keyword == 'v':
            positions.append(_floats(args, 3, line_number))
        elif keyword == 'vn':
            normals.append(_floats(args, 3, line_number))
        elif keyword == 'vt':
            tex_coords.append(_floats(args, 2, line_number))
        elif keyword == 'f':
            if len(args) < 3:
                raise FormatError(f"Line {line_number}: face has fewer than three vertices")
            corners = []
            for arg in args:
                parts = arg.split('/')
                vertex = list(positions[_resolve_index(parts[0], len(positions), line_number)])
                uv = [0.0, 0.0]
                normal = [0.0, 0.0, 0.0]
                if len(parts) > 1 and parts[1]:
                    uv = tex_coords[_resolve_index(parts[1], len(tex_coords), line_number)]
                if len(parts) > 2 and parts[2]:
                    normal = normals[_resolve_index(parts[2], len(normals), line_number)]
                vertices.append(vertex + list(normal) + list(uv))
                corners.append(len(vertices) - 1)
            for i in range(1, len(corners) - 1):
                triangles.append([corners[0], corners[i], corners[i + 1]])
        elif keyword == 'usemtl':
            finish_submesh()
            material = args[0] if args else ''
        elif keyword in ('o', 'g'):
            finish_submesh()
        # mtllib, s and other statements carry nothing we need

    finish_submesh()

    if not submeshes:
        raise FormatError(f"Mesh {source or '<stream>'} contains no faces")

    return MeshGeometry(submeshes, source)


def load_mesh(path: str | Path) -> MeshGeometry:
    """Read a mesh file; only Wavefront OBJ is supported."""
    path = Path(path)
    if path.suffix.lower() != '.obj':
        raise FormatError(f"Unsupported mesh format '{path.suffix}'")
    try:
        with open(path, 'r') as f:
            mesh = load_obj(f, str(path))
    except OSError as exc:
        raise CatalogIOError(f"Unable to read mesh {path}: {exc}") from exc
    logger.debug("Loaded mesh %s: %d vertices, %d triangles", path, mesh.vertex_count, mesh.triangle_count)
    return mesh
