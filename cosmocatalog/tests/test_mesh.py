"""Test OBJ mesh decoding and the reference counted geometry cache."""
import io
import os
import tempfile
import unittest

import numpy as np

from cosmocatalog import CatalogIOError, FormatError, GeometryCache
from cosmocatalog.geometry import MeshInstanceGeometry
from cosmocatalog.mesh import load_mesh, load_obj


QUAD_OBJ = """# unit square in two materials
v 0 0 0
v 1 0 0
v 1 1 0
v 0 1 0
vn 0 0 1
vt 0 0
vt 1 1
usemtl hull
f 1/1/1 2/1/1 3/2/1 4/2/1
usemtl panel
f -4 -3 -2
usemtl hull
f 1//1 3//1 4//1
"""


class TestLoadObj(unittest.TestCase):

    def test_faces_and_submeshes(self):
        """Polygons are fan triangulated and every usemtl starts a submesh."""
        mesh = load_obj(io.StringIO(QUAD_OBJ), 'quad.obj')
        self.assertEqual([s.material for s in mesh.submeshes], ['hull', 'panel', 'hull'])
        self.assertEqual(mesh.triangle_count, 4)
        self.assertEqual(mesh.vertex_count, 10)
        np.testing.assert_array_equal(mesh.submeshes[0].indices, [[0, 1, 2], [0, 2, 3]])
        np.testing.assert_allclose(mesh.submeshes[0].vertices[2], [1, 1, 0, 0, 0, 1, 1, 1])

    def test_negative_indices(self):
        """Negative indices count back from the last vertex."""
        mesh = load_obj(io.StringIO(QUAD_OBJ))
        np.testing.assert_allclose(mesh.submeshes[1].vertices[:, :3], [[0, 0, 0], [1, 0, 0], [1, 1, 0]])

    def test_merge_and_uniquify(self):
        """Submeshes sharing a material merge and duplicate vertices are removed."""
        mesh = load_obj(io.StringIO(QUAD_OBJ))
        mesh.merge_submeshes()
        self.assertEqual([s.material for s in mesh.submeshes], ['hull', 'panel'])
        self.assertEqual(mesh.triangle_count, 4)

        hull = mesh.submeshes[0]
        original_corners = hull.vertices[hull.indices]
        mesh.uniquify_vertices()
        hull = mesh.submeshes[0]
        self.assertLess(len(hull.vertices), 7)
        np.testing.assert_array_equal(hull.vertices[hull.indices], original_corners)

    def test_bounding_sphere(self):
        """The bounding radius reaches the farthest vertex."""
        mesh = load_obj(io.StringIO(QUAD_OBJ))
        self.assertAlmostEqual(mesh.bounding_sphere_radius(), np.sqrt(2.0))

    def test_malformed(self):
        """Bad indices, bad numbers and empty meshes are format errors."""
        with self.assertRaises(FormatError):
            load_obj(io.StringIO("v 0 0 0\nv 1 0 0\nf 1 2 3\n"))
        with self.assertRaises(FormatError):
            load_obj(io.StringIO("v 0 zero 0\n"))
        with self.assertRaises(FormatError):
            load_obj(io.StringIO("v 0 0 0\n"))
        with self.assertRaises(FormatError):
            load_obj(io.StringIO("v 0 0 0\nv 1 0 0\nf 1 2\n"))


class TestGeometryCache(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.path = os.path.join(self.tmpdir.name, 'quad.obj')
        with open(self.path, 'w') as f:
            f.write(QUAD_OBJ)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_load_mesh_formats(self):
        """Only OBJ files are accepted and unreadable files are I/O errors."""
        self.assertEqual(load_mesh(self.path).triangle_count, 4)
        with self.assertRaises(FormatError):
            load_mesh(os.path.join(self.tmpdir.name, 'quad.3ds'))
        with self.assertRaises(CatalogIOError):
            load_mesh(os.path.join(self.tmpdir.name, 'missing.obj'))

    def test_same_instance_returned(self):
        """Equivalent paths share one cached mesh."""
        cache = GeometryCache()
        mesh = cache.get_or_load(self.path)
        same = cache.get_or_load(os.path.join(self.tmpdir.name, '.', 'quad.obj'))
        self.assertIs(mesh, same)
        self.assertEqual(len(cache), 1)
        self.assertEqual(mesh.ref_count, 1)
        self.assertEqual(len(mesh.submeshes), 2)

    def test_sweep_keeps_meshes_in_use(self):
        """Meshes referenced by geometry survive a sweep."""
        cache = GeometryCache()
        instance = MeshInstanceGeometry(cache.get_or_load(self.path))
        self.assertEqual(instance.mesh.ref_count, 2)
        self.assertEqual(cache.sweep(), [])
        self.assertIn(self.path, cache)

    def test_release_then_sweep(self):
        """A released mesh is evicted and decoded again on the next request."""
        loads = []

        def counting_loader(path):
            loads.append(path)
            return load_mesh(path)

        cache = GeometryCache(counting_loader)
        instance = MeshInstanceGeometry(cache.get_or_load(self.path))
        first = instance.mesh
        instance.release()
        instance.release()
        self.assertEqual(first.ref_count, 1)

        self.assertEqual(len(cache.sweep()), 1)
        self.assertNotIn(self.path, cache)
        self.assertEqual(first.ref_count, 0)

        second = cache.get_or_load(self.path)
        self.assertIsNot(first, second)
        self.assertEqual(len(loads), 2)

    def test_release_without_reference(self):
        """Releasing more references than were taken is an error."""
        mesh = load_obj(io.StringIO(QUAD_OBJ))
        with self.assertRaises(RuntimeError):
            mesh.release()


if __name__ == '__main__':
    unittest.main()
