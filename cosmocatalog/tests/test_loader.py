"""Test catalog file loading, require handling and transactional body definition."""
import contextlib
import io
import json
import logging
import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import numpy as np

from cosmocatalog import (
    DAY,
    KMPAU,
    CatalogIOError,
    CatalogParseError,
    Entity,
    LoaderConfig,
    RequireTooDeep,
    TleTrajectory,
    UniverseCatalog,
    UniverseLoader,
    make_loader_config,
)
from cosmocatalog.__main__ import main
from cosmocatalog.loader import LoadState


ISS_LINE1 = "1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991"
ISS_LINE2 = "2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482"
VANGUARD_LINE1 = "1 00005U 58002B   00179.78495062  .00000023  00000-0  28098-4 0  4753"
VANGUARD_LINE2 = "2 00005  34.2682 348.7242 1859667 331.7664  19.3264 10.82419157413667"

TRIANGLE_OBJ = """v 0 0 0
v 2 0 0
v 0 2 0
f 1 2 3
"""


SUN = {
    "name": "Sun",
    "center": "SSB",
    "trajectory": {"type": "FixedPoint", "position": [0.0, 0.0, 0.0]},
    "geometry": {"type": "Globe", "radius": 696000.0, "emissive": True},
}

EARTH = {
    "name": "Earth",
    "center": "Sun",
    "trajectory": {"type": "Keplerian", "semiMajorAxis": "1au", "period": 365.25},
    "rotationModel": {"type": "Uniform", "period": "23.9345h", "inclination": 23.44},
    "geometry": {"type": "Globe", "radius": 6378.14, "baseMap": "earth.jpg"},
}


class CatalogTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.data_path = Path(self.tmpdir.name)
        self.loader = UniverseLoader(LoaderConfig(data_path=self.data_path, model_path=self.data_path))
        self.catalog = UniverseCatalog()
        self.catalog.add_entity(Entity('SSB'))

    def tearDown(self):
        self.tmpdir.cleanup()

    def write_catalog(self, filename, items=(), require=(), **extra):
        contents = dict(extra, items=list(items))
        if require:
            contents['require'] = list(require) if isinstance(require, (list, tuple)) else require
        path = self.data_path / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(contents))
        return path

    def write_file(self, name, text):
        path = self.data_path / name
        path.write_text(text)
        return path


class TestLoadCatalogFile(CatalogTestCase):

    def test_bodies_loaded(self):
        """Bodies are registered and positioned relative to their centers."""
        self.write_catalog('solarsys.json', [SUN, EARTH], name="Solar System")
        names = self.loader.load_catalog_file('solarsys.json', self.catalog)

        self.assertEqual(names, ['Sun', 'Earth'])
        earth = self.catalog.find('Earth')
        self.assertAlmostEqual(np.linalg.norm(earth.position(0.0)) / KMPAU, 1.0, places=9)
        self.assertEqual(earth.chronology.arc_count, 1)
        self.assertTrue(self.catalog.find('Sun').geometry.emissive)
        self.assertIs(self.loader.file_state(self.data_path / 'solarsys.json'), LoadState.LOADED)
        self.assertIs(self.loader.file_state('solarsys.json'), LoadState.LOADED)

    def test_load_twice(self):
        """A file that is already loaded is skipped."""
        self.write_catalog('solarsys.json', [SUN])
        self.assertEqual(self.loader.load_catalog_file('solarsys.json', self.catalog), ['Sun'])
        self.assertEqual(self.loader.load_catalog_file('solarsys.json', self.catalog), [])
        self.assertEqual(self.loader.load_catalog_file('./solarsys.json', self.catalog), [])

    def test_require_loaded_first(self):
        """Required files are loaded before the requiring file's items."""
        self.write_catalog('sun.json', [SUN])
        self.write_catalog('earth.json', [EARTH], require=['sun.json'])
        names = self.loader.load_catalog_file('earth.json', self.catalog)
        self.assertEqual(names, ['Sun', 'Earth'])

    def test_require_relative_to_requiring_file(self):
        """Required paths are resolved from the directory of the file that requires them."""
        self.write_catalog('planets/sun.json', [SUN])
        self.write_catalog('planets/earth.json', [EARTH], require=['sun.json'])
        self.write_catalog('main.json', require=['planets/earth.json'])
        self.assertEqual(self.loader.load_catalog_file('main.json', self.catalog), ['Sun', 'Earth'])

    def test_diamond_require(self):
        """A file required along two paths is loaded once."""
        self.write_catalog('sun.json', [SUN])
        self.write_catalog('a.json', require=['sun.json'])
        self.write_catalog('b.json', require=['sun.json'])
        self.write_catalog('main.json', require=['a.json', 'b.json'])
        self.assertEqual(self.loader.load_catalog_file('main.json', self.catalog), ['Sun'])

    def test_require_cycle(self):
        """A file requiring itself through another file is not loaded again."""
        self.write_catalog('a.json', [SUN], require=['b.json'])
        self.write_catalog('b.json', [{"name": "Probe", "center": "SSB"}], require=['a.json'])
        with self.assertLogs('cosmocatalog.loader', level='WARNING'):
            names = self.loader.load_catalog_file('a.json', self.catalog)
        self.assertEqual(names, ['Probe', 'Sun'])

    def write_require_chain(self, nested):
        for depth in range(nested + 1):
            require = [f'level{depth + 1}.json'] if depth < nested else []
            self.write_catalog(f'level{depth}.json',
                               [{"name": f"Body{depth}", "center": "SSB"}],
                               require=require)

    def test_require_depth_limit(self):
        """Ten nested requires load."""
        self.write_require_chain(10)
        names = self.loader.load_catalog_file('level0.json', self.catalog)
        self.assertEqual(len(names), 11)
        self.assertEqual(names[0], 'Body10')

    def test_require_too_deep(self):
        """Eleven nested requires fail and every file in the chain is marked failed."""
        self.write_require_chain(11)
        with self.assertRaises(RequireTooDeep):
            self.loader.load_catalog_file('level0.json', self.catalog)
        self.assertIs(self.loader.file_state(self.data_path / 'level0.json'), LoadState.FAILED)
        self.assertIs(self.loader.file_state(self.data_path / 'level10.json'), LoadState.FAILED)
        self.assertIsNone(self.loader.file_state(self.data_path / 'level11.json'))

    def test_configured_depth_limit(self):
        """The depth limit comes from the loader configuration."""
        self.write_require_chain(2)
        loader = UniverseLoader(make_loader_config(self.data_path, max_require_depth=1))
        with self.assertRaises(RequireTooDeep):
            loader.load_catalog_file('level0.json', self.catalog)

    def test_invalid_json(self):
        """A syntax error fails the file; it can be loaded once fixed."""
        self.write_file('broken.json', '{"items": [')
        with self.assertRaises(CatalogParseError):
            self.loader.load_catalog_file('broken.json', self.catalog)
        self.assertIs(self.loader.file_state(self.data_path / 'broken.json'), LoadState.FAILED)

        self.write_catalog('broken.json', [SUN])
        self.assertEqual(self.loader.load_catalog_file('broken.json', self.catalog), ['Sun'])

    def test_not_an_object(self):
        """The top level of a catalog must be an object."""
        self.write_file('list.json', '[1, 2, 3]')
        with self.assertRaises(CatalogParseError):
            self.loader.load_catalog_file('list.json', self.catalog)

    def test_missing_file(self):
        """An unreadable file, including a required one, is an I/O error."""
        with self.assertRaises(CatalogIOError):
            self.loader.load_catalog_file('missing.json', self.catalog)

        self.write_catalog('main.json', [SUN], require=['missing.json'])
        with self.assertRaises(CatalogIOError):
            self.loader.load_catalog_file('main.json', self.catalog)
        self.assertNotIn('Sun', self.catalog)

    def test_bad_items_skipped(self):
        """Malformed and unknown items are skipped with a warning."""
        self.write_catalog('mixed.json', [
            "not an item",
            {"type": "Spacecraft", "name": "Odd"},
            {"center": "SSB"},
            SUN,
        ], require="sun.json")
        with self.assertLogs('cosmocatalog.loader', level='WARNING') as logs:
            names = self.loader.load_catalog_file('mixed.json', self.catalog)
        self.assertEqual(names, ['Sun'])
        self.assertEqual(len(logs.records), 4)

    def test_load_catalog_items(self):
        """An in-memory document is loaded like a file."""
        names = self.loader.load_catalog_items({"items": [SUN, EARTH]}, self.catalog)
        self.assertEqual(names, ['Sun', 'Earth'])
        with self.assertRaises(CatalogParseError):
            self.loader.load_catalog_items([SUN], self.catalog)


class TestBodyDefinition(CatalogTestCase):

    def test_start_time_and_arcs(self):
        """Arcs follow one another from the body's start time."""
        self.write_catalog('probe.json', [SUN, {
            "name": "Probe",
            "startTime": "2000-01-01 12:00:00",
            "arcs": [
                {"center": "SSB", "endTime": "2000-01-02 12:00:00",
                 "trajectory": {"type": "FixedPoint", "position": [1.0, 0.0, 0.0]}},
                {"center": "Sun", "endTime": 2451547.0,
                 "trajectory": {"type": "FixedPoint", "position": [2.0, 0.0, 0.0]}},
                {"center": "Sun",
                 "trajectory": {"type": "FixedPoint", "position": [3.0, 0.0, 0.0]},
                 "trajectoryFrame": "EclipticJ2000"},
            ],
        }])
        self.loader.load_catalog_file('probe.json', self.catalog)

        chronology = self.catalog.find('Probe').chronology
        self.assertEqual(chronology.arc_count, 3)
        np.testing.assert_allclose(chronology.start_times(), [0.0, DAY, 2 * DAY], atol=1e-6)
        np.testing.assert_allclose(self.catalog.find('Probe').position(1.5 * DAY), [2.0, 0.0, 0.0])

    def test_end_before_start_rejects_new_body(self):
        """A new body with an arc ending before it starts is not registered."""
        self.write_catalog('probe.json', [{
            "name": "Probe",
            "center": "SSB",
            "startTime": "2010-01-01",
            "endTime": "2000-01-01",
        }])
        with self.assertLogs('cosmocatalog.loader', level='WARNING'):
            names = self.loader.load_catalog_file('probe.json', self.catalog)
        self.assertEqual(names, [])
        self.assertNotIn('Probe', self.catalog)

    def test_failed_redefinition_leaves_body_untouched(self):
        """A bad redefinition of an existing body changes nothing about it."""
        self.write_catalog('solarsys.json', [SUN, EARTH])
        self.loader.load_catalog_file('solarsys.json', self.catalog)
        earth = self.catalog.find('Earth')
        geometry = earth.geometry
        chronology = earth.chronology
        info = self.catalog.body_info('Earth')

        self.write_catalog('bad_arc.json', [dict(EARTH, startTime="2010-01-01", endTime="2000-01-01",
                                                 label={"color": "red"})])
        self.write_catalog('bad_rings.json', [dict(EARTH, geometry={
            "type": "Globe", "radius": 6378.14, "ringSystem": {"innerRadius": 70000.0}})])
        self.write_catalog('bad_center.json', [dict(EARTH, center="Nowhere", visible=False)])

        for file_name in ('bad_arc.json', 'bad_rings.json', 'bad_center.json'):
            with self.assertLogs('cosmocatalog.loader', level='WARNING'):
                self.assertEqual(self.loader.load_catalog_file(file_name, self.catalog), [])
            self.assertIs(self.catalog.find('Earth'), earth)
            self.assertIs(earth.geometry, geometry)
            self.assertIs(earth.chronology, chronology)
            self.assertIs(self.catalog.body_info('Earth'), info)
            self.assertTrue(earth.visible)

    def test_redefinition_keeps_identity(self):
        """A successful redefinition updates the existing body in place."""
        self.write_catalog('solarsys.json', [SUN, EARTH])
        self.loader.load_catalog_file('solarsys.json', self.catalog)
        earth = self.catalog.find('Earth')
        frame = {"type": "BodyFixed", "body": "Earth"}
        self.write_catalog('moon.json', [{"name": "Moon", "center": "Earth", "trajectoryFrame": frame}])
        self.loader.load_catalog_file('moon.json', self.catalog)

        self.write_catalog('earth2.json', [dict(EARTH, visible=False, geometry={"type": "Globe", "radius": 6000.0})])
        self.assertEqual(self.loader.load_catalog_file('earth2.json', self.catalog), ['Earth'])
        self.assertIs(self.catalog.find('Earth'), earth)
        self.assertFalse(earth.visible)
        self.assertEqual(earth.geometry.max_radius, 6000.0)
        self.assertIs(self.catalog.find('Moon').chronology.arcs[0].trajectory_frame.body, earth)

    def test_forward_reference_rejected(self):
        """A frame may only refer to bodies that are already loaded."""
        self.write_catalog('forward.json', [
            {"name": "Probe", "center": "SSB", "bodyFrame": {"type": "BodyFixed", "body": "Sun"}},
            SUN,
        ])
        with self.assertLogs('cosmocatalog.loader', level='WARNING'):
            names = self.loader.load_catalog_file('forward.json', self.catalog)
        self.assertEqual(names, ['Sun'])

    def test_failed_mesh_body_releases_geometry(self):
        """Geometry built for a rejected body does not keep its mesh alive."""
        self.write_file('quad.obj', TRIANGLE_OBJ)
        self.write_catalog('probe.json', [{
            "name": "Probe",
            "center": "SSB",
            "geometry": {"type": "Mesh", "source": "quad.obj", "size": 0.01},
            "trajectory": {"type": "Builtin", "name": "NoSuchEphemeris"},
        }])
        with self.assertLogs('cosmocatalog.loader', level='WARNING'):
            self.loader.load_catalog_file('probe.json', self.catalog)
        self.assertEqual(len(self.loader.clean_geometry_cache()), 1)
        self.assertEqual(len(self.loader.geometry_cache), 0)

    def test_removed_mesh_body_releases_geometry(self):
        """Removing a body lets the cache sweep its mesh."""
        self.write_file('quad.obj', TRIANGLE_OBJ)
        self.write_catalog('probe.json', [{
            "name": "Probe",
            "center": "SSB",
            "geometry": {"type": "Mesh", "source": "quad.obj", "size": 0.01},
            "trajectory": {"type": "FixedPoint", "position": [1.0, 0.0, 0.0]},
        }])
        self.loader.load_catalog_file('probe.json', self.catalog)
        mesh = self.catalog.find('Probe').geometry.mesh
        self.assertEqual(self.loader.clean_geometry_cache(), [])

        removed = self.catalog.remove_entity('Probe')
        self.assertIsNone(removed.geometry)
        self.assertEqual(mesh.ref_count, 1)
        self.assertEqual(len(self.loader.clean_geometry_cache()), 1)

    def test_bad_sample_files_skip_bodies(self):
        """Unusable sample data skips the body that uses it and the file still loads."""
        self.write_file('spin.q', "2451545.0 1 0 0 0\n2451546.0 0 0 0 0\n")
        self.write_file('path.xyz', "2451545.0 1 2 3\n2451546.0 nan 5 6\n")
        self.write_catalog('probes.json', [
            SUN,
            {"name": "Spinner", "center": "Sun",
             "trajectory": {"type": "FixedPoint", "position": [1.0, 0.0, 0.0]},
             "rotationModel": {"type": "Interpolated", "source": "spin.q"}},
            {"name": "Walker", "center": "Sun",
             "trajectory": {"type": "InterpolatedStates", "source": "path.xyz"}},
        ])
        with self.assertLogs('cosmocatalog.loader', level='WARNING') as logs:
            names = self.loader.load_catalog_file('probes.json', self.catalog)

        self.assertEqual(names, ['Sun'])
        self.assertEqual(len(logs.records), 2)
        self.assertNotIn('Spinner', self.catalog)
        self.assertNotIn('Walker', self.catalog)
        self.assertIs(self.loader.file_state('probes.json'), LoadState.LOADED)

    def test_unexpected_error_fails_file(self):
        """An error outside the catalog error family marks the file failed and removes the new body."""
        self.write_catalog('probe.json', [SUN])
        with mock.patch('cosmocatalog.loader.load_arc', side_effect=RuntimeError("boom")):
            with self.assertRaises(RuntimeError):
                self.loader.load_catalog_file('probe.json', self.catalog)

        self.assertNotIn('Sun', self.catalog)
        self.assertIs(self.loader.file_state('probe.json'), LoadState.FAILED)
        self.assertEqual(self.loader.load_catalog_file('probe.json', self.catalog), ['Sun'])

    def test_builtin_trajectory(self):
        """Builtin trajectories are looked up in the catalog."""
        self.catalog.add_builtin_trajectory('SunEphemeris', TleTrajectory.create(ISS_LINE1, ISS_LINE2))
        self.write_catalog('builtin.json', [{
            "name": "Satellite",
            "center": "SSB",
            "trajectory": {"type": "Builtin", "name": "SunEphemeris"},
        }])
        self.loader.load_catalog_file('builtin.json', self.catalog)
        arc = self.catalog.find('Satellite').chronology.arcs[0]
        self.assertIs(arc.trajectory, self.catalog.builtin_trajectory('SunEphemeris'))

    def test_body_info(self):
        """Label and trajectory plot settings are stored with the body."""
        self.write_catalog('probe.json', [{
            "name": "Probe",
            "center": "SSB",
            "label": {"color": "#ff0000", "fadeSize": 50},
            "trajectoryPlot": {"sampleCount": 10, "fade": 2.0, "duration": 365.25, "lead": "12h"},
        }])
        self.loader.load_catalog_file('probe.json', self.catalog)
        info = self.catalog.body_info('Probe')
        self.assertEqual(info.label_color, (1.0, 0.0, 0.0))
        self.assertEqual(info.trajectory_plot_color, (1.0, 0.0, 0.0))
        self.assertEqual(info.trajectory_plot_samples, 100)
        self.assertEqual(info.trajectory_plot_fade, 1.0)
        self.assertAlmostEqual(info.trajectory_plot_duration, 365.25 * DAY)
        self.assertAlmostEqual(info.trajectory_plot_lead, 43200.0)


class TestVisualizerItems(CatalogTestCase):

    def test_visualizers_attached_after_bodies(self):
        """Visualizers may refer to bodies defined later in the same file."""
        self.write_catalog('viz.json', [
            {"type": "Visualizer", "tag": "axes", "body": "Earth", "style": {"type": "BodyAxes", "size": 2}},
            {"type": "Visualizer", "tag": "frame", "body": "Earth", "style": {"type": "FrameAxes"}},
            {"type": "Visualizer", "tag": "sun", "body": "Earth",
             "style": {"type": "BodyDirection", "target": "Sun", "color": "yellow"}},
            SUN,
            EARTH,
        ])
        names = self.loader.load_catalog_file('viz.json', self.catalog)
        self.assertEqual(names, ['Sun', 'Earth'])

        earth = self.catalog.find('Earth')
        self.assertEqual(earth.visualizer('axes').size, 2.0)
        self.assertEqual(earth.visualizer('frame').arrows.opacity, 0.3)
        self.assertIs(earth.visualizer('sun').target, self.catalog.find('Sun'))
        self.assertEqual(earth.visualizer('sun').color, (1.0, 1.0, 0.0))

    def test_bad_visualizers_skipped(self):
        """Visualizers with a missing body, target or style are skipped."""
        self.write_catalog('viz.json', [
            SUN,
            {"type": "Visualizer", "tag": "axes", "body": "Pluto", "style": {"type": "BodyAxes"}},
            {"type": "Visualizer", "tag": "dir", "body": "Sun", "style": {"type": "BodyDirection", "target": "Pluto"}},
            {"type": "Visualizer", "tag": "odd", "body": "Sun", "style": {"type": "Sparkles"}},
            {"type": "Visualizer", "body": "Sun", "style": {"type": "BodyAxes"}},
        ])
        with self.assertLogs('cosmocatalog.loader', level='WARNING') as logs:
            self.loader.load_catalog_file('viz.json', self.catalog)
        self.assertEqual(len(logs.records), 4)
        self.assertEqual(self.catalog.find('Sun').visualizers, {})


class TestTleCatalog(CatalogTestCase):

    ISS = {
        "name": "ISS",
        "center": "SSB",
        "trajectory": {"type": "TLE", "source": "celestrak", "name": "ISS (ZARYA)",
                       "line1": ISS_LINE1, "line2": ISS_LINE2},
    }

    def test_tle_update_reaches_loaded_body(self):
        """Updates for a body's TLE source change where the body is."""
        self.write_catalog('iss.json', [self.ISS])
        self.loader.load_catalog_file('iss.json', self.catalog)
        self.assertEqual(self.loader.resource_requests(), {'celestrak'})

        arc = self.catalog.find('ISS').chronology.arcs[0]
        trajectory = arc.trajectory

        self.loader.update_tle('celestrak', 'ISS (ZARYA)', VANGUARD_LINE1, VANGUARD_LINE2)
        self.assertEqual(self.loader.process_updates(), 1)
        self.assertIs(arc.trajectory, trajectory)

        expected = TleTrajectory.create(VANGUARD_LINE1, VANGUARD_LINE2)
        np.testing.assert_allclose(self.catalog.find('ISS').position(expected.epoch),
                                   expected.position(expected.epoch))

    def test_tle_set_file(self):
        """A TLE set updates every matching trajectory."""
        self.write_catalog('iss.json', [self.ISS])
        self.loader.load_catalog_file('iss.json', self.catalog)
        self.loader.clear_resource_requests()

        tle_set = f"ISS (ZARYA)\n{VANGUARD_LINE1}\n{VANGUARD_LINE2}\nOTHER\n{ISS_LINE1}\n{ISS_LINE2}\n"
        self.assertEqual(self.loader.process_tle_set('celestrak', io.StringIO(tle_set)), 2)
        self.assertEqual(self.loader.process_updates(), 1)
        self.assertEqual(self.catalog.find('ISS').chronology.arcs[0].trajectory.line1, VANGUARD_LINE1)
        self.assertEqual(self.loader.resource_requests(), set())


class TestCommandLine(CatalogTestCase):

    def setUp(self):
        super().setUp()
        package_logger = logging.getLogger('cosmocatalog')
        self.addCleanup(package_logger.setLevel, package_logger.level)
        self.addCleanup(package_logger.handlers.clear)

    def test_main(self):
        """The command line tool lists the loaded bodies and applies TLE files."""
        self.write_catalog('solarsys.json', [SUN, EARTH, TestTleCatalog.ISS])
        tle_path = self.write_file('stations.txt', f"ISS (ZARYA)\n{VANGUARD_LINE1}\n{VANGUARD_LINE2}\n")

        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout), contextlib.redirect_stderr(io.StringIO()):
            status = main([str(self.data_path / 'solarsys.json'),
                           '--data-path', str(self.data_path),
                           '--tle', 'celestrak', str(tle_path)])

        self.assertEqual(status, 0)
        lines = stdout.getvalue().splitlines()
        self.assertEqual(lines[:3], ['Sun', 'Earth', 'ISS'])
        self.assertIn('Updated 1 TLE trajectories', lines)
        self.assertIn('Pending resource requests: celestrak', lines)

    def test_main_error(self):
        """Load errors are reported with a non-zero exit status."""
        stderr = io.StringIO()
        with contextlib.redirect_stderr(stderr):
            status = main([os.path.join(self.tmpdir.name, 'missing.json')])
        self.assertEqual(status, 1)
        self.assertIn('Error', stderr.getvalue())


if __name__ == '__main__':
    unittest.main()
