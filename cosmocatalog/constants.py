"""
Physical and catalog constants for cosmocatalog.

This module contains the constants used throughout the catalog loader: unit
conversion factors, the time-scale reference epoch and fixed loader limits.
"""

import numpy as np

# Basic astronomical and time constants
KMPAU = 149597870.691  # km per AU
DAY = 86400.0  # seconds per day
YEAR = 365.25 * DAY  # seconds per Julian year
J2000 = 2451545.0  # Julian date of the J2000.0 epoch (TDB)

# Default validity window of an arc: 12:00 1 Jan 1900 to 12:00 1 Jan 2100 TDB
DEFAULT_START_TIME = -36525.0 * DAY
DEFAULT_END_TIME = 36525.0 * DAY

# Distance conversion factors to kilometers
DISTANCE_UNITS = {
    'mm': 1.0e-6,
    'cm': 1.0e-5,
    'm': 1.0e-3,
    'km': 1.0,
    'au': KMPAU,
}

# Time conversion factors to seconds
TIME_UNITS = {
    'ms': 0.001,
    's': 1.0,
    'm': 60.0,
    'h': 3600.0,
    'd': DAY,
    'y': YEAR,
    'a': YEAR,
}

# Loader limits
MAX_REQUIRE_DEPTH = 10  # deepest permitted nesting of 'require' files
MAX_PARTICLES_PER_EMITTER = 200000  # lifetime * spawnRate cap
MAX_ATLAS_SIZE = 4096  # largest glyph atlas width or height

# Trajectory plot limits
MIN_PLOT_SAMPLES = 100
MAX_PLOT_SAMPLES = 50000

# Tiled map limits
MIN_TILE_SIZE = 128
MAX_TILE_SIZE = 8192
MAX_TILE_LEVELS = 16

# Mean obliquity of the ecliptic at J2000 (radians)
OBLIQUITY_J2000 = np.deg2rad(23.4392911)

# IAU 1976 precession angles from B1950.0 to J2000.0 (radians)
B1950_ZETA = np.deg2rad(1152.84 / 3600.0)
B1950_Z = np.deg2rad(1153.04 / 3600.0)
B1950_THETA = np.deg2rad(1002.26 / 3600.0)

# Heliocentric gravitational parameter (km^3/s^2), used for asteroid swarms
GM_SUN = 1.32712440018e11
