"""
Reader for the Lowell Observatory asteroid orbit database (astorb.dat).

Each line is a fixed-column record; only the osculating elements are used:

    columns 107-114   epoch of osculation (yyyymmdd, TT)
    columns 116-125   mean anomaly (deg)
    columns 127-136   argument of perihelion (deg)
    columns 138-147   longitude of ascending node (deg)
    columns 148-156   inclination (deg)
    columns 158-167   eccentricity
    columns 169-180   semi-major axis (au)
"""
import logging
from pathlib import Path
from typing import NamedTuple, TextIO

import numpy as np
from astropy.time import Time

from .constants import GM_SUN, KMPAU
from .errors import CatalogIOError, FormatError
from .units import time_to_tdb_seconds

logger = logging.getLogger(__name__)

ASTORB_RECORD_LENGTH = 180

EPOCH_COLUMNS = slice(106, 114)
MEAN_ANOMALY_COLUMNS = slice(115, 125)
PERIHELION_COLUMNS = slice(126, 136)
NODE_COLUMNS = slice(137, 147)
INCLINATION_COLUMNS = slice(147, 156)
ECCENTRICITY_COLUMNS = slice(157, 167)
SEMI_MAJOR_AXIS_COLUMNS = slice(168, 180)


class SwarmElements(NamedTuple):
    """Heliocentric elements of N bodies, one array entry per body."""
    periapsis_distance: np.ndarray  # km
    eccentricity: np.ndarray
    inclination: np.ndarray  # rad
    ascending_node: np.ndarray  # rad
    argument_of_periapsis: np.ndarray  # rad
    mean_anomaly_at_epoch: np.ndarray  # rad
    mean_motion: np.ndarray  # rad/s
    epoch: np.ndarray  # TDB seconds since J2000

    def __len__(self) -> int:
        return len(self.eccentricity)


def _epoch_iso(text: str) -> str:
    text = text.strip()
    if len(text) != 8 or not text.isdigit():
        raise ValueError(f"bad epoch '{text}'")
    return f"{text[0:4]}-{text[4:6]}-{text[6:8]}"


def read_astorb(stream: TextIO) -> SwarmElements:
    """
    Parse astorb records.

    Records with hyperbolic or parabolic elements are skipped.

    Raises:
        FormatError: if a record is too short or a field does not parse
    """
    rows = []
    epochs = []
    skipped = 0
    for line_number, line in enumerate(stream, start=1):
        line = line.rstrip('\n')
        if not line.strip():
            continue
        if len(line) < ASTORB_RECORD_LENGTH:
            raise FormatError(f"astorb record {line_number} is truncated")
        try:
            epoch = _epoch_iso(line[EPOCH_COLUMNS])
            mean_anomaly = float(line[MEAN_ANOMALY_COLUMNS])
            perihelion = float(line[PERIHELION_COLUMNS])
            node = float(line[NODE_COLUMNS])
            inclination = float(line[INCLINATION_COLUMNS])
            eccentricity = float(line[ECCENTRICITY_COLUMNS])
            sma = float(line[SEMI_MAJOR_AXIS_COLUMNS]) * KMPAU
        except ValueError as exc:
            raise FormatError(f"Bad field in astorb record {line_number}: {exc}") from exc

        if not 0.0 <= eccentricity < 1.0 or sma <= 0.0:
            skipped += 1
            continue

        rows.append((sma * (1.0 - eccentricity), eccentricity, np.deg2rad(inclination), np.deg2rad(node),
                     np.deg2rad(perihelion), np.deg2rad(mean_anomaly), np.sqrt(GM_SUN / sma**3)))
        epochs.append(epoch)

    if skipped:
        logger.debug("Skipped %d astorb records with unbound orbits", skipped)

    data = np.array(rows, dtype=float).reshape(-1, 7)
    epoch_seconds = np.zeros(0)
    if epochs:
        # Osculation epochs are TT calendar dates
        try:
            epoch_seconds = np.atleast_1d(time_to_tdb_seconds(Time(epochs, format='iso', scale='tt')))
        except ValueError as exc:
            raise FormatError(f"Bad epoch in astorb records: {exc}") from exc
    return SwarmElements(*(data[:, k].copy() for k in range(7)), epoch_seconds)


def load_astorb(path: str | Path) -> SwarmElements:
    path = Path(path)
    try:
        with open(path, 'r') as f:
            elements = read_astorb(f)
    except OSError as exc:
        raise CatalogIOError(f"Unable to read asteroid file {path}: {exc}") from exc
    logger.debug("Loaded %d asteroid orbits from %s", len(elements), path)
    return elements
