"""
Readers for ASCII sample files used by interpolated trajectories and
rotation models.

All three formats are whitespace separated lists of numeric records with
``#`` comments running to the end of a line. Dates are TDB Julian dates.

    .xyzv   jd x y z vx vy vz     (km, km/s)
    .xyz    jd x y z              (km)
    .q      jd w x y z            (unit quaternion, real part first)
"""
import logging
from pathlib import Path
from typing import Iterator, List, NamedTuple, Optional, TextIO

import numpy as np
from scipy.spatial.transform import Rotation

from .errors import CatalogIOError, FormatError, TruncatedRecord
from .units import julian_date_to_tdb_seconds

logger = logging.getLogger(__name__)

# Legacy (Celestia) orientation convention correction: 90 deg about x, then 180 deg about y
LEGACY_CORRECTION = Rotation.from_euler('x', 90.0, degrees=True) * Rotation.from_euler('y', 180.0, degrees=True)


class StateSamples(NamedTuple):
    """Time-ordered position (and optionally velocity) samples."""
    times: np.ndarray  # (n,) TDB seconds since J2000
    positions: np.ndarray  # (n, 3) km
    velocities: Optional[np.ndarray]  # (n, 3) km/s or None


class OrientationSamples(NamedTuple):
    """Time-ordered orientation samples."""
    times: np.ndarray  # (n,) TDB seconds since J2000
    quaternions: np.ndarray  # (n, 4) [w, x, y, z]


def _tokens(stream: TextIO) -> Iterator[str]:
    for line in stream:
        line = line.split('#', 1)[0]
        yield from line.split()


def _read_records(stream: TextIO, record_size: int, kind: str) -> np.ndarray:
    """
    Read fixed-size numeric records until the end of the stream.

    Raises TruncatedRecord if the final record is incomplete or contains a
    non-numeric token.
    """
    records: List[List[float]] = []
    current: List[float] = []
    for token in _tokens(stream):
        try:
            current.append(float(token))
        except ValueError:
            raise TruncatedRecord(
                f"Error in {kind} file, record {len(records)}: unexpected token '{token}'"
            ) from None
        if len(current) == record_size:
            records.append(current)
            current = []

    if current:
        raise TruncatedRecord(
            f"Error in {kind} file, record {len(records)}: "
            f"expected {record_size} values, found {len(current)}"
        )

    data = np.array(records, dtype=float).reshape(-1, record_size)
    bad = np.flatnonzero(~np.all(np.isfinite(data), axis=1))
    if bad.size:
        raise FormatError(f"Error in {kind} file, record {bad[0]}: non-finite value")
    return data


def read_xyzv(stream: TextIO) -> StateSamples:
    """Read time/position/velocity records."""
    data = _read_records(stream, 7, "xyzv trajectory")
    times = julian_date_to_tdb_seconds(data[:, 0])
    return StateSamples(times=times, positions=data[:, 1:4], velocities=data[:, 4:7])


def read_xyz(stream: TextIO) -> StateSamples:
    """Read time/position records."""
    data = _read_records(stream, 4, "xyz trajectory")
    times = julian_date_to_tdb_seconds(data[:, 0])
    return StateSamples(times=times, positions=data[:, 1:4], velocities=None)


def read_orientations(stream: TextIO, legacy_convention: bool = False) -> OrientationSamples:
    """
    Read time/quaternion records.

    When ``legacy_convention`` is set, each orientation q is converted with
    conj(q) * Rx(90 deg) * Ry(180 deg).
    """
    data = _read_records(stream, 5, ".q orientation")
    times = julian_date_to_tdb_seconds(data[:, 0])
    quaternions = data[:, 1:5]

    zero = np.flatnonzero(np.linalg.norm(quaternions, axis=1) == 0.0)
    if zero.size:
        raise FormatError(f"Error in .q orientation file, record {zero[0]}: zero quaternion")

    if legacy_convention and len(quaternions) > 0:
        xyzw = np.roll(quaternions, -1, axis=1)
        corrected = Rotation.from_quat(xyzw).inv() * LEGACY_CORRECTION
        quaternions = np.roll(corrected.as_quat(), 1, axis=1)

    return OrientationSamples(times=times, quaternions=quaternions)


def _open(path: Path):
    try:
        return open(path, 'r')
    except OSError as exc:
        raise CatalogIOError(f"Unable to open sample file {path}: {exc}") from exc


def load_state_samples(path: str | Path) -> StateSamples:
    """Load a .xyzv or .xyz file, choosing the format by extension."""
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in ('.xyzv', '.xyz'):
        raise FormatError(f"Unknown sampled trajectory format '{path.suffix}'")

    with _open(path) as f:
        samples = read_xyzv(f) if suffix == '.xyzv' else read_xyz(f)
    logger.debug("Loaded %d state samples from %s", len(samples.times), path)
    return samples


def load_orientation_samples(path: str | Path, legacy_convention: bool = False) -> OrientationSamples:
    """Load a .q orientation file."""
    path = Path(path)
    with _open(path) as f:
        samples = read_orientations(f, legacy_convention)
    logger.debug("Loaded %d orientation samples from %s", len(samples.times), path)
    return samples
