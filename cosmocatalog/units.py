"""
Conversion of catalog literals into canonical internal units.

Catalog values are either bare numbers or strings of the form
``<number><optional unit suffix>``, e.g. ``"6378.14km"``, ``"1.5 au"`` or
``"23.93h"``. Distances are converted to kilometers, durations to seconds
and angles (always given in degrees) to radians. Dates are converted to TDB
seconds since J2000.0.
"""
import re
from numbers import Real

import numpy as np
from astropy.time import Time
from matplotlib import colors as mcolors

from .constants import DAY, DISTANCE_UNITS, J2000, TIME_UNITS
from .errors import CatalogParseError, InvalidDate, InvalidNumber, InvalidUnit

VALUE_UNITS_RE = re.compile(r'^\s*([-+]?[0-9]*\.?[0-9]+(?:[eE][-+]?[0-9]+)?)\s*([A-Za-z]+)?\s*$')


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def parse_value_units(value, default_unit: str, units: dict) -> float:
    """
    Convert a literal with an optional unit suffix to canonical units.

    Args:
        value: A number or a string such as ``"10 km"``
        default_unit: Unit assumed when no suffix is present
        units: Mapping of unit suffix to conversion factor

    Returns:
        The value expressed in the canonical unit of ``units``

    Raises:
        InvalidNumber: if the numeric portion does not parse
        InvalidUnit: if the suffix (or the default unit) is not in ``units``
    """
    if _is_number(value):
        number, unit = float(value), default_unit
    elif isinstance(value, str):
        match = VALUE_UNITS_RE.match(value)
        if match is None:
            raise InvalidNumber(f"Cannot parse numeric value from '{value}'")
        number = float(match.group(1))
        unit = match.group(2) or default_unit
    else:
        raise InvalidNumber(f"Expected a number or string, got {type(value).__name__}")

    if unit not in units:
        raise InvalidUnit(f"Unknown unit '{unit}' (expected one of {', '.join(units)})")

    return number * units[unit]


def distance_value(value, default_unit: str = 'km') -> float:
    """Return a distance in kilometers."""
    return parse_value_units(value, default_unit, DISTANCE_UNITS)


def duration_value(value, default_unit: str = 's') -> float:
    """Return a duration in seconds."""
    return parse_value_units(value, default_unit, TIME_UNITS)


def format_distance(km: float, unit: str = 'km') -> str:
    """Format a distance in kilometers as a literal in ``unit``."""
    if unit not in DISTANCE_UNITS:
        raise InvalidUnit(f"Unknown distance unit '{unit}'")
    return f"{km / DISTANCE_UNITS[unit]!r}{unit}"


def format_duration(seconds: float, unit: str = 's') -> str:
    """Format a duration in seconds as a literal in ``unit``."""
    if unit not in TIME_UNITS:
        raise InvalidUnit(f"Unknown time unit '{unit}'")
    return f"{seconds / TIME_UNITS[unit]!r}{unit}"


def double_value(value, default: float = 0.0) -> float:
    """Return ``value`` as a float, or ``default`` if it is not numeric."""
    if _is_number(value):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return default
    return default


def angle_value(value, default: float = 0.0) -> float:
    """Return an angle given in degrees as radians; ``default`` is already in radians."""
    if value is None:
        return default
    if not _is_number(value):
        try:
            value = float(value)
        except (TypeError, ValueError) as exc:
            raise InvalidNumber(f"Invalid angle '{value}'") from exc
    return float(np.deg2rad(value))


def julian_date_to_tdb_seconds(jd: float) -> float:
    return (jd - J2000) * DAY


def time_to_tdb_seconds(time: Time):
    """TDB seconds since J2000.0 of an astropy Time, on any time scale."""
    tdb = time.tdb
    return ((tdb.jd1 - J2000) + tdb.jd2) * DAY


def date_value(value) -> float:
    """
    Parse a date into TDB seconds since J2000.0.

    The date may be a Julian date (number) or an ISO 8601 date/time string,
    which is taken to be a calendar date in the TDB time scale. A string
    ending in ``Z`` is a UTC time and is converted to TDB.
    """
    if _is_number(value):
        if not np.isfinite(value):
            raise InvalidDate(f"Invalid Julian date {value}")
        return float(time_to_tdb_seconds(Time(float(value), format='jd', scale='tdb')))

    if isinstance(value, str):
        text = value.strip()
        scale = 'utc' if text.endswith('Z') else 'tdb'
        for fmt in ('isot', 'iso'):
            try:
                return float(time_to_tdb_seconds(Time(text, format=fmt, scale=scale)))
            except ValueError:
                continue
        raise InvalidDate(f"Invalid date '{value}'")

    raise InvalidDate(f"Invalid date value of type {type(value).__name__}")


def _float_list(value, length: int, what: str) -> np.ndarray:
    if not isinstance(value, (list, tuple)) or len(value) != length:
        raise InvalidNumber(f"{what} must be a list of {length} numbers")
    if not all(_is_number(v) for v in value):
        raise InvalidNumber(f"{what} must contain only numbers")
    return np.array(value, dtype=float)


def vec3_value(value) -> np.ndarray:
    """Return a 3-vector from a list of three numbers."""
    return _float_list(value, 3, "Vector")


def quaternion_value(value) -> np.ndarray:
    """Return a quaternion [w, x, y, z] from a list of four numbers."""
    return _float_list(value, 4, "Quaternion")


def color_value(value, default=(1.0, 1.0, 1.0)) -> tuple:
    """
    Parse a color given as an RGB list or a color string.

    Strings may be hex codes (``"#ff8000"``) or named colors (``"orange"``).
    A missing value returns ``default``.
    """
    if value is None:
        return tuple(default)
    if isinstance(value, (list, tuple)):
        return tuple(float(c) for c in vec3_value(value))
    if isinstance(value, str):
        try:
            return tuple(float(c) for c in mcolors.to_rgb(value))
        except ValueError as exc:
            raise CatalogParseError(f"Invalid color '{value}'") from exc
    raise CatalogParseError(f"Invalid color value of type {type(value).__name__}")
