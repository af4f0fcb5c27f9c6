"""
Two-line element set records and the plain-text TLE set format.

A TLE set is a sequence of three-line entries::

    ISS (ZARYA)
    1 25544U 98067A   19343.69339541  .00001764  00000-0  38792-4 0  9991
    2 25544  51.6439 211.2001 0007417  17.6667  85.6398 15.50103472202482

A blank name line or the end of the stream terminates the set.
"""
from typing import List, TextIO

from pydantic import BaseModel, Field, field_validator

from .errors import MalformedTleRecord

TLE_KEY_SEPARATOR = '!'


def tle_key(source: str, name: str) -> str:
    """Cache key of a TLE record: ``source!name``."""
    return f"{source}{TLE_KEY_SEPARATOR}{name}"


class TleRecord(BaseModel):
    """A single named two-line element set from a given source."""
    source: str = Field(..., description="Source the record was fetched from, e.g. a CelesTrak group")
    name: str = Field(..., description="Object name, unique within its source")
    line1: str = Field(..., description="First element line")
    line2: str = Field(..., description="Second element line")

    @field_validator('line1', 'line2')
    @classmethod
    def strip_line(cls, v):
        return v.rstrip()

    @property
    def key(self) -> str:
        return tle_key(self.source, self.name)


def parse_tle_set(stream: TextIO, source: str = '') -> List[TleRecord]:
    """
    Read every record of a TLE set.

    Args:
        stream: Text stream positioned at the first name line
        source: Source key stored in each record

    Returns:
        The records in stream order

    Raises:
        MalformedTleRecord: if an entry is incomplete or an element line has
            the wrong line number. No records are returned in that case.
    """
    records = []
    while True:
        name = stream.readline()
        if not name or not name.strip():
            break
        name = name.strip()

        line1 = stream.readline()
        line2 = stream.readline()
        if not line1 or not line2:
            raise MalformedTleRecord(f"Incomplete TLE entry for '{name}'")
        if not line1.startswith('1 '):
            raise MalformedTleRecord(f"Bad first line in TLE entry for '{name}'")
        if not line2.startswith('2 '):
            raise MalformedTleRecord(f"Bad second line in TLE entry for '{name}'")

        records.append(TleRecord(source=source, name=name, line1=line1, line2=line2))

    return records
