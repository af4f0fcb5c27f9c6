"""
Live two-line element updates.

TLE trajectories built by the loader are registered under their
``source!name`` key. When fresh element sets arrive they are queued with
``submit`` and merged by ``drain``, which replaces the elements of every live
trajectory under the same key in place. Arcs holding those trajectories see
the new elements on their next evaluation without being rebuilt.
"""
import logging
import weakref
from collections import defaultdict
from typing import DefaultDict, Dict, List, Optional, Set, TextIO

from .errors import FormatError
from .tle import TleRecord, parse_tle_set, tle_key
from .trajectories import TleTrajectory

logger = logging.getLogger(__name__)


class TleUpdatePipeline:
    """
    TLE cache, update queue and pending resource requests for one session.

    ``submit`` only appends to the queue and may be called from a fetch
    thread; ``drain`` and ``trajectory_for`` must be called from a single
    thread.
    """

    def __init__(self):
        self._cache: Dict[str, TleRecord] = {}
        self._live: DefaultDict[str, weakref.WeakSet] = defaultdict(weakref.WeakSet)
        self._queue: List[TleRecord] = []
        self._requests: Set[str] = set()

    def cached_record(self, source: str, name: str) -> Optional[TleRecord]:
        return self._cache.get(tle_key(source, name))

    def trajectory_for(self, source: str, name: str, line1: str, line2: str) -> TleTrajectory:
        """
        Build a live TLE trajectory.

        When ``source`` is given, a cached record for ``source!name``
        overrides the inline element lines; without one the source is added
        to the resource requests. Either way the trajectory is registered so
        that later updates for the key reach it.

        Raises:
            MalformedTleRecord: if the element lines are invalid
        """
        key = None
        if source:
            key = tle_key(source, name)
            cached = self._cache.get(key)
            if cached is not None:
                line1, line2 = cached.line1, cached.line2
            else:
                self._requests.add(source)

        trajectory = TleTrajectory.create(line1, line2)
        if key is not None:
            self._live[key].add(trajectory)
        return trajectory

    def live_trajectories(self, source: str, name: str) -> List[TleTrajectory]:
        return list(self._live.get(tle_key(source, name), ()))

    def submit(self, source: str, name: str, line1: str, line2: str) -> None:
        """Queue an element set for the next drain."""
        self._queue.append(TleRecord(source=source, name=name, line1=line1, line2=line2))

    def process_tle_set(self, source: str, stream: TextIO) -> int:
        """
        Parse a whole TLE set and queue every record in it.

        Nothing is queued if the set is malformed.

        Returns:
            The number of records queued
        """
        records = parse_tle_set(stream, source)
        self._queue.extend(records)
        logger.debug("Queued %d TLE records from source '%s'", len(records), source)
        return len(records)

    @property
    def pending(self) -> int:
        return len(self._queue)

    def drain(self) -> int:
        """
        Merge every queued record into the cache and into live trajectories.

        Every record replaces the cache entry for its key. A record whose
        elements cannot be parsed is logged and its live trajectories are
        left as they were.

        Returns:
            The number of live trajectories updated
        """
        queue, self._queue = self._queue, []
        updated = 0
        for record in queue:
            self._cache[record.key] = record
            try:
                replacement = TleTrajectory.create(record.line1, record.line2)
            except FormatError as exc:
                logger.warning("Ignoring TLE update for %s: %s", record.key, exc)
                continue

            for trajectory in list(self._live.get(record.key, ())):
                trajectory.copy(replacement)
                updated += 1

        if queue:
            logger.debug("Drained %d TLE records, updated %d live trajectories", len(queue), updated)
        return updated

    def resource_requests(self) -> Set[str]:
        """Sources referenced by TLE trajectories that had no cached record."""
        return set(self._requests)

    def clear_resource_requests(self) -> None:
        self._requests.clear()
