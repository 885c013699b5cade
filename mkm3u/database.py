from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

from .models import DiscRangeError, Entry

logger = logging.getLogger(__name__)


class TrackDatabase:
    """Entries of one playlist-building session, keyed by (disc, track).

    Keys are unique: an entry whose slot is taken is moved behind the
    highest track of its disc instead of replacing the occupant.
    """

    def __init__(self, max_discs: Optional[int] = None) -> None:
        self.max_discs = max_discs
        self._entries: Dict[Tuple[int, int], Entry] = {}
        self._max_track: Dict[int, int] = {}
        self._counts: Dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @property
    def max_tracks(self) -> Mapping[int, int]:
        return MappingProxyType(self._max_track)

    def max_track(self, disc: int) -> Optional[int]:
        return self._max_track.get(disc)

    def discs(self) -> List[int]:
        return sorted(self._max_track)

    def get(self, disc: int, track: int) -> Optional[Entry]:
        return self._entries.get((disc, track))

    def insert(self, entry: Entry) -> int:
        if entry.disc < 1 or entry.track < 0:
            raise ValueError(f"Invalid slot disc={entry.disc} track={entry.track} for {entry.path}")
        if self.max_discs is not None and entry.disc > self.max_discs:
            raise DiscRangeError(
                f"Disc {entry.disc} of {entry.path} exceeds the configured maximum of {self.max_discs} discs"
            )
        logger.debug("Insert disc=%d track=%d: %s", entry.disc, entry.track, entry.path)
        occupant = self._entries.get(entry.key)
        if occupant is not None:
            relocated = self._max_track[entry.disc] + 1
            logger.warning(
                'Entry "%s" collides with "%s" which is already at disc=%d track=%d. '
                "Appending to end of list on this disc instead at idx %d.",
                entry.path,
                occupant.path,
                entry.disc,
                entry.track,
                relocated,
            )
            entry.track = relocated
        self._entries[entry.key] = entry
        self._counts[entry.disc] = self._counts.get(entry.disc, 0) + 1
        current = self._max_track.get(entry.disc)
        if current is None or entry.track > current:
            self._max_track[entry.disc] = entry.track
            logger.debug("Set max track of disc %d to %d", entry.disc, entry.track)
        return entry.track

    def iter_disc(self, disc: int) -> Iterator[Entry]:
        """Entries of ``disc`` in track order, scanning 0..max_track."""
        last = self._max_track.get(disc)
        if last is None:
            return
        for track in range(0, last + 1):
            entry = self._entries.get((disc, track))
            if entry is not None:
                yield entry

    def pop(self, disc: int, track: int) -> Entry:
        entry = self._entries.pop((disc, track))
        self._counts[disc] -= 1
        if not self._counts[disc]:
            del self._counts[disc]
            self._max_track.pop(disc, None)
        return entry

    def clear(self) -> None:
        self._entries.clear()
        self._max_track.clear()
        self._counts.clear()
