from __future__ import annotations

import logging
from typing import Mapping, Optional

from .meta_keys import ARTIST, DISCNUMBER, TITLE, TRACK_TOTAL_KEYS, TRACKNUMBER
from .models import ProbeResult, TrackRecord, _parse_int, parse_position, placeholder_extinf

logger = logging.getLogger(__name__)


class MetadataCascade:
    """Completes partial probe output into a (disc, track, annotation) record.

    Each field is taken from the most authoritative source available and only
    falls through to the next rule when that source is missing:

    * disc: ``DISCNUMBER`` tag, else 1.
    * track total: the disc's highest track already in the database, else the
      ``TRACKTOTAL`` tag, else the ``n/total`` form of ``TRACKNUMBER``, else
      the known track number, else 1.
    * track: ``TRACKNUMBER`` tag, else ``current_track``, else total + 1.
    """

    def infer(
        self,
        result: ProbeResult,
        current_track: Optional[int] = None,
        max_tracks: Optional[Mapping[int, int]] = None,
    ) -> TrackRecord:
        name = result.path.name
        disc, _ = parse_position(result.tag(DISCNUMBER))
        if disc is None or disc < 1:
            logger.info("Disc number not set for %s. Default to 1.", name)
            disc = 1

        track, tagged_total = parse_position(result.tag(TRACKNUMBER))
        if track is not None and track < 1:
            track = None
        if track is None and current_track is not None:
            track = current_track

        total = (max_tracks or {}).get(disc)
        if total is None:
            total = self._tag_total(result)
            if total is None:
                total = tagged_total
            if total is None:
                if track is not None:
                    logger.warning(
                        "Could not determine total track count for %s. Use current track number %d instead.",
                        name,
                        track,
                    )
                    total = track
                else:
                    logger.warning(
                        "Could neither determine track number nor number of total tracks for %s. "
                        "Default to 1 for both.",
                        name,
                    )
                    total = 1
                    track = 1
            else:
                logger.debug("Track total for %s from tags: %d", name, total)

        if track is None:
            track = total + 1
            logger.warning("Track number not set for %s. Appending to the end of list at idx %d", name, track)

        return self._record(result, disc, track, total)

    @staticmethod
    def _tag_total(result: ProbeResult) -> Optional[int]:
        for key in TRACK_TOTAL_KEYS:
            total = _parse_int(result.tag(key))
            if total is not None:
                return total
        return None

    def _record(self, result: ProbeResult, disc: int, track: int, total: int) -> TrackRecord:
        title = result.tag(TITLE)
        artist = result.tag(ARTIST)
        duration = result.duration
        valid_duration = isinstance(duration, int) and not isinstance(duration, bool) and duration >= 0
        if not title or not artist or not valid_duration:
            logger.warning(
                'Error in title="%s", artist="%s" or duration="%s" for file "%s". Outputting default values.',
                title or "",
                artist or "",
                "" if duration is None else duration,
                result.path.name,
            )
            return TrackRecord(
                disc=disc,
                track=track,
                track_total=total,
                extinf=placeholder_extinf(track),
                title=title,
                artist=artist,
                duration=duration if valid_duration else None,
                placeholder=True,
            )
        return TrackRecord(
            disc=disc,
            track=track,
            track_total=total,
            extinf=f"{duration},{artist} - {title}",
            title=title,
            artist=artist,
            duration=duration,
        )
