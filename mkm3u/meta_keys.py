from __future__ import annotations

# Probe tag names, upper-cased. Probes normalise whatever their backend
# reports to these keys before the cascade sees them.

DISCNUMBER = "DISCNUMBER"
TRACKNUMBER = "TRACKNUMBER"
TRACKTOTAL = "TRACKTOTAL"
TOTALTRACKS = "TOTALTRACKS"
TITLE = "TITLE"
ARTIST = "ARTIST"

TRACK_TOTAL_KEYS = (TRACKTOTAL, TOTALTRACKS)

EXTM3U_HEADER = "#EXTM3U"
EXTINF_PREFIX = "#EXTINF:"
