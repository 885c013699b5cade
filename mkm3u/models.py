from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

PLACEHOLDER_ARTIST = "Unknown Artist"


@dataclass(slots=True)
class Entry:
    """One playlist slot. ``path`` is relative to the playlist's directory."""

    path: str
    disc: int = 1
    track: int = 1
    extinf: Optional[str] = None

    @property
    def key(self) -> Tuple[int, int]:
        return (self.disc, self.track)


@dataclass(slots=True)
class ProbeResult:
    path: Path
    tags: Dict[str, str] = field(default_factory=dict)
    duration: Optional[int] = None

    def tag(self, key: str) -> Optional[str]:
        value = self.tags.get(key)
        if value is None:
            return None
        value = value.strip()
        return value or None


@dataclass(slots=True)
class TrackRecord:
    disc: int
    track: int
    track_total: int
    extinf: str
    title: Optional[str] = None
    artist: Optional[str] = None
    duration: Optional[int] = None
    placeholder: bool = False

    def to_entry(self, path: str, *, extended: bool) -> Entry:
        return Entry(
            path=path,
            disc=self.disc,
            track=self.track,
            extinf=self.extinf if extended else None,
        )


def placeholder_extinf(track: int) -> str:
    return f"0,{PLACEHOLDER_ARTIST} - Track {track}"


class Mkm3uError(Exception):
    """Base class for errors raised by the playlist builder."""

    exit_code = 1


class ProbeError(Mkm3uError):
    """Raised when a media file cannot be probed; the caller skips or asks."""


class DiscRangeError(Mkm3uError):
    """Raised when an entry's disc number exceeds the configured cap."""


class NoDiscsError(Mkm3uError):
    exit_code = 4


class PlaylistWriteError(Mkm3uError):
    exit_code = 3


class MissingToolError(Mkm3uError):
    exit_code = 127


class OperationAborted(Mkm3uError):
    """Raised when the operator answers "quit" to a question."""

    exit_code = 1


class ConfigError(Mkm3uError):
    exit_code = 5


def parse_position(value: object) -> Tuple[Optional[int], Optional[int]]:
    """Split ``"3"`` or ``"3/12"`` into ``(3, None)`` / ``(3, 12)``."""
    if value is None:
        return None, None
    if isinstance(value, int):
        return value, None
    cleaned = str(value).strip()
    number, _, total = cleaned.partition("/")
    number = number.strip()
    total = total.strip()
    if not number.isdigit():
        return None, None
    if total and not total.isdigit():
        return None, None
    return int(number), (int(total) if total else None)


def _parse_int(value: object) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    cleaned = str(value).strip()
    if cleaned.isdigit():
        return int(cleaned)
    return None
