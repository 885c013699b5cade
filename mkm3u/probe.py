from __future__ import annotations

import logging
import re
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Optional, Protocol

from mutagen import File as MutagenFile
from mutagen.id3 import ID3

from .config import ProbeSettings
from .meta_keys import ARTIST, DISCNUMBER, TITLE, TOTALTRACKS, TRACKNUMBER, TRACKTOTAL
from .models import MissingToolError, ProbeError, ProbeResult

logger = logging.getLogger(__name__)

SOXI_TAG_PATTERN = re.compile(r"^(?P<key>[A-Za-z][A-Za-z0-9_ ]*)=(?P<value>.*)$")

# mutagen "easy" keys mapped to the probe's canonical tag names.
EASY_KEY_MAP = {
    "discnumber": DISCNUMBER,
    "tracknumber": TRACKNUMBER,
    "tracktotal": TRACKTOTAL,
    "totaltracks": TOTALTRACKS,
    "title": TITLE,
    "artist": ARTIST,
}

# Raw ID3 frames, as found in WAV and AIFF files that the easy interface
# does not wrap.
ID3_FRAME_MAP = {
    "TPOS": DISCNUMBER,
    "TRCK": TRACKNUMBER,
    "TXXX:TRACKTOTAL": TRACKTOTAL,
    "TXXX:TOTALTRACKS": TOTALTRACKS,
    "TIT2": TITLE,
    "TPE1": ARTIST,
}


class MetadataProbe(Protocol):
    def ensure_available(self) -> None: ...

    def probe(self, path: Path) -> ProbeResult: ...


class MutagenProbe:
    """Reads tags and duration in-process through mutagen's easy interface."""

    def ensure_available(self) -> None:
        return None

    def probe(self, path: Path) -> ProbeResult:
        if not path.is_file():
            raise ProbeError(f"Not a file: {path}")
        try:
            audio = MutagenFile(path, easy=True)
        except Exception as exc:
            raise ProbeError(f"Failed to read {path}: {exc}") from exc
        if audio is None:
            raise ProbeError(f"Unrecognised media format: {path}")
        tags: Dict[str, str] = {}
        if isinstance(audio.tags, ID3):
            tags = self._id3_tags(audio.tags)
        elif audio.tags:
            for key, values in audio.tags.items():
                canonical = EASY_KEY_MAP.get(str(key).lower())
                if not canonical:
                    continue
                value = self._first(values)
                if value:
                    tags[canonical] = value
        length = getattr(getattr(audio, "info", None), "length", None)
        duration = int(length) if length is not None and length >= 0 else None
        logger.debug("Probed %s: %s, duration=%s", path, tags, duration)
        return ProbeResult(path=path, tags=tags, duration=duration)

    @staticmethod
    def _id3_tags(id3: ID3) -> Dict[str, str]:
        tags: Dict[str, str] = {}
        for frame_id, canonical in ID3_FRAME_MAP.items():
            frames = id3.getall(frame_id)
            if not frames or not frames[0].text:
                continue
            value = str(frames[0].text[0]).strip()
            if value:
                tags[canonical] = value
        return tags

    @staticmethod
    def _first(values: object) -> Optional[str]:
        if isinstance(values, (list, tuple)):
            values = values[0] if values else None
        if values is None:
            return None
        return str(values).strip() or None


class SoxiProbe:
    """Reads tags and duration by shelling out to sox's ``soxi``."""

    def __init__(self, executable: str = "soxi") -> None:
        self.executable = executable

    def ensure_available(self) -> None:
        if shutil.which(self.executable) is None:
            raise MissingToolError(f"Missing dependency: {self.executable} not installed.")

    def probe(self, path: Path) -> ProbeResult:
        if not path.is_file():
            raise ProbeError(f"Not a file: {path}")
        output = self._run(path)
        tags: Dict[str, str] = {}
        for line in output.splitlines():
            match = SOXI_TAG_PATTERN.match(line.strip())
            if not match:
                continue
            key = match.group("key").strip().upper()
            if key in EASY_KEY_MAP.values() and key not in tags:
                tags[key] = match.group("value").strip()
        duration = self._duration(path)
        logger.debug("Probed %s with soxi: %s, duration=%s", path, tags, duration)
        return ProbeResult(path=path, tags=tags, duration=duration)

    def _run(self, path: Path, *flags: str) -> str:
        try:
            completed = subprocess.run(
                [self.executable, *flags, str(path)],
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise ProbeError(f"Failed to run {self.executable} on {path}: {exc}") from exc
        if completed.returncode != 0:
            detail = completed.stderr.strip() or f"exit status {completed.returncode}"
            raise ProbeError(f"{self.executable} failed for {path}: {detail}")
        return completed.stdout

    def _duration(self, path: Path) -> Optional[int]:
        try:
            raw = self._run(path, "-D").strip()
        except ProbeError as exc:
            logger.debug("No duration for %s: %s", path, exc)
            return None
        whole = raw.split(".", 1)[0]
        return int(whole) if whole.isdigit() else None


def build_probe(settings: ProbeSettings) -> MetadataProbe:
    if settings.backend == "soxi":
        return SoxiProbe(settings.soxi_path)
    return MutagenProbe()
