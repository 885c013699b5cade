from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Iterable, Optional

from .cascade import MetadataCascade
from .config import AutomationLevel
from .database import TrackDatabase
from .decisions import DecisionProvider
from .fs_utils import path_exists, relative_path
from .locator import FileLocator
from .meta_keys import EXTINF_PREFIX
from .models import Entry, ProbeError, placeholder_extinf
from .probe import MetadataProbe

logger = logging.getLogger(__name__)


class ParserState(enum.Enum):
    AWAITING_ENTRY = "awaiting_entry"
    METADATA_PENDING = "metadata_pending"


@dataclass(slots=True)
class ParseStats:
    entries: int = 0
    replaced: int = 0
    removed: int = 0


class PlaylistParser:
    """Reads an existing playlist back into a TrackDatabase.

    Entries are numbered by their position in the file; an ``#EXTINF`` line
    is attached to the next path line and dropped afterwards. Missing files
    are replaced via the FileLocator or removed.
    """

    def __init__(
        self,
        *,
        extended: bool,
        automation: AutomationLevel,
        locator: FileLocator,
        probe: MetadataProbe,
        cascade: MetadataCascade,
        decisions: DecisionProvider,
    ) -> None:
        self.extended = extended
        self.automation = automation
        self.locator = locator
        self.probe = probe
        self.cascade = cascade
        self.decisions = decisions
        self.pending: Optional[str] = None

    @property
    def state(self) -> ParserState:
        if self.pending is None:
            return ParserState.AWAITING_ENTRY
        return ParserState.METADATA_PENDING

    def parse(
        self,
        lines: Iterable[str],
        database: TrackDatabase,
        source_dir: Path,
        output_dir: Optional[Path] = None,
    ) -> ParseStats:
        stats = ParseStats()
        track = 0
        self.pending = None
        for line_nr, raw in enumerate(lines):
            line = raw.strip()
            logger.debug('line %d (%s): "%s"', line_nr, self.state.value, line)
            if line.startswith(EXTINF_PREFIX):
                # A later annotation replaces one still waiting for its path.
                self.pending = line[len(EXTINF_PREFIX):]
                continue
            if not line or line.startswith("#"):
                continue
            track += 1
            try:
                entry = self._entry(line, track, source_dir, output_dir, stats)
            finally:
                self.pending = None
            if entry is None:
                stats.removed += 1
                continue
            database.insert(entry)
            stats.entries += 1
        return stats

    def _entry(
        self,
        line: str,
        track: int,
        source_dir: Path,
        output_dir: Optional[Path],
        stats: ParseStats,
    ) -> Optional[Entry]:
        reference = PurePath(line)
        actual = Path(reference) if reference.is_absolute() else source_dir / reference
        if not path_exists(actual):
            replacement = self.locator.select(
                actual,
                self.decisions,
                interactive=self.automation >= AutomationLevel.ALWAYS,
            )
            if replacement is not None:
                stats.replaced += 1
                actual = replacement
                line = reference.with_name(replacement.name).as_posix()
            elif self._remove(actual, f'File "{line}" not found.'):
                logger.warning('File not found "%s". Removed from playlist.', line)
                return None
            else:
                logger.warning('File not found "%s". Keeping it in the playlist.', line)

        extinf = self.pending if self.extended else None
        if self.extended and extinf is None:
            try:
                record = self.cascade.infer(self.probe.probe(actual), current_track=track)
                extinf = record.extinf
            except ProbeError as exc:
                logger.debug("Probe failed for %s: %s", actual, exc)
                if self._remove(actual, f'Extracting metadata for file "{line}" failed.'):
                    logger.warning('Metadata for "%s" unavailable. Removed from playlist.', line)
                    return None
                logger.warning('Metadata for "%s" unavailable. Outputting default values.', line)
                extinf = placeholder_extinf(track)

        return Entry(
            path=self._output_path(line, actual, source_dir, output_dir),
            disc=1,
            track=track,
            extinf=extinf,
        )

    def _remove(self, path: Path, reason: str) -> bool:
        if self.automation == AutomationLevel.NEVER:
            return True
        return self.decisions.confirm_removal(path, reason)

    @staticmethod
    def _output_path(line: str, actual: Path, source_dir: Path, output_dir: Optional[Path]) -> str:
        if PurePath(line).is_absolute() or output_dir is None:
            return line
        if output_dir.absolute() == source_dir.absolute():
            return line
        return relative_path(actual, output_dir)
