from __future__ import annotations

import enum
import logging
from pathlib import Path
from typing import List, Optional, Sequence

from .database import TrackDatabase
from .decisions import DecisionProvider, DefaultDecisions
from .meta_keys import EXTINF_PREFIX, EXTM3U_HEADER
from .models import Entry, NoDiscsError, PlaylistWriteError, placeholder_extinf

logger = logging.getLogger(__name__)


class WriteMode(enum.Enum):
    TRUNCATE = "truncate"
    ASK = "ask"
    APPEND = "append"


class PlaylistWriter:
    """Creates, truncates or appends to playlist files.

    A file is prepared once per run; every later write to the same path is
    appended, which is how several inputs end up in one playlist.
    """

    def __init__(self, *, extended: bool, decisions: DecisionProvider | None = None) -> None:
        self.extended = extended
        self.decisions = decisions or DefaultDecisions()
        self._prepared: set[Path] = set()

    def _key(self, path: Path) -> Path:
        return path.absolute()

    def prepare(self, path: Path, mode: WriteMode) -> None:
        key = self._key(path)
        if key in self._prepared:
            return
        truncate = True
        if path.exists():
            if mode is WriteMode.APPEND:
                truncate = False
            elif mode is WriteMode.ASK:
                truncate = self.decisions.confirm_truncate(path)
        logger.debug("Preparing playlist %s (truncate=%s)", path, truncate)
        if truncate:
            header = f"{EXTM3U_HEADER}\n" if self.extended else ""
            try:
                path.write_text(header, encoding="utf-8")
            except OSError as exc:
                raise PlaylistWriteError(f'Failed to create playlist file "{path}": {exc}') from exc
        self._prepared.add(key)

    def append(self, path: Path, lines: Sequence[str]) -> None:
        if not lines:
            return
        try:
            with path.open("a", encoding="utf-8", newline="\n") as fh:
                for line in lines:
                    fh.write(f"{line}\n")
        except OSError as exc:
            raise PlaylistWriteError(f'Failed writing playlist file "{path}": {exc}') from exc

    def write(self, path: Path, lines: Sequence[str], mode: WriteMode) -> None:
        self.prepare(path, mode)
        self.append(path, lines)


class PlaylistSerializer:
    def __init__(self, writer: PlaylistWriter) -> None:
        self.writer = writer

    @property
    def extended(self) -> bool:
        return self.writer.extended

    def document_name(
        self,
        output: Path,
        disc: int,
        disc_count: int,
        base_name: Optional[str],
        extension: Optional[str],
    ) -> Path:
        if base_name is None or extension is None:
            return output
        if disc_count == 1:
            return output.with_name(f"{base_name}.{extension}")
        return output.with_name(f"{base_name} CD{disc}.{extension}")

    def drain(
        self,
        database: TrackDatabase,
        output: Path,
        base_name: Optional[str] = None,
        extension: Optional[str] = None,
        mode: WriteMode = WriteMode.ASK,
    ) -> List[Path]:
        """Write and remove every entry of ``database``; returns the written files.

        With ``base_name``/``extension`` each populated disc gets its own
        ``"<base> CD<n>.<ext>"`` file (or ``"<base>.<ext>"`` for a single
        disc) next to ``output``. Without them everything goes to ``output``.
        """
        discs = database.discs()
        if not discs:
            raise NoDiscsError("Number of discs is 0; nothing to write.")
        written: List[Path] = []
        for disc in discs:
            target = self.document_name(output, disc, len(discs), base_name, extension)
            entries = list(database.iter_disc(disc))
            lines = self._lines(disc, entries)
            self.writer.write(target, lines, mode)
            for entry in entries:
                database.pop(entry.disc, entry.track)
            if target not in written:
                written.append(target)
            logger.info("Wrote %d line(s) for disc %d to %s", len(lines), disc, target)
        return written

    def _lines(self, disc: int, entries: Sequence[Entry]) -> List[str]:
        lines: List[str] = []
        for entry in entries:
            logger.debug('Disc %d; track %d; title: "%s"', disc, entry.track, entry.path)
            if self.extended:
                extinf = entry.extinf
                if not extinf:
                    logger.warning("No annotation for %s; using placeholder", entry.path)
                    extinf = placeholder_extinf(entry.track)
                lines.append(f"{EXTINF_PREFIX}{extinf}")
            lines.append(entry.path)
        return lines
