from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from .cascade import MetadataCascade
from .config import AutomationLevel, Settings
from .database import TrackDatabase
from .decisions import DecisionProvider, DefaultDecisions
from .fs_utils import PlaylistKind, list_media_files, playlist_kind, read_playlist_lines, relative_path
from .locator import FileLocator
from .models import DiscRangeError, ProbeError
from .parser import PlaylistParser
from .probe import MetadataProbe
from .serializer import PlaylistSerializer, PlaylistWriter, WriteMode

logger = logging.getLogger(__name__)


class PlaylistBuilder:
    """Dispatches directories, playlists and single media files to the core.

    Every input gets a fresh TrackDatabase that is drained into its output
    playlist before the next input starts.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        probe: MetadataProbe,
        decisions: DecisionProvider | None = None,
        output: Optional[Path] = None,
        cwd: Optional[Path] = None,
    ) -> None:
        self.settings = settings
        self.probe = probe
        self.decisions = decisions or DefaultDecisions()
        self.extended = settings.playlist.extended
        self.automation = AutomationLevel(settings.playlist.automation)
        self.extensions = set(settings.library.audio_extensions)
        self.explicit_output = output.absolute() if output else None
        self.default_output = (cwd or Path.cwd()).absolute() / settings.playlist.default_name
        self.cascade = MetadataCascade()
        self.locator = FileLocator(settings.library.audio_extensions)
        self.writer = PlaylistWriter(extended=self.extended, decisions=self.decisions)
        self.serializer = PlaylistSerializer(self.writer)

    def new_database(self) -> TrackDatabase:
        return TrackDatabase(max_discs=self.settings.playlist.max_discs)

    def process(self, inputs: Iterable[Path]) -> List[Path]:
        written: List[Path] = []
        for raw in inputs:
            path = Path(raw)
            if path.is_dir():
                outputs = self.build_from_directory(path)
            elif path.is_file():
                if playlist_kind(path) is PlaylistKind.NONE:
                    outputs = self.add_file(path)
                else:
                    outputs = self.process_playlist(path)
            else:
                logger.error('Input "%s" does not exist. Skipping.', path)
                continue
            for output in outputs:
                if output not in written:
                    written.append(output)
        return written

    def build_from_directory(self, directory: Path) -> List[Path]:
        directory = directory.absolute()
        logger.info('Creating playlist for "%s"', directory)
        if self.explicit_output is not None:
            output = self.explicit_output
            base_name = output.stem
            extension = output.suffix.lstrip(".") or self.settings.playlist.directory_extension
            mode = WriteMode.TRUNCATE
        else:
            base_name = directory.name
            extension = self.settings.playlist.directory_extension
            output = directory / f"{base_name}.{extension}"
            mode = WriteMode.ASK

        database = self.new_database()
        for path in list_media_files(directory, self.extensions):
            try:
                result = self.probe.probe(path)
            except ProbeError as exc:
                if self.automation >= AutomationLevel.ALWAYS:
                    if not self.decisions.confirm_continue(path):
                        logger.info('Stopping scan of "%s" on request.', directory)
                        break
                    continue
                logger.warning('Processing file "%s" failed. Skipping. (%s)', path.name, exc)
                continue
            record = self.cascade.infer(result, max_tracks=database.max_tracks)
            entry = record.to_entry(relative_path(path, output.parent), extended=self.extended)
            try:
                database.insert(entry)
            except DiscRangeError as exc:
                logger.warning("%s. Skipping.", exc)
        return self.serializer.drain(database, output, base_name, extension, mode)

    def add_file(self, path: Path) -> List[Path]:
        """Append a single media file to the current playlist; its tags' position is ignored."""
        output = self.explicit_output or self.default_output
        mode = WriteMode.TRUNCATE if self.explicit_output is not None else WriteMode.ASK
        logger.info('Add "%s" to "%s"', path, output)
        self.writer.prepare(output, mode)
        try:
            result = self.probe.probe(path)
        except ProbeError as exc:
            logger.warning('Processing file "%s" failed. Skipping. (%s)', path, exc)
            return []
        record = self.cascade.infer(result)
        entry = record.to_entry(relative_path(path, output.parent), extended=self.extended)
        entry.disc = 1
        entry.track = 1
        database = self.new_database()
        database.insert(entry)
        return self.serializer.drain(database, output, mode=mode)

    def process_playlist(self, path: Path) -> List[Path]:
        source = path.absolute()
        output = self.explicit_output or source
        logger.info('Processing playlist "%s"', path)
        try:
            lines = read_playlist_lines(source)
        except OSError as exc:
            logger.error('Cannot read playlist "%s": %s', path, exc)
            return []
        database = self.new_database()
        parser = PlaylistParser(
            extended=self.extended,
            automation=self.automation,
            locator=self.locator,
            probe=self.probe,
            cascade=self.cascade,
            decisions=self.decisions,
        )
        stats = parser.parse(lines, database, source.parent, output.parent)
        logger.info(
            "Playlist %s: %d entries, %d replaced, %d removed",
            path.name,
            stats.entries,
            stats.replaced,
            stats.removed,
        )
        return self.serializer.drain(database, output, mode=WriteMode.TRUNCATE)
