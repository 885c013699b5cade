import tempfile
import unittest
from pathlib import Path

from mkm3u.cascade import MetadataCascade
from mkm3u.config import AutomationLevel
from mkm3u.database import TrackDatabase
from mkm3u.decisions import BufferPromptIO, DefaultDecisions, InteractiveDecisions
from mkm3u.locator import FileLocator
from mkm3u.models import ProbeError, ProbeResult
from mkm3u.parser import ParserState, PlaylistParser


class FakeProbe:
    def __init__(self, results=None) -> None:
        self.results = results or {}
        self.calls = []

    def ensure_available(self) -> None:
        return None

    def probe(self, path: Path) -> ProbeResult:
        self.calls.append(path)
        result = self.results.get(path.name)
        if result is None:
            raise ProbeError(f"no metadata for {path}")
        return ProbeResult(path=path, tags=result[0], duration=result[1])


def _parser(*, extended=True, automation=AutomationLevel.ON_ERROR, probe=None, decisions=None) -> PlaylistParser:
    return PlaylistParser(
        extended=extended,
        automation=automation,
        locator=FileLocator([".mp3", ".ogg", ".flac"]),
        probe=probe or FakeProbe(),
        cascade=MetadataCascade(),
        decisions=decisions or DefaultDecisions(),
    )


class TestPlaylistParser(unittest.TestCase):
    def test_annotations_attach_to_next_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "a.mp3").write_bytes(b"x")
            (tmp / "b.mp3").write_bytes(b"x")
            lines = ["#EXTM3U", "#EXTINF:10,A - One", "a.mp3", "", "# comment", "b.mp3"]
            probe = FakeProbe({"b.mp3": ({"TITLE": "Two", "ARTIST": "A", "TRACKTOTAL": "2"}, 20)})
            parser = _parser(probe=probe)
            db = TrackDatabase()
            stats = parser.parse(lines, db, tmp)
            self.assertEqual(stats.entries, 2)
            self.assertEqual(db.get(1, 1).extinf, "10,A - One")
            self.assertEqual(db.get(1, 2).path, "b.mp3")
            self.assertEqual(db.get(1, 2).extinf, "20,A - Two")
            self.assertEqual(probe.calls, [tmp / "b.mp3"])
            self.assertIs(parser.state, ParserState.AWAITING_ENTRY)

    def test_state_follows_pending_annotation(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "a.mp3").write_bytes(b"x")
            parser = _parser()
            self.assertIs(parser.state, ParserState.AWAITING_ENTRY)
            db = TrackDatabase()
            parser.parse(["#EXTINF:1,Old - Stale", "#EXTINF:2,A - One", "a.mp3", "#EXTINF:3,A - Dangling"], db, tmp)
            self.assertEqual(db.get(1, 1).extinf, "2,A - One")
            self.assertIs(parser.state, ParserState.METADATA_PENDING)
            self.assertEqual(parser.pending, "3,A - Dangling")
            parser.parse([], TrackDatabase(), tmp)
            self.assertIs(parser.state, ParserState.AWAITING_ENTRY)

    def test_simple_mode_drops_annotations(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "a.mp3").write_bytes(b"x")
            db = TrackDatabase()
            probe = FakeProbe()
            _parser(extended=False, probe=probe).parse(["#EXTINF:10,A - One", "a.mp3"], db, tmp)
            self.assertIsNone(db.get(1, 1).extinf)
            self.assertEqual(probe.calls, [])

    def test_missing_file_replaced_by_sibling(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            sub = tmp / "sub"
            sub.mkdir()
            (sub / "song.ogg").write_bytes(b"x")
            db = TrackDatabase()
            with self.assertLogs("mkm3u.locator", level="WARNING"):
                stats = _parser().parse(["#EXTINF:5,A - S", "sub/song.mp3"], db, tmp)
            self.assertEqual(stats.replaced, 1)
            self.assertEqual(db.get(1, 1).path, "sub/song.ogg")
            self.assertEqual(db.get(1, 1).extinf, "5,A - S")

    def test_missing_file_removed_without_asking_at_level_never(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "b.mp3").write_bytes(b"x")
            db = TrackDatabase()
            prompt_io = BufferPromptIO()
            parser = _parser(
                extended=False,
                automation=AutomationLevel.NEVER,
                decisions=InteractiveDecisions(prompt_io),
            )
            stats = parser.parse(["gone.mp3", "b.mp3"], db, tmp)
            self.assertEqual(stats.removed, 1)
            self.assertEqual([e.path for e in db.iter_disc(1)], ["b.mp3"])
            self.assertEqual(db.get(1, 2).path, "b.mp3")
            self.assertEqual(prompt_io.prompts, [])

    def test_declined_removal_keeps_path(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            db = TrackDatabase()
            prompt_io = BufferPromptIO(inputs=["n"])
            parser = _parser(extended=False, decisions=InteractiveDecisions(prompt_io))
            stats = parser.parse(["gone.mp3"], db, tmp)
            self.assertEqual(stats.removed, 0)
            self.assertEqual(db.get(1, 1).path, "gone.mp3")
            self.assertIn("gone.mp3", prompt_io.prompts[0])

    def test_probe_failure_uses_placeholder_when_kept(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "a.mp3").write_bytes(b"x")
            db = TrackDatabase()
            parser = _parser(decisions=InteractiveDecisions(BufferPromptIO(inputs=["no"])))
            parser.parse(["a.mp3"], db, tmp)
            self.assertEqual(db.get(1, 1).extinf, "0,Unknown Artist - Track 1")

    def test_probe_failure_removes_entry_at_level_never(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "a.mp3").write_bytes(b"x")
            db = TrackDatabase()
            stats = _parser(automation=AutomationLevel.NEVER).parse(["a.mp3"], db, tmp)
            self.assertEqual(stats.removed, 1)
            self.assertEqual(len(db), 0)

    def test_paths_rebased_for_other_output_directory(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            album = tmp / "Album"
            album.mkdir()
            (album / "a.mp3").write_bytes(b"x")
            db = TrackDatabase()
            _parser(extended=False).parse(["a.mp3"], db, album, output_dir=tmp)
            self.assertEqual(db.get(1, 1).path, "Album/a.mp3")

    def test_absolute_paths_are_kept(self) -> None:
        with tempfile.TemporaryDirectory() as tmpdir:
            tmp = Path(tmpdir)
            (tmp / "a.mp3").write_bytes(b"x")
            line = (tmp / "a.mp3").as_posix()
            db = TrackDatabase()
            _parser(extended=False).parse([line], db, tmp / "elsewhere", output_dir=tmp)
            self.assertEqual(db.get(1, 1).path, line)


if __name__ == "__main__":
    unittest.main()
