import io
import logging
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from pathlib import Path
from unittest.mock import patch

from mkm3u.cli import VERBOSITY_LEVELS, build_parser, configure_logging, run, select_decisions
from mkm3u.config import AutomationLevel
from mkm3u.decisions import DefaultDecisions, InteractiveDecisions
from mkm3u.models import MissingToolError, OperationAborted, ProbeError, ProbeResult


class FakeProbe:
    def __init__(self, results=None, missing_tool: bool = False) -> None:
        self.results = results or {}
        self.missing_tool = missing_tool

    def ensure_available(self) -> None:
        if self.missing_tool:
            raise MissingToolError("Missing dependency: soxi not installed.")

    def probe(self, path: Path) -> ProbeResult:
        result = self.results.get(path.name)
        if result is None:
            raise ProbeError(f"no metadata for {path}")
        return ProbeResult(path=path, tags=dict(result), duration=30)


class AbortingDecisions(DefaultDecisions):
    def confirm_truncate(self, playlist: Path) -> bool:
        raise OperationAborted("Quit on user request.")


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self._cwd = os.getcwd()
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        os.chdir(self.tmp)
        root = logging.getLogger()
        self._handlers = list(root.handlers)
        self._level = root.level

    def tearDown(self) -> None:
        root = logging.getLogger()
        root.handlers[:] = self._handlers
        root.setLevel(self._level)
        os.chdir(self._cwd)
        self._tmp.cleanup()

    def _album(self) -> Path:
        album = self.tmp / "Album"
        album.mkdir()
        (album / "01.mp3").write_bytes(b"x")
        return album

    def _run(self, argv, **kwargs) -> int:
        with redirect_stdout(io.StringIO()):
            return run(argv, **kwargs)

    def test_flags_are_parsed_in_any_order(self) -> None:
        args = build_parser().parse_args(["Album", "-s", "-c", "0", "-vv", "-f", "out.m3u"])
        self.assertFalse(args.extended)
        self.assertEqual(args.check, 0)
        self.assertEqual(args.verbose, 2)
        self.assertEqual(args.playlist, Path("out.m3u"))
        self.assertEqual(args.inputs, [Path("Album")])

    def test_simple_and_extended_are_exclusive(self) -> None:
        with redirect_stdout(io.StringIO()), self.assertRaises(SystemExit) as ctx:
            with patch("sys.stderr", new_callable=io.StringIO):
                build_parser().parse_args(["-s", "-S", "x"])
        self.assertEqual(ctx.exception.code, 2)

    def test_no_inputs_prints_help(self) -> None:
        buf = io.StringIO()
        with redirect_stdout(buf):
            self.assertEqual(run([]), 0)
        self.assertIn("usage: mkm3u", buf.getvalue())

    def test_builds_directory_playlist(self) -> None:
        album = self._album()
        probe = FakeProbe({"01.mp3": {"TITLE": "T", "ARTIST": "A", "TRACKNUMBER": "1", "TRACKTOTAL": "1"}})
        status = self._run(["--verbosity", "0", "-c", "0", "Album"], probe=probe)
        self.assertEqual(status, 0)
        self.assertEqual((album / "Album.m3u8").read_text(encoding="utf-8"), "#EXTM3U\n#EXTINF:30,A - T\n01.mp3\n")

    def test_simple_flag_and_explicit_output(self) -> None:
        self._album()
        probe = FakeProbe({"01.mp3": {"TITLE": "T", "ARTIST": "A", "TRACKNUMBER": "1", "TRACKTOTAL": "1"}})
        status = self._run(["--verbosity", "0", "-s", "-f", "mix.m3u", "Album"], probe=probe)
        self.assertEqual(status, 0)
        self.assertEqual((self.tmp / "mix.m3u").read_text(encoding="utf-8"), "Album/01.mp3\n")

    def test_empty_directory_exits_with_no_discs_code(self) -> None:
        (self.tmp / "Empty").mkdir()
        self.assertEqual(self._run(["--verbosity", "0", "Empty"], probe=FakeProbe()), 4)

    def test_missing_tool_exit_code(self) -> None:
        self._album()
        self.assertEqual(self._run(["--verbosity", "0", "Album"], probe=FakeProbe(missing_tool=True)), 127)

    def test_quit_exit_code(self) -> None:
        album = self._album()
        (album / "Album.m3u8").write_text("old\n", encoding="utf-8")
        probe = FakeProbe({"01.mp3": {"TITLE": "T", "ARTIST": "A"}})
        status = self._run(["--verbosity", "0", "Album"], probe=probe, decisions=AbortingDecisions())
        self.assertEqual(status, 1)
        self.assertEqual((album / "Album.m3u8").read_text(encoding="utf-8"), "old\n")

    def test_config_file_sets_defaults(self) -> None:
        album = self._album()
        (self.tmp / "mkm3u.yaml").write_text("playlist:\n  extended: false\nverbosity: 0\n", encoding="utf-8")
        probe = FakeProbe({"01.mp3": {"TITLE": "T", "ARTIST": "A", "TRACKNUMBER": "1", "TRACKTOTAL": "1"}})
        self.assertEqual(self._run(["Album"], probe=probe), 0)
        self.assertEqual((album / "Album.m3u8").read_text(encoding="utf-8"), "01.mp3\n")

    def test_bad_config_exit_code(self) -> None:
        self._album()
        (self.tmp / "bad.yaml").write_text("verbosity: 12\n", encoding="utf-8")
        with patch("sys.stderr", new_callable=io.StringIO):
            self.assertEqual(self._run(["--config", "bad.yaml", "Album"], probe=FakeProbe()), 5)

    def test_select_decisions(self) -> None:
        self.assertIsInstance(select_decisions(AutomationLevel.NEVER, True), DefaultDecisions)
        self.assertIsInstance(select_decisions(AutomationLevel.ALWAYS, False), DefaultDecisions)
        self.assertIsInstance(select_decisions(AutomationLevel.ON_ERROR, True), InteractiveDecisions)

    def test_warning_summary_shows_paths_relative_to_cwd(self) -> None:
        with patch("sys.stderr", new_callable=io.StringIO) as stderr:
            warn_buffer = configure_logging(2, self.tmp)
            logger = logging.getLogger("mkm3u.test")
            logger.info("hidden %s", self.tmp / "Album" / "a.mp3")
            logger.warning('File not found "%s".', self.tmp / "Album" / "b.mp3")
        self.assertEqual(warn_buffer.records, ['W | File not found "Album/b.mp3".'])
        self.assertEqual(stderr.getvalue(), '\033[33mW | File not found "Album/b.mp3".\033[0m\n')

    def test_verbosity_levels(self) -> None:
        self.assertEqual(VERBOSITY_LEVELS[2], logging.WARNING)
        self.assertGreater(VERBOSITY_LEVELS[0], logging.CRITICAL)


if __name__ == "__main__":
    unittest.main()
