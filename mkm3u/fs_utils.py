from __future__ import annotations

import enum
import errno
import os
from pathlib import Path
from typing import List, Optional

from .meta_keys import EXTM3U_HEADER

PLAYLIST_SUFFIXES = {".m3u", ".m3u8"}


class PlaylistKind(enum.Enum):
    NONE = "none"
    SIMPLE = "simple"
    EXTENDED = "extended"


def path_exists(path: Path) -> Optional[bool]:
    try:
        path.stat()
        return True
    except FileNotFoundError:
        return False
    except OSError as exc:
        if exc.errno != errno.ENAMETOOLONG:
            raise
        parent = path.parent
        try:
            with os.scandir(parent) as it:
                for entry in it:
                    if entry.name == path.name:
                        return True
        except FileNotFoundError:
            return None
        return False


def relative_path(target: Path, base_dir: Path) -> str:
    """Path of ``target`` as seen from ``base_dir``, with forward slashes."""
    rel = os.path.relpath(os.path.abspath(target), os.path.abspath(base_dir))
    return Path(rel).as_posix()


def is_playlist_name(path: Path) -> bool:
    return path.suffix.lower() in PLAYLIST_SUFFIXES


def read_playlist_text(path: Path) -> str:
    data = path.read_bytes()
    if path.suffix.lower() == ".m3u8":
        return data.decode("utf-8", errors="replace")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def read_playlist_lines(path: Path) -> List[str]:
    text = read_playlist_text(path)
    if text.startswith("\ufeff"):
        text = text[1:]
    return [line.rstrip("\r") for line in text.split("\n")]


def playlist_kind(path: Path) -> PlaylistKind:
    if not is_playlist_name(path) or not path.is_file():
        return PlaylistKind.NONE
    try:
        head = path.read_bytes()[:4096]
    except OSError:
        return PlaylistKind.NONE
    if b"\x00" in head:
        return PlaylistKind.NONE
    first_line = head.lstrip(b"\xef\xbb\xbf").split(b"\n", 1)[0]
    if first_line.strip().startswith(EXTM3U_HEADER.encode("ascii")):
        return PlaylistKind.EXTENDED
    return PlaylistKind.SIMPLE


def list_media_files(directory: Path, extensions: set[str]) -> List[Path]:
    """Non-recursive, name-sorted listing of audio files directly in ``directory``."""
    files: List[Path] = []
    for path in sorted(directory.iterdir(), key=lambda p: p.name):
        if path.name.startswith("."):
            continue
        if not path.is_file():
            continue
        if is_playlist_name(path):
            continue
        if extensions and path.suffix.lower() not in extensions:
            continue
        files.append(path)
    return files
