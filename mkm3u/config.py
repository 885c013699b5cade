from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .models import ConfigError

DEFAULT_AUDIO_EXTENSIONS = ["wav", "flac", "ogg", "mp3", "m4a", "aac"]


class AutomationLevel(IntEnum):
    NEVER = 0
    ON_ERROR = 1
    ALWAYS = 2


class PlaylistSettings(BaseModel):
    extended: bool = True
    automation: AutomationLevel = AutomationLevel.ON_ERROR
    default_name: str = "playlist.m3u"
    directory_extension: str = "m3u8"
    max_discs: Optional[int] = Field(default=None, ge=1)

    @field_validator("directory_extension", mode="before")
    @classmethod
    def _strip_dot(cls, value: str) -> str:
        return str(value).strip().lstrip(".")


class LibrarySettings(BaseModel):
    audio_extensions: List[str] = Field(default_factory=lambda: list(DEFAULT_AUDIO_EXTENSIONS))

    @field_validator("audio_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, values: List[str]) -> List[str]:
        normalized: List[str] = []
        for value in values or []:
            ext = str(value).strip().lower()
            if not ext:
                continue
            if not ext.startswith("."):
                ext = f".{ext}"
            if ext not in normalized:
                normalized.append(ext)
        return normalized


class ProbeSettings(BaseModel):
    backend: Literal["mutagen", "soxi"] = "mutagen"
    soxi_path: str = "soxi"


class Settings(BaseModel):
    playlist: PlaylistSettings = PlaylistSettings()
    library: LibrarySettings = LibrarySettings()
    probe: ProbeSettings = ProbeSettings()
    verbosity: int = Field(default=3, ge=0, le=4)

    @classmethod
    def load(cls, path: Optional[Path]) -> "Settings":
        if path is None:
            return cls()
        try:
            with path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except OSError as exc:
            raise ConfigError(f"Cannot read configuration {path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
        try:
            return cls.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration in {path}: {exc}") from exc

    def with_overrides(
        self,
        *,
        extended: Optional[bool] = None,
        automation: Optional[int] = None,
        verbosity: Optional[int] = None,
    ) -> "Settings":
        """Return a copy with command line values applied; ``None`` keeps the file value."""
        playlist_update = {}
        if extended is not None:
            playlist_update["extended"] = extended
        if automation is not None:
            playlist_update["automation"] = AutomationLevel(automation)
        update: dict = {"playlist": self.playlist.model_copy(update=playlist_update)}
        if verbosity is not None:
            update["verbosity"] = max(0, min(4, verbosity))
        return self.model_copy(update=update)


def find_config(explicit_path: Optional[Path]) -> Optional[Path]:
    if explicit_path:
        if not explicit_path.exists():
            raise ConfigError(f"Configuration file not found: {explicit_path}")
        return explicit_path
    cwd = Path.cwd()
    for candidate in (cwd / "mkm3u.yaml", cwd / "mkm3u.yml"):
        if candidate.exists():
            return candidate
    return None
