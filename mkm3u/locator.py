from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional

from .decisions import DecisionProvider

logger = logging.getLogger(__name__)


class FileLocator:
    """Finds stand-ins for playlist entries whose file changed extension."""

    def __init__(self, extensions: Iterable[str]) -> None:
        self.extensions = {self._normalize(ext) for ext in extensions if ext}

    @staticmethod
    def _normalize(ext: str) -> str:
        ext = ext.strip().lower()
        return ext if ext.startswith(".") else f".{ext}"

    def resolve(self, missing: Path, extensions: Optional[Iterable[str]] = None) -> List[Path]:
        """Siblings of ``missing`` sharing its base name, smallest file first."""
        allowed = (
            {self._normalize(ext) for ext in extensions if ext}
            if extensions is not None
            else self.extensions
        )
        directory = missing.parent
        stem = missing.stem.lower()
        sized: list[tuple[int, str, Path]] = []
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    candidate = Path(entry.name)
                    if candidate.stem.lower() != stem:
                        continue
                    if candidate.suffix.lower() not in allowed:
                        continue
                    try:
                        if not entry.is_file():
                            continue
                        size = entry.stat().st_size
                    except OSError:
                        continue
                    sized.append((size, entry.name, directory / entry.name))
        except (FileNotFoundError, NotADirectoryError):
            return []
        sized.sort(key=lambda item: (item[0], item[1]))
        return [path for _, _, path in sized]

    def select(
        self,
        missing: Path,
        decisions: DecisionProvider,
        *,
        interactive: bool,
    ) -> Optional[Path]:
        candidates = self.resolve(missing)
        if not candidates:
            return None
        if interactive:
            index = decisions.choose_replacement(missing, candidates)
            if not 0 <= index < len(candidates):
                index = 0
            return candidates[index]
        replacement = candidates[0]
        logger.warning('File not found "%s". Replace with "%s".', missing, replacement.name)
        return replacement
