from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Protocol, Sequence

from .models import OperationAborted


class PromptIO(Protocol):
    def print(self, text: str = "") -> None: ...

    def input(self, prompt: str = "") -> str: ...


class ConsolePromptIO:
    def print(self, text: str = "") -> None:
        print(text)

    def input(self, prompt: str = "") -> str:
        try:
            return input(prompt)
        except EOFError:
            return ""


@dataclass(slots=True)
class BufferPromptIO:
    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    prompts: List[str] = field(default_factory=list)

    def print(self, text: str = "") -> None:
        self.outputs.append(text)

    def input(self, prompt: str = "") -> str:
        self.prompts.append(prompt)
        if not self.inputs:
            raise AssertionError("BufferPromptIO has no more inputs")
        return self.inputs.pop(0)


class DecisionProvider(Protocol):
    def choose_replacement(self, missing: Path, candidates: Sequence[Path]) -> int: ...

    def confirm_removal(self, path: Path, reason: str) -> bool: ...

    def confirm_truncate(self, playlist: Path) -> bool: ...

    def confirm_continue(self, path: Path) -> bool: ...


class DefaultDecisions:
    """Answers every question with its default; used when nobody is asked."""

    def choose_replacement(self, missing: Path, candidates: Sequence[Path]) -> int:
        return 0

    def confirm_removal(self, path: Path, reason: str) -> bool:
        return True

    def confirm_truncate(self, playlist: Path) -> bool:
        return False

    def confirm_continue(self, path: Path) -> bool:
        return True


class InteractiveDecisions:
    def __init__(self, prompt_io: PromptIO | None = None) -> None:
        self.prompt_io = prompt_io or ConsolePromptIO()

    def choose_replacement(self, missing: Path, candidates: Sequence[Path]) -> int:
        if len(candidates) < 2:
            return 0
        return self.ask_list(
            f'File "{missing}" not found, but found following similar files. '
            "Which one should be inserted?",
            [candidate.name for candidate in candidates],
            default=0,
        )

    def confirm_removal(self, path: Path, reason: str) -> bool:
        return self.ask_yes_no(f'{reason} Remove "{path}" from playlist?', default=True)

    def confirm_truncate(self, playlist: Path) -> bool:
        return self.ask_yes_no(f'Playlist "{playlist}" already exists. Truncate?', default=False)

    def confirm_continue(self, path: Path) -> bool:
        return self.ask_yes_no(f'Processing file "{path}" failed. Continue this playlist?', default=True)

    def ask(self, question: str, options: Sequence[str], default: int = 0) -> int:
        """Ask until one of ``options`` is chosen; a single letter selects by initial."""
        rendered = ",".join(
            f"_{option}_" if idx == default else option for idx, option in enumerate(options)
        )
        while True:
            raw = self.prompt_io.input(f"{question} [{rendered}]? ")
            choice = " ".join(raw.lower().split())
            if not choice:
                return default
            for idx, option in enumerate(options):
                option = option.lower()
                if choice == option or (len(choice) == 1 and option[:1] == choice):
                    return idx
            self.prompt_io.print(f'Unknown option: "{choice}"')

    def ask_yes_no(self, question: str, default: bool = True) -> bool:
        choice = self.ask(question, ["yes", "no", "quit"], default=0 if default else 1)
        if choice == 2:
            self.prompt_io.print("Quit.")
            raise OperationAborted("Quit on user request.")
        return choice == 0

    def ask_list(self, question: str, options: Sequence[str], default: int = 0) -> int:
        count = len(options)
        while True:
            self.prompt_io.print(question)
            for idx, option in enumerate(options, 1):
                self.prompt_io.print(f"{idx}. {option}")
            raw = self.prompt_io.input(f"[1..{count}] {default + 1}? ").strip()
            if not raw:
                return default
            if raw.isdigit() and 1 <= int(raw) <= count:
                return int(raw) - 1
            self.prompt_io.print(f"Need to select a number from [1..{count}]!")
