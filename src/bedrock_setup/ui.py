"""Terminal output and prompts.

All wizard output goes through a single rich Console. Input is read through
``reader`` (``Console.input`` by default) so tests can script the answers.
"""

from __future__ import annotations

from typing import Callable, Optional, Sequence

from rich.console import Console
from rich.text import Text

YES = {"y", "yes", "ok", "s", "si", "sì", "oui", "ja"}

Reader = Callable[[Text], str]


def is_yes(text: str) -> bool:
    """Any answer starting with y counts, plus a few other languages' yes."""
    t = text.strip().lower()
    return t in YES or t.startswith("y")


def is_no(text: str) -> bool:
    return text.strip().lower().startswith("n")


def pick_index(answer: str, count: int) -> Optional[int]:
    """1-based menu answer -> 0-based index, None if not a valid choice."""
    answer = answer.strip()
    if not answer.isdigit():
        return None
    idx = int(answer) - 1
    if 0 <= idx < count:
        return idx
    return None


class Terminal:
    def __init__(self, console: Optional[Console] = None, reader: Optional[Reader] = None):
        self.console = console or Console()
        self._reader = reader or self.console.input

    # --- status lines ---

    def _line(self, tag: str, style: str, pad: str, msg: str) -> None:
        self.console.print(Text.assemble((tag, style), pad, msg))

    def info(self, msg: str = "") -> None:
        self._line("[INFO]", "blue", "  ", msg)

    def success(self, msg: str) -> None:
        self._line("[OK]", "green", "    ", msg)

    def warn(self, msg: str) -> None:
        self._line("[WARN]", "bold yellow", "  ", msg)

    def error(self, msg: str) -> None:
        self._line("[ERROR]", "red", " ", msg)

    def header(self, title: str) -> None:
        self.console.print()
        self.console.print(Text(f"── {title} ──", style="bold cyan"))
        self.console.print()

    def plain(self, msg: str = "") -> None:
        self.console.print(Text(msg))

    def menu(self, options: Sequence[str]) -> None:
        for i, opt in enumerate(options, start=1):
            self.plain(f"  {i}) {opt}")
        self.plain()

    # --- prompts ---

    def ask(self, prompt: str) -> str:
        return self._reader(Text(prompt)).strip()

    def ask_required(self, prompt: str) -> str:
        while True:
            ans = self.ask(f"{prompt}: ")
            if ans:
                return ans
            self.warn("This field is required.")

    def confirm(self, prompt: str, default_yes: bool = True) -> bool:
        """Ask until the answer is empty (the default), a yes or a no."""
        suffix = "[Y/n]" if default_yes else "[y/N]"
        while True:
            ans = self.ask(f"{prompt} {suffix}: ")
            if not ans:
                return default_yes
            if is_yes(ans):
                return True
            if is_no(ans):
                return False
            self.warn("Please answer y or n.")
