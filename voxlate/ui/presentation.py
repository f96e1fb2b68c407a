from __future__ import annotations

from typing import Callable, Protocol

from voxlate.app.diagnostics import hint_for_exception, summarize_exception


class Presentation(Protocol):
    def show_transcript(self, text: str, final: bool) -> None:
        ...

    def show_translation(self, text: str) -> None:
        ...

    def show_error(self, error: Exception) -> None:
        ...

    def show_capture_state(self, active: bool) -> None:
        ...


class NullPresentation:
    def show_transcript(self, text: str, final: bool) -> None:
        pass

    def show_translation(self, text: str) -> None:
        pass

    def show_error(self, error: Exception) -> None:
        pass

    def show_capture_state(self, active: bool) -> None:
        pass


class ConsolePresentation:
    """Line-oriented rendering for the console front end."""

    def __init__(self, write: Callable[[str], None] = print, *, show_partials: bool = True) -> None:
        self.write = write
        self.show_partials = show_partials

    def show_transcript(self, text: str, final: bool) -> None:
        if final:
            self.write(f"FROM: {text}")
        elif self.show_partials:
            self.write(f"  ... {text}")

    def show_translation(self, text: str) -> None:
        self.write(f"TO:   {text}")

    def show_error(self, error: Exception) -> None:
        summary = summarize_exception(str(error) or type(error).__name__)
        self.write(f"[error] {summary}")
        hint = hint_for_exception(summary)
        if hint:
            self.write(f"[hint] {hint}")

    def show_capture_state(self, active: bool) -> None:
        self.write("[listening] speak now, 'r' to stop" if active else "[stopped]")
