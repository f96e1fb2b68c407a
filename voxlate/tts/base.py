"""Contracts for speech synthesis backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, Sequence


@dataclass(frozen=True)
class VoiceInfo:
    id: str
    name: str
    languages: Sequence[str] = field(default_factory=tuple)


class SpeechSynthesizer(Protocol):
    """Plays text through a local voice. Calls come from a single playback thread."""

    def voices(self) -> Sequence[VoiceInfo]:
        """Installed voices with normalized ("en-us" style) language tags."""

    def say(self, text: str, *, voice_id: str | None, rate: int | None, volume: float | None) -> None:
        """Speak and block until the utterance finishes or is stopped."""

    def stop(self) -> None:
        """Interrupt the current utterance."""
