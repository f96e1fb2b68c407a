"""Text-to-speech backend powered by ``pyttsx3``."""

from __future__ import annotations

import string
from typing import Any, Sequence

from voxlate.errors import BackendUnavailable
from voxlate.tts.base import SpeechSynthesizer, VoiceInfo


def normalize_language_tag(raw: Any) -> str:
    """espeak reports tags like ``b"\\x05en-us"``; SAPI/NSSpeech use ``en_US``."""
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="ignore")
    text = "".join(ch for ch in str(raw) if ch in string.printable).strip()
    return text.replace("_", "-").lower()


class Pyttsx3SpeechSynthesizer(SpeechSynthesizer):
    """Speaker playback using a pyttsx3 engine created on the playback thread."""

    def __init__(self) -> None:
        try:
            import pyttsx3
        except ImportError as exc:  # pragma: no cover - import guard
            raise BackendUnavailable(
                "Speech output backend unavailable. Install with: python -m pip install pyttsx3"
            ) from exc
        self._pyttsx3 = pyttsx3
        self._engine = None

    def _get_engine(self):
        if self._engine is None:
            self._engine = self._pyttsx3.init()
        return self._engine

    def voices(self) -> Sequence[VoiceInfo]:
        out = []
        for voice in self._get_engine().getProperty("voices") or []:
            languages = tuple(
                tag for tag in (normalize_language_tag(lang) for lang in (voice.languages or [])) if tag
            )
            out.append(VoiceInfo(id=str(voice.id), name=str(voice.name), languages=languages))
        return out

    def say(self, text: str, *, voice_id: str | None, rate: int | None, volume: float | None) -> None:
        engine = self._get_engine()
        if voice_id:
            engine.setProperty("voice", voice_id)
        if rate is not None:
            engine.setProperty("rate", rate)
        if volume is not None:
            engine.setProperty("volume", max(0.0, min(1.0, volume)))
        engine.say(text)
        engine.runAndWait()

    def stop(self) -> None:
        if self._engine is not None:
            self._engine.stop()
