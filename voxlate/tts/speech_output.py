"""Queued speech playback for translated text."""

from __future__ import annotations

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from voxlate.audio.route import AudioRoute, AudioRouteController
from voxlate.tts.base import SpeechSynthesizer, VoiceInfo

logger = logging.getLogger(__name__)


@dataclass
class SpeechOutputConfig:
    """Voice controls applied to every utterance."""

    rate: int | None = 170
    volume: float | None = 0.8
    voice_id: str | None = None
    post_utterance_delay: float = 0.2
    max_chars: int = 2000


@dataclass(frozen=True)
class _Utterance:
    text: str
    locale: str
    generation: int = 0


def select_voice(voices: Sequence[VoiceInfo], locale: str) -> Tuple[Optional[VoiceInfo], bool]:
    """
    Pick a voice for ``locale``: exact tag, then same base language.
    Returns ``(voice, exact)``; ``(None, False)`` means the engine default voice,
    which may not speak the language at all.
    """
    wanted = locale.replace("_", "-").lower()
    base = wanted.split("-", 1)[0]
    for voice in voices:
        if wanted in voice.languages:
            return voice, True
    for voice in voices:
        if any(tag.split("-", 1)[0] == base for tag in voice.languages):
            return voice, False
    return None, False


class SpeechOutput:
    """
    One playback worker drains a FIFO of utterances, so overlapping
    ``speak()`` calls play back to back instead of on top of each other.
    """

    def __init__(
        self,
        synthesizer: SpeechSynthesizer,
        *,
        route: AudioRouteController | None = None,
        config: SpeechOutputConfig | None = None,
    ) -> None:
        self._synthesizer = synthesizer
        self._route = route or AudioRouteController()
        self._config = config or SpeechOutputConfig()
        self._queue: "queue.Queue[_Utterance | None]" = queue.Queue()
        self._lock = threading.Lock()
        self._worker: threading.Thread | None = None
        self._generation = 0

    def speak(self, text: str, locale_code: str) -> bool:
        """Queue ``text`` and return immediately; False if nothing was queued."""
        normalized = " ".join((text or "").split())
        if not normalized:
            return False
        self._ensure_worker()
        with self._lock:
            generation = self._generation
        self._queue.put(_Utterance(text=normalized[: self._config.max_chars], locale=locale_code, generation=generation))
        logger.info("speak_enqueued", extra={"locale": locale_code, "chars": len(normalized)})
        return True

    def stop(self) -> None:
        """Interrupt the current utterance and drop everything queued behind it."""
        with self._lock:
            self._generation += 1
        dropped = 0
        while True:
            try:
                item = self._queue.get_nowait()
            except queue.Empty:
                break
            self._queue.task_done()
            if item is None:
                # keep a pending shutdown request
                self._queue.put(None)
                break
            dropped += 1
        self._synthesizer.stop()
        logger.info("speak_stopped", extra={"dropped": dropped})

    def wait_idle(self) -> None:
        self._queue.join()

    def close(self) -> None:
        with self._lock:
            worker = self._worker
        if worker is None:
            return
        self._queue.put(None)
        worker.join(timeout=5.0)

    def _ensure_worker(self) -> None:
        with self._lock:
            if self._worker is not None and self._worker.is_alive():
                return
            self._worker = threading.Thread(target=self._run, name="voxlate-speech-output", daemon=True)
            self._worker.start()

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is None:
                    return
                self._play(item)
            except Exception:
                logger.exception("speak_failed", extra={"locale": item.locale if item else ""})
            finally:
                self._queue.task_done()

    def _stale(self, item: _Utterance) -> bool:
        with self._lock:
            return item.generation != self._generation

    def _play(self, item: _Utterance) -> None:
        voice_id = self._config.voice_id
        if voice_id is None:
            voice, exact = select_voice(self._synthesizer.voices(), item.locale)
            if voice is None:
                logger.warning("tts_voice_default_fallback", extra={"locale": item.locale})
            elif not exact:
                logger.info("tts_voice_approximate", extra={"locale": item.locale, "voice": voice.name})
            voice_id = voice.id if voice is not None else None

        # stop() may land after the worker dequeued this item
        if self._stale(item):
            logger.info("speak_skipped_after_stop", extra={"locale": item.locale})
            return

        self._route.enter_playback()
        try:
            self._synthesizer.say(
                item.text,
                voice_id=voice_id,
                rate=self._config.rate,
                volume=self._config.volume,
            )
            if not self._stale(item) and self._config.post_utterance_delay > 0:
                time.sleep(self._config.post_utterance_delay)
        finally:
            self._route.release(AudioRoute.PLAYBACK)
