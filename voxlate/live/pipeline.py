from __future__ import annotations

import dataclasses
import logging
import queue
import threading
import time
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from voxlate.asr.base import SpeechRecognizer
from voxlate.audio.permissions import PermissionGate
from voxlate.audio.route import AudioRouteController
from voxlate.contracts import (
    LanguageDescriptor,
    LanguagePair,
    PipelineState,
    RecognitionEvent,
    RecognitionEventKind,
    TranslationRequest,
    TranslationResult,
)
from voxlate.errors import EmptyInput, TranslationFailed, UnknownLanguage, VoxlateError
from voxlate.live.capture_session import CaptureState, SpeechCaptureSession
from voxlate.nlp.translation_service import TranslationService
from voxlate.tts.speech_output import SpeechOutput
from voxlate.ui.bridge import EventBus
from voxlate.ui.presentation import NullPresentation, Presentation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _TranslateJob:
    generation: int
    request: TranslationRequest
    future: Future
    # language-change re-translation: put the transcript back when it lands
    restore_transcript: bool = False


@dataclass(frozen=True)
class _TranslateDone:
    job: _TranslateJob
    result: TranslationResult


class TranslationPipeline:
    """
    Speech capture -> translation -> speech output, owned by one thread.

    Every mutation of ``state`` happens on the owner thread: recognizer events
    and finished translations are posted to ``bus`` by worker threads and
    applied by ``pump()``. With ``async_translate=False`` translations run
    inline on the caller's thread instead.

    Each language change bumps a generation counter. A translation applies
    only if the generation it was submitted under is still current, so a slow
    result for an old language pair never overwrites the current one.
    """

    def __init__(
        self,
        *,
        translation: TranslationService,
        recognizer: SpeechRecognizer,
        speech: SpeechOutput | None = None,
        gate: PermissionGate | None = None,
        route: AudioRouteController | None = None,
        presentation: Presentation | None = None,
        bus: EventBus | None = None,
        async_translate: bool = True,
        source_lang: str = "en",
        target_lang: str = "ta",
    ) -> None:
        self.translation = translation
        self.speech = speech
        self.presentation = presentation or NullPresentation()
        self.bus = bus or EventBus()
        self.async_translate = async_translate

        self._languages: Dict[str, LanguageDescriptor] = {d.code: d for d in translation.languages()}
        self.state = PipelineState(
            selected_source=self._lookup(source_lang),
            selected_target=self._lookup(target_lang),
        )
        self._generation = 0
        self.translation.select(self.pair)

        self.capture = SpeechCaptureSession(
            recognizer,
            gate=gate,
            route=route,
            post=self._post_recognition,
            on_partial=self._on_partial_transcript,
            on_final=self.on_final_transcript,
            on_error=self._on_capture_error,
        )

        self._jobs: "queue.Queue[_TranslateJob | None]" = queue.Queue()
        self._worker: threading.Thread | None = None

    # -- languages -----------------------------------------------------------

    def languages(self) -> List[LanguageDescriptor]:
        return list(self._languages.values())

    @property
    def pair(self) -> LanguagePair:
        return LanguagePair(self.state.selected_source.code, self.state.selected_target.code)

    @property
    def generation(self) -> int:
        return self._generation

    def _lookup(self, code: str) -> LanguageDescriptor:
        desc = self._languages.get(code)
        if desc is None:
            raise UnknownLanguage(f"Unsupported language code: {code!r}")
        return desc

    def _language_changed(self) -> None:
        self._generation += 1
        self.translation.select(self.pair)
        self._clear_texts()
        logger.info("language_pair_selected", extra={"pair": str(self.pair), "generation": self._generation})

    def select_source_language(self, code: str) -> None:
        desc = self._lookup(code)
        if desc == self.state.selected_source:
            return
        self.state.selected_source = desc
        # a running stream is bound to the old language
        if self.capture.state != CaptureState.IDLE:
            self.capture.cancel()
            self.presentation.show_capture_state(False)
        self._language_changed()

    def select_target_language(self, code: str) -> None:
        desc = self._lookup(code)
        if desc == self.state.selected_target:
            return
        pending = self.state.last_transcript.strip()
        self.state.selected_target = desc
        self._language_changed()
        # a pending or finalizing stream translates its final transcript to the new target
        if pending and self.capture.state == CaptureState.IDLE:
            self._submit(pending, restore_transcript=True)

    # -- transcript ------------------------------------------------------------

    def _clear_texts(self) -> None:
        self.state.last_transcript = ""
        self.state.last_translation = ""
        self.presentation.show_transcript("", False)
        self.presentation.show_translation("")

    def clear(self) -> None:
        self._clear_texts()

    def set_transcript(self, text: str) -> None:
        """Typed input: replaces the transcript, keeps the last translation."""
        self.state.last_transcript = text or ""
        self.presentation.show_transcript(self.state.last_transcript, True)

    def _on_partial_transcript(self, text: str) -> None:
        self.state.last_transcript = text
        self.presentation.show_transcript(text, False)

    def on_final_transcript(self, text: str) -> None:
        self.state.last_transcript = text
        self.presentation.show_transcript(text, True)
        self.presentation.show_capture_state(False)
        if text.strip():
            self._submit(text.strip())

    def _on_capture_error(self, error: Exception) -> None:
        self.presentation.show_capture_state(False)
        self.presentation.show_error(error)

    # -- capture ---------------------------------------------------------------

    def _post_recognition(self, event: RecognitionEvent) -> None:
        self.bus.push(event, droppable=event.kind == RecognitionEventKind.PARTIAL)

    def start_capture(self) -> None:
        self._clear_texts()
        self.capture.restart(self.state.selected_source.code)
        self.presentation.show_capture_state(True)

    def stop_capture(self) -> None:
        if self.capture.is_active:
            self.capture.stop()
            self.presentation.show_capture_state(False)

    def toggle_capture(self) -> bool:
        """Stop an active capture, otherwise start a fresh one; returns the new active flag."""
        if self.capture.is_active:
            self.stop_capture()
        else:
            self.start_capture()
        return self.capture.is_active

    def begin_hold_capture(self) -> None:
        """Press-and-hold: capture while held, keeping the current texts until speech arrives."""
        self.capture.restart(self.state.selected_source.code)
        self.presentation.show_capture_state(True)

    def end_hold_capture(self) -> None:
        self.stop_capture()

    # -- translation -----------------------------------------------------------

    def manual_translate(self) -> "Future[TranslationResult]":
        text = self.state.last_transcript.strip()
        if not text:
            raise EmptyInput("Please enter some text, then press translate.")
        return self._submit(text)

    def _submit(self, text: str, *, restore_transcript: bool = False) -> "Future[TranslationResult]":
        pair = self.pair
        job = _TranslateJob(
            generation=self._generation,
            request=TranslationRequest(text=text, source_lang=pair.source, target_lang=pair.target),
            future=Future(),
            restore_transcript=restore_transcript,
        )
        if self.async_translate:
            self._ensure_worker()
            self._jobs.put(job)
            logger.info(
                "translate_async_enqueued",
                extra={"pair": str(pair), "chars": len(text), "generation": job.generation},
            )
        else:
            self._apply_translation(job, self._run_job(job))
        return job.future

    def _run_job(self, job: _TranslateJob) -> TranslationResult:
        t0 = time.perf_counter()
        try:
            result = self.translation.translate(job.request)
        except VoxlateError as e:
            result = TranslationResult(source_text=job.request.text, error=e)
        except Exception as e:
            logger.exception("translate_crashed", extra={"pair": str(job.request.pair)})
            failure = TranslationFailed(f"Translation crashed: {e}")
            failure.__cause__ = e
            result = TranslationResult(source_text=job.request.text, error=failure)
        logger.info(
            "translate_done",
            extra={
                "pair": str(job.request.pair),
                "ms": round((time.perf_counter() - t0) * 1000.0, 2),
                "ok": result.ok,
                "stale": result.stale,
            },
        )
        return result

    def _ensure_worker(self) -> None:
        if self._worker is not None and self._worker.is_alive():
            return
        self._worker = threading.Thread(target=self._translator_loop, name="voxlate-translate-worker", daemon=True)
        self._worker.start()

    def _translator_loop(self) -> None:
        while True:
            job = self._jobs.get()
            try:
                if job is None:
                    return
                self.bus.push(_TranslateDone(job=job, result=self._run_job(job)))
            finally:
                self._jobs.task_done()

    def _apply_translation(self, job: _TranslateJob, result: TranslationResult) -> bool:
        if result.stale or job.generation != self._generation:
            logger.info(
                "translate_result_discarded",
                extra={
                    "pair": str(job.request.pair),
                    "job_generation": job.generation,
                    "generation": self._generation,
                },
            )
            job.future.set_result(dataclasses.replace(result, translated_text="", stale=True))
            return False

        if job.restore_transcript:
            self.state.last_transcript = job.request.text
            self.presentation.show_transcript(job.request.text, True)

        if result.error is not None:
            self.presentation.show_error(result.error)
            job.future.set_exception(result.error)
            return False

        self.state.last_translation = result.translated_text
        self.presentation.show_translation(result.translated_text)
        job.future.set_result(result)
        return True

    def wait_for_translations(self) -> None:
        """Block until queued translations have finished (their results still need ``pump()``)."""
        self._jobs.join()

    # -- speech ----------------------------------------------------------------

    def speak_translation(self) -> bool:
        text = self.state.last_translation.strip()
        if not text or self.speech is None:
            return False
        return self.speech.speak(text, self.state.selected_target.code)

    def stop_speaking(self) -> None:
        if self.speech is not None:
            self.speech.stop()

    # -- owner loop ------------------------------------------------------------

    def dispatch(self, item: Any) -> bool:
        if isinstance(item, RecognitionEvent):
            self.capture.handle_event(item)
            return True
        if isinstance(item, _TranslateDone):
            self._apply_translation(item.job, item.result)
            return True
        return False

    def pump(
        self,
        *,
        max_items: Optional[int] = None,
        timeout: Optional[float] = None,
        on_other: Callable[[Any], None] | None = None,
    ) -> int:
        """
        Apply posted events on the calling (owner) thread. ``timeout`` waits for
        the first event only; items the pipeline does not know go to ``on_other``.
        """
        handled = 0
        wait = timeout
        while max_items is None or handled < max_items:
            item = self.bus.pop(timeout=wait)
            wait = None
            if item is None:
                break
            if not self.dispatch(item) and on_other is not None:
                on_other(item)
            handled += 1
        return handled

    def close(self) -> None:
        self.capture.cancel()
        if self._worker is not None:
            self._jobs.put(None)
            self._worker.join(timeout=5.0)
        if self.speech is not None:
            self.speech.close()
