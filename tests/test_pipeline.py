from __future__ import annotations

import pytest

from voxlate.asr.base import SpeechRecognizer
from voxlate.contracts import LanguageDescriptor, LanguagePair, RecognitionEvent, RecognitionEventKind
from voxlate.errors import EmptyInput, ModelUnavailable, TranslationFailed, UnknownLanguage
from voxlate.live.capture_session import CaptureState
from voxlate.live.pipeline import TranslationPipeline
from voxlate.nlp.translation_service import TranslationService
from voxlate.nlp.translator.base import TranslatorBackend

TABLE = {
    ("en", "fr", "hello"): "bonjour",
    ("en", "es", "hello"): "hola",
}


class FakeBackend(TranslatorBackend):
    def __init__(self) -> None:
        self.calls: list[tuple[LanguagePair, str]] = []
        self.fail_with: Exception | None = None
        self.model_error: Exception | None = None

    @property
    def name(self) -> str:
        return "fake"

    def supported_languages(self):
        return [
            LanguageDescriptor("en", "English"),
            LanguageDescriptor("fr", "French"),
            LanguageDescriptor("es", "Spanish"),
            LanguageDescriptor("ta", "Tamil"),
        ]

    def ensure_model(self, pair, policy) -> None:
        if self.model_error is not None:
            raise self.model_error

    def translate(self, pair, text):
        self.calls.append((pair, text))
        if self.fail_with is not None:
            raise self.fail_with
        return TABLE.get((pair.source, pair.target, text), f"{pair.target}:{text}")


class FakeRecognizer(SpeechRecognizer):
    def __init__(self) -> None:
        self.started: list[str] = []
        self.ended = 0
        self.cancelled = 0
        self.sink = None
        self.stream_id = 0

    @property
    def name(self) -> str:
        return "fake"

    def start_stream(self, language_code, on_event) -> int:
        self.stream_id += 1
        self.started.append(language_code)
        self.sink = on_event
        return self.stream_id

    def end_stream(self) -> None:
        self.ended += 1

    def cancel_stream(self) -> None:
        self.cancelled += 1

    def emit(self, kind: RecognitionEventKind, text: str = "", error=None) -> None:
        self.sink(RecognitionEvent(kind=kind, stream_id=self.stream_id, text=text, error=error))


class FakeSpeech:
    def __init__(self) -> None:
        self.spoken: list[tuple[str, str]] = []
        self.stopped = 0
        self.closed = False

    def speak(self, text: str, locale_code: str) -> bool:
        self.spoken.append((text, locale_code))
        return True

    def stop(self) -> None:
        self.stopped += 1

    def close(self) -> None:
        self.closed = True


class RecordingPresentation:
    def __init__(self) -> None:
        self.transcripts: list[tuple[str, bool]] = []
        self.translations: list[str] = []
        self.errors: list[Exception] = []
        self.capture: list[bool] = []

    def show_transcript(self, text: str, final: bool) -> None:
        self.transcripts.append((text, final))

    def show_translation(self, text: str) -> None:
        self.translations.append(text)

    def show_error(self, error: Exception) -> None:
        self.errors.append(error)

    def show_capture_state(self, active: bool) -> None:
        self.capture.append(active)


def _pipeline(target: str = "fr", async_translate: bool = False, **kwargs):
    backend = FakeBackend()
    recognizer = FakeRecognizer()
    speech = FakeSpeech()
    presentation = RecordingPresentation()
    pipeline = TranslationPipeline(
        translation=TranslationService(backend),
        recognizer=recognizer,
        speech=speech,  # type: ignore[arg-type]
        presentation=presentation,
        async_translate=async_translate,
        source_lang="en",
        target_lang=target,
        **kwargs,
    )
    return pipeline, backend, recognizer, speech, presentation


def test_manual_translate_hello_to_bonjour() -> None:
    pipeline, backend, *_ = _pipeline()
    pipeline.set_transcript("hello")

    result = pipeline.manual_translate().result(timeout=1)

    assert result.translated_text == "bonjour"
    assert pipeline.state.last_translation == "bonjour"
    assert backend.calls == [(LanguagePair("en", "fr"), "hello")]


@pytest.mark.parametrize("text", ["", "  ", "\t\n"])
def test_manual_translate_blank_raises_and_never_calls_backend(text: str) -> None:
    pipeline, backend, *_ = _pipeline()
    pipeline.set_transcript(text)
    with pytest.raises(EmptyInput):
        pipeline.manual_translate()
    assert backend.calls == []


def test_translation_failure_keeps_last_translation() -> None:
    pipeline, backend, _, _, presentation = _pipeline()
    pipeline.set_transcript("hello")
    pipeline.manual_translate()
    assert pipeline.state.last_translation == "bonjour"

    backend.fail_with = RuntimeError("inference crashed")
    pipeline.set_transcript("goodbye")
    future = pipeline.manual_translate()

    assert isinstance(future.exception(timeout=1), TranslationFailed)
    assert pipeline.state.last_translation == "bonjour"
    assert isinstance(presentation.errors[-1], TranslationFailed)


def test_model_unavailable_surfaces_to_caller() -> None:
    pipeline, backend, *_ = _pipeline()
    backend.model_error = ModelUnavailable("metered network")
    pipeline.set_transcript("hello")

    future = pipeline.manual_translate()

    assert isinstance(future.exception(timeout=1), ModelUnavailable)
    assert pipeline.state.last_translation == ""
    assert backend.calls == []


def test_source_change_clears_transcript_and_translation() -> None:
    pipeline, backend, *_ = _pipeline()
    pipeline.set_transcript("hello")
    pipeline.manual_translate()

    pipeline.select_source_language("es")

    assert pipeline.state.last_transcript == ""
    assert pipeline.state.last_translation == ""
    assert pipeline.pair == LanguagePair("es", "fr")
    assert pipeline.translation.selected == LanguagePair("es", "fr")
    assert len(backend.calls) == 1


def test_target_change_without_transcript_only_clears() -> None:
    pipeline, backend, *_ = _pipeline()
    pipeline.select_target_language("es")
    assert pipeline.state.last_transcript == ""
    assert pipeline.state.last_translation == ""
    assert backend.calls == []


def test_target_change_retranslates_existing_transcript() -> None:
    pipeline, backend, _, _, presentation = _pipeline()
    pipeline.set_transcript("hello")
    pipeline.manual_translate()

    pipeline.select_target_language("es")

    # cleared first, then filled by the re-translation
    assert "" in presentation.translations
    assert presentation.translations[-1] == "hola"
    assert pipeline.state.last_transcript == "hello"
    assert pipeline.state.last_translation == "hola"
    assert backend.calls[-1] == (LanguagePair("en", "es"), "hello")


def test_language_change_bumps_generation() -> None:
    pipeline, *_ = _pipeline()
    assert pipeline.generation == 0
    pipeline.select_target_language("es")
    pipeline.select_source_language("fr")
    assert pipeline.generation == 2
    # re-selecting the current language is not a change
    pipeline.select_source_language("fr")
    assert pipeline.generation == 2


def test_unknown_language_rejected_without_touching_state() -> None:
    pipeline, *_ = _pipeline()
    pipeline.set_transcript("hello")
    with pytest.raises(UnknownLanguage):
        pipeline.select_target_language("xx")
    with pytest.raises(UnknownLanguage):
        pipeline.select_source_language("")
    assert pipeline.pair == LanguagePair("en", "fr")
    assert pipeline.state.last_transcript == "hello"


def test_unknown_initial_language_rejected() -> None:
    with pytest.raises(UnknownLanguage):
        _pipeline(target="xx")


def test_toggle_capture_twice_from_idle() -> None:
    pipeline, _, recognizer, _, presentation = _pipeline()
    pipeline.set_transcript("old text")

    assert pipeline.toggle_capture() is True
    assert pipeline.capture.is_active
    assert pipeline.state.last_transcript == ""
    assert recognizer.started == ["en"]

    assert pipeline.toggle_capture() is False
    assert not pipeline.capture.is_active
    assert recognizer.ended == 1
    assert presentation.capture[-2:] == [True, False]

    recognizer.emit(RecognitionEventKind.FINAL, "")
    pipeline.pump()
    assert pipeline.capture.state == CaptureState.IDLE


def test_capture_partials_then_final_translates_automatically() -> None:
    pipeline, backend, recognizer, _, presentation = _pipeline()
    pipeline.toggle_capture()

    recognizer.emit(RecognitionEventKind.PARTIAL, "hel")
    pipeline.pump()
    assert pipeline.state.last_transcript == "hel"
    assert backend.calls == []

    recognizer.emit(RecognitionEventKind.FINAL, "hello")
    pipeline.pump()

    assert pipeline.state.last_transcript == "hello"
    assert pipeline.state.last_translation == "bonjour"
    assert ("hello", True) in presentation.transcripts
    assert not pipeline.capture.is_active


def test_blank_final_transcript_does_not_translate() -> None:
    pipeline, backend, recognizer, *_ = _pipeline()
    pipeline.toggle_capture()
    recognizer.emit(RecognitionEventKind.FINAL, "   ")
    pipeline.pump()
    assert backend.calls == []


def test_recognition_error_reported_and_pipeline_recovers() -> None:
    pipeline, _, recognizer, _, presentation = _pipeline()
    pipeline.toggle_capture()
    recognizer.emit(RecognitionEventKind.ERROR, error=OSError("mic lost"))
    pipeline.pump()

    assert pipeline.capture.state == CaptureState.IDLE
    assert len(presentation.errors) == 1

    assert pipeline.toggle_capture() is True


def test_restart_while_finalizing_cancels_pending_stream() -> None:
    pipeline, backend, recognizer, *_ = _pipeline()
    pipeline.toggle_capture()
    pipeline.toggle_capture()
    first_stream = recognizer.stream_id
    pipeline.toggle_capture()

    assert recognizer.cancelled == 1
    pipeline.bus.push(RecognitionEvent(kind=RecognitionEventKind.FINAL, stream_id=first_stream, text="hello"))
    pipeline.pump()
    assert backend.calls == []
    assert pipeline.capture.is_active


def test_source_change_cancels_running_capture() -> None:
    pipeline, _, recognizer, *_ = _pipeline()
    pipeline.toggle_capture()
    pipeline.select_source_language("es")
    assert recognizer.cancelled == 1
    assert pipeline.capture.state == CaptureState.IDLE


def test_target_change_during_capture_translates_final_to_new_target() -> None:
    pipeline, backend, recognizer, *_ = _pipeline()
    pipeline.toggle_capture()
    recognizer.emit(RecognitionEventKind.PARTIAL, "hel")
    pipeline.pump()

    pipeline.select_target_language("es")
    assert backend.calls == []
    assert pipeline.capture.is_active

    recognizer.emit(RecognitionEventKind.FINAL, "hello")
    pipeline.pump()
    assert pipeline.state.last_translation == "hola"


def test_target_change_while_finalizing_keeps_transcript_and_translation_paired() -> None:
    pipeline, backend, recognizer, *_ = _pipeline(async_translate=True)
    try:
        pipeline.toggle_capture()
        recognizer.emit(RecognitionEventKind.PARTIAL, "hel")
        pipeline.pump()
        pipeline.toggle_capture()
        assert pipeline.capture.state == CaptureState.FINALIZING

        pipeline.select_target_language("es")
        recognizer.emit(RecognitionEventKind.FINAL, "hello")
        pipeline.pump()
        pipeline.wait_for_translations()
        pipeline.pump()

        assert backend.calls == [(LanguagePair("en", "es"), "hello")]
        assert pipeline.state.last_transcript == "hello"
        assert pipeline.state.last_translation == "hola"
    finally:
        pipeline.close()


def test_failed_retranslation_after_target_change_keeps_transcript() -> None:
    pipeline, backend, _, _, presentation = _pipeline()
    pipeline.set_transcript("hello")
    backend.fail_with = RuntimeError("inference crashed")

    pipeline.select_target_language("es")

    assert pipeline.state.last_transcript == "hello"
    assert pipeline.state.last_translation == ""
    assert isinstance(presentation.errors[-1], TranslationFailed)

    backend.fail_with = None
    assert pipeline.manual_translate().result(timeout=1).translated_text == "hola"


def test_hold_capture_starts_and_stops() -> None:
    pipeline, _, recognizer, *_ = _pipeline()
    pipeline.begin_hold_capture()
    assert pipeline.capture.is_active
    pipeline.end_hold_capture()
    assert recognizer.ended == 1


def test_speak_translation_forwards_target_locale() -> None:
    pipeline, _, _, speech, _ = _pipeline()
    assert pipeline.speak_translation() is False
    assert speech.spoken == []

    pipeline.set_transcript("hello")
    pipeline.manual_translate()
    assert pipeline.speak_translation() is True
    assert speech.spoken == [("bonjour", "fr")]

    pipeline.stop_speaking()
    assert speech.stopped == 1


def test_clear_resets_texts() -> None:
    pipeline, *_ = _pipeline()
    pipeline.set_transcript("hello")
    pipeline.manual_translate()
    pipeline.clear()
    assert pipeline.state.last_transcript == ""
    assert pipeline.state.last_translation == ""


def test_close_cancels_capture_and_closes_speech() -> None:
    pipeline, _, recognizer, speech, _ = _pipeline()
    pipeline.toggle_capture()
    pipeline.close()
    assert recognizer.cancelled == 1
    assert speech.closed
