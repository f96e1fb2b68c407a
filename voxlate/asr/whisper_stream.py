from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol

from voxlate.asr.base import EventSink, SpeechRecognizer
from voxlate.asr.faster_whisper_pcm16 import FasterWhisperPCM16Transcriber
from voxlate.audio.vad import EnergyVAD, pcm16_duration
from voxlate.contracts import AudioChunk, RecognitionEvent, RecognitionEventKind
from voxlate.errors import RecognitionFailed

logger = logging.getLogger(__name__)


class ChunkSource(Protocol):
    def chunks(self, stop_event: threading.Event | None = None) -> Iterator[AudioChunk]:
        ...


@dataclass
class _Stream:
    stream_id: int
    language: str
    on_event: EventSink
    halt: threading.Event = field(default_factory=threading.Event)
    cancelled: bool = False
    thread: Optional[threading.Thread] = None


class WhisperStreamRecognizer(SpeechRecognizer):
    """
    Energy-VAD utterance capture fed to faster-whisper. While the speaker is
    talking the growing utterance is re-transcribed every `partial_every`
    speech chunks and reported as a partial. The stream finalizes on trailing
    silence, on `max_utter_sec`, or when `end_stream()` is called.
    """

    def __init__(
        self,
        *,
        mic: ChunkSource,
        transcriber: FasterWhisperPCM16Transcriber,
        vad: EnergyVAD,
        silence_chunks_to_finalize: int = 2,
        min_utter_sec: float = 0.6,
        max_utter_sec: float | None = None,
        partial_every: int = 2,
        join_timeout: float = 2.0,
    ) -> None:
        if silence_chunks_to_finalize <= 0:
            raise ValueError("silence_chunks_to_finalize must be > 0")
        if min_utter_sec < 0:
            raise ValueError("min_utter_sec must be >= 0")
        if max_utter_sec is not None and max_utter_sec <= 0:
            raise ValueError("max_utter_sec must be > 0 when set")

        self.mic = mic
        self.transcriber = transcriber
        self.vad = vad
        self.silence_chunks_to_finalize = int(silence_chunks_to_finalize)
        self.min_utter_sec = float(min_utter_sec)
        self.max_utter_sec = float(max_utter_sec) if max_utter_sec is not None else None
        self.partial_every = max(0, int(partial_every))
        self.join_timeout = float(join_timeout)

        self._lock = threading.Lock()
        self._next_id = 0
        self._current: Optional[_Stream] = None
        self._thread: Optional[threading.Thread] = None
        # one WhisperModel is shared by every stream
        self._infer_lock = threading.Lock()

    @property
    def name(self) -> str:
        return "faster-whisper"

    def start_stream(self, language_code: str, on_event: EventSink) -> int:
        self.cancel_stream()
        previous = self._thread
        if previous is not None and previous is not threading.current_thread():
            previous.join(self.join_timeout)
            if previous.is_alive():
                logger.warning("asr_stream_join_timeout", extra={"thread": previous.name, "timeout": self.join_timeout})
        with self._lock:
            self._next_id += 1
            stream = _Stream(stream_id=self._next_id, language=language_code, on_event=on_event)
            self._current = stream
        stream.thread = threading.Thread(
            target=self._run,
            args=(stream,),
            name=f"voxlate-asr-{stream.stream_id}",
            daemon=True,
        )
        self._thread = stream.thread
        stream.thread.start()
        logger.info("asr_stream_start", extra={"stream_id": stream.stream_id, "language": language_code})
        return stream.stream_id

    def end_stream(self) -> None:
        with self._lock:
            stream = self._current
        if stream is not None:
            stream.halt.set()

    def cancel_stream(self) -> None:
        with self._lock:
            stream = self._current
            self._current = None
            if stream is None:
                return
            stream.cancelled = True
        stream.halt.set()
        logger.info("asr_stream_cancel", extra={"stream_id": stream.stream_id})

    def join(self, timeout: float | None = None) -> None:
        thread = self._thread
        if thread is not None:
            thread.join(timeout)

    def _emit(self, stream: _Stream, kind: RecognitionEventKind, text: str = "", error: Exception | None = None) -> None:
        with self._lock:
            if stream.cancelled:
                return
            if kind != RecognitionEventKind.PARTIAL and self._current is stream:
                self._current = None
        stream.on_event(RecognitionEvent(kind=kind, stream_id=stream.stream_id, text=text, error=error))

    def _transcribe(self, stream: _Stream, parts: list[bytes], sample_rate: int, channels: int) -> str:
        with self._infer_lock:
            if stream.cancelled:
                return ""
            return self.transcriber.transcribe_text(
                b"".join(parts),
                sample_rate=sample_rate,
                channels=channels,
                language=stream.language,
            )

    def _run(self, stream: _Stream) -> None:
        parts: list[bytes] = []
        sample_rate = 0
        channels = 0
        trailing_silence = 0
        reason = "end_of_audio"

        try:
            for chunk in self.mic.chunks(stream.halt):
                if self.vad.is_speech(chunk):
                    if not parts:
                        sample_rate, channels = int(chunk.sample_rate), int(chunk.channels)
                    parts.append(chunk.pcm16)
                    trailing_silence = 0
                    if self.partial_every and len(parts) % self.partial_every == 0:
                        partial = self._transcribe(stream, parts, sample_rate, channels)
                        if partial:
                            self._emit(stream, RecognitionEventKind.PARTIAL, text=partial)
                    if self.max_utter_sec is not None:
                        if pcm16_duration(b"".join(parts), sample_rate, channels) >= self.max_utter_sec:
                            reason = "max_utter_sec"
                            break
                    continue

                if parts:
                    trailing_silence += 1
                    if trailing_silence >= self.silence_chunks_to_finalize:
                        reason = "silence"
                        break

            if stream.cancelled:
                return

            text = ""
            utter_sec = pcm16_duration(b"".join(parts), sample_rate, channels)
            if parts and utter_sec >= self.min_utter_sec:
                text = self._transcribe(stream, parts, sample_rate, channels)
            logger.info(
                "asr_stream_final",
                extra={
                    "stream_id": stream.stream_id,
                    "reason": reason,
                    "utter_sec": round(utter_sec, 2),
                    "chars": len(text),
                },
            )
            self._emit(stream, RecognitionEventKind.FINAL, text=text)
        except Exception as e:
            logger.exception("asr_stream_failed", extra={"stream_id": stream.stream_id})
            failure = e if isinstance(e, RecognitionFailed) else RecognitionFailed(f"Speech recognition failed: {e}")
            self._emit(stream, RecognitionEventKind.ERROR, error=failure)
