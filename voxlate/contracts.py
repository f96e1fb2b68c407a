from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional

@dataclass(frozen=True)
class LanguageDescriptor:
    code: str
    display_name: str

@dataclass(frozen=True)
class LanguagePair:
    source: str
    target: str

    def __str__(self) -> str:
        return f"{self.source}->{self.target}"

@dataclass(frozen=True)
class TranslationRequest:
    text: str
    source_lang: str = "en"
    target_lang: str = "ta"

    @property
    def pair(self) -> LanguagePair:
        return LanguagePair(self.source_lang, self.target_lang)

@dataclass(frozen=True)
class TranslationResult:
    source_text: str
    translated_text: str = ""
    provider: str = ""
    error: Optional[Exception] = None
    # stale = the language pair moved on while this was in flight; drop silently
    stale: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.stale

@dataclass(frozen=True)
class DownloadPolicy:
    allow_network: bool = True
    allow_metered: bool = False

@dataclass(frozen=True)
class PermissionStatus:
    microphone_granted: bool
    speech_granted: bool

    @property
    def granted(self) -> bool:
        return self.microphone_granted and self.speech_granted


class RecognitionEventKind(str, Enum):
    PARTIAL = "partial"
    FINAL = "final"
    ERROR = "error"


@dataclass(frozen=True)
class RecognitionEvent:
    kind: RecognitionEventKind
    stream_id: int
    text: str = ""
    error: Optional[Exception] = None

    @property
    def is_terminal(self) -> bool:
        return self.kind in (RecognitionEventKind.FINAL, RecognitionEventKind.ERROR)

@dataclass(frozen=True)
class CaptureSnapshot:
    is_active: bool
    source_language_code: str
    partial_text: str = ""
    final_text: Optional[str] = None
    last_error: Optional[Exception] = None

@dataclass
class PipelineState:
    selected_source: LanguageDescriptor
    selected_target: LanguageDescriptor
    last_transcript: str = ""
    last_translation: str = ""

@dataclass(frozen=True)
class ASRSegment:
    text: str
    t0: float
    t1: float
    is_final: bool = True

@dataclass(frozen=True)
class AudioChunk:
    """
    Raw PCM16 audio chunk captured from a live source (e.g., microphone).
    pcm16: little-endian signed 16-bit PCM bytes (interleaved if channels > 1).
    """
    pcm16: bytes
    sample_rate: int
    channels: int
    start_time: float  # seconds since stream start
    duration: float    # seconds
