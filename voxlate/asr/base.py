from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from voxlate.contracts import RecognitionEvent

EventSink = Callable[[RecognitionEvent], None]


class SpeechRecognizer(ABC):
    """
    Streaming recognizer capability. Events are delivered on a producer
    thread owned by the recognizer; sinks must hand them off, not mutate
    shared state directly.
    """

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def start_stream(self, language_code: str, on_event: EventSink) -> int:
        """Open a stream and return its id; every event carries that id."""

    @abstractmethod
    def end_stream(self) -> None:
        """Signal end of audio; a final (or error) event still follows."""

    @abstractmethod
    def cancel_stream(self) -> None:
        """Abort the stream; no further events are delivered for it."""
