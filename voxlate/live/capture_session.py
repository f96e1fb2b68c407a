from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from voxlate.asr.base import SpeechRecognizer
from voxlate.audio.permissions import PermissionGate
from voxlate.audio.route import AudioRoute, AudioRouteController
from voxlate.contracts import CaptureSnapshot, RecognitionEvent, RecognitionEventKind
from voxlate.errors import AlreadyActive, RecognitionFailed, VoxlateError

logger = logging.getLogger(__name__)


class CaptureState(str, Enum):
    IDLE = "idle"
    STARTING = "starting"
    LISTENING = "listening"
    FINALIZING = "finalizing"


class SpeechCaptureSession:
    """
    One microphone-to-text recognition session at a time.

    Recognizer events arrive on the recognizer's thread and are forwarded to
    ``post``; whoever owns the session must feed them back through
    ``handle_event`` on its own thread. Without ``post`` they are handled
    inline on whatever thread the recognizer calls back on.
    """

    def __init__(
        self,
        recognizer: SpeechRecognizer,
        *,
        gate: PermissionGate | None = None,
        route: AudioRouteController | None = None,
        post: Callable[[RecognitionEvent], None] | None = None,
        on_partial: Callable[[str], None] | None = None,
        on_final: Callable[[str], None] | None = None,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self.recognizer = recognizer
        self.gate = gate
        self.route = route or AudioRouteController()
        self._post = post or self.handle_event
        self.on_partial = on_partial
        self.on_final = on_final
        self.on_error = on_error

        self.state = CaptureState.IDLE
        self.source_language_code = ""
        self.partial_text = ""
        self.final_text: Optional[str] = None
        self.last_error: Optional[Exception] = None
        self._stream_id: Optional[int] = None

    @property
    def is_active(self) -> bool:
        return self.state in (CaptureState.STARTING, CaptureState.LISTENING)

    def snapshot(self) -> CaptureSnapshot:
        return CaptureSnapshot(
            is_active=self.is_active,
            source_language_code=self.source_language_code,
            partial_text=self.partial_text,
            final_text=self.final_text,
            last_error=self.last_error,
        )

    def start(self, source_language_code: str) -> int:
        if self.state != CaptureState.IDLE:
            raise AlreadyActive(f"Capture already {self.state.value}")
        if self.gate is not None:
            self.gate.require()

        self.state = CaptureState.STARTING
        self.source_language_code = source_language_code
        self.partial_text = ""
        self.final_text = None
        self.last_error = None
        self.route.enter_capture()
        try:
            self._stream_id = self.recognizer.start_stream(source_language_code, self._post)
        except Exception as e:
            self._reset()
            if isinstance(e, VoxlateError):
                raise
            raise RecognitionFailed(f"Could not start speech recognition: {e}") from e
        self.state = CaptureState.LISTENING
        logger.info(
            "capture_start",
            extra={"stream_id": self._stream_id, "language": source_language_code, "recognizer": self.recognizer.name},
        )
        return self._stream_id

    def restart(self, source_language_code: str) -> int:
        self.cancel()
        return self.start(source_language_code)

    def stop(self) -> None:
        if self.state != CaptureState.LISTENING:
            return
        self.state = CaptureState.FINALIZING
        logger.info("capture_stop", extra={"stream_id": self._stream_id})
        self.recognizer.end_stream()

    def cancel(self) -> None:
        if self.state == CaptureState.IDLE:
            return
        logger.info("capture_cancel", extra={"stream_id": self._stream_id, "state": self.state.value})
        self.recognizer.cancel_stream()
        self.partial_text = ""
        self._reset()

    def _reset(self) -> None:
        self._stream_id = None
        self.state = CaptureState.IDLE
        self.route.release(AudioRoute.CAPTURE)

    def handle_event(self, event: RecognitionEvent) -> bool:
        """Apply one recognizer event; returns False for events of a dead stream."""
        if self._stream_id is None or event.stream_id != self._stream_id:
            logger.debug("capture_event_dropped", extra={"stream_id": event.stream_id, "kind": event.kind.value})
            return False

        if event.kind == RecognitionEventKind.PARTIAL:
            self.partial_text = event.text
            if self.on_partial is not None:
                self.on_partial(event.text)
            return True

        if event.kind == RecognitionEventKind.FINAL:
            self.state = CaptureState.FINALIZING
            self.final_text = event.text
            self.partial_text = event.text
            self._reset()
            logger.info("capture_final", extra={"stream_id": event.stream_id, "chars": len(event.text)})
            if self.on_final is not None:
                self.on_final(event.text)
            return True

        error = event.error if isinstance(event.error, RecognitionFailed) else RecognitionFailed(
            f"Speech recognition failed: {event.error}"
        )
        self.last_error = error
        self._reset()
        logger.warning("capture_error", extra={"stream_id": event.stream_id, "error": str(error)})
        if self.on_error is not None:
            self.on_error(error)
        return True
