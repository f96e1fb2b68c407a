from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

from voxlate.audio.mic import SoundDeviceMicSource
from voxlate.contracts import PermissionStatus
from voxlate.errors import MicError, PermissionDenied

logger = logging.getLogger(__name__)


class PermissionProvider(Protocol):
    def request_microphone(self) -> bool:
        ...

    def request_speech_recognition(self) -> bool:
        ...


class SoundDevicePermissionProvider:
    """
    Desktop stand-in for OS permission prompts: the microphone counts as
    granted when PortAudio exposes a usable input device. Recognition runs
    on-device, so its grant comes from configuration.
    """

    def __init__(self, mic: SoundDeviceMicSource, *, speech_allowed: bool = True) -> None:
        self.mic = mic
        self.speech_allowed = speech_allowed

    def request_microphone(self) -> bool:
        try:
            return self.mic.has_input_device()
        except MicError:
            logger.warning("microphone_backend_missing", exc_info=True)
            return False

    def request_speech_recognition(self) -> bool:
        return bool(self.speech_allowed)


class PermissionGate:
    def __init__(self, provider: PermissionProvider) -> None:
        self.provider = provider
        self._lock = threading.Lock()
        self._status: Optional[PermissionStatus] = None

    @property
    def status(self) -> Optional[PermissionStatus]:
        return self._status

    def request_permissions(self) -> PermissionStatus:
        """Ask the provider once; later calls return the remembered decision."""
        with self._lock:
            if self._status is None:
                self._status = PermissionStatus(
                    microphone_granted=bool(self.provider.request_microphone()),
                    speech_granted=bool(self.provider.request_speech_recognition()),
                )
                logger.info(
                    "permissions_resolved",
                    extra={
                        "microphone_granted": self._status.microphone_granted,
                        "speech_granted": self._status.speech_granted,
                    },
                )
            return self._status

    def require(self) -> PermissionStatus:
        status = self.request_permissions()
        missing = []
        if not status.microphone_granted:
            missing.append("microphone")
        if not status.speech_granted:
            missing.append("speech recognition")
        if missing:
            raise PermissionDenied(f"Permission denied: {', '.join(missing)}")
        return status
