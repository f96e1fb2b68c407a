from __future__ import annotations

import logging
import threading
from enum import Enum

logger = logging.getLogger(__name__)


class AudioRoute(str, Enum):
    IDLE = "idle"
    CAPTURE = "capture"
    PLAYBACK = "playback"


class AudioRouteController:
    """
    Shared audio-route state. The capture session asks for CAPTURE, speech
    output asks for PLAYBACK; the last request wins, like a device-wide
    audio session category.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._route = AudioRoute.IDLE

    @property
    def route(self) -> AudioRoute:
        with self._lock:
            return self._route

    def _switch(self, route: AudioRoute) -> None:
        with self._lock:
            previous = self._route
            self._route = route
        if previous != route:
            logger.debug("audio_route_switch", extra={"from_route": previous.value, "to_route": route.value})

    def enter_capture(self) -> None:
        self._switch(AudioRoute.CAPTURE)

    def enter_playback(self) -> None:
        self._switch(AudioRoute.PLAYBACK)

    def release(self, route: AudioRoute | None = None) -> None:
        # only release if nobody switched the route away in the meantime
        with self._lock:
            if route is not None and self._route != route:
                return
        self._switch(AudioRoute.IDLE)
