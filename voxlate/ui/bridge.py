from __future__ import annotations

import queue
from typing import Any, Optional


class EventBus:
    """
    Thread-safe handoff from worker threads -> the pipeline's owner thread.
    Workers push events; the owner drains them (non-blocking or with a timeout).

    Droppable events (partial transcripts) are refused once ``maxsize`` events
    are waiting so a slow owner never falls behind; everything else is kept.
    """

    def __init__(self, maxsize: int = 100):
        self.maxsize = max(1, int(maxsize))
        self.q: "queue.Queue[Any]" = queue.Queue()
        self.dropped = 0

    def push(self, item: Any, *, droppable: bool = False) -> bool:
        if droppable and self.q.qsize() >= self.maxsize:
            self.dropped += 1
            return False
        self.q.put_nowait(item)
        return True

    def pop(self, timeout: Optional[float] = None) -> Optional[Any]:
        try:
            if timeout is None:
                return self.q.get_nowait()
            return self.q.get(timeout=timeout)
        except queue.Empty:
            return None

    def __len__(self) -> int:
        return self.q.qsize()
