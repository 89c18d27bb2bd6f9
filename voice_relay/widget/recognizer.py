"""In-process speech recognizer fed by whoever produces transcripts."""

import asyncio
import logging
from typing import AsyncIterator, Optional

from voice_relay.widget.models import RecognitionEvent

logger = logging.getLogger(__name__)


class QueueRecognizer:
    """
    Recognizer whose results are pushed in by the host: a console, a websocket
    bridge to a browser, or a test. Each call to `events()` opens a fresh
    subscription; `stop()` ends it.
    """

    def __init__(self) -> None:
        self._queue: Optional[asyncio.Queue] = None

    def is_available(self) -> bool:
        return True

    @property
    def active(self) -> bool:
        return self._queue is not None

    def events(self) -> AsyncIterator[RecognitionEvent]:
        queue: asyncio.Queue = asyncio.Queue()
        self._queue = queue
        return self._drain(queue)

    async def _drain(self, queue: asyncio.Queue) -> AsyncIterator[RecognitionEvent]:
        while True:
            event = await queue.get()
            if event is None:
                return
            yield event

    def push_interim(self, text: str) -> None:
        self._push(RecognitionEvent(text=text, is_final=False))

    def push_final(self, text: str) -> None:
        self._push(RecognitionEvent(text=text, is_final=True))

    def push_error(self, error: str) -> None:
        self._push(RecognitionEvent(text="", error=error))

    def stop(self) -> None:
        if self._queue is None:
            return
        self._queue.put_nowait(None)
        self._queue = None

    def _push(self, event: RecognitionEvent) -> None:
        if self._queue is None:
            logger.debug(f"No active subscription, dropping {event!r}")
            return
        self._queue.put_nowait(event)
