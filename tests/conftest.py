from __future__ import annotations

import asyncio
from typing import Callable, List, Optional

import httpx
import pytest

from voice_relay.config import Settings
from voice_relay.widget.models import RecognitionEvent, Voice


@pytest.fixture
def settings() -> Settings:
    return Settings(OPENAI_API_KEY="test-key", _env_file=None)


class FakeRecognizer:
    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.stop_calls = 0
        self._queue: Optional[asyncio.Queue] = None

    def is_available(self) -> bool:
        return self.available

    def events(self):
        self._queue = asyncio.Queue()
        return self._drain(self._queue)

    async def _drain(self, queue: asyncio.Queue):
        while True:
            event = await queue.get()
            if event is None:
                return
            yield event

    def stop(self) -> None:
        self.stop_calls += 1
        if self._queue is not None:
            self._queue.put_nowait(None)
            self._queue = None

    def end(self) -> None:
        """Close the stream from the recognizer side, as when the engine times out."""
        assert self._queue is not None
        self._queue.put_nowait(None)

    def emit(self, event: RecognitionEvent) -> None:
        assert self._queue is not None
        self._queue.put_nowait(event)

    def interim(self, text: str) -> None:
        self.emit(RecognitionEvent(text=text))

    def final(self, text: str) -> None:
        self.emit(RecognitionEvent(text=text, is_final=True))


class FakeSynthesizer:
    def __init__(self, voices: Optional[List[Voice]] = None, hold: bool = False) -> None:
        self._voices = voices or []
        self.spoken: list[tuple[str, Optional[Voice]]] = []
        self.cancel_calls = 0
        self._hold = hold
        self._release = asyncio.Event() if hold else None

    def voices(self) -> List[Voice]:
        return list(self._voices)

    async def speak(self, text, voice=None, rate=1.0, pitch=1.0, volume=1.0) -> None:  # noqa: ANN001
        self.spoken.append((text, voice))
        if self._release is not None:
            await self._release.wait()

    def cancel(self) -> None:
        self.cancel_calls += 1

    @property
    def texts(self) -> list[str]:
        return [text for text, _ in self.spoken]


def mock_client(handler: Callable) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)
