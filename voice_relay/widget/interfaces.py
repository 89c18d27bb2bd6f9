"""Protocol interfaces for the platform speech capabilities."""

from typing import AsyncIterator, List, Optional, Protocol

from voice_relay.widget.models import RecognitionEvent, Voice


class SpeechRecognizer(Protocol):
    def is_available(self) -> bool: ...

    def events(self) -> AsyncIterator[RecognitionEvent]: ...

    def stop(self) -> None: ...


class SpeechSynthesizer(Protocol):
    def voices(self) -> List[Voice]: ...

    async def speak(
        self,
        text: str,
        voice: Optional[Voice] = None,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> None: ...

    def cancel(self) -> None: ...
