"""One-shot, interruptible speech playback."""

import asyncio
import logging
from typing import Optional

from voice_relay.core.exceptions import UnsupportedCapability
from voice_relay.widget.interfaces import SpeechSynthesizer
from voice_relay.widget.models import Voice

logger = logging.getLogger(__name__)


class SpeechPlayback:
    """
    Plays at most one utterance at a time. Starting a new one cancels
    whatever is still speaking.
    """

    def __init__(
        self,
        synthesizer: Optional[SpeechSynthesizer],
        voice_name: str = "",
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> None:
        self._synthesizer = synthesizer
        self.voice_name = voice_name
        self.rate = rate
        self.pitch = pitch
        self.volume = volume
        self._task: Optional[asyncio.Task] = None

    @property
    def available(self) -> bool:
        return self._synthesizer is not None

    @property
    def speaking(self) -> bool:
        return self._task is not None and not self._task.done()

    def select_voice(self, name: Optional[str] = None) -> Optional[Voice]:
        """Exact-name lookup; None means the platform default voice."""
        name = self.voice_name if name is None else name
        if not name or self._synthesizer is None:
            return None
        for voice in self._synthesizer.voices():
            if voice.name == name:
                return voice
        logger.debug(f"Voice {name!r} not found, using platform default")
        return None

    def speak(self, text: str) -> Optional[asyncio.Task]:
        """Cancel current playback and start speaking `text` in the background."""
        if self._synthesizer is None:
            return None
        self.cancel()
        if not text or not text.strip():
            return None

        try:
            voice = self.select_voice()
        except UnsupportedCapability as e:
            logger.error(f"Speech playback unavailable: {e.message}")
            return None
        self._task = asyncio.create_task(
            self._synthesizer.speak(
                text,
                voice=voice,
                rate=self.rate,
                pitch=self.pitch,
                volume=self.volume,
            )
        )
        self._task.add_done_callback(_log_failure)
        return self._task

    def cancel(self) -> None:
        if self._synthesizer is None:
            return
        self._synthesizer.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def wait(self) -> None:
        """Wait for the current utterance, if any, to finish."""
        task = self._task
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception:
            # Already logged by the done callback
            pass


def _log_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error(f"Speech playback failed: {exc}")
