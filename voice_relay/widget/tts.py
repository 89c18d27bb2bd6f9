"""
Offline speech synthesizer backed by pyttsx3.

pyttsx3 drives the platform engine (SAPI5, NSSpeechSynthesizer, eSpeak) and
blocks while speaking. Its engine refuses a second runAndWait() while one is
running, so every engine call goes through a single worker thread and a new
utterance only starts once the interrupted one has returned.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from voice_relay.core.exceptions import SynthesisError, UnsupportedCapability
from voice_relay.widget.models import Voice

logger = logging.getLogger(__name__)


class Pyttsx3Synthesizer:
    def __init__(self) -> None:
        self._engine = None
        self._base_rate = 200
        self._executor: Optional[ThreadPoolExecutor] = None
        # Bumped by cancel(); queued utterances from an older generation are skipped
        self._generation = 0

    def _get_engine(self):
        if self._engine is not None:
            return self._engine
        try:
            import pyttsx3
        except ImportError as e:
            raise UnsupportedCapability("Speech synthesis", "pyttsx3 is not installed") from e
        try:
            self._engine = pyttsx3.init()
        except (RuntimeError, OSError) as e:
            raise UnsupportedCapability("Speech synthesis", str(e)) from e
        self._base_rate = self._engine.getProperty("rate") or self._base_rate
        logger.info("pyttsx3 engine initialized")
        return self._engine

    def _worker(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pyttsx3")
        return self._executor

    def voices(self) -> List[Voice]:
        engine = self._get_engine()
        return [
            Voice(
                name=v.name,
                id=v.id,
                languages=[
                    lang.decode(errors="ignore") if isinstance(lang, bytes) else str(lang)
                    for lang in (v.languages or [])
                ],
            )
            for v in engine.getProperty("voices")
        ]

    async def speak(
        self,
        text: str,
        voice: Optional[Voice] = None,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
    ) -> None:
        # pyttsx3 has no pitch control
        engine = self._get_engine()
        generation = self._generation
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(
            self._worker(), self._say, engine, generation, text, voice, rate, volume
        )

    def _say(
        self,
        engine,
        generation: int,
        text: str,
        voice: Optional[Voice],
        rate: float,
        volume: float,
    ) -> None:
        if generation != self._generation:
            logger.debug(f"Skipping cancelled utterance: {text!r}")
            return
        try:
            if voice is not None:
                engine.setProperty("voice", voice.id)
            engine.setProperty("rate", int(self._base_rate * rate))
            engine.setProperty("volume", volume)
            engine.say(text)
            engine.runAndWait()
        except RuntimeError as e:
            raise SynthesisError(str(e)) from e

    def cancel(self) -> None:
        self._generation += 1
        if self._engine is not None:
            self._engine.stop()

    def close(self) -> None:
        self.cancel()
        if self._executor is not None:
            self._executor.shutdown(wait=False)
            self._executor = None
