"""State-machine based voice session orchestration."""

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional

import httpx

from voice_relay.config import WidgetConfig
from voice_relay.core.exceptions import (
    RecognitionError,
    UnsupportedCapability,
    VoiceRelayException,
)
from voice_relay.widget.interfaces import SpeechRecognizer, SpeechSynthesizer
from voice_relay.widget.models import RecognitionEvent, SessionState
from voice_relay.widget.playback import SpeechPlayback
from voice_relay.widget.relay import RelayClient, apology

logger = logging.getLogger(__name__)

StateCallback = Callable[[SessionState, SessionState], None]
TranscriptCallback = Callable[[str], None]
ErrorCallback = Callable[[VoiceRelayException], None]


class VoiceSession:
    """
    Owns the microphone for one widget: idle -> listening -> processing ->
    listening, back to idle on stop or on a recognition fault.

    Use as an async context manager to tie the recognizer to the widget's
    lifetime; the recognizer is released on every exit path.
    """

    def __init__(
        self,
        recognizer: Optional[SpeechRecognizer],
        relay: RelayClient,
        playback: SpeechPlayback,
        on_state_change: Optional[StateCallback] = None,
        on_transcript: Optional[TranscriptCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._recognizer = recognizer
        self._relay = relay
        self.playback = playback
        self._on_state_change = on_state_change
        self._on_transcript = on_transcript
        self._on_error = on_error

        self._state = SessionState.IDLE
        self._transcript = ""
        self._in_flight = False
        self._recognizer_active = False
        self._listen_task: Optional[asyncio.Task] = None
        self._reply_task: Optional[asyncio.Task] = None
        self._cancelled: List[asyncio.Task] = []

    @classmethod
    def from_config(
        cls,
        config: WidgetConfig,
        recognizer: Optional[SpeechRecognizer],
        synthesizer: Optional[SpeechSynthesizer],
        client: Optional[httpx.AsyncClient] = None,
        **callbacks,
    ) -> "VoiceSession":
        relay = RelayClient(config.api_endpoint, config.system_prompt, client=client)
        playback = SpeechPlayback(
            synthesizer,
            voice_name=config.voice_name,
            rate=config.speech_rate,
            pitch=config.speech_pitch,
            volume=config.speech_volume,
        )
        return cls(recognizer, relay, playback, **callbacks)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def start(self) -> None:
        if self._state != SessionState.IDLE:
            return
        if self._recognizer is None or not self._recognizer.is_available():
            exc = UnsupportedCapability("Speech recognition")
            logger.error(exc.message)
            self._emit_error(exc)
            raise exc

        self._in_flight = False
        self._set_transcript("")
        events = self._recognizer.events()
        self._recognizer_active = True
        self._transition(SessionState.LISTENING)
        self._listen_task = asyncio.create_task(self._consume(events))

    def stop(self) -> None:
        self._teardown()

    def toggle(self) -> None:
        if self._state == SessionState.IDLE:
            self.start()
        else:
            self.stop()

    async def close(self) -> None:
        """Stop listening, silence playback and release the relay client."""
        self._teardown()
        self.playback.cancel()
        pending, self._cancelled = self._cancelled, []
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        await self._relay.aclose()

    async def __aenter__(self) -> "VoiceSession":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _consume(self, events: AsyncIterator[RecognitionEvent]) -> None:
        try:
            async for event in events:
                if event.error:
                    raise RecognitionError(event.error)
                self._handle_event(event)
        except RecognitionError as exc:
            self._fail(exc)
            return
        except Exception as exc:
            self._fail(RecognitionError(str(exc) or type(exc).__name__))
            return
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

        # Stream ended on its own
        if self._state != SessionState.IDLE:
            logger.info("Recognition stream ended")
            self._teardown(from_listener=True)

    def _handle_event(self, event: RecognitionEvent) -> None:
        self._set_transcript(event.text)
        if not event.is_final:
            return

        if not event.text.strip():
            logger.debug("Ignoring empty final result")
            return
        if self._in_flight:
            logger.debug(f"Request in flight, dropping final result: {event.text!r}")
            return

        self._in_flight = True
        self._transition(SessionState.PROCESSING)
        self._reply_task = asyncio.create_task(self._reply(event.text))

    async def _reply(self, utterance: str) -> None:
        task = asyncio.current_task()
        try:
            reply = await self._relay.ask(utterance)
        except Exception as exc:
            logger.exception(f"Relay call failed unexpectedly: {exc}")
            reply = apology(str(exc) or type(exc).__name__)
        finally:
            # A cancelled reply from an earlier session must not touch this one
            if self._reply_task is task:
                self._in_flight = False
                self._reply_task = None

        self._set_transcript(f"{self._transcript}\n\nAI: {reply}")
        self.playback.speak(reply)
        if self._state == SessionState.PROCESSING:
            self._transition(SessionState.LISTENING)

    def _fail(self, exc: RecognitionError) -> None:
        logger.error(exc.message)
        self._teardown(from_listener=True)
        self._emit_error(exc)

    def _teardown(self, from_listener: bool = False) -> None:
        listen_task, self._listen_task = self._listen_task, None
        if listen_task is not None and not from_listener and not listen_task.done():
            listen_task.cancel()
            self._cancelled.append(listen_task)

        reply_task, self._reply_task = self._reply_task, None
        if reply_task is not None and not reply_task.done():
            reply_task.cancel()
            self._cancelled.append(reply_task)
        self._in_flight = False

        self._release_recognizer()
        self._transition(SessionState.IDLE)

    def _release_recognizer(self) -> None:
        if not self._recognizer_active:
            return
        self._recognizer_active = False
        try:
            self._recognizer.stop()
        except Exception as exc:
            logger.warning(f"Recognizer stop failed: {exc}")

    def _set_transcript(self, text: str) -> None:
        self._transcript = text
        if self._on_transcript:
            self._on_transcript(text)

    def _emit_error(self, exc: VoiceRelayException) -> None:
        if self._on_error:
            self._on_error(exc)

    def _transition(self, to_state: SessionState) -> None:
        from_state = self._state
        if from_state == to_state:
            return
        self._state = to_state
        logger.debug(f"Session {from_state.value} -> {to_state.value}")
        if self._on_state_change:
            self._on_state_change(from_state, to_state)
