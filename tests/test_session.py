from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from conftest import FakeRecognizer, FakeSynthesizer, mock_client, wait_until
from voice_relay.config import WidgetConfig
from voice_relay.core.exceptions import RecognitionError, UnsupportedCapability
from voice_relay.widget.models import RecognitionEvent, SessionState
from voice_relay.widget.playback import SpeechPlayback
from voice_relay.widget.relay import RelayClient
from voice_relay.widget.session import VoiceSession


class Harness:
    def __init__(self, handler, recognizer: FakeRecognizer | None = None, on_transcript=None) -> None:
        self.recognizer = recognizer if recognizer is not None else FakeRecognizer()
        self.synth = FakeSynthesizer()
        self.transitions: list[tuple[SessionState, SessionState]] = []
        self.errors: list[Exception] = []
        self.session = VoiceSession(
            self.recognizer,
            RelayClient("http://localhost:3000/api/chat", client=mock_client(handler)),
            SpeechPlayback(self.synth),
            on_state_change=lambda f, t: self.transitions.append((f, t)),
            on_transcript=on_transcript,
            on_error=self.errors.append,
        )


def reply_with(text: str, calls: list):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(json.loads(request.content))
        return httpx.Response(200, json={"response": text})

    return handler


def test_final_utterance_is_relayed_displayed_and_spoken() -> None:
    async def scenario() -> None:
        calls: list[dict] = []
        h = Harness(reply_with("Hi there", calls))

        h.session.start()
        h.recognizer.final("hello")
        await wait_until(lambda: h.session.transcript.endswith("AI: Hi there"))
        await h.session.playback.wait()

        assert [c["message"] for c in calls] == ["hello"]
        assert h.session.transcript == "hello\n\nAI: Hi there"
        assert h.synth.texts == ["Hi there"]
        assert h.session.state == SessionState.LISTENING
        assert h.transitions == [
            (SessionState.IDLE, SessionState.LISTENING),
            (SessionState.LISTENING, SessionState.PROCESSING),
            (SessionState.PROCESSING, SessionState.LISTENING),
        ]
        await h.session.close()

    asyncio.run(scenario())


def test_second_final_while_in_flight_is_dropped() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append(json.loads(request.content)["message"])
            await gate.wait()
            return httpx.Response(200, json={"response": "first answer"})

        h = Harness(handler)
        h.session.start()
        h.recognizer.final("first question")
        await wait_until(lambda: len(calls) == 1)
        assert h.session.in_flight is True
        assert h.session.state == SessionState.PROCESSING

        h.recognizer.final("first question and more")
        await asyncio.sleep(0.05)
        assert calls == ["first question"]

        gate.set()
        await wait_until(lambda: not h.session.in_flight)
        await h.session.playback.wait()
        assert calls == ["first question"]
        assert h.synth.texts == ["first answer"]

        # The latch is released once the reply lands
        h.recognizer.final("second question")
        await wait_until(lambda: len(calls) == 2)
        await h.session.close()

    asyncio.run(scenario())


def test_interim_results_only_update_transcript() -> None:
    async def scenario() -> None:
        calls: list[dict] = []
        shown: list[str] = []
        h = Harness(reply_with("unused", calls), on_transcript=shown.append)

        h.session.start()
        h.recognizer.interim("hel")
        h.recognizer.interim("hello wor")
        await wait_until(lambda: h.session.transcript == "hello wor")

        assert calls == []
        assert shown == ["", "hel", "hello wor"]
        assert h.session.state == SessionState.LISTENING
        await h.session.close()

    asyncio.run(scenario())


def test_blank_final_never_calls_relay() -> None:
    async def scenario() -> None:
        calls: list[dict] = []
        h = Harness(reply_with("unused", calls))

        h.session.start()
        h.recognizer.final("   ")
        h.recognizer.final("")
        await asyncio.sleep(0.05)

        assert calls == []
        assert h.synth.spoken == []
        assert h.session.state == SessionState.LISTENING
        await h.session.close()

    asyncio.run(scenario())


def test_relay_500_becomes_spoken_apology_and_session_continues() -> None:
    async def scenario() -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": "Internal server error"})

        h = Harness(handler)
        h.session.start()
        h.recognizer.final("hello")
        await wait_until(lambda: "AI: " in h.session.transcript)
        await h.session.playback.wait()

        assert "500" in h.session.transcript
        assert h.session.transcript.startswith("hello\n\nAI: Sorry")
        assert len(h.synth.texts) == 1 and "500" in h.synth.texts[0]
        assert h.session.state == SessionState.LISTENING
        assert h.errors == []
        await h.session.close()

    asyncio.run(scenario())


def test_network_failure_becomes_apology() -> None:
    async def scenario() -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        h = Harness(handler)
        h.session.start()
        h.recognizer.final("hello")
        await wait_until(lambda: "AI: " in h.session.transcript)

        assert "trouble connecting" in h.session.transcript
        assert "connection refused" in h.session.transcript
        assert h.session.state == SessionState.LISTENING
        await h.session.close()

    asyncio.run(scenario())


def test_start_without_recognizer_raises_and_stays_idle() -> None:
    async def scenario() -> None:
        errors: list[Exception] = []
        session = VoiceSession(
            None,
            RelayClient("localhost:3000/api/chat"),
            SpeechPlayback(None),
            on_error=errors.append,
        )

        with pytest.raises(UnsupportedCapability):
            session.start()

        assert session.state == SessionState.IDLE
        assert len(errors) == 1 and isinstance(errors[0], UnsupportedCapability)
        await session.close()

    asyncio.run(scenario())


def test_start_with_unavailable_recognizer_raises() -> None:
    async def scenario() -> None:
        recognizer = FakeRecognizer(available=False)
        h = Harness(reply_with("unused", []), recognizer=recognizer)

        with pytest.raises(UnsupportedCapability):
            h.session.start()

        assert h.session.state == SessionState.IDLE
        assert recognizer.stop_calls == 0
        await h.session.close()

    asyncio.run(scenario())


def test_stop_is_idempotent_and_stops_capture_once() -> None:
    async def scenario() -> None:
        h = Harness(reply_with("unused", []))

        h.session.start()
        h.session.start()  # no-op while listening
        await asyncio.sleep(0)
        h.session.stop()
        h.session.stop()

        assert h.session.state == SessionState.IDLE
        assert h.recognizer.stop_calls == 1
        assert h.transitions == [
            (SessionState.IDLE, SessionState.LISTENING),
            (SessionState.LISTENING, SessionState.IDLE),
        ]
        await h.session.close()
        assert h.recognizer.stop_calls == 1

    asyncio.run(scenario())


def test_stop_while_processing_discards_reply() -> None:
    async def scenario() -> None:
        gate = asyncio.Event()
        calls: list[str] = []

        async def handler(request: httpx.Request) -> httpx.Response:
            calls.append("called")
            await gate.wait()
            return httpx.Response(200, json={"response": "too late"})

        h = Harness(handler)
        h.session.start()
        h.recognizer.final("hello")
        await wait_until(lambda: len(calls) == 1)

        h.session.stop()
        gate.set()
        await h.session.close()

        assert h.session.state == SessionState.IDLE
        assert h.session.in_flight is False
        assert "too late" not in h.session.transcript
        assert h.synth.spoken == []

    asyncio.run(scenario())


def test_recognition_error_goes_idle_and_surfaces() -> None:
    async def scenario() -> None:
        h = Harness(reply_with("unused", []))

        h.session.start()
        h.recognizer.emit(RecognitionEvent(text="", error="network"))
        await wait_until(lambda: h.session.state == SessionState.IDLE)

        assert h.recognizer.stop_calls == 1
        assert len(h.errors) == 1
        assert isinstance(h.errors[0], RecognitionError)
        assert "network" in h.errors[0].message

        # Not retried: the session stays down until started again
        await asyncio.sleep(0.05)
        assert h.session.state == SessionState.IDLE
        h.session.start()
        assert h.session.state == SessionState.LISTENING
        await h.session.close()

    asyncio.run(scenario())


def test_restart_clears_transcript() -> None:
    async def scenario() -> None:
        h = Harness(reply_with("Hi there", []))

        h.session.start()
        h.recognizer.final("hello")
        await wait_until(lambda: h.session.transcript.endswith("AI: Hi there"))
        h.session.stop()
        assert h.session.transcript.endswith("AI: Hi there")

        h.session.start()
        assert h.session.transcript == ""
        await h.session.close()

    asyncio.run(scenario())


def test_context_manager_releases_recognizer() -> None:
    async def scenario() -> None:
        recognizer = FakeRecognizer()
        synth = FakeSynthesizer()
        config = WidgetConfig(api_endpoint="http://localhost:3000/api/chat")

        async with VoiceSession.from_config(
            config, recognizer, synth, client=mock_client(reply_with("ok", []))
        ) as session:
            session.toggle()
            assert session.state == SessionState.LISTENING

        assert session.state == SessionState.IDLE
        assert recognizer.stop_calls == 1

    asyncio.run(scenario())


def test_context_manager_releases_recognizer_on_error() -> None:
    async def scenario() -> None:
        recognizer = FakeRecognizer()
        session = VoiceSession.from_config(
            WidgetConfig(), recognizer, None, client=mock_client(reply_with("ok", []))
        )

        with pytest.raises(RuntimeError):
            async with session:
                session.start()
                raise RuntimeError("widget unmounted mid-session")

        assert session.state == SessionState.IDLE
        assert recognizer.stop_calls == 1

    asyncio.run(scenario())


class ExplodingRelay:
    async def ask(self, message: str) -> str:
        raise RuntimeError("relay client bug")

    async def aclose(self) -> None:
        pass


def test_unexpected_relay_failure_still_releases_latch() -> None:
    async def scenario() -> None:
        recognizer = FakeRecognizer()
        synth = FakeSynthesizer()
        session = VoiceSession(recognizer, ExplodingRelay(), SpeechPlayback(synth))

        session.start()
        recognizer.final("hello")
        await wait_until(lambda: "AI: " in session.transcript)
        await session.playback.wait()

        assert session.transcript.startswith("hello\n\nAI: Sorry")
        assert "relay client bug" in session.transcript
        assert session.in_flight is False
        assert session.state == SessionState.LISTENING
        await session.close()

    asyncio.run(scenario())


def test_invalid_url_from_transport_does_not_wedge_session() -> None:
    async def scenario() -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.InvalidURL("Invalid port: 'abc'")

        h = Harness(handler)
        h.session.start()
        h.recognizer.final("hello")
        await wait_until(lambda: "AI: " in h.session.transcript)

        assert "Invalid port" in h.session.transcript
        assert h.session.in_flight is False
        assert h.session.state == SessionState.LISTENING
        await h.session.close()

    asyncio.run(scenario())


class BrokenRecognizer(FakeRecognizer):
    def events(self):
        return self._broken()

    async def _broken(self):
        raise OSError("microphone unplugged")
        yield  # pragma: no cover


def test_plain_exception_from_stream_is_wrapped_as_recognition_error() -> None:
    async def scenario() -> None:
        recognizer = BrokenRecognizer()
        h = Harness(reply_with("unused", []), recognizer=recognizer)

        h.session.start()
        await wait_until(lambda: h.session.state == SessionState.IDLE)

        assert recognizer.stop_calls == 1
        assert len(h.errors) == 1
        assert isinstance(h.errors[0], RecognitionError)
        assert "microphone unplugged" in h.errors[0].message
        await h.session.close()

    asyncio.run(scenario())


def test_stream_ending_on_its_own_goes_idle() -> None:
    async def scenario() -> None:
        h = Harness(reply_with("unused", []))

        h.session.start()
        h.recognizer.end()
        await wait_until(lambda: h.session.state == SessionState.IDLE)

        assert h.recognizer.stop_calls == 1
        assert h.errors == []
        await h.session.close()
        assert h.recognizer.stop_calls == 1

    asyncio.run(scenario())
