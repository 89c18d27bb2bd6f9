"""
Command line entry point.

    voice-relay serve            run the relay backend
    voice-relay chat             console front end for the voice session
    voice-relay voices           list synthesizer voices
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import httpx

from voice_relay.config import WidgetConfig, load_settings
from voice_relay.core.exceptions import (
    MissingCredentialException,
    UnsupportedCapability,
    VoiceRelayException,
)
from voice_relay.widget.models import SessionState
from voice_relay.widget.recognizer import QueueRecognizer
from voice_relay.widget.session import VoiceSession
from voice_relay.widget.tts import Pyttsx3Synthesizer

logger = logging.getLogger(__name__)


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    try:
        settings = load_settings()
    except MissingCredentialException as e:
        logging.basicConfig(level=logging.INFO)
        logger.error(f"{e.message}. Create a .env file with: OPENAI_API_KEY=your-key-here")
        return 1

    uvicorn.run(
        "voice_relay.main:create_app",
        factory=True,
        host=args.host or settings.HOST,
        port=args.port or settings.PORT,
        reload=args.reload,
        log_level=settings.LOG_LEVEL.lower(),
    )
    return 0


async def _chat(args: argparse.Namespace, client: Optional[httpx.AsyncClient] = None) -> int:
    overrides = {}
    if args.endpoint:
        overrides["api_endpoint"] = args.endpoint
    if args.voice:
        overrides["voice_name"] = args.voice
    config = WidgetConfig(**overrides)

    synthesizer = None if args.no_speech else Pyttsx3Synthesizer()
    recognizer = QueueRecognizer()
    loop = asyncio.get_running_loop()

    def show_transcript(text: str) -> None:
        if "\n\nAI: " in text:
            print("AI: " + text.split("\n\nAI: ", 1)[1])

    def show_error(exc: VoiceRelayException) -> None:
        print(f"error: {exc.message}", file=sys.stderr)

    try:
        session = VoiceSession.from_config(
            config,
            recognizer,
            synthesizer,
            client=client,
            on_transcript=show_transcript,
            on_error=show_error,
        )
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    async with session:
        session.start()
        print("Type to talk, empty line to quit.")
        while session.state != SessionState.IDLE:
            line = await loop.run_in_executor(None, sys.stdin.readline)
            if not line.strip():
                break
            recognizer.push_final(line.strip())
            # Let the reply land before prompting again
            await asyncio.sleep(0.05)
            while session.in_flight:
                await asyncio.sleep(0.05)
        await session.playback.wait()
    if synthesizer is not None:
        synthesizer.close()
    return 0


def chat(args: argparse.Namespace) -> int:
    return asyncio.run(_chat(args))


def voices(args: argparse.Namespace) -> int:
    try:
        found = Pyttsx3Synthesizer().voices()
    except UnsupportedCapability as e:
        print(e.message, file=sys.stderr)
        return 1
    for voice in found:
        langs = ", ".join(voice.languages)
        print(f"{voice.name}" + (f" ({langs})" if langs else ""))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="voice-relay", description="Voice chat relay")
    sub = parser.add_subparsers(dest="command", required=True)

    p_serve = sub.add_parser("serve", help="run the relay backend")
    p_serve.add_argument("--host", default=None)
    p_serve.add_argument("--port", type=int, default=None)
    p_serve.add_argument("--reload", action="store_true")
    p_serve.set_defaults(func=serve)

    p_chat = sub.add_parser("chat", help="talk to the relay from the console")
    p_chat.add_argument("--endpoint", default=None, help="relay URL, e.g. http://localhost:3000/api/chat")
    p_chat.add_argument("--voice", default=None, help="exact synthesizer voice name")
    p_chat.add_argument("--no-speech", action="store_true", help="print replies without speaking")
    p_chat.set_defaults(func=chat)

    p_voices = sub.add_parser("voices", help="list synthesizer voices")
    p_voices.set_defaults(func=voices)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
