"""Voice widget: session controller, relay client and speech playback."""

from voice_relay.widget.models import RecognitionEvent, SessionState, Voice
from voice_relay.widget.playback import SpeechPlayback
from voice_relay.widget.recognizer import QueueRecognizer
from voice_relay.widget.relay import RelayClient, normalize_endpoint
from voice_relay.widget.session import VoiceSession

__all__ = [
    "RecognitionEvent",
    "SessionState",
    "Voice",
    "SpeechPlayback",
    "QueueRecognizer",
    "RelayClient",
    "normalize_endpoint",
    "VoiceSession"
]
