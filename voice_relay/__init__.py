"""
Voice Relay
===========
Voice-activated chat assistant and the backend that relays its messages to a
hosted language model.

Features:
- Listening session with interim transcripts and one request per utterance
- Spoken replies through the platform speech synthesizer
- Single-route relay to an OpenAI-compatible chat completions API

Tech Stack:
- FastAPI (relay backend)
- httpx (provider and relay calls)
- pydantic-settings (configuration)
- pyttsx3 (offline speech playback)
"""

__version__ = "1.0.0"
