"""Data models shared by the voice widget components."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class SessionState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"


@dataclass(frozen=True)
class RecognitionEvent:
    """One result from the recognizer. `text` is the whole utterance so far."""
    text: str
    is_final: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class Voice:
    """A synthesizer voice as reported by the platform."""
    name: str
    id: str = ""
    languages: List[str] = field(default_factory=list)
