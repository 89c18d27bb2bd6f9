"""Core module initialization."""

from voice_relay.core.exceptions import (
    VoiceRelayException,
    ConfigurationException,
    MissingCredentialException,
    InvalidRequestException,
    MessageRequiredException,
    LLMException,
    UnsupportedCapability,
    RecognitionError,
    SynthesisError,
    RelayError,
    NetworkError
)

__all__ = [
    "VoiceRelayException",
    "ConfigurationException",
    "MissingCredentialException",
    "InvalidRequestException",
    "MessageRequiredException",
    "LLMException",
    "UnsupportedCapability",
    "RecognitionError",
    "SynthesisError",
    "RelayError",
    "NetworkError"
]
