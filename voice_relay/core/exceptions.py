"""
Core exceptions for the Voice Relay.
Custom exception classes for structured error handling.
"""

from typing import Optional, Dict, Any


class VoiceRelayException(Exception):
    """Base exception for Voice Relay errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "VOICE_RELAY_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# =========================
# Configuration Exceptions
# =========================

class ConfigurationException(VoiceRelayException):
    """Base exception for configuration errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="CONFIGURATION_ERROR",
            status_code=500,
            details=details
        )


class MissingCredentialException(ConfigurationException):
    """Raised at startup when the provider credential is not configured."""

    def __init__(self, variable: str):
        super().__init__(
            message=f"{variable} environment variable is not set",
            details={"variable": variable}
        )


# =========================
# Request Exceptions
# =========================

class InvalidRequestException(VoiceRelayException):
    """Raised when a request body cannot be used."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="INVALID_REQUEST",
            status_code=400,
            details=details
        )


class MessageRequiredException(InvalidRequestException):
    """Raised when a chat request carries no message."""

    def __init__(self):
        super().__init__(message="Message is required")


# =========================
# LLM Exceptions
# =========================

class LLMException(VoiceRelayException):
    """Base exception for LLM errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="LLM_ERROR",
            status_code=status_code,
            details=details
        )


class LLMAPIException(LLMException):
    """Raised when the provider answers with a non-success status."""

    def __init__(self, api_error: str, status_code: int = 500):
        super().__init__(
            message="Failed to get response from the language model",
            status_code=status_code,
            details={"api_error": api_error, "api_status_code": status_code}
        )


class LLMTimeoutException(LLMException):
    """Raised when the provider does not answer in time."""

    def __init__(self, timeout_seconds: float):
        super().__init__(
            message=f"LLM processing timed out after {timeout_seconds} seconds",
            status_code=504,
            details={"timeout_seconds": timeout_seconds}
        )


class LLMConnectionException(LLMException):
    """Raised when the provider cannot be reached."""

    def __init__(self, error: str):
        super().__init__(
            message="Could not reach the language model provider",
            status_code=502,
            details={"error": error}
        )


# =========================
# Widget Exceptions
# =========================

class UnsupportedCapability(VoiceRelayException):
    """Raised when the platform has no speech recognition or synthesis."""

    def __init__(self, capability: str, reason: Optional[str] = None):
        message = f"{capability} is not supported on this platform"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message=message,
            error_code="UNSUPPORTED_CAPABILITY",
            details={"capability": capability}
        )


class RecognitionError(VoiceRelayException):
    """Raised when the speech recognition stream faults."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Speech recognition error: {error}",
            error_code="RECOGNITION_ERROR",
            details={"error": error}
        )


class SynthesisError(VoiceRelayException):
    """Raised when speech playback fails."""

    def __init__(self, error: str):
        super().__init__(
            message=f"Speech synthesis error: {error}",
            error_code="SYNTHESIS_ERROR",
            details={"error": error}
        )


class RelayError(VoiceRelayException):
    """Raised when the relay endpoint answers with a non-success status."""

    def __init__(self, status_code: int, error: Optional[str] = None):
        super().__init__(
            message=f"API returned status {status_code}",
            error_code="RELAY_ERROR",
            status_code=status_code,
            details={"error": error or "Unknown error"}
        )


class NetworkError(VoiceRelayException):
    """Raised when the relay endpoint cannot be reached."""

    def __init__(self, error: str):
        super().__init__(
            message=error,
            error_code="NETWORK_ERROR",
            status_code=503,
            details={"error": error}
        )
