"""
Error kinds for the streaming session pipeline.

Each carries the HTTP status it maps to; main.py renders them as {"error": message}.
"""

from typing import Optional


class StreamingError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class InvalidArgument(StreamingError):
    status_code = 400


class NotFound(StreamingError):
    status_code = 404


class InvalidState(StreamingError):
    status_code = 409


class PayloadTooLarge(StreamingError):
    status_code = 413


class FinalizationFailed(StreamingError):
    """I/O error while assembling the WAV container; the session is destroyed."""
    status_code = 500


class ChunkWriteFailed(StreamingError):
    status_code = 500


class RecognitionFailed(StreamingError):
    """Speech service canceled the recognition (or the call itself failed)."""
    status_code = 502


class SynthesisFailed(StreamingError):
    status_code = 502
