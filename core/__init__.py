"""
External speech service collaborators.
"""

from core.speech_service import (
    AzureSpeechClient,
    Canceled,
    Final,
    Interim,
    NoMatch,
    RecognitionResult,
    SpeechClient,
    language_code,
)

__all__ = [
    "AzureSpeechClient",
    "Canceled",
    "Final",
    "Interim",
    "NoMatch",
    "RecognitionResult",
    "SpeechClient",
    "language_code",
]
