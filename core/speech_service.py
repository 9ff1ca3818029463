"""
External speech service: recognition + translation, and speech synthesis.

Recognition is exposed as an async iterator of typed results so callers never see
SDK callbacks:

    Interim(text, translation)*  then exactly one of  Final | NoMatch | Canceled

AzureSpeechClient implements it on top of azure-cognitiveservices-speech. SDK
callbacks arrive on SDK threads and are marshalled onto the event loop.
"""

import asyncio
import io
import logging
import wave
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator, Optional, Union

from streaming.errors import RecognitionFailed, SynthesisFailed

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Interim:
    text: str
    translation: str


@dataclass(frozen=True)
class Final:
    text: str
    translation: str


@dataclass(frozen=True)
class NoMatch:
    pass


@dataclass(frozen=True)
class Canceled:
    reason: str
    details: str = ""

    @property
    def message(self) -> str:
        return self.details or f"Recognition canceled: {self.reason}"


RecognitionResult = Union[Interim, Final, NoMatch, Canceled]


def language_code(locale: str) -> str:
    """Translation lookup key for a locale tag: "ar-SA" -> "ar"."""
    return locale.split("-")[0]


class SpeechClient(ABC):
    """Contract the orchestrator relies on."""

    @abstractmethod
    def recognize_and_translate(
        self,
        wav_bytes: bytes,
        source_language: str,
        target_language: str,
    ) -> AsyncIterator[RecognitionResult]:
        """Yield zero or more Interim results, then one terminal Final/NoMatch/Canceled."""

    @abstractmethod
    async def synthesize(self, text: str, target_language: str, voice_name: Optional[str] = None) -> bytes:
        """Return synthesized audio bytes; raise SynthesisFailed on failure."""


_DONE = object()


class AzureSpeechClient(SpeechClient):
    """Azure Cognitive Services speech translation + synthesis."""

    def __init__(self, speech_key: str, region: str, voice_name: Optional[str] = None):
        self.speech_key = speech_key
        self.region = region
        self.voice_name = voice_name

    def _check_credentials(self, error_cls) -> None:
        if not self.speech_key or not self.region:
            raise error_cls("SPEECH_KEY and SPEECH_REGION must be configured")

    def _build_recognizer(self, wav_bytes: bytes, source_language: str, target_language: str):
        import azure.cognitiveservices.speech as speechsdk

        translation_config = speechsdk.translation.SpeechTranslationConfig(
            subscription=self.speech_key,
            region=self.region,
        )
        translation_config.speech_recognition_language = source_language
        translation_config.add_target_language(language_code(target_language))

        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            stream_format = speechsdk.audio.AudioStreamFormat(
                samples_per_second=wf.getframerate(),
                bits_per_sample=wf.getsampwidth() * 8,
                channels=wf.getnchannels(),
            )
            frames = wf.readframes(wf.getnframes())

        push_stream = speechsdk.audio.PushAudioInputStream(stream_format=stream_format)
        push_stream.write(frames)
        push_stream.close()
        audio_config = speechsdk.audio.AudioConfig(stream=push_stream)
        return speechsdk.translation.TranslationRecognizer(
            translation_config=translation_config,
            audio_config=audio_config,
        )

    async def recognize_and_translate(
        self,
        wav_bytes: bytes,
        source_language: str,
        target_language: str,
    ) -> AsyncIterator[RecognitionResult]:
        import azure.cognitiveservices.speech as speechsdk

        self._check_credentials(RecognitionFailed)
        code = language_code(target_language)
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()

        try:
            recognizer = self._build_recognizer(wav_bytes, source_language, target_language)
        except (wave.Error, EOFError) as e:
            raise RecognitionFailed("Finalized audio could not be read", details=str(e)) from e

        def on_recognizing(evt) -> None:
            result = evt.result
            if result.reason == speechsdk.ResultReason.TranslatingSpeech:
                item = Interim(result.text, result.translations.get(code, ""))
                loop.call_soon_threadsafe(queue.put_nowait, item)

        recognizer.recognizing.connect(on_recognizing)

        # Interim callbacks are scheduled before the completion callback, so FIFO order holds.
        future = recognizer.recognize_once_async()
        done = loop.run_in_executor(None, future.get)
        done.add_done_callback(lambda _: queue.put_nowait(_DONE))

        while True:
            item = await queue.get()
            if item is _DONE:
                break
            yield item

        try:
            result = await done
        except Exception as e:
            raise RecognitionFailed("Recognition failed", details=str(e)) from e

        if result.reason == speechsdk.ResultReason.TranslatedSpeech:
            yield Final(result.text, result.translations.get(code, ""))
        elif result.reason == speechsdk.ResultReason.RecognizedSpeech:
            # Recognized but no translation returned
            yield Final(result.text, "")
        elif result.reason == speechsdk.ResultReason.NoMatch:
            yield NoMatch()
        else:
            cancellation = result.cancellation_details
            yield Canceled(reason=str(cancellation.reason), details=cancellation.error_details or "")

    async def synthesize(self, text: str, target_language: str, voice_name: Optional[str] = None) -> bytes:
        import azure.cognitiveservices.speech as speechsdk

        self._check_credentials(SynthesisFailed)
        speech_config = speechsdk.SpeechConfig(subscription=self.speech_key, region=self.region)
        speech_config.speech_synthesis_language = target_language
        voice = voice_name or self.voice_name
        if voice:
            speech_config.speech_synthesis_voice_name = voice
        synthesizer = speechsdk.SpeechSynthesizer(speech_config=speech_config, audio_config=None)

        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, lambda: synthesizer.speak_text_async(text).get())
        except Exception as e:
            raise SynthesisFailed("Audio synthesis failed", details=str(e)) from e

        if result.reason == speechsdk.ResultReason.SynthesizingAudioCompleted:
            return bytes(result.audio_data)
        details = result.cancellation_details
        raise SynthesisFailed(
            "Audio synthesis failed",
            details=(details.error_details if details else None) or str(result.reason),
        )
