"""
Recognition -> translation -> synthesis for one finalized session.

Consumes the speech client's typed results and turns them into ordered events:

    recognizing*  then  recognized | error("No speech could be recognized")
    then, when a translation exists,  audio-ready | error("Audio synthesis failed")

A cancellation from the speech service raises RecognitionFailed and aborts the
call; the relay turns that into the terminal error event. The orchestrator never
deletes the session.
"""

import asyncio
import logging
from typing import Optional

import metrics.streaming_metrics as streaming_metrics
from core.speech_service import Canceled, Final, Interim, NoMatch, SpeechClient
from streaming.errors import InvalidState, RecognitionFailed, SynthesisFailed
from streaming.events import EventChannel, EventType
from streaming.session_store import Session, SessionStatus

logger = logging.getLogger(__name__)

NO_SPEECH_MESSAGE = "No speech could be recognized"


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


async def translate_session(
    session: Session,
    sink: EventChannel,
    speech_client: SpeechClient,
    voice_name: Optional[str] = None,
) -> None:
    """
    Drive one recognize-and-translate call over the session's finalized audio,
    using the session's own languages, and emit events into `sink`.

    Raises:
        InvalidState: session is not ready.
        RecognitionFailed: the service canceled recognition or the call failed.
    """
    if session.status != SessionStatus.READY or not session.finalized_audio_path:
        raise InvalidState("Session is not ready for translation")

    logger.info(
        "Starting real-time translation for session %s (%s -> %s)",
        session.session_id, session.source_language, session.target_language,
    )
    loop = asyncio.get_running_loop()
    wav_bytes = await loop.run_in_executor(None, _read_bytes, session.finalized_audio_path)

    final: Optional[Final] = None
    async for result in speech_client.recognize_and_translate(
        wav_bytes, session.source_language, session.target_language
    ):
        if isinstance(result, Interim):
            logger.debug("Recognizing: %r -> %r", result.text, result.translation)
            await sink.emit(EventType.RECOGNIZING, {
                "originalText": result.text,
                "translatedText": result.translation,
                "isFinal": False,
            })
        elif isinstance(result, Final):
            final = result
            logger.info("Recognized: %r, translated: %r", result.text, result.translation)
            await sink.emit(EventType.RECOGNIZED, {
                "originalText": result.text,
                "translatedText": result.translation,
                "isFinal": True,
            })
        elif isinstance(result, NoMatch):
            logger.warning("No speech recognized for session %s", session.session_id)
            streaming_metrics.record_no_match()
            await sink.emit(EventType.ERROR, {"message": NO_SPEECH_MESSAGE})
        elif isinstance(result, Canceled):
            logger.error("Recognition canceled for session %s: %s", session.session_id, result.message)
            raise RecognitionFailed(result.message)

    if final is None or not final.translation:
        return

    logger.info("Synthesizing audio for session %s", session.session_id)
    try:
        audio = await speech_client.synthesize(final.translation, session.target_language, voice_name)
    except SynthesisFailed as e:
        logger.error("Audio synthesis failed for session %s: %s", session.session_id, e.details or e.message)
        streaming_metrics.record_synthesis_failure()
        await sink.emit(EventType.ERROR, {"message": "Audio synthesis failed", "details": e.details or e.message})
        return

    session.synthesized_audio = audio
    session.recognized_text = final.text
    session.translated_text = final.translation
    logger.info("Audio generated for session %s: %d bytes", session.session_id, len(audio))
    await sink.emit(EventType.AUDIO_READY, {
        "sessionId": session.session_id,
        "sourceLanguage": session.source_language,
        "targetLanguage": session.target_language,
        "originalText": final.text,
        "translatedText": final.translation,
    })
