"""
Streaming voice-to-voice translation API.

Clients stream microphone PCM in chunks, stop the session to get a WAV container,
subscribe to the translate SSE stream for interim/final results, then pull the
synthesized translated audio.
"""
import base64
import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, Header, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse

import config
import metrics.streaming_metrics as streaming_metrics
from core.speech_service import AzureSpeechClient, SpeechClient
from streaming.cleanup import CleanupScheduler
from streaming.errors import InvalidArgument, NotFound, StreamingError
from streaming.ingest import IngestController
from streaming.relay import SSE_HEADERS, EventRelay
from streaming.session_store import SessionStore

logger = logging.getLogger(__name__)


async def _json_body(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}


def create_app(
    speech_client: Optional[SpeechClient] = None,
    upload_dir: str = config.UPLOAD_DIR,
    scheduler: Optional[Any] = None,
    grace_seconds: float = config.CLEANUP_GRACE_SECONDS,
    idle_ttl_seconds: float = config.SESSION_IDLE_TTL_SECONDS,
) -> FastAPI:
    """
    Build the API with its session store, controllers and cleanup scheduler.

    Args:
        speech_client: Speech service; defaults to Azure with credentials from config.
        upload_dir: Directory for the sessions' .pcm/.wav temp files.
        scheduler: Timer object with call_later(delay, callback) (tests pass a manual clock).
        grace_seconds: Delay between audio retrieval and session deletion.
        idle_ttl_seconds: Idle sessions older than this are swept (0 disables).
    """
    if speech_client is None:
        if not config.SPEECH_KEY or not config.SPEECH_REGION:
            logger.error("SPEECH_KEY and SPEECH_REGION must be set; translation requests will fail")
        speech_client = AzureSpeechClient(config.SPEECH_KEY, config.SPEECH_REGION, config.TARGET_VOICE)

    store = SessionStore(upload_dir)
    ingest = IngestController(
        store,
        default_source_language=config.SOURCE_LANGUAGE,
        default_target_language=config.TARGET_LANGUAGE,
        max_chunk_bytes=config.MAX_CHUNK_BYTES,
    )
    cleanup = CleanupScheduler(
        store,
        grace_seconds=grace_seconds,
        idle_ttl_seconds=idle_ttl_seconds,
        sweep_interval_seconds=config.SESSION_SWEEP_INTERVAL_SECONDS,
        scheduler=scheduler,
    )
    relay = EventRelay(
        store,
        speech_client,
        cleanup,
        voice_name=config.TARGET_VOICE,
        queue_size=config.EVENT_QUEUE_SIZE,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Configuration: %s -> %s, region %s", config.SOURCE_LANGUAGE, config.TARGET_LANGUAGE, config.SPEECH_REGION,
        )
        cleanup.start()
        yield
        await relay.shutdown()
        await cleanup.stop()

    app = FastAPI(title="Streaming Speech Translation API", lifespan=lifespan)
    app.state.store = store
    app.state.ingest = ingest
    app.state.cleanup = cleanup
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StreamingError)
    async def streaming_error_handler(request: Request, exc: StreamingError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.get("/")
    def health_check():
        return {
            "status": "ok",
            "message": "Streaming translation API is running",
            "active_sessions": len(store),
        }

    @app.get("/api/config")
    def get_config():
        return {
            "sourceLanguage": config.SOURCE_LANGUAGE,
            "targetLanguage": config.TARGET_LANGUAGE,
            "region": config.SPEECH_REGION,
        }

    @app.post("/api/stream/start")
    async def stream_start(request: Request):
        body = await _json_body(request)
        session = ingest.start_session(
            body.get("sampleRate"),
            source_language=body.get("sourceLanguage"),
            target_language=body.get("targetLanguage"),
        )
        return {"sessionId": session.session_id}

    @app.post("/api/stream/chunk", status_code=204)
    async def stream_chunk(request: Request, x_session_id: Optional[str] = Header(default=None)):
        if not x_session_id:
            raise InvalidArgument("Missing session id")
        data = await request.body()
        await ingest.append_chunk(x_session_id, data)
        return Response(status_code=204)

    @app.post("/api/stream/stop")
    async def stream_stop(request: Request):
        body = await _json_body(request)
        session_id = body.get("sessionId")
        if not session_id:
            raise InvalidArgument("sessionId is required")
        session = await ingest.finalize_session(session_id)
        return {
            "sessionId": session.session_id,
            "status": session.status.value,
            "message": "Audio ready for translation. Connect to SSE endpoint.",
        }

    @app.get("/api/stream/translate/{session_id}")
    async def stream_translate(session_id: str):
        frames = relay.open_event_stream(session_id)
        return StreamingResponse(frames, media_type="text/event-stream", headers=SSE_HEADERS)

    @app.get("/api/stream/audio/{session_id}")
    async def stream_audio(session_id: str):
        session = store.get(session_id)
        if session is None or session.synthesized_audio is None:
            raise NotFound("Audio not found for this session")
        logger.info("Sending audio for session %s", session_id)
        payload = {
            "audioData": base64.b64encode(session.synthesized_audio).decode("ascii"),
            "originalText": session.recognized_text,
            "translatedText": session.translated_text,
            "sourceLanguage": session.source_language,
            "targetLanguage": session.target_language,
        }
        cleanup.schedule_release(session_id)
        return payload

    @app.get("/metrics/streaming", include_in_schema=False)
    def metrics_streaming():
        """JSON snapshot of stream counters and orchestration latency."""
        return streaming_metrics.get_snapshot()

    return app


app = create_app()


if __name__ == "__main__":
    logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host=config.HOST, port=config.PORT)
