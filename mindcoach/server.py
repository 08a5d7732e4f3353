from fastapi import FastAPI, APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from starlette.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import List, Optional
import asyncio
import logging

from . import config
from .capture import SoundDeviceCapture
from .errors import CaptureDeviceError, MicrophonePermissionError
from .events import EventChannel, format_sse
from .models import UserProfile
from .orchestrator import RecordingOrchestrator
from .services.insights import GeminiInsightService
from .services.speech import create_synthesizer
from .services.transcription import WhisperTranscriber

logger = logging.getLogger(__name__)

HEARTBEAT_SECONDS = 15.0


class ProfileUpdate(BaseModel):
    name: str = ""
    goals: List[str] = Field(default_factory=list)
    challenges: List[str] = Field(default_factory=list)
    voice_tone: str = "calm"


class ReflectionRequest(BaseModel):
    text: str = Field(min_length=1)


class RecordingStatusResponse(BaseModel):
    is_recording: bool
    is_paused: bool
    transcript_count: int
    moment_count: int
    current_segment: str


def build_default_orchestrator() -> RecordingOrchestrator:
    """Orchestrator wired to the real microphone and the configured services."""
    return RecordingOrchestrator(
        capture=SoundDeviceCapture(),
        transcriber=WhisperTranscriber(),
        insight_service=GeminiInsightService(),
        synthesizer=create_synthesizer(),
    )


def create_app(
    orchestrator: Optional[RecordingOrchestrator] = None,
    channel: Optional[EventChannel] = None,
    profile: Optional[UserProfile] = None,
) -> FastAPI:
    orchestrator = orchestrator or build_default_orchestrator()
    channel = channel or EventChannel()

    app = FastAPI(title="MindCoach API")
    app.state.orchestrator = orchestrator
    app.state.channel = channel
    app.state.profile = profile or UserProfile()

    api_router = APIRouter(prefix="/api")

    def status_payload() -> dict:
        return orchestrator.get_recording_status().to_dict()

    @api_router.get("/health")
    async def health():
        return {"status": "ok", "recording": orchestrator.session.is_recording}

    @api_router.post("/recording/start")
    async def start_recording():
        try:
            if not orchestrator.initialized:
                await orchestrator.initialize(app.state.profile, channel.callbacks())
            started = await orchestrator.start_recording()
        except MicrophonePermissionError as e:
            raise HTTPException(status_code=403, detail=str(e))
        except CaptureDeviceError as e:
            logger.error(f"Capture device error: {e}")
            raise HTTPException(status_code=503, detail=str(e))
        return {"started": started, "status": status_payload()}

    @api_router.post("/recording/stop")
    async def stop_recording():
        stopped = await orchestrator.stop_recording()
        return {"stopped": stopped, "status": status_payload()}

    @api_router.post("/recording/pause", response_model=RecordingStatusResponse)
    async def pause_recording():
        orchestrator.pause_recording()
        return status_payload()

    @api_router.post("/recording/resume", response_model=RecordingStatusResponse)
    async def resume_recording():
        orchestrator.resume_recording()
        return status_payload()

    @api_router.get("/recording/status", response_model=RecordingStatusResponse)
    async def recording_status():
        return status_payload()

    @api_router.get("/transcript")
    async def get_transcript():
        return [entry.to_dict() for entry in orchestrator.get_transcript()]

    @api_router.get("/moments")
    async def get_moments():
        return [moment.to_dict() for moment in orchestrator.get_moments()]

    @api_router.get("/coaching")
    async def get_coaching():
        return {
            "tips": [tip.to_dict() for tip in orchestrator.get_coaching_history()],
            "nudges": [nudge.to_dict() for nudge in orchestrator.get_nudge_history()],
        }

    @api_router.delete("/data")
    async def clear_data():
        orchestrator.clear_data()
        return {"cleared": True}

    @api_router.post("/reflect")
    async def reflect(request: ReflectionRequest):
        """Analyze a typed reflection or chat message and speak the reply."""
        if orchestrator.profile is None:
            orchestrator.update_user_profile(app.state.profile)
        try:
            reply = await orchestrator.reflect(request.text)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e))
        return reply.to_dict()

    @api_router.put("/profile")
    async def update_profile(update: ProfileUpdate):
        profile = UserProfile(
            name=update.name,
            goals=update.goals,
            challenges=update.challenges,
            voice_tone=update.voice_tone,
        )
        app.state.profile = profile
        orchestrator.update_user_profile(profile)
        return profile.to_dict()

    @api_router.get("/events/stream")
    async def event_stream(request: Request):
        """Stream coaching events via Server-Sent Events."""
        queue = channel.subscribe()

        async def event_generator():
            try:
                while True:
                    if await request.is_disconnected():
                        break
                    try:
                        event = await asyncio.wait_for(queue.get(), timeout=HEARTBEAT_SECONDS)
                        yield format_sse(event)
                    except asyncio.TimeoutError:
                        # Keep the connection alive
                        yield ": heartbeat\n\n"
            finally:
                channel.unsubscribe(queue)

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    app.include_router(api_router)

    app.add_middleware(
        CORSMiddleware,
        allow_credentials=True,
        allow_origins=config.CORS_ORIGINS,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("shutdown")
    async def shutdown_orchestrator():
        await orchestrator.dispose()

    return app


def configure_logging(level: Optional[str] = None):
    logging.basicConfig(
        level=getattr(logging, (level or config.LOG_LEVEL).upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def run(host: Optional[str] = None, port: Optional[int] = None):
    import uvicorn

    configure_logging()
    uvicorn.run(create_app(), host=host or config.BACKEND_HOST, port=port or config.BACKEND_PORT)
