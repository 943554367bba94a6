"""
Companion Engine Service.

API Endpoints:
- POST /v1/respond: Generate a companion reply
- POST /v1/sessions: Start a voice modulation session
- POST /v1/sessions/{id}/modulation: Voice parameters for a reply
- DELETE /v1/sessions/{id}: End a modulation session
- GET /health: Health check
- GET /metrics: Performance metrics
"""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .config import get_settings
from .errors import SessionNotFoundError
from .logging import configure_logging
from .models import (
    CreateSessionRequest,
    CreateSessionResponse,
    HealthResponse,
    ModulationRequest,
    RespondRequest,
    RespondResponse,
)
from .modulation import ModulationContext, ModulationSessions
from .orchestrator import CompanionOrchestrator

logger = structlog.get_logger(__name__)

START_TIME = time.time()


def create_app(
    orchestrator: Optional[CompanionOrchestrator] = None,
    sessions: Optional[ModulationSessions] = None,
) -> FastAPI:
    """Build the service. Collaborators default to ones built from settings."""
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level, settings.json_logs)
        logger.info("Starting service", service=settings.service_name, version=__version__)

        engine = orchestrator
        if engine is None:
            engine = CompanionOrchestrator.from_settings(settings)
        if engine.modulation is None:
            engine.modulation = sessions if sessions is not None else ModulationSessions(settings.modulation)
        await engine.start()
        app.state.orchestrator = engine

        yield

        logger.info("Shutting down service", service=settings.service_name)
        await engine.shutdown()

    app = FastAPI(
        title="Companion Engine",
        description="Emotionally adaptive companion responses with voice modulation",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def engine_for(request: Request) -> CompanionOrchestrator:
        engine = getattr(request.app.state, "orchestrator", None)
        if engine is None:
            raise HTTPException(status_code=503, detail="Engine not initialized")
        return engine

    # =========================================================================
    # Health & Metrics
    # =========================================================================

    @app.get("/health", response_model=HealthResponse)
    async def health_check(request: Request) -> HealthResponse:
        engine = getattr(request.app.state, "orchestrator", None)
        return HealthResponse(
            status="healthy" if engine is not None else "starting",
            service=settings.service_name,
            version=__version__,
            uptime_seconds=time.time() - START_TIME,
            active_sessions=len(engine.modulation) if engine and engine.modulation else 0,
            generation_provider=settings.generation.provider,
        )

    @app.get("/metrics")
    async def get_metrics(request: Request) -> Dict[str, Any]:
        engine = engine_for(request)
        return {
            "service": settings.service_name,
            "version": __version__,
            "uptime_seconds": time.time() - START_TIME,
            **engine.get_metrics(),
        }

    # =========================================================================
    # Companion
    # =========================================================================

    @app.post("/v1/respond", response_model=RespondResponse)
    async def respond(body: RespondRequest, request: Request) -> RespondResponse:
        """Generate the companion's reply to one user message."""
        engine = engine_for(request)
        start = time.perf_counter()
        response = await engine.respond(
            body.message,
            body.user_id,
            history=body.history_messages(),
            session_id=body.session_id,
        )
        return RespondResponse(
            response=response.to_dict(),
            processing_time_ms=(time.perf_counter() - start) * 1000,
        )

    # =========================================================================
    # Voice Modulation Sessions
    # =========================================================================

    @app.post("/v1/sessions", response_model=CreateSessionResponse, status_code=status.HTTP_201_CREATED)
    async def create_session(body: CreateSessionRequest, request: Request) -> CreateSessionResponse:
        engine = engine_for(request)
        session_id = body.session_id or str(uuid.uuid4())
        modulator = engine.modulation.start_session(session_id, body.archetype)
        return CreateSessionResponse(
            session_id=session_id,
            personality=modulator.personality.name,
            voice_id=modulator.personality.voice_id,
        )

    @app.delete("/v1/sessions/{session_id}")
    async def end_session(session_id: str, request: Request) -> Dict[str, Any]:
        engine = engine_for(request)
        if not engine.modulation.end_session(session_id):
            raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
        return {"session_id": session_id, "ended": True}

    @app.post("/v1/sessions/{session_id}/modulation")
    async def modulate(session_id: str, body: ModulationRequest, request: Request) -> Dict[str, Any]:
        """Voice parameters for ``body.text`` in an existing session."""
        engine = engine_for(request)
        try:
            modulator = engine.modulation.get(session_id)
        except SessionNotFoundError as e:
            raise HTTPException(status_code=404, detail=e.message)

        context = ModulationContext(
            user_emotion=body.user_emotion,
            intensity=body.intensity,
            trust_level=body.trust_level,
        )
        return modulator.next_parameters(body.text, context).to_dict()

    # =========================================================================
    # Error Handlers
    # =========================================================================

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error("Unhandled exception", path=request.url.path, error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"},
        )

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "companion_core.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )
