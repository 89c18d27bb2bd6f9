"""
FastAPI Application Entry Point
===============================
Relay application with lifecycle management, middleware, and route mounting.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voice_relay.config import Settings, load_settings
from voice_relay.core.exceptions import VoiceRelayException
from voice_relay.api.routes import chat, health
from voice_relay.services.llm import LLMService

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    """Configure root logging once for the process."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def create_app(
    settings: Optional[Settings] = None,
    llm_service: Optional[LLMService] = None
) -> FastAPI:
    """
    Build the relay application.

    Settings are resolved before anything else so a missing provider key
    raises MissingCredentialException here and the server never binds.
    """
    settings = settings or load_settings()
    configure_logging(settings.LOG_LEVEL)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan manager.
        Handles startup and shutdown events.
        """
        logger.info("=" * 60)
        logger.info(f"Starting {settings.APP_NAME} relay")
        logger.info("=" * 60)

        logger.info("Initializing LLM service...")
        app.state.llm_service = llm_service or LLMService(settings)
        await app.state.llm_service.initialize()

        logger.info(f"Server: http://{settings.HOST}:{settings.PORT}")
        logger.info(f"API endpoint: http://{settings.HOST}:{settings.PORT}/api/chat")

        yield  # Application runs here

        logger.info("Shutting down relay...")
        await app.state.llm_service.cleanup()
        logger.info("Shutdown complete.")

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Relays voice widget chat turns to a hosted language model.",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url=None
    )
    app.state.settings = settings
    # Available before startup completes, replaced in lifespan
    app.state.llm_service = llm_service

    # ==================
    # MIDDLEWARE
    # ==================

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def add_timing_header(request: Request, call_next):
        """Add request timing information to response headers."""
        start_time = datetime.now()
        response = await call_next(request)
        process_time = (datetime.now() - start_time).total_seconds() * 1000
        response.headers["X-Process-Time-Ms"] = f"{process_time:.2f}"
        logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
        return response

    # ==================
    # EXCEPTION HANDLERS
    # ==================

    @app.exception_handler(VoiceRelayException)
    async def voice_relay_exception_handler(request: Request, exc: VoiceRelayException):
        """Translate relay exceptions into {"error": ...} bodies."""
        if exc.status_code >= 500:
            logger.error(f"{exc.error_code}: {exc.message} {exc.details}")
        else:
            logger.warning(f"{exc.error_code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.message}
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed bodies are client errors, not 422s."""
        logger.warning(f"Invalid request body: {exc.errors()}")
        return JSONResponse(
            status_code=400,
            content={"error": "Invalid request body"}
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions."""
        logger.exception(f"Unexpected error: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error"}
        )

    # ==================
    # ROUTES
    # ==================

    app.include_router(health.router, prefix="/api", tags=["Health"])
    app.include_router(chat.router, prefix="/api", tags=["Chat"])

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "status": "running",
            "chat": "/api/chat",
            "health": "/api/health"
        }

    return app
