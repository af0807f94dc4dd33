"""Knowledge Assistant API - Main Application Module.

This module initializes the FastAPI application with proper configuration,
middleware, routing, and lifecycle management for the support knowledge-base
chat service.
"""

import logging
import sys
import uuid
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path

# Add the project root to Python path if running directly
if __name__ == "__main__":
    project_root = Path(__file__).parent.parent
    sys.path.insert(0, str(project_root))

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import Settings, settings
from app.core.logging import configure_logging
from app.database import build_engine, build_session_factory
from models import Base

logger = logging.getLogger(__name__)


def build_lifespan(config: Settings):
    """Create the lifespan that owns the database engine and the upstream HTTP client."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {config.app_name} ({config.environment.value})")

        engine = build_engine(config)
        app.state.engine = engine
        app.state.session_factory = build_session_factory(engine)
        app.state.http_client = httpx.AsyncClient()

        # Development mode: auto-create tables; other environments use Alembic
        if config.is_development:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created/verified")
        else:
            logger.info("Use 'alembic upgrade head' to manage the database schema")

        try:
            yield
        finally:
            logger.info(f"Shutting down {config.app_name}")
            await app.state.http_client.aclose()
            await engine.dispose()
            logger.info("Database connections closed")

    return lifespan


def create_app(config: Settings = settings) -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging(config.log_level.value, config.log_format.value)

    app = FastAPI(
        title=config.app_name,
        description="Customer-support knowledge-base chat with RAG answers and voice input/output",
        version=config.version,
        lifespan=build_lifespan(config),
        docs_url="/docs" if config.is_development else None,
        redoc_url="/redoc" if config.is_development else None,
    )
    app.state.settings = config

    # Add middleware
    setup_middleware(app, config)

    # Add exception handlers
    setup_exception_handlers(app)

    # Include routers
    setup_routers(app, config)

    return app


def setup_middleware(app: FastAPI, config: Settings):
    """Configure application middleware."""
    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = request_id
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def setup_exception_handlers(app: FastAPI):
    """Configure global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Handle custom exceptions that have structured detail
        if isinstance(exc.detail, dict) and "message" in exc.detail:
            message = exc.detail["message"]
            error_code = exc.detail.get("error_code", "HTTP_ERROR")
            details = exc.detail.get("details")
        else:
            message = str(exc.detail) if exc.detail else "An error occurred"
            error_code = "HTTP_ERROR"
            details = None

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "status": "error",
                "message": message,
                "error_code": error_code,
                "details": details,
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": getattr(request.state, "request_id", None),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Convert errors to JSON-serializable format
        errors = []
        for error in exc.errors():
            error_dict = {
                "loc": error.get("loc", []),
                "msg": str(error.get("msg", "Validation error")),
                "type": error.get("type", "value_error"),
            }
            if "input" in error:
                error_dict["input"] = str(error["input"])
            errors.append(error_dict)

        return JSONResponse(
            status_code=422,
            content={
                "status": "error",
                "message": "Validation error",
                "error_code": "VALIDATION_ERROR",
                "details": errors,
                "timestamp": datetime.now(UTC).isoformat(),
                "request_id": getattr(request.state, "request_id", None),
            },
        )


def setup_routers(app: FastAPI, config: Settings):
    """Configure application routers."""
    # Import routers
    from app.domains.rag.controller import router as rag_router
    from app.domains.speech.controller import router as speech_router
    from app.domains.threads.controller import router as threads_router

    @app.get("/health")
    async def health_check(request: Request):
        """Health check covering the database and upstream configuration."""
        db_status = "healthy"
        try:
            async with request.app.state.session_factory() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            logger.error(f"Database health check failed: {str(e)}")
            db_status = "unhealthy"

        rag_status = "configured" if config.has_rag_configured else "not_configured"
        speech_status = "configured" if config.has_speech_configured else "not_configured"

        body = {
            "status": "healthy" if db_status == "healthy" else "degraded",
            "version": config.version,
            "environment": config.environment.value,
            "timestamp": datetime.now(UTC).isoformat(),
            "services": {
                "database": db_status,
                "rag_service": rag_status,
                "speech_service": speech_status,
            },
        }
        if db_status != "healthy":
            return JSONResponse(status_code=503, content=body)
        return body

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": config.app_name,
            "version": config.version,
            "description": "Customer-support knowledge-base chat",
            "docs_url": "/docs" if config.is_development else None,
        }

    # Include domain routers
    app.include_router(threads_router)
    app.include_router(rag_router)
    app.include_router(speech_router)


# Create the application instance
app = create_app()


def main():
    """Entry point for running the application directly."""
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.value.lower(),
    )


if __name__ == "__main__":
    main()
