"""FastAPI application entry point."""

import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from .api import auth_router, notes_router
from .config import Settings, get_settings
from .handlers import register_exception_handlers
from .log import bind_request_context, clear_request_context, configure_logging, get_logger
from .services import Services
from .utils import time_now

logger = get_logger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log one line per request with a short request id bound into the log context."""

    SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        request_id = str(uuid.uuid4())[:8]
        bind_request_context(request_id)
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
            logger.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
            )
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            clear_request_context()


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    The Services container (and with it the database handle) is created here,
    injected through ``app.state`` and closed when the app shuts down.
    """
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    if "SECRET_KEY" not in settings.model_fields_set:
        logger.warning("secret_key_generated", detail="tokens will not survive a restart")

    services = services or Services(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("api_starting", version=settings.VERSION, storage=services.storage.backend)
        yield
        services.close()
        logger.info("api_stopped")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Personal notes with per-user isolation",
        version=settings.VERSION,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(auth_router, prefix=settings.API_PREFIX)
    app.include_router(notes_router, prefix=settings.API_PREFIX)
    register_exception_handlers(app)

    @app.get("/")
    async def read_root():
        return {"message": f"{settings.PROJECT_NAME} is running", "version": settings.VERSION}

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.VERSION,
            "storage": services.storage.backend,
            "timestamp": time_now().isoformat(),
        }

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(create_app(), host="0.0.0.0", port=8000)
