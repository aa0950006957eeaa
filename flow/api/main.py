"""
FastAPI application exposing the Flow ambient mixer to the host app.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from flow.api.routes import ambient, health
from flow.audio.mixer import AmbientMixer
from flow.core.config import settings
from flow.core.exceptions import FlowError
from flow.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan handler.

    Builds the mixer and generates both clips before serving requests;
    closes the mixer on shutdown.
    """
    logger.info(
        "application_starting",
        app_name=settings.app_name,
        version=settings.app_version,
        env=settings.env
    )

    mixer = getattr(app.state, "mixer", None)
    if mixer is None:
        mixer = AmbientMixer()
        app.state.mixer = mixer

    # Clip synthesis is CPU bound; keep it off the event loop
    status = await asyncio.to_thread(mixer.prepare)
    logger.info("ambient_ready", status=status.value)

    yield

    logger.info("application_shutting_down")
    mixer.close()
    app.state.mixer = None


app = FastAPI(
    title="Flow Ambient Audio API",
    description="Procedural binaural ambience driven by a cognitive-load score",
    version=settings.app_version,
    lifespan=lifespan
)


@app.exception_handler(FlowError)
async def flow_error_handler(request: Request, exc: FlowError) -> JSONResponse:
    """Handle custom Flow errors."""
    logger.error(
        "flow_error",
        error_code=exc.code,
        message=exc.message,
        path=request.url.path
    )
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message
            }
        }
    )


app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(ambient.router, prefix="/api/v1/ambient", tags=["ambient"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "flow.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level=settings.log_level.lower()
    )
