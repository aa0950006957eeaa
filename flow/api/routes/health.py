"""
Health check endpoints.
"""

from fastapi import APIRouter, Request

from flow.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    System health check endpoint.

    Audio problems never make the service unhealthy; they are reported
    under components.
    """
    mixer = getattr(request.app.state, "mixer", None)
    audio_status = mixer.status.value if mixer is not None else "not_initialized"

    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.env,
        "components": {
            "audio": audio_status,
            "audio_backend": settings.audio_backend
        }
    }
