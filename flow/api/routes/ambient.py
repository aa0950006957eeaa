"""
Ambient mixer control endpoints.

Each mutating call returns the mixer snapshot so the host can mirror the
playback state.
"""

from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field

from flow.audio.mixer import AmbientMixer
from flow.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter()


def get_mixer(request: Request) -> AmbientMixer:
    """Get the mixer created by the application lifespan."""
    mixer = getattr(request.app.state, "mixer", None)
    if mixer is None:
        raise HTTPException(status_code=503, detail="Ambient mixer is not initialized")
    return mixer


class ScoreUpdate(BaseModel):
    """Cognitive-load score; values outside 0-100 are clamped by the mixer."""
    score: float = Field(..., description="Cognitive load, 0 (calm) to 100 (overloaded)")


class FocusUpdate(BaseModel):
    """Focus mode toggle."""
    enabled: bool


class MuteUpdate(BaseModel):
    """Mute toggle."""
    muted: bool


@router.get("/state")
def get_state(mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Get current playback state."""
    return mixer.snapshot()


@router.post("/start")
def start_ambient(mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Start both ambient loops."""
    status = mixer.start()
    return {"result": status.value, "state": mixer.snapshot()}


@router.post("/stop")
def stop_ambient(mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Stop both ambient loops."""
    status = mixer.stop()
    return {"result": status.value, "state": mixer.snapshot()}


@router.post("/score")
def update_score(update: ScoreUpdate, mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Push a new cognitive-load score."""
    mixer.update_for_score(update.score)
    return mixer.snapshot()


@router.post("/focus")
def set_focus(update: FocusUpdate, mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Enter or leave focus mode."""
    mixer.set_focus_mode(update.enabled)
    return mixer.snapshot()


@router.post("/mute")
def set_mute(update: MuteUpdate, mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Mute or unmute the ambience."""
    mixer.is_muted = update.muted
    return mixer.snapshot()


@router.post("/chime/event")
def event_chime(mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Acknowledge an attention event."""
    mixer.play_event_chime()
    return mixer.snapshot()


@router.post("/chime/completion")
def completion_chime(mixer: AmbientMixer = Depends(get_mixer)) -> Dict:
    """Mark session completion."""
    mixer.play_completion_chime()
    logger.info("session_completion_chime")
    return mixer.snapshot()
