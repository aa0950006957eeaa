"""
Ambient mixer driving the calm and stress layers.

Owns the two generated clips and the playback state, and turns the
external cognitive-load score, focus-mode toggles and chime triggers into
per-layer gains for the audio backend.
"""

import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Callable, Dict, Optional

from flow.audio.backends import AudioBackendInterface, get_backend
from flow.audio.encoder import GeneratedClip
from flow.audio.engine import ClipGenerator
from flow.audio.synthesizers import CALM_LAYER, STRESS_LAYER, LayerConfig
from flow.core.config import settings
from flow.core.exceptions import AudioBackendError
from flow.core.logging import get_logger

logger = get_logger(__name__)

CALM = 'calm'
STRESS = 'stress'
LAYERS = (CALM, STRESS)

# Score -> gain mapping
CALM_SCORE_DEPTH = 0.6
STRESS_SCORE_DEPTH = 0.7
MAX_SCORE = 100.0


class AudioStatus(Enum):
    """Outcome of a mixer operation. Logged, never raised."""
    OK = "ok"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    ENCODING_FAILED = "encoding_failed"


@dataclass
class PlaybackState:
    """Mutable playback state, owned by exactly one AmbientMixer."""
    is_playing: bool = False
    is_muted: bool = False
    focus_mode_active: bool = False
    calm_volume: float = 0.0
    stress_volume: float = 0.0
    last_score: Optional[float] = None
    # Bumped on every volume write; restores compare against it
    generations: Dict[str, int] = field(default_factory=lambda: {CALM: 0, STRESS: 0})


class TimerScheduler:
    """Runs deferred callbacks on daemon threading.Timer threads."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class AmbientMixer:
    """
    Two-layer ambient mixer.

    States are stopped/playing, with orthogonal mute and focus-mode flags.
    All mutations happen under one re-entrant lock, so score updates from
    another thread cannot interleave with a timer-fired volume restore.
    """

    def __init__(
        self,
        backend: Optional[AudioBackendInterface] = None,
        generator: Optional[ClipGenerator] = None,
        scheduler=None,
        calm_layer: LayerConfig = CALM_LAYER,
        stress_layer: LayerConfig = STRESS_LAYER,
        initial_calm_volume: Optional[float] = None,
        focus_calm_volume: Optional[float] = None,
        event_chime_boost: Optional[float] = None,
        event_chime_restore: Optional[float] = None,
        completion_chime_restore: Optional[float] = None,
        guard_stale_restores: Optional[bool] = None
    ):
        """
        Initialize ambient mixer.

        Args:
            backend: Audio backend (built from settings if None)
            generator: Clip generator (built from settings if None)
            scheduler: Object with schedule(delay, callback)
            calm_layer: Calm layer parameters
            stress_layer: Stress layer parameters
            initial_calm_volume: Calm gain applied by start()
            focus_calm_volume: Calm gain while focus mode is on
            event_chime_boost: Calm gain added by an event chime
            event_chime_restore: Seconds until an event chime is undone
            completion_chime_restore: Seconds until a completion chime is undone
            guard_stale_restores: Skip restores superseded by newer writes
        """
        self.backend = backend or get_backend(
            settings.audio_backend,
            sample_rate=settings.audio_sample_rate,
            blocksize=settings.audio_blocksize
        )
        self.generator = generator or ClipGenerator()
        self.scheduler = scheduler or TimerScheduler()
        self.layers: Dict[str, LayerConfig] = {CALM: calm_layer, STRESS: stress_layer}

        self.initial_calm_volume = _pick(initial_calm_volume, settings.audio_initial_calm_volume)
        self.focus_calm_volume = _pick(focus_calm_volume, settings.audio_focus_calm_volume)
        self.event_chime_boost = _pick(event_chime_boost, settings.audio_event_chime_boost)
        self.event_chime_restore = _pick(event_chime_restore, settings.audio_event_chime_restore)
        self.completion_chime_restore = _pick(
            completion_chime_restore, settings.audio_completion_chime_restore
        )
        self.guard_stale_restores = _pick(guard_stale_restores, settings.audio_guard_stale_restores)

        self.state = PlaybackState()
        self.clips: Dict[str, GeneratedClip] = {}
        self.layer_status: Dict[str, AudioStatus] = {}

        self._lock = threading.RLock()
        self._prepared = False
        self._backend_ready = False
        self._closed = False

        logger.info(
            "ambient_mixer_initialized",
            backend=type(self.backend).__name__,
            guard_stale_restores=self.guard_stale_restores
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def prepare(self) -> AudioStatus:
        """
        Generate both clips and hand them to the backend.

        Runs once; later calls return the original outcome. Each layer is
        generated independently, so one failed layer leaves the other usable.

        Returns:
            OK, ENCODING_FAILED (some layer missing) or BACKEND_UNAVAILABLE
        """
        with self._lock:
            if self._prepared:
                return self.status

            results = self.generator.generate_all(self.layers)
            for layer in LAYERS:
                result = results.get(layer)
                if result is not None and result.ok:
                    self.clips[layer] = result.clip
                    self.layer_status[layer] = AudioStatus.OK
                else:
                    self.layer_status[layer] = AudioStatus.ENCODING_FAILED

            try:
                self.backend.open()
                self._backend_ready = True
            except AudioBackendError as e:
                logger.warning("audio_backend_unavailable", error=e.message)
                self._backend_ready = False

            if self._backend_ready:
                for layer, clip in self.clips.items():
                    try:
                        self.backend.load(layer, clip)
                    except AudioBackendError as e:
                        logger.warning("clip_load_failed", layer=layer, error=e.message)
                        self.layer_status[layer] = AudioStatus.BACKEND_UNAVAILABLE

            self._prepared = True
            status = self.status

            logger.info(
                "ambient_mixer_prepared",
                status=status.value,
                layers={layer: s.value for layer, s in self.layer_status.items()}
            )
            return status

    @property
    def status(self) -> AudioStatus:
        """Overall audio health."""
        if self._prepared and not self._backend_ready:
            return AudioStatus.BACKEND_UNAVAILABLE
        statuses = self.layer_status.values()
        if AudioStatus.ENCODING_FAILED in statuses:
            return AudioStatus.ENCODING_FAILED
        if AudioStatus.BACKEND_UNAVAILABLE in statuses:
            return AudioStatus.BACKEND_UNAVAILABLE
        return AudioStatus.OK

    def start(self) -> AudioStatus:
        """
        Start looping both layers (stopped -> playing).

        Calm starts at the initial volume, stress at zero. The call never
        raises; without a backend only the state is tracked.
        """
        with self._lock:
            if self._closed:
                logger.warning("ambient_start_after_close")
                return AudioStatus.BACKEND_UNAVAILABLE
            if self.state.is_playing:
                logger.debug("ambient_already_playing")
                return self.status

            self.prepare()

            self.state.is_playing = True
            self._set_volume(CALM, self.initial_calm_volume)
            self._set_volume(STRESS, 0.0)
            if self.state.focus_mode_active:
                self._apply_focus()

            if self._backend_ready:
                for layer in self.clips:
                    if self.layer_status.get(layer) != AudioStatus.OK:
                        continue
                    try:
                        self.backend.play_loop(layer)
                    except AudioBackendError as e:
                        logger.warning("layer_play_failed", layer=layer, error=e.message)
                        self.layer_status[layer] = AudioStatus.BACKEND_UNAVAILABLE

            status = self.status
            logger.info(
                "ambient_started",
                status=status.value,
                calm_volume=self.state.calm_volume,
                stress_volume=self.state.stress_volume
            )
            return status

    def stop(self) -> AudioStatus:
        """Stop both loops (playing -> stopped)."""
        with self._lock:
            if not self.state.is_playing:
                return self.status

            if self._backend_ready:
                for layer in self.clips:
                    try:
                        self.backend.stop(layer)
                    except AudioBackendError as e:
                        logger.warning("layer_stop_failed", layer=layer, error=e.message)

            self.state.is_playing = False
            logger.info("ambient_stopped")
            return self.status

    def close(self) -> None:
        """Stop playback, release the backend and drop the clips."""
        with self._lock:
            if self._closed:
                return
            self.stop()
            if self._backend_ready:
                try:
                    self.backend.close()
                except AudioBackendError as e:
                    logger.warning("audio_backend_close_failed", error=e.message)
            self._backend_ready = False
            self.clips.clear()
            self._closed = True
            logger.info("ambient_mixer_closed")

    # ------------------------------------------------------------------
    # Host operations
    # ------------------------------------------------------------------

    def update_for_score(self, score: float) -> None:
        """
        Map a cognitive-load score (0-100) onto the layer gains.

        calm = 1 - 0.6 n, stress = 0.7 n with n = clamp(score) / 100.
        Ignored when stopped or muted; remembered but not applied while
        focus mode holds the gains.
        """
        with self._lock:
            if not self.state.is_playing or self.state.is_muted:
                return
            if not math.isfinite(score):
                logger.warning("score_not_finite", score=score)
                return

            n = min(max(score, 0.0), MAX_SCORE) / MAX_SCORE
            self.state.last_score = score

            if self.state.focus_mode_active:
                return

            self._set_volume(CALM, 1.0 - n * CALM_SCORE_DEPTH)
            self._set_volume(STRESS, n * STRESS_SCORE_DEPTH)

    def set_focus_mode(self, enabled: bool) -> None:
        """
        Toggle focus mode.

        Enabling silences the stress layer and holds calm at the focus
        volume. Disabling leaves the gains alone; the next score update
        re-drives them.
        """
        with self._lock:
            changed = self.state.focus_mode_active != enabled
            self.state.focus_mode_active = enabled
            if enabled:
                self._apply_focus()
            if changed:
                logger.info("focus_mode_changed", enabled=enabled)

    def play_event_chime(self) -> None:
        """Briefly lift the calm layer, restoring it after a short delay."""
        with self._lock:
            if not self.state.is_playing or self.state.is_muted:
                return

            original = self.state.calm_volume
            generation = self._set_volume(CALM, min(original + self.event_chime_boost, 1.0))
            self._schedule_restore(self.event_chime_restore, CALM, original, generation)

    def play_completion_chime(self) -> None:
        """
        Swell calm to full and silence stress, restoring calm afterwards.

        Stress is not restored; the next score update sets it again.
        """
        with self._lock:
            if self.state.is_muted:
                return

            original = self.state.calm_volume
            generation = self._set_volume(CALM, 1.0)
            self._set_volume(STRESS, 0.0)
            self._schedule_restore(self.completion_chime_restore, CALM, original, generation)

    @property
    def is_muted(self) -> bool:
        return self.state.is_muted

    @is_muted.setter
    def is_muted(self, muted: bool) -> None:
        with self._lock:
            muted = bool(muted)
            if self.state.is_muted == muted:
                return
            self.state.is_muted = muted
            for layer in LAYERS:
                self._push_gain(layer)
            logger.info("mute_changed", muted=muted)

    @property
    def is_playing(self) -> bool:
        return self.state.is_playing

    @property
    def calm_volume(self) -> float:
        return self.state.calm_volume

    @property
    def stress_volume(self) -> float:
        return self.state.stress_volume

    def snapshot(self) -> Dict:
        """
        Get the current playback state.

        Returns:
            Dictionary of flags, volumes and audio status
        """
        with self._lock:
            layers = {}
            for layer in LAYERS:
                clip = self.clips.get(layer)
                layers[layer] = {
                    'status': self.layer_status.get(layer, AudioStatus.OK).value,
                    'duration': clip.duration if clip else None
                }

            return {
                'is_playing': self.state.is_playing,
                'is_muted': self.state.is_muted,
                'focus_mode_active': self.state.focus_mode_active,
                'calm_volume': self.state.calm_volume,
                'stress_volume': self.state.stress_volume,
                'last_score': self.state.last_score,
                'status': self.status.value,
                'layers': layers
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _apply_focus(self) -> None:
        self._set_volume(STRESS, 0.0)
        self._set_volume(CALM, self.focus_calm_volume)

    def _set_volume(self, layer: str, volume: float) -> int:
        """Write a layer volume, push it, and return the new generation."""
        volume = min(max(float(volume), 0.0), 1.0)
        if layer == CALM:
            self.state.calm_volume = volume
        else:
            self.state.stress_volume = volume

        self.state.generations[layer] += 1
        self._push_gain(layer)
        return self.state.generations[layer]

    def _push_gain(self, layer: str) -> None:
        """Send the effective gain (zero while muted) to the backend."""
        if not self._backend_ready or layer not in self.clips:
            return

        volume = self.state.calm_volume if layer == CALM else self.state.stress_volume
        gain = 0.0 if self.state.is_muted else volume
        try:
            self.backend.set_gain(layer, gain)
        except AudioBackendError as e:
            logger.debug("set_gain_failed", layer=layer, error=e.message)

    def _schedule_restore(self, delay: float, layer: str, volume: float, generation: int) -> None:
        self.scheduler.schedule(delay, partial(self._restore, layer, volume, generation))

    def _restore(self, layer: str, volume: float, generation: int) -> None:
        """Deferred half of a chime: put the captured volume back."""
        with self._lock:
            if self._closed:
                return
            current = self.state.generations[layer]
            if self.guard_stale_restores and current != generation:
                logger.debug(
                    "volume_restore_skipped",
                    layer=layer,
                    scheduled_generation=generation,
                    current_generation=current
                )
                return
            self._set_volume(layer, volume)


def _pick(value, default):
    return default if value is None else value
