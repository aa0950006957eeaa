"""
Binaural layer synthesizer.

Renders one ambient layer as a stereo clip: a carrier tone per ear (the
right ear offset by the beat frequency), a brown-noise bed, a slow swell
and a short fade at both loop boundaries.
"""

import math
from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
from numpy.typing import NDArray
from scipy.signal import lfilter

from flow.audio.alignment import align_frequency_to_duration, align_loop_duration
from flow.audio.noise import DEFAULT_SEED, NoiseSource
from flow.core.exceptions import SynthesisError, ValidationError
from flow.core.logging import get_logger

logger = get_logger(__name__)

SAMPLE_RATE = 44100

# Leaky integrator coefficient for brown noise
BROWN_LEAK = 0.995

# Decorrelates the right noise stream from the left one
RIGHT_CHANNEL_SALT = 0x9E3779B97F4A7C15


@dataclass(frozen=True)
class LayerConfig:
    """
    Parameters of one ambient layer.

    The left ear hears `carrier_hz`, the right ear `carrier_hz + beat_hz`.
    """
    name: str
    carrier_hz: float
    beat_hz: float
    tone_amplitude: float
    noise_amplitude: float
    warmth: float  # second harmonic weight

    def __post_init__(self):
        for field_name in ("carrier_hz", "beat_hz", "tone_amplitude", "noise_amplitude", "warmth"):
            value = getattr(self, field_name)
            if not math.isfinite(value):
                raise ValidationError(f"{field_name} must be finite, got {value}")
        if self.carrier_hz <= 0:
            raise ValidationError(f"carrier_hz must be positive, got {self.carrier_hz}")
        if self.carrier_hz + self.beat_hz <= 0:
            raise ValidationError(
                f"right carrier must be positive, got {self.carrier_hz + self.beat_hz}"
            )
        for field_name in ("tone_amplitude", "noise_amplitude", "warmth"):
            value = getattr(self, field_name)
            if not 0.0 <= value <= 1.0:
                raise ValidationError(f"{field_name} must be within [0, 1], got {value}")

    @property
    def left_hz(self) -> float:
        return self.carrier_hz

    @property
    def right_hz(self) -> float:
        return self.carrier_hz + self.beat_hz


CALM_LAYER = LayerConfig(
    name="calm",
    carrier_hz=432.0,
    beat_hz=10.0,
    tone_amplitude=0.18,
    noise_amplitude=0.015,
    warmth=0.04
)

STRESS_LAYER = LayerConfig(
    name="stress",
    carrier_hz=200.0,
    beat_hz=40.0,
    tone_amplitude=0.22,
    noise_amplitude=0.035,
    warmth=0.015
)

LAYER_PRESETS: Dict[str, LayerConfig] = {
    'calm': CALM_LAYER,
    'stress': STRESS_LAYER
}


class BinauralSynthesizer:
    """
    Offline stereo synthesizer for loopable ambient layers.

    All sample data is computed in one pass; nothing here runs during
    playback.
    """

    def __init__(
        self,
        sample_rate: int = SAMPLE_RATE,
        fade_seconds: float = 0.05,
        swell_hz: float = 0.07,
        swell_depth: float = 0.125
    ):
        """
        Initialize synthesizer.

        Args:
            sample_rate: Audio sample rate in Hz
            fade_seconds: Length of the fade at each loop boundary
            swell_hz: Target rate of the amplitude swell
            swell_depth: Swell modulation depth (gain swings 1-2d .. 1)
        """
        if not math.isfinite(sample_rate) or sample_rate <= 0 or sample_rate != int(sample_rate):
            raise ValidationError(f"sample_rate must be a positive whole number, got {sample_rate}")
        self.sample_rate = int(sample_rate)
        self.fade_seconds = fade_seconds
        self.swell_hz = swell_hz
        self.swell_depth = swell_depth

    def frame_count(self, duration: float) -> int:
        """Number of stereo frames for a duration."""
        return int(round(duration * self.sample_rate))

    def _tone(self, frequency: float, t: NDArray[np.float64], config: LayerConfig) -> NDArray[np.float64]:
        """Carrier plus second harmonic."""
        phase = 2 * np.pi * frequency * t
        return config.tone_amplitude * (np.sin(phase) + config.warmth * np.sin(2 * phase))

    def _brown_noise(self, seed: int, n_samples: int) -> NDArray[np.float64]:
        """White noise through a leaky integrator, y = 0.995 y + 0.005 x."""
        white = NoiseSource(seed).draw(n_samples)
        return lfilter([1.0 - BROWN_LEAK], [1.0, -BROWN_LEAK], white)

    def swell_envelope(self, t: NDArray[np.float64], duration: float) -> NDArray[np.float64]:
        """Slow cosine swell, aligned to a whole number of cycles."""
        swell_hz = align_frequency_to_duration(self.swell_hz, duration)
        return (1.0 - self.swell_depth) + self.swell_depth * np.cos(2 * np.pi * swell_hz * t)

    def boundary_fade(self, n_samples: int) -> NDArray[np.float64]:
        """
        Linear fade-in/fade-out gain curve.

        The first and the last sample are exactly zero. Clips shorter than
        two fades get a fade of half their length.
        """
        fade_samples = int(self.fade_seconds * self.sample_rate)
        fade_samples = min(fade_samples, n_samples // 2)

        gain = np.ones(n_samples)
        if fade_samples > 0:
            ramp = np.arange(fade_samples) / fade_samples
            gain[:fade_samples] = ramp
            gain[n_samples - fade_samples:] = ramp[::-1]
        return gain

    def synthesize(
        self,
        config: LayerConfig,
        duration: float,
        seed: int = DEFAULT_SEED
    ) -> NDArray[np.float64]:
        """
        Render a layer.

        Args:
            config: Layer parameters
            duration: Exact clip length in seconds (already loop-aligned)
            seed: Noise seed; the right channel uses a derived seed

        Returns:
            Array of shape (n_frames, 2) with (left, right) rows in [-1, 1]
        """
        n_samples = self.frame_count(duration)
        if n_samples <= 0:
            raise SynthesisError(f"duration {duration}s yields no samples")

        t = np.arange(n_samples) / self.sample_rate

        left = self._tone(config.left_hz, t, config)
        right = self._tone(config.right_hz, t, config)

        if config.noise_amplitude > 0:
            left += config.noise_amplitude * self._brown_noise(seed, n_samples)
            right += config.noise_amplitude * self._brown_noise(seed ^ RIGHT_CHANNEL_SALT, n_samples)

        gain = self.swell_envelope(t, duration) * self.boundary_fade(n_samples)

        samples = np.empty((n_samples, 2))
        samples[:, 0] = left * gain
        samples[:, 1] = right * gain

        return np.clip(samples, -1.0, 1.0)

    def render_layer(
        self,
        config: LayerConfig,
        target_duration: float = 30.0,
        seed: int = DEFAULT_SEED
    ) -> NDArray[np.float64]:
        """Align the clip length to the layer's carriers, then synthesize."""
        duration = align_loop_duration(config.left_hz, config.right_hz, target_duration)

        logger.debug(
            "layer_render_started",
            layer=config.name,
            target_duration=target_duration,
            duration=duration
        )

        return self.synthesize(config, duration, seed)


def get_layer_config(layer_name: str) -> Optional[LayerConfig]:
    """
    Get a production layer preset by name.

    Args:
        layer_name: 'calm' or 'stress'

    Returns:
        LayerConfig, or None if unknown
    """
    if layer_name not in LAYER_PRESETS:
        logger.warning(
            "unknown_layer",
            layer=layer_name,
            available=list(LAYER_PRESETS.keys())
        )
        return None

    return LAYER_PRESETS[layer_name]
