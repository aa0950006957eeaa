"""
Clip generation pipeline.

Runs align -> synthesize -> encode once per layer. Layers are independent:
a failure in one is logged and reported without touching the other.
"""

import time
from dataclasses import dataclass
from typing import Dict, Mapping, Optional

from flow.audio.alignment import compute_loop_alignment
from flow.audio.encoder import GeneratedClip, build_clip
from flow.audio.synthesizers import LAYER_PRESETS, BinauralSynthesizer, LayerConfig
from flow.core.config import settings
from flow.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ClipResult:
    """Outcome of generating one layer."""
    layer: str
    clip: Optional[GeneratedClip] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.clip is not None


class ClipGenerator:
    """
    Builds encoded loop clips for ambient layers.
    """

    def __init__(
        self,
        synthesizer: Optional[BinauralSynthesizer] = None,
        loop_seconds: Optional[float] = None,
        noise_seed: Optional[int] = None
    ):
        """
        Initialize clip generator.

        Args:
            synthesizer: Synthesizer instance (built from settings if None)
            loop_seconds: Target loop length before alignment
            noise_seed: Base noise seed; each layer offsets it by its index
        """
        self.synthesizer = synthesizer or BinauralSynthesizer(
            sample_rate=settings.audio_sample_rate,
            fade_seconds=settings.audio_fade_seconds,
            swell_hz=settings.audio_swell_hz
        )
        self.loop_seconds = loop_seconds if loop_seconds is not None else settings.audio_loop_seconds
        self.noise_seed = noise_seed if noise_seed is not None else settings.audio_noise_seed

    def generate(
        self,
        config: LayerConfig,
        seed: Optional[int] = None,
        layer: Optional[str] = None
    ) -> GeneratedClip:
        """
        Generate and encode one layer.

        Args:
            config: Layer parameters
            seed: Noise seed (defaults to the base seed)
            layer: Name stored on the clip (defaults to config.name)

        Returns:
            GeneratedClip

        Raises:
            FlowError: if synthesis or encoding fails
        """
        start = time.perf_counter()
        seed = self.noise_seed if seed is None else seed
        layer = layer or config.name

        alignment = compute_loop_alignment(config.left_hz, config.right_hz, self.loop_seconds)
        samples = self.synthesizer.synthesize(config, alignment.duration, seed)
        clip = build_clip(layer, samples, self.synthesizer.sample_rate)

        logger.info(
            "clip_generated",
            layer=layer,
            duration=clip.duration,
            loop_cycles=alignment.loop_cycles,
            frames=clip.frame_count,
            bytes=len(clip.encoded_bytes),
            elapsed_ms=round((time.perf_counter() - start) * 1000, 1)
        )
        return clip

    def generate_all(
        self,
        layers: Optional[Mapping[str, LayerConfig]] = None
    ) -> Dict[str, ClipResult]:
        """
        Generate every layer, isolating failures.

        Args:
            layers: Layer name -> config (defaults to the production presets)

        Returns:
            Mapping of layer name to ClipResult
        """
        if layers is None:
            layers = LAYER_PRESETS

        results: Dict[str, ClipResult] = {}
        for index, (layer, config) in enumerate(layers.items()):
            try:
                clip = self.generate(config, seed=self.noise_seed + index, layer=layer)
                results[layer] = ClipResult(layer=layer, clip=clip)
            except Exception as e:
                logger.error(
                    "clip_generation_failed",
                    layer=layer,
                    error=str(e),
                    error_type=type(e).__name__
                )
                results[layer] = ClipResult(layer=layer, error=str(e))

        return results
