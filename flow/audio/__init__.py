"""
Ambient audio engine for Flow.

Generates loopable binaural layers offline and mixes them from a live
cognitive-load score.
"""

from flow.audio.noise import NoiseSource
from flow.audio.alignment import (
    LoopAlignment,
    align_frequency_to_duration,
    align_loop_duration,
    compute_loop_alignment,
    real_gcd
)
from flow.audio.synthesizers import (
    BinauralSynthesizer,
    LayerConfig,
    CALM_LAYER,
    STRESS_LAYER,
    LAYER_PRESETS
)
from flow.audio.encoder import GeneratedClip, decode_wav, encode_wav, export_clip
from flow.audio.engine import ClipGenerator, ClipResult
from flow.audio.backends import (
    AudioBackendInterface,
    NullAudioBackend,
    SoundDeviceBackend,
    get_backend
)
from flow.audio.mixer import AmbientMixer, AudioStatus, PlaybackState, TimerScheduler

__all__ = [
    'NoiseSource',
    'LoopAlignment',
    'align_frequency_to_duration',
    'align_loop_duration',
    'compute_loop_alignment',
    'real_gcd',
    'BinauralSynthesizer',
    'LayerConfig',
    'CALM_LAYER',
    'STRESS_LAYER',
    'LAYER_PRESETS',
    'GeneratedClip',
    'decode_wav',
    'encode_wav',
    'export_clip',
    'ClipGenerator',
    'ClipResult',
    'AudioBackendInterface',
    'NullAudioBackend',
    'SoundDeviceBackend',
    'get_backend',
    'AmbientMixer',
    'AudioStatus',
    'PlaybackState',
    'TimerScheduler'
]
