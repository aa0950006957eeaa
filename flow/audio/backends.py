"""
Audio output backends.

The mixer only decides gain values and clip contents; looping playback
and gain application belong to a backend. All backends implement
AudioBackendInterface.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict

import numpy as np
from numpy.typing import NDArray

from flow.audio.encoder import GeneratedClip, decode_wav
from flow.core.exceptions import AudioBackendError, ClipEncodingError
from flow.core.logging import get_logger

logger = get_logger(__name__)


class AudioBackendInterface(ABC):
    """
    Abstract base class for audio output backends.

    Layers are addressed by name. Every method may raise AudioBackendError.
    """

    @abstractmethod
    def open(self) -> None:
        """Acquire the output device."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the output device and drop loaded clips."""
        pass

    @abstractmethod
    def load(self, layer: str, clip: GeneratedClip) -> None:
        """Make a clip available for looped playback under `layer`."""
        pass

    @abstractmethod
    def play_loop(self, layer: str) -> None:
        """Start looping a loaded layer from its beginning."""
        pass

    @abstractmethod
    def stop(self, layer: str) -> None:
        """Stop a layer's loop."""
        pass

    @abstractmethod
    def set_gain(self, layer: str, gain: float) -> None:
        """Set a layer's linear gain in [0, 1]."""
        pass

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether open() succeeded and close() has not been called."""
        pass


class NullAudioBackend(AudioBackendInterface):
    """
    Silent backend.

    Tracks what a real device would be told to do, which makes it useful
    for headless hosts and for tests.
    """

    def __init__(self) -> None:
        self.clips: Dict[str, GeneratedClip] = {}
        self.gains: Dict[str, float] = {}
        self.playing: Dict[str, bool] = {}
        self._open = False

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self.clips.clear()
        self.playing.clear()
        self._open = False

    def load(self, layer: str, clip: GeneratedClip) -> None:
        self.clips[layer] = clip
        self.playing[layer] = False

    def play_loop(self, layer: str) -> None:
        if layer not in self.clips:
            raise AudioBackendError(f"layer '{layer}' has no clip loaded")
        self.playing[layer] = True

    def stop(self, layer: str) -> None:
        if layer in self.playing:
            self.playing[layer] = False

    def set_gain(self, layer: str, gain: float) -> None:
        self.gains[layer] = gain

    @property
    def is_open(self) -> bool:
        return self._open


@dataclass
class _Voice:
    """A decoded clip looping inside the software mixer."""
    samples: NDArray[np.float32]
    position: int = 0
    gain: float = 0.0
    playing: bool = False


class SoundDeviceBackend(AudioBackendInterface):
    """
    Looping playback through PortAudio via sounddevice.

    Clips are decoded once; the output callback sums the playing voices
    with their current gains.
    """

    def __init__(self, sample_rate: int = 44100, blocksize: int = 1024):
        """
        Initialize backend.

        Args:
            sample_rate: Output sample rate (clips must match)
            blocksize: Frames per output callback
        """
        self.sample_rate = sample_rate
        self.blocksize = blocksize
        self._voices: Dict[str, _Voice] = {}
        self._lock = threading.Lock()
        self._stream = None

    def open(self) -> None:
        if self._stream is not None:
            return

        try:
            import sounddevice as sd
        except (ImportError, OSError) as e:
            # OSError: PortAudio library missing
            raise AudioBackendError(f"sounddevice unavailable: {e}") from e

        try:
            stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=2,
                dtype='float32',
                blocksize=self.blocksize,
                callback=self._callback
            )
            stream.start()
        except Exception as e:
            raise AudioBackendError(f"could not open output stream: {e}") from e

        self._stream = stream
        logger.info("sounddevice_stream_opened", sample_rate=self.sample_rate, blocksize=self.blocksize)

    def close(self) -> None:
        stream, self._stream = self._stream, None
        if stream is not None:
            try:
                stream.stop()
                stream.close()
            except Exception as e:
                logger.warning("sounddevice_close_failed", error=str(e))
        with self._lock:
            self._voices.clear()

    def load(self, layer: str, clip: GeneratedClip) -> None:
        try:
            samples, sample_rate = decode_wav(clip.encoded_bytes)
        except ClipEncodingError as e:
            raise AudioBackendError(f"clip '{layer}' could not be decoded: {e.message}") from e
        if sample_rate != self.sample_rate:
            raise AudioBackendError(
                f"clip '{layer}' is {sample_rate} Hz, stream is {self.sample_rate} Hz"
            )
        with self._lock:
            self._voices[layer] = _Voice(samples=samples)

    def play_loop(self, layer: str) -> None:
        with self._lock:
            voice = self._voices.get(layer)
            if voice is None:
                raise AudioBackendError(f"layer '{layer}' has no clip loaded")
            voice.position = 0
            voice.playing = True

    def stop(self, layer: str) -> None:
        with self._lock:
            voice = self._voices.get(layer)
            if voice is not None:
                voice.playing = False

    def set_gain(self, layer: str, gain: float) -> None:
        with self._lock:
            voice = self._voices.get(layer)
            if voice is not None:
                voice.gain = float(np.clip(gain, 0.0, 1.0))

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def render(self, frames: int) -> NDArray[np.float32]:
        """
        Mix the next `frames` frames of every playing voice.

        Args:
            frames: Number of output frames

        Returns:
            Array of shape (frames, 2)
        """
        out = np.zeros((frames, 2), dtype=np.float32)
        with self._lock:
            for voice in self._voices.values():
                if not voice.playing:
                    continue
                n = len(voice.samples)
                if n == 0:
                    continue
                idx = (voice.position + np.arange(frames)) % n
                if voice.gain > 0.0:
                    out += voice.samples[idx] * voice.gain
                voice.position = (voice.position + frames) % n

        np.clip(out, -1.0, 1.0, out=out)
        return out

    def _callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug("sounddevice_status", status=str(status))
        outdata[:] = self.render(frames)


BACKEND_REGISTRY = {
    'null': NullAudioBackend,
    'sounddevice': SoundDeviceBackend
}


def get_backend(backend_type: str, sample_rate: int = 44100, blocksize: int = 1024) -> AudioBackendInterface:
    """
    Get a backend instance by type.

    Args:
        backend_type: 'null' or 'sounddevice'
        sample_rate: Output sample rate
        blocksize: Frames per callback (sounddevice only)

    Returns:
        Backend instance (NullAudioBackend for unknown types)
    """
    if backend_type not in BACKEND_REGISTRY:
        logger.warning(
            "unknown_backend_type",
            backend_type=backend_type,
            available=list(BACKEND_REGISTRY.keys())
        )
        return NullAudioBackend()

    if backend_type == 'sounddevice':
        return SoundDeviceBackend(sample_rate=sample_rate, blocksize=blocksize)
    return BACKEND_REGISTRY[backend_type]()
