"""
PCM container encoding for generated clips.

Writes the canonical 44-byte RIFF/WAVE header followed by interleaved
16-bit little-endian stereo samples.
"""

import io
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Tuple, Union

import numpy as np
from numpy.typing import NDArray

from flow.core.exceptions import ClipEncodingError
from flow.core.logging import get_logger

logger = get_logger(__name__)

CHANNELS = 2
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
BLOCK_ALIGN = CHANNELS * BYTES_PER_SAMPLE
HEADER_SIZE = 44
PCM_FORMAT = 1
FULL_SCALE = 32767

# RIFF header, fmt chunk and data chunk header in one go
_HEADER = struct.Struct("<4sI4s4sIHHIIHH4sI")


@dataclass(frozen=True)
class GeneratedClip:
    """An encoded, immutable stereo clip for one layer."""
    layer: str
    sample_rate: int
    frame_count: int
    encoded_bytes: bytes
    channel_count: int = CHANNELS
    bits_per_sample: int = BITS_PER_SAMPLE

    @property
    def duration(self) -> float:
        """Clip length in seconds."""
        return self.frame_count / self.sample_rate


def as_sample_rate(sample_rate: float) -> int:
    """
    Validate a sample rate for the 32-bit header field.

    Integral floats such as 44100.0 are accepted and returned as int.
    """
    try:
        rate = float(sample_rate)
    except (TypeError, ValueError) as e:
        raise ClipEncodingError(f"invalid sample rate {sample_rate!r}") from e
    if not rate.is_integer() or not 0 < rate <= 0xFFFFFFFF:
        raise ClipEncodingError(f"invalid sample rate {sample_rate!r}")
    return int(rate)


def quantize(samples: NDArray[np.float64]) -> NDArray[np.int16]:
    """
    Convert float samples to 16-bit integers.

    Values are clamped to [-1, 1], scaled by 32767 and rounded half away
    from zero.
    """
    scaled = np.clip(samples, -1.0, 1.0) * FULL_SCALE
    rounded = np.sign(scaled) * np.floor(np.abs(scaled) + 0.5)
    return rounded.astype('<i2')


def encode_wav(samples: NDArray[np.float64], sample_rate: int) -> bytes:
    """
    Serialize stereo samples to a WAV byte string.

    Args:
        samples: Array of shape (n_frames, 2), rows are (left, right)
        sample_rate: Sample rate in Hz

    Returns:
        Header plus interleaved int16 data, exactly 44 + n_frames * 4 bytes
    """
    samples = np.asarray(samples, dtype=np.float64)
    if samples.ndim != 2 or samples.shape[1] != CHANNELS:
        raise ClipEncodingError(
            f"expected samples of shape (n, {CHANNELS}), got {samples.shape}"
        )
    sample_rate = as_sample_rate(sample_rate)

    frame_count = samples.shape[0]
    data_size = frame_count * BLOCK_ALIGN
    if HEADER_SIZE - 8 + data_size > 0xFFFFFFFF:
        raise ClipEncodingError(f"clip of {frame_count} frames exceeds the RIFF size limit")

    header = _HEADER.pack(
        b"RIFF",
        HEADER_SIZE - 8 + data_size,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        CHANNELS,
        sample_rate,
        sample_rate * BLOCK_ALIGN,
        BLOCK_ALIGN,
        BITS_PER_SAMPLE,
        b"data",
        data_size
    )

    # Row-major (n, 2) int16 is already interleaved L, R, L, R...
    return header + quantize(samples).tobytes()


def decode_wav(data: bytes) -> Tuple[NDArray[np.float32], int]:
    """
    Parse a clip produced by encode_wav.

    Chunk sizes are checked against the byte count before libsndfile reads
    the samples.

    Args:
        data: WAV bytes

    Returns:
        (samples of shape (n_frames, 2) scaled to [-1, 1], sample rate)
    """
    if len(data) < HEADER_SIZE:
        raise ClipEncodingError(f"container too short: {len(data)} bytes")

    fields = _HEADER.unpack_from(data)
    riff_size, data_size = fields[1], fields[-1]
    if riff_size != HEADER_SIZE - 8 + data_size or len(data) != HEADER_SIZE + data_size:
        raise ClipEncodingError("chunk sizes do not match the data written")

    try:
        import soundfile as sf
    except (ImportError, OSError) as e:
        raise ClipEncodingError(f"soundfile unavailable: {e}") from e

    try:
        samples, sample_rate = sf.read(io.BytesIO(data), dtype='float32', always_2d=True)
    except RuntimeError as e:
        raise ClipEncodingError(f"unreadable clip: {e}") from e

    if samples.shape[1] != CHANNELS:
        raise ClipEncodingError(f"expected {CHANNELS} channels, got {samples.shape[1]}")
    return samples, sample_rate


def build_clip(layer: str, samples: NDArray[np.float64], sample_rate: int) -> GeneratedClip:
    """Encode samples and wrap them as a GeneratedClip."""
    encoded = encode_wav(samples, sample_rate)
    return GeneratedClip(
        layer=layer,
        sample_rate=as_sample_rate(sample_rate),
        frame_count=len(samples),
        encoded_bytes=encoded
    )


def export_clip(clip: GeneratedClip, path: Union[str, Path]) -> Path:
    """
    Write a clip's encoded bytes to disk.

    Args:
        clip: Clip to write
        path: Target file (parent directories are created)

    Returns:
        Path written
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(clip.encoded_bytes)

    logger.info(
        "clip_exported",
        layer=clip.layer,
        path=str(path),
        duration=clip.duration,
        size=len(clip.encoded_bytes)
    )
    return path
