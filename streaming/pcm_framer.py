"""
Canonical audio container framing.

Wraps headerless 16-bit little-endian mono PCM in a minimal 44-byte RIFF/WAVE
header so the speech service (and any audio player) can consume it.
"""

import struct
from typing import Tuple

HEADER_SIZE = 44
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16
BYTES_PER_SAMPLE = BITS_PER_SAMPLE // 8
PCM_FORMAT = 1

_MAX_U32 = 0xFFFFFFFF


def pcm_samples(num_bytes: int) -> int:
    """Number of 16-bit samples in `num_bytes` of PCM."""
    return num_bytes // BYTES_PER_SAMPLE


def frame(pcm: bytes, sample_rate: int) -> bytes:
    """
    Prepend a WAV header to raw PCM.

    Args:
        pcm: Raw 16-bit mono PCM bytes (may be empty).
        sample_rate: Samples per second, > 0.

    Returns:
        44-byte header followed by `pcm` unchanged.
    """
    if sample_rate <= 0:
        raise ValueError(f"sample_rate must be positive, got {sample_rate}")
    n = len(pcm)
    byte_rate = sample_rate * NUM_CHANNELS * BYTES_PER_SAMPLE
    if 36 + n > _MAX_U32 or byte_rate > _MAX_U32:
        raise ValueError(f"PCM payload of {n} bytes does not fit a WAV container")

    header = bytearray(HEADER_SIZE)
    header[0:4] = b"RIFF"
    struct.pack_into("<I", header, 4, 36 + n)
    header[8:12] = b"WAVE"
    header[12:16] = b"fmt "
    struct.pack_into("<I", header, 16, 16)  # fmt chunk size
    struct.pack_into("<H", header, 20, PCM_FORMAT)
    struct.pack_into("<H", header, 22, NUM_CHANNELS)
    struct.pack_into("<I", header, 24, sample_rate)
    struct.pack_into("<I", header, 28, byte_rate)
    struct.pack_into("<H", header, 32, NUM_CHANNELS * BYTES_PER_SAMPLE)  # block align
    struct.pack_into("<H", header, 34, BITS_PER_SAMPLE)
    header[36:40] = b"data"
    struct.pack_into("<I", header, 40, n)
    return bytes(header) + pcm


def parse_header(container: bytes) -> Tuple[int, int]:
    """
    Read back (sample_rate, data_len) from a container built by `frame`.
    Raises ValueError if the header is not a 16-bit mono PCM WAV header.
    """
    if len(container) < HEADER_SIZE or container[0:4] != b"RIFF" or container[8:12] != b"WAVE":
        raise ValueError("Not a RIFF/WAVE container")
    fmt, channels, sample_rate = struct.unpack_from("<HHI", container, 20)
    bits = struct.unpack_from("<H", container, 34)[0]
    if fmt != PCM_FORMAT or channels != NUM_CHANNELS or bits != BITS_PER_SAMPLE:
        raise ValueError("Unsupported WAV format (expected 16-bit mono PCM)")
    data_len = struct.unpack_from("<I", container, 40)[0]
    return sample_rate, data_len
