from __future__ import annotations

import struct

__all__ = [
    "WAV_HEADER_SIZE",
    "DEFAULT_SAMPLE_RATE",
    "DEFAULT_CHANNELS",
    "DEFAULT_BITS_PER_SAMPLE",
    "build_wav",
]

WAV_HEADER_SIZE = 44
DEFAULT_SAMPLE_RATE = 24000
DEFAULT_CHANNELS = 1
DEFAULT_BITS_PER_SAMPLE = 16

_PCM_FORMAT_TAG = 1
_FMT_CHUNK_SIZE = 16


def build_wav(
    pcm: bytes,
    sample_rate: int = DEFAULT_SAMPLE_RATE,
    channels: int = DEFAULT_CHANNELS,
    bits_per_sample: int = DEFAULT_BITS_PER_SAMPLE,
) -> bytes:
    """
    Wrap raw PCM samples in a minimal 44-byte RIFF/WAVE header.

    All header fields are little-endian. The RIFF size is ``36 + len(pcm)`` and
    the data sub-chunk size is ``len(pcm)``.
    """
    data_size = len(pcm)
    block_align = channels * bits_per_sample // 8
    byte_rate = sample_rate * block_align
    header = struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_size,
        b"WAVE",
        b"fmt ",
        _FMT_CHUNK_SIZE,
        _PCM_FORMAT_TAG,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        bits_per_sample,
        b"data",
        data_size,
    )
    return header + bytes(pcm)
