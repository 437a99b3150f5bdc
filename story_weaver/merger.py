from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from pydub import AudioSegment

from .speech import AudioClip

logger = logging.getLogger(__name__)

__all__ = ["export_clip", "clip_to_segment", "merge_audio_clips"]


def export_clip(clip: AudioClip, output_path: Path) -> Path:
    """Write one clip as a WAV file using the built-in container header."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(clip.to_wav())
    logger.info("Exported segment %d audio to %s", clip.index, output_path)
    return output_path


def clip_to_segment(clip: AudioClip) -> AudioSegment:
    return AudioSegment(
        data=clip.pcm,
        sample_width=clip.sample_width,
        frame_rate=clip.sample_rate,
        channels=clip.channels,
    )


def merge_audio_clips(
    clips: Sequence[AudioClip],
    output_path: Path,
    *,
    silence_gap_ms: int = 300,
    output_format: str = "wav",
) -> AudioSegment:
    if not clips:
        raise ValueError("No clips provided for merging.")

    merged: AudioSegment | None = None
    ordered = sorted(clips, key=lambda clip: clip.index)
    clip_count = len(ordered)

    for idx, clip in enumerate(ordered):
        segment = clip_to_segment(clip)
        merged = segment if merged is None else merged + segment

        if idx < clip_count - 1 and silence_gap_ms > 0:
            merged += _matching_silence(segment, silence_gap_ms)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    merged.export(output_path, format=output_format)
    logger.info("Merged %d clips into %s", clip_count, output_path)
    return merged


def _matching_silence(segment: AudioSegment, duration_ms: int) -> AudioSegment:
    silence = AudioSegment.silent(duration=duration_ms, frame_rate=segment.frame_rate)
    silence = silence.set_channels(segment.channels)
    silence = silence.set_sample_width(segment.sample_width)
    return silence
