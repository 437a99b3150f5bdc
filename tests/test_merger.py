import wave

import pytest

from story_weaver.merger import export_clip, merge_audio_clips
from story_weaver.speech import AudioClip


def _silent_clip(index, duration_ms, sample_rate=24000):
    frames = sample_rate * duration_ms // 1000
    return AudioClip(index=index, pcm=bytes(frames * 2), sample_rate=sample_rate)


def test_merge_audio_clips_inserts_silence_in_segment_order(tmp_path):
    durations = [1000, 500, 250]
    clips = [_silent_clip(index, duration) for index, duration in enumerate(durations)]

    output_path = tmp_path / "merged" / "story.wav"
    silence_gap = 200

    merged = merge_audio_clips(list(reversed(clips)), output_path, silence_gap_ms=silence_gap)

    assert output_path.exists()
    expected_duration = sum(durations) + silence_gap * (len(durations) - 1)
    assert abs(len(merged) - expected_duration) <= 50
    assert merged.frame_rate == 24000
    assert merged.channels == 1


def test_merge_audio_clips_requires_clips(tmp_path):
    with pytest.raises(ValueError):
        merge_audio_clips([], tmp_path / "empty.wav")


def test_export_clip_writes_playable_wav(tmp_path):
    clip = _silent_clip(3, 500)
    path = export_clip(clip, tmp_path / "audio" / "segment-004.wav")

    with wave.open(str(path), "rb") as wf:
        assert wf.getframerate() == 24000
        assert wf.getnframes() == 12000
