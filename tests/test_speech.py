import asyncio
import base64

import pytest

from story_weaver.engines import MockSpeechEngine, SpeechEngine, decode_audio_payload
from story_weaver.errors import EmptyInputError, NoAudioDataError, TransportError
from story_weaver.speech import AudioClip, SpeechClipCache, SpeechSynthesizer


class NumberedSpeechEngine(SpeechEngine):
    """Returns distinct bytes per call and tracks request overlap."""

    def __init__(self, empty_on_call=None, fail_on_call=None):
        super().__init__()
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._empty_on_call = empty_on_call
        self._fail_on_call = fail_on_call

    async def synthesize(self, text):
        self.calls.append(text)
        number = len(self.calls)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        await asyncio.sleep(0)
        self.in_flight -= 1
        if number == self._fail_on_call:
            raise TransportError("speech service unavailable")
        if number == self._empty_on_call:
            return b""
        return bytes([number]) * 4


LONG_TEXT = " ".join(f"Sentence number {i} drifts over the water." for i in range(30))


def test_generate_speech_concatenates_chunks_in_order():
    engine = NumberedSpeechEngine()
    synthesizer = SpeechSynthesizer(engine, chunk_limit=200)

    encoded = asyncio.run(synthesizer.generate_speech(LONG_TEXT))

    assert len(engine.calls) > 1
    assert "".join(engine.calls) == LONG_TEXT
    assert all(len(chunk) <= 200 for chunk in engine.calls)
    expected = b"".join(bytes([n]) * 4 for n in range(1, len(engine.calls) + 1))
    assert base64.b64decode(encoded) == expected


def test_chunks_are_synthesized_sequentially():
    engine = NumberedSpeechEngine()
    synthesizer = SpeechSynthesizer(engine, chunk_limit=120)

    asyncio.run(synthesizer.synthesize_pcm(LONG_TEXT))

    assert engine.max_in_flight == 1


def test_blank_text_returns_none_without_calls():
    engine = NumberedSpeechEngine()
    synthesizer = SpeechSynthesizer(engine)

    assert asyncio.run(synthesizer.generate_speech("   \n")) is None
    with pytest.raises(EmptyInputError):
        asyncio.run(synthesizer.synthesize_pcm(""))
    assert engine.calls == []


def test_missing_audio_aborts_synthesis():
    engine = NumberedSpeechEngine(empty_on_call=2)
    synthesizer = SpeechSynthesizer(engine, chunk_limit=200)

    with pytest.raises(NoAudioDataError):
        asyncio.run(synthesizer.synthesize_pcm(LONG_TEXT))
    assert len(engine.calls) == 2


def test_generate_speech_reports_failures_as_none():
    synthesizer = SpeechSynthesizer(NumberedSpeechEngine(empty_on_call=1), chunk_limit=200)
    assert asyncio.run(synthesizer.generate_speech(LONG_TEXT)) is None

    synthesizer = SpeechSynthesizer(NumberedSpeechEngine(fail_on_call=1), chunk_limit=200)
    assert asyncio.run(synthesizer.generate_speech(LONG_TEXT)) is None


def test_decode_audio_payload_accepts_base64_text():
    assert decode_audio_payload("AAEC") == b"\x00\x01\x02"
    assert decode_audio_payload(b"\x05") == b"\x05"
    assert decode_audio_payload(None) == b""


def test_audio_clip_duration_and_wav():
    clip = AudioClip(index=0, pcm=bytes(48000))

    assert clip.duration_ms == 1000
    assert len(clip.to_wav()) == 44 + 48000


def test_clip_cache_synthesizes_each_segment_once():
    engine = MockSpeechEngine(payloads={"broken": b""})
    cache = SpeechClipCache(SpeechSynthesizer(engine))
    segments = ["First part.", "broken", "Third part."]

    async def scenario():
        clips = await cache.generate_clips(segments)
        again = await cache.get_clip(0, segments[0])
        return clips, again

    clips, again = asyncio.run(scenario())

    assert [clip.index for clip in clips] == [0, 2]
    assert again is clips[0]
    assert 1 not in cache
    assert len(cache) == 2
    assert engine.calls.count("First part.") == 1
    assert clips[0].pcm == bytes(len("First part.") * 2)
