from __future__ import annotations

import asyncio
import base64
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .engines import SpeechEngine
from .errors import EmptyInputError, NoAudioDataError, SynthesisError, TransportError
from .split_text import split_text
from .wav import build_wav

logger = logging.getLogger(__name__)

__all__ = ["TTS_CHUNK_LIMIT", "AudioClip", "SpeechSynthesizer", "SpeechClipCache"]

TTS_CHUNK_LIMIT = 4500


@dataclass
class AudioClip:
    """
    Raw PCM audio for one story segment.
    """

    index: int
    pcm: bytes
    sample_rate: int = 24000
    channels: int = 1
    sample_width: int = 2

    @property
    def duration_ms(self) -> int:
        bytes_per_second = self.sample_rate * self.channels * self.sample_width
        return int(len(self.pcm) * 1000 / bytes_per_second) if bytes_per_second else 0

    def to_wav(self) -> bytes:
        return build_wav(
            self.pcm,
            sample_rate=self.sample_rate,
            channels=self.channels,
            bits_per_sample=self.sample_width * 8,
        )


class SpeechSynthesizer:
    """
    Turns arbitrary-length text into one PCM stream by synthesizing it in
    size-bounded chunks, one request at a time.
    """

    def __init__(self, engine: SpeechEngine, chunk_limit: int = TTS_CHUNK_LIMIT) -> None:
        if chunk_limit <= 0:
            raise ValueError("chunk_limit must be positive.")
        self.engine = engine
        self.chunk_limit = chunk_limit

    async def synthesize_pcm(self, text: str) -> bytes:
        if not text or not text.strip():
            raise EmptyInputError("Speech was requested for empty text.")

        chunks = split_text(text, self.chunk_limit)
        logger.info("Synthesizing %d characters in %d chunks.", len(text), len(chunks))

        audio_parts: List[bytes] = []
        for number, chunk in enumerate(chunks, start=1):
            audio = await self.engine.synthesize(chunk)
            if not audio:
                raise NoAudioDataError(
                    f"No audio data received for chunk {number}/{len(chunks)} "
                    f"({len(chunk)} chars). The chunk may be too long or contain "
                    "unsupported characters."
                )
            logger.debug("Chunk %d/%d produced %d bytes.", number, len(chunks), len(audio))
            audio_parts.append(audio)

        return b"".join(audio_parts)

    async def generate_speech(self, text: str) -> Optional[str]:
        """
        Base64-encoded PCM for ``text``, or ``None`` when synthesis is not possible.

        Failures are logged rather than raised so that a broken narration never
        interrupts anything else the caller is doing.
        """
        if not text or not text.strip():
            logger.warning("generate_speech was called with empty text.")
            return None
        try:
            pcm = await self.synthesize_pcm(text)
        except (SynthesisError, TransportError):
            logger.exception("Failed to generate speech.")
            return None
        return base64.b64encode(pcm).decode("ascii")

    def make_clip(self, index: int, pcm: bytes) -> AudioClip:
        return AudioClip(
            index=index,
            pcm=pcm,
            sample_rate=self.engine.sample_rate,
            channels=self.engine.channels,
            sample_width=self.engine.sample_width,
        )


class SpeechClipCache:
    """
    Lazily synthesized audio clips keyed by story segment index.

    Clips stay cached for the lifetime of the object. Different segments may be
    synthesized concurrently; each segment's own chunks remain sequential.
    """

    def __init__(self, synthesizer: SpeechSynthesizer) -> None:
        self.synthesizer = synthesizer
        self._clips: Dict[int, AudioClip] = {}
        self._pending: Dict[int, "asyncio.Task[Optional[AudioClip]]"] = {}

    def __contains__(self, index: int) -> bool:
        return index in self._clips

    def __len__(self) -> int:
        return len(self._clips)

    def clips(self) -> List[AudioClip]:
        return [self._clips[index] for index in sorted(self._clips)]

    async def get_clip(self, index: int, text: str) -> Optional[AudioClip]:
        if index in self._clips:
            return self._clips[index]

        task = self._pending.get(index)
        if task is None:
            task = asyncio.ensure_future(self._synthesize(index, text))
            self._pending[index] = task
        try:
            return await task
        finally:
            self._pending.pop(index, None)

    async def generate_clips(self, segments: Sequence[str]) -> List[AudioClip]:
        results = await asyncio.gather(
            *(self.get_clip(index, text) for index, text in enumerate(segments))
        )
        return [clip for clip in results if clip is not None]

    async def _synthesize(self, index: int, text: str) -> Optional[AudioClip]:
        encoded = await self.synthesizer.generate_speech(text)
        if encoded is None:
            logger.error("Failed to generate audio for segment %d: no data received.", index)
            return None
        clip = self.synthesizer.make_clip(index, base64.b64decode(encoded))
        self._clips[index] = clip
        logger.info("Cached audio for segment %d (%d ms).", index, clip.duration_ms)
        return clip
