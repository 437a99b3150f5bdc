from __future__ import annotations

import base64
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from .errors import TransportError
from .wav import DEFAULT_CHANNELS, DEFAULT_SAMPLE_RATE

logger = logging.getLogger(__name__)

__all__ = [
    "GenerationOptions",
    "TextEngine",
    "SpeechEngine",
    "GoogleGenAITextEngine",
    "GoogleGenAISpeechEngine",
    "MockTextEngine",
    "MockSpeechEngine",
    "decode_audio_payload",
]


@dataclass(frozen=True)
class GenerationOptions:
    """
    Sampling parameters for a text-generation request.
    """

    temperature: Optional[float] = None
    top_p: Optional[float] = None
    top_k: Optional[int] = None


class TextEngine(ABC):
    """
    Thin abstraction over a text-generation service.
    """

    @abstractmethod
    async def generate_text(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> str:
        """
        Return the generated text for ``prompt``.
        """

    @abstractmethod
    async def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> str:
        """
        Return JSON text conforming to ``schema``.
        """

    def descriptor(self) -> str:
        return self.__class__.__name__


class SpeechEngine(ABC):
    """
    Thin abstraction over a text-to-speech service that returns raw PCM bytes.
    """

    def __init__(
        self,
        *,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        sample_width: int = 2,
    ) -> None:
        self.sample_rate = sample_rate
        self.channels = channels
        self.sample_width = sample_width

    @abstractmethod
    async def synthesize(self, text: str) -> bytes:
        """
        Convert text into raw PCM bytes. An empty result means no audio was produced.
        """

    def descriptor(self) -> str:
        return self.__class__.__name__


def decode_audio_payload(data: Union[bytes, str, None]) -> bytes:
    """Audio payloads may arrive base64 encoded or already decoded."""
    if not data:
        return b""
    if isinstance(data, str):
        return base64.b64decode(data)
    return bytes(data)


class GoogleGenAITextEngine(TextEngine):
    """
    Google Generative AI text engine using the async ``google-genai`` client.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-2.5-pro",
        structured_model: str = "gemini-2.5-flash",
    ) -> None:
        try:
            from google import genai  # type: ignore
            from google.genai import types  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "google-genai is required for GoogleGenAITextEngine but is not installed."
            ) from exc

        self._client = genai.Client(api_key=api_key)
        self._types = types
        self._model = model
        self._structured_model = structured_model

    def descriptor(self) -> str:
        return f"{self.__class__.__name__}({self._model})"

    async def generate_text(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> str:
        options = options or GenerationOptions()
        config = self._types.GenerateContentConfig(
            system_instruction=system_instruction,
            temperature=options.temperature,
            top_p=options.top_p,
            top_k=options.top_k,
        )
        logger.debug("Text request to %s (%d prompt chars).", self._model, len(prompt))
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            raise TransportError(f"Text generation failed: {exc}") from exc
        return response.text or ""

    async def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> str:
        config = self._types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
        )
        logger.debug(
            "Structured request to %s (%d prompt chars).", self._structured_model, len(prompt)
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._structured_model,
                contents=prompt,
                config=config,
            )
        except Exception as exc:
            raise TransportError(f"Structured generation failed: {exc}") from exc
        return (response.text or "").strip()


class GoogleGenAISpeechEngine(SpeechEngine):
    """
    Google Generative AI TTS implementation requesting raw PCM audio.
    """

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gemini-2.5-flash-preview-tts",
        voice_name: str = "Kore",
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ) -> None:
        try:
            from google import genai  # type: ignore
            from google.genai import types  # type: ignore
        except ImportError as exc:  # pragma: no cover - optional dependency
            raise RuntimeError(
                "google-genai is required for GoogleGenAISpeechEngine but is not installed."
            ) from exc

        super().__init__(sample_rate=sample_rate, channels=1, sample_width=2)
        self._client = genai.Client(api_key=api_key)
        self._types = types
        self._model = model
        self._voice_name = voice_name

    def descriptor(self) -> str:
        return f"{self.__class__.__name__}({self._model}, {self._voice_name})"

    async def synthesize(self, text: str) -> bytes:
        types = self._types
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=self._voice_name)
                )
            ),
        )
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model,
                contents=[types.Content(role="user", parts=[types.Part.from_text(text=text)])],
                config=config,
            )
        except Exception as exc:
            raise TransportError(f"Speech synthesis request failed: {exc}") from exc

        candidate = (response.candidates or [None])[0]
        if not candidate or not candidate.content or not candidate.content.parts:
            return b""
        inline = getattr(candidate.content.parts[0], "inline_data", None)
        return decode_audio_payload(inline.data if inline else None)


class MockTextEngine(TextEngine):
    """
    Deterministic offline engine for tests and dry runs.

    Every call to ``generate_text`` returns ``chunk_text`` (or a numbered filler
    paragraph) and records the prompt it was given.
    """

    def __init__(
        self,
        chunk_text: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.chunk_text = chunk_text
        self.details = details or {
            "synopsis": "A story written without a network connection.",
            "hashtags": ["#MockStory"],
            "tags": ["mock"],
        }
        self.calls: List[str] = []
        self.structured_calls: List[str] = []

    async def generate_text(
        self,
        prompt: str,
        *,
        system_instruction: Optional[str] = None,
        options: Optional[GenerationOptions] = None,
    ) -> str:
        self.calls.append(prompt)
        if self.chunk_text is not None:
            return self.chunk_text
        return f"Part {len(self.calls)} begins as the tide turns. " * 8

    async def generate_structured(self, prompt: str, schema: Dict[str, Any]) -> str:
        self.structured_calls.append(prompt)
        return json.dumps(self.details)


class MockSpeechEngine(SpeechEngine):
    """
    Lightweight mock for tests. Produces silent PCM whose length follows the text.
    """

    def __init__(
        self,
        payloads: Optional[Dict[str, bytes]] = None,
        *,
        bytes_per_char: int = 2,
        sample_rate: int = DEFAULT_SAMPLE_RATE,
    ) -> None:
        super().__init__(sample_rate=sample_rate, channels=1, sample_width=2)
        self._payloads = payloads or {}
        self._bytes_per_char = bytes_per_char
        self.calls: List[str] = []

    async def synthesize(self, text: str) -> bytes:
        self.calls.append(text)
        if text in self._payloads:
            return self._payloads[text]
        return bytes(len(text) * self._bytes_per_char)
